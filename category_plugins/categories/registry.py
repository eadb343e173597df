"""
Category registry and current-page path context.

The registry is a flat mapping of category identifiers (slash-delimited
directory paths, "" for the root) to per-category metadata. It is filled
once per build from the pages MkDocs collected and then only read.
"""

import logging
import re
from dataclasses import dataclass
from collections.abc import Mapping
from typing import Any, Dict, Iterable, Iterator, List, Optional, Union

from mkdocs.exceptions import PluginError
from mkdocs.structure.files import Files

log = logging.getLogger("mkdocs.plugins.categories")

# Page stems MkDocs treats as the index of their directory.
INDEX_STEMS = ("index", "README")


class RegistryError(PluginError):
    """The registry does not describe a consistent category hierarchy."""


def category_depth(cat_id: str) -> int:
    """Return the number of path segments in a category identifier."""
    if not cat_id:
        return 0
    return cat_id.count("/") + 1


def category_basename(cat_id: str) -> str:
    return cat_id.rsplit("/", 1)[-1]


def parent_category(cat_id: str) -> Optional[str]:
    """Return the parent identifier, or None for the root."""
    if not cat_id:
        return None
    if "/" not in cat_id:
        return ""
    return cat_id.rsplit("/", 1)[0]


def prettify(basename: str) -> str:
    """Turn a directory name into a display label: `star_trek-tos` -> `Star Trek Tos`."""
    words = re.split(r"[_\-\s]+", basename)
    return " ".join(word.capitalize() for word in words if word)


@dataclass(frozen=True)
class CategoryInfo:
    depth: int
    basename: str = ""
    pretty: str = ""
    num_entries: int = 0

    @classmethod
    def for_id(cls, cat_id: str, num_entries: int = 0) -> "CategoryInfo":
        basename = category_basename(cat_id)
        return cls(
            depth=category_depth(cat_id),
            basename=basename,
            pretty=prettify(basename),
            num_entries=num_entries,
        )


@dataclass(frozen=True)
class PathContext:
    """Where the page being rendered lives in the category hierarchy."""

    cat_id: str = ""
    depth: int = 0
    basename: str = ""
    type: str = "category"

    @property
    def is_category_index(self) -> bool:
        """True when the current page is the index of its category."""
        if self.basename == "index":
            return True
        return not self.type.endswith("entry") and not self.basename

    @classmethod
    def for_page(cls, src_uri: str) -> "PathContext":
        """Derive the context from a page source path such as `b7/s1/pilot.md`."""
        directory, _, filename = src_uri.replace("\\", "/").rpartition("/")
        stem = filename.rsplit(".", 1)[0]
        basename = "index" if stem in INDEX_STEMS else stem
        return cls(
            cat_id=directory,
            depth=category_depth(directory),
            basename=basename,
            type="entry",
        )


class CategoryRegistry(Mapping):
    """Read-only view of identifier -> CategoryInfo, always holding the root."""

    def __init__(self, categories: Optional[Mapping[str, CategoryInfo]] = None):
        self._categories: Dict[str, CategoryInfo] = {"": CategoryInfo.for_id("")}
        if categories:
            self._categories.update(categories)

    def __getitem__(self, cat_id: str) -> CategoryInfo:
        return self._categories[cat_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._categories)

    def __len__(self) -> int:
        return len(self._categories)

    def __repr__(self) -> str:
        return f"CategoryRegistry({len(self)} categories)"

    # -------------------------------
    # Construction
    # -------------------------------

    @classmethod
    def from_mapping(cls, data: Mapping[str, Union[CategoryInfo, Mapping[str, Any]]]) -> "CategoryRegistry":
        """Build a registry from plain dicts, filling in what they leave out.

        Each value may carry `depth`, `basename`, `pretty` and `num_entries`;
        missing keys are derived from the identifier.
        """
        categories: Dict[str, CategoryInfo] = {}
        for cat_id, record in data.items():
            if isinstance(record, CategoryInfo):
                categories[cat_id] = record
                continue
            derived = CategoryInfo.for_id(cat_id)
            basename = record.get("basename", derived.basename) or ""
            categories[cat_id] = CategoryInfo(
                depth=int(record.get("depth", derived.depth)),
                basename=basename,
                pretty=record.get("pretty") or prettify(basename),
                num_entries=int(record.get("num_entries", 0) or 0),
            )
        return cls(categories)

    @classmethod
    def from_paths(cls, src_paths: Iterable[str]) -> "CategoryRegistry":
        """Build a registry from page source paths relative to docs_dir.

        Every directory holding a page becomes a category, along with all of
        its ancestors. Index pages register their directory but do not count
        as entries.
        """
        counts: Dict[str, int] = {"": 0}
        for src_path in src_paths:
            context = PathContext.for_page(src_path)
            cat_id = context.cat_id
            ancestor = cat_id
            while ancestor is not None and ancestor not in counts:
                counts[ancestor] = 0
                ancestor = parent_category(ancestor)
            if context.basename != "index":
                counts[cat_id] += 1
        return cls({cat_id: CategoryInfo.for_id(cat_id, n) for cat_id, n in counts.items()})

    @classmethod
    def from_files(cls, files: Files) -> "CategoryRegistry":
        """Build a registry from the documentation pages of an MkDocs build."""
        return cls.from_paths(f.src_uri for f in files.documentation_pages())

    # -------------------------------
    # Queries
    # -------------------------------

    def sorted_ids(self) -> List[str]:
        """Identifiers in pre-order: every ancestor before its descendants.

        Sorting by segments keeps `a/b` next to `a` even when a sibling such as
        `a-c` would sort between them as a plain string.
        """
        return sorted(self._categories, key=lambda cat_id: cat_id.split("/"))

    def validate(self) -> None:
        """Raise RegistryError unless depths and parents are consistent."""
        problems: List[str] = []
        for cat_id, info in self._categories.items():
            expected = category_depth(cat_id)
            if info.depth != expected:
                problems.append(f"'{cat_id}' has depth {info.depth}, expected {expected}")
            parent = parent_category(cat_id)
            if parent is not None and parent not in self._categories:
                problems.append(f"'{cat_id}' has no parent category '{parent}'")
        if problems:
            raise RegistryError("[categories] invalid category registry: " + "; ".join(problems))
        log.debug("[categories] registry of %d categories is consistent", len(self))

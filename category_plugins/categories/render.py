"""
Render a category forest into nested markup.

Every string the output is made of comes from RenderOptions, so the default
nested <ul> list can be turned into anything else (a <nav>, a row of links,
CSS-classed items) without touching the code.
"""

import dataclasses
import html
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import urlsplit

from category_plugins.categories.registry import CategoryInfo, PathContext
from category_plugins.categories.tree import Forest, HideRule

log = logging.getLogger("mkdocs.plugins.categories")

# A trailing `name.ext` component of a referrer path, e.g. `pilot.html`.
FILENAME_RE = re.compile(r"[^/]+\.\w+$")


@dataclass(frozen=True)
class RenderOptions:
    """Decoration strings and filters for one rendering call.

    - tree_head / tree_foot: wrap the whole output once.
    - subtree_head / subtree_foot: wrap every nested level.
    - last_subtree_head / last_subtree_foot: wrap the level at `end_depth`.
    - pre_item / post_item: wrap every item.
    - pre_active_item / post_active_item: wrap the label of the current category.
    - item_sep: between items of one level; tree_sep: between an item and its children.
    - root: label of the root category.
    - you_were_here: appended to the category the visitor came from.
    - use_count: append `(N)` entry counts.
    - hide: rule for categories to leave out (see `tree.hide_predicate`).
    - labels: basename -> label replacing the prettified directory name.
    - start_depth / end_depth: inclusive depth window, end_depth 0 is unbounded.
    """

    tree_head: str = "<ul>"
    tree_foot: str = "</ul>"
    subtree_head: str = "<ul>"
    subtree_foot: str = "</ul>"
    last_subtree_head: str = "<ul>"
    last_subtree_foot: str = "</ul>"
    pre_item: str = "<li>"
    post_item: str = "</li>"
    pre_active_item: str = "<em>"
    post_active_item: str = "</em>"
    item_sep: str = "\n"
    tree_sep: str = "\n"
    root: str = "Home"
    you_were_here: str = "&lt;-- you were here"
    use_count: bool = False
    hide: HideRule = None
    labels: Mapping[str, str] = field(default_factory=dict)
    start_depth: int = 0
    end_depth: int = 0


OPTION_NAMES = frozenset(f.name for f in dataclasses.fields(RenderOptions))


def resolve_options(
    defaults: RenderOptions,
    site_config: Optional[Mapping[str, Any]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> RenderOptions:
    """Apply site-wide values, then call-site values, on top of `defaults`.

    Site values of None leave the default in place. Unknown option names are
    reported and dropped.
    """
    changes: Dict[str, Any] = {}
    for name, value in (site_config or {}).items():
        if value is not None and name in OPTION_NAMES:
            changes[name] = value
    for name, value in (overrides or {}).items():
        if name not in OPTION_NAMES:
            log.warning(f"[categories] ignoring unknown option '{name}'")
            continue
        changes[name] = value
    return dataclasses.replace(defaults, **changes)


def local_reference(referrer: Optional[str], base_url: str = "", host: str = "") -> str:
    """Guess the category the visitor came from out of the HTTP referrer.

    The referrer is matched against the site's base URL, then its host; the
    rest of the path, minus any file name and the outer slashes, is the
    category identifier. Returns "" when nothing matches.
    """
    if not referrer:
        return ""
    remainder = None
    for anchor in (base_url, host):
        if anchor and anchor in referrer:
            remainder = referrer.split(anchor, 1)[1]
            break
    if remainder is None:
        return ""
    remainder = re.split(r"[?#]", remainder, maxsplit=1)[0]
    remainder = FILENAME_RE.sub("", remainder)
    if remainder.endswith("/"):
        remainder = remainder[:-1]
    if remainder.startswith("/"):
        remainder = remainder[1:]
    return remainder


def site_host(site_url: Optional[str]) -> str:
    """Host part of the configured site URL, "" when unset."""
    if not site_url:
        return ""
    return urlsplit(site_url).netloc


class TreeRenderer:
    """Walk a forest and produce one markup string."""

    def __init__(
        self,
        registry: Mapping[str, CategoryInfo],
        path: PathContext,
        options: RenderOptions,
        base_url: str = "",
        local_ref: str = "",
    ):
        self.registry = registry
        self.path = path
        self.options = options
        self.base_url = base_url.rstrip("/")
        self.local_ref = local_ref

    def render(self, forest: Forest) -> str:
        return self._render_level(forest, 0)

    def _render_level(self, forest: Forest, tree_depth: int) -> str:
        opts = self.options
        joined = opts.item_sep.join(self._render_items(forest, tree_depth))
        if tree_depth == 0:
            return joined
        if opts.end_depth and tree_depth == opts.end_depth:
            return f"{opts.last_subtree_head}{joined}{opts.last_subtree_foot}"
        return f"{opts.subtree_head}{joined}{opts.subtree_foot}"

    def _render_items(self, forest: Forest, tree_depth: int) -> List[str]:
        items: List[str] = []
        position = 0
        while position < len(forest):
            node = forest[position]
            position += 1
            if isinstance(node, list):
                # No leaf to hang it on: its items join this level.
                items.extend(self._render_items(node, tree_depth))
                continue
            item = self._render_node(node)
            if position < len(forest) and isinstance(forest[position], list):
                sublist = self._render_level(forest[position], tree_depth + 1)
                position += 1
                item = self.options.tree_sep.join([item, sublist])
            items.append(item + self.options.post_item)
        return items

    def _render_node(self, cat_id: str) -> str:
        """Render one item without its children or post_item."""
        opts = self.options
        info = self.registry[cat_id]
        label = self.label_for(info)
        if self.is_active(cat_id):
            item = f"{opts.pre_item}{opts.pre_active_item}{label}{opts.post_active_item}"
        else:
            item = f'{opts.pre_item}<a href="{html.escape(self.url_for(cat_id), quote=True)}">{label}</a>'
        if opts.use_count and info.num_entries:
            item += f" ({info.num_entries})"
        if self.local_ref and self.local_ref == cat_id:
            item += f" {opts.you_were_here}"
        return item

    def label_for(self, info: CategoryInfo) -> str:
        if not info.basename:
            return self.options.root
        labels = self.options.labels or {}
        if info.basename in labels:
            return str(labels[info.basename])
        return html.escape(info.pretty, quote=False)

    def is_active(self, cat_id: str) -> bool:
        return self.path.is_category_index and cat_id == self.path.cat_id

    def url_for(self, cat_id: str) -> str:
        if not cat_id:
            return f"{self.base_url}/"
        return f"{self.base_url}/{cat_id}/"

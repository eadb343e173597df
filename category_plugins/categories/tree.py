"""
Rebuild the category hierarchy from a flat, pre-order sorted identifier list.

The result is a forest: a list whose elements are either identifiers
(leaves) or nested forests holding the children of the leaf just before
them. Nesting is driven only by each identifier's registered depth.
"""

import re
from typing import Callable, List, Mapping, Optional, Sequence, Union

from category_plugins.categories.registry import CategoryInfo, PathContext

Forest = List[Union[str, "Forest"]]
HideRule = Union[None, str, re.Pattern, Callable[[str], bool]]


def hide_predicate(hide: HideRule) -> Callable[[str], bool]:
    """Normalize a hide rule into `identifier -> bool`.

    Strings are regular expressions searched anywhere in the identifier, so
    `s1` hides `b7/s1` as well as `b7/s1/pilot`.
    """
    if not hide:
        return lambda cat_id: False
    if isinstance(hide, str):
        hide = re.compile(hide)
    if isinstance(hide, re.Pattern):
        return lambda cat_id: hide.search(cat_id) is not None
    if callable(hide):
        return hide
    raise TypeError(f"unsupported hide rule: {hide!r}")


def on_path(cat_id: str, depth: int, path: PathContext) -> bool:
    """True if the category is an ancestor of, equal to, or a direct child of `path`."""
    if depth < path.depth:
        return cat_id == "" or path.cat_id.startswith(cat_id + "/")
    if depth == path.depth:
        return cat_id == path.cat_id
    if depth == path.depth + 1:
        return path.cat_id == "" or cat_id.startswith(path.cat_id + "/")
    return False


def build_forest(
    categories: Sequence[str],
    registry: Mapping[str, CategoryInfo],
    hide: HideRule = None,
    start_depth: int = 0,
    end_depth: int = 0,
    match_path: bool = False,
    path: Optional[PathContext] = None,
) -> Forest:
    """Nest the sorted `categories` by depth, dropping those filtered out.

    One cursor walks the sequence once across all recursion levels, so the
    work is linear in the number of identifiers. `end_depth` of 0 means no
    lower bound on the window.
    """
    if match_path and path is None:
        raise ValueError("match_path needs the current path context")
    is_hidden = hide_predicate(hide)
    cursor = 0

    def skipped(cat_id: str, depth: int) -> bool:
        if match_path and not on_path(cat_id, depth, path):
            return True
        if is_hidden(cat_id):
            return True
        if depth < start_depth:
            return True
        return bool(end_depth) and depth > end_depth

    def level(depth: int) -> Forest:
        nonlocal cursor
        forest: Forest = []
        while cursor < len(categories):
            cat_id = categories[cursor]
            cat_depth = registry[cat_id].depth
            if skipped(cat_id, cat_depth):
                cursor += 1
            elif cat_depth == depth:
                forest.append(cat_id)
                cursor += 1
            elif cat_depth > depth:
                forest.append(level(cat_depth))
            else:
                # Belongs to an enclosing level.
                break
        return forest

    return level(0)


def flatten(forest: Forest) -> List[str]:
    """Return the leaves of a forest in pre-order."""
    leaves: List[str] = []
    for node in forest:
        if isinstance(node, list):
            leaves.extend(flatten(node))
        else:
            leaves.append(node)
    return leaves

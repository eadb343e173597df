import dataclasses
import logging
import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from category_plugins.categories.registry import CategoryRegistry, PathContext
from category_plugins.categories.render import (
    RenderOptions,
    TreeRenderer,
    local_reference,
    resolve_options,
)
from category_plugins.categories.tree import HideRule, build_forest

log = logging.getLogger("mkdocs.plugins.categories")

TREE_DEFAULTS = RenderOptions(use_count=True)
BREADCRUMB_DEFAULTS = RenderOptions()


@dataclass(frozen=True)
class RequestContext:
    """HTTP request values the category tree reads, both optional."""

    referrer: Optional[str] = None
    host: Optional[str] = None

    @classmethod
    def from_environ(cls, environ: Optional[Mapping[str, str]] = None) -> "RequestContext":
        """Read HTTP_REFERER and HTTP_HOST the way a CGI or WSGI server passes them."""
        if environ is None:
            environ = os.environ
        return cls(
            referrer=environ.get("HTTP_REFERER") or None,
            host=environ.get("HTTP_HOST") or None,
        )


class CategoryLinks:
    """
    Category site map and breadcrumb trail for one page.

    Holds the read-only inputs every rendering call needs: the registry, the
    current page's place in it, the site's base URL and request values, and
    the site-wide `hide` and `labels` defaults. Options passed to
    `category_tree()` and `breadcrumb()` win over the site-wide values, which
    win over the built-in defaults.
    """

    def __init__(
        self,
        registry: CategoryRegistry,
        path: Optional[PathContext] = None,
        base_url: str = "",
        request: Optional[RequestContext] = None,
        hide: HideRule = None,
        labels: Optional[Mapping[str, str]] = None,
        site_host: str = "",
    ):
        self.registry = registry
        self.path = path or PathContext()
        self.base_url = (base_url or "").rstrip("/")
        self.request = request or RequestContext()
        self.site_host = site_host
        self.site_config = {"hide": hide, "labels": labels}

    def local_ref(self) -> str:
        """Identifier of the category the visitor came from, or ""."""
        return local_reference(
            self.request.referrer,
            base_url=self.base_url,
            host=self.request.host or self.site_host,
        )

    def category_tree(self, **options: Any) -> str:
        """
        Render every category as a list of lists, usable as a site map.

        The current category (when the page is its index) is marked active
        instead of linked, entry counts are shown by default, and the category
        named by the HTTP referrer gets the `you_were_here` marker. The depth
        window options do not apply: the whole tree is rendered.
        """
        opts = resolve_options(TREE_DEFAULTS, self.site_config, options)
        opts = dataclasses.replace(opts, start_depth=0, end_depth=0)
        forest = build_forest(self.registry.sorted_ids(), self.registry, hide=opts.hide)
        local_ref = self.local_ref()
        if local_ref:
            log.debug(f"[categories] visitor came from '{local_ref}'")
        renderer = TreeRenderer(self.registry, self.path, opts, self.base_url, local_ref)
        return f"{opts.tree_head}{renderer.render(forest)}{opts.tree_foot}"

    def breadcrumb(self, **options: Any) -> str:
        """
        Render the categories above the current page, the page's own category
        and, by default, one level of categories below it.

        `end_depth` defaults to the current depth plus one; set it to the
        current depth to leave the children out. The level at `end_depth` is
        wrapped in `last_subtree_head`/`last_subtree_foot`.
        """
        defaults = dataclasses.replace(BREADCRUMB_DEFAULTS, end_depth=self.path.depth + 1)
        opts = resolve_options(defaults, self.site_config, options)
        forest = build_forest(
            self.registry.sorted_ids(),
            self.registry,
            hide=opts.hide,
            start_depth=opts.start_depth,
            end_depth=opts.end_depth,
            match_path=True,
            path=self.path,
        )
        renderer = TreeRenderer(self.registry, self.path, opts, self.base_url)
        return f"{opts.tree_head}{renderer.render(forest)}{opts.tree_foot}"

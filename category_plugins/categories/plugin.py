"""
An MkDocs plugin giving page templates a category site map and a breadcrumb trail
"""

import logging
import re
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml
from markupsafe import Markup
from mkdocs.config import config_options as c
from mkdocs.config.defaults import MkDocsConfig
from mkdocs.exceptions import ConfigurationError
from mkdocs.plugins import BasePlugin
from mkdocs.structure.files import Files
from mkdocs.structure.pages import Page

from category_plugins.categories.category_links import CategoryLinks, RequestContext
from category_plugins.categories.registry import CategoryRegistry, PathContext
from category_plugins.categories.render import site_host

# Use MkDocs' plugin logger namespace so debug logs appear only with `--verbose`.
log = logging.getLogger("mkdocs.plugins.categories")


class CategoriesPlugin(BasePlugin):
    """MkDocs plugin exposing `category_tree()` and `breadcrumb()` to templates.

    Every directory under docs_dir is a category. Templates call the two
    functions with any rendering option as keyword argument, e.g.
    `{{ breadcrumb(tree_head='<nav><ul>', tree_foot='</ul></nav>') }}`.

    Configuration options (all optional):
    - hide (str): Regular expression; matching categories are left out everywhere.
    - labels (dict): Directory name -> label, replacing the prettified name.
    - labels_file (str): YAML file of labels relative to mkdocs.yml; `labels` wins on conflicts.
    - strict (bool): Fail the build when the category registry is inconsistent.
    - debug (bool): Extra debug logging.
    """

    config_scheme = (
        ('hide',        c.Type(str, default='')),
        ('labels',      c.Type(dict, default={})),
        ('labels_file', c.Type(str, default='')),
        ('strict',      c.Type(bool, default=False)),
        ('debug',       c.Type(bool, default=False)),
    )

    def __init__(self):
        super().__init__()
        self.registry = CategoryRegistry()
        self.hide: Optional[re.Pattern] = None
        self.labels: Dict[str, str] = {}
        self.base_url = ""
        self.site_host = ""

    # -------------------------------
    # Helpers
    # -------------------------------

    def _dbg(self, msg: str, *args) -> None:
        """Debug log gated by plugin config."""
        if not self.config.get("debug", False):
            return
        log.debug("[categories] " + msg, *args)

    @staticmethod
    def compile_hide(pattern: str) -> Optional[re.Pattern]:
        if not pattern:
            return None
        try:
            return re.compile(pattern)
        except re.error as e:
            raise ConfigurationError(f"[categories] invalid 'hide' pattern '{pattern}': {e}")

    @staticmethod
    def load_labels_file(labels_file: Path) -> Dict[str, str]:
        """Load a YAML mapping of directory names to labels; {} if missing/empty."""
        if not labels_file.exists():
            log.warning(f"[categories] labels file not found at {labels_file}")
            return {}
        try:
            with open(labels_file, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"[categories] unable to parse labels file {labels_file}: {exc}")
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"[categories] labels file {labels_file} must hold a mapping")
        return {str(k): str(v) for k, v in data.items()}

    def links_for(self, page: Page, environ: Optional[Mapping[str, str]] = None) -> CategoryLinks:
        """Category links bound to `page` and the current request values."""
        return CategoryLinks(
            self.registry,
            path=PathContext.for_page(page.file.src_uri),
            base_url=self.base_url,
            request=RequestContext.from_environ(environ),
            hide=self.hide,
            labels=self.labels,
            site_host=self.site_host,
        )

    # -------------------------------
    # MkDocs events
    # -------------------------------

    def on_config(self, config: MkDocsConfig) -> MkDocsConfig:
        self.hide = self.compile_hide(self.config["hide"])

        labels: Dict[str, str] = {}
        if self.config["labels_file"]:
            config_file = config.get("config_file_path")
            config_dir = Path(config_file).resolve().parent if config_file else Path.cwd()
            labels.update(self.load_labels_file(config_dir / self.config["labels_file"]))
        labels.update({str(k): str(v) for k, v in self.config["labels"].items()})
        self.labels = labels

        site_url = config.get("site_url") or ""
        self.base_url = site_url.rstrip("/")
        self.site_host = site_host(site_url)
        self._dbg("base_url=%s hide=%s labels=%d", self.base_url, self.config["hide"], len(labels))
        return config

    def on_files(self, files: Files, *, config: MkDocsConfig) -> Files:
        self.registry = CategoryRegistry.from_files(files)
        if self.config["strict"]:
            self.registry.validate()
        log.info(f"[categories] found {len(self.registry)} categories")
        return files

    def on_page_context(self, context, *, page: Page, config: MkDocsConfig, nav):
        links = self.links_for(page)

        def category_tree(**options) -> Markup:
            return Markup(links.category_tree(**options))

        def breadcrumb(**options) -> Markup:
            return Markup(links.breadcrumb(**options))

        context["category_tree"] = category_tree
        context["breadcrumb"] = breadcrumb
        self._dbg("page %s in category '%s'", page.file.src_uri, links.path.cat_id)
        return context

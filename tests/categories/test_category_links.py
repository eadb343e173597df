"""
Tests for the category_tree and breadcrumb operations.
"""

import re

from bs4 import BeautifulSoup

from category_plugins.categories.category_links import CategoryLinks, RequestContext
from category_plugins.categories.registry import CategoryRegistry, PathContext


def counted_registry():
    return CategoryRegistry.from_mapping({
        "": {"depth": 0},
        "b7": {"depth": 1, "basename": "b7", "pretty": "B7", "num_entries": 3},
        "b7/s1": {"depth": 2, "basename": "s1", "pretty": "S1", "num_entries": 1},
    })


def site_registry():
    return CategoryRegistry.from_paths([
        "index.md",
        "b5/index.md",
        "b5/midnight.md",
        "b7/index.md",
        "b7/spacefall.md",
        "b7/cygnus_alpha.md",
        "b7/s1/pilot.md",
        "b7/s1/disc1/extras.md",
        "b7/s2/redemption.md",
        "drafts/todo.md",
    ])


class TestCategoryTree:
    """Tests for the full category tree."""

    def test_active_counted_item_with_nested_child(self):
        """Test: The current category is active and counted, its child is a linked counted item."""
        links = CategoryLinks(counted_registry(), PathContext(cat_id="b7", depth=1, type="category"))
        html = links.category_tree()
        assert html == (
            '<ul><li><a href="/">Home</a>\n'
            "<ul><li><em>B7</em> (3)\n"
            '<ul><li><a href="/b7/s1/">S1</a> (1)</li></ul></li></ul></li></ul>'
        )

        soup = BeautifulSoup(html, "html.parser")
        active = soup.find("em")
        assert active.get_text() == "B7"
        item = active.parent
        assert item.name == "li"
        assert item.find("a", href="/b7/") is None
        child_link = item.find("ul").find("a")
        assert child_link["href"] == "/b7/s1/"
        assert child_link.parent.get_text() == "S1 (1)"

    def test_hide_excludes_subtree_text(self):
        """Test: A hidden category never shows up in the output."""
        links = CategoryLinks(counted_registry(), PathContext())
        html = links.category_tree(hide="b7/s1")
        assert 'href="/b7/"' in html
        assert "s1" not in html
        assert "S1" not in html

    def test_site_hide_and_call_override(self):
        """Test: The site-wide hide rule applies unless the call replaces it."""
        links = CategoryLinks(site_registry(), PathContext(), hide="^drafts")
        assert "/drafts/" not in links.category_tree()
        assert "/drafts/" in links.category_tree(hide="")

    def test_site_labels_and_call_override(self):
        """Test: Call-site labels replace the site-wide ones."""
        links = CategoryLinks(site_registry(), PathContext(), labels={"b7": "Blake's 7"})
        assert "Blake's 7" in links.category_tree()
        html = links.category_tree(labels={"b5": "Babylon 5"})
        assert "Babylon 5" in html
        assert "Blake's 7" not in html
        assert ">B7<" in html

    def test_full_tree_ignores_depth_window(self):
        """Test: The site map always shows every level."""
        links = CategoryLinks(site_registry(), PathContext())
        html = links.category_tree(start_depth=2, end_depth=1)
        assert 'href="/b7/s1/disc1/"' in html
        assert "Home" in html

    def test_you_were_here_from_referrer(self):
        """Test: The category the visitor came from is flagged."""
        request = RequestContext(referrer="https://example.com/docs/b7/s1/pilot.html")
        links = CategoryLinks(site_registry(), PathContext(), base_url="https://example.com/docs/", request=request)
        soup = BeautifulSoup(links.category_tree(), "html.parser")
        flagged = [li for li in soup.find_all("li") if li.find(string=re.compile("you were here"), recursive=False)]
        assert len(flagged) == 1
        assert flagged[0].find("a")["href"] == "https://example.com/docs/b7/s1/"

    def test_referrer_host_fallback(self):
        """Test: Without a matching base URL the request host locates the category."""
        request = RequestContext(referrer="http://localhost:8000/b5/midnight/", host="localhost:8000")
        links = CategoryLinks(site_registry(), PathContext(), request=request)
        assert links.local_ref() == "b5/midnight"
        request = RequestContext(referrer="http://localhost:8000/b5/", host="localhost:8000")
        links = CategoryLinks(site_registry(), PathContext(), request=request)
        assert '<a href="/b5/">B5</a> (1) &lt;-- you were here' in links.category_tree()

    def test_single_active_item(self):
        """Test: At most one item is active, and only on a category index."""
        registry = site_registry()
        index_tree = CategoryLinks(registry, PathContext.for_page("b7/s1/index.md")).category_tree()
        entry_tree = CategoryLinks(registry, PathContext.for_page("b7/s1/pilot.md")).category_tree()
        assert index_tree.count("<em>") == 1
        assert "<em>S1</em>" in index_tree
        assert entry_tree.count("<em>") == 0

    def test_idempotent(self):
        """Test: Rendering twice gives identical output."""
        links = CategoryLinks(site_registry(), PathContext.for_page("b7/index.md"), request=RequestContext(referrer="/b5/", host=""))
        assert links.category_tree() == links.category_tree()
        assert links.breadcrumb() == links.breadcrumb()


class TestBreadcrumb:
    """Tests for the breadcrumb trail."""

    def test_root_current_and_preview_child(self):
        """Test: Root, the active category and its child, the child level using last_subtree."""
        links = CategoryLinks(counted_registry(), PathContext(cat_id="b7", depth=1, type="category"))
        html = links.breadcrumb(last_subtree_head='<ul class="last">', last_subtree_foot="</ul>")
        assert html == (
            '<ul><li><a href="/">Home</a>\n'
            "<ul><li><em>B7</em>\n"
            '<ul class="last"><li><a href="/b7/s1/">S1</a></li></ul></li></ul></li></ul>'
        )
        soup = BeautifulSoup(html, "html.parser")
        assert len(soup.find_all("ul")) == 3
        assert soup.find("ul", class_="last").find("a")["href"] == "/b7/s1/"

    def test_siblings_and_grandchildren_left_out(self):
        """Test: Only the ancestor chain and direct children appear."""
        links = CategoryLinks(site_registry(), PathContext.for_page("b7/index.md"))
        html = links.breadcrumb()
        assert 'href="/b7/s1/"' in html
        assert 'href="/b7/s2/"' in html
        assert "/b5/" not in html
        assert "/drafts/" not in html
        assert "disc1" not in html

    def test_end_depth_at_current_level(self):
        """Test: end_depth equal to the current depth drops the children."""
        links = CategoryLinks(site_registry(), PathContext.for_page("b7/index.md"))
        html = links.breadcrumb(end_depth=1, last_subtree_head="<ol>", last_subtree_foot="</ol>")
        assert html == '<ul><li><a href="/">Home</a>\n<ol><li><em>B7</em></li></ol></li></ul>'

    def test_start_depth_drops_home(self):
        """Test: start_depth skips the levels above it."""
        links = CategoryLinks(site_registry(), PathContext.for_page("b7/s1/pilot.md"))
        html = links.breadcrumb(start_depth=1)
        assert "Home" not in html
        assert html.startswith('<ul><li><a href="/b7/">B7</a>')
        assert 'href="/b7/s1/"' in html
        assert 'href="/b7/s1/disc1/"' in html

    def test_breadcrumb_on_home_page(self):
        """Test: On the home page the trail is the root and the top-level categories."""
        links = CategoryLinks(site_registry(), PathContext.for_page("index.md"))
        soup = BeautifulSoup(links.breadcrumb(), "html.parser")
        assert soup.find("em").get_text() == "Home"
        top_level = [a["href"] for a in soup.find_all("a")]
        assert top_level == ["/b5/", "/b7/", "/drafts/"]

    def test_no_counts_by_default(self):
        """Test: The breadcrumb leaves entry counts out unless asked."""
        links = CategoryLinks(site_registry(), PathContext.for_page("b7/index.md"))
        assert "(2)" not in links.breadcrumb()
        assert "<em>B7</em> (2)" in links.breadcrumb(use_count=True)

    def test_custom_markup(self):
        """Test: The trail can be rendered as a flat row of links."""
        links = CategoryLinks(site_registry(), PathContext.for_page("b7/s1/pilot.md"))
        html = links.breadcrumb(
            tree_head='<nav class="crumbs">', tree_foot="</nav>",
            subtree_head="", subtree_foot="",
            last_subtree_head="", last_subtree_foot="",
            pre_item="", post_item="",
            item_sep=" ", tree_sep=" &raquo; ",
            end_depth=2,
        )
        assert html == (
            '<nav class="crumbs"><a href="/">Home</a> &raquo; '
            '<a href="/b7/">B7</a> &raquo; <a href="/b7/s1/">S1</a></nav>'
        )

"""Unit tests for layout cascade resolution.

Each page kind maps to a fixed table of candidate names. These tests check
the regular-page walk over the content type path, placeholder substitution
for list kinds, layout overrides, and the three-band ordering applied when a
theme is configured.
"""

from __future__ import annotations

from folio.layouts import (
    HTML_FORMAT,
    RSS_FORMAT,
    LayoutDescriptor,
    LayoutHandler,
    _theme_bands,
)


def test_regular_page_walks_type_path() -> None:
    """A nested type path yields most specific candidates first."""
    handler = LayoutHandler(has_theme=False)
    descriptor = LayoutDescriptor(type="post/sub", section="post", kind="page")
    assert handler.for_(descriptor, "", HTML_FORMAT) == [
        "post/sub/single.html.html",
        "post/sub/single.html",
        "post/single.html.html",
        "post/single.html",
        "_default/single.html.html",
        "_default/single.html",
    ]


def test_type_path_is_lower_cased() -> None:
    """Candidate directories are lower-case regardless of the content type."""
    handler = LayoutHandler(has_theme=False)
    descriptor = LayoutDescriptor(type="Post", kind="page")
    assert handler.for_(descriptor, "", HTML_FORMAT)[0] == "post/single.html.html"


def test_override_wins_over_declared_layout() -> None:
    """An explicit override replaces the layout declared by the content."""
    handler = LayoutHandler(has_theme=False)
    descriptor = LayoutDescriptor(type="post", kind="page", layout="wide")
    declared = handler.for_(descriptor, "", HTML_FORMAT)
    overridden = handler.for_(descriptor, "gallery", HTML_FORMAT)
    assert declared[1] == "post/wide.html"
    assert overridden[1] == "post/gallery.html"
    assert "post/wide.html" not in overridden


def test_section_table_substitutes_placeholders() -> None:
    """Section candidates carry the section name, format name, and suffix."""
    handler = LayoutHandler(has_theme=False)
    descriptor = LayoutDescriptor(type="blog", section="blog", kind="section")
    candidates = handler.for_(descriptor, "", RSS_FORMAT)
    assert candidates[:4] == [
        "section/blog.rss.xml",
        "section/blog.xml",
        "blog/list.rss.xml",
        "blog/list.xml",
    ]
    assert "_default/list.xml" in candidates


def test_section_named_like_a_placeholder_is_kept() -> None:
    """Substitution is a single pass, so section text is never re-expanded."""
    handler = LayoutHandler(has_theme=False)
    descriptor = LayoutDescriptor(section="NAME", kind="section")
    assert handler.for_(descriptor, "", HTML_FORMAT)[1] == "section/NAME.html"


def test_home_and_taxonomy_tables() -> None:
    """Home and taxonomy kinds start from their dedicated templates."""
    handler = LayoutHandler(has_theme=False)
    home = handler.for_(LayoutDescriptor(kind="home"), "", HTML_FORMAT)
    assert home[:2] == ["index.html.html", "index.html"]
    taxonomy = handler.for_(
        LayoutDescriptor(section="tag", kind="taxonomy"), "", HTML_FORMAT
    )
    assert taxonomy[:2] == ["taxonomy/tag.html.html", "taxonomy/tag.html"]
    terms = handler.for_(
        LayoutDescriptor(section="tag", kind="taxonomyTerm"), "", HTML_FORMAT
    )
    assert terms[1] == "taxonomy/tag.terms.html"


def test_unknown_kind_has_no_candidates() -> None:
    """Kinds without a table resolve to an empty cascade."""
    handler = LayoutHandler(has_theme=False)
    assert handler.for_(LayoutDescriptor(kind="sitemap"), "", HTML_FORMAT) == []


def test_theme_bands_project_before_theme_before_internal() -> None:
    """Themed copies follow project names; internal names always come last."""
    ordered = _theme_bands(["a.html", "_internal/x.html", "b.html"])
    assert ordered == [
        "a.html",
        "b.html",
        "theme/a.html",
        "theme/b.html",
        "_internal/x.html",
    ]


def test_theme_handler_interleaves_regular_page_cascade() -> None:
    """With a theme, every project candidate precedes every themed one."""
    handler = LayoutHandler(has_theme=True)
    descriptor = LayoutDescriptor(type="post", kind="page")
    candidates = handler.for_(descriptor, "", HTML_FORMAT)
    own = [name for name in candidates if not name.startswith("theme/")]
    themed = [name for name in candidates if name.startswith("theme/")]
    assert candidates == own + themed
    assert themed == ["theme/" + name for name in own]


def test_cascade_is_deterministic() -> None:
    """Repeated calls return identical lists."""
    handler = LayoutHandler(has_theme=True)
    descriptor = LayoutDescriptor(type="a/b/c", kind="page", layout="x")
    assert handler.for_(descriptor, "", HTML_FORMAT) == handler.for_(
        descriptor, "", HTML_FORMAT
    )

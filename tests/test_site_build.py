"""End-to-end tests for the build orchestrator.

Sites are built entirely in memory: content and templates come from mapping
sources and output lands in a :class:`~folio.publish.MemorySink`. Rendered
HTML is inspected with BeautifulSoup.
"""

from __future__ import annotations

import typing as typ

import pytest
from bs4 import BeautifulSoup

from folio._constants import XML_HEADER
from folio.errors import (
    AmbiguousReferenceError,
    BuildPhaseError,
    NoContentFoundError,
    RenderExecutionError,
    TemplateMissingError,
)
from folio.site import BuildPhase

from conftest import BASIC_TEMPLATES

if typ.TYPE_CHECKING:
    from conftest import SiteFactory

BLOG: dict[str, str | bytes] = {
    "_index.md": "---\ntitle: Home\n---\nWelcome",
    "blog/_index.md": "---\ntitle: Blog\n---\n",
    "blog/first.md": (
        "---\ntitle: First\ndate: 2024-01-01\ntags: [Python, Static Sites]\n---\n"
        "Read [the second post](second.md) and ![diagram](/img/a.png).\n"
    ),
    "blog/second.md": (
        "---\ntitle: Second\ndate: 2024-02-01\ntags: [python]\nSubTitle: Two\n---\n"
        'Back to {{< ref "first.md" >}}.\n'
    ),
    "blog/draft.md": "---\ntitle: Draft\ndraft: true\n---\nUnfinished\n",
    "blog/trip/index.md": "---\ntitle: Trip\ndate: 2023-05-05\n---\n![cover](cover.png)\n",
    "blog/trip/cover.png": b"\x89PNG fake",
}


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def test_build_writes_every_unit(site_factory: SiteFactory) -> None:
    """Pages, lists, taxonomy terms, and bundle resources are published."""
    site, sink = site_factory(BLOG)
    stats = site.build()
    assert set(sink.files) == {
        "index.html",
        "blog/index.html",
        "blog/first/index.html",
        "blog/second/index.html",
        "blog/trip/index.html",
        "blog/trip/cover.png",
        "tags/python/index.html",
        "tags/static-sites/index.html",
    }
    assert sink.files["blog/trip/cover.png"] == b"\x89PNG fake"
    assert stats.pages == 3
    assert stats.resources == 1
    assert site.phase is BuildPhase.WRITE


def test_pages_are_sorted_and_linked(site_factory: SiteFactory) -> None:
    """Regular pages are ordered newest first with prev/next neighbours."""
    site, sink = site_factory(BLOG)
    site.build()
    titles = [li.text for li in _soup(sink.text("blog/index.html")).find_all("li")]
    assert titles == ["Second", "First", "Trip"]
    second, first, trip = site.collections.regular_pages
    assert second.next is first
    assert first.prev is second
    assert trip.next is None


def test_links_and_references_resolve(site_factory: SiteFactory) -> None:
    """Content links and ``ref`` shortcodes point at published permalinks."""
    site, sink = site_factory(BLOG)
    site.build()
    first = _soup(sink.text("blog/first/index.html"))
    assert first.find("a")["href"] == "https://example.org/blog/second/"
    assert first.find("img")["src"] == "https://example.org/img/a.png"
    second = _soup(sink.text("blog/second/index.html"))
    assert "https://example.org/blog/first/" in second.find("article").text


def test_base_path_is_not_duplicated(site_factory: SiteFactory) -> None:
    """Links that already carry the base path only gain the origin."""
    site, sink = site_factory(BLOG, base_url="https://example.org/docs/")
    site.build()
    first = _soup(sink.text("blog/first/index.html"))
    assert first.find("a")["href"] == "https://example.org/docs/blog/second/"
    assert first.find("img")["src"] == "https://example.org/docs/img/a.png"


def test_taxonomy_terms_group_pages(site_factory: SiteFactory) -> None:
    """Terms are URL-normalised and collect every tagged page."""
    site, sink = site_factory(BLOG)
    site.build()
    python = _soup(sink.text("tags/python/index.html"))
    assert [li.text for li in python.find_all("li")] == ["Second", "First"]
    assert sorted(site.taxonomies["en"]["tags"]) == ["python", "static-sites"]


def test_parameters_are_case_insensitive_in_templates(site_factory: SiteFactory) -> None:
    """Mixed-case lookups in templates match lower-cased front matter."""
    templates = {**BASIC_TEMPLATES, "blog/single.html": "<p>{{ Page.Params.SubTitle }}</p>"}
    site, sink = site_factory(BLOG, templates)
    site.build()
    assert _soup(sink.text("blog/second/index.html")).p.text == "Two"


def test_drafts_are_opt_in(site_factory: SiteFactory) -> None:
    """Draft pages are only built when asked for."""
    site, sink = site_factory(BLOG, build_drafts=True)
    site.build()
    assert "blog/draft/index.html" in sink.files


def test_ugly_urls(site_factory: SiteFactory) -> None:
    """Regular pages become ``.html`` files when pretty URLs are off."""
    site, sink = site_factory(BLOG, ugly_urls=True)
    site.build()
    assert "blog/first.html" in sink.files
    assert "tags/python.html" in sink.files
    first = site.collections.get_page_new(None, "/blog/first.md")
    assert first.rel_permalink == "/blog/first.html"


def test_feeds_need_a_feed_template(site_factory: SiteFactory) -> None:
    """Feeds are emitted beside list pages only when ``rss.xml`` exists."""
    templates = {
        **BASIC_TEMPLATES,
        "rss.xml": (
            "<rss><title>{{ Title }}</title>"
            "{% for p in Pages %}<link>{{ p.Permalink }}</link>{% endfor %}</rss>"
        ),
    }
    site, sink = site_factory(BLOG, templates)
    site.build()
    feed = sink.text("blog/index.xml")
    assert feed.startswith(XML_HEADER)
    assert "<link>https://example.org/blog/second/</link>" in feed
    assert "index.xml" in sink.files
    assert "tags/python/index.xml" in sink.files

    plain_site, plain_sink = site_factory(BLOG)
    plain_site.build()
    assert not [path for path in plain_sink.files if path.endswith(".xml")]


def test_template_shortcodes(site_factory: SiteFactory) -> None:
    """Shortcode templates receive named params and the inner content."""
    templates = {
        **BASIC_TEMPLATES,
        "shortcodes/note.html": '<aside class="{{ Params.Kind }}">{{ Inner }}</aside>',
    }
    content = {"notes/a.md": "{{< note Kind=warning >}}Careful{{< /note >}}\n"}
    site, sink = site_factory(content, templates)
    site.build()
    aside = _soup(sink.text("notes/a/index.html")).find("aside")
    assert aside["class"] == ["warning"]
    assert aside.text == "Careful"
    assert site.collections.find_pages_by_shortcode("note")


def test_multilingual_build(site_factory: SiteFactory) -> None:
    """Each language renders under its own prefix with its own home page."""
    content = {
        "blog/post.md": "---\ntitle: Post\n---\nHello",
        "blog/post.fr.md": "---\ntitle: Billet\n---\nBonjour",
    }
    site, sink = site_factory(
        content,
        languages={"en": {"weight": 1}, "fr": {"weight": 2, "title": "Exemple"}},
    )
    site.build()
    assert {"blog/post/index.html", "fr/blog/post/index.html"} <= set(sink.files)
    assert _soup(sink.text("fr/index.html")).h1.text == "Exemple"
    french = _soup(sink.text("fr/blog/post/index.html"))
    assert french.h1.text == "Billet"


def test_no_content_fails_before_rendering(site_factory: SiteFactory) -> None:
    """An empty site stops in metadata; no template is executed."""
    templates = {"index.html": "{{ Params.Missing.Deeper }}"}
    site, sink = site_factory({"static/logo.svg": "<svg/>"}, templates)
    with pytest.raises(NoContentFoundError, match="no pages found"):
        site.build()
    assert sink.files == {}
    assert site.phase < BuildPhase.SHORTCODE_EXPAND


def test_only_drafts_counts_as_no_content(site_factory: SiteFactory) -> None:
    """Drafts excluded from the build leave nothing to render."""
    site, _ = site_factory({"a.md": "---\ndraft: true\n---\n"})
    with pytest.raises(NoContentFoundError):
        site.build()


def test_missing_template_lists_candidates(site_factory: SiteFactory) -> None:
    """A page without a matching template fails with the cascade tried."""
    templates = {"index.html": "home", "_default/list.html": "list"}
    site, _ = site_factory(BLOG, templates)
    with pytest.raises(TemplateMissingError) as excinfo:
        site.build()
    assert "_default/single.html" in excinfo.value.candidates
    assert excinfo.value.unit.startswith("/blog/")


def test_render_errors_abort_the_build(site_factory: SiteFactory) -> None:
    """A failing template stops the build with the unit identified."""
    templates = {**BASIC_TEMPLATES, "_default/single.html": "{{ Params.A.B }}"}
    site, sink = site_factory(BLOG, templates)
    with pytest.raises(RenderExecutionError) as excinfo:
        site.build()
    assert excinfo.value.template == "_default/single.html"
    assert sink.files == {}


def test_ambiguous_reference_is_reported(site_factory: SiteFactory) -> None:
    """A shortcode ref matching two pages fails the build."""
    content = {
        "blog/post.md": "---\ntitle: A\n---\n",
        "docs/post.md": "---\ntitle: B\n---\n",
        "about.md": '{{< ref "post.md" >}}',
    }
    site, _ = site_factory(content)
    with pytest.raises(AmbiguousReferenceError):
        site.build()


def test_phases_only_move_forward(site_factory: SiteFactory) -> None:
    """Re-entering an earlier phase is refused."""
    site, _ = site_factory(BLOG)
    site.process()
    with pytest.raises(BuildPhaseError):
        site.initialize()
    assert set(site.timer.times()) >= {"initialize", "build_metadata"}


def test_reference_indexes_are_built_before_rendering(site_factory: SiteFactory) -> None:
    """Metadata builds every language's index and rendering reuses it."""
    content = {
        "blog/post.md": "---\ntitle: Post\n---\nHello",
        "blog/post.fr.md": "---\ntitle: Billet\n---\nBonjour",
    }
    site, _ = site_factory(content, languages={"en": {"weight": 1}, "fr": {"weight": 2}})
    site.process()
    built = {}
    for lang in ("en", "fr"):
        site.collections.activate_language(lang)
        built[lang] = site.collections.page_index
    site.render()
    for lang, index in built.items():
        site.collections.activate_language(lang)
        assert site.collections.page_index is index, f"{lang} index was rebuilt"

"""Shared fixtures and factories for the folio test suite.

Pages are built from in-memory :class:`~folio.content.source.SourceFile`
records and sites from in-memory content and template sources, so no test
needs a temporary directory tree unless it exercises the filesystem adapters.
"""

from __future__ import annotations

import typing as typ

import pytest

from folio.config import build_site_config
from folio.content.source import MemoryContentSource, SourceFile
from folio.pages import Page, PageCollections, PageKind
from folio.publish import MemorySink
from folio.site import Site
from folio.tpl.registry import MemoryTemplateSource

if typ.TYPE_CHECKING:
    import collections.abc as cabc

BASIC_TEMPLATES: dict[str, str] = {
    "_default/single.html": "<h1>{{ Title }}</h1><article>{{ Content }}</article>",
    "_default/list.html": (
        "<h1>{{ Title }}</h1><ul>"
        "{% for p in Pages %}<li>{{ p.Title }}</li>{% endfor %}</ul>"
    ),
    "index.html": (
        "<h1>{{ Site.Title }}</h1><ul>"
        "{% for p in Pages %}<li>{{ p.Title }}</li>{% endfor %}</ul>"
    ),
}


def make_page(
    rel_path: str,
    *,
    lang: str = "en",
    kind: PageKind | None = None,
    **fields: typ.Any,
) -> Page:
    """Return a page backed by an empty in-memory source file."""
    source = SourceFile(rel_path, lang, b"", filename=rel_path)
    if kind is None:
        kind = PageKind.PAGE
        if source.is_branch_index:
            kind = PageKind.SECTION if source.sections else PageKind.HOME
    return Page(kind=kind, lang=lang, source=source, sections=source.sections, **fields)


def make_collections(*pages: Page, language: str = "en") -> PageCollections:
    """Return refreshed collections holding ``pages``."""
    collections = PageCollections(pages, language=language)
    collections.refresh_page_caches()
    return collections


PageFactory = typ.Callable[..., Page]
CollectionsFactory = typ.Callable[..., PageCollections]
SiteFactory = typ.Callable[..., tuple[Site, MemorySink]]


@pytest.fixture
def page_factory() -> PageFactory:
    """Return :func:`make_page` for tests that build pages by hand."""
    return make_page


@pytest.fixture
def collections_factory() -> CollectionsFactory:
    """Return :func:`make_collections` for tests that query page graphs."""
    return make_collections


@pytest.fixture
def site_factory() -> SiteFactory:
    """Build sites from in-memory content and templates.

    Returns
    -------
    SiteFactory
        Callable taking ``content`` and ``templates`` mappings plus config
        overrides, returning the site and the sink it writes to.
    """

    def _factory(
        content: cabc.Mapping[str, str | bytes],
        templates: cabc.Mapping[str, str] | None = None,
        **config: typ.Any,
    ) -> tuple[Site, MemorySink]:
        raw = {"base_url": "https://example.org/", "title": "Example", **config}
        site_config = build_site_config(raw)
        sink = MemorySink()
        site = Site(
            site_config,
            content_source=MemoryContentSource(
                content,
                languages=site_config.language_codes(),
                default_language=site_config.default_language,
            ),
            template_source=MemoryTemplateSource(
                BASIC_TEMPLATES if templates is None else templates
            ),
            sink=sink,
        )
        return site, sink

    return _factory

"""Template-facing views of pages and sites.

Templates address data the way content authors expect (``Page.Title``,
``Site.Params.author``). :class:`PageContext` and :class:`SiteContext` are
read-only mappings exposing those names over the underlying
:class:`~folio.pages.Page` and :class:`SiteInfo`; Jinja falls back to item
lookup when attribute lookup fails, so ``Page.Title`` and ``Page["Title"]``
both work. Neighbouring pages are wrapped lazily on access.
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import typing as typ

from markupsafe import Markup

if typ.TYPE_CHECKING:
    import datetime as dt

    from folio.config import LanguageConfig
    from folio.pages import Page


@dc.dataclass(slots=True)
class SiteInfo:
    """Per-language site metadata gathered while building metadata."""

    title: str
    base_url: str
    lang: str
    params: dict[str, typ.Any]
    language: LanguageConfig
    taxonomies: dict[str, dict[str, list[Page]]] = dc.field(default_factory=dict)
    sections: dict[str, list[Page]] = dc.field(default_factory=dict)
    pages: list[Page] = dc.field(default_factory=list)
    regular_pages: list[Page] = dc.field(default_factory=list)
    home: Page | None = None
    last_change: dt.datetime | None = None


class SiteContext(cabc.Mapping[str, typ.Any]):
    """Read-only ``Site`` view for templates."""

    __slots__ = ("info",)

    def __init__(self, info: SiteInfo) -> None:
        self.info = info

    def _wrap(self, pages: cabc.Iterable[Page]) -> list[PageContext]:
        return [PageContext(page, self) for page in pages]

    def _fields(self) -> dict[str, cabc.Callable[[], typ.Any]]:
        info = self.info
        return {
            "Title": lambda: info.title,
            "BaseURL": lambda: info.base_url,
            "Params": lambda: info.params,
            "Language": lambda: {
                "Lang": info.lang,
                "Title": info.language.title or info.title,
                "Weight": info.language.weight,
                "Params": {**info.params, **info.language.params},
            },
            "Taxonomies": lambda: {
                plural: {term: self._wrap(pages) for term, pages in terms.items()}
                for plural, terms in info.taxonomies.items()
            },
            "Sections": lambda: {
                name: self._wrap(pages) for name, pages in info.sections.items()
            },
            "Pages": lambda: self._wrap(info.pages),
            "RegularPages": lambda: self._wrap(info.regular_pages),
            "Home": lambda: PageContext(info.home, self) if info.home else None,
            "LastChange": lambda: info.last_change,
        }

    def __getitem__(self, key: str) -> typ.Any:
        return self._fields()[key]()

    def __iter__(self) -> cabc.Iterator[str]:
        return iter(self._fields())

    def __len__(self) -> int:
        return len(self._fields())


class PageContext(cabc.Mapping[str, typ.Any]):
    """Read-only ``Page`` view for templates."""

    __slots__ = ("page", "site")

    def __init__(self, page: Page, site: SiteContext) -> None:
        self.page = page
        self.site = site

    def __eq__(self, other: object) -> bool:
        return isinstance(other, PageContext) and other.page is self.page

    def __hash__(self) -> int:
        return id(self.page)

    def __repr__(self) -> str:
        return f"PageContext({self.page!r})"

    def _neighbour(self, page: Page | None) -> PageContext | None:
        return PageContext(page, self.site) if page is not None else None

    def _fields(self) -> dict[str, cabc.Callable[[], typ.Any]]:
        page = self.page
        return {
            "Title": lambda: page.title,
            "Content": lambda: Markup(page.content),
            "Params": lambda: page.params,
            "Site": lambda: self.site,
            "Date": lambda: page.date,
            "Draft": lambda: page.draft,
            "Description": lambda: page.description,
            "Weight": lambda: page.weight,
            "Kind": lambda: page.kind.value,
            "Type": lambda: page.type,
            "Section": lambda: page.section,
            "Lang": lambda: page.lang,
            "Permalink": lambda: page.permalink,
            "RelPermalink": lambda: page.rel_permalink,
            "RSSLink": lambda: page.rss_link,
            "Next": lambda: self._neighbour(page.next),
            "Prev": lambda: self._neighbour(page.prev),
            "Pages": lambda: [PageContext(child, self.site) for child in page.pages],
            "Data": lambda: {
                key: (
                    [PageContext(child, self.site) for child in value]
                    if isinstance(value, list)
                    else value
                )
                for key, value in page.data.items()
            },
            "Resources": lambda: [
                {"Name": res.name, "RelPermalink": res.rel_permalink}
                for res in page.resources
            ],
        }

    def __getitem__(self, key: str) -> typ.Any:
        return self._fields()[key]()

    def __iter__(self) -> cabc.Iterator[str]:
        return iter(self._fields())

    def __len__(self) -> int:
        return len(self._fields())


def template_context(page: Page, site: SiteContext) -> dict[str, typ.Any]:
    """Return the top-level variables a page's template is rendered with."""
    view = PageContext(page, site)
    context = dict(view)
    context["Page"] = view
    return context


__all__ = ["PageContext", "SiteContext", "SiteInfo", "template_context"]

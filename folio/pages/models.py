"""Page model shared by the page graph, the orchestrator, and templates."""

from __future__ import annotations

import dataclasses as dc
import datetime as dt
import enum
import typing as typ

from folio.layouts import LayoutDescriptor

if typ.TYPE_CHECKING:
    from folio.content.source import SourceFile


class PageKind(enum.StrEnum):
    """Coarse classification of a content unit."""

    HOME = "home"
    SECTION = "section"
    TAXONOMY = "taxonomy"
    TAXONOMY_TERM = "taxonomyTerm"
    PAGE = "page"

    @property
    def is_index(self) -> bool:
        """Return ``True`` for list-like kinds (home, section, taxonomies)."""
        return self is not PageKind.PAGE


@dc.dataclass(frozen=True, slots=True)
class Resource:
    """A non-content file published alongside the page that owns it."""

    name: str
    rel_permalink: str
    source: SourceFile
    out_file: str = ""


@dc.dataclass(eq=False, slots=True)
class Page:
    """A content unit: one source file in one language, or a list node.

    Pages compare by identity. Two pages materialized from the same file are
    distinct objects, which is what lets the reference index tell a repeated
    insert apart from a conflicting one.
    """

    kind: PageKind
    lang: str
    source: SourceFile | None = None
    sections: tuple[str, ...] = ()
    title: str = ""
    date: dt.datetime | None = None
    draft: bool = False
    headless: bool = False
    weight: int = 0
    slug: str = ""
    url: str = ""
    layout: str = ""
    content_type: str = ""
    description: str = ""
    params: dict[str, typ.Any] = dc.field(default_factory=dict)
    raw_content: str = ""
    content: str = ""
    # Permalink prefix ahead of the language-independent path.
    language_prefix: str = ""
    out_file: str = ""
    rel_permalink: str = ""
    permalink: str = ""
    rss_link: str = ""
    resources: list[Resource] = dc.field(default_factory=list)
    pages: list[Page] = dc.field(default_factory=list)
    data: dict[str, typ.Any] = dc.field(default_factory=dict)
    shortcodes: set[str] = dc.field(default_factory=set)
    prev: Page | None = None
    next: Page | None = None

    def __repr__(self) -> str:
        return f"<Page {self.kind} {self.lang} {self.ref_name!r}>"

    @property
    def filename(self) -> str:
        """Return the backing file's diagnostic name, or ``""``."""
        return self.source.filename if self.source else ""

    @property
    def logical_name(self) -> str:
        """Return the backing file name, e.g. ``post.fr.md``."""
        return self.source.logical_name if self.source else ""

    @property
    def translation_base_name(self) -> str:
        """Return the backing file name without extension and language."""
        return self.source.translation_base_name if self.source else ""

    @property
    def absolute_source_ref(self) -> str:
        """Return the canonical content-root path, e.g. ``/blog/post.md``."""
        if self.source is None:
            return ""
        return "/" + self.source.rel_path

    @property
    def ref_name(self) -> str:
        """Return a human-readable identity for error messages."""
        return self.absolute_source_ref or "/" + "/".join(self.sections)

    @property
    def section(self) -> str:
        """Return the top-level section, or ``""`` for root content."""
        return self.sections[0] if self.sections else ""

    @property
    def type(self) -> str:
        """Return the content type: explicit, else the section, else ``page``."""
        return self.content_type or self.section or "page"

    @property
    def layout_descriptor(self) -> LayoutDescriptor:
        """Return the read-only descriptor used by layout resolution."""
        if self.kind in (PageKind.TAXONOMY, PageKind.TAXONOMY_TERM):
            section = self.data.get("singular", self.section)
        else:
            section = self.section
        return LayoutDescriptor(
            type=self.type, section=section, kind=self.kind.value, layout=self.layout
        )

    def sort_key(self) -> tuple[typ.Any, ...]:
        """Return the default ordering: weight, newest first, title, path."""
        timestamp = -self.date.timestamp() if self.date else float("inf")
        return (
            self.weight == 0,
            self.weight,
            timestamp,
            self.title.lower(),
            self.ref_name,
        )


def sort_pages(pages: typ.Iterable[Page]) -> list[Page]:
    """Return ``pages`` in the default deterministic order."""
    return sorted(pages, key=Page.sort_key)


__all__ = ["Page", "PageKind", "Resource", "sort_pages"]

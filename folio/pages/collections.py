"""Authoritative page collections and the reference index built over them.

:class:`PageCollections` owns the raw sequence of every materialized page and
derives the per-language, per-kind and headless views from it. Views are
recomputed by :meth:`PageCollections.refresh_page_caches`. Each language has
its own reference index, built lazily from the raw sequence on first lookup
in that language and kept across language switches. Every add, remove,
replace, or refresh drops all of them, so the next lookup rebuilds in full.

Example
-------
>>> from folio.content.source import SourceFile
>>> from folio.pages.models import Page, PageKind
>>> page = Page(kind=PageKind.PAGE, lang="en",
...             source=SourceFile("blog/post.md", "en", b""), sections=("blog",))
>>> pages = PageCollections([page], language="en")
>>> pages.refresh_page_caches()
>>> pages.get_page_new(None, "post") is page
True
"""

from __future__ import annotations

import logging
import posixpath
import typing as typ

from folio._constants import INDEX_MARKER
from folio.errors import AmbiguousReferenceError, UnresolvedReferenceError

from .models import Page, PageKind
from .refindex import LazyIndex, ReferenceIndex
from .resources import ResourceCache

if typ.TYPE_CHECKING:
    import collections.abc as cabc

logger = logging.getLogger(__name__)


def join_path(*elements: str) -> str:
    """Join slash paths, dropping empty elements and cleaning the result."""
    joined = "/".join(element for element in elements if element)
    if not joined:
        return ""
    cleaned = posixpath.normpath(joined)
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


class PageCollections:
    """Page collections for a site, across all of its languages.

    Attributes
    ----------
    raw_all_pages : list[Page]
        Every page of every kind and language, including headless bundles.
        All other views are derived from this sequence.
    all_pages : list[Page]
        Pages of all languages that produce output.
    pages : list[Page]
        Pages in the active language.
    index_pages : list[Page]
        Home, section and taxonomy pages in the active language.
    regular_pages : list[Page]
        Regular pages in the active language.
    all_regular_pages : list[Page]
        Regular pages in all languages.
    headless_pages : list[Page]
        Pages that are addressable but never rendered on their own.
    """

    def __init__(
        self,
        pages: cabc.Iterable[Page] = (),
        *,
        language: str = "en",
        resource_cache: ResourceCache | None = None,
    ) -> None:
        self.raw_all_pages: list[Page] = list(pages)
        self.language = language
        self.resource_cache = resource_cache or ResourceCache()
        self.all_pages: list[Page] = []
        self.pages: list[Page] = []
        self.index_pages: list[Page] = []
        self.regular_pages: list[Page] = []
        self.all_regular_pages: list[Page] = []
        self.headless_pages: list[Page] = []
        self._page_indexes: dict[str, LazyIndex] = {}

    def refresh_page_caches(self) -> None:
        """Recompute every derived view and reset the reference indexes."""
        self._refresh_views()
        self._invalidate_indexes()

    def _refresh_views(self) -> None:
        self.all_pages = [page for page in self.raw_all_pages if not page.headless]
        self.headless_pages = [page for page in self.raw_all_pages if page.headless]
        self.pages = [page for page in self.all_pages if page.lang == self.language]
        self.index_pages = self.find_pages_by_kind_not_in(PageKind.PAGE, self.pages)
        self.regular_pages = self.find_pages_by_kind_in(PageKind.PAGE, self.pages)
        self.all_regular_pages = self.find_pages_by_kind_in(
            PageKind.PAGE, self.all_pages
        )

    def activate_language(self, language: str) -> None:
        """Switch the active language and recompute the derived views.

        Each language keeps its own reference index; switching does not
        drop an index that is already built.
        """
        self.language = language
        self._refresh_views()

    def _invalidate_indexes(self) -> None:
        for lazy in self._page_indexes.values():
            lazy.invalidate()

    def sort(self) -> None:
        """Order the raw sequence by the default page ordering."""
        self.raw_all_pages.sort(key=Page.sort_key)

    @property
    def page_index(self) -> ReferenceIndex:
        """Return the reference index, building it on first access."""
        language = self.language
        lazy = self._page_indexes.get(language)
        if lazy is None:
            lazy = LazyIndex(lambda: self._build_index(language))
            self._page_indexes[language] = lazy
        return lazy.get()

    def _build_index(self, language: str) -> ReferenceIndex:
        index = ReferenceIndex()

        def add(ref: str, page: Page) -> None:
            if ref:
                index.add(ref, page)

        # Built from the raw sequence so pages added since the last refresh
        # are visible. Pages from all languages go in, so refs can cross
        # languages.
        for page in self.raw_all_pages:
            if page.kind.is_index and not page.headless:
                continue
            source_ref = page.absolute_source_ref
            add(join_path("/" + page.lang, source_ref), page)

            if page.lang != language:
                continue
            add(source_ref, page)
            add(page.logical_name, page)

            translation_base_name = page.translation_base_name
            directory = posixpath.dirname(source_ref).rstrip("/")
            if translation_base_name == INDEX_MARKER:
                add(directory, page)
                add(posixpath.basename(directory), page)
            else:
                add(translation_base_name, page)

            add(join_path(directory, translation_base_name), page)

        for page in self.raw_all_pages:
            if not page.kind.is_index or page.headless or page.lang != language:
                continue
            add(page.absolute_source_ref, page)
            add("/" + join_path(*page.sections), page)

        logger.debug(
            "built reference index for %s with %d keys", language, len(index)
        )
        return index

    def get_from_cache(self, ref: str) -> Page | None:
        """Return the page indexed under ``ref``, or ``None``.

        Raises
        ------
        AmbiguousReferenceError
            If more than one page is indexed under ``ref``.
        """
        return self.page_index.get(ref)

    def get_page_new(self, context: Page | None, ref: str) -> Page:
        """Resolve a path-like reference to exactly one page.

        Lookups are tried in order: ``ref`` itself when absolute, ``ref``
        joined to the context page's sections, ``ref`` with a leading slash
        added, and finally ``ref`` without its leading slash. The first lookup
        that finds a single page wins.

        Parameters
        ----------
        context : Page or None
            Page the reference appears in; enables relative lookups.
        ref : str
            Slash-separated reference, e.g. ``"/blog/post.md"`` or ``"post"``.

        Returns
        -------
        Page
            The resolved page.

        Raises
        ------
        AmbiguousReferenceError
            If no lookup found a single page and one of them was ambiguous.
        UnresolvedReferenceError
            If nothing matches ``ref``.
        """
        ambiguity: AmbiguousReferenceError | None = None

        def attempt(key: str) -> Page | None:
            nonlocal ambiguity
            try:
                return self.get_from_cache(key)
            except AmbiguousReferenceError as exc:
                if ambiguity is None:
                    ambiguity = exc
                return None

        candidates: list[str] = []
        if ref.startswith("/"):
            candidates.append(ref)
        if context is not None:
            candidates.append(join_path("/", *context.sections, ref))
        if not ref.startswith("/"):
            # Authors often write "post/foo.md" meaning the content root.
            candidates.append("/" + ref)
        candidates.append(ref.removeprefix("/"))

        for key in candidates:
            page = attempt(key)
            if page is not None:
                return page

        if ambiguity is not None:
            raise ambiguity
        raise UnresolvedReferenceError(
            ref, context.ref_name if context is not None else None
        )

    def get_page(self, kind: PageKind, *sections: str) -> Page | None:
        """Return the page of ``kind`` at the section path, or ``None``."""
        try:
            page = self.get_page_new(None, "/" + join_path(*sections))
        except (AmbiguousReferenceError, UnresolvedReferenceError):
            return None
        return page if page.kind is kind else None

    @staticmethod
    def find_pages_by_kind_in(kind: PageKind, pages: cabc.Iterable[Page]) -> list[Page]:
        return [page for page in pages if page.kind is kind]

    @staticmethod
    def find_pages_by_kind_not_in(
        kind: PageKind, pages: cabc.Iterable[Page]
    ) -> list[Page]:
        return [page for page in pages if page.kind is not kind]

    def find_pages_by_kind(self, kind: PageKind) -> list[Page]:
        return self.find_pages_by_kind_in(kind, self.pages)

    def find_pages_by_shortcode(self, shortcode: str) -> list[Page]:
        """Return raw pages whose content uses the named shortcode."""
        return [page for page in self.raw_all_pages if shortcode in page.shortcodes]

    def add_page(self, page: Page) -> None:
        """Append ``page`` to the raw sequence and drop the reference index."""
        self.raw_all_pages.append(page)
        self._invalidate_indexes()

    def remove_page_filename(self, filename: str) -> None:
        """Remove the page backed by ``filename`` and evict its resources."""
        for position, page in enumerate(self.raw_all_pages):
            if page.source is not None and page.filename == filename:
                self.clear_resource_cache_for_page(page)
                del self.raw_all_pages[position]
                self._invalidate_indexes()
                return

    def remove_page(self, page: Page) -> None:
        """Remove ``page`` by identity and evict its resources."""
        for position, candidate in enumerate(self.raw_all_pages):
            if candidate is page:
                self.clear_resource_cache_for_page(candidate)
                del self.raw_all_pages[position]
                self._invalidate_indexes()
                return

    def replace_page(self, page: Page) -> None:
        """Swap in ``page`` for the entry backed by the same source file."""
        if page.source is not None:
            self.remove_page_filename(page.filename)
        else:
            self.remove_page(page)
        self.add_page(page)

    def clear_resource_cache_for_page(self, page: Page) -> None:
        """Evict cached resources published under the page's directory."""
        if not page.resources:
            return
        directory = posixpath.dirname(page.resources[0].rel_permalink)
        directory = directory.removeprefix(page.language_prefix)
        self.resource_cache.delete_by_prefix(directory.rstrip("/") + "/")


__all__ = ["PageCollections", "join_path"]

"""Resolve links between content files while rendering markdown."""

from __future__ import annotations

import logging
import posixpath
import typing as typ
from urllib.parse import urlsplit

from markdown.extensions import Extension
from markdown.treeprocessors import Treeprocessor

from folio._constants import CONTENT_EXTENSIONS
from folio.errors import UnresolvedReferenceError

if typ.TYPE_CHECKING:
    from xml.etree.ElementTree import Element

    from markdown import Markdown

    from folio.pages import Page, PageCollections
else:  # pragma: no cover - type-checking fallback
    Markdown = typ.Any
    Element = typ.Any

logger = logging.getLogger(__name__)


class ContentLinkExtension(Extension):
    """Point links at sibling content files to their published pages.

    ``[next](other.md)`` inside ``blog/post.md`` is looked up through the
    page collections relative to the linking page's sections and rewritten
    to the target's relative permalink. Links to anything other than content
    files are left alone.
    """

    def __init__(self, page: Page, collections: PageCollections) -> None:
        super().__init__()
        self.page = page
        self.collections = collections

    def extendMarkdown(self, md: Markdown) -> None:  # type: ignore[override]  # noqa: N802
        """Register the content-link treeprocessor on the Markdown instance."""
        processor = ContentLinkTreeprocessor(md, self.page, self.collections)
        md.treeprocessors.register(processor, "folio_content_links", 15)


class ContentLinkTreeprocessor(Treeprocessor):
    """Rewrite anchors whose target is a content file."""

    def __init__(self, md: Markdown, page: Page, collections: PageCollections) -> None:
        super().__init__(md)
        self.page = page
        self.collections = collections

    def run(self, root: Element) -> Element:
        """Rewrite content-file anchors in the parsed markdown tree."""
        for element in root.iter("a"):
            rewritten = self._rewrite(element.get("href"))
            if rewritten:
                element.set("href", rewritten)
        return root

    def _rewrite(self, target: str | None) -> str | None:
        if not target or target.startswith(("#", "//")):
            return None
        parsed = urlsplit(target)
        if parsed.scheme or parsed.netloc or not parsed.path:
            return None
        ext = posixpath.splitext(parsed.path)[1].lstrip(".").lower()
        if ext not in CONTENT_EXTENSIONS:
            return None

        try:
            found = self.collections.get_page_new(self.page, parsed.path)
        except UnresolvedReferenceError:
            logger.warning(
                "%s: link target %r does not match any page",
                self.page.ref_name,
                parsed.path,
            )
            return None

        url = found.rel_permalink
        if parsed.query:
            url = f"{url}?{parsed.query}"
        if parsed.fragment:
            url = f"{url}#{parsed.fragment}"
        return url


__all__ = ["ContentLinkExtension", "ContentLinkTreeprocessor"]

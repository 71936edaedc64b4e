"""Functions and filters exposed to templates.

A :class:`TemplateFuncs` instance is bound to one build's page collections
and markdown renderer and installed into the template environment once,
before any template is executed.
"""

from __future__ import annotations

import re
import typing as typ
from urllib.parse import quote, urlsplit

from markupsafe import Markup

from folio.tpl.context import PageContext

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from jinja2 import Environment

    from folio.content.renderer import MarkdownRenderer
    from folio.pages import Page, PageCollections

WHITESPACE = re.compile(r"\s+")


class TemplateFuncs:
    """Template helpers bound to a single build.

    Parameters
    ----------
    base_url : str
        Site base URL, ending in ``/``.
    collections : PageCollections
        Pages visible to ``ref``, ``relref``, and ``getpage``.
    renderer : MarkdownRenderer
        Renderer backing ``markdownify`` and ``highlight``.
    page_context : Callable[[Page], PageContext]
        Wraps pages returned by ``getpage`` for template use.
    """

    def __init__(
        self,
        base_url: str,
        collections: PageCollections,
        renderer: MarkdownRenderer,
        page_context: cabc.Callable[[Page], PageContext],
    ) -> None:
        self.base_url = base_url
        self.base_path = urlsplit(base_url).path or "/"
        self.collections = collections
        self.renderer = renderer
        self.page_context = page_context

    def install(self, env: Environment) -> None:
        """Register globals and filters on ``env``."""
        env.globals.update(
            urlize=self.urlize,
            absurl=self.absurl,
            relurl=self.relurl,
            ref=self.ref,
            relref=self.relref,
            getpage=self.getpage,
            isset=self.isset,
            echo_param=self.echo_param,
            highlight=self.highlight,
            markdownify=self.markdownify,
        )
        env.filters.update(
            absurl=self.absurl,
            relurl=self.relurl,
            markdownify=self.markdownify,
        )

    @staticmethod
    def urlize(value: str) -> str:
        """Turn ``value`` into a lower-case, hyphenated, URL-safe path."""
        return quote(WHITESPACE.sub("-", str(value).strip()).lower())

    def absurl(self, value: str) -> str:
        """Resolve ``value`` against the site base URL."""
        value = str(value)
        if urlsplit(value).scheme:
            return value
        return self.base_url + value.lstrip("/")

    def relurl(self, value: str) -> str:
        """Resolve ``value`` against the base URL's path."""
        value = str(value)
        if urlsplit(value).scheme:
            return value
        return self.base_path.rstrip("/") + "/" + value.lstrip("/")

    def _resolve(self, context: PageContext | Page | None, ref: str) -> Page:
        page = context.page if isinstance(context, PageContext) else context
        return self.collections.get_page_new(page, ref)

    def ref(self, context: PageContext | None, ref: str) -> str:
        """Return the absolute permalink of the page ``ref`` points at."""
        return self._resolve(context, ref).permalink

    def relref(self, context: PageContext | None, ref: str) -> str:
        """Return the relative permalink of the page ``ref`` points at."""
        return self._resolve(context, ref).rel_permalink

    def getpage(self, ref: str, context: PageContext | None = None) -> PageContext:
        """Return the page ``ref`` points at, wrapped for template use."""
        return self.page_context(self._resolve(context, ref))

    @staticmethod
    def isset(container: typ.Any, key: typ.Any) -> bool:
        """Report whether ``key`` is present in a mapping or sequence."""
        if isinstance(container, dict | PageContext):
            return str(key).lower() in container or key in container
        if isinstance(container, list | tuple):
            return isinstance(key, int) and -len(container) <= key < len(container)
        return False

    @staticmethod
    def echo_param(container: typ.Any, key: str) -> typ.Any:
        """Return parameter ``key`` from ``container`` or an empty string."""
        if not isinstance(container, dict):
            return ""
        value = container.get(str(key).lower(), "")
        return "" if value is None else value

    def highlight(self, code: str, language: str | None = None) -> Markup:
        """Return ``code`` as syntax-highlighted HTML."""
        return Markup(self.renderer.code_block(str(code), language))

    def markdownify(self, text: str) -> Markup:
        """Render a markdown string to HTML."""
        return Markup(self.renderer.render(str(text)))


__all__ = ["TemplateFuncs"]

"""Convert page markdown to HTML with Pygments-highlighted code blocks."""

from __future__ import annotations

import re
import typing as typ

from markdown import Markdown
from pygments import highlight
from pygments.formatters.html import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from markdown.extensions import Extension
else:  # pragma: no cover - type-checking fallback
    Extension = typ.Any

FENCE_LABEL_PATTERN = re.compile(
    r"^([`~]{3,})([A-Za-z0-9_+#.-]+)?(,[^\r\n]+)$", re.MULTILINE
)
BASE_EXTENSIONS = ("fenced_code", "codehilite", "tables", "sane_lists")


class MarkdownRenderer:
    """Render content markdown and standalone code snippets consistently."""

    def __init__(self, pygments_style: str = "monokai") -> None:
        """Initialize a renderer for the given Pygments style.

        Parameters
        ----------
        pygments_style : str, optional
            Name of the Pygments style used for syntax highlighting. Defaults to
            ``"monokai"``.
        """
        self.pygments_style = pygments_style
        self._formatter = HtmlFormatter(style=pygments_style, cssclass="codehilite")

    def render(
        self, text: str, extensions: cabc.Iterable[Extension] = ()
    ) -> str:
        """Render ``text`` into HTML, applying any extra markdown extensions.

        Parameters
        ----------
        text : str
            Markdown source; front matter must already be stripped.
        extensions : Iterable[Extension], optional
            Per-page extensions, such as the content link resolver.

        Returns
        -------
        str
            Rendered HTML, or an empty string for blank input.
        """
        normalized = FENCE_LABEL_PATTERN.sub(_strip_fence_label, text)
        if not normalized.strip():
            return ""
        md = Markdown(
            extensions=[*BASE_EXTENSIONS, *extensions],
            extension_configs={
                "codehilite": {
                    "linenums": False,
                    "guess_lang": False,
                    "css_class": "codehilite",
                    "pygments_style": self.pygments_style,
                }
            },
        )
        return md.convert(normalized)

    def code_block(self, code: str, language: str | None = None) -> str:
        """Render ``code`` as highlighted HTML, falling back to plain text."""
        try:
            lexer = get_lexer_by_name(language or "text")
        except ClassNotFound:
            lexer = get_lexer_by_name("text")
        return highlight(code, lexer, self._formatter)


def _strip_fence_label(match: re.Match[str]) -> str:
    """Drop comma-separated fence attributes such as ``rust,no_run``."""
    fence, language, _extras = match.groups()
    return f"{fence}{language or ''}"


__all__ = ["MarkdownRenderer"]

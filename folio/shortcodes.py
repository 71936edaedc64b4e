"""Expand shortcodes embedded in page content.

Shortcodes are written ``{{< name arg "quoted arg" >}}`` or, when they wrap
content, ``{{< name key=value >}}inner{{< /name >}}``. Arguments are either
all positional or all ``key=value``; named keys are lower-cased.

Expansion runs before markdown rendering. Each shortcode is replaced by an
opaque placeholder token, and the rendered output is spliced back in once
the markdown has been converted, so shortcode HTML is never re-parsed as
markdown.

``ref`` and ``relref`` are built in; every other name is rendered with the
template ``shortcodes/<name>.html`` (or the theme's copy), which receives
``Page``, ``Site``, ``Params``, ``Inner``, and ``Name``.
"""

from __future__ import annotations

import dataclasses as dc
import logging
import re
import typing as typ

from markupsafe import Markup

from folio._constants import THEME_PREFIX
from folio.errors import ShortcodeError

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from folio.pages import Page, PageCollections
    from folio.tpl.context import PageContext
    from folio.tpl.registry import TemplateRegistry

logger = logging.getLogger(__name__)

TAG_PATTERN = re.compile(
    r"\{\{<\s*(?P<close>/)?\s*(?P<name>[\w./-]+)(?P<args>.*?)(?P<self>\s/)?\s*>\}\}",
    re.DOTALL,
)
ARGUMENT_PATTERN = re.compile(
    r"""(?:(?P<key>[\w-]+)=)?"""
    r"""(?:"(?P<double>(?:[^"\\]|\\.)*)"|'(?P<single>[^']*)'|(?P<bare>[^\s"']+))"""
    r"""(?=\s|\Z)"""
)
ESCAPE_PATTERN = re.compile(r"\\(.)")
PLACEHOLDER = "FOLIOSHORTCODE{index:04d}END"

ShortcodeHandler = typ.Callable[["Shortcode", "Page"], str]


@dc.dataclass(slots=True)
class Shortcode:
    """One parsed shortcode invocation."""

    name: str
    positional: list[str] = dc.field(default_factory=list)
    named: dict[str, str] = dc.field(default_factory=dict)
    inner: str | None = None

    @property
    def params(self) -> list[str] | dict[str, str]:
        """Named arguments when present, otherwise the positional list."""
        return self.named if self.named else self.positional

    def get(self, key: str | int, default: str | None = None) -> str | None:
        """Return a named or positional argument."""
        if isinstance(key, int):
            return self.positional[key] if key < len(self.positional) else default
        return self.named.get(key.lower(), default)


def parse_arguments(raw: str, *, source: str = "") -> tuple[list[str], dict[str, str]]:
    """Split a shortcode argument string into positional and named values.

    Only unquoted ``key=value`` tokens are named; a quoted value such as
    ``"https://example.org/?a=b"`` stays positional even though it contains
    ``=``.

    Raises
    ------
    ShortcodeError
        If quoting is unbalanced or positional and named arguments are mixed.
    """
    positional: list[str] = []
    named: dict[str, str] = {}
    pos = 0
    while True:
        while pos < len(raw) and raw[pos].isspace():
            pos += 1
        if pos == len(raw):
            break
        match = ARGUMENT_PATTERN.match(raw, pos)
        if match is None:
            msg = f"{source}: malformed shortcode arguments {raw!r} at offset {pos}"
            raise ShortcodeError(msg)
        pos = match.end()
        if match["double"] is not None:
            value = ESCAPE_PATTERN.sub(r"\1", match["double"])
        else:
            value = match["single"] if match["single"] is not None else match["bare"]
        if match["key"] is None:
            positional.append(value)
        else:
            named[match["key"].lower()] = value
    if positional and named:
        msg = f"{source}: shortcode arguments {raw!r} mix positional and named values"
        raise ShortcodeError(msg)
    return positional, named


class ShortcodeExpander:
    """Find, render, and splice shortcodes for one build."""

    def __init__(
        self,
        templates: TemplateRegistry,
        collections: PageCollections,
        page_context: cabc.Callable[[Page], PageContext],
        handlers: cabc.Mapping[str, ShortcodeHandler] | None = None,
    ) -> None:
        self.templates = templates
        self.collections = collections
        self.page_context = page_context
        self.handlers: dict[str, ShortcodeHandler] = {
            "ref": self._ref,
            "relref": self._relref,
            **(handlers or {}),
        }

    def extract(self, page: Page, text: str) -> tuple[str, dict[str, str]]:
        """Replace shortcodes in ``text`` with placeholders.

        Returns
        -------
        tuple[str, dict[str, str]]
            Text with placeholder tokens and the rendered output for each
            token. The names of the shortcodes used are recorded on the page.
        """
        rendered: dict[str, str] = {}

        def _store(output: str) -> str:
            token = PLACEHOLDER.format(index=len(rendered))
            rendered[token] = output
            return token

        return self._expand(page, text, _store), rendered

    def render_inline(self, page: Page, text: str) -> str:
        """Expand shortcodes in ``text`` directly into their output."""
        return self._expand(page, text, lambda output: output)

    @staticmethod
    def restore(html: str, placeholders: cabc.Mapping[str, str]) -> str:
        """Splice rendered shortcode output back into converted HTML."""
        for token, output in placeholders.items():
            html = html.replace(token, output)
        return html

    def _expand(
        self, page: Page, text: str, emit: cabc.Callable[[str], str]
    ) -> str:
        out: list[str] = []
        pos = 0
        while True:
            match = TAG_PATTERN.search(text, pos)
            if match is None:
                out.append(text[pos:])
                return "".join(out)
            out.append(text[pos : match.start()])
            name = match["name"]
            if match["close"]:
                msg = f"{page.ref_name}: closing shortcode {name!r} without opening tag"
                raise ShortcodeError(msg)
            positional, named = parse_arguments(match["args"], source=page.ref_name)
            shortcode = Shortcode(name, positional, named)
            pos = match.end()
            if not match["self"]:
                closing = _find_closing(text, name, pos)
                if closing is not None:
                    inner_start, inner_end, pos = closing
                    shortcode.inner = self.render_inline(
                        page, text[inner_start:inner_end]
                    )
            page.shortcodes.add(name)
            out.append(emit(self._render(shortcode, page)))

    def _render(self, shortcode: Shortcode, page: Page) -> str:
        handler = self.handlers.get(shortcode.name)
        if handler is not None:
            return handler(shortcode, page)
        candidates = [f"shortcodes/{shortcode.name}.html"]
        candidates.append(THEME_PREFIX + candidates[0])
        match = self.templates.first_match(candidates)
        if match is None:
            msg = f"{page.ref_name}: unable to locate template for shortcode {shortcode.name!r}"
            raise ShortcodeError(msg)
        template_name, _ = match
        view = self.page_context(page)
        context = {
            "Page": view,
            "Site": view.site,
            "Params": shortcode.params,
            "Inner": Markup(shortcode.inner or ""),
            "Name": shortcode.name,
        }
        return self.templates.execute(template_name, context, unit=page.ref_name)

    def _target(self, shortcode: Shortcode, page: Page) -> Page:
        ref = shortcode.get(0) or shortcode.get("path")
        if not ref:
            msg = f"{page.ref_name}: {shortcode.name} shortcode needs a page reference"
            raise ShortcodeError(msg)
        return self.collections.get_page_new(page, ref)

    def _ref(self, shortcode: Shortcode, page: Page) -> str:
        return self._target(shortcode, page).permalink

    def _relref(self, shortcode: Shortcode, page: Page) -> str:
        return self._target(shortcode, page).rel_permalink


def _find_closing(text: str, name: str, start: int) -> tuple[int, int, int] | None:
    """Locate the closing tag matching an opening ``name`` tag.

    Returns the inner span and the position after the closing tag, or
    ``None`` when the shortcode is not paired. Nested tags of the same name
    are balanced.
    """
    depth = 0
    for match in TAG_PATTERN.finditer(text, start):
        if match["name"] != name or match["self"]:
            continue
        if not match["close"]:
            depth += 1
        elif depth:
            depth -= 1
        else:
            return start, match.start(), match.end()
    return None


__all__ = [
    "PLACEHOLDER",
    "Shortcode",
    "ShortcodeExpander",
    "parse_arguments",
]

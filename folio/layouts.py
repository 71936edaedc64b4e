"""Resolve the ordered list of candidate templates for a content unit.

:class:`LayoutHandler` turns a :class:`LayoutDescriptor` and an
:class:`OutputFormat` into a cascade of template names, most specific first.
The caller renders with the first candidate that is registered.

Example
-------
>>> handler = LayoutHandler(has_theme=False)
>>> descriptor = LayoutDescriptor(type="post/sub", section="post", kind="page")
>>> handler.for_(descriptor, "", HTML_FORMAT)[:2]
['post/sub/single.html.html', 'post/sub/single.html']
"""

from __future__ import annotations

import dataclasses as dc
import posixpath
import re

from folio._constants import INTERNAL_PREFIX, THEME_PREFIX

DEFAULT_LAYOUT = "single"

PLACEHOLDER_PATTERN = re.compile(r"SUFFIX|NAME|SECTION")

LAYOUTS_HOME = """
index.NAME.SUFFIX index.SUFFIX
_default/list.NAME.SUFFIX _default/list.SUFFIX
"""
LAYOUTS_SECTION = """
section/SECTION.NAME.SUFFIX section/SECTION.SUFFIX
SECTION/list.NAME.SUFFIX SECTION/list.SUFFIX
_default/section.NAME.SUFFIX _default/section.SUFFIX
_default/list.NAME.SUFFIX _default/list.SUFFIX
indexes/SECTION.NAME.SUFFIX indexes/SECTION.SUFFIX
_default/indexes.NAME.SUFFIX _default/indexes.SUFFIX
"""
LAYOUTS_TAXONOMY = """
taxonomy/SECTION.NAME.SUFFIX taxonomy/SECTION.SUFFIX
indexes/SECTION.NAME.SUFFIX indexes/SECTION.SUFFIX
_default/taxonomy.NAME.SUFFIX _default/taxonomy.SUFFIX
_default/list.NAME.SUFFIX _default/list.SUFFIX
"""
LAYOUTS_TAXONOMY_TERM = """
taxonomy/SECTION.terms.NAME.SUFFIX taxonomy/SECTION.terms.SUFFIX
_default/terms.NAME.SUFFIX _default/terms.SUFFIX
indexes/indexes.NAME.SUFFIX indexes/indexes.SUFFIX
"""

KIND_TABLES = {
    "home": LAYOUTS_HOME,
    "section": LAYOUTS_SECTION,
    "taxonomy": LAYOUTS_TAXONOMY,
    "taxonomyTerm": LAYOUTS_TAXONOMY_TERM,
}


@dc.dataclass(frozen=True, slots=True)
class OutputFormat:
    """A named output format and the file suffix of its media type."""

    name: str
    suffix: str


HTML_FORMAT = OutputFormat(name="HTML", suffix="html")
RSS_FORMAT = OutputFormat(name="RSS", suffix="xml")


@dc.dataclass(frozen=True, slots=True)
class LayoutDescriptor:
    """Read-only inputs to layout resolution.

    Attributes
    ----------
    type : str
        Slash-separated content type path, e.g. ``"post/sub"``.
    section : str
        Section name substituted into list tables (the singular taxonomy name
        for taxonomy kinds).
    kind : str
        Page kind value: ``home``, ``section``, ``taxonomy``, ``taxonomyTerm``
        or ``page``.
    layout : str
        Layout declared by the content itself; empty for the default.
    """

    type: str = ""
    section: str = ""
    kind: str = "page"
    layout: str = ""


class LayoutHandler:
    """Calculate template candidates for a descriptor and output format."""

    def __init__(self, *, has_theme: bool) -> None:
        self.has_theme = has_theme

    def for_(
        self,
        descriptor: LayoutDescriptor,
        layout_override: str,
        output_format: OutputFormat,
    ) -> list[str]:
        """Return candidate template names, most specific first.

        Parameters
        ----------
        descriptor : LayoutDescriptor
            Kind, type path, section, and declared layout of the unit.
        layout_override : str
            Layout that replaces the declared one when non-empty.
        output_format : OutputFormat
            Format whose name and suffix are substituted into each candidate.

        Returns
        -------
        list[str]
            The cascade; with a theme, project candidates come first, then the
            same names under ``theme/``, then any ``_internal/`` candidates.
        """
        layout = layout_override or descriptor.layout
        table = KIND_TABLES.get(descriptor.kind)
        if table is not None:
            layouts = _resolve_table(table, descriptor.section, output_format)
        elif descriptor.kind == "page":
            layouts = _regular_page_layouts(descriptor.type, layout, output_format)
        else:
            layouts = []

        if self.has_theme:
            return _theme_bands(layouts)
        return layouts


def _resolve_table(table: str, section: str, output_format: OutputFormat) -> list[str]:
    """Substitute the placeholders into every entry of ``table``."""
    replacements = {
        "SUFFIX": output_format.suffix,
        "NAME": output_format.name.lower(),
        "SECTION": section,
    }

    def _replace(match: re.Match[str]) -> str:
        return replacements[match.group(0)]

    # One pass, so a section named like a placeholder is left intact.
    return [PLACEHOLDER_PATTERN.sub(_replace, entry) for entry in table.split()]


def _regular_page_layouts(
    types: str, layout: str, output_format: OutputFormat
) -> list[str]:
    """Walk the type path from most to least specific, then add defaults."""
    layout = layout or DEFAULT_LAYOUT
    suffix = output_format.suffix
    name = output_format.name.lower()
    layouts: list[str] = []
    if types:
        segments = types.split("/")
        for end in range(len(segments), 0, -1):
            search = posixpath.join(*segments[:end]).lower()
            layouts.append(f"{search}/{layout}.{name}.{suffix}")
            layouts.append(f"{search}/{layout}.{suffix}")
    layouts.append(f"_default/{layout}.{name}.{suffix}")
    layouts.append(f"_default/{layout}.{suffix}")
    return layouts


def _theme_bands(layouts: list[str]) -> list[str]:
    """Order project names, then themed copies, then internal fallbacks."""
    own = [name for name in layouts if not name.startswith(INTERNAL_PREFIX)]
    internal = [name for name in layouts if name.startswith(INTERNAL_PREFIX)]
    return own + [THEME_PREFIX + name for name in own] + internal


__all__ = [
    "DEFAULT_LAYOUT",
    "HTML_FORMAT",
    "RSS_FORMAT",
    "LayoutDescriptor",
    "LayoutHandler",
    "OutputFormat",
]

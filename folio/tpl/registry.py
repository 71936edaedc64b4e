"""Parse, normalise, and compile the templates available to a build.

Templates are read from a :class:`TemplateSource` and registered under their
path relative to the layout directory (``_default/single.html``); theme
templates are registered under the ``theme/`` prefix. Preparation happens in
two steps so that every template is parsed before any is rewritten:

1. :meth:`TemplateRegistry.add` parses a template into a Jinja AST.
2. :meth:`TemplateRegistry.prepare` runs the parameter-key transformer over
   every AST (following ``include`` statements through the registry) and
   compiles the rewritten trees.

Compiled templates are served to ``include``/``extends`` through
:class:`RegistryLoader`, so included templates see the same rewritten tree.
"""

from __future__ import annotations

import logging
import typing as typ
from pathlib import Path

from jinja2 import BaseLoader, Environment, TemplateNotFound, select_autoescape
from jinja2.exceptions import TemplateSyntaxError

from folio._constants import THEME_PREFIX
from folio.diagnostics import new_file_error_from_content
from folio.errors import FolioError, RenderExecutionError
from folio.tpl.transformers import apply_template_transformers

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from jinja2 import Template
    from jinja2 import nodes

logger = logging.getLogger(__name__)

TEMPLATE_SUFFIXES = frozenset({".html", ".xml", ".txt", ".json"})


class TemplateSource(typ.Protocol):
    """Anything that can list ``(name, text)`` template pairs."""

    def templates(self) -> list[tuple[str, str]]:
        """Return every template as a registry name and its source text."""
        ...


class FilesystemTemplateSource:
    """Read templates from a layout directory and an optional theme."""

    def __init__(self, layout_dir: Path, theme_layout_dir: Path | None = None) -> None:
        self.layout_dir = layout_dir
        self.theme_layout_dir = theme_layout_dir

    def templates(self) -> list[tuple[str, str]]:
        """Return site templates followed by prefixed theme templates.

        Raises
        ------
        FileNotFoundError
            If the site has neither a layout directory nor a theme.
        """
        found: list[tuple[str, str]] = []
        if self.layout_dir.is_dir():
            found.extend(_read_tree(self.layout_dir, ""))
        elif self.theme_layout_dir is None:
            msg = f"No layout directory found at {self.layout_dir}"
            raise FileNotFoundError(msg)
        if self.theme_layout_dir is not None and self.theme_layout_dir.is_dir():
            found.extend(_read_tree(self.theme_layout_dir, THEME_PREFIX))
        return found


class MemoryTemplateSource:
    """Serve templates from an in-memory mapping, mainly for tests."""

    def __init__(self, templates: cabc.Mapping[str, str]) -> None:
        self._templates = dict(templates)

    def templates(self) -> list[tuple[str, str]]:
        """Return the stored templates in name order."""
        return sorted(self._templates.items())


def _read_tree(root: Path, prefix: str) -> list[tuple[str, str]]:
    return [
        (prefix + path.relative_to(root).as_posix(), path.read_text(encoding="utf-8"))
        for path in sorted(root.rglob("*"))
        if path.is_file() and path.suffix in TEMPLATE_SUFFIXES
    ]


class RegistryLoader(BaseLoader):
    """Jinja loader that hands out the registry's compiled templates."""

    def __init__(self, registry: TemplateRegistry) -> None:
        self.registry = registry

    def get_source(
        self, environment: Environment, template: str
    ) -> tuple[str, str | None, cabc.Callable[[], bool] | None]:
        """Return raw source; used only by tooling that bypasses :meth:`load`."""
        source = self.registry.source(template)
        if source is None:
            raise TemplateNotFound(template)
        return source, None, lambda: True

    def load(
        self,
        environment: Environment,
        name: str,
        globals: cabc.MutableMapping[str, typ.Any] | None = None,  # noqa: A002
    ) -> Template:
        """Return the compiled, rewritten template registered as ``name``."""
        template = self.registry.lookup(name)
        if template is None:
            raise TemplateNotFound(name)
        return template


class TemplateRegistry:
    """Named collection of parsed and compiled templates for one build.

    Examples
    --------
    >>> registry = TemplateRegistry()
    >>> registry.add("_default/single.html", "{{ Params.Subtitle }}")
    >>> registry.prepare()
    >>> registry.execute("_default/single.html", {"Params": {"subtitle": "Hi"}})
    'Hi'
    """

    def __init__(self) -> None:
        self.env = Environment(
            loader=RegistryLoader(self),
            autoescape=select_autoescape(["html", "xml"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self._sources: dict[str, str] = {}
        self._trees: dict[str, nodes.Template] = {}
        self._compiled: dict[str, Template] = {}
        self._prepared = False

    def __contains__(self, name: object) -> bool:
        return name in self._trees

    def __len__(self) -> int:
        return len(self._trees)

    @property
    def names(self) -> list[str]:
        """Registered template names in registration order."""
        return list(self._trees)

    def source(self, name: str) -> str | None:
        """Return the original text of template ``name``."""
        return self._sources.get(name)

    def add(self, name: str, text: str) -> None:
        """Parse and register a template.

        Raises
        ------
        FileError
            If the template does not parse; the error carries the position
            and surrounding lines.
        RuntimeError
            If the registry has already been prepared.
        """
        if self._prepared:
            msg = f"cannot add template {name!r} after preparation"
            raise RuntimeError(msg)
        try:
            tree = self.env.parse(text, name, name)
        except TemplateSyntaxError as exc:
            raise new_file_error_from_content(name, exc, text) from exc
        self._sources[name] = text
        self._trees[name] = tree
        logger.debug("parsed template %s", name)

    def add_source(self, source: TemplateSource) -> None:
        """Register every template provided by ``source``."""
        for name, text in source.templates():
            self.add(name, text)

    def tree(self, name: str) -> nodes.Template | None:
        """Return the parsed AST for ``name``, if registered."""
        return self._trees.get(name)

    def prepare(self) -> None:
        """Rewrite parameter lookups in every template and compile them."""
        for name, tree in self._trees.items():
            try:
                apply_template_transformers(tree, self.tree)
            except ValueError as exc:
                msg = f"failed to transform template {name!r}: {exc}"
                raise ValueError(msg) from exc
        globals_ = self.env.make_globals(None)
        for name, tree in self._trees.items():
            code = self.env.compile(tree, name, name)
            self._compiled[name] = self.env.template_class.from_code(
                self.env, code, globals_
            )
        self._prepared = True
        logger.debug("compiled %d templates", len(self._compiled))

    def lookup(self, name: str) -> Template | None:
        """Return the compiled template ``name``, if prepared and registered."""
        return self._compiled.get(name)

    def first_match(self, candidates: cabc.Iterable[str]) -> tuple[str, Template] | None:
        """Return the first candidate name that has a compiled template."""
        for name in candidates:
            template = self._compiled.get(name)
            if template is not None:
                return name, template
        return None

    def execute(
        self, name: str, context: cabc.Mapping[str, typ.Any], *, unit: str | None = None
    ) -> str:
        """Render template ``name`` with ``context``.

        Raises
        ------
        TemplateNotFound
            If ``name`` is not a prepared template.
        RenderExecutionError
            If the template raises while rendering. Build errors raised by
            template functions, such as an ambiguous reference, propagate
            unchanged.
        """
        template = self._compiled.get(name)
        if template is None:
            raise TemplateNotFound(name)
        try:
            return template.render(context)
        except FolioError:
            raise
        except Exception as exc:
            raise RenderExecutionError(unit or name, name, exc) from exc


__all__ = [
    "FilesystemTemplateSource",
    "MemoryTemplateSource",
    "RegistryLoader",
    "TemplateRegistry",
    "TemplateSource",
]

"""Rewrite parameter lookups in parsed templates to lower case.

Front-matter and site parameter keys are stored lower-cased, so a template
that writes ``{{ Params.MyKey }}`` would miss them. :class:`ParamsKeysToLower`
walks a parsed Jinja tree once and lower-cases the trailing attribute names
of every identifier path that resolves to one of the parameter roots in
:data:`PARAMS_PATHS`, following ``set`` and ``with`` aliases declared earlier
in the walk:

>>> from jinja2 import Environment
>>> env = Environment()
>>> tree = env.parse("{% set p = Params %}{{ p.MyKey }}")
>>> _ = apply_template_transformers(tree, lambda name: None)
>>> tree.body[1].nodes[0].attr
'mykey'

Only parameter paths are rewritten; other identifiers keep the case the
template author wrote.
"""

from __future__ import annotations

import contextlib
import typing as typ

from jinja2 import nodes
from jinja2.visitor import NodeVisitor

if typ.TYPE_CHECKING:
    import collections.abc as cabc

PARAMS_PATHS: tuple[tuple[str, ...], ...] = (
    ("Params",),
    ("Site", "Params"),
    # Page and Site as seen from shortcodes.
    ("Page", "Site", "Params"),
    ("Page", "Params"),
    ("Site", "Language", "Params"),
)

TemplateLookup = typ.Callable[[str], nodes.Template | None]


def apply_template_transformers(
    tree: nodes.Template | None, lookup: TemplateLookup
) -> nodes.Template:
    """Run every template transformer over ``tree`` in place and return it.

    Parameters
    ----------
    tree : jinja2.nodes.Template
        Parsed template to rewrite.
    lookup : Callable[[str], jinja2.nodes.Template | None]
        Returns the parsed tree of an included template by name.

    Raises
    ------
    ValueError
        If ``tree`` is ``None``.
    """
    if tree is None:
        msg = "expected template, but none provided"
        raise ValueError(msg)
    ParamsKeysToLower(lookup).visit(tree)
    return tree


class ParamsKeysToLower(NodeVisitor):
    """Lower-case parameter keys in identifier paths, resolving aliases.

    ``decl`` maps each declared variable to the dotted path it was bound to,
    or ``None`` for loop targets, macro arguments, and values that are not
    plain identifier paths. It lives for one walk; bindings made inside a
    ``for``, ``with``, or macro body are dropped when the block ends.
    """

    def __init__(self, lookup: TemplateLookup) -> None:
        self.lookup = lookup
        self.decl: dict[str, str | None] = {}

    def _walk(self, children: cabc.Iterable[nodes.Node]) -> None:
        for child in children:
            self.visit(child)

    def visit_Template(self, node: nodes.Template) -> None:  # noqa: N802
        self._walk(node.body)

    def visit_Output(self, node: nodes.Output) -> None:  # noqa: N802
        self._walk(node.nodes)

    def visit_If(self, node: nodes.If) -> None:  # noqa: N802
        self.visit(node.test)
        self._walk(node.body)
        self._walk(node.elif_)
        self._walk(node.else_)

    def visit_With(self, node: nodes.With) -> None:  # noqa: N802
        for value in node.values:
            self.visit(value)
        with self._scope():
            for target, value in zip(node.targets, node.values, strict=False):
                self._declare(target, value)
            self._walk(node.body)

    def visit_For(self, node: nodes.For) -> None:  # noqa: N802
        self.visit(node.iter)
        with self._scope():
            self._declare(node.target, None)
            if node.test is not None:
                self.visit(node.test)
            self._walk(node.body)
        self._walk(node.else_)

    def visit_Assign(self, node: nodes.Assign) -> None:  # noqa: N802
        self.visit(node.node)
        self._declare(node.target, node.node)

    def visit_AssignBlock(self, node: nodes.AssignBlock) -> None:  # noqa: N802
        self._walk(node.body)
        self._declare(node.target, None)

    def visit_Macro(self, node: nodes.Macro) -> None:  # noqa: N802
        self._walk(node.defaults)
        with self._scope():
            for arg in node.args:
                self._declare(arg, None)
            self._walk(node.body)

    def visit_Include(self, node: nodes.Include) -> None:  # noqa: N802
        template = node.template
        if isinstance(template, nodes.Const) and isinstance(template.value, str):
            subtree = self.lookup(template.value)
            if subtree is not None:
                self.visit(subtree)
            return
        self.visit(template)

    def visit_Name(self, node: nodes.Name) -> None:  # noqa: N802
        """A bare name has no keys to rewrite."""

    def visit_Getattr(self, node: nodes.Getattr) -> None:  # noqa: N802
        chain: list[nodes.Getattr] = []
        current: nodes.Node = node
        while isinstance(current, nodes.Getattr):
            chain.append(current)
            current = current.node
        if not isinstance(current, nodes.Name):
            self.visit(current)
            return
        chain.reverse()
        idents = [current.name, *(link.attr for link in chain)]
        start = self.index_of_replacement_start(idents)
        if start == -1:
            return
        for link in chain[max(start, 1) - 1 :]:
            link.attr = link.attr.lower()

    @contextlib.contextmanager
    def _scope(self) -> cabc.Iterator[None]:
        """Restore the alias table when a loop, macro, or with block ends."""
        saved = dict(self.decl)
        try:
            yield
        finally:
            self.decl = saved

    def _declare(self, target: nodes.Node, value: nodes.Node | None) -> None:
        """Record what ``target`` names are bound to."""
        if isinstance(target, nodes.Name):
            self.decl[target.name] = _dotted_path(value) if value is not None else None
        elif isinstance(target, nodes.Tuple):
            values = value.items if isinstance(value, nodes.Tuple) else []
            for position, item in enumerate(target.items):
                paired = values[position] if position < len(values) else None
                self._declare(item, paired)

    def index_of_replacement_start(self, idents: list[str]) -> int:
        """Return the index of the first segment to lower-case, or ``-1``.

        The leading segment is expanded through the alias table, e.g. with
        ``colors`` bound to ``Site.Params.Colors``, ``colors.Blue`` resolves
        to ``Site.Params.Colors.Blue``. Resolving through a loop or local
        variable abandons the rewrite.
        """
        if not idents:
            return -1
        resolved_root = self._resolve(idents[0], frozenset())
        if resolved_root is None:
            return -1
        resolved = [*resolved_root, *idents[1:]]
        skip_root = idents[0] in self.decl

        for words in PARAMS_PATHS:
            index = _first_real_ident_after_words(resolved, idents, words, skip_root)
            if index != -1:
                return index
        return -1

    def _resolve(self, name: str, seen: frozenset[str]) -> list[str] | None:
        if name not in self.decl:
            return [name]
        replacement = self.decl[name]
        if replacement is None or name in seen:
            return None
        head, *rest = replacement.split(".")
        resolved = self._resolve(head, seen | {name})
        if resolved is None:
            return None
        return [*resolved, *rest]


def _dotted_path(node: nodes.Node) -> str | None:
    """Return ``A.B.C`` for a Name/Getattr chain, ``None`` for anything else."""
    attrs: list[str] = []
    while isinstance(node, nodes.Getattr):
        attrs.append(node.attr)
        node = node.node
    if not isinstance(node, nodes.Name):
        return None
    return ".".join([node.name, *reversed(attrs)])


def _first_real_ident_after_words(
    resolved: list[str], idents: list[str], words: tuple[str, ...], skip_root: bool
) -> int:
    if tuple(resolved[: len(words)]) != words:
        return -1
    for index, ident in enumerate(idents):
        if index == 0 and skip_root:
            continue
        if ident and ident not in words:
            return index
    return -1


__all__ = ["PARAMS_PATHS", "ParamsKeysToLower", "apply_template_transformers"]

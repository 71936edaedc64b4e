"""Unit tests for the parameter-key normaliser.

Templates are parsed with Jinja, run through
:func:`~folio.tpl.transformers.apply_template_transformers`, and the
attribute names left in the tree are inspected. Aliases declared with
``set`` and ``with`` are followed; loop variables and macro arguments stop
the rewrite.
"""

from __future__ import annotations

import pytest
from jinja2 import Environment, nodes

from folio.tpl.transformers import ParamsKeysToLower, apply_template_transformers

ENV = Environment()


def _attrs(source: str, partials: dict[str, str] | None = None) -> set[str]:
    """Transform ``source`` and return every attribute name in the result."""
    trees = {name: ENV.parse(text) for name, text in (partials or {}).items()}
    tree = apply_template_transformers(ENV.parse(source), trees.get)
    found = {node.attr for node in tree.find_all(nodes.Getattr)}
    for partial in trees.values():
        found |= {node.attr for node in partial.find_all(nodes.Getattr)}
    return found


@pytest.mark.parametrize(
    ("source", "expected"),
    [
        ("{{ Params.MyKey }}", {"mykey"}),
        ("{{ Site.Params.Author.Name }}", {"Params", "author", "name"}),
        ("{{ Page.Params.Subtitle }}", {"Params", "subtitle"}),
        ("{{ Page.Site.Params.Logo }}", {"Site", "Params", "logo"}),
        ("{{ Site.Language.Params.Greeting }}", {"Language", "Params", "greeting"}),
    ],
)
def test_parameter_roots_are_lower_cased(source: str, expected: set[str]) -> None:
    """Keys after each parameter root are lower-cased; the roots are kept."""
    assert _attrs(source) == expected


def test_non_parameter_paths_are_untouched() -> None:
    """Other identifier paths keep the author's casing."""
    assert _attrs("{{ Site.Title }}{{ Data.Params.Foo }}") == {"Title", "Params", "Foo"}


def test_set_alias_is_followed() -> None:
    """``{% set p = Params %}`` makes ``p.MyKey`` a parameter lookup."""
    assert _attrs("{% set p = Params %}{{ p.MyKey }}") == {"mykey"}


def test_alias_chains_resolve_to_the_root() -> None:
    """An alias of an alias resolves through both declarations."""
    source = (
        "{% set s = Site %}{% set sp = s.Params %}"
        "{{ sp.Colors.Blue }}{{ s.Title }}"
    )
    assert _attrs(source) == {"Params", "colors", "blue", "Title"}


def test_with_block_declares_aliases() -> None:
    """Targets of ``with`` blocks are aliases too."""
    source = "{% with p = Page.Params %}{{ p.Subtitle }}{% endwith %}"
    assert _attrs(source) == {"Params", "subtitle"}


def test_loop_variables_abort_the_rewrite() -> None:
    """Loop targets are locals; lookups through them keep their casing."""
    source = "{% for item in Params.Items %}{{ item.Name }}{% endfor %}"
    assert _attrs(source) == {"items", "Name"}


def test_macro_arguments_shadow_parameter_roots() -> None:
    """A macro argument named ``Params`` is a local, not the page params."""
    source = "{% macro show(Params) %}{{ Params.Foo }}{% endmacro %}"
    assert _attrs(source) == {"Foo"}


@pytest.mark.parametrize(
    ("source", "expected"),
    [
        (
            "{% set p = Params %}{% for p in Items %}{{ p.Inner }}{% endfor %}"
            "{{ p.Foo }}",
            {"Inner", "foo"},
        ),
        (
            "{% set p = Params %}{% macro m(p) %}{{ p.Inner }}{% endmacro %}"
            "{{ p.Foo }}",
            {"Inner", "foo"},
        ),
        (
            "{% for x in Items %}{% set q = Params %}{{ q.In }}{% endfor %}"
            "{{ q.Out }}",
            {"in", "Out"},
        ),
        (
            "{% with q = Params %}{{ q.In }}{% endwith %}{{ q.Out }}",
            {"in", "Out"},
        ),
    ],
)
def test_block_scopes_restore_aliases(source: str, expected: set[str]) -> None:
    """Names bound inside loops, macros, and with blocks end with the block."""
    assert _attrs(source) == expected


def test_nested_expressions_are_walked() -> None:
    """Lookups inside filters, calls, and conditions are rewritten too."""
    source = (
        "{% if Params.ShowToc %}{{ Params.Title | upper }}"
        "{{ echo_param(Page.Params, Site.Params.Key) }}{% endif %}"
    )
    assert _attrs(source) == {"showtoc", "title", "Params", "key"}


def test_included_templates_are_rewritten_with_the_includer_aliases() -> None:
    """Includes are walked with the aliases declared before them."""
    source = "{% set p = Params %}{% include 'partials/meta.html' %}"
    partials = {"partials/meta.html": "{{ p.Description }}{{ Params.Author }}"}
    assert _attrs(source, partials) == {"description", "author"}


def test_missing_include_is_skipped() -> None:
    """An include the lookup cannot find leaves the tree as it was."""
    assert _attrs("{% include 'nope.html' %}{{ Params.A }}") == {"a"}


def test_none_tree_is_rejected() -> None:
    """Running the transformers without a tree is a caller error."""
    with pytest.raises(ValueError, match="expected template"):
        apply_template_transformers(None, lambda name: None)


def test_replacement_start_index() -> None:
    """The first segment after the parameter root words is reported."""
    visitor = ParamsKeysToLower(lambda name: None)
    assert visitor.index_of_replacement_start(["Site", "Params", "Foo"]) == 2
    assert visitor.index_of_replacement_start(["Params", "Foo"]) == 1
    assert visitor.index_of_replacement_start(["Site", "Title"]) == -1
    visitor.decl["loop"] = None
    assert visitor.index_of_replacement_start(["loop", "Foo"]) == -1

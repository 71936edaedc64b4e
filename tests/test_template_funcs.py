"""Tests for the helpers installed into the template environment."""

from __future__ import annotations

import typing as typ

import pytest
from jinja2 import Environment

from folio.content.renderer import MarkdownRenderer
from folio.errors import UnresolvedReferenceError
from folio.tpl.funcs import TemplateFuncs

if typ.TYPE_CHECKING:
    from conftest import CollectionsFactory, PageFactory

    from folio.pages import PageCollections

BASE_URL = "https://example.org/docs/"


def _funcs(collections: PageCollections) -> TemplateFuncs:
    return TemplateFuncs(BASE_URL, collections, MarkdownRenderer(), lambda page: page)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("Static Sites", "static-sites"),
        ("  Python  ", "python"),
        ("C++ tips", "c%2B%2B-tips"),
    ],
)
def test_urlize(value: str, expected: str) -> None:
    assert TemplateFuncs.urlize(value) == expected


def test_absurl_and_relurl(collections_factory: CollectionsFactory) -> None:
    """URLs resolve against the base URL or its path; absolute ones pass."""
    funcs = _funcs(collections_factory())
    assert funcs.absurl("/img/a.png") == "https://example.org/docs/img/a.png"
    assert funcs.absurl("https://cdn.test/a.png") == "https://cdn.test/a.png"
    assert funcs.relurl("img/a.png") == "/docs/img/a.png"


def test_ref_helpers_use_page_graph(
    page_factory: PageFactory, collections_factory: CollectionsFactory
) -> None:
    """``ref``, ``relref`` and ``getpage`` resolve through the collections."""
    post = page_factory(
        "blog/post.md",
        permalink="https://example.org/docs/blog/post/",
        rel_permalink="/docs/blog/post/",
    )
    funcs = _funcs(collections_factory(post))
    assert funcs.ref(None, "post.md") == post.permalink
    assert funcs.relref(None, "/blog/post.md") == post.rel_permalink
    assert funcs.getpage("post") is post
    with pytest.raises(UnresolvedReferenceError):
        funcs.ref(None, "missing.md")


def test_isset_and_echo_param() -> None:
    """Parameter helpers tolerate mixed-case keys and missing values."""
    params = {"subtitle": "Two", "empty": None}
    assert TemplateFuncs.isset(params, "SubTitle")
    assert not TemplateFuncs.isset(params, "other")
    assert TemplateFuncs.isset([1, 2], 1)
    assert not TemplateFuncs.isset([1, 2], 2)
    assert not TemplateFuncs.isset("text", 0)
    assert TemplateFuncs.echo_param(params, "SubTitle") == "Two"
    assert TemplateFuncs.echo_param(params, "empty") == ""
    assert TemplateFuncs.echo_param("not a mapping", "x") == ""


def test_installed_helpers_render_markup(collections_factory: CollectionsFactory) -> None:
    """Markdown and highlighting output is not escaped again by templates."""
    env = Environment(autoescape=True)
    _funcs(collections_factory()).install(env)
    html = env.from_string(
        "{{ '*hi*' | markdownify }}|{{ highlight('x = 1', 'python') }}"
    ).render()
    converted, highlighted = html.split("|", 1)
    assert converted == "<p><em>hi</em></p>"
    assert 'class="codehilite"' in highlighted
    assert "&lt;" not in highlighted

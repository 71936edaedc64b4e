"""Unit tests for front-matter splitting and decoding."""

from __future__ import annotations

import pytest

from folio.content.frontmatter import (
    FrontMatterFormat,
    parse_front_matter,
    split_front_matter,
)
from folio.diagnostics import FileError


def test_yaml_front_matter_keys_are_lower_cased() -> None:
    """YAML keys are lower-cased at every nesting level."""
    meta, body = parse_front_matter(
        "---\nTitle: Hello\nAuthor:\n  Name: Ada\nTags: [One, Two]\n---\nBody\n",
        "post.md",
    )
    assert meta == {"title": "Hello", "author": {"name": "Ada"}, "tags": ["One", "Two"]}
    assert body == "Body\n"


def test_toml_front_matter() -> None:
    """``+++`` fences hold TOML."""
    meta, body = parse_front_matter('+++\nTitle = "Hi"\nweight = 3\n+++\nText', "p.md")
    assert meta == {"title": "Hi", "weight": 3}
    assert body == "Text"


def test_json_front_matter() -> None:
    """A leading JSON object is front matter; the rest is the body."""
    meta, body = parse_front_matter('{"Title": "J"}\n\nBody', "p.md")
    assert meta == {"title": "J"}
    assert body == "Body"


def test_text_without_front_matter() -> None:
    """Plain content has empty metadata and is returned unchanged."""
    fmt, raw, body = split_front_matter("# Heading\n")
    assert fmt is FrontMatterFormat.NONE
    assert raw == ""
    assert body == "# Heading\n"


@pytest.mark.parametrize(
    "text",
    [
        "{{< note >}}Careful{{< /note >}}\n",
        "  {{< ref \"post.md\" >}}\n",
    ],
)
def test_body_opening_with_shortcode_has_no_front_matter(text: str) -> None:
    """Double braces start a shortcode, not a JSON object."""
    meta, body = parse_front_matter(text, "p.md")
    assert meta == {}, "Expected no metadata for a shortcode-led body"
    assert body == text


def test_empty_front_matter_block() -> None:
    """An empty YAML block decodes to no metadata."""
    meta, body = parse_front_matter("---\n---\nBody", "p.md")
    assert meta == {}
    assert body == "Body"


def test_yaml_errors_point_into_the_content_file() -> None:
    """Decode errors report the line within the whole file, fence included."""
    text = "---\ntitle: ok\nbroken: [unclosed\n---\nBody\n"
    with pytest.raises(FileError) as excinfo:
        parse_front_matter(text, "post.md")
    err = excinfo.value
    assert err.file_type == "yaml"
    assert err.position.filename == "post.md"
    assert err.position.line >= 3
    assert err.error_context is not None


def test_non_mapping_front_matter_is_rejected() -> None:
    """Front matter must decode to a mapping."""
    with pytest.raises(FileError, match="must be a mapping"):
        parse_front_matter("---\n- a\n- b\n---\n", "p.md")

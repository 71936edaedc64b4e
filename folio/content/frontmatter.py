r"""Split and decode page front matter.

Three delimiters are recognised at the very start of a content file:

* ``---`` fenced YAML, decoded with ruamel.yaml;
* ``+++`` fenced TOML, decoded with :mod:`tomllib`;
* a leading ``{`` JSON object, decoded with :mod:`json`.

Decoded keys are lower-cased at every depth. Decoding failures are raised as
:class:`~folio.diagnostics.FileError` positioned inside the content file.

Example
-------
>>> meta, body = parse_front_matter("---\nTitle: Hello\n---\nBody\n", "post.md")
>>> meta, body
({'title': 'Hello'}, 'Body\n')
"""

from __future__ import annotations

import enum
import json
import re
import tomllib
import typing as typ

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from folio.config import lower_keys
from folio.diagnostics import new_file_error, new_file_error_from_content

YAML_FENCE = re.compile(
    r"\A---[ \t]*\r?\n(.*?)(?:\r?\n)?^---[ \t]*(?:\r?\n|\Z)", re.DOTALL | re.MULTILINE
)
TOML_FENCE = re.compile(
    r"\A\+\+\+[ \t]*\r?\n(.*?)(?:\r?\n)?^\+\+\+[ \t]*(?:\r?\n|\Z)",
    re.DOTALL | re.MULTILINE,
)


class FrontMatterFormat(enum.Enum):
    """Serialisation formats accepted for front matter."""

    NONE = "none"
    YAML = "yaml"
    TOML = "toml"
    JSON = "json"


def split_front_matter(text: str) -> tuple[FrontMatterFormat, str, str]:
    """Return the front-matter format, the raw front matter, and the body."""
    for fmt, pattern in (
        (FrontMatterFormat.YAML, YAML_FENCE),
        (FrontMatterFormat.TOML, TOML_FENCE),
    ):
        match = pattern.match(text)
        if match:
            return fmt, match.group(1), text[match.end() :]
    stripped = text.lstrip()
    # "{{" opens a shortcode or template action, not a JSON object.
    if stripped.startswith("{") and not stripped.startswith("{{"):
        offset = len(text) - len(stripped)
        try:
            _, end = json.JSONDecoder().raw_decode(text, offset)
        except json.JSONDecodeError:
            # Let the decoder report the position against the whole object.
            return FrontMatterFormat.JSON, text[offset:], ""
        return FrontMatterFormat.JSON, text[offset:end], text[end:].lstrip("\r\n")
    return FrontMatterFormat.NONE, "", text


def parse_front_matter(text: str, filename: str) -> tuple[dict[str, typ.Any], str]:
    """Decode the front matter of ``text`` and return it with the body.

    Parameters
    ----------
    text : str
        Full content file text.
    filename : str
        Name reported in decoding errors.

    Returns
    -------
    tuple[dict[str, Any], str]
        Lower-cased front-matter mapping and the remaining content body.

    Raises
    ------
    FileError
        If the front matter cannot be decoded or is not a mapping.
    """
    fmt, raw, body = split_front_matter(text)
    if fmt is FrontMatterFormat.NONE:
        return {}, body
    try:
        decoded = _decode(fmt, raw)
    except (YAMLError, tomllib.TOMLDecodeError, json.JSONDecodeError) as exc:
        # Positions are relative to the front matter; the fence adds one line.
        err = new_file_error(filename, exc)
        if fmt is not FrontMatterFormat.JSON:
            err.position.line += 1
            err.position.offset = -1
        raise err.update_content(text) from exc
    if decoded is None:
        return {}, body
    if not isinstance(decoded, dict):
        exc = TypeError(f"front matter must be a mapping, got {type(decoded).__name__}")
        raise new_file_error_from_content(filename, exc, raw) from exc
    return lower_keys(decoded), body


def _decode(fmt: FrontMatterFormat, raw: str) -> typ.Any:
    match fmt:
        case FrontMatterFormat.YAML:
            loader = YAML(typ="safe")
            loader.version = (1, 2)
            return loader.load(raw)
        case FrontMatterFormat.TOML:
            return tomllib.loads(raw)
        case FrontMatterFormat.JSON:
            return json.loads(raw)
        case _:
            return None


__all__ = ["FrontMatterFormat", "parse_front_matter", "split_front_matter"]

"""Decorate decoding and template errors with file positions and snippets.

Front-matter decoders and the template parser each report failures in their
own shape. :func:`new_file_error` normalises them into a :class:`FileError`
carrying a :class:`Position`, the detected file type, and (after
:meth:`FileError.update_content`) an :class:`ErrorContext` with the
surrounding source lines and the Pygments lexer to highlight them with.

The build only uses these errors for reporting; no control flow depends on
the extracted positions.

Example
-------
>>> import json
>>> try:
...     json.loads('{"a": }')
... except json.JSONDecodeError as exc:
...     err = new_file_error("post.json", exc)
>>> err.position.line, err.file_type
(1, 'json')
"""

from __future__ import annotations

import dataclasses as dc
import json
import re
import tomllib
import typing as typ
from pathlib import PurePosixPath

from jinja2 import TemplateSyntaxError
from pygments.lexers import get_lexer_by_name, get_lexer_for_filename
from pygments.util import ClassNotFound
from ruamel.yaml.error import MarkedYAMLError

CONTEXT_LINES = 2
LINE_NUMBER_PATTERNS = (
    re.compile(r"line (\d+), column (\d+)"),
    re.compile(r"line (\d+), col(?:umn)? (\d+)"),
    re.compile(r":(\d+):(\d+)"),
    re.compile(r"line (\d+)"),
)
FILE_TYPE_LEXERS = {
    "md": "markdown",
    "markdown": "markdown",
    "yml": "yaml",
    "yaml": "yaml",
    "toml": "toml",
    "json": "json",
    "html": "html+jinja",
    "xml": "xml+jinja",
}


@dc.dataclass(slots=True)
class Position:
    """Location of an error inside a file; offsets are ``-1`` when unknown."""

    filename: str = ""
    line: int = 1
    column: int = 1
    offset: int = -1

    def __str__(self) -> str:
        return f"{self.filename}:{self.line}:{self.column}"


@dc.dataclass(slots=True)
class ErrorContext:
    """Lines surrounding an error and the lexer used to display them."""

    lines: list[str]
    position: Position
    lines_pos: int
    lexer: str


class FileError(Exception):
    """An error tied to a position inside a source file."""

    def __init__(self, cause: BaseException, position: Position, file_type: str) -> None:
        super().__init__(str(cause))
        self.cause = cause
        self.position = position
        self.file_type = file_type
        self.error_context: ErrorContext | None = None
        self.__cause__ = cause

    def __str__(self) -> str:
        return f"{self.position}: {self.cause}"

    def update_position(self, position: Position) -> FileError:
        """Replace the position, keeping the old filename when none is given."""
        if position.filename and not self.file_type:
            self.file_type = _file_type(position.filename)
        if not position.filename:
            position.filename = self.position.filename
        self.position = position
        return self

    def update_content(self, content: str) -> FileError:
        """Attach an :class:`ErrorContext` built from the file's ``content``."""
        lines = content.splitlines()
        line = self.position.line
        if line <= 1 and self.position.offset > 0:
            line = content.count("\n", 0, self.position.offset) + 1
            line_start = content.rfind("\n", 0, self.position.offset) + 1
            self.position.line = line
            self.position.column = self.position.offset - line_start + 1
        start = max(line - 1 - CONTEXT_LINES, 0)
        end = min(line + CONTEXT_LINES, len(lines))
        self.error_context = ErrorContext(
            lines=lines[start:end],
            position=dc.replace(self.position),
            lines_pos=line - 1 - start,
            lexer=_lexer_name(self.file_type, self.position.filename),
        )
        return self

    def snippet(self) -> str:
        """Return the context lines with a marker on the failing line."""
        if self.error_context is None:
            return ""
        ctx = self.error_context
        first = ctx.position.line - ctx.lines_pos
        width = len(str(first + len(ctx.lines)))
        rendered = []
        for idx, text in enumerate(ctx.lines):
            marker = ">" if idx == ctx.lines_pos else " "
            rendered.append(f"{marker} {first + idx:>{width}} | {text}")
        return "\n".join(rendered)


def new_file_error(name: str, err: BaseException) -> FileError:
    """Wrap ``err`` in a :class:`FileError` positioned inside file ``name``."""
    file_type, position = _extract_file_type_position(err)
    position.filename = name
    if not file_type:
        file_type = _file_type(name)
    return FileError(err, position, file_type)


def new_file_error_from_content(name: str, err: BaseException, content: str) -> FileError:
    """Wrap ``err`` and immediately attach context lines from ``content``."""
    return new_file_error(name, err).update_content(content)


def unwrap_file_error(err: BaseException | None) -> FileError | None:
    """Return the first :class:`FileError` in ``err``'s cause chain."""
    while err is not None:
        if isinstance(err, FileError):
            return err
        err = err.__cause__
    return None


def _extract_file_type_position(err: BaseException) -> tuple[str, Position]:
    position = Position()
    match err:
        case json.JSONDecodeError():
            return "json", Position(line=err.lineno, column=err.colno, offset=err.pos)
        case MarkedYAMLError() if err.problem_mark is not None:
            mark = err.problem_mark
            return "yaml", Position(
                line=mark.line + 1, column=mark.column + 1, offset=mark.index
            )
        case TemplateSyntaxError():
            return _file_type(err.filename or err.name or ""), Position(
                line=err.lineno or 1
            )
        case tomllib.TOMLDecodeError():
            file_type = "toml"
        case _:
            file_type = ""
    line, column = _line_and_column_from_message(str(err))
    if line > 0:
        position.line = line
        position.column = column
    return file_type, position


def _line_and_column_from_message(message: str) -> tuple[int, int]:
    for pattern in LINE_NUMBER_PATTERNS:
        match = pattern.search(message)
        if match is None:
            continue
        groups = match.groups()
        column = int(groups[1]) if len(groups) > 1 else 1
        return int(groups[0]), column
    return -1, -1


def _file_type(filename: str) -> str:
    return PurePosixPath(filename).suffix.lstrip(".").lower()


def _lexer_name(file_type: str, filename: str) -> str:
    alias = FILE_TYPE_LEXERS.get(file_type)
    try:
        if alias:
            lexer = get_lexer_by_name(alias)
        else:
            lexer = get_lexer_for_filename(filename)
    except ClassNotFound:
        return "text"
    return typ.cast("str", lexer.aliases[0] if lexer.aliases else lexer.name)


__all__ = [
    "ErrorContext",
    "FileError",
    "Position",
    "new_file_error",
    "new_file_error_from_content",
    "unwrap_file_error",
]

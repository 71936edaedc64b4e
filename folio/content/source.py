"""Discover content files and derive their filename conventions.

The build engine never walks the filesystem itself; it consumes
:class:`SourceFile` records from a content source. Each record carries the
raw bytes plus the names derived from the filename: the logical name
(``post.fr.md``), the translation base name (``post``), and the language the
file belongs to.

Two sources are provided: :class:`FilesystemContentSource` walks a content
directory, and :class:`MemoryContentSource` serves files from a mapping, which
keeps tests free of temporary trees.

Example
-------
>>> source = MemoryContentSource({"blog/post.fr.md": "Bonjour"}, languages={"en", "fr"})
>>> [(f.rel_path, f.lang, f.translation_base_name) for f in source.files()]
[('blog/post.fr.md', 'fr', 'post')]
"""

from __future__ import annotations

import dataclasses as dc
import posixpath
import typing as typ
from pathlib import Path

from folio._constants import BRANCH_MARKER, CONTENT_EXTENSIONS, INDEX_MARKER

if typ.TYPE_CHECKING:
    import collections.abc as cabc


@dc.dataclass(frozen=True, slots=True)
class SourceFile:
    """A single file supplied by a content source.

    Attributes
    ----------
    rel_path : str
        Slash-separated path relative to the content root.
    lang : str
        Language the file belongs to.
    data : bytes
        Raw file contents.
    filename : str
        Name used in diagnostics; the absolute path for on-disk files.
    """

    rel_path: str
    lang: str
    data: bytes
    filename: str = ""

    @property
    def logical_name(self) -> str:
        """Return the file name including extension, e.g. ``post.fr.md``."""
        return posixpath.basename(self.rel_path)

    @property
    def dir(self) -> str:
        """Return the containing directory relative to the content root."""
        return posixpath.dirname(self.rel_path)

    @property
    def ext(self) -> str:
        """Return the lower-cased extension without its dot."""
        _, ext = posixpath.splitext(self.logical_name)
        return ext.lstrip(".").lower()

    @property
    def base_name(self) -> str:
        """Return the logical name with the extension stripped."""
        stem, _ = posixpath.splitext(self.logical_name)
        return stem

    @property
    def translation_base_name(self) -> str:
        """Return the base name with any language code stripped."""
        stem, lang_ext = posixpath.splitext(self.base_name)
        if lang_ext and lang_ext.lstrip(".").lower() == self.lang:
            return stem
        return self.base_name

    @property
    def is_content(self) -> bool:
        """Return ``True`` for files that materialize into pages."""
        return self.ext in CONTENT_EXTENSIONS

    @property
    def is_branch_index(self) -> bool:
        """Return ``True`` for ``_index`` backing files of index-kind pages."""
        return self.is_content and self.translation_base_name == BRANCH_MARKER

    @property
    def is_leaf_index(self) -> bool:
        """Return ``True`` for ``index`` files that own a leaf bundle."""
        return self.is_content and self.translation_base_name == INDEX_MARKER

    @property
    def sections(self) -> tuple[str, ...]:
        """Return the directory components as a section path."""
        return tuple(part for part in self.dir.split("/") if part)

    def text(self) -> str:
        """Decode the raw bytes as UTF-8, tolerating a byte-order mark."""
        return self.data.decode("utf-8-sig")


class ContentSource(typ.Protocol):
    """Anything that can enumerate content files in a deterministic order."""

    def files(self) -> list[SourceFile]:
        """Return every file under the content root."""
        ...


def detect_language(
    logical_name: str, languages: cabc.Collection[str], default: str
) -> str:
    """Return the language encoded in ``name.<lang>.ext`` or ``default``."""
    stem, _ = posixpath.splitext(logical_name)
    _, lang_ext = posixpath.splitext(stem)
    candidate = lang_ext.lstrip(".").lower()
    if candidate and candidate in languages:
        return candidate
    return default


class FilesystemContentSource:
    """Walk a content directory on disk, sorted by relative path."""

    def __init__(
        self,
        root: Path,
        *,
        languages: cabc.Collection[str] = (),
        default_language: str = "en",
    ) -> None:
        self.root = root
        self.languages = set(languages) or {default_language}
        self.default_language = default_language

    def files(self) -> list[SourceFile]:
        if not self.root.is_dir():
            msg = f"No content directory found, expecting to find it at {self.root}"
            raise FileNotFoundError(msg)
        found: list[SourceFile] = []
        for path in sorted(self.root.rglob("*")):
            if not path.is_file() or path.name.startswith("."):
                continue
            rel_path = path.relative_to(self.root).as_posix()
            found.append(
                SourceFile(
                    rel_path=rel_path,
                    lang=detect_language(
                        path.name, self.languages, self.default_language
                    ),
                    data=path.read_bytes(),
                    filename=str(path),
                )
            )
        return found


class MemoryContentSource:
    """Serve content files from an in-memory mapping of path to text."""

    def __init__(
        self,
        files: cabc.Mapping[str, str | bytes],
        *,
        languages: cabc.Collection[str] = (),
        default_language: str = "en",
    ) -> None:
        self._files = dict(files)
        self.languages = set(languages) or {default_language}
        self.default_language = default_language

    def files(self) -> list[SourceFile]:
        found: list[SourceFile] = []
        for rel_path in sorted(self._files):
            payload = self._files[rel_path]
            data = payload.encode("utf-8") if isinstance(payload, str) else payload
            found.append(
                SourceFile(
                    rel_path=rel_path,
                    lang=detect_language(
                        posixpath.basename(rel_path),
                        self.languages,
                        self.default_language,
                    ),
                    data=data,
                    filename=rel_path,
                )
            )
        return found


__all__ = [
    "ContentSource",
    "FilesystemContentSource",
    "MemoryContentSource",
    "SourceFile",
    "detect_language",
]

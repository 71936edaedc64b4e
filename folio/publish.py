"""Destinations for rendered build output."""

from __future__ import annotations

import logging
import typing as typ
from pathlib import Path, PurePosixPath

logger = logging.getLogger(__name__)


class PublishSink(typ.Protocol):
    """Receives rendered artifacts keyed by site-relative path."""

    def write(self, path: str, content: bytes) -> None:
        """Persist ``content`` at the site-relative ``path``."""
        ...


def _relative(path: str) -> PurePosixPath:
    rel = PurePosixPath(path.lstrip("/"))
    if not rel.parts or ".." in rel.parts:
        msg = f"refusing to publish outside the output directory: {path!r}"
        raise ValueError(msg)
    return rel


class FilesystemSink:
    """Write artifacts beneath a publish directory."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def write(self, path: str, content: bytes) -> None:
        """Write ``content`` to ``root/path``, creating parent directories."""
        target = self.root.joinpath(*_relative(path).parts)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
        logger.debug("wrote %s", target)


class MemorySink:
    """Collect artifacts in a dictionary; used by tests and dry runs."""

    def __init__(self) -> None:
        self.files: dict[str, bytes] = {}

    def write(self, path: str, content: bytes) -> None:
        """Store ``content`` under the normalised ``path``."""
        self.files[_relative(path).as_posix()] = content

    def text(self, path: str) -> str:
        """Return the artifact at ``path`` decoded as UTF-8."""
        return self.files[_relative(path).as_posix()].decode("utf-8")


__all__ = ["FilesystemSink", "MemorySink", "PublishSink"]

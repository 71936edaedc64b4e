"""Reference index mapping lookup keys to exactly one page or an ambiguity.

The index is a plain mapping with one twist: a key may hold the
:data:`AMBIGUOUS` marker instead of a page. The only transitions are
absent → page (first writer) and page → :data:`AMBIGUOUS` (a different page
claims the same key); the marker is never replaced.

:class:`LazyIndex` wraps construction so the full index is built on the first
lookup after an invalidation and reused until the next one.
"""

from __future__ import annotations

import enum
import threading
import typing as typ

from folio.errors import AmbiguousReferenceError

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from .models import Page


class Ambiguity(enum.Enum):
    """Marker stored under keys that match more than one distinct page."""

    AMBIGUOUS = "ambiguous"


AMBIGUOUS = Ambiguity.AMBIGUOUS

Entry = typ.Union["Page", Ambiguity]


class ReferenceIndex:
    """Lookup table from reference strings to pages."""

    def __init__(self) -> None:
        self._entries: dict[str, Entry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __iter__(self) -> cabc.Iterator[str]:
        return iter(self._entries)

    def add(self, key: str, page: Page) -> None:
        """Bind ``key`` to ``page`` following the first-writer conflict rule."""
        existing = self._entries.get(key)
        if existing is None:
            self._entries[key] = page
        elif existing is not AMBIGUOUS and existing is not page:
            self._entries[key] = AMBIGUOUS

    def entry(self, key: str) -> Entry | None:
        """Return the raw binding for ``key``: a page, the marker, or ``None``."""
        return self._entries.get(key)

    def get(self, key: str) -> Page | None:
        """Return the page bound to ``key`` or ``None`` when absent.

        Raises
        ------
        AmbiguousReferenceError
            If ``key`` is bound to more than one distinct page.
        """
        existing = self._entries.get(key)
        if existing is AMBIGUOUS:
            raise AmbiguousReferenceError(key)
        return typ.cast("Page | None", existing)


class IndexState(enum.Enum):
    """Lifecycle of a lazily built index."""

    EMPTY = "empty"
    BUILDING = "building"
    READY = "ready"


class LazyIndex:
    """Build a :class:`ReferenceIndex` on first use and memoize it.

    Readers that arrive while another thread is building block on the lock
    until the index is complete; nobody observes a partially populated index.
    """

    def __init__(self, loader: cabc.Callable[[], ReferenceIndex]) -> None:
        self._loader = loader
        self._lock = threading.RLock()
        self._index: ReferenceIndex | None = None
        self.state = IndexState.EMPTY

    def get(self) -> ReferenceIndex:
        """Return the built index, building it now if needed."""
        index = self._index
        if index is not None:
            return index
        with self._lock:
            if self._index is None:
                if self.state is IndexState.BUILDING:
                    msg = "reference index queried while it is being built"
                    raise RuntimeError(msg)
                self.state = IndexState.BUILDING
                try:
                    self._index = self._loader()
                except BaseException:
                    self.state = IndexState.EMPTY
                    raise
                self.state = IndexState.READY
            return self._index

    def invalidate(self) -> None:
        """Drop the built index so the next lookup rebuilds it in full."""
        with self._lock:
            self._index = None
            self.state = IndexState.EMPTY


__all__ = [
    "AMBIGUOUS",
    "Ambiguity",
    "IndexState",
    "LazyIndex",
    "ReferenceIndex",
]

"""Cache of published resource payloads keyed by relative permalink."""

from __future__ import annotations

import logging
import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc

logger = logging.getLogger(__name__)


class ResourceCache:
    """Memoize resource payloads and evict them by path prefix.

    Keys are slash-separated publish paths such as ``/blog/post/cover.png``.
    Removing a page evicts every entry under the page's output directory so a
    re-added page never sees payloads from its previous incarnation.
    """

    def __init__(self) -> None:
        self._entries: dict[str, bytes] = {}

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get_or_create(self, key: str, factory: cabc.Callable[[], bytes]) -> bytes:
        """Return the cached payload for ``key``, creating it on first use."""
        try:
            return self._entries[key]
        except KeyError:
            payload = factory()
            self._entries[key] = payload
            return payload

    def delete_by_prefix(self, prefix: str) -> int:
        """Evict entries whose key starts with ``prefix`` and return the count."""
        doomed = [key for key in self._entries if key.startswith(prefix)]
        for key in doomed:
            del self._entries[key]
        if doomed:
            logger.debug("evicted %d cached resources under %s", len(doomed), prefix)
        return len(doomed)


__all__ = ["ResourceCache"]

"""Wall-clock timing for build phases."""

from __future__ import annotations

import contextlib
import logging
import time
import typing as typ
from collections import defaultdict

if typ.TYPE_CHECKING:
    import collections.abc as cabc

logger = logging.getLogger(__name__)


class PhaseTimer:
    """Accumulate elapsed time per named phase and log each completion."""

    def __init__(self) -> None:
        self._times: dict[str, list[float]] = defaultdict(list)

    @contextlib.contextmanager
    def start(self, name: str) -> cabc.Iterator[None]:
        """Time the enclosed block under ``name``."""
        start_time = time.perf_counter()
        try:
            yield None
        finally:
            elapsed = time.perf_counter() - start_time
            self._times[name].append(elapsed)
            logger.info("%s finished in %.3fs", name, elapsed)

    def times(self) -> dict[str, float]:
        """Return the total time recorded for each phase."""
        return {name: sum(values) for name, values in self._times.items()}

    def summary(self) -> str:
        """Return a two-column table of phase timings."""
        times = self.times()
        if not times:
            return ""
        width = max(len(name) for name in times)
        return "\n".join(f"{name:{width}} {value:.2f}" for name, value in times.items())


__all__ = ["PhaseTimer"]

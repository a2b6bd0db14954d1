"""
In-process TTL cache holding the latest complete price snapshot.
"""

import asyncio
import time
from typing import Callable, Optional

from ..api.schemas import CacheEntry, PriceSnapshot
from ..core.logging_config import create_logger

logger = create_logger(__name__)


class PriceCache:
    """Single-entry snapshot cache with a fixed freshness window.

    Reads and writes go through one asyncio lock that is held only while the
    entry is checked, copied or replaced, never across upstream I/O. Two
    concurrent misses can therefore both refetch; the last write wins.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be greater than zero")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entry: Optional[CacheEntry] = None
        self._lock = asyncio.Lock()

    async def read(self) -> Optional[PriceSnapshot]:
        """Return a copy of the cached snapshot while fresh, otherwise None."""
        async with self._lock:
            entry = self._entry
            if entry is None:
                return None
            if self._clock() - entry.stored_at >= self.ttl_seconds:
                return None
            return dict(entry.prices)

    async def write(self, prices: PriceSnapshot) -> None:
        """Replace the cached snapshot, stamped with the current clock."""
        entry = CacheEntry(prices=dict(prices), stored_at=self._clock())
        async with self._lock:
            self._entry = entry
        logger.debug("Price snapshot cached", extra={
            "symbols": len(entry.prices),
            "ttl_seconds": self.ttl_seconds
        })

    def age(self) -> Optional[float]:
        """Seconds since the last write, or None when nothing was cached."""
        entry = self._entry
        if entry is None:
            return None
        return self._clock() - entry.stored_at

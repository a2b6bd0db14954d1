"""
Request orchestration for price lookups.
Serves the cached snapshot while fresh and refreshes it through the aggregator on a miss.
"""

import asyncio
from typing import Dict, Optional

from ..api.schemas import MarketSpecification, PriceSnapshot
from ..core.logging_config import create_logger
from .aggregator import PriceAggregator
from .cache import PriceCache

logger = create_logger(__name__)


class PriceService:
    """Cache-first price lookups for one market specification."""

    def __init__(
        self,
        cache: PriceCache,
        aggregator: PriceAggregator,
        markets: MarketSpecification,
        single_flight: bool = False
    ):
        self.cache = cache
        self.aggregator = aggregator
        self.markets = markets
        self.single_flight = single_flight
        self._inflight: Dict[int, asyncio.Task] = {}

    async def get_prices(self) -> PriceSnapshot:
        """
        Return the current price snapshot.

        A failed refresh propagates AggregationFailedError and leaves the
        cache untouched.
        """
        cached = await self.cache.read()
        if cached is not None:
            logger.info("/prices | CACHE HIT")
            return cached

        logger.info("/prices | CACHE MISS | Fetching new data")

        if self.single_flight:
            prices = await self._shared_refresh()
        else:
            prices = await self._refresh()
        return dict(prices)

    async def _refresh(self) -> PriceSnapshot:
        prices = await self.aggregator.aggregate(self.markets)
        await self.cache.write(prices)
        return prices

    async def _shared_refresh(self) -> PriceSnapshot:
        """Join the round already in flight for these markets, or start one."""
        key = id(self.markets)
        task: Optional[asyncio.Task] = self._inflight.get(key)
        if task is None:
            task = asyncio.create_task(self._refresh())
            self._inflight[key] = task
            task.add_done_callback(lambda done: self._finish_round(key, done))
        else:
            logger.debug("Joining in-flight price refresh", extra={"markets": len(self.markets)})
        # A cancelled caller must not cancel the round other callers are waiting on
        return await asyncio.shield(task)

    def _finish_round(self, key: int, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if not task.cancelled():
            task.exception()

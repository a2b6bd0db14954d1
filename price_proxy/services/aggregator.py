"""
Fan-out/fan-in aggregation of per-market prices.
Launches one lookup per market concurrently and returns an all-or-nothing snapshot.
"""

import asyncio
from typing import Set, Tuple

from ..api.schemas import MarketSpecification, PriceSnapshot
from ..core.logging_config import create_logger
from ..providers.base import BasePriceSource, PriceSourceError

logger = create_logger(__name__)


class AggregationFailedError(Exception):
    """Raised when any market lookup in a round fails.

    The message is the underlying price source error's message.
    """

    def __init__(self, symbol: str, cause: PriceSourceError):
        self.symbol = symbol
        self.market = cause.market
        self.cause = cause
        super().__init__(str(cause))


class PriceAggregator:
    """Fetches every market of a specification concurrently."""

    def __init__(self, source: BasePriceSource):
        self._source = source
        # Lookups still running after a failed round; kept referenced until done
        self._pending: Set[asyncio.Task] = set()

    @property
    def pending_count(self) -> int:
        """Number of lookups from earlier rounds that have not finished yet."""
        return len(self._pending)

    async def aggregate(self, markets: MarketSpecification) -> PriceSnapshot:
        """
        Fetch the price of every market concurrently.

        Args:
            markets: Symbol key to upstream market mapping

        Returns:
            Snapshot keyed exactly like ``markets``, in the same order

        Raises:
            AggregationFailedError: On the first lookup failure observed.
                Sibling lookups are left running and their results discarded.
        """
        if not markets:
            return {}

        tasks = []
        for symbol, market in markets.items():
            task = asyncio.create_task(self._fetch_one(symbol, market))
            self._pending.add(task)
            task.add_done_callback(self._on_task_done)
            tasks.append(task)

        prices = {}
        try:
            for next_result in asyncio.as_completed(tasks):
                symbol, price = await next_result
                prices[symbol] = price
        except AggregationFailedError as e:
            logger.error("Price aggregation failed", extra={
                "symbol": e.symbol,
                "market": e.market,
                "completed": len(prices),
                "requested": len(markets),
                "error": str(e)
            })
            raise

        logger.info("Price aggregation completed", extra={
            "requested": len(markets),
            "successful": len(prices)
        })
        return {symbol: prices[symbol] for symbol in markets}

    async def _fetch_one(self, symbol: str, market: str) -> Tuple[str, float]:
        try:
            price = await self._source.fetch(market)
        except PriceSourceError as e:
            raise AggregationFailedError(symbol, e) from e
        return symbol, price

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        # Mark the outcome retrieved so abandoned failures are not reported by the loop
        if not task.cancelled():
            task.exception()

"""
CoinEx price source implementation.
Reads the last traded price from the CoinEx v1 market ticker endpoint.
"""

import math
import re
from typing import Any, Optional
import httpx

from .base import BasePriceSource, UpstreamMalformedError
from ..core.config import settings
from ..core.logging_config import create_logger

logger = create_logger(__name__)

# Plain decimal or exponent notation; no whitespace, underscores or hex
DECIMAL_PATTERN = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)


class CoinExPriceSource(BasePriceSource):
    """CoinEx ticker client."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        super().__init__(
            name="coinex",
            base_url=base_url or settings.coinex_api_url,
            timeout=timeout or settings.request_timeout,
            transport=transport
        )

    async def fetch(self, market: str) -> float:
        """Get the last price from GET /market/ticker?market=<market>."""
        payload = await self._get_json("/market/ticker", market, params={'market': market})
        last = self._extract_last(payload, market)

        if not DECIMAL_PATTERN.fullmatch(last):
            raise UpstreamMalformedError(
                f"Non-numeric last price {last!r} from {self.name} market {market}",
                self.name,
                market
            )

        price = float(last)
        if not math.isfinite(price):
            raise UpstreamMalformedError(
                f"Non-finite last price {last!r} from {self.name} market {market}",
                self.name,
                market
            )

        logger.debug("Retrieved price from CoinEx", extra={
            "provider": self.name,
            "market": market,
            "price": price
        })
        return price

    def _extract_last(self, payload: Any, market: str) -> str:
        """Pull data.ticker.last out of the response body."""
        try:
            last = payload['data']['ticker']['last']
        except (KeyError, TypeError, IndexError):
            raise UpstreamMalformedError(
                f"Unexpected response shape from {self.name} market {market}: missing data.ticker.last",
                self.name,
                market
            ) from None

        if not isinstance(last, str):
            raise UpstreamMalformedError(
                f"Last price for {self.name} market {market} is not a string: {last!r}",
                self.name,
                market
            )
        return last

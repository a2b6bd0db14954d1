"""Shared fakes for price proxy tests."""

import asyncio
from typing import Dict, List, Optional, Set

import httpx
import pytest

from price_proxy.providers.base import BasePriceSource, UpstreamUnreachableError


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakePriceSource(BasePriceSource):
    """In-memory price source that records every lookup."""

    def __init__(
        self,
        prices: Dict[str, float],
        failing: Optional[Set[str]] = None,
        gate: Optional[asyncio.Event] = None,
    ) -> None:
        super().__init__(name="fake", base_url="http://fake.invalid")
        self.prices = prices
        self.failing = failing or set()
        self.gate = gate
        self.calls: List[str] = []

    async def fetch(self, market: str) -> float:
        self.calls.append(market)
        if market in self.failing:
            raise UpstreamUnreachableError(f"{market} unreachable", self.name, market)
        if self.gate is not None:
            await self.gate.wait()
        return self.prices[market]


def ticker_body(last: str) -> dict:
    return {"code": 0, "data": {"date": 1700000000000, "ticker": {"last": last}}, "message": "OK"}


class TickerTransport:
    """httpx.MockTransport handler serving CoinEx-shaped tickers."""

    def __init__(self, lasts: Dict[str, str], failing: Optional[Set[str]] = None) -> None:
        self.lasts = lasts
        self.failing = failing or set()
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        market = request.url.params.get("market")
        if market in self.failing:
            raise httpx.ConnectError(f"cannot reach ticker for {market}", request=request)
        return httpx.Response(200, json=ticker_body(self.lasts[market]))

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()

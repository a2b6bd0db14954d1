"""Cache-first orchestration of price refreshes."""

import asyncio
import logging

import pytest

from price_proxy.services.aggregator import AggregationFailedError, PriceAggregator
from price_proxy.services.cache import PriceCache
from price_proxy.services.price_service import PriceService

from conftest import FakePriceSource

MARKETS = {"eth": "ETHUSDC", "bnb": "BNBUSDC"}
PRICES = {"ETHUSDC": 3400.5, "BNBUSDC": 600.25}


def build_service(source, clock, single_flight: bool = False) -> PriceService:
    return PriceService(
        cache=PriceCache(ttl_seconds=10, clock=clock),
        aggregator=PriceAggregator(source),
        markets=MARKETS,
        single_flight=single_flight,
    )


def test_miss_fetches_and_hit_reuses(clock) -> None:
    """The second call inside the window makes no upstream calls."""

    source = FakePriceSource(PRICES)
    service = build_service(source, clock)

    async def run():
        first = await service.get_prices()
        calls_after_first = len(source.calls)
        clock.advance(5)
        second = await service.get_prices()
        return first, second, calls_after_first

    first, second, calls_after_first = asyncio.run(run())
    assert first == second == {"eth": 3400.5, "bnb": 600.25}
    assert calls_after_first == 2
    assert len(source.calls) == 2


def test_expired_cache_refetches(clock) -> None:
    source = FakePriceSource(PRICES)
    service = build_service(source, clock)

    async def run():
        await service.get_prices()
        clock.advance(10)
        source.prices = {"ETHUSDC": 3500.0, "BNBUSDC": 601.0}
        return await service.get_prices()

    assert asyncio.run(run()) == {"eth": 3500.0, "bnb": 601.0}
    assert len(source.calls) == 4


def test_failure_on_first_call_leaves_cache_empty(clock) -> None:
    source = FakePriceSource(PRICES, failing={"BNBUSDC"})
    service = build_service(source, clock)

    with pytest.raises(AggregationFailedError, match="BNBUSDC unreachable"):
        asyncio.run(service.get_prices())

    assert service.cache.age() is None


def test_failure_after_expiry_keeps_prior_entry(clock) -> None:
    """A failed round neither overwrites nor revives the stale entry."""

    source = FakePriceSource(PRICES)
    service = build_service(source, clock)

    async def run():
        await service.get_prices()
        clock.advance(12)
        source.failing = {"ETHUSDC"}
        with pytest.raises(AggregationFailedError):
            await service.get_prices()
        return await service.cache.read()

    assert asyncio.run(run()) is None
    assert service.cache.age() == pytest.approx(12)


def test_returned_snapshot_is_a_copy(clock) -> None:
    service = build_service(FakePriceSource(PRICES), clock)

    async def run():
        fresh = await service.get_prices()
        fresh["eth"] = -1.0
        cached = await service.get_prices()
        cached["bnb"] = -1.0
        return await service.get_prices()

    assert asyncio.run(run()) == {"eth": 3400.5, "bnb": 600.25}


def concurrent_misses(single_flight: bool, clock):
    async def run():
        gate = asyncio.Event()
        source = FakePriceSource(PRICES, gate=gate)
        service = build_service(source, clock, single_flight=single_flight)
        callers = [asyncio.create_task(service.get_prices()) for _ in range(3)]
        await asyncio.sleep(0)
        gate.set()
        results = await asyncio.gather(*callers)
        return source, results

    return asyncio.run(run())


def test_concurrent_misses_each_refetch_by_default(clock) -> None:
    source, results = concurrent_misses(False, clock)

    assert len(source.calls) == 3 * len(MARKETS)
    assert all(result == {"eth": 3400.5, "bnb": 600.25} for result in results)


def test_single_flight_shares_one_round(clock) -> None:
    source, results = concurrent_misses(True, clock)

    assert sorted(source.calls) == sorted(MARKETS.values())
    assert all(result == {"eth": 3400.5, "bnb": 600.25} for result in results)


def test_single_flight_propagates_failure_to_every_waiter(clock) -> None:
    async def run():
        source = FakePriceSource(PRICES, failing={"ETHUSDC"})
        service = build_service(source, clock, single_flight=True)
        results = await asyncio.gather(
            service.get_prices(), service.get_prices(), return_exceptions=True
        )
        return source, results

    source, results = asyncio.run(run())
    assert all(isinstance(result, AggregationFailedError) for result in results)
    assert source.calls.count("ETHUSDC") == 1


def test_logs_cache_miss_then_hit(clock, caplog) -> None:
    caplog.set_level(logging.INFO, logger="price_proxy")
    service = build_service(FakePriceSource(PRICES), clock)

    async def run():
        await service.get_prices()
        await service.get_prices()

    asyncio.run(run())

    messages = [r.getMessage() for r in caplog.records if r.name == "price_proxy.services.price_service"]
    assert messages == ["/prices | CACHE MISS | Fetching new data", "/prices | CACHE HIT"]

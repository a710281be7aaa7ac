"""
Tests for the price history store and the sampling loop
"""
import asyncio

import aiohttp
import pytest

from errors import FormatError, GraphQLRequestError, PoolUninitialized, PriceOutOfRange
from amm.models import PoolState, fixed_pool_config
from charts.candles import PricePoint
from linera_config import LinadSettings
from price_sampler import InMemoryPriceHistoryStore, PriceSampler

ONE = 10 ** 18
SERIES = "token-app"


class FakePoolClient:
    def __init__(self, pool=None, error=None):
        self.pool = pool or fixed_pool_config("TST")
        self.error = error
        self.calls = 0

    async def fetch_pool_state(self, symbol):
        self.calls += 1
        if self.error:
            raise self.error
        return self.pool


class BlockingPoolClient(FakePoolClient):
    def __init__(self):
        super().__init__()
        self.release = asyncio.Event()

    async def fetch_pool_state(self, symbol):
        await self.release.wait()
        return await super().fetch_pool_state(symbol)


def make_sampler(client, store=None, **settings):
    return PriceSampler(
        client,
        store or InMemoryPriceHistoryStore(),
        settings=LinadSettings(**settings),
        clock=lambda: 1_700_000_000.5,
    )


class TestInMemoryStore:
    @pytest.mark.asyncio
    async def test_keeps_newest_points_sorted(self):
        store = InMemoryPriceHistoryStore(max_points=3)
        for t in (5, 1, 4, 2, 3):
            await store.append(SERIES, PricePoint(time=t, value=float(t)))
        assert [p.time for p in await store.series(SERIES)] == [3, 4, 5]

    @pytest.mark.asyncio
    async def test_reset(self):
        store = InMemoryPriceHistoryStore()
        await store.append(SERIES, PricePoint(time=1, value=0.5))
        await store.reset(SERIES)
        assert await store.series(SERIES) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", [0, 1000, -1, float("nan"), float("inf")])
    async def test_rejects_out_of_range_values(self, value):
        store = InMemoryPriceHistoryStore()
        with pytest.raises(PriceOutOfRange):
            await store.append(SERIES, PricePoint(time=1, value=value))
        assert await store.series(SERIES) == []

    @pytest.mark.asyncio
    async def test_rejects_bad_keys_and_times(self):
        store = InMemoryPriceHistoryStore()
        with pytest.raises(FormatError):
            await store.append(" ", PricePoint(time=1, value=1.0))
        with pytest.raises(FormatError):
            await store.append(SERIES, PricePoint(time=float("inf"), value=1.0))


@pytest.mark.asyncio
async def test_sample_records_genesis_price():
    store = InMemoryPriceHistoryStore()
    result = await make_sampler(FakePoolClient(), store).sample_now(SERIES, "TST")

    assert result.success
    assert result.point.time == 1_700_000_000_500
    assert result.point.value == pytest.approx(0.0001)
    assert await store.series(SERIES) == [result.point]


@pytest.mark.asyncio
async def test_concurrent_sample_is_skipped():
    client = BlockingPoolClient()
    sampler = make_sampler(client)

    first = asyncio.ensure_future(sampler.sample_now(SERIES, "TST"))
    while not sampler.sampling:
        await asyncio.sleep(0)
    second = await sampler.sample_now(SERIES, "TST")
    client.release.set()

    assert second.skipped
    assert not second.success
    assert (await first).success
    assert client.calls == 1


@pytest.mark.asyncio
async def test_rejected_price_is_not_stored():
    store = InMemoryPriceHistoryStore()
    client = FakePoolClient(pool=PoolState(x=5_000 * ONE, y=ONE))
    result = await make_sampler(client, store).sample_now(SERIES, "TST")

    assert not result.success
    assert isinstance(result.error, PriceOutOfRange)
    assert await store.series(SERIES) == []


@pytest.mark.asyncio
async def test_recovery_flag_comes_from_settings():
    corrupted = fixed_pool_config("TST").with_reserves(x=1_000 * ONE, y=1)

    enabled = await make_sampler(FakePoolClient(pool=corrupted)).sample_now(SERIES, "TST")
    disabled = await make_sampler(
        FakePoolClient(pool=corrupted), reserve_recovery_fallback=False
    ).sample_now(SERIES, "TST")

    assert enabled.success
    assert enabled.spot.source == "derived"
    assert not disabled.success


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [PoolUninitialized("empty"), GraphQLRequestError("down", status=502)])
async def test_unreadable_pool(error):
    result = await make_sampler(FakePoolClient(error=error)).sample_now(SERIES, "TST")
    assert not result.success
    assert result.error is error


@pytest.mark.asyncio
async def test_reset_series_reseeds():
    store = InMemoryPriceHistoryStore()
    await store.append(SERIES, PricePoint(time=1, value=0.5))
    sampler = make_sampler(FakePoolClient(), store)

    await sampler.reset_series(SERIES, "TST")

    points = await store.series(SERIES)
    assert len(points) == 1
    assert points[0].value == pytest.approx(0.0001)
    assert len(await sampler.candles(SERIES)) == 1


@pytest.mark.asyncio
async def test_run_stops_on_event():
    stop = asyncio.Event()

    class StoppingClient(FakePoolClient):
        async def fetch_pool_state(self, symbol):
            stop.set()
            return await super().fetch_pool_state(symbol)

    client = StoppingClient()
    await asyncio.wait_for(make_sampler(client).run(SERIES, "TST", stop_event=stop, interval=5), timeout=1)
    assert client.calls == 1


@pytest.mark.asyncio
async def test_run_survives_transport_errors():
    stop = asyncio.Event()

    class UnreachableClient(FakePoolClient):
        async def fetch_pool_state(self, symbol):
            self.calls += 1
            if self.calls >= 3:
                stop.set()
            raise aiohttp.ClientConnectionError("connection refused")

    client = UnreachableClient()
    await asyncio.wait_for(make_sampler(client).run(SERIES, "TST", stop_event=stop, interval=0.01), timeout=1)
    assert client.calls == 3

"""
Spot-price sampling loop and price history storage
"""
import asyncio
import logging
import math
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from errors import FormatError, GraphQLRequestError, PoolUninitialized, PriceOutOfRange
from amm.quote_engine import is_valid_price
from amm.spot_price import SpotPriceResult, compute_spot_price
from charts.candles import Candle, PricePoint, build_candles
from linera_client import LineraClient
from linera_config import LinadSettings, get_settings

logger = logging.getLogger(__name__)

MAX_POINTS_PER_SERIES = 2000


class PriceHistoryStore(ABC):
    """Persistence for sampled prices, keyed by token application id"""

    @abstractmethod
    async def append(self, series_id: str, point: PricePoint) -> None:
        pass

    @abstractmethod
    async def series(self, series_id: str) -> List[PricePoint]:
        pass

    @abstractmethod
    async def reset(self, series_id: str) -> None:
        pass


def validate_point(series_id: str, point: PricePoint) -> None:
    """
    Write guard shared by every store.

    Raises:
        FormatError: missing series id or non-finite time
        PriceOutOfRange: value not finite or outside (0, 1000)
    """
    if not series_id or not series_id.strip():
        raise FormatError("series id is required")
    if not isinstance(point.time, (int, float)) or not math.isfinite(point.time):
        raise FormatError("time must be a finite number")
    if not isinstance(point.value, (int, float)) or not math.isfinite(point.value):
        raise PriceOutOfRange("value must be a finite number")
    if not is_valid_price(point.value):
        raise PriceOutOfRange(f"value {point.value} out of expected range")


class InMemoryPriceHistoryStore(PriceHistoryStore):
    """Keeps each series sorted by time and trimmed to the newest points"""

    def __init__(self, max_points: int = MAX_POINTS_PER_SERIES):
        self.max_points = max_points
        self._series: Dict[str, List[PricePoint]] = {}

    async def append(self, series_id: str, point: PricePoint) -> None:
        validate_point(series_id, point)
        points = self._series.setdefault(series_id.strip(), [])
        points.append(point)
        points.sort(key=lambda p: p.time)
        if len(points) > self.max_points:
            del points[:len(points) - self.max_points]

    async def series(self, series_id: str) -> List[PricePoint]:
        return list(self._series.get(series_id.strip(), []))

    async def reset(self, series_id: str) -> None:
        self._series.pop(series_id.strip(), None)


@dataclass
class SampleResult:
    success: bool
    skipped: bool = False
    point: Optional[PricePoint] = None
    spot: Optional[SpotPriceResult] = None
    error: Optional[Exception] = None


class PriceSampler:
    """
    Periodically samples a pool's spot price into a PriceHistoryStore.

    Only one sample runs at a time; a sample requested while another is in
    flight is skipped, not queued.
    """

    def __init__(
        self,
        client: LineraClient,
        store: PriceHistoryStore,
        settings: Optional[LinadSettings] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.client = client
        self.store = store
        self.settings = settings or get_settings()
        self.clock = clock
        self._lock = asyncio.Lock()

    @property
    def sampling(self) -> bool:
        return self._lock.locked()

    async def sample_now(self, series_id: str, symbol: str) -> SampleResult:
        if self._lock.locked():
            logger.debug(f"Sample for {symbol} already running, skipping")
            return SampleResult(success=False, skipped=True)

        async with self._lock:
            try:
                pool = await self.client.fetch_pool_state(symbol)
            except (PoolUninitialized, GraphQLRequestError) as e:
                logger.warning(f"Could not read pool {symbol}: {e}")
                return SampleResult(success=False, error=e)

            spot = compute_spot_price(pool, recovery_enabled=self.settings.reserve_recovery_fallback)
            if not spot.success:
                logger.warning(f"Spot price for {symbol} rejected: {spot.error}")
                return SampleResult(success=False, spot=spot, error=spot.error)

            point = PricePoint(time=int(self.clock() * 1000), value=spot.price)
            try:
                await self.store.append(series_id, point)
            except PriceOutOfRange as e:
                return SampleResult(success=False, spot=spot, error=e)
            logger.info(f"Recorded {symbol} price {spot.price} ({spot.source})")
            return SampleResult(success=True, point=point, spot=spot)

    async def reset_series(self, series_id: str, symbol: str) -> SampleResult:
        """Drop stored history and seed it with a fresh sample"""
        await self.store.reset(series_id)
        return await self.sample_now(series_id, symbol)

    async def candles(self, series_id: str) -> List[Candle]:
        return build_candles(await self.store.series(series_id))

    async def run(
        self,
        series_id: str,
        symbol: str,
        stop_event: Optional[asyncio.Event] = None,
        interval: Optional[float] = None,
    ) -> None:
        """Sample until stop_event is set; cancellation propagates"""
        stop_event = stop_event or asyncio.Event()
        interval = interval or self.settings.sample_interval_seconds
        logger.info(f"Sampling {symbol} every {interval}s")
        while not stop_event.is_set():
            try:
                await self.sample_now(series_id, symbol)
            except Exception as e:
                logger.error(f"Sampling {symbol} failed: {e!r}")
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                continue
        logger.info(f"Stopped sampling {symbol}")

"""
Candle aggregation - 1 minute OHLC buckets from sampled spot prices
"""
import math
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Optional, Union

BUCKET_SECONDS = 60
# epoch values above this are milliseconds
MILLIS_THRESHOLD = 20_000_000_000
MIN_EPSILON = 1e-8


@dataclass(frozen=True)
class PricePoint:
    time: Union[int, float]
    value: float

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PricePoint":
        return cls(time=data.get("time"), value=data.get("value"))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Candle:
    time: int
    open: float
    high: float
    low: float
    close: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def normalize_time(value: Any) -> Optional[int]:
    """Epoch seconds from a seconds-or-milliseconds timestamp; None if not a finite number"""
    number = _to_float(value)
    if number is None:
        return None
    if number > MILLIS_THRESHOLD:
        return math.floor(number / 1000)
    return math.floor(number)


def _keep_value(value: Optional[float]) -> bool:
    return value is not None and 0 < value < 1000


def clean_points(points: Iterable[Union[PricePoint, Dict[str, Any]]]) -> List[PricePoint]:
    """Normalize times, drop invalid samples, stable sort ascending by time"""
    cleaned = []
    for point in points:
        if isinstance(point, dict):
            point = PricePoint.from_dict(point)
        time_sec = normalize_time(point.time)
        value = _to_float(point.value)
        if time_sec is None or not _keep_value(value):
            continue
        cleaned.append(PricePoint(time=time_sec, value=value))
    cleaned.sort(key=lambda p: p.time)
    return cleaned


def build_candles(
    points: Iterable[Union[PricePoint, Dict[str, Any]]],
    bucket_seconds: int = BUCKET_SECONDS,
) -> List[Candle]:
    """
    Bucket samples into OHLC candles.

    The first sample of a bucket opens it, later ones move high/low and the
    last one closes it. A bucket whose high equals its low is widened by
    max(1e-8, |close| * 1%) on both sides so no candle has a zero range.
    Candles are rebuilt from scratch on every call.
    """
    by_bucket: Dict[int, Candle] = {}
    for point in clean_points(points):
        bucket = (point.time // bucket_seconds) * bucket_seconds
        candle = by_bucket.get(bucket)
        if candle is None:
            by_bucket[bucket] = Candle(
                time=bucket,
                open=point.value,
                high=point.value,
                low=point.value,
                close=point.value,
            )
            continue
        candle.high = max(candle.high, point.value)
        candle.low = min(candle.low, point.value)
        candle.close = point.value

    candles = sorted(by_bucket.values(), key=lambda c: c.time)
    for candle in candles:
        if candle.high == candle.low:
            eps = max(MIN_EPSILON, abs(candle.close) * 0.01)
            candle.high += eps
            candle.low -= eps
    return candles


def summarize_series(
    points: List[Union[PricePoint, Dict[str, Any]]],
    bucket_seconds: int = BUCKET_SECONDS,
) -> Dict[str, Any]:
    points = list(points)
    kept = clean_points(points)
    candles = build_candles(kept, bucket_seconds)
    latest = candles[-1].close if candles else None
    previous = candles[-2].close if len(candles) > 1 else None
    return {
        "points": len(points),
        "kept": len(kept),
        "candles": len(candles),
        "latest_close": latest,
        "delta": None if latest is None or previous is None else latest - previous,
    }

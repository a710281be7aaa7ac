"""
Price chart data
"""

from .candles import (
    BUCKET_SECONDS,
    Candle,
    PricePoint,
    build_candles,
    clean_points,
    normalize_time,
    summarize_series,
)

__all__ = [
    "BUCKET_SECONDS",
    "Candle",
    "PricePoint",
    "build_candles",
    "clean_points",
    "normalize_time",
    "summarize_series",
]

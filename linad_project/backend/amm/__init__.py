"""
Client-side bonding-curve AMM math matching the matching engine contract
"""

from .saturating import MAX_U128, sat_add, sat_div, sat_mul, sat_sub
from .models import (
    BPS_DENOMINATOR,
    DEFAULT_SLIPPAGE_BPS,
    PoolState,
    TradeQuote,
    fixed_pool_config,
)
from .quote_engine import is_valid_price, min_out_for, quote_buy, quote_sell, quote_trade
from .spot_price import (
    SpotPriceResult,
    compute_spot_price,
    on_chain_price_attos,
    spot_price_or_raise,
)

__all__ = [
    "MAX_U128",
    "sat_add",
    "sat_div",
    "sat_mul",
    "sat_sub",
    "BPS_DENOMINATOR",
    "DEFAULT_SLIPPAGE_BPS",
    "PoolState",
    "TradeQuote",
    "fixed_pool_config",
    "is_valid_price",
    "min_out_for",
    "quote_buy",
    "quote_sell",
    "quote_trade",
    "SpotPriceResult",
    "compute_spot_price",
    "on_chain_price_attos",
    "spot_price_or_raise",
]

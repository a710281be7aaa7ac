"""
AMM quote engine - constant product with fee and virtual reserves

Every step uses the same saturating u128 operations as the matching engine
contract, so a locally computed min_out is exactly the bound the chain enforces.
"""
import math

from errors import FormatError, PoolUninitialized, PriceOutOfRange, ZeroQuote
from encoding.requests import Side
from amm.models import BPS_DENOMINATOR, DEFAULT_SLIPPAGE_BPS, PoolState, TradeQuote
from amm.saturating import MAX_U128, sat_add, sat_div, sat_mul, sat_sub

MIN_VALID_PRICE = 0.0
MAX_VALID_PRICE = 1000.0


def is_valid_price(value: float) -> bool:
    """Open interval (0, 1000); anything else points at a unit or overflow bug upstream"""
    return math.isfinite(value) and MIN_VALID_PRICE < value < MAX_VALID_PRICE


def _check_amount(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise FormatError("trade amount must be an integer number of attos")
    if amount < 0 or amount > MAX_U128:
        raise FormatError(f"trade amount out of u128 range: {amount}")


def _check_initialized(pool: PoolState) -> None:
    if pool.x_eff <= 0 or pool.y_eff <= 0:
        raise PoolUninitialized(
            f"Pool not initialized: x+vX={pool.x_eff}, y+vY={pool.y_eff}"
        )


def min_out_for(amount_out: int, slippage_bps: int = DEFAULT_SLIPPAGE_BPS) -> int:
    if not 0 <= slippage_bps <= BPS_DENOMINATOR:
        raise FormatError(f"slippage_bps must be within 0..{BPS_DENOMINATOR}, got {slippage_bps}")
    return sat_div(sat_mul(amount_out, BPS_DENOMINATOR - slippage_bps), BPS_DENOMINATOR)


def quote_buy(pool: PoolState, dx: int, slippage_bps: int = DEFAULT_SLIPPAGE_BPS) -> TradeQuote:
    """Spend dx of the base asset, receive tokens; the fee is taken from the input"""
    _check_amount(dx)
    _check_initialized(pool)

    fee = sat_div(sat_mul(dx, pool.fee_bps), BPS_DENOMINATOR)
    dx_after_fee = sat_sub(dx, fee)
    k = sat_mul(pool.x_eff, pool.y_eff)
    new_token = sat_sub(sat_div(k, sat_add(pool.x_eff, dx_after_fee)), pool.v_y)
    out = sat_sub(pool.y, new_token)

    if dx <= 0 or out <= 0:
        raise ZeroQuote(f"Buy of {dx} attos yields no tokens")

    return TradeQuote(
        side=Side.BUY,
        amount_in=dx,
        amount_out=out,
        min_out=min_out_for(out, slippage_bps),
        fee=fee,
        slippage_bps=slippage_bps,
        details={"k": k, "dx_after_fee": dx_after_fee, "new_token": new_token},
    )


def quote_sell(pool: PoolState, dy: int, slippage_bps: int = DEFAULT_SLIPPAGE_BPS) -> TradeQuote:
    """Spend dy tokens, receive the base asset; the fee is taken from the output"""
    _check_amount(dy)
    _check_initialized(pool)

    k = sat_mul(pool.x_eff, pool.y_eff)
    new_base = sat_sub(sat_div(k, sat_add(pool.y_eff, dy)), pool.v_x)
    raw_out = sat_sub(pool.x, new_base)
    fee = sat_div(sat_mul(raw_out, pool.fee_bps), BPS_DENOMINATOR)
    out = sat_sub(raw_out, fee)

    if dy <= 0 or out <= 0:
        raise ZeroQuote(f"Sell of {dy} attos yields no base asset")

    return TradeQuote(
        side=Side.SELL,
        amount_in=dy,
        amount_out=out,
        min_out=min_out_for(out, slippage_bps),
        fee=fee,
        slippage_bps=slippage_bps,
        details={"k": k, "new_base": new_base, "raw_out": raw_out},
    )


def quote_trade(pool: PoolState, side, amount: int, slippage_bps: int = DEFAULT_SLIPPAGE_BPS) -> TradeQuote:
    """
    Quote a trade and reject it when the implied execution price is outside (0, 1000).

    Raises:
        PoolUninitialized: effective reserves are zero
        ZeroQuote: the trade would produce nothing
        PriceOutOfRange: the execution price fails the sanity guard
    """
    side = Side.parse(side)
    if side is Side.BUY:
        quote = quote_buy(pool, amount, slippage_bps)
    else:
        quote = quote_sell(pool, amount, slippage_bps)

    price = quote.execution_price
    if not is_valid_price(price):
        raise PriceOutOfRange(f"Execution price {price} outside (0, 1000)")
    return quote

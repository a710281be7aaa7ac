"""
Spot price for chart sampling, with the corruption-recovery fallback

price = (x+vX) * 10^18 / (y+vY), computed on unbounded integers. When the
on-chain reserves look inconsistent (price outside (0, 1000) or a token
reserve far below the curve supply) the token reserve implied by the genesis
invariant k0 = vX * (totalCurveSupply + vY) is tried instead.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from errors import PoolUninitialized, PriceOutOfRange
from encoding.amounts import attos_to_decimal
from amm.models import ONE, PoolState
from amm.quote_engine import is_valid_price
from amm.saturating import sat_div, sat_mul

logger = logging.getLogger(__name__)


@dataclass
class SpotPriceResult:
    success: bool
    price: Optional[float] = None
    price_attos: Optional[int] = None
    source: Optional[str] = None
    error: Optional[Exception] = None
    debug: Dict[str, Any] = field(default_factory=dict)

    @property
    def price_decimal(self) -> Optional[str]:
        if self.price_attos is None:
            return None
        return attos_to_decimal(self.price_attos)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "price": self.price,
            "price_attos": None if self.price_attos is None else str(self.price_attos),
            "price_decimal": self.price_decimal,
            "source": self.source,
            "error": self.error.to_dict() if self.error is not None else None,
            "debug": self.debug,
        }


def on_chain_price_attos(pool: PoolState) -> int:
    """The contract's current_price: saturating, and zero for an empty token side"""
    return sat_div(sat_mul(pool.x_eff, ONE), pool.y_eff)


def _price_attos(x_eff: int, y_eff: int) -> int:
    if y_eff <= 0:
        return 0
    return x_eff * ONE // y_eff


def _looks_corrupted(pool: PoolState, price: float) -> bool:
    if not is_valid_price(price):
        return True
    # a freshly launched pool never has less than 0.1% of its curve supply left
    return pool.total_curve_supply is not None and pool.y < pool.total_curve_supply // 1000


def compute_spot_price(pool: PoolState, recovery_enabled: bool = True) -> SpotPriceResult:
    """
    Compute the chart price of a pool snapshot.

    Never raises for bad reserve data; the outcome is reported on the result.
    The derived price replaces the on-chain one only if it passes the range
    guard; a result is never produced from an out-of-range price.
    """
    x_eff = pool.x + pool.v_x
    y_eff = pool.y + pool.v_y
    debug: Dict[str, Any] = {
        "symbol": pool.symbol,
        "attos": {
            "x": str(pool.x),
            "y": str(pool.y),
            "vX": str(pool.v_x),
            "vY": str(pool.v_y),
            "totalCurveSupply": None if pool.total_curve_supply is None else str(pool.total_curve_supply),
            "xEff": str(x_eff),
            "yEff": str(y_eff),
        },
        "derived": None,
    }

    if x_eff <= 0 or y_eff <= 0:
        return SpotPriceResult(
            success=False,
            error=PoolUninitialized("Pool has no effective reserves"),
            debug=debug,
        )

    price_attos = _price_attos(x_eff, y_eff)
    price = price_attos / ONE
    source = "on_chain"
    debug["attos"]["priceAttosOnChain"] = str(price_attos)
    debug["attos"]["priceOnChain"] = price

    if _looks_corrupted(pool, price) and recovery_enabled:
        if pool.total_curve_supply is not None and x_eff > 0:
            k0 = pool.v_x * (pool.total_curve_supply + pool.v_y)
            y_eff_derived = k0 // x_eff
            derived_attos = _price_attos(x_eff, y_eff_derived)
            derived_price = derived_attos / ONE
            debug["derived"] = {
                "k0": str(k0),
                "yEffDerived": str(y_eff_derived),
                "priceAttosDerived": str(derived_attos),
                "priceDerived": derived_price,
            }
            if is_valid_price(derived_price):
                logger.info(
                    f"Reserve data for {pool.symbol} looks inconsistent, using derived price {derived_price}"
                )
                price, price_attos, source = derived_price, derived_attos, "derived"

    if not is_valid_price(price):
        logger.warning(f"Rejecting spot price {price} for {pool.symbol}: outside (0, 1000)")
        return SpotPriceResult(
            success=False,
            error=PriceOutOfRange(f"Spot price {price} outside (0, 1000)"),
            debug=debug,
        )

    debug["attos"]["priceAttos"] = str(price_attos)
    debug["attos"]["price"] = price
    return SpotPriceResult(
        success=True,
        price=price,
        price_attos=price_attos,
        source=source,
        debug=debug,
    )


def spot_price_or_raise(pool: PoolState, recovery_enabled: bool = True) -> SpotPriceResult:
    result = compute_spot_price(pool, recovery_enabled)
    if not result.success:
        raise result.error
    return result

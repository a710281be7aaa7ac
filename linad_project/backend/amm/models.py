"""
Value types for the bonding-curve pool and its quotes
"""
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional

from errors import FormatError
from encoding.amounts import attos_to_decimal, decimal_to_attos
from encoding.requests import Side
from amm.saturating import MAX_U128, sat_add

BPS_DENOMINATOR = 10_000
DEFAULT_SLIPPAGE_BPS = 100
ONE = 10 ** 18


def _check_u128(name: str, value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise FormatError(f"{name} must be an integer number of attos")
    if value < 0 or value > MAX_U128:
        raise FormatError(f"{name} out of u128 range: {value}")


@dataclass(frozen=True)
class PoolState:
    """
    Snapshot of one pool, all amounts in attos.

    x is the base-asset (wLin) reserve, y the token reserve, v_x / v_y the
    virtual offsets shaping the curve. total_curve_supply is only used to
    spot corrupted reserve data when sampling prices.

    Fetch a fresh snapshot for every quote; reserves change every block.
    """
    x: int
    y: int
    v_x: int = 0
    v_y: int = 0
    fee_bps: int = 0
    total_curve_supply: Optional[int] = None
    symbol: Optional[str] = None

    def __post_init__(self):
        for name in ("x", "y", "v_x", "v_y"):
            _check_u128(name, getattr(self, name))
        if self.total_curve_supply is not None:
            _check_u128("total_curve_supply", self.total_curve_supply)
        if isinstance(self.fee_bps, bool) or not isinstance(self.fee_bps, int):
            raise FormatError("fee_bps must be an integer")
        if not 0 <= self.fee_bps <= BPS_DENOMINATOR:
            raise FormatError(f"fee_bps must be within 0..{BPS_DENOMINATOR}, got {self.fee_bps}")

    @property
    def x_eff(self) -> int:
        return sat_add(self.x, self.v_x)

    @property
    def y_eff(self) -> int:
        return sat_add(self.y, self.v_y)

    def with_reserves(self, x: int, y: int) -> "PoolState":
        return replace(self, x=x, y=y)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "x": str(self.x),
            "y": str(self.y),
            "v_x": str(self.v_x),
            "v_y": str(self.v_y),
            "fee_bps": self.fee_bps,
            "total_curve_supply": None if self.total_curve_supply is None else str(self.total_curve_supply),
        }


def fixed_pool_config(symbol: Optional[str] = None) -> PoolState:
    """Genesis state of a freshly launched token: 800M on the curve, 80k virtual wLin, 1% fee"""
    return PoolState(
        x=0,
        y=decimal_to_attos("800000000"),
        v_x=decimal_to_attos("80000"),
        v_y=0,
        fee_bps=100,
        total_curve_supply=decimal_to_attos("800000000"),
        symbol=symbol,
    )


@dataclass(frozen=True)
class TradeQuote:
    side: Side
    amount_in: int
    amount_out: int
    min_out: int
    fee: int
    slippage_bps: int = DEFAULT_SLIPPAGE_BPS
    # intermediate values, for simulation and debugging
    details: Dict[str, int] = field(default_factory=dict)

    @property
    def execution_price(self) -> float:
        """Base asset per token for this quote"""
        if self.side is Side.BUY:
            return self.amount_in / self.amount_out
        return self.amount_out / self.amount_in

    def to_dict(self) -> Dict[str, Any]:
        return {
            "side": self.side.value,
            "amount_in": attos_to_decimal(self.amount_in),
            "amount_out": attos_to_decimal(self.amount_out),
            "min_out": attos_to_decimal(self.min_out),
            "fee": attos_to_decimal(self.fee),
            "slippage_bps": self.slippage_bps,
            "amount_in_attos": str(self.amount_in),
            "amount_out_attos": str(self.amount_out),
            "min_out_attos": str(self.min_out),
            "execution_price": self.execution_price,
        }

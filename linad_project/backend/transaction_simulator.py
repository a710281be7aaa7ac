"""
Trade Simulator for Pre-Submission Validation
Replays trades against a pool snapshot the way the matching engine updates its reserves
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from errors import SlippageExceeded
from encoding.amounts import attos_to_decimal
from encoding.requests import Side
from amm.models import BPS_DENOMINATOR, DEFAULT_SLIPPAGE_BPS, PoolState, TradeQuote
from amm.quote_engine import quote_trade
from amm.saturating import sat_add, sat_div, sat_mul, sat_sub
from amm.spot_price import compute_spot_price

logger = logging.getLogger(__name__)


@dataclass
class SimulationStep:
    quote: TradeQuote
    pool_before: PoolState
    pool_after: PoolState
    price_before: Optional[float]
    price_after: Optional[float]

    @property
    def price_impact_pct(self) -> Optional[float]:
        if not self.price_before or self.price_after is None:
            return None
        return (self.price_after - self.price_before) / self.price_before * 100

    def to_dict(self) -> Dict[str, Any]:
        return {
            "quote": self.quote.to_dict(),
            "pool_before": self.pool_before.to_dict(),
            "pool_after": self.pool_after.to_dict(),
            "price_before": self.price_before,
            "price_after": self.price_after,
            "price_impact_pct": self.price_impact_pct,
        }


class TradeSimulator:
    """
    Simulates matching engine trades to predict outcomes
    Uses the same saturating arithmetic as the contract, so reserves after a
    simulated trade are the reserves the chain would hold
    """

    def __init__(self, recovery_enabled: bool = True):
        self.recovery_enabled = recovery_enabled

    @staticmethod
    def apply_quote(pool: PoolState, quote: TradeQuote) -> PoolState:
        """
        Reserves after executing a quote.

        Buy: the input net of fee joins the base reserve, the output leaves the
        token reserve. Sell: the base reserve loses the pre-fee output
        (out * 10000 / (10000 - fee)), the token reserve gains the input.
        """
        if quote.side is Side.BUY:
            dx_after_fee = sat_sub(quote.amount_in, quote.fee)
            return pool.with_reserves(
                x=sat_add(pool.x, dx_after_fee),
                y=sat_sub(pool.y, quote.amount_out),
            )

        out_before_fee = sat_div(
            sat_mul(quote.amount_out, BPS_DENOMINATOR),
            BPS_DENOMINATOR - pool.fee_bps,
        )
        return pool.with_reserves(
            x=sat_sub(pool.x, out_before_fee),
            y=sat_add(pool.y, quote.amount_in),
        )

    def _price(self, pool: PoolState) -> Optional[float]:
        result = compute_spot_price(pool, recovery_enabled=self.recovery_enabled)
        return result.price if result.success else None

    def simulate_trade(
        self,
        pool: PoolState,
        side,
        amount: int,
        min_out: Optional[int] = None,
        slippage_bps: int = DEFAULT_SLIPPAGE_BPS,
    ) -> SimulationStep:
        """
        Quote and apply one trade.

        Args:
            pool: Snapshot to trade against
            side: BUY or SELL
            amount: Input amount in attos
            min_out: Signed minimum output; defaults to the quote's own bound

        Raises:
            SlippageExceeded: the output is below min_out
        """
        quote = quote_trade(pool, side, amount, slippage_bps)
        bound = quote.min_out if min_out is None else min_out
        if quote.amount_out < bound:
            raise SlippageExceeded(
                f"Output {attos_to_decimal(quote.amount_out)} below minimum {attos_to_decimal(bound)}"
            )

        after = self.apply_quote(pool, quote)
        step = SimulationStep(
            quote=quote,
            pool_before=pool,
            pool_after=after,
            price_before=self._price(pool),
            price_after=self._price(after),
        )
        logger.debug(f"Simulated {quote.side.value} {amount}: out={quote.amount_out} impact={step.price_impact_pct}")
        return step

    def simulate_sequence(
        self,
        pool: PoolState,
        trades: Iterable[Tuple[Any, int]],
        slippage_bps: int = DEFAULT_SLIPPAGE_BPS,
    ) -> List[SimulationStep]:
        """Apply (side, amount) trades in order, each against the previous result"""
        steps = []
        for side, amount in trades:
            step = self.simulate_trade(pool, side, amount, slippage_bps=slippage_bps)
            steps.append(step)
            pool = step.pool_after
        return steps

    def round_trip(self, pool: PoolState, dx: int) -> Dict[str, int]:
        """
        Buy with dx, then sell the tokens received back into the unchanged pool.

        With a zero fee the base asset returned never exceeds dx.
        """
        bought = quote_trade(pool, Side.BUY, dx, 0)
        sold = quote_trade(pool, Side.SELL, bought.amount_out, 0)
        return {
            "spent": dx,
            "tokens": bought.amount_out,
            "returned": sold.amount_out,
            "loss": dx - sold.amount_out,
        }

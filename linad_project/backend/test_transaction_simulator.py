"""
Tests for the trade simulator
"""
import pytest

from errors import SlippageExceeded
from encoding.requests import Side
from amm.models import PoolState
from transaction_simulator import TradeSimulator

ONE = 10 ** 18


@pytest.fixture
def pool():
    return PoolState(x=ONE, y=100 * ONE, fee_bps=30)


def test_buy_moves_reserves(pool):
    step = TradeSimulator().simulate_trade(pool, Side.BUY, ONE // 10)

    assert step.pool_after.x == ONE + 99_970_000_000_000_000
    assert step.pool_after.y == 90_911_570_315_554_060_565
    assert step.price_before == pytest.approx(0.01)
    assert step.price_after > step.price_before
    assert step.price_impact_pct > 0


def test_sell_removes_pre_fee_output(pool):
    step = TradeSimulator().simulate_trade(pool, "SELL", 10 * ONE)

    assert step.quote.amount_out == 90_636_363_636_363_638
    assert step.pool_after.x == 909_090_909_090_909_090
    assert step.pool_after.y == 110 * ONE
    assert step.price_impact_pct < 0


def test_signed_minimum_is_enforced(pool):
    simulator = TradeSimulator()
    quote_out = simulator.simulate_trade(pool, Side.BUY, ONE // 10).quote.amount_out
    with pytest.raises(SlippageExceeded):
        simulator.simulate_trade(pool, Side.BUY, ONE // 10, min_out=quote_out + 1)


def test_sequence_chains_pool_states(pool):
    steps = TradeSimulator().simulate_sequence(pool, [(Side.BUY, ONE // 10), (Side.SELL, 5 * ONE)])

    assert len(steps) == 2
    assert steps[1].pool_before == steps[0].pool_after
    assert steps[0].pool_before == pool


def test_zero_fee_round_trip_loses_rounding_only():
    result = TradeSimulator().round_trip(PoolState(x=ONE, y=100 * ONE), ONE // 10)

    assert result["tokens"] == 9_090_909_090_909_090_910
    assert result["returned"] <= result["spent"]
    assert result["loss"] == result["spent"] - result["returned"]


def test_step_serializes(pool):
    data = TradeSimulator().simulate_trade(pool, Side.BUY, ONE // 10).to_dict()
    assert data["quote"]["amount_out"] == "9.088429684445939435"
    assert data["pool_after"]["y"] == "90911570315554060565"

"""
Tests for bounded polling
"""
import pytest

from polling import RetryPolicy, TOKEN_LOOKUP_POLICY, poll_until


class FakeSleep:
    def __init__(self):
        self.calls = []

    async def __call__(self, delay):
        self.calls.append(delay)


def test_default_delays():
    delays = TOKEN_LOOKUP_POLICY.delays()
    assert len(delays) == 11
    assert delays[0] == pytest.approx(0.4)
    assert delays[1] == pytest.approx(0.55)
    assert delays[-1] == pytest.approx(0.4 + 10 * 0.15)


@pytest.mark.asyncio
async def test_returns_first_truthy_result():
    sleep = FakeSleep()
    answers = iter([None, "", "app-id", "later"])

    async def fetch():
        return next(answers)

    assert await poll_until(fetch, sleep=sleep) == "app-id"
    assert sleep.calls == pytest.approx([0.4, 0.55])


@pytest.mark.asyncio
async def test_exhaustion_returns_none_without_trailing_sleep():
    sleep = FakeSleep()
    calls = []

    async def fetch():
        calls.append(1)
        return None

    assert await poll_until(fetch, RetryPolicy(max_attempts=12), sleep=sleep) is None
    assert len(calls) == 12
    assert len(sleep.calls) == 11


@pytest.mark.asyncio
async def test_fetch_errors_propagate():
    async def fetch():
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        await poll_until(fetch, sleep=FakeSleep())

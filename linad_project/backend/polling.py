"""
Bounded polling for values that become visible some time after a request lands
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt n (0-based) waits initial_delay + n * delay_step seconds before the next one"""
    max_attempts: int = 12
    initial_delay: float = 0.4
    delay_step: float = 0.15

    def delay_for(self, attempt: int) -> float:
        return self.initial_delay + attempt * self.delay_step

    def delays(self) -> List[float]:
        # no wait after the last attempt
        return [self.delay_for(attempt) for attempt in range(self.max_attempts - 1)]


TOKEN_LOOKUP_POLICY = RetryPolicy()


async def poll_until(
    fetch: Callable[[], Awaitable[Optional[T]]],
    policy: RetryPolicy = TOKEN_LOOKUP_POLICY,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    description: str = "value",
) -> Optional[T]:
    """
    Call fetch until it returns something truthy or the policy runs out.

    Returns None when every attempt came back empty. Exceptions from fetch and
    cancellation propagate unchanged.
    """
    for attempt in range(policy.max_attempts):
        result = await fetch()
        if result:
            logger.debug(f"Resolved {description} on attempt {attempt + 1}")
            return result
        if attempt + 1 < policy.max_attempts:
            await sleep(policy.delay_for(attempt))

    logger.warning(f"Gave up waiting for {description} after {policy.max_attempts} attempts")
    return None

"""Bounded retry with backoff for calls to external services."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFunc = Callable[[float], Awaitable[Any]]


def _never(result: Any) -> bool:
    return False


@dataclass(frozen=True)
class RetryPolicy:
    """Retry an async operation a bounded number of times.

    Attributes:
        attempts: Total number of tries, including the first.
        delay: Seconds to wait before the second try.
        backoff: Multiplier applied to the delay after each failed try.
        max_delay: Upper bound for a single wait.
        retry_if: Predicate on a returned result; True means try again.
        retry_on: Exception types that trigger another try. Others propagate.
    """

    attempts: int = 3
    delay: float = 1.0
    backoff: float = 2.0
    max_delay: float = 30.0
    retry_if: Callable[[Any], bool] = _never
    retry_on: tuple[type[BaseException], ...] = field(default=())

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError("attempts must be at least 1")

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the given (1-based) failed attempt."""
        return min(self.delay * self.backoff ** (attempt - 1), self.max_delay)

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        sleep: SleepFunc = asyncio.sleep,
    ) -> T:
        """Run ``operation`` until it succeeds or the attempts are used up.

        The last attempt's result is returned even when ``retry_if`` still
        rejects it; the last attempt's exception is re-raised.
        """
        for attempt in range(1, self.attempts + 1):
            try:
                result = await operation()
            except self.retry_on as e:
                if attempt == self.attempts:
                    raise
                logger.warning("Attempt %d/%d failed: %s", attempt, self.attempts, e)
            else:
                if attempt == self.attempts or not self.retry_if(result):
                    return result
                logger.info("Attempt %d/%d returned a retryable result", attempt, self.attempts)
            await sleep(self.delay_for(attempt))

        raise AssertionError("unreachable")  # pragma: no cover

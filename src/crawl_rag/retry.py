"""Retry policy with exponential backoff, shared by the storage and embedding paths."""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

import structlog

logger = structlog.get_logger()

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded retry with exponential backoff.

    Attempt ``n`` (1-based) is followed, on failure, by a sleep of
    ``base_delay * multiplier ** (n - 1)`` seconds unless it was the last one.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    multiplier: float = 2.0

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def delays(self) -> list[float]:
        """Sleep durations between consecutive attempts."""
        return [self.base_delay * self.multiplier**i for i in range(self.max_attempts - 1)]

    async def run(self, operation: Callable[[], Awaitable[T]], description: str = "operation") -> T:
        """
        Run ``operation`` until it succeeds or the attempts are exhausted.

        Raises:
            The exception of the final failed attempt.
        """
        delays = self.delays()
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await operation()
            except Exception as e:
                if attempt == self.max_attempts:
                    logger.warning(
                        "retry_exhausted",
                        operation=description,
                        attempts=self.max_attempts,
                        error=str(e),
                    )
                    raise
                delay = delays[attempt - 1]
                logger.info(
                    "retrying",
                    operation=description,
                    attempt=attempt,
                    max_attempts=self.max_attempts,
                    delay_seconds=delay,
                    error=str(e),
                )
                await asyncio.sleep(delay)
        raise AssertionError("unreachable")

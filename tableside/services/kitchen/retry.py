"""Bounded retry with exponential backoff for status writes."""
import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from tableside.core.config import settings
from tableside.core.errors import StorageError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryPolicy:
    max_attempts: int = 3
    base_delay_seconds: float = 0.5
    max_delay_seconds: float = 4.0

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            max_attempts=settings.status_write_max_attempts,
            base_delay_seconds=settings.status_write_base_delay_seconds,
            max_delay_seconds=settings.status_write_max_delay_seconds,
        )

    def delay_for(self, failures: int) -> float:
        """Delay after the given number of consecutive failures."""
        power = max(0, failures - 1)
        return min(self.base_delay_seconds * (2 ** power), self.max_delay_seconds)

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        description: str = "operation",
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ) -> T:
        """
        Await ``operation`` until it succeeds or attempts run out.

        Only StorageError is retried; every other exception propagates on
        the first failure.
        """
        sleep = sleep or asyncio.sleep
        attempts = max(1, self.max_attempts)
        for attempt in range(1, attempts + 1):
            try:
                return await operation()
            except StorageError as e:
                if attempt >= attempts:
                    logger.error(f"[RETRY] {description} failed after {attempt} attempts: {e}")
                    raise
                delay = self.delay_for(attempt)
                logger.warning(
                    f"[RETRY] {description} failed (attempt {attempt}/{attempts}), "
                    f"retrying in {delay:.2f}s: {e}"
                )
                await sleep(delay)
        raise AssertionError("unreachable")

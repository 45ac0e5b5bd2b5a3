"""Retry with configurable backoff."""

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeVar

from pricekeeper.core.exceptions import PriceKeeperError
from pricekeeper.core.logging import get_logger

T = TypeVar("T")

log = get_logger("retry")


class RetryState(Enum):
    """Retry lifecycle."""

    READY = "ready"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class RetryConfig:
    """Retry policy. ``multiplier=1.0`` gives a fixed delay between attempts."""

    max_attempts: int = 3
    base_delay: float = 30.0
    max_delay: float = 3600.0
    multiplier: float = 1.0
    jitter: bool = False
    retry_on_exceptions: list[type[BaseException]] = field(default_factory=lambda: [PriceKeeperError])
    skip_on_exceptions: list[type[BaseException]] = field(default_factory=list)


class BackoffRetry:
    """Runs a coroutine function until it succeeds or the attempts run out."""

    def __init__(self, config: RetryConfig | None = None):
        self.config = config or RetryConfig()
        self.attempt_count = 0
        self.total_delay = 0.0
        self.state = RetryState.READY
        self.last_exception: BaseException | None = None

    async def execute(self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """Execute ``func`` applying the retry policy.

        Raises:
            Exception: the last failure once every attempt has been used, or
                immediately for exceptions that are not retryable
        """
        self.state = RetryState.RUNNING
        self.attempt_count = 0
        self.total_delay = 0.0

        while True:
            self.attempt_count += 1
            try:
                result = await func(*args, **kwargs)
            except Exception as exc:
                self.last_exception = exc
                if any(isinstance(exc, exc_type) for exc_type in self.config.skip_on_exceptions):
                    self.state = RetryState.FAILED
                    raise
                should_retry = any(isinstance(exc, exc_type) for exc_type in self.config.retry_on_exceptions)
                if not should_retry or self.attempt_count >= self.config.max_attempts:
                    self.state = RetryState.FAILED
                    raise

                delay = self._calculate_delay(self.attempt_count - 1)
                log.warning(
                    "Attempt {}/{} failed: {}; retrying in {:.1f}s",
                    self.attempt_count,
                    self.config.max_attempts,
                    exc,
                    delay,
                )
                await asyncio.sleep(delay)
                self.total_delay += delay
            else:
                self.state = RetryState.COMPLETED
                return result

    def _calculate_delay(self, attempt_number: int) -> float:
        """Delay before the retry following attempt ``attempt_number`` (zero based)."""
        if attempt_number < 0:
            return 0.0

        delay = self.config.base_delay * (self.config.multiplier**attempt_number)
        if self.config.jitter:
            jitter_range = min(delay * 0.1, 1.0)
            delay += random.uniform(-jitter_range, jitter_range)
        return max(0.0, min(delay, self.config.max_delay))

    def get_stats(self) -> dict[str, Any]:
        return {
            "attempts": self.attempt_count,
            "max_attempts": self.config.max_attempts,
            "total_delay": self.total_delay,
            "state": self.state.value,
            "last_exception": str(self.last_exception) if self.last_exception else None,
        }

    def reset(self) -> None:
        self.attempt_count = 0
        self.total_delay = 0.0
        self.state = RetryState.READY
        self.last_exception = None


__all__ = ["BackoffRetry", "RetryConfig", "RetryState"]

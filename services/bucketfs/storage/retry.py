"""
Backoff policy and bounded retry for remote calls.

Every call that reaches the remote client goes through RetryPolicy.call,
so listing, downloads and uploads share one retry discipline.
"""

from __future__ import annotations

import random
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from bucketfs.config import RetryConfig
from bucketfs.logging_config import get_logger
from bucketfs.storage.protocol import RetryExhaustedError, TransientStoreError

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Backoff:
    """Exponential backoff, capped at ``max_delay``."""

    base_delay: float = 0.1
    multiplier: float = 2.0
    max_delay: float = 10.0
    jitter: bool = False

    def wait(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (1-based)."""
        if attempt <= 0:
            return 0.0
        return min(self.max_delay, self.base_delay * self.multiplier ** (attempt - 1))

    def delay(self, attempt: int) -> float:
        """The wait actually slept, jittered between the previous and current step."""
        upper = self.wait(attempt)
        if not self.jitter:
            return upper
        return random.uniform(self.wait(attempt - 1), upper)  # noqa: S311


@dataclass(frozen=True)
class RetryPolicy:
    """Retry transient failures up to ``attempts`` tries in total."""

    attempts: int = 5
    backoff: Backoff = field(default_factory=Backoff)
    sleep: Callable[[float], None] = time.sleep

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError(f"attempts must be at least 1, got {self.attempts}")

    @classmethod
    def from_config(cls, cfg: RetryConfig) -> RetryPolicy:
        return cls(
            attempts=cfg.attempts,
            backoff=Backoff(
                base_delay=cfg.base_delay,
                multiplier=cfg.multiplier,
                max_delay=cfg.max_delay,
                jitter=cfg.jitter,
            ),
        )

    def call(self, operation: str, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Invoke ``fn`` until it succeeds or the attempt budget is spent.

        Only TransientStoreError is retried; anything else propagates at once.

        Raises:
            RetryExhaustedError: Carrying the error of every failed attempt.
        """
        errors: list[BaseException] = []
        for attempt in range(1, self.attempts + 1):
            try:
                return fn(*args, **kwargs)
            except TransientStoreError as e:
                errors.append(e)
                if attempt == self.attempts:
                    break
                wait = self.backoff.delay(attempt)
                logger.warning(
                    "Remote call failed, retrying",
                    operation=operation,
                    attempt=attempt,
                    wait_seconds=round(wait, 3),
                    error=str(e),
                )
                self.sleep(wait)

        logger.error("Remote call retries exhausted", operation=operation, attempts=len(errors))
        raise RetryExhaustedError(operation, errors) from errors[-1]

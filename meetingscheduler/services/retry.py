"""
Optimistic-concurrency retry policy for mutating operations.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional, TypeVar

from ..domain.exceptions import ConcurrencyConflictError, VersionMismatchError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ConcurrencyRetryPolicy:
    """
    Re-runs a whole read-modify-write when the store reports a stale version.

    The wrapped operation must re-read the record on every call. Only
    ``VersionMismatchError`` triggers a retry; everything else, including a
    ``ConcurrencyConflictError`` raised for a client-supplied stale version,
    propagates on the first attempt. Exhausting the attempts raises
    ``ConcurrencyConflictError``.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        initial_delay: float = 0.5,
        multiplier: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
        self.max_attempts = max_attempts
        self.initial_delay = initial_delay
        self.multiplier = multiplier
        self._sleep = sleep

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the given failed attempt (1-based)."""
        return self.initial_delay * self.multiplier ** (attempt - 1)

    def run(self, operation: Callable[[], T], description: str = "operation") -> T:
        last_error: Optional[VersionMismatchError] = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                return operation()
            except VersionMismatchError as exc:
                last_error = exc
                if attempt == self.max_attempts:
                    break

                delay = self.delay_for(attempt)
                logger.warning(
                    "Concurrent modification during %s (attempt %d/%d), retrying in %.2fs: %s",
                    description,
                    attempt,
                    self.max_attempts,
                    delay,
                    exc,
                )
                self._sleep(delay)

        logger.warning(
            "Giving up on %s after %d attempts: %s", description, self.max_attempts, last_error
        )
        raise ConcurrencyConflictError(
            f"The record was modified by another operation during {description}. "
            "Please refresh and try again."
        ) from last_error

    with_retry = run

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from ..storage.errors import TransientStorageError

"""Retry with a fixed backoff schedule.

One helper for every consistency-sensitive step. Each call site picks its own
schedule (linear 1x/2x/3x for reads and writes, 1s/2s/3s/5s for the course
verification) and its own notion of a retryable outcome: exceptions listed
in ``retry_on`` and results for which ``retry_if`` is true (e.g. a not-yet
visible record). Anything else propagates immediately.
"""

__all__ = [
    "RetryPolicy",
    "RetryExhausted",
    "retry_call",
]

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    attempts: int
    delays: tuple[float, ...]  # wait after failed attempt n; the last value repeats
    scale: float = 1.0

    @classmethod
    def linear(cls, attempts: int, scale: float = 1.0) -> RetryPolicy:
        return cls(attempts=attempts, delays=tuple(float(n) for n in range(1, max(attempts, 1) + 1)), scale=scale)

    @classmethod
    def schedule(cls, delays: tuple[float, ...], scale: float = 1.0) -> RetryPolicy:
        """len(delays) waits, hence len(delays) + 1 attempts."""
        return cls(attempts=len(delays) + 1, delays=tuple(delays), scale=scale)

    def delay_after(self, attempt: int) -> float:
        if not self.delays:
            return 0.0
        return self.delays[min(attempt, len(self.delays) - 1)] * self.scale


class RetryExhausted(Exception):
    def __init__(self, label: str, attempts: int, last_error: BaseException | None) -> None:
        detail = f": {last_error}" if last_error is not None else ""
        super().__init__(f"{label} failed after {attempts} attempt(s){detail}")
        self.label = label
        self.attempts = attempts
        self.last_error = last_error


def retry_call(
    fn: Callable[[], T],
    policy: RetryPolicy,
    *,
    label: str,
    retry_on: tuple[type[BaseException], ...] = (TransientStorageError,),
    retry_if: Callable[[T], bool] | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    last_error: BaseException | None = None
    for attempt in range(policy.attempts):
        try:
            result = fn()
        except retry_on as e:
            last_error = e
            logger.warning("%s attempt %d/%d failed: %s", label, attempt + 1, policy.attempts, e)
        else:
            if retry_if is None or not retry_if(result):
                return result
            last_error = None
            logger.warning("%s attempt %d/%d: not ready", label, attempt + 1, policy.attempts)
        if attempt < policy.attempts - 1:
            sleep(policy.delay_after(attempt))
    raise RetryExhausted(label, policy.attempts, last_error)

"""
Charlottesville Crime - Geocoding Quota Scheduler

Tracks geocoding requests against the provider's daily allowance.
The counter resets at midnight UTC. When the allowance is used up the
scheduler either raises QuotaExceededError ("fail") or sleeps until the
next day ("pause").

Usage:
    scheduler = QuotaScheduler(daily_limit=2500, batch_size=500)
    for batch in scheduler.batches(addresses):
        for address in batch:
            scheduler.acquire()
            ...
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator, Sequence
from datetime import UTC, date, datetime, timedelta
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class QuotaExceededError(RuntimeError):
    """Raised when the daily request allowance is exhausted."""

    def __init__(self, daily_limit: int, used: int):
        super().__init__(f"Daily geocoding quota exhausted ({used}/{daily_limit} requests used)")
        self.daily_limit = daily_limit
        self.used = used


def _utc_now() -> datetime:
    return datetime.now(UTC)


class QuotaScheduler:
    """Per-day request counter with configurable batch size."""

    def __init__(
        self,
        daily_limit: int,
        batch_size: int | None = None,
        policy: str = "fail",
        clock: Callable[[], datetime] = _utc_now,
        sleep: Callable[[float], None] = time.sleep,
        used: int = 0,
    ):
        if daily_limit <= 0:
            raise ValueError("daily_limit must be positive")
        if policy not in ("fail", "pause"):
            raise ValueError(f"Unknown quota policy: {policy}")

        self.daily_limit = daily_limit
        self.batch_size = batch_size or daily_limit
        if self.batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self.policy = policy
        self._clock = clock
        self._sleep = sleep
        self._day: date = clock().date()
        self._used = used

    @property
    def used(self) -> int:
        self._roll_over()
        return self._used

    @property
    def remaining(self) -> int:
        return max(self.daily_limit - self.used, 0)

    def _roll_over(self) -> None:
        today = self._clock().date()
        if today != self._day:
            logger.info(f"New quota day {today}; resetting counter from {self._used}")
            self._day = today
            self._used = 0

    def _seconds_until_reset(self) -> float:
        now = self._clock()
        tomorrow = datetime.combine(now.date() + timedelta(days=1), datetime.min.time(), UTC)
        return max((tomorrow - now).total_seconds(), 0.0)

    def acquire(self) -> None:
        """
        Reserve one request.

        Raises:
            QuotaExceededError: If the allowance is used up and policy is "fail"
        """
        self._roll_over()
        while self._used >= self.daily_limit:
            if self.policy == "fail":
                raise QuotaExceededError(self.daily_limit, self._used)

            wait = self._seconds_until_reset()
            logger.warning(
                f"Geocoding quota exhausted; pausing {wait:.0f}s until reset",
                extra={"daily_limit": self.daily_limit, "used": self._used},
            )
            self._sleep(wait)
            self._roll_over()

        self._used += 1

    def exhaust(self) -> None:
        """Mark today's allowance as used up, e.g. after the service refused a request."""
        self._roll_over()
        if self._used < self.daily_limit:
            logger.warning(
                f"Service reported its quota exhausted after {self._used} requests",
                extra={"daily_limit": self.daily_limit, "used": self._used},
            )
            self._used = self.daily_limit

    def batches(self, items: Sequence[T]) -> Iterator[list[T]]:
        """Split items into consecutive chunks of batch_size."""
        for start in range(0, len(items), self.batch_size):
            yield list(items[start : start + self.batch_size])

    def check_capacity(self, needed: int) -> bool:
        """Whether `needed` requests fit into what is left of today's allowance."""
        return needed <= self.remaining

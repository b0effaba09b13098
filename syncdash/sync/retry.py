"""Retry policies for failed daemon requests."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from syncdash.config import RefreshSettings


class RetryPolicy(Protocol):
    def delay(self, attempt: int) -> float:
        """Seconds to wait before retry number *attempt* (1-based)."""
        ...


@dataclass(frozen=True)
class FixedDelay:
    seconds: float = 1.0

    def delay(self, attempt: int) -> float:
        return self.seconds


@dataclass(frozen=True)
class ExponentialBackoff:
    initial: float = 1.0
    factor: float = 2.0
    max_delay: float = 30.0

    def delay(self, attempt: int) -> float:
        return min(self.initial * self.factor ** max(attempt - 1, 0), self.max_delay)


def from_settings(settings: RefreshSettings) -> RetryPolicy:
    if settings.retry_backoff == "exponential":
        return ExponentialBackoff(initial=settings.retry_delay, max_delay=settings.retry_max_delay)
    return FixedDelay(settings.retry_delay)

"""Error backoff policy for sync sessions."""

from datetime import datetime, timezone
from typing import Optional

from ..core.errors import ErrorCategory

MAX_BACKOFF_MS = 300_000  # 5 minutes
RATE_LIMIT_FACTOR = 2.0
RATE_LIMIT_MAX_MULTIPLIER = 16.0
ERROR_FACTOR = 1.5
ERROR_MAX_MULTIPLIER = 4.0
ERROR_STREAK_THRESHOLD = 3


class BackoffController:
    """
    Converts a session's error streak into a delay multiplier.

    Rate limiting doubles the multiplier on every occurrence (up to 16x).
    Other failures are tolerated until three happen in a row, after which
    each one grows the multiplier by 1.5x (up to 4x). Any success resets
    the multiplier to 1.
    """

    def __init__(self, max_backoff_ms: float = MAX_BACKOFF_MS):
        self.max_backoff_ms = max_backoff_ms
        self.consecutive_errors = 0
        self.multiplier = 1.0
        self.last_error_time: Optional[datetime] = None
        self.last_success_time: Optional[datetime] = None

    def on_success(self) -> None:
        """Resets the error streak and the multiplier."""
        self.consecutive_errors = 0
        self.multiplier = 1.0
        self.last_success_time = datetime.now(timezone.utc)

    def on_error(self, category: ErrorCategory) -> float:
        """Records a failure and returns the updated multiplier."""
        self.consecutive_errors += 1
        self.last_error_time = datetime.now(timezone.utc)

        if category == ErrorCategory.RATE_LIMIT:
            self.multiplier = min(self.multiplier * RATE_LIMIT_FACTOR, RATE_LIMIT_MAX_MULTIPLIER)
        elif self.consecutive_errors >= ERROR_STREAK_THRESHOLD:
            self.multiplier = min(self.multiplier * ERROR_FACTOR, ERROR_MAX_MULTIPLIER)
        return self.multiplier

    def next_delay(self, base_interval_ms: float) -> float:
        """Delay in milliseconds before the next attempt."""
        return min(base_interval_ms * self.multiplier, self.max_backoff_ms)


__all__ = [
    "BackoffController",
    "MAX_BACKOFF_MS",
    "RATE_LIMIT_MAX_MULTIPLIER",
    "ERROR_MAX_MULTIPLIER",
    "ERROR_STREAK_THRESHOLD",
]

"""Tests for the BackoffController."""

import pytest

from promptrun.core.errors import ErrorCategory
from promptrun.sync import MAX_BACKOFF_MS, BackoffController


class TestBackoffController:
    """Tests for BackoffController."""

    def test_initial_state(self):
        backoff = BackoffController()
        assert backoff.consecutive_errors == 0
        assert backoff.multiplier == 1.0
        assert backoff.next_delay(6000) == 6000

    def test_rate_limit_doubles_up_to_16(self):
        """N rate limits give min(2^N, 16)."""
        backoff = BackoffController()
        seen = [backoff.on_error(ErrorCategory.RATE_LIMIT) for _ in range(6)]

        assert seen == [2, 4, 8, 16, 16, 16]
        assert backoff.consecutive_errors == 6

    def test_isolated_errors_are_tolerated(self):
        """Fewer than three non-rate-limit errors leave the multiplier alone."""
        backoff = BackoffController()
        backoff.on_error(ErrorCategory.NETWORK)
        backoff.on_error(ErrorCategory.API)

        assert backoff.multiplier == 1.0
        assert backoff.consecutive_errors == 2

    def test_error_streak_grows_by_half_up_to_4(self):
        backoff = BackoffController()
        seen = [backoff.on_error(ErrorCategory.NETWORK) for _ in range(7)]

        assert seen[:2] == [1.0, 1.0]
        assert seen[2] == pytest.approx(1.5)
        assert seen[3] == pytest.approx(2.25)
        assert seen[4] == pytest.approx(3.375)
        assert seen[5:] == [4.0, 4.0]

    def test_network_error_after_rate_limits_caps_at_4(self):
        """A non-rate-limit error in a long streak is capped at 4x."""
        backoff = BackoffController()
        for _ in range(3):
            backoff.on_error(ErrorCategory.RATE_LIMIT)

        assert backoff.on_error(ErrorCategory.NETWORK) == 4.0

    def test_success_resets(self):
        backoff = BackoffController()
        for _ in range(4):
            backoff.on_error(ErrorCategory.RATE_LIMIT)
        backoff.on_success()

        assert backoff.multiplier == 1.0
        assert backoff.consecutive_errors == 0
        assert backoff.last_success_time is not None

    def test_error_time_recorded(self):
        backoff = BackoffController()
        backoff.on_error(ErrorCategory.UNKNOWN)
        assert backoff.last_error_time is not None

    def test_next_delay_is_capped(self):
        backoff = BackoffController()
        for _ in range(4):
            backoff.on_error(ErrorCategory.RATE_LIMIT)

        assert backoff.next_delay(6000) == 96000
        assert backoff.next_delay(60_000) == MAX_BACKOFF_MS

    def test_custom_cap(self):
        backoff = BackoffController(max_backoff_ms=10_000)
        backoff.on_error(ErrorCategory.RATE_LIMIT)
        assert backoff.next_delay(6000) == 10_000

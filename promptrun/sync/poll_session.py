"""
Polling sync session.

Refetches the prompt on a timer. Only one fetch is ever in flight: the next
poll is scheduled after the current one finishes, with the delay scaled by
the BackoffController when fetches fail.
"""

import asyncio
import math
import logging
from typing import Optional

from ..core.errors import ConfigurationError, ErrorCategory, PollingError, categorize_error, classify_error
from .backoff import MAX_BACKOFF_MS, BackoffController
from .models import PromptSnapshot, SyncStatus
from .session import ChangeHandler, ErrorHandler, SnapshotFetcher, SyncSession

logger = logging.getLogger(__name__)

MIN_POLL_INTERVAL_MS = 5000


class PollSession(SyncSession):
    """
    Keeps a prompt up to date by periodically fetching it.

    Must be created while an event loop is running; the first poll is
    scheduled immediately from the constructor.
    """

    def __init__(
        self,
        initial_prompt: PromptSnapshot,
        fetcher: SnapshotFetcher,
        project_id: str,
        poll_interval_ms: float,
        version: Optional[str] = None,
        tag: Optional[str] = None,
        on_polling_error: Optional[ErrorHandler] = None,
        enforce_minimum_interval: bool = True,
        on_change: Optional[ChangeHandler] = None,
        min_interval_ms: float = MIN_POLL_INTERVAL_MS,
        max_backoff_ms: float = MAX_BACKOFF_MS,
    ):
        """
        Args:
            initial_prompt: Snapshot already fetched by the caller.
            fetcher: Collaborator used to refetch the prompt.
            project_id: Project whose prompt is synchronized.
            poll_interval_ms: Base interval between polls.
            version: Optional version filter passed to the fetcher.
            tag: Optional tag filter passed to the fetcher.
            on_polling_error: Dedicated error handler.
            enforce_minimum_interval: Reject intervals below ``min_interval_ms``.
            on_change: Callback invoked after every ``change`` event.
            min_interval_ms: Floor enforced when ``enforce_minimum_interval`` is set.
            max_backoff_ms: Upper bound for the delay between polls.

        Raises:
            ConfigurationError: If the interval is not positive, or is below
                the floor while enforcement is on.
        """
        validate_poll_interval(poll_interval_ms, enforce_minimum_interval, min_interval_ms)
        super().__init__(
            initial_prompt,
            project_id,
            version=version,
            tag=tag,
            on_polling_error=on_polling_error,
            on_change=on_change,
        )
        self._fetcher = fetcher
        self._interval_ms = poll_interval_ms
        self._backoff = BackoffController(max_backoff_ms=max_backoff_ms)
        self._backoff.last_success_time = self._last_successful_fetch

        self._loop = asyncio.get_running_loop()
        self._timer: Optional[asyncio.TimerHandle] = None
        self._fetch_task: Optional[asyncio.Task] = None

        logger.info(
            f"Started polling project {project_id} every {poll_interval_ms}ms "
            f"(version={version}, tag={tag})"
        )
        self._schedule_next_poll()

    @property
    def interval_ms(self) -> float:
        """Base interval before backoff."""
        return self._interval_ms

    def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        if self._timer:
            self._timer.cancel()
            self._timer = None
        # An in-flight fetch is left to finish; its result is discarded.
        logger.info(f"Stopped polling project {self.project_id}")

    def is_active(self) -> bool:
        return not self._stopped

    def get_status(self) -> SyncStatus:
        return SyncStatus(
            is_polling=self.is_active(),
            current_interval=self._backoff.next_delay(self._interval_ms),
            consecutive_errors=self._backoff.consecutive_errors,
            backoff_multiplier=self._backoff.multiplier,
            last_error=self._last_error,
            last_successful_fetch=self._last_successful_fetch,
            last_error_time=self._last_error_time,
        )

    def _schedule_next_poll(self) -> None:
        if self._stopped:
            return
        if self._timer:
            self._timer.cancel()

        delay_ms = self._backoff.next_delay(self._interval_ms)
        logger.debug(f"Next poll for project {self.project_id} in {delay_ms}ms")
        self._timer = self._loop.call_later(delay_ms / 1000, self._start_poll)

    def _start_poll(self) -> None:
        self._timer = None
        if self._stopped:
            return
        self._fetch_task = self._loop.create_task(self._poll_once())

    async def _poll_once(self) -> None:
        """One fetch / detect / emit cycle, then reschedule."""
        try:
            candidate = await self._fetcher.fetch_snapshot(
                self.project_id,
                version=self.version_filter,
                tag=self.tag_filter,
            )
        except Exception as exc:
            if self._stopped:
                logger.debug(f"Discarding poll error after stop: {exc}")
            else:
                self._handle_poll_error(exc)
        else:
            if self._stopped:
                logger.debug(f"Discarding poll result after stop for project {self.project_id}")
            else:
                self._handle_poll_success(candidate)
        finally:
            self._fetch_task = None

        self._schedule_next_poll()

    def _handle_poll_success(self, candidate: PromptSnapshot) -> None:
        self._apply_snapshot(candidate)
        self._backoff.on_success()
        self._last_error = None
        self._last_successful_fetch = self._backoff.last_success_time

    def _handle_poll_error(self, exc: BaseException) -> None:
        self._backoff.on_error(categorize_error(exc))
        error = classify_error(
            exc,
            self.project_id,
            consecutive_errors=self._backoff.consecutive_errors,
            backoff_multiplier=self._backoff.multiplier,
        )
        self._report_error(error)

    def _log_default_error(self, error: PollingError) -> None:
        interval_s = self._backoff.next_delay(self._interval_ms) / 1000
        if error.category == ErrorCategory.RATE_LIMIT:
            logger.warning(
                f"Rate limited (429) for project {self.project_id}. "
                f"Backing off to {interval_s}s interval."
            )
        elif self._backoff.consecutive_errors >= 3:
            logger.warning(
                f"Multiple polling errors for project {self.project_id}. "
                f"Slowing down to {interval_s}s interval. Error: {error.message}"
            )
        else:
            logger.warning(f"Polling error for project {self.project_id}: {error.message}")


def validate_poll_interval(interval_ms: float, enforce_minimum: bool, min_interval_ms: float) -> None:
    if (
        isinstance(interval_ms, bool)
        or not isinstance(interval_ms, (int, float))
        or not math.isfinite(interval_ms)
        or interval_ms <= 0
    ):
        raise ConfigurationError(
            f"Polling interval {interval_ms!r} is invalid. It must be a positive number of milliseconds.",
            parameter="poll",
            provided_value=interval_ms,
        )
    if enforce_minimum and interval_ms < min_interval_ms:
        raise ConfigurationError(
            f"Polling interval {interval_ms}ms is too aggressive and may cause rate limiting. "
            f"Minimum allowed interval is {min_interval_ms}ms. "
            f"Use enforce_minimum_interval=False to bypass this check.",
            parameter="poll",
            provided_value=interval_ms,
            expected_value=min_interval_ms,
        )


__all__ = ["PollSession", "MIN_POLL_INTERVAL_MS", "validate_poll_interval"]

"""
Shared contract for prompt sync sessions.

A sync session holds the current PromptSnapshot of one prompt and keeps it
up to date, either by polling (PollSession) or by listening to a push
stream (PushSession). Both expose the same surface: snapshot accessors,
``get_current()``, ``stop()``, ``is_active()``, ``get_status()`` and
``on/off/once`` for the ``change`` and ``error`` events.
"""

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Callable, Literal, Optional, Protocol, Union, overload

from ..core.errors import ConfigurationError, PollingError
from .detector import detect_changes
from .events import EventHub
from .models import (
    ModelDescriptor,
    PromptChangeEvent,
    PromptProject,
    PromptSnapshot,
    PromptUser,
    SyncStatus,
)

logger = logging.getLogger(__name__)

SyncEvent = Literal["change", "error"]
ChangeHandler = Callable[[PromptChangeEvent], None]
ErrorHandler = Callable[[PollingError], None]


class SnapshotFetcher(Protocol):
    """Fetches the current snapshot of a prompt (e.g. over HTTP)."""

    async def fetch_snapshot(
        self,
        project_id: str,
        version: Optional[str] = None,
        tag: Optional[str] = None,
    ) -> PromptSnapshot:
        ...


# --- Sync strategies ---

@dataclass(frozen=True)
class OneShot:
    """Fetch once, never refresh."""


@dataclass(frozen=True)
class Polling:
    """Refetch every ``interval_ms`` milliseconds (scaled by backoff)."""
    interval_ms: float


@dataclass(frozen=True)
class Push:
    """Receive snapshots over a Server-Sent Events stream."""


SyncStrategy = Union[OneShot, Polling, Push]

PUSH_MODE = "sse"


def resolve_strategy(poll: Union[int, float, str, None], default_interval_ms: float) -> SyncStrategy:
    """
    Turn the user-facing ``poll`` option into a SyncStrategy.

    ``None`` means the default interval, ``0`` a one-shot fetch, a positive
    number a polling interval in milliseconds and ``"sse"`` push mode.

    Raises:
        ConfigurationError: For negative or non-finite numbers and unknown strings.
    """
    if poll is None:
        return Polling(default_interval_ms)
    if isinstance(poll, str):
        if poll == PUSH_MODE:
            return Push()
        raise ConfigurationError(
            f"Unknown poll mode '{poll}'. Use a number of milliseconds, 0 or '{PUSH_MODE}'.",
            parameter="poll",
            provided_value=poll,
            expected_value=PUSH_MODE,
        )
    if (
        isinstance(poll, bool)
        or not isinstance(poll, (int, float))
        or not math.isfinite(poll)
        or poll < 0
    ):
        raise ConfigurationError(
            f"Polling interval {poll!r} is invalid. Use a positive number of milliseconds, "
            f"0 to fetch once or '{PUSH_MODE}'.",
            parameter="poll",
            provided_value=poll,
            expected_value=0,
        )
    if poll == 0:
        return OneShot()
    return Polling(poll)


class SyncSession(ABC):
    """
    Base class holding the snapshot, the event hub and error reporting.

    Subclasses drive the refresh cycle and call ``_apply_snapshot`` for every
    candidate snapshot and ``_report_error`` for every classified failure.
    """

    def __init__(
        self,
        initial_prompt: PromptSnapshot,
        project_id: str,
        version: Optional[str] = None,
        tag: Optional[str] = None,
        on_polling_error: Optional[ErrorHandler] = None,
        on_change: Optional[ChangeHandler] = None,
    ):
        self._current = initial_prompt
        self.project_id = project_id
        self.version_filter = version
        self.tag_filter = tag

        self._events: EventHub[SyncEvent] = EventHub()
        self._error_handler = on_polling_error
        self._change_callback = on_change
        self._stopped = False

        self._last_error: Optional[PollingError] = None
        # The initial snapshot was fetched successfully by the caller.
        self._last_successful_fetch: Optional[datetime] = datetime.now(timezone.utc)
        self._last_error_time: Optional[datetime] = None

    # --- Snapshot accessors ---

    @property
    def id(self) -> str:
        return self._current.id

    @property
    def version(self) -> int:
        return self._current.version

    @property
    def prompt(self) -> str:
        return self._current.prompt

    @property
    def processed_prompt(self) -> Optional[str]:
        return self._current.processed_prompt

    @property
    def version_message(self) -> str:
        return self._current.version_message

    @property
    def tag(self) -> Optional[str]:
        return self._current.tag

    @property
    def temperature(self) -> float:
        return self._current.temperature

    @property
    def created_at(self) -> str:
        return self._current.created_at

    @property
    def updated_at(self) -> str:
        return self._current.updated_at

    @property
    def model(self) -> ModelDescriptor:
        return self._current.model

    @property
    def user(self) -> Optional[PromptUser]:
        return self._current.user

    @property
    def project(self) -> Optional[PromptProject]:
        return self._current.project

    def get_current(self) -> PromptSnapshot:
        """Returns a copy of the current snapshot."""
        return replace(self._current)

    # --- Lifecycle ---

    @abstractmethod
    def stop(self) -> None:
        """Stops synchronizing. Idempotent, safe to call from event handlers."""

    @abstractmethod
    def is_active(self) -> bool:
        """Whether the session is currently synchronizing."""

    @abstractmethod
    def get_status(self) -> SyncStatus:
        """Returns a read-only view of the sync state."""

    @property
    def is_polling(self) -> bool:
        return self.is_active()

    @property
    def is_stopped(self) -> bool:
        return self._stopped

    def stop_polling(self) -> None:
        self.stop()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.stop()

    # --- Subscriptions ---

    @overload
    def on(self, event: Literal["change"], handler: ChangeHandler) -> None: ...

    @overload
    def on(self, event: Literal["error"], handler: ErrorHandler) -> None: ...

    def on(self, event, handler) -> None:
        """Adds a listener for ``change`` or ``error`` events."""
        self._events.on(self._check_event(event), handler)

    @overload
    def off(self, event: Literal["change"], handler: Optional[ChangeHandler] = None) -> None: ...

    @overload
    def off(self, event: Literal["error"], handler: Optional[ErrorHandler] = None) -> None: ...

    def off(self, event, handler=None) -> None:
        """Removes one listener, or all listeners of the event when omitted."""
        self._events.off(self._check_event(event), handler)

    @overload
    def once(self, event: Literal["change"], handler: ChangeHandler) -> None: ...

    @overload
    def once(self, event: Literal["error"], handler: ErrorHandler) -> None: ...

    def once(self, event, handler) -> None:
        """Adds a listener that fires at most once."""
        self._events.once(self._check_event(event), handler)

    def on_error(self, handler: ErrorHandler) -> None:
        """Sets the dedicated error handler, replacing any previous one."""
        self._error_handler = handler

    def remove_error_handler(self) -> None:
        self._error_handler = None

    @staticmethod
    def _check_event(event: str) -> str:
        if event not in ("change", "error"):
            raise ValueError(f"Unknown event '{event}'. Expected 'change' or 'error'.")
        return event

    # --- Shared cycle steps ---

    def _apply_snapshot(self, candidate: PromptSnapshot) -> Optional[PromptChangeEvent]:
        """
        Adopt ``candidate`` as current and emit ``change`` if it differs.

        The candidate is adopted even when nothing changed so that the held
        snapshot is always the most recently observed one.
        """
        previous = self._current
        diff = detect_changes(previous, candidate)
        self._current = candidate

        if diff is None:
            return None

        event = PromptChangeEvent(prompt=candidate, previous_prompt=previous, changes=diff)
        logger.info(
            f"Prompt changed for project {self.project_id}: "
            f"{', '.join(diff.to_dict())} (version {previous.version} -> {candidate.version})"
        )
        self._events.emit("change", event)

        if self._change_callback:
            try:
                self._change_callback(event)
            except Exception as exc:
                logger.error(f"Error in on_change callback: {exc}", exc_info=True)
        return event

    def _report_error(self, error: PollingError) -> None:
        """Record, emit and hand a classified error to the error handler."""
        self._last_error = error
        self._last_error_time = datetime.now(timezone.utc)

        self._events.emit("error", error)

        if self._error_handler:
            try:
                self._error_handler(error)
            except Exception as exc:
                logger.error(f"Error in polling error handler: {exc}", exc_info=True)
        else:
            self._log_default_error(error)

    def _log_default_error(self, error: PollingError) -> None:
        logger.warning(f"Sync error for project {self.project_id}: {error.message}")


__all__ = [
    "SyncSession",
    "SyncEvent",
    "SnapshotFetcher",
    "ChangeHandler",
    "ErrorHandler",
    "SyncStrategy",
    "OneShot",
    "Polling",
    "Push",
    "PUSH_MODE",
    "resolve_strategy",
]

"""
Push (Server-Sent Events) sync session.

Holds one persistent stream connection. Every message on the stream is a
full prompt snapshot. When the connection fails or closes, the session
reports a network error and reconnects after a fixed delay unless it was
stopped or a newer connection attempt already exists.
"""

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import AsyncContextManager, AsyncIterator, Optional, Protocol

from ..core.errors import APIConnectionError, APIError, ErrorCategory, PollingError
from .models import PromptSnapshot, SyncStatus
from .session import ChangeHandler, ErrorHandler, SyncSession

logger = logging.getLogger(__name__)

SSE_RECONNECT_DELAY_MS = 5000


class StreamConnector(Protocol):
    """Opens a push stream yielding raw message payloads."""

    def connect(
        self,
        project_id: str,
        version: Optional[str] = None,
        tag: Optional[str] = None,
    ) -> AsyncContextManager[AsyncIterator[str]]:
        ...


class PushSession(SyncSession):
    """
    Keeps a prompt up to date from a server push stream.

    Must be created while an event loop is running; the connection is
    opened immediately from the constructor.
    """

    def __init__(
        self,
        initial_prompt: PromptSnapshot,
        connector: StreamConnector,
        project_id: str,
        version: Optional[str] = None,
        tag: Optional[str] = None,
        on_polling_error: Optional[ErrorHandler] = None,
        on_change: Optional[ChangeHandler] = None,
        reconnect_delay_ms: float = SSE_RECONNECT_DELAY_MS,
    ):
        super().__init__(
            initial_prompt,
            project_id,
            version=version,
            tag=tag,
            on_polling_error=on_polling_error,
            on_change=on_change,
        )
        self._connector = connector
        self._reconnect_delay_ms = reconnect_delay_ms
        self._connected = False
        self._consecutive_errors = 0

        # Incremented on every connection attempt; older attempts check it
        # to find out they have been superseded.
        self._attempt = 0
        self._loop = asyncio.get_running_loop()
        self._connection_task: Optional[asyncio.Task] = None
        self._reconnect_timer: Optional[asyncio.TimerHandle] = None

        self._open_connection()

    @property
    def is_connected(self) -> bool:
        return self._connected

    def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        self._connected = False
        if self._reconnect_timer:
            self._reconnect_timer.cancel()
            self._reconnect_timer = None
        if self._connection_task and not self._connection_task.done():
            # Cancelling the task closes the stream.
            self._connection_task.cancel()
        self._connection_task = None
        logger.info(f"Closed push stream for project {self.project_id}")

    def is_active(self) -> bool:
        return self._connected and not self._stopped

    def get_status(self) -> SyncStatus:
        return SyncStatus(
            is_polling=self.is_active(),
            current_interval=0,
            consecutive_errors=self._consecutive_errors,
            backoff_multiplier=1.0,
            last_error=self._last_error,
            last_successful_fetch=self._last_successful_fetch,
            last_error_time=self._last_error_time,
        )

    def _open_connection(self) -> None:
        if self._stopped:
            return
        self._attempt += 1
        logger.debug(f"Opening push stream for project {self.project_id} (attempt {self._attempt})")
        self._connection_task = self._loop.create_task(self._run_connection(self._attempt))

    def _is_superseded(self, attempt: int) -> bool:
        return self._stopped or attempt != self._attempt

    async def _run_connection(self, attempt: int) -> None:
        """Reads one connection until it fails or closes."""
        failure: Optional[BaseException] = None
        try:
            async with self._connector.connect(
                self.project_id,
                version=self.version_filter,
                tag=self.tag_filter,
            ) as messages:
                if self._is_superseded(attempt):
                    return
                self._handle_open()

                async for data in messages:
                    if self._is_superseded(attempt):
                        return
                    self._handle_message(data)
        except Exception as exc:
            failure = exc

        if self._is_superseded(attempt):
            return
        self._handle_connection_error(
            failure or APIConnectionError("SSE stream closed by server"),
            attempt,
        )

    def _handle_open(self) -> None:
        self._connected = True
        self._consecutive_errors = 0
        self._last_successful_fetch = datetime.now(timezone.utc)
        self._last_error = None
        logger.info(f"Push stream connected for project {self.project_id}")

    def _handle_message(self, data: str) -> None:
        try:
            candidate = PromptSnapshot.from_api_response(json.loads(data))
        except (ValueError, TypeError) as exc:
            # The connection stays open; only this message is dropped.
            self._consecutive_errors += 1
            self._report_error(
                self._network_error(f"Failed to parse SSE message: {exc}", exc)
            )
            return

        self._apply_snapshot(candidate)
        self._consecutive_errors = 0
        self._last_successful_fetch = datetime.now(timezone.utc)

    def _handle_connection_error(self, exc: BaseException, attempt: int) -> None:
        self._connected = False
        self._consecutive_errors += 1
        self._report_error(self._network_error(f"SSE connection error: {exc}", exc))

        if self._is_superseded(attempt):
            return
        logger.info(
            f"Reconnecting push stream for project {self.project_id} "
            f"in {self._reconnect_delay_ms / 1000}s"
        )
        self._reconnect_timer = self._loop.call_later(
            self._reconnect_delay_ms / 1000, self._reconnect, attempt
        )

    def _reconnect(self, attempt: int) -> None:
        self._reconnect_timer = None
        if self._is_superseded(attempt):
            return
        self._open_connection()

    def _network_error(self, reason: str, cause: BaseException) -> PollingError:
        return PollingError(
            f"SSE error for project {self.project_id}: {reason}",
            category=ErrorCategory.NETWORK,
            project_id=self.project_id,
            consecutive_errors=self._consecutive_errors,
            backoff_multiplier=1.0,
            cause=cause,
            status_code=cause.status if isinstance(cause, APIError) else None,
        )


__all__ = ["PushSession", "StreamConnector", "SSE_RECONNECT_DELAY_MS"]

"""
Promptrun client.

Entry point for applications: fetches a prompt and, depending on ``poll``,
returns it as-is or wrapped in a session that keeps it up to date.

Usage:
    async with PromptrunClient(api_key=os.getenv("PROMPTRUN_API_KEY")) as client:
        session = await client.prompt("project-id", tag="production")
        session.on("change", lambda event: print(event.changes.to_dict()))
"""
from dataclasses import replace
from typing import Any, Dict, Optional, Type, Union

import httpx
import structlog
from pydantic import BaseModel

from .core.config import Settings
from .core.config import settings as default_settings
from .sync.models import PromptSnapshot
from .sync.poll_session import PollSession, validate_poll_interval
from .sync.push_session import PushSession
from .sync.session import ChangeHandler, ErrorHandler, OneShot, Polling, resolve_strategy
from .templating import process_prompt_with_inputs, validate_inputs
from .transport.http import PromptrunHTTPClient
from .transport.sse import SSEConnector

logger = structlog.get_logger(__name__)

PromptResult = Union[PromptSnapshot, PollSession, PushSession]


class PromptrunClient:
    """Creates prompt snapshots and sync sessions for Promptrun projects."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        settings: Optional[Settings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            api_key: Promptrun API key. Defaults to PROMPTRUN_API_KEY.
            base_url: API root. Defaults to PROMPTRUN_BASE_URL.
            headers: Extra headers sent with every request.
            settings: Settings overriding the environment-loaded defaults.
            http_client: Pre-built httpx client shared by fetches and streams.
        """
        self.settings = settings or default_settings
        self.http = PromptrunHTTPClient(
            api_key=api_key or self.settings.api_key,
            base_url=base_url or self.settings.base_url,
            headers=headers,
            timeout=self.settings.request_timeout,
            client=http_client,
        )
        self.stream_connector = SSEConnector(self.http)

        if not self.http.is_configured:
            logger.warning("promptrun_api_key_missing")

    async def prompt(
        self,
        project_id: str,
        *,
        poll: Union[int, float, str, None] = None,
        version: Optional[str] = None,
        tag: Optional[str] = None,
        inputs: Optional[Dict[str, Any]] = None,
        inputs_schema: Optional[Type[BaseModel]] = None,
        on_polling_error: Optional[ErrorHandler] = None,
        on_change: Optional[ChangeHandler] = None,
        enforce_minimum_interval: bool = True,
    ) -> PromptResult:
        """
        Fetch a prompt and start keeping it in sync.

        Args:
            project_id: Project containing the prompt.
            poll: ``None`` for the default interval, ``0`` to fetch once,
                milliseconds to poll, or ``"sse"`` for push updates.
            version: Optional version to pin.
            tag: Optional tag to select.
            inputs: Template inputs substituted into ``processed_prompt``.
            inputs_schema: Pydantic model the inputs are validated against.
            on_polling_error: Dedicated error handler for the session.
            on_change: Callback invoked after every ``change`` event.
            enforce_minimum_interval: Reject polling intervals below the floor.

        Returns:
            The snapshot for one-shot fetches, otherwise a running session.

        Raises:
            ConfigurationError: If ``poll`` is invalid.
            AuthenticationError: If the API key is rejected.
            APIError: If the initial fetch fails with another status.
            APIConnectionError: If the initial fetch gets no usable response.
            pydantic.ValidationError: If ``inputs`` do not match ``inputs_schema``.
        """
        strategy = resolve_strategy(poll, self.settings.default_poll_interval_ms)
        if isinstance(strategy, Polling):
            # Misconfiguration fails before any request is made.
            validate_poll_interval(
                strategy.interval_ms,
                enforce_minimum_interval,
                self.settings.min_poll_interval_ms,
            )

        initial = await self.http.fetch_snapshot(project_id, version=version, tag=tag)
        if inputs is not None:
            initial = self._apply_inputs(initial, inputs, inputs_schema)

        logger.info(
            "prompt_loaded",
            project_id=project_id,
            version=initial.version,
            strategy=type(strategy).__name__,
        )

        if isinstance(strategy, OneShot):
            return initial

        if isinstance(strategy, Polling):
            return PollSession(
                initial,
                self.http,
                project_id,
                strategy.interval_ms,
                version=version,
                tag=tag,
                on_polling_error=on_polling_error,
                enforce_minimum_interval=enforce_minimum_interval,
                on_change=on_change,
                min_interval_ms=self.settings.min_poll_interval_ms,
                max_backoff_ms=self.settings.max_backoff_ms,
            )

        return PushSession(
            initial,
            self.stream_connector,
            project_id,
            version=version,
            tag=tag,
            on_polling_error=on_polling_error,
            on_change=on_change,
            reconnect_delay_ms=self.settings.sse_reconnect_delay_ms,
        )

    @staticmethod
    def _apply_inputs(
        snapshot: PromptSnapshot,
        inputs: Dict[str, Any],
        schema: Optional[Type[BaseModel]],
    ) -> PromptSnapshot:
        values: Any = validate_inputs(inputs, schema).model_dump() if schema else inputs
        processed = process_prompt_with_inputs(snapshot.prompt, values)
        return replace(snapshot, processed_prompt=processed)

    async def close(self) -> None:
        await self.http.close()

    async def __aenter__(self) -> "PromptrunClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


__all__ = ["PromptrunClient", "PromptResult"]

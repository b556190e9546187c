"""Server-Sent Events transport for prompt push updates.

Opens a streamed GET on ``/prompt/stream`` with `httpx.AsyncClient` and turns
the SSE line protocol into a sequence of event ``data`` payloads. Used by
PushSession as its StreamConnector.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx
import structlog

from ..core.errors import APIConnectionError
from .http import PromptrunHTTPClient, build_prompt_params, raise_for_api_status

logger = structlog.get_logger(__name__)


async def iter_sse_data(lines: AsyncIterator[str]) -> AsyncIterator[str]:
    """Assemble SSE lines into event data payloads.

    - ``data:`` lines of one event are joined with ``\\n``
    - a blank line dispatches the pending event
    - comment lines (``:``) and other fields are ignored
    - an event without a terminating blank line is dropped

    Args:
        lines: Decoded lines without their line terminators.

    Returns:
        An async iterator of event payloads.
    """
    data_lines: list[str] = []
    async for line in lines:
        if not line:
            if data_lines:
                yield "\n".join(data_lines)
                data_lines = []
            continue
        if line.startswith(":"):
            continue
        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if field == "data":
            data_lines.append(value)


class SSEConnector:
    """Opens prompt push streams using a PromptrunHTTPClient's settings."""

    def __init__(self, http: PromptrunHTTPClient, path: str = "/prompt/stream"):
        self._http = http
        self._path = path

    @asynccontextmanager
    async def connect(
        self,
        project_id: str,
        version: Optional[str] = None,
        tag: Optional[str] = None,
    ) -> AsyncIterator[AsyncIterator[str]]:
        """Establish the stream and yield its event payloads.

        Raises:
            AuthenticationError: If the API key is rejected.
            APIError: For any other non-2xx response.
            APIConnectionError: For transport-level failures while connecting or reading.
        """
        client = await self._http.get_client()
        url = self._http.url(self._path)
        params = build_prompt_params(project_id, version, tag)
        headers = self._http.headers(Accept="text/event-stream", **{"Cache-Control": "no-cache"})

        logger.debug("sse_connect", url=url, project_id=project_id)
        try:
            async with client.stream(
                "GET",
                url,
                params=params,
                headers=headers,
                timeout=httpx.Timeout(self._http.timeout, read=None),
            ) as response:
                raise_for_api_status(response, action="opening prompt stream")
                logger.info("sse_connected", project_id=project_id)
                yield iter_sse_data(response.aiter_lines())
        except httpx.HTTPError as exc:
            logger.warning("sse_stream_error", project_id=project_id, error=str(exc))
            raise APIConnectionError(f"SSE stream error: {exc}", cause=exc) from exc


__all__ = ["SSEConnector", "iter_sse_data"]

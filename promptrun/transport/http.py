"""
Promptrun HTTP API client.

Fetches prompt snapshots over HTTP and maps HTTP failures onto the
client's error taxonomy.

Usage:
    async with PromptrunHTTPClient(api_key=os.getenv("PROMPTRUN_API_KEY")) as http:
        snapshot = await http.fetch_snapshot("project-id", tag="production")
"""
import json
from typing import Any, Dict, Optional

import httpx
import structlog

from ..core.config import settings as default_settings
from ..core.errors import APIConnectionError, APIError, AuthenticationError
from ..sync.models import PromptSnapshot

logger = structlog.get_logger(__name__)


def build_prompt_params(
    project_id: str,
    version: Optional[str] = None,
    tag: Optional[str] = None,
) -> Dict[str, str]:
    """Query parameters selecting a prompt, its version and tag."""
    params = {"projectId": project_id}
    if version:
        params["version"] = version
    if tag:
        params["tag"] = tag
    return params


def raise_for_api_status(response: httpx.Response, action: str = "fetching prompt") -> None:
    """
    Raise the matching client error for a non-2xx response.

    Raises:
        AuthenticationError: On HTTP 401.
        APIError: On any other non-2xx status (429 included).
    """
    if response.is_success:
        return

    status = response.status_code
    headers = dict(response.headers)
    if status == 401:
        raise AuthenticationError(f"Authentication failed for {action}.", status=status, headers=headers)
    if status == 429:
        raise APIError(
            f"Rate limited while {action}. Too many requests.",
            status=status,
            headers=headers,
        )
    raise APIError(f"Failed {action} with status: {status}", status=status, headers=headers)


class PromptrunHTTPClient:
    """
    Client for the Promptrun prompt endpoints.

    Implements the SnapshotFetcher contract used by PollSession.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the client.

        Args:
            api_key: Promptrun API key. Defaults to PROMPTRUN_API_KEY.
            base_url: API root. Defaults to PROMPTRUN_BASE_URL.
            headers: Extra headers sent with every request.
            timeout: Request timeout in seconds.
            client: Pre-built httpx client (custom transports, proxies, tests).
        """
        self.api_key = api_key or default_settings.api_key
        self.base_url = (base_url or default_settings.base_url).rstrip("/")
        self.extra_headers = dict(headers or {})
        self.timeout = timeout if timeout is not None else default_settings.request_timeout
        self._client = client
        self._owns_client = client is None

    @property
    def is_configured(self) -> bool:
        """Check if the client is configured with credentials."""
        return bool(self.api_key)

    def headers(self, **extra: str) -> Dict[str, str]:
        """Request headers: caller extras plus the bearer token."""
        return {
            **self.extra_headers,
            **extra,
            "Authorization": f"Bearer {self.api_key}",
        }

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    async def get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True
        return self._client

    async def fetch_snapshot(
        self,
        project_id: str,
        version: Optional[str] = None,
        tag: Optional[str] = None,
    ) -> PromptSnapshot:
        """
        Fetch the current prompt of a project.

        Args:
            project_id: Project containing the prompt.
            version: Optional version to pin (e.g. "v2").
            tag: Optional tag to select (e.g. "production").

        Returns:
            The parsed PromptSnapshot.

        Raises:
            AuthenticationError: If the API key is rejected.
            APIError: For any other non-2xx response.
            APIConnectionError: If no usable response was obtained.
        """
        params = build_prompt_params(project_id, version, tag)
        client = await self.get_client()

        try:
            response = await client.get(self.url("/prompt"), params=params, headers=self.headers())
        except httpx.HTTPError as exc:
            logger.warning("prompt_fetch_failed", project_id=project_id, error=str(exc))
            raise APIConnectionError(
                f"Network error while fetching prompt: {exc}", cause=exc
            ) from exc

        raise_for_api_status(response)

        try:
            data: Any = response.json()
            snapshot = PromptSnapshot.from_api_response(data)
        except (json.JSONDecodeError, ValueError) as exc:
            raise APIConnectionError(
                f"Network error while fetching prompt: invalid response body ({exc})", cause=exc
            ) from exc

        logger.debug(
            "prompt_fetched",
            project_id=project_id,
            version=snapshot.version,
            tag=snapshot.tag,
        )
        return snapshot

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._client and self._owns_client:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> "PromptrunHTTPClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


__all__ = ["PromptrunHTTPClient", "build_prompt_params", "raise_for_api_status"]

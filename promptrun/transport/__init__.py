"""HTTP and Server-Sent Events transports for the Promptrun API."""
from .http import PromptrunHTTPClient, build_prompt_params, raise_for_api_status
from .sse import SSEConnector, iter_sse_data

__all__ = [
    "PromptrunHTTPClient",
    "build_prompt_params",
    "raise_for_api_status",
    "SSEConnector",
    "iter_sse_data",
]

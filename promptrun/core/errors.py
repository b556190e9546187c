"""
Error taxonomy for the Promptrun client.

Transport failures are raised as APIError / AuthenticationError /
APIConnectionError by the fetch collaborators. Sync sessions never let those
escape: they are normalized into a PollingError carrying a stable
ErrorCategory, which is what subscribers receive on the ``error`` event.
"""
from enum import Enum
from typing import Any, Dict, Optional, Union


class ErrorCategory(str, Enum):
    """Stable categories a transport failure is classified into."""
    RATE_LIMIT = "rate_limit"
    AUTHENTICATION = "authentication"
    NETWORK = "network"
    API = "api"
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"


class PromptrunError(Exception):
    """Base class for all errors raised by the Promptrun client."""


class APIError(PromptrunError):
    """A request reached the API but got a non-2xx response."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(message)
        self.status = status
        self.headers = headers or {}


class AuthenticationError(APIError):
    """The API key was rejected (HTTP 401)."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = 401,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(message, status=status, headers=headers)


class APIConnectionError(PromptrunError):
    """No response was obtained from the API (DNS, refused, reset, bad body...)."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class ConfigurationError(PromptrunError):
    """Invalid client or session configuration. Never retried."""

    def __init__(
        self,
        message: str,
        parameter: str,
        provided_value: Any,
        expected_value: Optional[Union[int, float, str, bool]] = None,
    ):
        super().__init__(message)
        self.parameter = parameter
        self.provided_value = provided_value
        self.expected_value = expected_value


class PollingError(PromptrunError):
    """
    A classified synchronization failure.

    Attributes:
        category: The stable ErrorCategory used for backoff and reporting.
        cause: The original exception, if any.
        project_id: Project whose prompt was being synchronized.
        consecutive_errors: Error streak of the session when this occurred.
        backoff_multiplier: Backoff multiplier of the session when this occurred.
        status_code: HTTP status, when the failure carried one.
    """

    def __init__(
        self,
        message: str,
        category: ErrorCategory,
        project_id: str,
        consecutive_errors: int,
        backoff_multiplier: float,
        cause: Optional[BaseException] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.project_id = project_id
        self.consecutive_errors = consecutive_errors
        self.backoff_multiplier = backoff_multiplier
        self.cause = cause
        self.status_code = status_code

    @property
    def type(self) -> str:
        """Category value, e.g. ``"rate_limit"``."""
        return self.category.value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "type": self.category.value,
            "project_id": self.project_id,
            "consecutive_errors": self.consecutive_errors,
            "backoff_multiplier": self.backoff_multiplier,
            "status_code": self.status_code,
            "cause": repr(self.cause) if self.cause else None,
        }

    def __repr__(self) -> str:
        return (
            f"PollingError(category={self.category.value!r}, "
            f"project_id={self.project_id!r}, "
            f"consecutive_errors={self.consecutive_errors}, "
            f"status_code={self.status_code})"
        )


def categorize_error(error: BaseException) -> ErrorCategory:
    """Map an exception onto its stable ErrorCategory."""
    if isinstance(error, PollingError):
        return error.category
    if isinstance(error, AuthenticationError):
        return ErrorCategory.AUTHENTICATION
    if isinstance(error, APIError):
        if error.status == 429:
            return ErrorCategory.RATE_LIMIT
        if error.status == 401:
            return ErrorCategory.AUTHENTICATION
        return ErrorCategory.API
    if isinstance(error, APIConnectionError):
        return ErrorCategory.NETWORK
    if isinstance(error, ConfigurationError):
        return ErrorCategory.CONFIGURATION
    return ErrorCategory.UNKNOWN


_MESSAGES = {
    ErrorCategory.RATE_LIMIT: "Rate limited while polling project {project}. Too many requests.",
    ErrorCategory.AUTHENTICATION: "Authentication failed while polling project {project}.",
    ErrorCategory.API: "API error while polling project {project}: {error}",
    ErrorCategory.NETWORK: "Network error while polling project {project}: {error}",
    ErrorCategory.CONFIGURATION: "Configuration error for project {project}: {error}",
    ErrorCategory.UNKNOWN: "Unknown error while polling project {project}: {error}",
}


def classify_error(
    error: BaseException,
    project_id: str,
    consecutive_errors: int = 0,
    backoff_multiplier: float = 1.0,
) -> PollingError:
    """
    Normalize any exception raised while synchronizing into a PollingError.

    Args:
        error: The exception raised by the fetch or push collaborator.
        project_id: Project being synchronized (used in the message).
        consecutive_errors: Current error streak of the session.
        backoff_multiplier: Current backoff multiplier of the session.

    Returns:
        PollingError with the category, status and cause filled in.
    """
    if isinstance(error, PollingError):
        return error

    category = categorize_error(error)
    message = _MESSAGES[category].format(project=project_id, error=error)
    status = error.status if isinstance(error, APIError) else None

    return PollingError(
        message,
        category=category,
        project_id=project_id,
        consecutive_errors=consecutive_errors,
        backoff_multiplier=backoff_multiplier,
        cause=error,
        status_code=status,
    )


__all__ = [
    "ErrorCategory",
    "PromptrunError",
    "APIError",
    "AuthenticationError",
    "APIConnectionError",
    "ConfigurationError",
    "PollingError",
    "categorize_error",
    "classify_error",
]

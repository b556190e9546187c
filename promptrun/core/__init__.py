"""Core modules for the Promptrun client."""
from .config import Settings, settings
from .errors import (
    APIConnectionError,
    APIError,
    AuthenticationError,
    ConfigurationError,
    ErrorCategory,
    PollingError,
    PromptrunError,
    categorize_error,
    classify_error,
)

__all__ = [
    "Settings",
    "settings",
    "APIConnectionError",
    "APIError",
    "AuthenticationError",
    "ConfigurationError",
    "ErrorCategory",
    "PollingError",
    "PromptrunError",
    "categorize_error",
    "classify_error",
]

"""
Promptrun prompt sync client.

Fetches prompts from the Promptrun API and keeps them up to date by polling
or over a Server-Sent Events stream.
"""
from .client import PromptrunClient, PromptResult
from .core.config import Settings
from .core.errors import (
    APIConnectionError,
    APIError,
    AuthenticationError,
    ConfigurationError,
    ErrorCategory,
    PollingError,
    PromptrunError,
)
from .sync import (
    ChangeDiff,
    FieldChange,
    ModelDescriptor,
    PollSession,
    PromptChangeEvent,
    PromptProject,
    PromptSnapshot,
    PromptUser,
    PushSession,
    SyncSession,
    SyncStatus,
    detect_changes,
)
from .templating import (
    extract_prompt_variables,
    parse_prompt_variables,
    process_prompt_with_inputs,
    validate_inputs,
)

__version__ = "0.1.0"

__all__ = [
    "PromptrunClient",
    "PromptResult",
    "Settings",
    # Errors
    "PromptrunError",
    "APIError",
    "AuthenticationError",
    "APIConnectionError",
    "ConfigurationError",
    "PollingError",
    "ErrorCategory",
    # Sync
    "SyncSession",
    "PollSession",
    "PushSession",
    "PromptSnapshot",
    "ModelDescriptor",
    "PromptUser",
    "PromptProject",
    "PromptChangeEvent",
    "ChangeDiff",
    "FieldChange",
    "SyncStatus",
    "detect_changes",
    # Templating
    "extract_prompt_variables",
    "parse_prompt_variables",
    "process_prompt_with_inputs",
    "validate_inputs",
]

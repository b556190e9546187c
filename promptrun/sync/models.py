"""
Data models for prompt synchronization.

A PromptSnapshot is one immutable observed state of a prompt. Sessions never
mutate a snapshot; every refresh produces a new one and the previous one is
kept only long enough to diff against.
"""

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, Generic, Optional, TypeVar, Union

from ..core.errors import PollingError

T = TypeVar("T")


@dataclass(frozen=True)
class ModelDescriptor:
    """The LLM a prompt is bound to."""
    name: str
    provider: str
    model: str
    icon: str = ""


@dataclass(frozen=True)
class PromptUser:
    id: str
    clerk_id: str = ""


@dataclass(frozen=True)
class PromptProject:
    id: str
    name: str = ""


def _require(data: Dict[str, Any], key: str, kind: Union[type, tuple]) -> Any:
    if key not in data:
        raise ValueError(f"Missing required field '{key}'")
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, kind):
        raise ValueError(f"Field '{key}' has invalid type {type(value).__name__}")
    return value


@dataclass(frozen=True)
class PromptSnapshot:
    """Represents one version of a prompt as returned by the API."""
    id: str
    version: int
    prompt: str
    temperature: float
    created_at: str
    updated_at: str
    model: ModelDescriptor
    tag: Optional[str] = None
    version_message: str = ""
    processed_prompt: Optional[str] = None
    user: Optional[PromptUser] = None
    project: Optional[PromptProject] = None

    @classmethod
    def from_api_response(cls, data: Dict[str, Any]) -> "PromptSnapshot":
        """
        Create a snapshot from the API's camelCase JSON payload.

        Raises:
            ValueError: If a required field is missing or has the wrong type.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Prompt payload must be an object, got {type(data).__name__}")

        model_data = _require(data, "model", dict)
        tag = data.get("tag")
        if tag is not None and not isinstance(tag, str):
            raise ValueError(f"Field 'tag' has invalid type {type(tag).__name__}")

        user = None
        if isinstance(data.get("user"), dict):
            user = PromptUser(
                id=str(data["user"].get("id", "")),
                clerk_id=str(data["user"].get("clerkId", "")),
            )
        project = None
        if isinstance(data.get("project"), dict):
            project = PromptProject(
                id=str(data["project"].get("id", "")),
                name=str(data["project"].get("name", "")),
            )

        return cls(
            id=_require(data, "id", str),
            version=_require(data, "version", int),
            prompt=_require(data, "prompt", str),
            temperature=float(_require(data, "temperature", (int, float))),
            created_at=_require(data, "createdAt", str),
            updated_at=_require(data, "updatedAt", str),
            model=ModelDescriptor(
                name=str(model_data.get("name", "")),
                provider=str(model_data.get("provider", "")),
                model=str(model_data.get("model", "")),
                icon=str(model_data.get("icon", "")),
            ),
            tag=tag,
            version_message=str(data.get("versionMessage") or ""),
            processed_prompt=data.get("processedPrompt"),
            user=user,
            project=project,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Render the snapshot in the API's camelCase shape."""
        data: Dict[str, Any] = {
            "id": self.id,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "prompt": self.prompt,
            "version": self.version,
            "versionMessage": self.version_message,
            "tag": self.tag,
            "temperature": self.temperature,
            "model": asdict(self.model),
        }
        if self.processed_prompt is not None:
            data["processedPrompt"] = self.processed_prompt
        if self.user is not None:
            data["user"] = {"id": self.user.id, "clerkId": self.user.clerk_id}
        if self.project is not None:
            data["project"] = {"id": self.project.id, "name": self.project.name}
        return data


@dataclass(frozen=True)
class FieldChange(Generic[T]):
    """Old and new value of one changed field."""
    from_value: T
    to_value: T

    def to_dict(self) -> Dict[str, Any]:
        return {"from": self.from_value, "to": self.to_value}


@dataclass(frozen=True)
class ChangeDiff:
    """Fields that differ between two snapshots. Unchanged fields are None."""
    version: Optional[FieldChange[int]] = None
    content: Optional[FieldChange[str]] = None
    temperature: Optional[FieldChange[float]] = None
    tag: Optional[FieldChange[Optional[str]]] = None
    updated_at: Optional[FieldChange[str]] = None

    @property
    def is_empty(self) -> bool:
        return not self.to_dict()

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        changes = {
            "version": self.version,
            "content": self.content,
            "temperature": self.temperature,
            "tag": self.tag,
            "updatedAt": self.updated_at,
        }
        return {name: change.to_dict() for name, change in changes.items() if change is not None}


@dataclass(frozen=True)
class PromptChangeEvent:
    """Payload of the ``change`` event."""
    prompt: PromptSnapshot
    previous_prompt: PromptSnapshot
    changes: ChangeDiff


@dataclass(frozen=True)
class SyncStatus:
    """Read-only view of a session's synchronization state."""
    is_polling: bool
    current_interval: float  # milliseconds, 0 for push sessions
    consecutive_errors: int
    backoff_multiplier: float
    last_error: Optional[PollingError] = None
    last_successful_fetch: Optional[datetime] = None
    last_error_time: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_polling": self.is_polling,
            "current_interval": self.current_interval,
            "consecutive_errors": self.consecutive_errors,
            "backoff_multiplier": self.backoff_multiplier,
            "last_error": self.last_error.to_dict() if self.last_error else None,
            "last_successful_fetch": (
                self.last_successful_fetch.isoformat() if self.last_successful_fetch else None
            ),
            "last_error_time": self.last_error_time.isoformat() if self.last_error_time else None,
        }


__all__ = [
    "ModelDescriptor",
    "PromptUser",
    "PromptProject",
    "PromptSnapshot",
    "FieldChange",
    "ChangeDiff",
    "PromptChangeEvent",
    "SyncStatus",
]

"""
Prompt synchronization engine.

Keeps a locally held prompt snapshot in step with the Promptrun API and
notifies subscribers when it changes.

Components:
- models: PromptSnapshot, ChangeDiff, PromptChangeEvent, SyncStatus
- detector: change detection between two snapshots
- backoff: error-streak backoff policy
- events: in-memory event hub
- session: shared session contract and sync strategies
- poll_session: timer-driven polling session
- push_session: Server-Sent Events session
"""

from .backoff import BackoffController, MAX_BACKOFF_MS
from .detector import detect_changes
from .events import EventHub
from .models import (
    ChangeDiff,
    FieldChange,
    ModelDescriptor,
    PromptChangeEvent,
    PromptProject,
    PromptSnapshot,
    PromptUser,
    SyncStatus,
)
from .poll_session import MIN_POLL_INTERVAL_MS, PollSession
from .push_session import SSE_RECONNECT_DELAY_MS, PushSession, StreamConnector
from .session import (
    PUSH_MODE,
    OneShot,
    Polling,
    Push,
    SnapshotFetcher,
    SyncSession,
    SyncStrategy,
    resolve_strategy,
)

__all__ = [
    # Models
    "ChangeDiff",
    "FieldChange",
    "ModelDescriptor",
    "PromptChangeEvent",
    "PromptProject",
    "PromptSnapshot",
    "PromptUser",
    "SyncStatus",
    # Engine
    "BackoffController",
    "MAX_BACKOFF_MS",
    "detect_changes",
    "EventHub",
    # Sessions
    "SyncSession",
    "SnapshotFetcher",
    "StreamConnector",
    "PollSession",
    "PushSession",
    "MIN_POLL_INTERVAL_MS",
    "SSE_RECONNECT_DELAY_MS",
    # Strategies
    "SyncStrategy",
    "OneShot",
    "Polling",
    "Push",
    "PUSH_MODE",
    "resolve_strategy",
]

"""Pytest fixtures for Promptrun sync tests."""
import asyncio
from contextlib import asynccontextmanager
from dataclasses import replace
from typing import Any, Callable, Optional

import pytest

from promptrun.sync.models import ModelDescriptor, PromptSnapshot


BASE_SNAPSHOT = PromptSnapshot(
    id="prompt-1",
    version=1,
    prompt="You are a helpful assistant.",
    temperature=0.7,
    created_at="2024-01-01T00:00:00.000Z",
    updated_at="2024-01-01T00:00:00.000Z",
    model=ModelDescriptor(name="GPT-4o", provider="openai", model="gpt-4o", icon="openai.svg"),
    tag="production",
    version_message="Initial version",
)


def build_payload(**overrides: Any) -> dict:
    """API-shaped (camelCase) prompt payload."""
    payload = {
        "id": "prompt-1",
        "createdAt": "2024-01-01T00:00:00.000Z",
        "updatedAt": "2024-01-01T00:00:00.000Z",
        "prompt": "You are a helpful assistant.",
        "version": 1,
        "versionMessage": "Initial version",
        "tag": "production",
        "temperature": 0.7,
        "model": {
            "name": "GPT-4o",
            "provider": "openai",
            "model": "gpt-4o",
            "icon": "openai.svg",
        },
    }
    payload.update(overrides)
    return payload


class FakeFetcher:
    """
    SnapshotFetcher double.

    Returns (or raises) queued results in order; once the queue is empty the
    last returned snapshot is served again.
    """

    def __init__(self, *results: Any, last: Optional[PromptSnapshot] = None):
        self.results = list(results)
        self.calls: list[dict] = []
        self.last = last or BASE_SNAPSHOT
        self.gate: Optional[asyncio.Event] = None

    async def fetch_snapshot(self, project_id, version=None, tag=None):
        self.calls.append({"project_id": project_id, "version": version, "tag": tag})
        if self.gate is not None:
            await self.gate.wait()
        if self.results:
            result = self.results.pop(0)
            if isinstance(result, BaseException):
                raise result
            self.last = result
        return self.last


class FakeConnector:
    """
    StreamConnector double.

    Every ``connect`` takes the next script from ``streams``. A script is a
    list of payloads (str) or exceptions; an exception ends the stream with
    that error. With ``hold_open`` the stream stays open once the script is
    exhausted, until the session cancels it.
    """

    def __init__(self, *streams: list, hold_open: bool = False, connect_error: Optional[Exception] = None):
        self.streams = list(streams)
        self.hold_open = hold_open
        self.connect_error = connect_error
        self.connects: list[dict] = []
        self.closed = 0

    @asynccontextmanager
    async def connect(self, project_id, version=None, tag=None):
        self.connects.append({"project_id": project_id, "version": version, "tag": tag})
        if self.connect_error is not None:
            raise self.connect_error
        script = self.streams.pop(0) if self.streams else []
        try:
            yield self._messages(script)
        finally:
            self.closed += 1

    async def _messages(self, script):
        for item in script:
            await asyncio.sleep(0)
            if isinstance(item, BaseException):
                raise item
            yield item
        if self.hold_open:
            await asyncio.Event().wait()


async def eventually(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Wait until ``predicate()`` is true, failing the test after ``timeout`` seconds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            pytest.fail("condition not met before timeout")
        await asyncio.sleep(0.005)


@pytest.fixture
def snapshot() -> PromptSnapshot:
    return BASE_SNAPSHOT


@pytest.fixture
def snapshot_factory() -> Callable[..., PromptSnapshot]:
    """Factory fixture deriving snapshots from the base snapshot."""
    def _create(**changes: Any) -> PromptSnapshot:
        return replace(BASE_SNAPSHOT, **changes)
    return _create


@pytest.fixture
def payload_factory() -> Callable[..., dict]:
    return build_payload


@pytest.fixture
def fetcher_factory() -> type:
    return FakeFetcher


@pytest.fixture
def connector_factory() -> type:
    return FakeConnector


@pytest.fixture
def wait_for() -> Callable:
    return eventually

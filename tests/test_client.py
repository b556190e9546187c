"""
Tests for PromptrunClient.

Tests cover:
- Sync strategy resolution
- One-shot, polling and push results
- Template inputs
"""

import json

import httpx
import pytest
from pydantic import BaseModel, ValidationError

from promptrun import PromptrunClient, Settings
from promptrun.core.errors import ConfigurationError
from promptrun.sync import OneShot, Polling, PollSession, PromptSnapshot, Push, PushSession, resolve_strategy

BASE_URL = "https://api.test/v1"


class FakeAPI:
    """MockTransport handler serving prompt versions in order."""

    def __init__(self, *payloads: dict, stream: bytes = b""):
        self.payloads = list(payloads)
        self.stream = stream
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path.endswith("/prompt/stream"):
            return httpx.Response(200, headers={"content-type": "text/event-stream"}, content=self.stream)
        payload = self.payloads.pop(0) if len(self.payloads) > 1 else self.payloads[0]
        return httpx.Response(200, json=payload)


def make_client(api: FakeAPI, **settings) -> PromptrunClient:
    settings.setdefault("sse_reconnect_delay_ms", 1000)
    return PromptrunClient(
        api_key="test-key",
        base_url=BASE_URL,
        settings=Settings(**settings),
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(api)),
    )


class TestResolveStrategy:
    """Tests for resolve_strategy."""

    def test_default(self):
        assert resolve_strategy(None, 6000) == Polling(6000)

    def test_one_shot(self):
        assert resolve_strategy(0, 6000) == OneShot()

    def test_interval(self):
        assert resolve_strategy(10_000, 6000) == Polling(10_000)

    def test_push(self):
        assert resolve_strategy("sse", 6000) == Push()

    @pytest.mark.parametrize("poll", [-1, "websocket", False, float("nan"), float("inf")])
    def test_invalid(self, poll):
        with pytest.raises(ConfigurationError) as exc_info:
            resolve_strategy(poll, 6000)
        assert exc_info.value.parameter == "poll"
        assert exc_info.value.provided_value is poll


class TestPromptrunClient:
    """Tests for PromptrunClient.prompt."""

    @pytest.mark.asyncio
    async def test_one_shot_returns_snapshot(self, payload_factory):
        api = FakeAPI(payload_factory(version=5))
        async with make_client(api) as client:
            result = await client.prompt("proj-1", poll=0, tag="production")

        assert isinstance(result, PromptSnapshot)
        assert result.version == 5
        assert len(api.requests) == 1
        assert api.requests[0].url.params["tag"] == "production"

    @pytest.mark.asyncio
    async def test_default_poll_session(self, payload_factory):
        async with make_client(FakeAPI(payload_factory())) as client:
            session = await client.prompt("proj-1")
            try:
                assert isinstance(session, PollSession)
                assert session.interval_ms == 6000
                assert session.version == 1
            finally:
                session.stop()

    @pytest.mark.asyncio
    async def test_aggressive_interval_rejected_before_fetch(self, payload_factory):
        api = FakeAPI(payload_factory())
        async with make_client(api) as client:
            with pytest.raises(ConfigurationError) as exc_info:
                await client.prompt("proj-1", poll=1000)

        assert exc_info.value.expected_value == 5000
        assert api.requests == []

    @pytest.mark.asyncio
    async def test_non_finite_interval_rejected_before_fetch(self, payload_factory):
        api = FakeAPI(payload_factory())
        async with make_client(api) as client:
            with pytest.raises(ConfigurationError) as exc_info:
                await client.prompt("proj-1", poll=float("nan"))

        assert exc_info.value.parameter == "poll"
        assert api.requests == []

    @pytest.mark.asyncio
    async def test_poll_session_reports_changes(self, payload_factory, wait_for):
        api = FakeAPI(payload_factory(version=1), payload_factory(version=2))
        changes = []

        async with make_client(api) as client:
            session = await client.prompt(
                "proj-1", poll=20, enforce_minimum_interval=False, on_change=changes.append
            )
            with session:
                await wait_for(lambda: changes)

        assert changes[0].changes.version.to_dict() == {"from": 1, "to": 2}

    @pytest.mark.asyncio
    async def test_push_session(self, payload_factory, wait_for):
        stream = f"data: {json.dumps(payload_factory(version=2))}\n\n".encode()
        api = FakeAPI(payload_factory(version=1), stream=stream)
        changes = []

        async with make_client(api) as client:
            session = await client.prompt("proj-1", poll="sse", on_polling_error=lambda e: None)
            with session:
                assert isinstance(session, PushSession)
                session.on("change", changes.append)
                await wait_for(lambda: changes)

        assert session.version == 2
        assert api.requests[1].url.path == "/v1/prompt/stream"

    @pytest.mark.asyncio
    async def test_inputs_are_processed(self, payload_factory):
        api = FakeAPI(payload_factory(prompt="Reply to {{customer.name}} in {{language}}."))
        async with make_client(api) as client:
            snap = await client.prompt(
                "proj-1",
                poll=0,
                inputs={"customer": {"name": "Ada"}, "language": "French"},
            )

        assert snap.prompt == "Reply to {{customer.name}} in {{language}}."
        assert snap.processed_prompt == "Reply to Ada in French."

    @pytest.mark.asyncio
    async def test_inputs_schema(self, payload_factory):
        class Inputs(BaseModel):
            language: str
            formal: bool

        api = FakeAPI(payload_factory(prompt="Answer in {{language}} (formal={{formal}})."))
        async with make_client(api) as client:
            snap = await client.prompt(
                "proj-1", poll=0, inputs={"language": "German", "formal": "yes"}, inputs_schema=Inputs
            )
            assert snap.processed_prompt == "Answer in German (formal=true)."

            with pytest.raises(ValidationError):
                await client.prompt("proj-1", poll=0, inputs={"formal": True}, inputs_schema=Inputs)

"""Shared fixtures for backend tests."""

from __future__ import annotations

from collections.abc import AsyncIterator
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from ashteams_chat.config import Settings
from ashteams_chat.domain.infrastructure import MemoryChatStore
from ashteams_chat.domain.models import ChatMessage
from ashteams_chat.main import create_app


def pytest_configure(config):
    """Set pytest-asyncio mode to auto so async test functions work without markers."""
    config.option.asyncio_mode = "auto"


class FakeCompletionClient:
    """Stands in for the OpenRouter client.

    ``complete`` is an ``AsyncMock`` so tests can assert on calls or swap in
    a ``side_effect``. ``stream`` yields ``fragments`` and then raises
    ``stream_error`` if one is set.
    """

    def __init__(self, reply: str = "Hello! I'm Ashteams AI.") -> None:
        self.complete = AsyncMock(return_value=reply)
        self.fragments: list[str] = ["Hello", "! I'm ", "Ashteams AI."]
        self.stream_error: Exception | None = None
        self.stream_calls: list[list[ChatMessage]] = []

    async def stream(self, messages: list[ChatMessage]) -> AsyncIterator[str]:
        self.stream_calls.append(list(messages))
        for fragment in self.fragments:
            yield fragment
        if self.stream_error is not None:
            raise self.stream_error


@pytest.fixture()
def settings() -> Settings:
    """Settings that never read the real .env file."""
    return Settings(
        _env_file=None,
        openrouter_api_key="test-key",
        jwt_secret="test-secret-with-enough-length-for-hs256",
        log_level="WARNING",
    )


@pytest.fixture()
def store() -> MemoryChatStore:
    return MemoryChatStore()


@pytest.fixture()
def completion() -> FakeCompletionClient:
    return FakeCompletionClient()


@pytest.fixture()
def client(settings: Settings, store: MemoryChatStore, completion: FakeCompletionClient):
    """A TestClient over an app wired to the fake completion client."""
    app = create_app(settings, store=store, completion_client=completion)
    with TestClient(app) as c:
        yield c

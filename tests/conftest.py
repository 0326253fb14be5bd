"""Shared test fixtures and configuration."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from langgraph_chat.config import Settings
from langgraph_chat.identity import UserIdentity


@pytest.fixture
def settings():
    """Settings pointing at a fake deployment with a short stream timeout."""
    return Settings(
        LANGGRAPH_API_URL="http://test-api",
        LANGGRAPH_ASSISTANT_ID="test-assistant-id",
        STREAM_INIT_TIMEOUT=0.2,
        AUTH0_BASE_URL="https://auth.example.com",
    )


@pytest.fixture
def mock_client():
    """Stand-in for the LangGraph SDK client."""
    client = MagicMock()
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=False)
    client.aclose = AsyncMock()
    client.assistants.create = AsyncMock()
    client.threads.create = AsyncMock(return_value={"thread_id": "test-thread-id"})
    client.threads.get_state = AsyncMock()
    client.threads.update_state = AsyncMock()

    async def default_stream(thread_id, assistant_id, **kwargs):
        yield {"event": "metadata", "data": {"run_id": "test-run-id"}}
        yield {
            "event": "messages/partial",
            "data": [{"id": "ai-1", "type": "ai", "content": "Hello"}],
        }

    client.runs.stream = MagicMock(side_effect=default_stream)
    return client


@pytest.fixture
def patched_get_client(mock_client):
    with patch("langgraph_chat.client.get_client", return_value=mock_client) as mock_get_client:
        yield mock_get_client


@pytest.fixture
def verified_user():
    return UserIdentity(email="test@example.com", email_verified=True)


@pytest.fixture
def unverified_user():
    return UserIdentity(email="test@example.com", email_verified=False)


@pytest.fixture
def human_message():
    return {"type": "human", "content": "Hello"}

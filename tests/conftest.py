"""Shared test fixtures for the Wedding Assistant test suite."""

from __future__ import annotations

import json
import os
from unittest.mock import AsyncMock, MagicMock

import pytest


def pytest_configure(config):
    """Set test environment variables BEFORE collection starts.

    This runs before any imports, so config.py won't fail on module load.
    """
    os.environ.setdefault("AZURE_OPENAI_ENDPOINT", "https://test-openai.openai.azure.com/")
    os.environ.setdefault("AZURE_OPENAI_API_KEY", "test-openai-key-123")
    os.environ.setdefault("AZURE_OPENAI_DEPLOYMENT_NAME", "gpt-4o-test")
    os.environ.setdefault("AZURE_SEARCH_ENDPOINT", "https://test-search.search.windows.net")
    os.environ.setdefault("AZURE_SEARCH_API_KEY", "test-search-key-456")
    os.environ.setdefault("AZURE_SEARCH_INDEX_NAME", "wedding-index")
    os.environ.setdefault(
        "ACS_CONNECTION_STRING",
        "endpoint=https://test-acs.communication.azure.com/;accesskey=dGVzdC1hY2Nlc3Mta2V5",
    )
    os.environ.setdefault("ACS_CHANNEL_REGISTRATION_ID", "11111111-2222-3333-4444-555555555555")


@pytest.fixture
def store():
    from wedding_assistant.services.conversation_store import ConversationStore

    return ConversationStore()


@pytest.fixture
def mock_http_response():
    """Factory fixture for creating mock httpx responses."""

    def _make(data: dict | None, status_code: int = 200):
        mock = MagicMock()
        mock.status_code = status_code
        mock.json.return_value = data
        mock.text = json.dumps(data) if data is not None else ""
        mock.content = mock.text.encode()
        return mock

    return _make


@pytest.fixture
def mock_llm():
    """Chat model double whose ``ainvoke`` returns an AIMessage-like object."""

    def _make(content: str | None = "The ceremony starts at 4 PM."):
        llm = MagicMock()
        llm.ainvoke = AsyncMock(return_value=MagicMock(content=content))
        return llm

    return _make


def _envelope(event_type: str, data: dict | None, event_id: str = "evt-1") -> dict:
    return {
        "id": event_id,
        "eventType": event_type,
        "subject": "advancedMessage/sender",
        "data": data,
        "dataVersion": "1.0",
        "eventTime": "2026-10-18T12:00:00Z",
    }


@pytest.fixture
def make_envelope():
    """Factory fixture for a single Event Grid envelope."""
    return _envelope


@pytest.fixture
def make_message_envelope():
    """Factory fixture for an ``AdvancedMessageReceived`` envelope."""

    def _make(sender: str, content: str | None, event_id: str = "evt-1") -> dict:
        return _envelope(
            "Microsoft.Communication.AdvancedMessageReceived",
            {
                "from": sender,
                "to": "11111111-2222-3333-4444-555555555555",
                "content": content,
                "channelType": "whatsapp",
                "receivedTimestamp": "2026-10-18T12:00:00Z",
            },
            event_id=event_id,
        )

    return _make

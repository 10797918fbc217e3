"""Tests for reply delivery and its history bookkeeping."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from azure.core.exceptions import DecodeError

from wedding_assistant.delivery import DeliveryOutcome, ReplyDispatcher
from wedding_assistant.services.conversation_store import ConversationMessage, Role
from wedding_assistant.services.messages_client import MessagesAPIError, MessagesClient


def _messages_client(side_effect=None) -> MagicMock:
    client = MagicMock()
    client.send_text = AsyncMock(return_value=["m1"], side_effect=side_effect)
    return client


class TestDeliver:
    @pytest.mark.asyncio
    async def test_success_appends_assistant_message_and_log(self, store):
        client = _messages_client()
        store.append_user("What time is the ceremony?")

        outcome = await ReplyDispatcher(client, store).deliver("+1555", "4 PM.")

        assert outcome is DeliveryOutcome.SENT
        client.send_text.assert_awaited_once_with("+1555", "4 PM.")
        assert store.history()[-1] == ConversationMessage(Role.ASSISTANT, "4 PM.")
        assert store.display_log() == ("Assistant: 4 PM.",)

    @pytest.mark.asyncio
    async def test_failure_leaves_history_untouched(self, store):
        client = _messages_client(MessagesAPIError("Send failed with 403: forbidden", 403))
        store.append_user("What time is the ceremony?")
        before = len(store)

        outcome = await ReplyDispatcher(client, store).deliver("+1555", "4 PM.")

        assert outcome is DeliveryOutcome.FAILED
        assert len(store) == before
        (entry,) = store.display_log()
        assert entry.startswith('Error: Failed to respond to "+1555".')
        assert "forbidden" in entry

    @pytest.mark.asyncio
    async def test_accepted_send_with_unreadable_receipts_is_recorded(self, store):
        client = MessagesClient(
            "endpoint=https://test-acs.communication.azure.com/;accesskey=dGVzdC1hY2Nlc3Mta2V5",
            "11111111-2222-3333-4444-555555555555",
        )
        store.append_user("What time is the ceremony?")

        with patch.object(
            client._client, "send", new=AsyncMock(side_effect=DecodeError("not json")),
        ):
            outcome = await ReplyDispatcher(client, store).deliver("+1555", "4 PM.")

        assert outcome is DeliveryOutcome.SENT
        assert store.history()[-1] == ConversationMessage(Role.ASSISTANT, "4 PM.")
        assert store.display_log() == ("Assistant: 4 PM.",)

    @pytest.mark.asyncio
    async def test_failure_is_not_retried(self, store):
        client = _messages_client(MessagesAPIError("boom"))
        await ReplyDispatcher(client, store).deliver("+1555", "4 PM.")
        assert client.send_text.await_count == 1


class TestRecordNoResponse:
    def test_logs_without_touching_history(self, store):
        store.append_user("hi")
        ReplyDispatcher(_messages_client(), store).record_no_response("+1555")
        assert len(store) == 1
        assert store.display_log() == ("Error: No response generated.",)

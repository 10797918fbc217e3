"""Delivers generated replies over WhatsApp and records the outcome."""

from __future__ import annotations

import logging
from enum import Enum

from wedding_assistant.services.conversation_store import ConversationStore
from wedding_assistant.services.messages_client import MessagesAPIError, MessagesClient

logger = logging.getLogger(__name__)


class DeliveryOutcome(str, Enum):
    SENT = "sent"
    FAILED = "failed"


class ReplyDispatcher:
    """Sends one reply per call and keeps the conversation store honest.

    Only a reply that actually left the building is added to the history;
    an undelivered reply is recorded in the display log and nowhere else.
    """

    def __init__(self, messages_client: MessagesClient, store: ConversationStore) -> None:
        self._messages_client = messages_client
        self._store = store

    async def deliver(self, recipient: str, text: str) -> DeliveryOutcome:
        try:
            await self._messages_client.send_text(recipient, text)
        except MessagesAPIError as exc:
            logger.error("Failed to respond to %s: %s", recipient, exc)
            self._store.log(f'Error: Failed to respond to "{recipient}". Exception: {exc}')
            return DeliveryOutcome.FAILED

        self._store.append_assistant(text)
        self._store.log(f"Assistant: {text}")
        return DeliveryOutcome.SENT

    def record_no_response(self, recipient: str) -> None:
        logger.error("No response generated for %s", recipient)
        self._store.log("Error: No response generated.")

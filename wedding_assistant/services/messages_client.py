"""Async client for Azure Communication Services Advanced Messages.

Sends plain-text WhatsApp messages through a registered channel using the
``azure-communication-messages`` SDK.  The endpoint and access key come
from the resource connection string
(``endpoint=https://<resource>.communication.azure.com/;accesskey=<base64>``).

Sends are **not** retried: a timed-out request may still have been
delivered, and a duplicate WhatsApp message is worse than a dropped one.

Docs: https://learn.microsoft.com/python/api/overview/azure/communication-messages-readme
"""

from __future__ import annotations

import logging
import uuid

from azure.communication.messages.aio import NotificationMessagesClient
from azure.communication.messages.models import TextNotificationContent
from azure.core.exceptions import AzureError, DecodeError, DeserializationError

from wedding_assistant.config import (
    ACS_CHANNEL_REGISTRATION_ID,
    ACS_CONNECTION_STRING,
    ACS_MESSAGES_API_VERSION,
    REQUEST_TIMEOUT_SECONDS,
)
from wedding_assistant.services.metrics import metrics

logger = logging.getLogger(__name__)


class MessagesAPIError(Exception):
    """Raised when a message could not be handed to the channel."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class MessagesClient:
    """Sends text notifications through one registered WhatsApp channel."""

    def __init__(
        self,
        connection_string: str | None = None,
        channel_registration_id: str | None = None,
        *,
        api_version: str | None = None,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
    ):
        # Fail at start-up, not on the first customer message.
        self._channel_registration_id = str(
            uuid.UUID(channel_registration_id or ACS_CHANNEL_REGISTRATION_ID)
        )
        self._client = NotificationMessagesClient.from_connection_string(
            connection_string or ACS_CONNECTION_STRING,
            api_version=api_version or ACS_MESSAGES_API_VERSION,
            retry_total=0,
            connection_timeout=timeout,
            read_timeout=timeout,
        )

    @property
    def channel_registration_id(self) -> str:
        return self._channel_registration_id

    async def send_text(self, recipient: str, text: str) -> list[str]:
        """Send *text* to a single WhatsApp *recipient*.

        Returns the message ids from the service receipts.  A send the
        service accepted but whose body could not be read still counts as
        sent and returns an empty list.

        Raises:
            MessagesAPIError: on any non-2xx response or transport failure.
        """
        content = TextNotificationContent(
            channel_registration_id=self._channel_registration_id,
            to=[recipient],
            content=text,
        )
        try:
            async with metrics.track("messages", "notifications:send"):
                try:
                    result = await self._client.send(content)
                except (DecodeError, DeserializationError) as exc:
                    logger.warning("Message to %s accepted; receipts unreadable: %s", recipient, exc)
                    return []
        except AzureError as exc:
            raise MessagesAPIError(
                f"Send failed: {exc}",
                status_code=getattr(exc, "status_code", None),
            ) from exc

        logger.debug("Message sent to %s (%d chars)", recipient, len(text))
        return [receipt.message_id for receipt in (result.receipts or [])]

    async def aclose(self) -> None:
        await self._client.close()

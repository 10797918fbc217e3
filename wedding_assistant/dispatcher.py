"""Classifies Event Grid webhook deliveries and drives the reply pipeline.

Two delivery kinds matter, selected by the ``aeg-event-type`` header:

* ``SubscriptionValidation``: the one-time handshake; the validation code
  from the first envelope is echoed back.
* ``Notification``: live events; every ``AdvancedMessageReceived``
  envelope becomes one run of the reply pipeline, in array order.

Anything else is rejected without looking at the body.  A body that does
not parse as an array of envelopes raises :class:`MalformedPayload`; every
other failure is contained to the message that caused it.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum

from pydantic import ValidationError

from wedding_assistant.api.schemas import (
    AdvancedMessageReceivedData,
    EventGridBatch,
    EventGridEvent,
    SubscriptionValidationData,
)
from wedding_assistant.services.conversation_store import ConversationStore

logger = logging.getLogger(__name__)

EVENT_TYPE_HEADER = "aeg-event-type"
VALIDATION_EVENT = "SubscriptionValidation"
NOTIFICATION_EVENT = "Notification"
MESSAGE_RECEIVED_EVENT = "microsoft.communication.advancedmessagereceived"


class MalformedPayload(Exception):
    """The webhook body is not the expected array of envelopes."""


class DispatchKind(str, Enum):
    VALIDATION = "validation"
    NOTIFICATION = "notification"
    REJECTED = "rejected"


@dataclass(frozen=True)
class DispatchResult:
    kind: DispatchKind
    validation_code: str | None = None
    messages_processed: int = 0


def parse_envelopes(raw_body: bytes) -> list[EventGridEvent]:
    """Parse a webhook body into envelopes or raise :class:`MalformedPayload`."""
    try:
        return EventGridBatch.validate_python(json.loads(raw_body))
    except (ValueError, ValidationError) as exc:
        raise MalformedPayload(f"Body is not an array of Event Grid events: {exc}") from exc


class EventDispatcher:
    """Top-level entry point for webhook deliveries."""

    def __init__(self, store: ConversationStore, pipeline) -> None:
        self._store = store
        self._pipeline = pipeline

    async def dispatch(self, raw_body: bytes, event_type: str | None) -> DispatchResult:
        if event_type == VALIDATION_EVENT:
            return self._handle_validation(raw_body)
        if event_type == NOTIFICATION_EVENT:
            return await self._handle_notification(raw_body)

        logger.warning("Rejecting webhook call with event type %r", event_type)
        return DispatchResult(DispatchKind.REJECTED)

    # ── Handshake ────────────────────────────────────────────────────

    def _handle_validation(self, raw_body: bytes) -> DispatchResult:
        envelopes = parse_envelopes(raw_body)
        if not envelopes:
            raise MalformedPayload("Validation request contained no events")
        try:
            data = SubscriptionValidationData.model_validate(envelopes[0].data)
        except ValidationError as exc:
            raise MalformedPayload(f"Validation event has no validation code: {exc}") from exc

        logger.info("Answering Event Grid subscription validation")
        return DispatchResult(DispatchKind.VALIDATION, validation_code=data.validation_code)

    # ── Notifications ────────────────────────────────────────────────

    async def _handle_notification(self, raw_body: bytes) -> DispatchResult:
        envelopes = parse_envelopes(raw_body)
        processed = 0
        for envelope in envelopes:
            if envelope.event_type.lower() != MESSAGE_RECEIVED_EVENT:
                logger.debug("Ignoring event of type %s", envelope.event_type)
                continue
            await self._respond(envelope)
            processed += 1
        return DispatchResult(DispatchKind.NOTIFICATION, messages_processed=processed)

    async def _respond(self, envelope: EventGridEvent) -> None:
        """Run the reply pipeline for one message; failures stay here."""
        sender = "unknown"
        try:
            message = AdvancedMessageReceivedData.model_validate(envelope.data)
            sender = message.sender
            content = message.content or ""

            self._store.log(f'Customer({sender}): "{content}"')
            self._store.append_user(content)

            await self._pipeline.ainvoke({"recipient": sender, "query": content})
        except Exception as exc:
            logger.exception("Failed to process message event %s", envelope.id)
            self._store.log(f'Error: Failed to process message from "{sender}". Exception: {exc}')

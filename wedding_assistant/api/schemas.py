"""Pydantic schemas for Event Grid payloads and the API responses."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

# ── Inbound Event Grid payloads ──────────────────────────────────────


class EventGridEvent(BaseModel):
    """One envelope of an Event Grid (schema v1) delivery."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str | None = None
    event_type: str = Field(..., alias="eventType")
    subject: str | None = None
    data: Any = None
    data_version: str | None = Field(None, alias="dataVersion")
    event_time: str | None = Field(None, alias="eventTime")
    topic: str | None = None


EventGridBatch = TypeAdapter(list[EventGridEvent])


class SubscriptionValidationData(BaseModel):
    """``data`` of a ``Microsoft.EventGrid.SubscriptionValidationEvent``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    validation_code: str = Field(..., alias="validationCode")
    validation_url: str | None = Field(None, alias="validationUrl")


class AdvancedMessageReceivedData(BaseModel):
    """``data`` of a ``Microsoft.Communication.AdvancedMessageReceived`` event."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    sender: str = Field(..., alias="from", min_length=1)
    to: str | None = None
    content: str | None = None
    channel_type: str | None = Field(None, alias="channelType")
    received_timestamp: str | None = Field(None, alias="receivedTimestamp")


# ── Responses ────────────────────────────────────────────────────────


class ValidationResponse(BaseModel):
    """Echo of the subscription validation code."""

    model_config = ConfigDict(populate_by_name=True)

    validation_response: str = Field(..., alias="validationResponse")


class DisplayLogResponse(BaseModel):
    messages: list[str] = Field(default_factory=list, description="Display log, oldest first")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    service: str = "wedding-assistant"

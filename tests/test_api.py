"""Tests for the FastAPI endpoints."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from wedding_assistant.dispatcher import DispatchKind, DispatchResult, EventDispatcher
from wedding_assistant.server import app
from wedding_assistant.services.conversation_store import ConversationStore


@pytest.fixture
def pipeline():
    """Reply pipeline double; the dispatcher in front of it is real."""
    mock = MagicMock()
    mock.ainvoke = AsyncMock(return_value={})
    return mock


@pytest.fixture
def app_store(pipeline):
    """Attach a store + dispatcher to app state the same way the lifespan does."""
    store = ConversationStore()
    app.state.store = store
    app.state.dispatcher = EventDispatcher(store, pipeline)
    yield store
    app.state.store = None
    app.state.dispatcher = None


@pytest.fixture
def client(app_store):
    return TestClient(app)


class TestHealthEndpoint:
    def test_health_returns_ok(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "service": "wedding-assistant"}


class TestWebhookValidation:
    def test_echoes_validation_code(self, client, make_envelope):
        body = [
            make_envelope(
                "Microsoft.EventGrid.SubscriptionValidationEvent",
                {"validationCode": "512d38b6-c7b8-40c8-89fe-f46f9e9622b6"},
            )
        ]
        response = client.post(
            "/webhook",
            content=json.dumps(body),
            headers={"aeg-event-type": "SubscriptionValidation"},
        )
        assert response.status_code == 200
        assert response.json() == {"validationResponse": "512d38b6-c7b8-40c8-89fe-f46f9e9622b6"}

    def test_empty_validation_array_is_client_error(self, client):
        response = client.post(
            "/webhook", content="[]", headers={"aeg-event-type": "SubscriptionValidation"},
        )
        assert response.status_code == 400


class TestWebhookNotification:
    def test_message_event_is_acknowledged(self, client, app_store, pipeline, make_message_envelope):
        body = [make_message_envelope("+1555", "What time is the ceremony?")]
        response = client.post(
            "/webhook", content=json.dumps(body), headers={"aeg-event-type": "Notification"},
        )
        assert response.status_code == 200
        assert response.content == b""
        pipeline.ainvoke.assert_awaited_once()
        assert app_store.display_log() == ('Customer(+1555): "What time is the ceremony?"',)

    def test_pipeline_failure_still_returns_200(self, client, app_store, pipeline, make_message_envelope):
        pipeline.ainvoke.side_effect = RuntimeError("search and llm both down")
        body = [make_message_envelope("+1555", "hi")]
        response = client.post(
            "/webhook", content=json.dumps(body), headers={"aeg-event-type": "Notification"},
        )
        assert response.status_code == 200
        assert "search and llm both down" in app_store.display_log()[-1]

    def test_unparseable_body_is_client_error(self, client):
        response = client.post(
            "/webhook", content="{not json", headers={"aeg-event-type": "Notification"},
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Malformed event payload."

    @pytest.mark.parametrize("headers", [{}, {"aeg-event-type": "SomethingElse"}])
    def test_missing_or_unknown_event_type_is_rejected(self, client, pipeline, headers):
        response = client.post("/webhook", content="[]", headers=headers)
        assert response.status_code == 400
        pipeline.ainvoke.assert_not_called()


class TestWebhookErrors:
    def test_unexpected_dispatch_error_does_not_leak(self, client):
        dispatcher = MagicMock()
        dispatcher.dispatch = AsyncMock(side_effect=RuntimeError("secret internals"))
        app.state.dispatcher = dispatcher

        response = client.post("/webhook", content="[]", headers={"aeg-event-type": "Notification"})

        assert response.status_code == 500
        assert "secret internals" not in response.json()["detail"]

    def test_returns_503_when_dispatcher_not_initialised(self, client):
        app.state.dispatcher = None
        response = client.post("/webhook", content="[]", headers={"aeg-event-type": "Notification"})
        assert response.status_code == 503
        assert "starting up" in response.json()["detail"].lower()

    def test_dispatch_receives_raw_body_and_header(self, client):
        dispatcher = MagicMock()
        dispatcher.dispatch = AsyncMock(return_value=DispatchResult(DispatchKind.NOTIFICATION))
        app.state.dispatcher = dispatcher

        client.post("/webhook", content=b"[1]", headers={"aeg-event-type": "Notification"})

        dispatcher.dispatch.assert_awaited_once_with(b"[1]", "Notification")


class TestWebhookHandshake:
    def test_options_allows_request_origin(self, client):
        response = client.options(
            "/webhook",
            headers={
                "WebHook-Request-Origin": "eventgrid.azure.net",
                "WebHook-Request-Rate": "120",
                "WebHook-Request-Callback": "https://example.com/callback",
            },
        )
        assert response.status_code == 200
        assert response.headers["WebHook-Allowed-Origin"] == "eventgrid.azure.net"
        assert response.headers["WebHook-Allowed-Rate"] == "*"


class TestMessagesEndpoint:
    def test_returns_display_log(self, client, app_store):
        app_store.log('Customer(+1555): "hi"')
        app_store.log("Assistant: hello")
        response = client.get("/api/messages")
        assert response.status_code == 200
        assert response.json() == {"messages": ['Customer(+1555): "hi"', "Assistant: hello"]}


class TestRequestId:
    def test_response_includes_request_id_header(self, client):
        response = client.get("/api/health")
        assert "X-Request-ID" in response.headers

    def test_client_supplied_request_id_is_echoed(self, client):
        response = client.get("/api/health", headers={"X-Request-ID": "trace-123"})
        assert response.headers["X-Request-ID"] == "trace-123"


class TestRootEndpoint:
    def test_root_returns_service_info(self, client):
        response = client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "Wedding Assistant"
        assert data["webhook"] == "/webhook"

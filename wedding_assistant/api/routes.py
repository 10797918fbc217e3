"""FastAPI route definitions: the Event Grid webhook and the status API."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Header, HTTPException, Request, Response

from wedding_assistant.api.schemas import DisplayLogResponse, HealthResponse, ValidationResponse
from wedding_assistant.dispatcher import DispatchKind, EventDispatcher, MalformedPayload

logger = logging.getLogger(__name__)

webhook_router = APIRouter()
router = APIRouter()


def _get_dispatcher(request: Request) -> EventDispatcher:
    """Retrieve the event dispatcher built by the lifespan (see ``server.py``)."""
    dispatcher = getattr(request.app.state, "dispatcher", None)
    if dispatcher is None:
        raise HTTPException(
            status_code=503,
            detail="The assistant is still starting up. Please try again in a moment.",
        )
    return dispatcher


# ── Webhook ──────────────────────────────────────────────────────────


@webhook_router.options("/webhook")
async def webhook_handshake(
    webhook_request_origin: str | None = Header(None),
) -> Response:
    """CloudEvents abuse-protection handshake: allow the caller's origin."""
    response = Response(status_code=200)
    response.headers["WebHook-Allowed-Rate"] = "*"
    if webhook_request_origin:
        response.headers["WebHook-Allowed-Origin"] = webhook_request_origin
    return response


@webhook_router.post("/webhook")
async def receive_events(
    http_request: Request,
    aeg_event_type: str | None = Header(None),
):
    """Receive an Event Grid delivery.

    Always acknowledges once the envelope array parsed: per-message failures
    are recorded in the display log, not returned to Event Grid.
    """
    dispatcher = _get_dispatcher(http_request)
    request_id = getattr(http_request.state, "request_id", "?")
    body = await http_request.body()

    try:
        result = await dispatcher.dispatch(body, aeg_event_type)
    except MalformedPayload as exc:
        logger.warning("[%s] Malformed webhook payload: %s", request_id, exc)
        raise HTTPException(status_code=400, detail="Malformed event payload.") from exc
    except Exception as e:
        logger.exception("[%s] Error dispatching webhook", request_id)
        raise HTTPException(
            status_code=500,
            detail="An internal error occurred. Please try again.",
        ) from e

    if result.kind is DispatchKind.VALIDATION:
        return ValidationResponse(validation_response=result.validation_code).model_dump(
            by_alias=True,
        )
    if result.kind is DispatchKind.REJECTED:
        raise HTTPException(status_code=400, detail="Unsupported event type.")

    logger.info("[%s] Processed %d message event(s)", request_id, result.messages_processed)
    return Response(status_code=200)


# ── Status API ───────────────────────────────────────────────────────


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse()


@router.get("/messages", response_model=DisplayLogResponse)
async def list_messages(request: Request):
    """Return the display log of customer messages, replies and errors."""
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="The assistant is still starting up.")
    return DisplayLogResponse(messages=list(store.display_log()))

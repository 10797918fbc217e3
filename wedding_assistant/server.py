"""FastAPI server for the Wedding Assistant.

Run with:
    uvicorn wedding_assistant.server:app --reload --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from wedding_assistant.api.routes import router, webhook_router
from wedding_assistant.config import CORS_ORIGINS, SERVER_HOST, SERVER_PORT
from wedding_assistant.delivery import ReplyDispatcher
from wedding_assistant.dispatcher import EventDispatcher
from wedding_assistant.generator import ResponseGenerator
from wedding_assistant.pipeline import create_reply_pipeline
from wedding_assistant.retriever import KnowledgeRetriever
from wedding_assistant.services.conversation_store import ConversationStore
from wedding_assistant.services.messages_client import MessagesClient
from wedding_assistant.services.search_client import SearchClient

# ── Logging ──────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan: initialise / tear-down shared resources ────────────────
@asynccontextmanager
async def lifespan(application: FastAPI):
    """Build the service clients and the reply pipeline once per process.

    Everything lands on ``app.state``; the clients are closed on shutdown.
    """
    logger.info("Building service clients…")
    store = ConversationStore()
    search_client = SearchClient()
    messages_client = MessagesClient()

    pipeline = create_reply_pipeline(
        KnowledgeRetriever(search_client),
        ResponseGenerator(),
        ReplyDispatcher(messages_client, store),
        store,
    )
    application.state.store = store
    application.state.dispatcher = EventDispatcher(store, pipeline)
    logger.info(
        "Assistant ready (index=%s, channel=%s).",
        search_client.index_name, messages_client.channel_registration_id,
    )
    try:
        yield
    finally:
        await search_client.aclose()
        await messages_client.aclose()


# ── FastAPI application ──────────────────────────────────────────────
app = FastAPI(
    title="Wedding Assistant",
    description=(
        "WhatsApp wedding assistant: answers guest questions from the "
        "wedding knowledge base via Event Grid webhooks."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

# ── CORS (for the message-log frontend) ─────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Request-ID middleware ────────────────────────────────────────────
@app.middleware("http")
async def add_request_id(request: Request, call_next) -> Response:
    """Attach a unique request ID to every request for log correlation."""
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    request.state.request_id = request_id
    logger.info("[%s] %s %s", request_id, request.method, request.url.path)
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# ── Register routes ──────────────────────────────────────────────────
app.include_router(webhook_router)
app.include_router(router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "service": "Wedding Assistant",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/api/health",
        "webhook": "/webhook",
    }


# ── CLI entry point ──────────────────────────────────────────────────

if __name__ == "__main__":
    logger.info("Starting Wedding Assistant server on %s:%d", SERVER_HOST, SERVER_PORT)
    uvicorn.run(
        "wedding_assistant.server:app",
        host=SERVER_HOST,
        port=SERVER_PORT,
        reload=True,
    )

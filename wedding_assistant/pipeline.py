"""LangGraph reply pipeline for one inbound customer message.

Architecture:
  A small StateGraph runs after the dispatcher has recorded the customer's
  message in the conversation store:

    1. **retrieve**: knowledge lookup through the search tier cascade
    2. **generate**: Azure OpenAI reply from context + recent history
    3. **deliver** : WhatsApp send, history/log update on success
    4. **no_reply**: records that nothing was generated

  Routing:
    retrieve → generate → (reply text?)  → deliver  → END
                        → (blank reply?) → no_reply → END

  Nodes are built by ``_make_*_node`` factories so each one closes over the
  collaborator it needs; the compiled graph holds no per-message state and
  is shared across requests.
"""

from __future__ import annotations

import logging

from langgraph.graph import END, StateGraph
from typing_extensions import TypedDict

from wedding_assistant.delivery import ReplyDispatcher
from wedding_assistant.generator import ResponseGenerator
from wedding_assistant.retriever import KnowledgeRetriever
from wedding_assistant.services.conversation_store import ConversationStore

logger = logging.getLogger(__name__)


class ReplyState(TypedDict, total=False):
    """State that flows through the reply graph.

    ``recipient`` and ``query`` are supplied by the caller; every other key
    is written by exactly one node.
    """

    recipient: str
    query: str
    context: str
    strategy: str | None
    reply: str | None
    generation_outcome: str
    delivery: str


# ── Nodes ────────────────────────────────────────────────────────────


def _make_retrieve_node(retriever: KnowledgeRetriever):
    async def retrieve_node(state: ReplyState) -> dict:
        result = await retriever.retrieve(state["query"])
        logger.debug(
            "Retrieved context via %s (found=%s)",
            result.strategy.value if result.strategy else "none", result.found,
        )
        return {
            "context": result.context,
            "strategy": result.strategy.value if result.strategy else None,
        }

    return retrieve_node


def _make_generate_node(generator: ResponseGenerator, store: ConversationStore):
    async def generate_node(state: ReplyState) -> dict:
        reply = await generator.generate(state["query"], state["context"], store.history())
        return {"reply": reply.text, "generation_outcome": reply.outcome.value}

    return generate_node


def _make_deliver_node(reply_dispatcher: ReplyDispatcher):
    async def deliver_node(state: ReplyState) -> dict:
        outcome = await reply_dispatcher.deliver(state["recipient"], state["reply"])
        return {"delivery": outcome.value}

    return deliver_node


def _make_no_reply_node(reply_dispatcher: ReplyDispatcher):
    def no_reply_node(state: ReplyState) -> dict:
        reply_dispatcher.record_no_response(state["recipient"])
        return {"delivery": "skipped"}

    return no_reply_node


# ── Conditional edge ─────────────────────────────────────────────────


def should_deliver(state: ReplyState) -> str:
    """Only non-blank replies are sent."""
    reply = state.get("reply")
    if reply and reply.strip():
        return "deliver"
    return "no_reply"


# ── Graph assembly ───────────────────────────────────────────────────


def create_reply_pipeline(
    retriever: KnowledgeRetriever,
    generator: ResponseGenerator,
    reply_dispatcher: ReplyDispatcher,
    store: ConversationStore,
):
    """Build and compile the reply graph.

    Invoke with::

        await pipeline.ainvoke({"recipient": "+1555...", "query": "..."})
    """
    graph = StateGraph(ReplyState)

    graph.add_node("retrieve", _make_retrieve_node(retriever))
    graph.add_node("generate", _make_generate_node(generator, store))
    graph.add_node("deliver", _make_deliver_node(reply_dispatcher))
    graph.add_node("no_reply", _make_no_reply_node(reply_dispatcher))

    graph.set_entry_point("retrieve")
    graph.add_edge("retrieve", "generate")
    graph.add_conditional_edges(
        "generate",
        should_deliver,
        {"deliver": "deliver", "no_reply": "no_reply"},
    )
    graph.add_edge("deliver", END)
    graph.add_edge("no_reply", END)

    return graph.compile()

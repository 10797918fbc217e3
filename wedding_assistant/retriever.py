"""Knowledge retrieval with a three-tier search cascade.

Search services can be provisioned on tiers that lack semantic ranking or
integrated vectorization.  Rather than branching on configuration, every
query walks down the cascade until one tier answers:

  1. **semantic + vector**: hybrid query, semantic reranking, text vector
     query vectorized server-side
  2. **vector**           : same vector query, no semantic parameters;
                             only tried when tier 1 hit a tier limitation
  3. **text**             : plain keyword search; tried when tier 2 fails
                             for any reason or tier 1 fails unexpectedly

Each tier reports an explicit :class:`TierAttempt` instead of raising, so
the cascade logic reads as a decision table.  The retriever never raises.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from wedding_assistant.config import (
    SEARCH_SEMANTIC_CONFIGURATION,
    SEARCH_VECTOR_FIELD,
    SEARCH_VECTORIZER,
)
from wedding_assistant.services.search_client import (
    SearchAPIError,
    SearchClient,
    SearchQuery,
    VectorQuery,
)

logger = logging.getLogger(__name__)

TOP_K = 3
SELECT_FIELDS = ("chunk", "title")

EMPTY_QUERY_MESSAGE = "Please provide a question or topic to search for."
NO_RESULTS_MESSAGE = "No relevant information found about this topic in the knowledge base."
UNAVAILABLE_MESSAGE = "The knowledge base is currently unavailable."

# Structured error codes that mean "this feature is not on your tier".
_TIER_LIMITATION_CODES = frozenset({
    "FeatureNotSupportedInService",
    "SemanticQueriesNotAvailable",
    "VectorizerNotSupported",
})
# Compatibility fallback for responses without a recognisable code.
_TIER_LIMITATION_MARKERS = ("semantic configuration", "semantic ranker", "vectorizer")


class SearchStrategy(str, Enum):
    SEMANTIC_VECTOR = "Semantic + Vector"
    VECTOR = "Vector"
    TEXT = "Text"


class AttemptKind(str, Enum):
    SUCCESS = "success"
    TIER_LIMITATION = "tier_limitation"
    FAILURE = "failure"


@dataclass(frozen=True)
class TierAttempt:
    """Outcome of running one tier of the cascade."""

    strategy: SearchStrategy
    kind: AttemptKind
    documents: list[dict[str, Any]] = field(default_factory=list)
    error: Exception | None = None


@dataclass(frozen=True)
class RetrievalResult:
    strategy: SearchStrategy | None
    found: bool
    context: str


def is_tier_limitation(exc: Exception) -> bool:
    """Return ``True`` if *exc* says the service tier lacks a feature."""
    if not isinstance(exc, SearchAPIError) or exc.status_code != 400:
        return False
    if exc.error_code in _TIER_LIMITATION_CODES:
        return True
    message = str(exc).lower()
    if any(marker in message for marker in _TIER_LIMITATION_MARKERS):
        logger.warning(
            "Classified search error as a tier limitation from its message "
            "(code=%r); update the known codes if this is stable.",
            exc.error_code,
        )
        return True
    return False


def format_documents(documents: list[dict[str, Any]]) -> str:
    """Render documents as ``Title/Content/---`` blocks."""
    blocks = []
    for doc in documents:
        title = doc.get("title")
        chunk = doc.get("chunk")
        blocks.append(
            f"Title: {title if title is not None else 'N/A'}\n"
            f"Content: {chunk if chunk is not None else 'N/A'}\n"
            "---\n"
        )
    return "".join(blocks)


class KnowledgeRetriever:
    """Turns a free-text question into a grounding context block."""

    def __init__(
        self,
        search_client: SearchClient,
        *,
        semantic_configuration: str = SEARCH_SEMANTIC_CONFIGURATION,
        vectorizer: str = SEARCH_VECTORIZER,
        vector_field: str = SEARCH_VECTOR_FIELD,
        top_k: int = TOP_K,
    ):
        self._search_client = search_client
        self._semantic_configuration = semantic_configuration
        self._vectorizer = vectorizer
        self._vector_field = vector_field
        self._top_k = top_k

    # ── Query builders ───────────────────────────────────────────────

    def _vector_query(self, query: str) -> VectorQuery:
        return VectorQuery(
            text=query,
            k=self._top_k,
            fields=self._vector_field,
            vectorizer=self._vectorizer,
        )

    def build_query(self, strategy: SearchStrategy, query: str) -> SearchQuery:
        if strategy is SearchStrategy.SEMANTIC_VECTOR:
            return SearchQuery(
                search=query,
                top=self._top_k,
                select=SELECT_FIELDS,
                semantic_configuration=self._semantic_configuration,
                vector_queries=(self._vector_query(query),),
            )
        if strategy is SearchStrategy.VECTOR:
            return SearchQuery(
                search=None,
                top=self._top_k,
                select=SELECT_FIELDS,
                vector_queries=(self._vector_query(query),),
            )
        return SearchQuery(search=query, top=self._top_k, select=SELECT_FIELDS)

    # ── Cascade ──────────────────────────────────────────────────────

    async def _attempt(self, strategy: SearchStrategy, query: str) -> TierAttempt:
        logger.info("Attempting %s search for %r", strategy.value, query)
        try:
            documents = await self._search_client.search(self.build_query(strategy, query))
        except Exception as exc:
            kind = AttemptKind.TIER_LIMITATION if is_tier_limitation(exc) else AttemptKind.FAILURE
            logger.warning("%s search failed (%s): %s", strategy.value, kind.value, exc)
            return TierAttempt(strategy, kind, error=exc)
        logger.info("%s search returned %d result(s)", strategy.value, len(documents))
        return TierAttempt(strategy, AttemptKind.SUCCESS, documents=documents)

    async def _run_cascade(self, query: str) -> TierAttempt:
        attempt = await self._attempt(SearchStrategy.SEMANTIC_VECTOR, query)
        if attempt.kind is AttemptKind.SUCCESS:
            return attempt

        if attempt.kind is AttemptKind.TIER_LIMITATION:
            attempt = await self._attempt(SearchStrategy.VECTOR, query)
            if attempt.kind is AttemptKind.SUCCESS:
                return attempt

        logger.info("Falling back to plain text search")
        return await self._attempt(SearchStrategy.TEXT, query)

    async def retrieve(self, query: str) -> RetrievalResult:
        """Return the grounding context for *query*.  Never raises."""
        if not query or not query.strip():
            return RetrievalResult(strategy=None, found=False, context=EMPTY_QUERY_MESSAGE)

        attempt = await self._run_cascade(query)

        if attempt.kind is not AttemptKind.SUCCESS:
            logger.error("All search tiers failed for %r: %s", query, attempt.error)
            return RetrievalResult(
                strategy=attempt.strategy, found=False, context=UNAVAILABLE_MESSAGE,
            )

        if not attempt.documents:
            logger.info("No results for %r using %s search", query, attempt.strategy.value)
            return RetrievalResult(
                strategy=attempt.strategy, found=False, context=NO_RESULTS_MESSAGE,
            )

        return RetrievalResult(
            strategy=attempt.strategy,
            found=True,
            context=format_documents(attempt.documents),
        )

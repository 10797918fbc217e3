"""Reply generation with Azure OpenAI through LangChain.

The generator never raises: every failure mode maps to a fixed, polite
clarification so the guest always gets *some* answer.  The outcome enum on
:class:`GeneratedReply` keeps those modes distinguishable for callers and
tests.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_openai import AzureChatOpenAI

from wedding_assistant.config import (
    AZURE_OPENAI_API_KEY,
    AZURE_OPENAI_API_VERSION,
    AZURE_OPENAI_DEPLOYMENT_NAME,
    AZURE_OPENAI_ENDPOINT,
    LLM_TIMEOUT_SECONDS,
)
from wedding_assistant.prompts import get_system_prompt
from wedding_assistant.services.conversation_store import ConversationMessage, Role
from wedding_assistant.services.metrics import metrics

logger = logging.getLogger(__name__)

HISTORY_WINDOW = 10
MAX_TOKENS = 800
TEMPERATURE = 0.7

NO_USER_MESSAGE_REPLY = "I couldn't retrieve your last message. Could you please repeat it?"
BLANK_MESSAGE_REPLY = "Your last message was empty. Could you please ask again?"
EMPTY_RESPONSE_REPLY = "I received an empty response. Could you try asking differently?"
SERVICE_ERROR_REPLY = (
    "I'm having trouble generating a response right now. Please try again in a moment."
)


class GenerationOutcome(str, Enum):
    OK = "ok"
    NO_USER_MESSAGE = "no_user_message"
    BLANK_MESSAGE = "blank_message"
    EMPTY_RESPONSE = "empty_response"
    SERVICE_ERROR = "service_error"


@dataclass(frozen=True)
class GeneratedReply:
    text: str | None
    outcome: GenerationOutcome

    @property
    def ok(self) -> bool:
        return self.outcome is GenerationOutcome.OK


def build_chat_model() -> AzureChatOpenAI:
    """Build the Azure OpenAI chat model with the fixed generation settings."""
    return AzureChatOpenAI(
        azure_endpoint=AZURE_OPENAI_ENDPOINT,
        api_key=AZURE_OPENAI_API_KEY,
        azure_deployment=AZURE_OPENAI_DEPLOYMENT_NAME,
        api_version=AZURE_OPENAI_API_VERSION,
        max_tokens=MAX_TOKENS,
        temperature=TEMPERATURE,
        timeout=LLM_TIMEOUT_SECONDS,
        max_retries=0,
    )


def _to_chat_message(message: ConversationMessage) -> BaseMessage:
    if message.role is Role.USER:
        return HumanMessage(content=message.content)
    return AIMessage(content=message.content)


def build_prompt_messages(
    context: str,
    history: Sequence[ConversationMessage],
) -> list[BaseMessage]:
    """System prompt + context, then the last ``HISTORY_WINDOW`` turns in order."""
    messages: list[BaseMessage] = [SystemMessage(content=get_system_prompt(context))]
    messages.extend(_to_chat_message(m) for m in history[-HISTORY_WINDOW:])
    return messages


class ResponseGenerator:
    """Produces one reply per call from context and recent history."""

    def __init__(self, llm=None) -> None:
        # Anything with an async ``ainvoke(messages)`` works (tests use mocks).
        self._llm = llm if llm is not None else build_chat_model()

    async def generate(
        self,
        query: str,
        context: str,
        history: Sequence[ConversationMessage],
    ) -> GeneratedReply:
        last_user = next((m for m in reversed(history) if m.role is Role.USER), None)
        if last_user is None:
            logger.error("Could not find the last user message in history")
            return GeneratedReply(NO_USER_MESSAGE_REPLY, GenerationOutcome.NO_USER_MESSAGE)

        if not last_user.content or not last_user.content.strip():
            logger.error("Last user message content is empty")
            return GeneratedReply(BLANK_MESSAGE_REPLY, GenerationOutcome.BLANK_MESSAGE)

        messages = build_prompt_messages(context, history)
        logger.debug("Generating reply for %r with %d messages", query, len(messages))

        try:
            async with metrics.track("openai", "chat_completion"):
                response = await self._llm.ainvoke(messages)
        except Exception:
            logger.exception("Error generating AI response")
            return GeneratedReply(SERVICE_ERROR_REPLY, GenerationOutcome.SERVICE_ERROR)

        text = getattr(response, "content", None) if response is not None else None
        if not isinstance(text, str) or not text.strip():
            logger.warning("Azure OpenAI returned an empty response")
            return GeneratedReply(EMPTY_RESPONSE_REPLY, GenerationOutcome.EMPTY_RESPONSE)

        return GeneratedReply(text, GenerationOutcome.OK)

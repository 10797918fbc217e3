"""CLI entry point for the Wedding Assistant.

Asks the knowledge base and Azure OpenAI the same way the webhook does,
but prints the reply instead of sending it over WhatsApp.  Useful for
checking the search index and the prompt without a phone in the loop.

Usage:
    python -m wedding_assistant.main            # normal mode (quiet)
    python -m wedding_assistant.main --debug    # debug mode (shows search tiers + HTTP)
"""

from __future__ import annotations

import argparse
import asyncio
import logging

from dotenv import load_dotenv

from wedding_assistant.generator import ResponseGenerator
from wedding_assistant.retriever import KnowledgeRetriever
from wedding_assistant.services.conversation_store import ConversationStore
from wedding_assistant.services.search_client import SearchClient

logger = logging.getLogger(__name__)


def _configure_logging(debug: bool = False) -> None:
    """Set up logging: WARNING by default, DEBUG when --debug is passed."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )
    if not debug:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("wedding_assistant").setLevel(logging.DEBUG if debug else logging.INFO)


async def ask(
    question: str,
    store: ConversationStore,
    retriever: KnowledgeRetriever,
    generator: ResponseGenerator,
) -> str:
    """Run one question through retrieval and generation, updating *store*.

    Printing stands in for delivery, so every non-blank reply joins the
    history, including the fixed clarification and apology replies.
    """
    store.append_user(question)
    result = await retriever.retrieve(question)
    reply = await generator.generate(question, result.context, store.history())
    if reply.text and reply.text.strip():
        store.append_assistant(reply.text)
    return reply.text or ""


async def _chat_loop() -> None:
    store = ConversationStore()
    search_client = SearchClient()
    retriever = KnowledgeRetriever(search_client)
    generator = ResponseGenerator()

    try:
        while True:
            try:
                question = (await asyncio.to_thread(input, "Guest: ")).strip()
            except (KeyboardInterrupt, EOFError):
                print("\n\nGoodbye!")
                break

            if not question:
                continue
            if question.lower() in ("exit", "quit", "q"):
                print("\nGoodbye!")
                break
            if question.lower() == "new":
                store = ConversationStore()
                print("\n>> History cleared.\n")
                continue

            try:
                reply = await ask(question, store, retriever, generator)
                print(f"\nAssistant: {reply}\n")
            except Exception as e:
                logger.exception("Error processing question")
                print(f"\nAssistant: Something went wrong: {e}\n")
    finally:
        await search_client.aclose()


def main():
    """Run the interactive CLI chat loop."""
    parser = argparse.ArgumentParser(description="Wedding Assistant CLI")
    parser.add_argument(
        "--debug", action="store_true",
        help="Show all log messages including search tiers and HTTP requests",
    )
    args = parser.parse_args()

    load_dotenv()
    _configure_logging(debug=args.debug)

    print("\n" + "=" * 60)
    print("  Wedding Assistant - CLI Chat")
    print("=" * 60)
    print("  Type a guest question and press Enter.")
    print("  Commands: 'quit' to exit, 'new' to clear the history.")
    print("=" * 60 + "\n")

    asyncio.run(_chat_loop())


if __name__ == "__main__":
    main()

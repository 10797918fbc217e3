"""Thread-safe in-memory conversation history and display log.

Design decisions
────────────────
• **Append-only**: messages are never reordered or edited; callers only
  ever see tuple snapshots, never the live lists.
• **threading.Lock** guards every append and snapshot, so concurrent
  webhook deliveries cannot interleave a half-written sequence.
• Purely ephemeral: everything is lost on process restart, which is
  acceptable for a single-process deployment.

Usage
─────
>>> store = ConversationStore()
>>> store.append_user("What time is the ceremony?")
>>> store.log('Customer(+1555): "What time is the ceremony?"')
>>> store.history()[-1].content
'What time is the ceremony?'
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    """Who authored a conversation message."""

    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ConversationMessage:
    """One turn of the conversation."""

    role: Role
    content: str


class ConversationStore:
    """Process-wide rolling chat history plus a human-readable event log."""

    def __init__(self) -> None:
        self._history: list[ConversationMessage] = []
        self._display_log: list[str] = []
        self._lock = threading.Lock()

    # ── Writes ───────────────────────────────────────────────────────

    def append(self, message: ConversationMessage) -> None:
        with self._lock:
            self._history.append(message)

    def append_user(self, content: str) -> None:
        self.append(ConversationMessage(Role.USER, content))

    def append_assistant(self, content: str) -> None:
        self.append(ConversationMessage(Role.ASSISTANT, content))

    def log(self, entry: str) -> None:
        """Append a line to the display log."""
        with self._lock:
            self._display_log.append(entry)

    # ── Reads ────────────────────────────────────────────────────────

    def history(self) -> tuple[ConversationMessage, ...]:
        """Snapshot of the full history, oldest first."""
        with self._lock:
            return tuple(self._history)

    def display_log(self) -> tuple[str, ...]:
        with self._lock:
            return tuple(self._display_log)

    def __len__(self) -> int:
        with self._lock:
            return len(self._history)

"""Bounded per-user conversation history fed to the model."""

from __future__ import annotations

from typing import Any

from xmtpbot.sessions import SessionRegistry

DEFAULT_MAX_MESSAGES = 10


class ConversationStore:
    """FIFO history capped at ``max_messages`` entries per user."""

    def __init__(self, sessions: SessionRegistry, max_messages: int = DEFAULT_MAX_MESSAGES) -> None:
        if max_messages < 1:
            raise ValueError("max_messages must be at least 1")
        self._sessions = sessions
        self._max_messages = max_messages

    def append(self, user_id: str, message: dict[str, Any]) -> None:
        history = self._sessions.get(user_id).history
        history.append(message)
        while len(history) > self._max_messages:
            history.popleft()

    def get(self, user_id: str) -> tuple[dict[str, Any], ...]:
        return tuple(self._sessions.get(user_id).history)

    def reset(self, user_id: str) -> None:
        self._sessions.get(user_id).history.clear()

    def build_prompt(self, user_id: str, system_prompt: str) -> list[dict[str, Any]]:
        """Return the system prompt followed by the user's history.

        Eviction can leave ``tool`` entries at the head whose assistant
        tool-call turn is gone; the completion API rejects those, so they
        are skipped here without touching the stored history.
        """

        history = list(self.get(user_id))
        while history and history[0].get("role") == "tool":
            history.pop(0)
        return [{"role": "system", "content": system_prompt}, *history]

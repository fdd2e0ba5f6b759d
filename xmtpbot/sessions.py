"""Per-user session state kept for the lifetime of the process."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class UserSession:
    """State for one sender. Only the message handler path mutates it."""

    last_request_at: float | None = None
    is_processing: bool = False
    history: deque[dict[str, Any]] = field(default_factory=deque)
    onboarded: bool = False
    # Action ids from the last menu sent as text, in the order they were numbered.
    menu_options: list[str] = field(default_factory=list)


class SessionRegistry:
    """Owns every UserSession, creating them on first access."""

    def __init__(self) -> None:
        self._sessions: dict[str, UserSession] = {}

    def get(self, user_id: str) -> UserSession:
        session = self._sessions.get(user_id)
        if session is None:
            session = UserSession()
            self._sessions[user_id] = session
        return session

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

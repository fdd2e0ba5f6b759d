"""Per-user cooldown and single-flight lock."""

from __future__ import annotations

import enum
import math
import time
from dataclasses import dataclass
from typing import Callable

from xmtpbot.sessions import SessionRegistry


def _monotonic_ms() -> float:
    return time.monotonic() * 1000


class AcquireStatus(enum.Enum):
    ACCEPTED = "accepted"
    BUSY = "busy"
    RATE_LIMITED = "rate_limited"


@dataclass(frozen=True, slots=True)
class Acquisition:
    status: AcquireStatus
    retry_after_seconds: int = 0

    @property
    def accepted(self) -> bool:
        return self.status is AcquireStatus.ACCEPTED


class RateLimiter:
    """Rejects a user's message while another is in flight or inside the window.

    Rejected messages are dropped, not queued. Safe only under a single event
    loop: there is no await between the checks and the updates below.
    """

    def __init__(
        self,
        sessions: SessionRegistry,
        window_ms: int = 5000,
        clock: Callable[[], float] = _monotonic_ms,
    ) -> None:
        self._sessions = sessions
        self._window_ms = window_ms
        self._clock = clock

    def try_acquire(self, user_id: str) -> Acquisition:
        session = self._sessions.get(user_id)
        if session.is_processing:
            return Acquisition(AcquireStatus.BUSY)

        now = self._clock()
        if session.last_request_at is not None:
            elapsed = now - session.last_request_at
            if elapsed < self._window_ms:
                retry_after = math.ceil((self._window_ms - elapsed) / 1000)
                return Acquisition(AcquireStatus.RATE_LIMITED, retry_after_seconds=retry_after)

        session.is_processing = True
        session.last_request_at = now
        return Acquisition(AcquireStatus.ACCEPTED)

    def release(self, user_id: str) -> None:
        self._sessions.get(user_id).is_processing = False

"""Chat completion provider interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from xmtpbot.models import LLMResponse


class ChatCompletionProvider(ABC):
    """Abstract model provider used by the message handler."""

    @abstractmethod
    async def complete(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> LLMResponse:
        """Generate a model response, optionally allowing tool calls.

        Raises a ``CompletionError`` subclass on failure.
        """

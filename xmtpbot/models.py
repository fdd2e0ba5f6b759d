"""Core domain models used across layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Union


@dataclass(slots=True)
class Message:
    """Inbound message normalized by the transport adapter."""

    conversation_id: str
    sender_id: str
    text: str
    timestamp: datetime
    message_id: str | None = None
    is_group: bool = False
    reply_to_sender: str | None = None
    intent_action_id: str | None = None


@dataclass(slots=True)
class LLMToolCall:
    """Tool invocation returned by an LLM provider."""

    name: str
    arguments: dict[str, Any]
    call_id: str | None = None


@dataclass(slots=True)
class LLMResponse:
    """Result from a chat completion request."""

    content: str
    tool_calls: list[LLMToolCall] = field(default_factory=list)
    raw: dict[str, Any] | None = None


@dataclass(slots=True)
class TransactionCall:
    """One call in a wallet transaction request."""

    to: str
    value: str = "0x0"
    data: str = "0x"
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class TransactionData:
    version: str
    chain_id: int | str
    calls: list[TransactionCall]


@dataclass(slots=True)
class QuickAction:
    id: str
    label: str
    style: str = "primary"


@dataclass(slots=True)
class QuickActionsData:
    id: str
    description: str
    actions: list[QuickAction]
    expires_at: str | None = None


@dataclass(slots=True)
class TextResult:
    """Plain text reply, also used for results that only carry a user message."""

    text: str


@dataclass(slots=True)
class TransactionRequest:
    """Result asking the user to approve a wallet transaction."""

    user_message: str
    transaction_data: TransactionData


@dataclass(slots=True)
class QuickActionsRequest:
    """Result presenting a set of tappable actions."""

    user_message: str
    quick_actions_data: QuickActionsData


@dataclass(slots=True)
class Failure:
    """Function-level failure with a message safe to show the user."""

    error: str
    user_message: str = ""


FunctionResult = Union[TextResult, TransactionRequest, QuickActionsRequest, Failure]

"""Delivers function results as text, transaction trays or quick actions."""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from xmtpbot.chains import ADDRESS_RE, KNOWN_CHAINS, chain_name, format_eth, parse_chain_id
from xmtpbot.models import (
    Failure,
    FunctionResult,
    QuickActionsData,
    QuickActionsRequest,
    TextResult,
    TransactionData,
    TransactionRequest,
)
from xmtpbot.sessions import SessionRegistry
from xmtpbot.transport import ContentType, MessageContext

LOGGER = logging.getLogger(__name__)

GENERIC_FAILURE_TEXT = "❌ Sorry, I couldn't complete that. Please try again."


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class WalletCall(_WireModel):
    to: str
    value: str = "0x0"
    data: str = "0x"
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("to")
    @classmethod
    def _valid_address(cls, value: str) -> str:
        if not ADDRESS_RE.match(value):
            raise ValueError(f"invalid address {value!r}")
        return value


class WalletSendCallsPayload(_WireModel):
    version: str = "1.0"
    from_: str | None = Field(default=None, alias="from")
    chain_id: str = Field(alias="chainId")
    calls: list[WalletCall] = Field(min_length=1)

    @field_validator("chain_id", mode="before")
    @classmethod
    def _known_chain(cls, value: Any) -> str:
        chain_id = parse_chain_id(value)
        if chain_id not in KNOWN_CHAINS:
            raise ValueError(f"unknown chain id {value!r}")
        return hex(chain_id)


class Action(_WireModel):
    id: str = Field(min_length=1)
    label: str = Field(min_length=1)
    style: Literal["primary", "secondary", "danger"] = "primary"


class ActionsPayload(_WireModel):
    id: str = Field(min_length=1)
    description: str
    actions: list[Action] = Field(min_length=1, max_length=10)
    expires_at: str | None = Field(default=None, alias="expiresAt")


class ContentRouter:
    """Picks the outbound content type for a FunctionResult and sends it.

    Structured payloads that fail validation or are rejected by the
    transport degrade to an equivalent plain-text message.
    """

    def __init__(self, sessions: SessionRegistry | None = None) -> None:
        self.counters: Counter[str] = Counter()
        self._sessions = sessions

    async def send(self, ctx: MessageContext, result: FunctionResult) -> str:
        """Deliver one result and return a summary of what the user received."""

        if isinstance(result, TextResult):
            await self.send_text(ctx, result.text)
            return result.text
        if isinstance(result, TransactionRequest):
            return await self._send_transaction(ctx, result)
        if isinstance(result, QuickActionsRequest):
            return await self._send_quick_actions(ctx, result)
        if isinstance(result, Failure):
            LOGGER.info("Function failure delivered as text: %s", result.error)
            text = result.user_message or GENERIC_FAILURE_TEXT
            await self.send_text(ctx, text)
            return f"Error: {result.error}. Told the user: {text}"
        raise TypeError(f"Unsupported function result: {type(result).__name__}")

    async def send_text(self, ctx: MessageContext, text: str) -> None:
        await ctx.send_text(text)
        self._count(ContentType.TEXT.value)

    async def _send_transaction(self, ctx: MessageContext, result: TransactionRequest) -> str:
        data = result.transaction_data
        try:
            payload = WalletSendCallsPayload.model_validate(
                {
                    "version": data.version,
                    "from": ctx.sender_id,
                    "chainId": data.chain_id,
                    "calls": [
                        {"to": c.to, "value": c.value, "data": c.data, "metadata": c.metadata} for c in data.calls
                    ],
                }
            )
        except ValidationError as exc:
            LOGGER.warning("Transaction payload failed validation, sending text instead: %s", exc)
            return await self._transaction_fallback(ctx, result)

        if result.user_message:
            await self.send_text(ctx, result.user_message)
        try:
            await ctx.send_content(
                ContentType.WALLET_SEND_CALLS,
                payload.model_dump(by_alias=True, exclude_none=True),
            )
        except Exception:  # noqa: BLE001
            LOGGER.exception("Transport rejected wallet transaction, sending text instead")
            return await self._transaction_fallback(ctx, result, include_user_message=False)
        self._count(ContentType.WALLET_SEND_CALLS.value)
        return f"Sent a transaction request for approval: {_describe_calls(data)}"

    async def _transaction_fallback(
        self,
        ctx: MessageContext,
        result: TransactionRequest,
        include_user_message: bool = True,
    ) -> str:
        text = transaction_instructions(result.transaction_data)
        if include_user_message and result.user_message:
            text = f"{result.user_message}\n\n{text}"
        await self.send_text(ctx, text)
        self._count(f"fallback:{ContentType.WALLET_SEND_CALLS.value}")
        return f"Transaction tray unavailable; sent manual instructions: {_describe_calls(result.transaction_data)}"

    async def _send_quick_actions(self, ctx: MessageContext, result: QuickActionsRequest) -> str:
        data = result.quick_actions_data
        try:
            payload = ActionsPayload.model_validate(
                {
                    "id": data.id,
                    "description": data.description or result.user_message,
                    "actions": [{"id": a.id, "label": a.label, "style": a.style} for a in data.actions],
                    "expiresAt": data.expires_at,
                }
            )
        except ValidationError as exc:
            LOGGER.warning("Quick actions failed validation, sending text instead: %s", exc)
            return await self._quick_actions_fallback(ctx, result)

        try:
            await ctx.send_content(ContentType.ACTIONS, payload.model_dump(by_alias=True, exclude_none=True))
        except Exception:  # noqa: BLE001
            LOGGER.exception("Transport rejected quick actions, sending text instead")
            return await self._quick_actions_fallback(ctx, result)
        self._count(ContentType.ACTIONS.value)
        labels = ", ".join(a.label for a in data.actions)
        return f"Showed quick actions: {labels}"

    async def _quick_actions_fallback(self, ctx: MessageContext, result: QuickActionsRequest) -> str:
        text = quick_actions_text(result.quick_actions_data, result.user_message)
        await self.send_text(ctx, text)
        if self._sessions is not None:
            self._sessions.get(ctx.sender_id).menu_options = _listed_actions(result.quick_actions_data)
        self._count(f"fallback:{ContentType.ACTIONS.value}")
        return f"Quick actions unavailable; listed the options as text:\n{text}"

    def _count(self, key: str) -> None:
        self.counters[key] += 1


def transaction_instructions(data: TransactionData) -> str:
    """Plain-text equivalent of a transaction tray."""

    chain = chain_name(data.chain_id)
    lines = ["📝 Please send this manually from your wallet:", ""]
    if not data.calls:
        lines.append("⚠️ The transaction had no calls to make.")
    for call in data.calls:
        lines.append(f"➡️ To: {call.to or '(missing)'}")
        lines.append(f"💰 Amount: {format_eth(call.value)} ETH")
        lines.append(f"🔗 Network: {chain}")
        if call.data and call.data != "0x":
            lines.append(f"🧾 Data: {call.data}")
        lines.append("")
    lines.append("⚠️ Double-check the address before sending.")
    return "\n".join(lines).strip()


def quick_actions_text(data: QuickActionsData, user_message: str = "") -> str:
    """Bulleted, numbered plain-text equivalent of a quick actions payload.

    Actions without an id cannot be selected and are left out, so the numbers
    line up with ``_listed_actions``.
    """

    header = data.description or user_message or "Options:"
    lines = [header, ""]
    selectable = [action for action in data.actions if action.id]
    lines.extend(f"• {n}. {action.label or action.id}" for n, action in enumerate(selectable, start=1))
    if selectable:
        lines.extend(["", f"💬 Reply with a number (1-{len(selectable)}) or the option you'd like."])
    else:
        lines.extend(["", "💬 Tell me what you'd like to do."])
    return "\n".join(lines)


def _listed_actions(data: QuickActionsData) -> list[str]:
    return [action.id for action in data.actions if action.id]


def _describe_calls(data: TransactionData) -> str:
    chain = chain_name(data.chain_id)
    parts = [f"{format_eth(c.value)} ETH to {c.to} on {chain}" for c in data.calls]
    return "; ".join(parts) or f"no calls on {chain}"

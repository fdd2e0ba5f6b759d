"""Tests for sequential tool dispatch and the follow-up policy."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from xmtpbot.content_router import ContentRouter
from xmtpbot.conversation import ConversationStore
from xmtpbot.dispatch import ToolDispatchLoop
from xmtpbot.functions.base import Function
from xmtpbot.functions.registry import FunctionRegistry
from xmtpbot.functions.send_eth import SendEthFunction
from xmtpbot.models import LLMResponse, LLMToolCall
from xmtpbot.sessions import SessionRegistry
from xmtpbot.transport import ContentType, MessageContext


class FakeContext(MessageContext):
    def __init__(self) -> None:
        self.sender_id = "0xuser"
        self.conversation_id = "conv-1"
        self.is_group = False
        self.texts: list[str] = []
        self.contents: list[tuple[ContentType, dict[str, Any]]] = []

    async def send_text(self, text: str) -> None:
        self.texts.append(text)

    async def send_content(self, content_type: ContentType, payload: dict[str, Any]) -> None:
        self.contents.append((content_type, payload))


class EchoFunction(Function):
    name = "echo"
    description = "Echo text."
    parameters_schema: dict[str, Any] = {
        "type": "object",
        "properties": {"text": {"type": "string"}},
        "required": ["text"],
    }

    def __init__(self) -> None:
        self.calls: list[str] = []

    async def run(self, **kwargs: Any) -> str:
        self.calls.append(kwargs["text"])
        return f"echo: {kwargs['text']}"


class ExplodingFunction(Function):
    name = "explode"
    description = "Always fails."
    parameters_schema: dict[str, Any] = {"type": "object", "properties": {}}

    async def run(self, **kwargs: Any) -> str:
        raise TimeoutError("upstream timed out")


def _setup(followup: str = "All done.") -> tuple[ToolDispatchLoop, MagicMock, ConversationStore, EchoFunction]:
    echo = EchoFunction()
    registry = FunctionRegistry()
    registry.register(echo)
    registry.register(ExplodingFunction())
    registry.register(SendEthFunction())
    llm = MagicMock()
    llm.complete = AsyncMock(return_value=LLMResponse(content=followup))
    conversations = ConversationStore(SessionRegistry(), max_messages=10)
    loop = ToolDispatchLoop(
        llm=llm,
        registry=registry,
        conversations=conversations,
        router=ContentRouter(),
        system_prompt="sys",
        request_timeout_seconds=5,
    )
    return loop, llm, conversations, echo


def _turn(*calls: LLMToolCall) -> LLMResponse:
    return LLMResponse(content="", tool_calls=list(calls))


@pytest.mark.asyncio
async def test_calls_run_in_order_then_one_followup():
    loop, llm, conversations, echo = _setup()
    ctx = FakeContext()

    await loop.run(
        ctx,
        "u1",
        _turn(
            LLMToolCall(name="echo", arguments={"text": "one"}, call_id="c1"),
            LLMToolCall(name="echo", arguments={"text": "two"}, call_id="c2"),
        ),
    )

    assert echo.calls == ["one", "two"]
    assert ctx.texts == ["echo: one", "echo: two", "All done."]
    llm.complete.assert_awaited_once()
    roles = [m["role"] for m in conversations.get("u1")]
    assert roles == ["assistant", "tool", "tool", "assistant"]
    tool_ids = [m["tool_call_id"] for m in conversations.get("u1") if m["role"] == "tool"]
    assert tool_ids == ["c1", "c2"]


@pytest.mark.asyncio
async def test_followup_sees_tool_outputs_and_no_tools():
    loop, llm, _, _ = _setup()

    await loop.run(FakeContext(), "u1", _turn(LLMToolCall(name="echo", arguments={"text": "x"}, call_id="c1")))

    messages = llm.complete.call_args.args[0]
    assert messages[0]["role"] == "system"
    assert messages[1]["tool_calls"][0]["id"] == "c1"
    assert messages[2] == {"role": "tool", "tool_call_id": "c1", "content": "echo: x"}
    assert "tools" not in llm.complete.call_args.kwargs


@pytest.mark.asyncio
async def test_failing_call_does_not_abort_batch():
    loop, _, conversations, echo = _setup()
    ctx = FakeContext()

    await loop.run(
        ctx,
        "u1",
        _turn(
            LLMToolCall(name="explode", arguments={}, call_id="c1"),
            LLMToolCall(name="echo", arguments={"text": "after"}, call_id="c2"),
        ),
    )

    assert echo.calls == ["after"]
    assert "took too long" in ctx.texts[0]
    assert ctx.texts[1] == "echo: after"
    tool_entry = conversations.get("u1")[1]
    assert tool_entry["tool_call_id"] == "c1"
    assert "timeout" in tool_entry["content"]


class DroppingErrorNoticeContext(FakeContext):
    async def send_text(self, text: str) -> None:
        if "took too long" in text:
            raise RuntimeError("bridge write failed")
        await super().send_text(text)


@pytest.mark.asyncio
async def test_undeliverable_error_notice_does_not_abort_batch():
    loop, llm, conversations, echo = _setup()
    ctx = DroppingErrorNoticeContext()

    await loop.run(
        ctx,
        "u1",
        _turn(
            LLMToolCall(name="explode", arguments={}, call_id="c1"),
            LLMToolCall(name="echo", arguments={"text": "after"}, call_id="c2"),
        ),
    )

    assert echo.calls == ["after"]
    assert ctx.texts == ["echo: after", "All done."]
    assert [m.get("tool_call_id") for m in conversations.get("u1")[1:3]] == ["c1", "c2"]
    llm.complete.assert_awaited_once()


@pytest.mark.asyncio
async def test_unknown_function_is_reported_as_not_found():
    loop, _, _, _ = _setup()
    ctx = FakeContext()

    await loop.run(ctx, "u1", _turn(LLMToolCall(name="nope", arguments={}, call_id="c1")))

    assert "couldn't find" in ctx.texts[0]


@pytest.mark.asyncio
async def test_invalid_arguments_are_reported_as_invalid_format():
    loop, _, _, _ = _setup()
    ctx = FakeContext()

    await loop.run(ctx, "u1", _turn(LLMToolCall(name="echo", arguments={}, call_id="c1")))

    assert "malformed" in ctx.texts[0]


@pytest.mark.asyncio
async def test_terminal_call_skips_followup():
    loop, llm, _, _ = _setup()
    ctx = FakeContext()

    await loop.run(
        ctx,
        "u1",
        _turn(LLMToolCall(name="send_eth", arguments={"to": "0x" + "ab" * 20, "amount": 0.01}, call_id="c1")),
    )

    llm.complete.assert_not_called()
    assert ctx.contents[0][0] is ContentType.WALLET_SEND_CALLS


@pytest.mark.asyncio
async def test_malformed_recipient_sends_friendly_text_without_followup():
    loop, llm, conversations, _ = _setup()
    ctx = FakeContext()

    await loop.run(
        ctx,
        "u1",
        _turn(LLMToolCall(name="send_eth", arguments={"to": "not-an-address", "amount": 1.0}, call_id="c1")),
    )

    assert ctx.contents == []
    assert len(ctx.texts) == 1
    assert "Invalid recipient address" in ctx.texts[0]
    llm.complete.assert_not_called()
    assert conversations.get("u1")[-1]["role"] == "tool"


@pytest.mark.asyncio
async def test_missing_call_ids_are_filled_in():
    loop, _, conversations, _ = _setup()

    await loop.run(FakeContext(), "u1", _turn(LLMToolCall(name="echo", arguments={"text": "x"})))

    assistant_turn = conversations.get("u1")[0]
    assert assistant_turn["tool_calls"][0]["id"] == "call_0"
    assert conversations.get("u1")[1]["tool_call_id"] == "call_0"


@pytest.mark.asyncio
async def test_empty_followup_sends_nothing_more():
    loop, _, _, _ = _setup(followup="")
    ctx = FakeContext()

    await loop.run(ctx, "u1", _turn(LLMToolCall(name="echo", arguments={"text": "x"}, call_id="c1")))

    assert ctx.texts == ["echo: x"]

"""Executes the tool calls of one model turn."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from xmtpbot.content_router import ContentRouter
from xmtpbot.conversation import ConversationStore
from xmtpbot.errors import classify_tool_error, friendly_tool_error
from xmtpbot.functions.registry import FunctionRegistry
from xmtpbot.llm.base import ChatCompletionProvider
from xmtpbot.models import LLMResponse, LLMToolCall
from xmtpbot.transport import MessageContext

LOGGER = logging.getLogger(__name__)


class ToolDispatchLoop:
    """Runs tool calls in order, then optionally asks the model to wrap up."""

    def __init__(
        self,
        llm: ChatCompletionProvider,
        registry: FunctionRegistry,
        conversations: ConversationStore,
        router: ContentRouter,
        system_prompt: str,
        request_timeout_seconds: float,
    ) -> None:
        self._llm = llm
        self._registry = registry
        self._conversations = conversations
        self._router = router
        self._system_prompt = system_prompt
        self._request_timeout_seconds = request_timeout_seconds

    async def run(self, ctx: MessageContext, user_id: str, response: LLMResponse) -> None:
        """Dispatch ``response.tool_calls`` for ``user_id``.

        Calls run sequentially and each one is isolated: a failure is sent as
        friendly text and recorded, and the next call still runs. When any
        call in the batch is terminal no follow-up completion is made.
        Errors from the follow-up completion propagate to the caller.
        """

        tool_calls = response.tool_calls
        for index, tool_call in enumerate(tool_calls):
            if not tool_call.call_id:
                tool_call.call_id = f"call_{index}"

        self._conversations.append(user_id, _assistant_tool_turn(response.content, tool_calls))

        terminal = False
        for tool_call in tool_calls:
            summary = await self._dispatch_one(ctx, tool_call)
            self._conversations.append(
                user_id,
                {"role": "tool", "tool_call_id": tool_call.call_id, "content": summary},
            )
            terminal = terminal or self._registry.is_terminal(tool_call.name)

        if terminal:
            LOGGER.info("Terminal function in batch for %s, skipping follow-up completion", user_id)
            return

        context = self._conversations.build_prompt(user_id, self._system_prompt)
        followup = await asyncio.wait_for(self._llm.complete(context), timeout=self._request_timeout_seconds)
        reply = (followup.content or "").strip()
        if not reply:
            LOGGER.info("Follow-up completion for %s was empty", user_id)
            return
        await self._router.send_text(ctx, reply)
        self._conversations.append(user_id, {"role": "assistant", "content": reply})

    async def _dispatch_one(self, ctx: MessageContext, tool_call: LLMToolCall) -> str:
        try:
            result = await self._registry.invoke(tool_call.name, tool_call.arguments)
            return await self._router.send(ctx, result)
        except Exception as exc:  # noqa: BLE001
            category = classify_tool_error(exc)
            LOGGER.warning(
                "Function %s failed (%s): %s",
                tool_call.name,
                category.value,
                exc,
                exc_info=True,
            )
            text = friendly_tool_error(category)
            try:
                await self._router.send_text(ctx, text)
            except Exception:  # noqa: BLE001
                LOGGER.exception("Could not deliver error notice for %s", tool_call.name)
            return f"Error ({category.value}) while running {tool_call.name}. Told the user: {text}"


def _assistant_tool_turn(content: str, tool_calls: list[LLMToolCall]) -> dict[str, Any]:
    return {
        "role": "assistant",
        "content": content or None,
        "tool_calls": [
            {
                "id": tc.call_id,
                "type": "function",
                "function": {"name": tc.name, "arguments": json.dumps(tc.arguments)},
            }
            for tc in tool_calls
        ],
    }

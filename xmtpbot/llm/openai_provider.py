"""OpenAI chat completions implementation of ChatCompletionProvider."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import httpx

from xmtpbot.config import Settings
from xmtpbot.errors import (
    CompletionAPIError,
    CompletionRateLimited,
    CompletionTimeout,
    CompletionUnauthorized,
)
from xmtpbot.llm.base import ChatCompletionProvider
from xmtpbot.models import LLMResponse, LLMToolCall

_LOGGER = logging.getLogger(__name__)

_MAX_RETRIES = 3
_RETRY_BACKOFF_SECONDS = [2, 5, 10]
_MAX_TOKENS = 500


class OpenAIProvider(ChatCompletionProvider):
    """Provider using the OpenAI-compatible ``/chat/completions`` endpoint."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    async def complete(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> LLMResponse:
        payload: dict[str, Any] = {
            "model": self._settings.openai_model,
            "messages": messages,
            "max_tokens": _MAX_TOKENS,
        }
        if tools:
            payload["tools"] = tools
            payload["tool_choice"] = "auto"

        timeout = httpx.Timeout(self._settings.request_timeout_seconds)
        try:
            async with httpx.AsyncClient(base_url=self._settings.openai_base_url, timeout=timeout) as client:
                response = await self._post_with_retries(client, payload)
        except httpx.TimeoutException as exc:
            raise CompletionTimeout(f"Chat completion timed out: {exc}") from exc
        except httpx.TransportError as exc:
            raise CompletionAPIError(f"Chat completion request failed: {exc}") from exc

        if response.status_code == 429:
            raise CompletionRateLimited("Chat completion rate limited")
        if response.status_code in (401, 403):
            raise CompletionUnauthorized(f"Chat completion rejected credentials (HTTP {response.status_code})")
        try:
            response.raise_for_status()
            data = response.json()
            choice = data["choices"][0]
        except (httpx.HTTPStatusError, ValueError, KeyError, IndexError) as exc:
            raise CompletionAPIError(f"Chat completion failed: {exc}") from exc

        message = choice.get("message") or {}
        content = message.get("content") or ""
        _LOGGER.info(
            "LLM response: finish_reason=%r content=%r tool_calls=%r",
            choice.get("finish_reason"),
            content[:200],
            message.get("tool_calls"),
        )

        parsed_tool_calls: list[LLMToolCall] = []
        for tool_call in message.get("tool_calls") or []:
            function_data = tool_call.get("function", {})
            parsed_tool_calls.append(
                LLMToolCall(
                    name=function_data.get("name", ""),
                    arguments=_safe_json_loads(function_data.get("arguments", "{}")),
                    call_id=tool_call.get("id"),
                )
            )

        return LLMResponse(content=content, tool_calls=parsed_tool_calls, raw=data)

    async def _post_with_retries(self, client: httpx.AsyncClient, payload: dict[str, Any]) -> httpx.Response:
        for attempt in range(_MAX_RETRIES + 1):
            response = await client.post(
                "/chat/completions",
                headers={
                    "Authorization": f"Bearer {self._settings.openai_api_key}",
                    "Content-Type": "application/json",
                },
                json=payload,
            )
            if response.status_code == 429 and attempt < _MAX_RETRIES:
                wait = _RETRY_BACKOFF_SECONDS[attempt]
                _LOGGER.warning(
                    "OpenAI rate limited (429), retrying in %ds (attempt %d/%d)",
                    wait,
                    attempt + 1,
                    _MAX_RETRIES,
                )
                await asyncio.sleep(wait)
                continue
            break
        return response


def _safe_json_loads(raw: str) -> dict[str, Any]:
    try:
        parsed = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return {}
    return parsed if isinstance(parsed, dict) else {}

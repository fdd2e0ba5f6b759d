"""Error taxonomy and the user-facing text each error maps to."""

from __future__ import annotations

import asyncio
import enum
import json

import httpx


class FunctionNotFound(KeyError):
    """Raised when the model asks for a function that is not registered."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Unknown function: {self.name}"


class InvalidArguments(ValueError):
    """Raised when function arguments fail schema validation."""


class CompletionError(Exception):
    """Base class for chat completion failures."""


class CompletionTimeout(CompletionError):
    pass


class CompletionUnauthorized(CompletionError):
    pass


class CompletionRateLimited(CompletionError):
    pass


class CompletionAPIError(CompletionError):
    pass


class ErrorCategory(enum.Enum):
    TIMEOUT = "timeout"
    NETWORK = "network"
    INVALID_FORMAT = "invalid-format"
    RATE_LIMITED = "rate-limited"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not-found"
    GENERIC = "generic"


_TOOL_ERROR_MESSAGES: dict[ErrorCategory, str] = {
    ErrorCategory.TIMEOUT: "⏱️ That request took too long. Please try again in a moment.",
    ErrorCategory.NETWORK: "🌐 I couldn't reach the data provider. Please try again shortly.",
    ErrorCategory.INVALID_FORMAT: "⚠️ Something in that request looks malformed. Please check the details and retry.",
    ErrorCategory.RATE_LIMITED: "🚦 The data provider is rate limiting me. Please wait a minute and try again.",
    ErrorCategory.UNAUTHORIZED: "🔒 I'm not authorized to access that service right now.",
    ErrorCategory.NOT_FOUND: "🔍 I couldn't find what you asked for.",
    ErrorCategory.GENERIC: "❌ Something went wrong while handling that. Please try again.",
}

_KEYWORDS: list[tuple[ErrorCategory, tuple[str, ...]]] = [
    (ErrorCategory.TIMEOUT, ("timeout", "timed out")),
    (ErrorCategory.RATE_LIMITED, ("rate limit", "too many requests", "429")),
    (ErrorCategory.UNAUTHORIZED, ("unauthorized", "forbidden", "401", "403", "api key")),
    (ErrorCategory.NOT_FOUND, ("not found", "404", "unknown")),
    (ErrorCategory.NETWORK, ("network", "connection", "econnrefused", "enotfound", "dns")),
    (ErrorCategory.INVALID_FORMAT, ("invalid", "malformed", "parse", "format")),
]


def classify_tool_error(exc: BaseException) -> ErrorCategory:
    """Map an exception raised by a function call to an error category."""

    if isinstance(exc, (asyncio.TimeoutError, httpx.TimeoutException)):
        return ErrorCategory.TIMEOUT
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        if status == 429:
            return ErrorCategory.RATE_LIMITED
        if status in (401, 403):
            return ErrorCategory.UNAUTHORIZED
        if status == 404:
            return ErrorCategory.NOT_FOUND
        return ErrorCategory.NETWORK
    if isinstance(exc, httpx.TransportError):
        return ErrorCategory.NETWORK
    if isinstance(exc, FunctionNotFound):
        return ErrorCategory.NOT_FOUND
    if isinstance(exc, (InvalidArguments, json.JSONDecodeError)):
        return ErrorCategory.INVALID_FORMAT

    text = str(exc).lower()
    for category, keywords in _KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return category
    return ErrorCategory.GENERIC


def friendly_tool_error(category: ErrorCategory) -> str:
    return _TOOL_ERROR_MESSAGES[category]


def friendly_completion_error(exc: BaseException) -> str:
    """User-facing apology for a failed completion call."""

    if isinstance(exc, (asyncio.TimeoutError, CompletionTimeout)):
        return "⏱️ I took too long to think about that. Please try again."
    if isinstance(exc, CompletionUnauthorized):
        return "🔒 I can't reach my language model right now (authorization failed). Please try again later."
    if isinstance(exc, CompletionRateLimited):
        return "🚦 I'm getting a lot of requests right now. Please try again in a minute."
    return "❌ Sorry, something went wrong on my side. Please try again."

"""Registry for function registration and invocation."""

from __future__ import annotations

import json
import logging
from typing import Any, Literal

from pydantic import ValidationError, create_model

from xmtpbot.errors import FunctionNotFound, InvalidArguments
from xmtpbot.functions.base import Function
from xmtpbot.models import (
    Failure,
    FunctionResult,
    QuickAction,
    QuickActionsData,
    QuickActionsRequest,
    TextResult,
    TransactionCall,
    TransactionData,
    TransactionRequest,
)

LOGGER = logging.getLogger(__name__)

_RESULT_TYPES = (TextResult, TransactionRequest, QuickActionsRequest, Failure)


class FunctionRegistry:
    """Explicit registry of functions the model may call."""

    def __init__(self) -> None:
        self._functions: dict[str, Function] = {}

    def register(self, function: Function) -> None:
        self._functions[function.name] = function

    def __contains__(self, name: object) -> bool:
        return name in self._functions

    def is_terminal(self, name: str) -> bool:
        function = self._functions.get(name)
        return bool(function is not None and function.terminal)

    def list_tool_specs(self) -> list[dict[str, Any]]:
        return [
            {
                "type": "function",
                "function": {
                    "name": function.name,
                    "description": function.description,
                    "parameters": function.parameters_schema,
                },
            }
            for function in self._functions.values()
        ]

    async def invoke(self, name: str, arguments: dict[str, Any]) -> FunctionResult:
        """Validate arguments, run the function and normalize its result.

        Exceptions raised by the function propagate to the caller.
        """

        function = self._functions.get(name)
        if function is None:
            raise FunctionNotFound(name)

        validated = _validate_json_schema(function.parameters_schema, arguments)
        LOGGER.info("Invoking function %s with %r", name, validated)
        raw = await function.run(**validated)
        return coerce_result(raw)


def coerce_result(raw: Any) -> FunctionResult:
    """Turn whatever a function returned into a FunctionResult variant."""

    if isinstance(raw, _RESULT_TYPES):
        return raw
    if isinstance(raw, str):
        return TextResult(raw)
    if isinstance(raw, dict):
        user_message = str(raw.get("userMessage") or "")
        if raw.get("error"):
            return Failure(error=str(raw["error"]), user_message=user_message)
        if isinstance(raw.get("transactionData"), dict):
            return TransactionRequest(user_message, _transaction_data(raw["transactionData"]))
        if isinstance(raw.get("quickActionsData"), dict):
            return QuickActionsRequest(user_message, _quick_actions_data(raw["quickActionsData"]))
        if user_message:
            return TextResult(user_message)
    return TextResult(json.dumps(raw, default=str))


def _transaction_data(raw: dict[str, Any]) -> TransactionData:
    return TransactionData(
        version=str(raw.get("version", "1.0")),
        chain_id=raw.get("chainId", ""),
        calls=[_transaction_call(call) for call in raw.get("calls") or []],
    )


def _transaction_call(call: Any) -> TransactionCall:
    if not isinstance(call, dict):
        # Keep a placeholder so the batch fails address validation as a whole.
        return TransactionCall(to="", metadata={"malformed": repr(call)})
    return TransactionCall(
        to=str(call.get("to", "")),
        value=str(call.get("value", "0x0")),
        data=str(call.get("data", "0x")),
        metadata=dict(call.get("metadata") or {}),
    )


def _quick_actions_data(raw: dict[str, Any]) -> QuickActionsData:
    return QuickActionsData(
        id=str(raw.get("id", "")),
        description=str(raw.get("description", "")),
        actions=[_quick_action(action) for action in raw.get("actions") or []],
        expires_at=raw.get("expiresAt"),
    )


def _quick_action(action: Any) -> QuickAction:
    if not isinstance(action, dict):
        return QuickAction(id="", label="")
    return QuickAction(
        id=str(action.get("id", "")),
        label=str(action.get("label", "")),
        style=str(action.get("style", "primary")),
    )


def _validate_json_schema(schema: dict[str, Any], payload: dict[str, Any]) -> dict[str, Any]:
    props = schema.get("properties", {})
    required = set(schema.get("required", []))
    fields: dict[str, tuple[type[Any], Any]] = {}
    for name, config in props.items():
        typ = _python_type(config.get("type", "string"))
        if config.get("enum"):
            typ = Literal[tuple(config["enum"])]
        default = ... if name in required else None
        fields[name] = (typ if name in required else typ | None, default)

    model = create_model("FunctionInputModel", **fields)
    try:
        value = model(**payload)
    except ValidationError as exc:
        raise InvalidArguments(f"Invalid input for function: {exc}") from exc
    return value.model_dump(exclude_none=True)


def _python_type(schema_type: str) -> type[Any]:
    mapping: dict[str, type[Any]] = {
        "string": str,
        "integer": int,
        "number": float,
        "boolean": bool,
        "object": dict,
        "array": list,
    }
    return mapping.get(schema_type, str)

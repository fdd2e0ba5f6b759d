"""Read-only JSON-RPC lookups against EVM networks."""

from __future__ import annotations

import itertools
from decimal import Decimal
from typing import Any

import httpx

from xmtpbot.chains import WEI_PER_GWEI, format_eth, is_address
from xmtpbot.errors import InvalidArguments
from xmtpbot.functions.base import Function

_NETWORK_PROPERTY = {
    "type": "string",
    "enum": ["ethereum", "base"],
    "description": "Network to query (default base).",
}

_request_ids = itertools.count(1)


class RpcClient:
    """Minimal JSON-RPC client keyed by network name."""

    def __init__(self, urls: dict[str, str], timeout_seconds: float = 10.0) -> None:
        self._urls = urls
        self._timeout_seconds = timeout_seconds

    async def call(self, network: str, method: str, params: list[Any]) -> Any:
        url = self._urls.get(network)
        if url is None:
            raise InvalidArguments(f"Unsupported network: {network}")

        payload = {"jsonrpc": "2.0", "id": next(_request_ids), "method": method, "params": params}
        async with httpx.AsyncClient() as client:
            resp = await client.post(url, json=payload, timeout=self._timeout_seconds)
            resp.raise_for_status()
            body = resp.json()

        if body.get("error"):
            raise RuntimeError(f"RPC error from {network}: {body['error'].get('message', body['error'])}")
        return body.get("result")


class GasPriceFunction(Function):
    """Current gas price on a network."""

    name = "get_gas_price"
    description = "Get the current gas price in gwei on Ethereum or Base."
    parameters_schema: dict[str, Any] = {
        "type": "object",
        "properties": {"network": _NETWORK_PROPERTY},
        "additionalProperties": False,
    }

    def __init__(self, rpc: RpcClient) -> None:
        self._rpc = rpc

    async def run(self, **kwargs: Any) -> str:
        network = kwargs.get("network") or "base"
        result = await self._rpc.call(network, "eth_gasPrice", [])
        gwei = Decimal(int(result, 16)) / WEI_PER_GWEI
        return f"⛽ Gas on {network.title()}: {gwei:.4f} gwei"


class EthBalanceFunction(Function):
    """ETH balance of an address."""

    name = "get_eth_balance"
    description = "Get the ETH balance of a wallet address on Ethereum or Base."
    parameters_schema: dict[str, Any] = {
        "type": "object",
        "properties": {
            "address": {"type": "string", "description": "0x-prefixed wallet address."},
            "network": _NETWORK_PROPERTY,
        },
        "required": ["address"],
        "additionalProperties": False,
    }

    def __init__(self, rpc: RpcClient) -> None:
        self._rpc = rpc

    async def run(self, **kwargs: Any) -> dict[str, str] | str:
        address = str(kwargs["address"]).strip()
        network = kwargs.get("network") or "base"
        if not is_address(address):
            return {
                "error": f"invalid address {address!r}",
                "userMessage": "❌ That doesn't look like a valid wallet address (expected 0x followed by 40 hex characters).",
            }
        result = await self._rpc.call(network, "eth_getBalance", [address, "latest"])
        balance = format_eth(int(result, 16))
        return f"👛 {address[:6]}…{address[-4:]} holds {balance} ETH on {network.title()}"

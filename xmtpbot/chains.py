"""EVM chain ids, address checks and wei formatting."""

from __future__ import annotations

import re
from decimal import Decimal
from typing import Any

ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")

WEI_PER_ETH = Decimal(10) ** 18
WEI_PER_GWEI = Decimal(10) ** 9

KNOWN_CHAINS: dict[int, str] = {
    1: "Ethereum",
    10: "Optimism",
    137: "Polygon",
    8453: "Base",
    42161: "Arbitrum",
    84532: "Base Sepolia",
    11155111: "Sepolia",
}


def is_address(value: str) -> bool:
    return bool(ADDRESS_RE.match(value or ""))


def parse_chain_id(value: Any) -> int:
    """Accept an int, a decimal string or a 0x-prefixed hex string."""

    if isinstance(value, bool):
        raise ValueError("chain id must be a number")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        return int(text, 16) if text.startswith("0x") else int(text)
    raise ValueError(f"unsupported chain id {value!r}")


def chain_name(value: Any) -> str:
    try:
        chain_id = parse_chain_id(value)
    except ValueError:
        return f"unknown chain ({value})"
    return KNOWN_CHAINS.get(chain_id, f"chain {chain_id}")


def format_eth(value: str | int) -> str:
    """Format a wei amount (int, decimal or hex string) as ETH."""

    try:
        if isinstance(value, int):
            wei = value
        else:
            wei = int(value, 16) if value.lower().startswith("0x") else int(value)
    except (AttributeError, ValueError):
        return str(value)
    return f"{(Decimal(wei) / WEI_PER_ETH).normalize():f}"

"""Main menu and help."""

from __future__ import annotations

import time
from datetime import datetime, timedelta, timezone
from typing import Any

from xmtpbot.functions.base import Function
from xmtpbot.models import QuickAction, QuickActionsData, QuickActionsRequest

MAIN_MENU_ACTIONS = [
    QuickAction(id="check_price", label="💰 Check Price", style="primary"),
    QuickAction(id="gas_price", label="⛽ Gas Price", style="primary"),
    QuickAction(id="check_balance", label="👛 Check Balance", style="secondary"),
    QuickAction(id="send_eth", label="💸 Send ETH", style="secondary"),
    QuickAction(id="help", label="❓ Help", style="secondary"),
]

HELP_TEXT = """🐉 Here's what I can do:

💰 Prices: "ETH price", "how much is BTC?"
⛽ Gas: "gas on base"
👛 Balances: "balance of 0x..."
💸 Payments: "send 0.01 ETH to 0x..."

In groups, mention me so I know you're talking to me."""


def main_menu(description: str = "🐉 What would you like to do?") -> QuickActionsRequest:
    expires_at = datetime.now(timezone.utc) + timedelta(hours=24)
    return QuickActionsRequest(
        user_message=description,
        quick_actions_data=QuickActionsData(
            id=f"main_menu_{int(time.time() * 1000)}",
            description=description,
            actions=list(MAIN_MENU_ACTIONS),
            expires_at=expires_at.isoformat(),
        ),
    )


class ShowMenuFunction(Function):
    name = "show_menu"
    description = "Show the main menu of quick actions. Use when the user asks for the menu or options."
    parameters_schema: dict[str, Any] = {"type": "object", "properties": {}, "additionalProperties": False}

    async def run(self, **kwargs: Any) -> QuickActionsRequest:
        return main_menu()


class HelpFunction(Function):
    name = "get_help"
    description = "Explain what the assistant can do."
    parameters_schema: dict[str, Any] = {"type": "object", "properties": {}, "additionalProperties": False}

    async def run(self, **kwargs: Any) -> dict[str, str]:
        return {"userMessage": HELP_TEXT}

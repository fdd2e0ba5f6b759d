"""Wallet transaction request for a plain ETH transfer."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

from xmtpbot.chains import WEI_PER_ETH, is_address
from xmtpbot.functions.base import Function
from xmtpbot.models import Failure, TransactionCall, TransactionData, TransactionRequest

CHAIN_IDS = {
    "ethereum": 1,
    "base": 8453,
    "base-sepolia": 84532,
}


class SendEthFunction(Function):
    """Builds a transfer for the user to approve in their wallet.

    Nothing is signed or broadcast here; the wallet does that after the
    user confirms the transaction tray.
    """

    name = "send_eth"
    description = (
        "Prepare an ETH transfer that the user approves in their wallet. "
        "Use when the user asks to send or pay ETH to an address."
    )
    parameters_schema: dict[str, Any] = {
        "type": "object",
        "properties": {
            "to": {"type": "string", "description": "Recipient 0x address."},
            "amount": {"type": "number", "description": "Amount of ETH to send."},
            "network": {
                "type": "string",
                "enum": sorted(CHAIN_IDS),
                "description": "Network to send on (default base).",
            },
        },
        "required": ["to", "amount"],
        "additionalProperties": False,
    }
    terminal = True

    async def run(self, **kwargs: Any) -> TransactionRequest | Failure:
        to = str(kwargs["to"]).strip()
        network = kwargs.get("network") or "base"

        if not is_address(to):
            return Failure(
                error=f"invalid recipient address {to!r}",
                user_message=(
                    "❌ Invalid recipient address. Please provide a wallet address "
                    "starting with 0x followed by 40 hex characters."
                ),
            )
        try:
            amount = Decimal(str(kwargs["amount"]))
        except InvalidOperation:
            amount = Decimal(0)
        if amount <= 0:
            return Failure(error="non-positive amount", user_message="❌ The amount must be greater than zero.")
        if network not in CHAIN_IDS:
            return Failure(error=f"unsupported network {network!r}", user_message=f"❌ I can't send on {network}.")

        wei = int(amount * WEI_PER_ETH)
        description = f"Send {amount.normalize():f} ETH on {network.title()}"
        return TransactionRequest(
            user_message=f"💸 Ready to send {amount.normalize():f} ETH to {to} on {network.title()}. Approve it in your wallet.",
            transaction_data=TransactionData(
                version="1.0",
                chain_id=CHAIN_IDS[network],
                calls=[
                    TransactionCall(
                        to=to,
                        value=hex(wei),
                        data="0x",
                        metadata={
                            "description": description,
                            "transactionType": "transfer",
                            "currency": "ETH",
                            "amount": str(wei),
                            "decimals": "18",
                            "networkId": network,
                        },
                    )
                ],
            ),
        )

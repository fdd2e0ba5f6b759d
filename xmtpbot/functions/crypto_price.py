"""CoinGecko spot price lookup."""

from __future__ import annotations

from typing import Any

import httpx

from xmtpbot.functions.base import Function

# Ticker symbols the model tends to use, mapped to CoinGecko coin ids.
COIN_IDS = {
    "BTC": "bitcoin",
    "ETH": "ethereum",
    "USDC": "usd-coin",
    "USDT": "tether",
    "SOL": "solana",
    "OP": "optimism",
    "ARB": "arbitrum",
    "MATIC": "matic-network",
    "DEGEN": "degen-base",
    "LINK": "chainlink",
}


class CryptoPriceFunction(Function):
    """Current USD price and 24h change for a token."""

    name = "get_crypto_price"
    description = (
        "Get the current USD price and 24 hour change of a cryptocurrency. "
        "Accepts a ticker symbol such as ETH or BTC, or a CoinGecko coin id."
    )
    parameters_schema: dict[str, Any] = {
        "type": "object",
        "properties": {
            "symbol": {"type": "string", "description": "Ticker symbol or CoinGecko id, e.g. ETH."},
        },
        "required": ["symbol"],
        "additionalProperties": False,
    }

    def __init__(self, base_url: str = "https://api.coingecko.com/api/v3") -> None:
        self._base_url = base_url.rstrip("/")

    async def run(self, **kwargs: Any) -> str:
        symbol = str(kwargs["symbol"]).strip()
        coin_id = COIN_IDS.get(symbol.upper(), symbol.lower())

        async with httpx.AsyncClient() as client:
            resp = await client.get(
                f"{self._base_url}/simple/price",
                params={"ids": coin_id, "vs_currencies": "usd", "include_24hr_change": "true"},
                timeout=10.0,
            )
            resp.raise_for_status()
            data = resp.json()

        quote = data.get(coin_id)
        if not quote or "usd" not in quote:
            return f"🔍 I couldn't find a price for {symbol.upper()}."

        price = float(quote["usd"])
        change = quote.get("usd_24h_change")
        line = f"💰 {symbol.upper()}: ${price:,.2f}"
        if change is not None:
            arrow = "📈" if change >= 0 else "📉"
            line += f" ({arrow} {change:+.2f}% 24h)"
        return line

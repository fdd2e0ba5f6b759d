"""Application configuration."""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven settings validated at startup."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    openai_api_key: str = Field(..., alias="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4o-mini", alias="OPENAI_MODEL")
    openai_base_url: str = Field(default="https://api.openai.com/v1", alias="OPENAI_BASE_URL")
    xmtp_wallet_key: str = Field(..., alias="XMTP_WALLET_KEY")
    xmtp_db_encryption_key: str = Field(default="", alias="XMTP_DB_ENCRYPTION_KEY")
    xmtp_env: Literal["local", "dev", "production"] = Field(default="production", alias="XMTP_ENV")
    # Command that launches the XMTP agent bridge (newline-delimited JSON over stdio).
    xmtp_bridge_command: str = Field(..., alias="XMTP_BRIDGE_COMMAND")
    agent_name: str = Field(default="dragman", alias="AGENT_NAME")
    agent_address: str = Field(default="", alias="AGENT_ADDRESS")
    rate_limit_window_ms: int = Field(default=5000, alias="RATE_LIMIT_WINDOW_MS")
    max_history_messages: int = Field(default=10, alias="MAX_HISTORY_MESSAGES")
    request_timeout_seconds: float = Field(default=60.0, alias="REQUEST_TIMEOUT_SECONDS")
    eth_rpc_url: str = Field(default="https://ethereum-rpc.publicnode.com", alias="ETH_RPC_URL")
    base_rpc_url: str = Field(default="https://mainnet.base.org", alias="BASE_RPC_URL")
    coingecko_base_url: str = Field(
        default="https://api.coingecko.com/api/v3",
        alias="COINGECKO_BASE_URL",
    )


def load_settings() -> Settings:
    """Load and validate settings."""

    return Settings()


def rpc_urls(settings: Settings) -> dict[str, str]:
    """Return the JSON-RPC endpoint for each supported network name."""

    return {"ethereum": settings.eth_rpc_url, "base": settings.base_rpc_url}

"""Application entrypoint."""

from __future__ import annotations

import asyncio
import logging
import os

from xmtpbot.config import Settings, load_settings, rpc_urls
from xmtpbot.content_router import ContentRouter
from xmtpbot.conversation import ConversationStore
from xmtpbot.dispatch import ToolDispatchLoop
from xmtpbot.functions.chain_rpc import EthBalanceFunction, GasPriceFunction, RpcClient
from xmtpbot.functions.crypto_price import CryptoPriceFunction
from xmtpbot.functions.menu import HelpFunction, ShowMenuFunction
from xmtpbot.functions.registry import FunctionRegistry
from xmtpbot.functions.send_eth import SendEthFunction
from xmtpbot.handler import MessageHandler, default_system_prompt
from xmtpbot.llm.openai_provider import OpenAIProvider
from xmtpbot.models import Message
from xmtpbot.rate_limiter import RateLimiter
from xmtpbot.sessions import SessionRegistry
from xmtpbot.transport import XmtpBridgeAdapter

logging.basicConfig(level=logging.INFO)
LOGGER = logging.getLogger(__name__)


def build_registry(settings: Settings) -> FunctionRegistry:
    rpc = RpcClient(rpc_urls(settings))
    registry = FunctionRegistry()
    registry.register(CryptoPriceFunction(settings.coingecko_base_url))
    registry.register(GasPriceFunction(rpc))
    registry.register(EthBalanceFunction(rpc))
    registry.register(SendEthFunction())
    registry.register(ShowMenuFunction())
    registry.register(HelpFunction())
    return registry


def build_handler(
    settings: Settings,
    sessions: SessionRegistry | None = None,
    router: ContentRouter | None = None,
) -> MessageHandler:
    """Wire the message pipeline from settings."""

    provider = OpenAIProvider(settings)
    registry = build_registry(settings)
    if sessions is None:
        sessions = SessionRegistry()
    conversations = ConversationStore(sessions, max_messages=settings.max_history_messages)
    router = router or ContentRouter(sessions)
    system_prompt = default_system_prompt(settings.agent_name)
    dispatch = ToolDispatchLoop(
        llm=provider,
        registry=registry,
        conversations=conversations,
        router=router,
        system_prompt=system_prompt,
        request_timeout_seconds=settings.request_timeout_seconds,
    )
    return MessageHandler(
        llm=provider,
        registry=registry,
        sessions=sessions,
        rate_limiter=RateLimiter(sessions, window_ms=settings.rate_limit_window_ms),
        conversations=conversations,
        router=router,
        dispatch=dispatch,
        agent_name=settings.agent_name,
        system_prompt=system_prompt,
        request_timeout_seconds=settings.request_timeout_seconds,
        agent_address=settings.agent_address,
    )


async def run() -> None:
    """Initialize app layers and start processing loop."""

    settings = load_settings()
    sessions = SessionRegistry()
    router = ContentRouter(sessions)
    handler = build_handler(settings, sessions, router)

    bridge = XmtpBridgeAdapter(
        settings.xmtp_bridge_command,
        env={
            **os.environ,
            "XMTP_WALLET_KEY": settings.xmtp_wallet_key,
            "XMTP_DB_ENCRYPTION_KEY": settings.xmtp_db_encryption_key,
            "XMTP_ENV": settings.xmtp_env,
        },
    )
    await bridge.start()

    pending: set[asyncio.Task[None]] = set()

    async def handle(message: Message) -> None:
        try:
            await handler.handle(bridge.context_for(message), message)
        except Exception:  # noqa: BLE001
            LOGGER.exception("Unhandled error for message from %s", message.sender_id)

    try:
        async for message in bridge.messages():
            if bridge.agent_address and not handler.agent_address:
                handler.agent_address = bridge.agent_address
            # One task per message: a slow user must not block other users.
            task = asyncio.create_task(handle(message), name=f"message-{message.message_id}")
            pending.add(task)
            task.add_done_callback(pending.discard)
    except asyncio.CancelledError:
        raise
    finally:
        for task in list(pending):
            task.cancel()
        await bridge.stop()
        LOGGER.info("Usage counters: %s", dict(router.counters))
        LOGGER.info("Agent shutdown complete")


def main() -> None:
    """Synchronous wrapper for asyncio entrypoint."""

    asyncio.run(run())


if __name__ == "__main__":
    main()

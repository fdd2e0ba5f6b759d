"""XMTP messaging transport.

The agent runtime itself lives in a bridge process (the XMTP agent SDK) that
speaks newline-delimited JSON over stdio: one inbound event per stdout line,
one outbound command per stdin line.
"""

from __future__ import annotations

import asyncio
import enum
import json
import logging
import shlex
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, AsyncIterator

from xmtpbot.models import Message

LOGGER = logging.getLogger(__name__)


class ContentType(str, enum.Enum):
    """Wire-format content type identifiers."""

    TEXT = "xmtp.org/text:1.0"
    WALLET_SEND_CALLS = "xmtp.org/walletSendCalls:1.0"
    ACTIONS = "coinbase.com/actions:1.0"
    INTENT = "coinbase.com/intent:1.0"
    REACTION = "xmtp.org/reaction:1.0"
    REPLY = "xmtp.org/reply:1.0"
    ATTACHMENT = "xmtp.org/remoteStaticAttachment:1.0"


class MessageContext(ABC):
    """Reply handle for one inbound message."""

    sender_id: str
    conversation_id: str
    is_group: bool

    @abstractmethod
    async def send_text(self, text: str) -> None:
        """Send plain text to the conversation."""

    @abstractmethod
    async def send_content(self, content_type: ContentType, payload: dict[str, Any]) -> None:
        """Send a structured content payload to the conversation."""

    async def send_reaction(self, emoji: str, message_id: str | None = None) -> None:
        await self.send_content(
            ContentType.REACTION,
            {"reference": message_id or "", "action": "added", "schema": "unicode", "content": emoji},
        )


class BridgeContext(MessageContext):
    def __init__(self, adapter: XmtpBridgeAdapter, message: Message) -> None:
        self._adapter = adapter
        self.sender_id = message.sender_id
        self.conversation_id = message.conversation_id
        self.is_group = message.is_group
        self.message_id = message.message_id

    async def send_text(self, text: str) -> None:
        await self._adapter.send(self.conversation_id, ContentType.TEXT, {"text": text})

    async def send_content(self, content_type: ContentType, payload: dict[str, Any]) -> None:
        await self._adapter.send(self.conversation_id, content_type, payload)

    async def send_reaction(self, emoji: str, message_id: str | None = None) -> None:
        await super().send_reaction(emoji, message_id or self.message_id)


class XmtpBridgeAdapter:
    """Adapter around the XMTP agent bridge subprocess."""

    def __init__(self, command: str, env: dict[str, str] | None = None) -> None:
        self._command = command
        self._env = env
        self._process: asyncio.subprocess.Process | None = None
        self._write_lock = asyncio.Lock()
        self.agent_address = ""

    async def start(self) -> None:
        """Start the bridge process."""

        args = shlex.split(self._command)
        self._process = await asyncio.create_subprocess_exec(
            *args,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=None,
            env=self._env,
        )
        LOGGER.info("Started XMTP bridge with pid %s", self._process.pid)

    async def stop(self) -> None:
        if self._process is None or self._process.returncode is not None:
            return
        self._process.terminate()
        await self._process.wait()
        LOGGER.info("XMTP bridge stopped")

    async def messages(self) -> AsyncIterator[Message]:
        """Yield inbound text and intent messages until the bridge exits."""

        if self._process is None or self._process.stdout is None:
            raise RuntimeError("XMTP bridge is not running")

        while True:
            line = await self._process.stdout.readline()
            if not line:
                LOGGER.warning("XMTP bridge closed its output (exit code %s)", self._process.returncode)
                return
            line = line.strip()
            if not line:
                continue
            try:
                payload = json.loads(line)
            except json.JSONDecodeError:
                LOGGER.warning("Ignoring non-JSON bridge line: %r", line[:200])
                continue
            if not isinstance(payload, dict):
                continue

            event = payload.get("event")
            if event == "ready":
                self.agent_address = str(payload.get("address") or "").lower()
                LOGGER.info("XMTP agent online at %s (env=%s)", self.agent_address, payload.get("env"))
                continue
            if event == "reaction":
                LOGGER.info("Reaction %r from %s", payload.get("content"), payload.get("senderAddress"))
                continue

            try:
                message = to_message(payload)
            except (KeyError, TypeError, ValueError):
                LOGGER.warning("Malformed bridge event: %r", payload)
                continue
            if message is not None:
                yield message

    def context_for(self, message: Message) -> BridgeContext:
        return BridgeContext(self, message)

    async def send(self, conversation_id: str, content_type: ContentType, payload: dict[str, Any]) -> None:
        if self._process is None or self._process.stdin is None:
            raise RuntimeError("XMTP bridge is not running")
        command = {
            "command": "send",
            "conversationId": conversation_id,
            "contentType": content_type.value,
            "content": payload,
        }
        async with self._write_lock:
            self._process.stdin.write((json.dumps(command) + "\n").encode())
            await self._process.stdin.drain()


def to_message(payload: dict[str, Any]) -> Message | None:
    """Normalize a bridge ``text`` or ``intent`` event into a Message."""

    event = payload.get("event")
    if event not in ("text", "intent"):
        return None

    sender = str(payload.get("senderAddress") or payload.get("senderInboxId") or "").lower()
    conversation_id = str(payload["conversationId"])
    if not sender:
        return None

    timestamp_ms = int(payload.get("sentAtMs") or 0)
    timestamp = (
        datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
        if timestamp_ms
        else datetime.now(timezone.utc)
    )

    intent_action_id = None
    if event == "intent":
        content = payload.get("content") or {}
        intent_action_id = str(content["actionId"])
        text = ""
    else:
        text = payload.get("content")
        text = text.strip() if isinstance(text, str) else ""
        if not text:
            return None

    reply_to = payload.get("replyToSender")
    return Message(
        conversation_id=conversation_id,
        sender_id=sender,
        text=text,
        timestamp=timestamp,
        message_id=str(payload.get("id") or "") or None,
        is_group=bool(payload.get("isGroup")),
        reply_to_sender=str(reply_to).lower() if reply_to else None,
        intent_action_id=intent_action_id,
    )

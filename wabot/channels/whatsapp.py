"""WhatsApp session backed by a Node.js bridge.

The bridge runs the WhatsApp Web client (headless browser, persistent local
auth) and exposes it over a WebSocket speaking JSON frames. Python and the
bridge talk in two directions:

- events pushed by the bridge: ``qr``, ``ready``, ``message``, ``error``;
- requests sent by us (``downloadMedia``, ``getQuotedMessage``, ``getChat``,
  ``reply``, ``sendMessage``), each answered by a ``response`` frame that
  carries the same ``requestId``.
"""

import asyncio
import base64
import itertools
import json
from typing import Any

import websockets
from loguru import logger

from wabot.bus.events import MediaPayload, Participant
from wabot.channels.base import ChatHandle, MessageHandle, MessagingSession


class BridgeError(ConnectionError):
    """A bridge request failed or the bridge went away."""

    def __init__(self, short_message: str, detail: str = ""):
        self.short_message = short_message
        self.detail = detail
        super().__init__(detail or short_message)


def encode_media(media: MediaPayload) -> dict[str, str]:
    return {
        "mimetype": media.mimetype,
        "data": base64.b64encode(media.data).decode(),
        "filename": media.filename,
    }


def decode_media(raw: dict[str, Any] | None) -> MediaPayload | None:
    if not raw or not raw.get("data"):
        return None
    return MediaPayload(
        mimetype=raw.get("mimetype") or "",
        data=base64.b64decode(raw["data"]),
        filename=raw.get("filename") or "",
    )


class BridgeChat(ChatHandle):
    """Chat handle whose operations go through the bridge."""

    def __init__(self, bridge: "WhatsAppBridge", data: dict[str, Any]):
        self._bridge = bridge
        self.id = data.get("id", "")
        self.is_group = bool(data.get("isGroup", False))
        self._participants = [
            Participant(id=p["id"] if isinstance(p, dict) else p)
            for p in data.get("participants") or []
        ]

    @property
    def participants(self) -> list[Participant]:
        return self._participants

    async def send_text(self, text: str, mentions: list[str] | None = None) -> None:
        params: dict[str, Any] = {"chatId": self.id, "text": text}
        if mentions:
            params["mentions"] = mentions
        await self._bridge.request("sendMessage", **params)

    async def send_media(self, media: MediaPayload, caption: str | None = None) -> None:
        params: dict[str, Any] = {"chatId": self.id, "media": encode_media(media)}
        if caption:
            params["caption"] = caption
        await self._bridge.request("sendMessage", **params)


class BridgeMessage(MessageHandle):
    """Message handle built from a bridge ``message`` payload."""

    def __init__(self, bridge: "WhatsAppBridge", data: dict[str, Any]):
        self._bridge = bridge
        self.id = data.get("id", "")
        self.sender = data.get("from", "")
        self.chat_id = data.get("chatId") or self.sender
        self.body = data.get("body") or ""
        self.type = data.get("type") or "chat"
        self.is_view_once = bool(data.get("isViewOnce", False))
        self.has_quoted = bool(data.get("hasQuotedMsg", False))
        self._chat = data.get("chat")

    async def download_media(self) -> MediaPayload | None:
        result = await self._bridge.request("downloadMedia", messageId=self.id)
        return decode_media(result)

    async def get_quoted(self) -> "BridgeMessage | None":
        if not self.has_quoted:
            return None
        result = await self._bridge.request("getQuotedMessage", messageId=self.id)
        return BridgeMessage(self._bridge, result) if result else None

    async def get_chat(self) -> BridgeChat:
        # Bridges usually inline the chat with the message; fetch it otherwise.
        if self._chat is None:
            self._chat = await self._bridge.request("getChat", chatId=self.chat_id) or {
                "id": self.chat_id
            }
        return BridgeChat(self._bridge, self._chat)

    async def reply(self, text: str) -> None:
        await self._bridge.request("reply", messageId=self.id, text=text)


class WhatsAppBridge(MessagingSession):
    """WhatsApp session connected to the bridge over a WebSocket."""

    name = "whatsapp"

    def __init__(self, url: str, reconnect_delay: float = 5.0):
        super().__init__()
        self.url = url
        self.reconnect_delay = reconnect_delay
        self._ws = None
        self._connected = False
        self._ids = itertools.count(1)
        self._pending: dict[str, asyncio.Future] = {}
        self._tasks: set[asyncio.Task] = set()

    async def start(self) -> None:
        logger.info(f"Connecting to WhatsApp bridge at {self.url}...")
        self._running = True

        while self._running:
            try:
                async with websockets.connect(self.url, max_size=None) as ws:
                    self._ws = ws
                    self._connected = True
                    logger.info("Connected to WhatsApp bridge")

                    async for raw in ws:
                        try:
                            await self._handle_frame(raw)
                        except Exception as e:
                            logger.error(f"Error handling bridge frame: {e}")

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.warning(f"WhatsApp bridge connection error: {e}")
            finally:
                self._connected = False
                self._ws = None
                self._fail_pending("bridge disconnected")

            if self._running:
                logger.info(f"Reconnecting in {self.reconnect_delay:g} seconds...")
                await asyncio.sleep(self.reconnect_delay)

    async def stop(self) -> None:
        self._running = False
        self._connected = False

        if self._ws:
            await self._ws.close()
            self._ws = None

        for task in list(self._tasks):
            task.cancel()
        self._fail_pending("bridge stopped")

    async def request(self, action: str, **params: Any) -> Any:
        """Send a request to the bridge and wait for its response."""
        if not self._ws or not self._connected:
            raise BridgeError("not connected", f"WhatsApp bridge not connected ({action})")

        request_id = str(next(self._ids))
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future

        frame = {"type": "request", "requestId": request_id, "action": action, "params": params}
        try:
            try:
                await self._ws.send(json.dumps(frame))
            except websockets.ConnectionClosed as e:
                raise BridgeError("disconnected", f"WhatsApp bridge closed during {action}: {e}") from e
            return await future
        finally:
            self._pending.pop(request_id, None)

    async def _handle_frame(self, raw: str | bytes) -> None:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Invalid JSON from bridge: {str(raw)[:100]}")
            return

        frame_type = data.get("type")

        if frame_type == "response":
            self._resolve(data)

        elif frame_type == "message":
            message = BridgeMessage(self, data.get("message") or {})
            if self.on_message:
                self._spawn(self.on_message(message))

        elif frame_type == "qr":
            if self.on_challenge:
                await self.on_challenge(data.get("qr", ""))

        elif frame_type == "ready":
            if self.on_ready:
                await self.on_ready()

        elif frame_type == "error":
            logger.error(f"WhatsApp bridge error: {data.get('error')}")

        else:
            logger.debug(f"Ignoring bridge frame of type {frame_type!r}")

    def _resolve(self, data: dict[str, Any]) -> None:
        future = self._pending.get(str(data.get("requestId")))
        if future is None or future.done():
            return
        if data.get("ok", True):
            future.set_result(data.get("result"))
        else:
            future.set_exception(BridgeError("request failed", str(data.get("error", ""))))

    def _spawn(self, coro) -> None:
        # Messages run independently so a handler awaiting a bridge
        # response does not block the frame loop that delivers it.
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _fail_pending(self, reason: str) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(BridgeError("disconnected", reason))
        self._pending.clear()

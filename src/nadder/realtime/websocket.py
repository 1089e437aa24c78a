"""WebSocket connection over ASGI.

Wraps the ASGI ``websocket`` receive/send pair. Handlers either consume
messages directly::

    socket = await ctx.upgrade.socket()
    async for message in socket:
        await socket.send(message.upper())

or register callbacks and return, letting the dispatcher pump incoming
messages after the HTTP pipeline finishes::

    socket = await ctx.upgrade.socket()

    @socket.on_message
    async def echo(message):
        await socket.send(message)
"""

import logging
from collections.abc import AsyncIterator, Callable
from enum import Enum, auto
from typing import Any, TypeAlias

from nadder._internal.asgi import Receive, Send
from nadder._internal.invoke import invoke

logger = logging.getLogger("nadder.realtime")

Message: TypeAlias = str | bytes


class SocketState(Enum):
    CONNECTING = auto()
    OPEN = auto()
    CLOSED = auto()


class WebSocket:
    """A single accepted (or about to be accepted) WebSocket connection.

    Identity-hashed so it can live in channel sets.
    """

    __slots__ = (
        "_close_callbacks",
        "_message_callbacks",
        "_receive",
        "_send",
        "close_code",
        "path",
        "state",
    )

    def __init__(self, receive: Receive, send: Send, *, path: str = "/") -> None:
        self._receive = receive
        self._send = send
        self._message_callbacks: list[Callable[[Message], Any]] = []
        self._close_callbacks: list[Callable[[int], Any]] = []
        self.path = path
        self.state = SocketState.CONNECTING
        self.close_code: int | None = None

    def __repr__(self) -> str:
        return f"<WebSocket {self.path} {self.state.name.lower()}>"

    @property
    def closed(self) -> bool:
        return self.state is SocketState.CLOSED

    # -- Callbacks --

    def on_message(self, callback: Callable[[Message], Any]) -> Callable[[Message], Any]:
        """Register a callback for incoming messages. Usable as a decorator."""
        self._message_callbacks.append(callback)
        return callback

    def on_close(self, callback: Callable[[int], Any]) -> Callable[[int], Any]:
        """Register a callback run once with the close code."""
        self._close_callbacks.append(callback)
        return callback

    # -- Protocol --

    async def accept(self, subprotocol: str | None = None) -> None:
        """Complete the handshake. The dispatcher has already consumed ``websocket.connect``."""
        if self.state is not SocketState.CONNECTING:
            return
        message: dict[str, Any] = {"type": "websocket.accept"}
        if subprotocol is not None:
            message["subprotocol"] = subprotocol
        await self._send(message)
        self.state = SocketState.OPEN

    async def send(self, data: Message) -> None:
        """Send a text frame for ``str``, a binary frame for anything bytes-like."""
        if self.state is not SocketState.OPEN:
            msg = f"Cannot send on a {self.state.name.lower()} WebSocket."
            raise RuntimeError(msg)
        if isinstance(data, str):
            await self._send({"type": "websocket.send", "text": data})
        else:
            await self._send({"type": "websocket.send", "bytes": bytes(data)})

    async def receive(self) -> Message | None:
        """Wait for the next message; ``None`` once the client disconnects."""
        while self.state is SocketState.OPEN:
            message = await self._receive()
            if message["type"] == "websocket.receive":
                text = message.get("text")
                return text if text is not None else message.get("bytes", b"")
            if message["type"] == "websocket.disconnect":
                await self._mark_closed(message.get("code", 1000))
        return None

    async def close(self, code: int = 1000, reason: str = "") -> None:
        """Close the connection from the server side."""
        if self.state is SocketState.CLOSED:
            return
        await self._send({"type": "websocket.close", "code": code, "reason": reason})
        await self._mark_closed(code)

    async def __aiter__(self) -> AsyncIterator[Message]:
        while (message := await self.receive()) is not None:
            yield message

    async def run(self) -> None:
        """Dispatch incoming messages to ``on_message`` callbacks until closed.

        A callback that raises is logged and the loop carries on.
        """
        while (message := await self.receive()) is not None:
            for callback in self._message_callbacks:
                try:
                    await invoke(callback, message)
                except Exception:
                    logger.exception("WebSocket message callback failed on %s", self.path)

    async def _mark_closed(self, code: int) -> None:
        self.state = SocketState.CLOSED
        self.close_code = code
        for callback in self._close_callbacks:
            try:
                await invoke(callback, code)
            except Exception:
                logger.exception("WebSocket close callback failed on %s", self.path)

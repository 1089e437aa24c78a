"""Per-request WebSocket upgrade capability (``ctx.upgrade``).

The upgrade is lazy: nothing happens until a handler asks for the
socket. The first ``await ctx.upgrade.socket()`` completes the handshake
and puts the socket in the context's channel; every later call returns
that same socket. Once the response is finalized no new upgrade can
start.
"""

from collections.abc import Awaitable, Callable
from typing import Any, TypeAlias

from nadder.http.request import Request
from nadder.http.response import ResponseState
from nadder.realtime.channels import DEFAULT_CHANNEL, ChannelManager
from nadder.realtime.websocket import WebSocket

Acceptor: TypeAlias = Callable[[], Awaitable[WebSocket]]


class Channel:
    """The context's current channel (``ctx.upgrade.channel``)."""

    __slots__ = ("_name", "_upgrade")

    def __init__(self, upgrade: "Upgrade") -> None:
        self._upgrade = upgrade
        self._name = DEFAULT_CHANNEL

    @property
    def name(self) -> str:
        return self._name

    async def join(self, name: str) -> None:
        """Switch to channel *name*, upgrading the connection if possible."""
        socket = await self._upgrade.socket()
        if socket is not None:
            self._upgrade.channels.join(name, socket)
        self._name = name

    async def broadcast(self, message: Any) -> int:
        """Send *message* to every socket in this channel."""
        return await self._upgrade.channels.broadcast(self._name, message)


class Upgrade:
    """WebSocket capability of one request context.

    Attributes:
        available: True when the client asked for ``upgrade: websocket``
            and the transport can accept it.
        channels: The app-wide channel registry.
        channel: This context's current channel.
    """

    __slots__ = ("_acceptor", "_response", "_socket", "available", "channel", "channels")

    def __init__(
        self,
        request: Request,
        response: ResponseState,
        channels: ChannelManager,
        acceptor: Acceptor | None = None,
    ) -> None:
        self._response = response
        self._acceptor = acceptor
        self._socket: WebSocket | None = None
        self.channels = channels
        self.channel = Channel(self)
        requested = (request.headers.get("upgrade") or "").lower() == "websocket"
        self.available = requested and acceptor is not None

    @property
    def upgraded(self) -> bool:
        """Whether the handshake has completed for this request."""
        return self._socket is not None

    async def socket(self) -> WebSocket | None:
        """Upgrade once and return the socket.

        Returns ``None`` when no upgrade is available, and the earlier
        result (possibly ``None``) once the socket exists or the response
        has been finalized.
        """
        if not self.available or self._acceptor is None:
            return None
        if self._socket is not None or self._response.sent:
            return self._socket
        socket = await self._acceptor()
        self._socket = socket
        self.channels.join(self.channel.name, socket)
        return socket

"""Named broadcast groups of live WebSockets.

One ``ChannelManager`` is owned by the app and shared by every
in-flight connection. Membership changes happen under a lock; a
broadcast snapshots the channel's members and then fans out without
holding it, so slow sockets never block joins elsewhere.

Thread safety:
    Under free-threading (3.14t) several workers may join or broadcast
    at once. All reads and writes of the membership tables go through
    ``_lock``.
"""

import array
import json
import logging
import threading
from typing import Any

import anyio

from nadder.realtime.websocket import Message, WebSocket

logger = logging.getLogger("nadder.realtime")

DEFAULT_CHANNEL = ""


def encode_message(message: Any) -> Message:
    """Text and byte-like payloads pass through; everything else becomes JSON."""
    if isinstance(message, str | bytes):
        return message
    if isinstance(message, bytearray | memoryview | array.array):
        return bytes(message)
    if isinstance(message, set | frozenset | tuple):
        message = list(message)
    return json.dumps(message)


class ChannelManager:
    """Tracks which channel each socket belongs to.

    A socket is in at most one channel at a time. Empty channels are
    dropped.
    """

    __slots__ = ("_channels", "_lock", "_membership")

    def __init__(self) -> None:
        self._channels: dict[str, set[WebSocket]] = {}
        self._membership: dict[WebSocket, str] = {}
        self._lock = threading.Lock()

    def join(self, name: str, socket: WebSocket) -> None:
        """Move *socket* into channel *name*, leaving its previous channel."""
        with self._lock:
            self._discard(socket)
            self._channels.setdefault(name, set()).add(socket)
            self._membership[socket] = name

    def leave(self, socket: WebSocket) -> None:
        """Remove *socket* from whichever channel it is in."""
        with self._lock:
            self._discard(socket)

    def members(self, name: str) -> frozenset[WebSocket]:
        """Snapshot of the sockets currently in *name*."""
        with self._lock:
            return frozenset(self._channels.get(name, ()))

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._channels)

    def __len__(self) -> int:
        with self._lock:
            return len(self._membership)

    async def broadcast(self, name: str, message: Any) -> int:
        """Send *message* to every open socket in *name*.

        Returns how many sends succeeded. A failed send is logged and
        the socket is pruned; there is no acknowledgement or retry.
        """
        payload = encode_message(message)
        delivered = 0

        async def deliver(socket: WebSocket) -> None:
            nonlocal delivered
            if socket.closed:
                self.leave(socket)
                return
            try:
                await socket.send(payload)
            except Exception:
                logger.warning("Dropping socket %r from channel %r after failed send", socket, name)
                self.leave(socket)
            else:
                delivered += 1

        async with anyio.create_task_group() as tg:
            for socket in self.members(name):
                tg.start_soon(deliver, socket)
        return delivered

    # Caller holds _lock
    def _discard(self, socket: WebSocket) -> None:
        previous = self._membership.pop(socket, None)
        if previous is None:
            return
        sockets = self._channels.get(previous)
        if sockets is None:
            return
        sockets.discard(socket)
        if not sockets:
            del self._channels[previous]

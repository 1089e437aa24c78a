"""Serve a nadder App with pounce.

Pounce's ``run()`` takes an import string (e.g., ``"site:app"``), but
nadder has a live ``App`` object, so ``pounce.Server`` is used directly
with the ASGI callable. Debug mode runs a single worker with reload;
otherwise the worker count comes from the config.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from nadder.app import App


def run_server(
    app: App,
    host: str,
    port: int,
    *,
    workers: int = 0,
    debug: bool = False,
    log_level: str = "info",
    log_format: str = "text",
    websocket_compression: bool = True,
    websocket_max_message_size: int = 10_485_760,
) -> None:
    """Start pounce with *app* and block until it shuts down.

    Args:
        app: ASGI callable (nadder App instance).
        host: Bind host address.
        port: Bind port number.
        workers: Worker count (0 = auto-detect). Forced to 1 in debug.
        debug: Single worker with auto-reload on file changes.
        log_level: Log level (debug, info, warning, error, critical).
        log_format: Log format ("json" or "text").
        websocket_compression: Enable permessage-deflate compression.
        websocket_max_message_size: Maximum WebSocket message size (bytes).
    """
    from pounce.config import ServerConfig
    from pounce.server import Server

    config = ServerConfig(
        host=host,
        port=port,
        workers=1 if debug else workers,
        reload=debug,
        log_level=log_level,
        log_format=log_format,
        websocket_compression=websocket_compression,
        websocket_max_message_size=websocket_max_message_size,
    )
    server = Server(config, app)
    server.run()

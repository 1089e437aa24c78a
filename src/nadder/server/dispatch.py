"""ASGI dispatch: translate one connection into a context and run the pipeline.

The only component besides the sender that touches raw ASGI. Each
connection moves through fixed phases::

    Receiving -> BodyParsed -> Routed -> Handled -> Finalized

The body is read and decoded before routing. Exactly one route handler
runs, then every matching middleware in registration order, then the
error page for the final status. The response is frozen and sent. A
WebSocket that a handler upgraded replaces the HTTP response and is
served until the client disconnects.
"""

import logging
from contextvars import Token
from dataclasses import replace

import anyio

from nadder._internal.asgi import Receive, Scope, Send
from nadder._internal.invoke import invoke
from nadder.context import Context, context_var
from nadder.errors import HTTPError, NotImplementedMethod
from nadder.http.request import BODY_METHODS, Request, decode_body, read_body
from nadder.http.response import ResponseState
from nadder.indexing.registry import Registry
from nadder.realtime.channels import ChannelManager
from nadder.realtime.upgrade import Acceptor, Upgrade
from nadder.realtime.websocket import WebSocket
from nadder.routing.route import HTTP_METHODS
from nadder.server.errors import apply_http_error, apply_internal_error, run_error_handler
from nadder.server.sender import send_response, send_websocket_denial

logger = logging.getLogger("nadder.server")


def _make_acceptor(receive: Receive, send: Send, path: str) -> Acceptor:
    async def accept() -> WebSocket:
        socket = WebSocket(receive, send, path=path)
        await socket.accept()
        return socket

    return accept


async def handle_connection(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    registry: Registry,
    channels: ChannelManager,
    max_content_length: int,
) -> None:
    """Process a single ``http`` or ``websocket`` connection."""
    kind = scope["type"]
    if kind not in ("http", "websocket"):
        return

    request = Request.from_asgi(scope)
    response = ResponseState()
    acceptor: Acceptor | None = None
    if kind == "websocket":
        # The handshake opens with websocket.connect; anything else means
        # the client went away before we could answer.
        message = await receive()
        if message["type"] != "websocket.connect":
            return
        acceptor = _make_acceptor(receive, send, request.path)

    upgrade = Upgrade(request, response, channels, acceptor)
    ctx = Context(request, response, upgrade)
    token: Token[Context] = context_var.set(ctx)
    try:
        logger.info("[%s] %s %s", request.ip, request.method, request.path)
        await run_pipeline(
            ctx,
            receive,
            registry=registry,
            read_request_body=kind == "http",
            max_content_length=max_content_length,
        )
        await run_error_handler(ctx, registry)
        response.finalize()

        if upgrade.upgraded:
            socket = await upgrade.socket()
            assert socket is not None
            try:
                await socket.run()
            finally:
                channels.leave(socket)
        elif kind == "websocket":
            await send_websocket_denial(response, scope, send)
        else:
            await send_response(response, send)
    finally:
        with anyio.CancelScope(shield=True):
            await response.release()
        context_var.reset(token)


async def run_pipeline(
    ctx: Context,
    receive: Receive,
    *,
    registry: Registry,
    read_request_body: bool = True,
    max_content_length: int,
) -> None:
    """Receive the body, route, handle, and run middleware for *ctx*.

    Unknown methods get a 501 with no routing and no middleware. A route
    miss presets a 404 and middleware still runs. An ``HTTPError``
    replaces the response with its status. Any other exception is
    logged, replaced by a fresh 500, and ends the pipeline.
    """
    method = ctx.req.method
    path = ctx.req.path
    if method not in HTTP_METHODS:
        apply_http_error(ctx, NotImplementedMethod(method))
        return

    ctx.data = registry.data_for(path)

    try:
        if read_request_body and method in BODY_METHODS:
            raw = await read_body(receive, limit=max_content_length)
            if raw:
                body, body_type = decode_body(raw, ctx.req.content_type or "")
                ctx.req = replace(ctx.req, body=body, body_type=body_type)

        match = registry.router.resolve(method, path)
        if match is None:
            ctx.res.send_status(404)
        else:
            ctx.req = replace(ctx.req, path_params=match.path_params)
            await invoke(match.handler, ctx)
    except HTTPError as exc:
        apply_http_error(ctx, exc)
    except Exception:
        apply_internal_error(ctx)
        return

    try:
        for middleware in registry.middleware_for(method, path):
            await invoke(middleware.handler, ctx)
    except HTTPError as exc:
        apply_http_error(ctx, exc)
    except Exception:
        apply_internal_error(ctx)

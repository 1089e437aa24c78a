"""ASGI response sending: translate a finalized ``ResponseState`` to messages.

Handles single-body responses, chunked streaming bodies (``send_file_stream``),
and the ``websocket.http.response`` extension used to answer a WebSocket
handshake that was never accepted.
"""

import logging
from collections.abc import AsyncIterator

from nadder._internal.asgi import Scope, Send, encode_headers, supports_extension
from nadder.http.response import ResponseState

logger = logging.getLogger("nadder.server")

_HTTP_DENIAL_EXTENSION = "websocket.http.response"


def _body_allowed(status: int) -> bool:
    """Whether an HTTP status code permits a response body."""
    # RFC: 1xx, 204, and 304 responses do not include a message body.
    return not (100 <= status < 200 or status in {204, 304})


def _encode_body(body: str | bytes) -> bytes:
    return body.encode("utf-8") if isinstance(body, str) else body


async def send_response(response: ResponseState, send: Send) -> None:
    """Send a finalized response over an ``http`` connection."""
    body = response.body
    if isinstance(body, AsyncIterator):
        if _body_allowed(response.status):
            await send_streaming_response(response, body, send)
            return
        raw = b""
    else:
        raw = _encode_body(body) if _body_allowed(response.status) else b""
    raw_headers = encode_headers(list(response.headers.items()))
    raw_headers.append((b"content-length", str(len(raw)).encode("latin-1")))

    await send(
        {
            "type": "http.response.start",
            "status": response.status,
            "headers": raw_headers,
        }
    )
    await send(
        {
            "type": "http.response.body",
            "body": raw,
        }
    )


async def send_streaming_response(
    response: ResponseState,
    chunks: AsyncIterator[bytes],
    send: Send,
) -> None:
    """Send a streaming body via chunked transfer encoding.

    Headers go out immediately, then each chunk with ``more_body=True``.
    A failure mid-stream is logged and the stream is closed early.
    """
    raw_headers = encode_headers(list(response.headers.items()))
    raw_headers.append((b"transfer-encoding", b"chunked"))

    # No content-length; chunked transfer encoding signals body boundaries
    await send(
        {
            "type": "http.response.start",
            "status": response.status,
            "headers": raw_headers,
        }
    )

    try:
        async for chunk in chunks:
            if chunk:
                await send(
                    {
                        "type": "http.response.body",
                        "body": _encode_body(chunk),
                        "more_body": True,
                    }
                )
    except Exception:
        logger.exception("Streaming body failed after headers were sent")

    # Close the stream
    await send(
        {
            "type": "http.response.body",
            "body": b"",
            "more_body": False,
        }
    )


async def send_websocket_denial(response: ResponseState, scope: Scope, send: Send) -> None:
    """Answer a WebSocket handshake that no handler accepted.

    With the ``websocket.http.response`` extension the client receives
    the HTTP response built by the pipeline. Without it the handshake is
    closed and the server answers ``403``.
    """
    if not supports_extension(scope, _HTTP_DENIAL_EXTENSION):
        await send({"type": "websocket.close", "code": 1000})
        return

    body = response.body
    if isinstance(body, AsyncIterator):
        parts = [chunk async for chunk in body]
        raw = b"".join(_encode_body(part) for part in parts)
    else:
        raw = _encode_body(body)
    if not _body_allowed(response.status):
        raw = b""
    raw_headers = encode_headers(list(response.headers.items()))
    raw_headers.append((b"content-length", str(len(raw)).encode("latin-1")))

    await send(
        {
            "type": "websocket.http.response.start",
            "status": response.status,
            "headers": raw_headers,
        }
    )
    await send({"type": "websocket.http.response.body", "body": raw})

"""Immutable HTTP request.

The request facet of a context. Metadata is frozen at creation; the
body is read and decoded once by the dispatcher before routing, and
path parameters are filled in after the route resolves (both through
``dataclasses.replace``).
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal, TypeAlias

from nadder._internal.asgi import Receive, Scope
from nadder.errors import HTTPError, PayloadTooLarge
from nadder.http.cookies import parse_cookies
from nadder.http.forms import FormData, parse_form_data
from nadder.http.headers import Headers
from nadder.http.query import QueryParams

BodyType: TypeAlias = Literal["json", "text", "form", "blob"]

# Methods whose requests may carry a body
BODY_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    ``body`` holds the decoded payload: parsed JSON for ``json``, a
    string for ``text``, ``FormData`` for ``form``, raw bytes for
    ``blob``, and ``None`` when the request carried no body.
    """

    method: str
    path: str
    headers: Headers
    query: QueryParams
    cookies: Mapping[str, str]
    ip: str | None = None
    scheme: str = "http"
    host: str = "localhost"
    http_version: str = "1.1"
    path_params: dict[str, str] = field(default_factory=dict)
    body: Any = None
    body_type: BodyType | None = None

    # -- Computed properties --

    @property
    def content_type(self) -> str | None:
        """The Content-Type header value."""
        return self.headers.get("content-type")

    @property
    def url(self) -> str:
        """Absolute request URL, query string included."""
        return f"{self.scheme}://{self.host}{self.path_with_query}"

    @property
    def path_with_query(self) -> str:
        """Request path plus the raw query string, if any."""
        qs = self.query.to_string()
        if qs:
            return f"{self.path}?{qs}"
        return self.path

    # -- Factory --

    @classmethod
    def from_asgi(cls, scope: Scope) -> Request:
        """Create a Request from an ASGI ``http`` or ``websocket`` scope.

        WebSocket scopes carry no method and are treated as ``GET``.
        """
        headers = Headers(tuple(scope.get("headers", ())))
        client = scope.get("client")
        server = scope.get("server")
        host = headers.get("host")
        if host is None and server:
            host = f"{server[0]}:{server[1]}"
        scheme = scope.get("scheme") or ("ws" if scope["type"] == "websocket" else "http")
        return cls(
            method=scope.get("method", "GET").upper(),
            path=scope["path"],
            headers=headers,
            query=QueryParams(scope.get("query_string", b"")),
            cookies=parse_cookies(headers.get("cookie", "")),
            ip=client[0] if client else None,
            scheme=scheme,
            host=host or "localhost",
            http_version=scope.get("http_version", "1.1"),
        )


async def read_body(receive: Receive, *, limit: int) -> bytes:
    """Drain ``http.request`` messages into a single bytes object.

    Raises ``PayloadTooLarge`` once more than *limit* bytes arrive.
    """
    chunks: list[bytes] = []
    size = 0
    while True:
        message = await receive()
        if message["type"] != "http.request":
            break
        chunk = message.get("body", b"")
        if chunk:
            size += len(chunk)
            if size > limit:
                raise PayloadTooLarge(limit)
            chunks.append(chunk)
        if not message.get("more_body", False):
            break
    return b"".join(chunks)


def decode_body(raw: bytes, content_type: str) -> tuple[Any, BodyType]:
    """Decode a request body by sniffing its content type.

    The first matching content-type substring wins: JSON, then plain
    text, then URL-encoded or multipart forms. Anything else is kept as
    raw bytes.
    """
    if "application/json" in content_type:
        try:
            return json.loads(raw), "json"
        except ValueError as exc:
            raise HTTPError(status=400, detail=f"Malformed JSON body: {exc}") from exc
    if "text/plain" in content_type:
        return raw.decode("utf-8", errors="replace"), "text"
    if (
        "application/x-www-form-urlencoded" in content_type
        or "multipart/form-data" in content_type
    ):
        try:
            form: FormData = parse_form_data(raw, content_type)
        except ValueError as exc:
            raise HTTPError(status=400, detail=str(exc)) from exc
        return form, "form"
    return raw, "blob"

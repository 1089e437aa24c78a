"""Tests for nadder.http.request: ASGI scope conversion and body decoding."""

import pytest

from nadder.errors import HTTPError, PayloadTooLarge
from nadder.http.forms import FormData
from nadder.http.request import Request, decode_body, read_body


def _scope(**overrides) -> dict:
    scope = {
        "type": "http",
        "method": "get",
        "path": "/blog/post",
        "query_string": b"page=2",
        "headers": [
            (b"host", b"example.com"),
            (b"cookie", b"theme=dark"),
            (b"content-type", b"text/plain"),
        ],
        "client": ("10.0.0.1", 5000),
        "scheme": "https",
        "http_version": "2",
    }
    scope.update(overrides)
    return scope


def _receiver(*chunks: bytes):
    messages = [
        {"type": "http.request", "body": chunk, "more_body": i < len(chunks) - 1}
        for i, chunk in enumerate(chunks)
    ]

    async def receive() -> dict:
        return messages.pop(0) if messages else {"type": "http.disconnect"}

    return receive


class TestFromAsgi:
    def test_fields(self) -> None:
        req = Request.from_asgi(_scope())
        assert req.method == "GET"
        assert req.path == "/blog/post"
        assert req.query["page"] == "2"
        assert req.cookies == {"theme": "dark"}
        assert req.ip == "10.0.0.1"
        assert req.host == "example.com"
        assert req.http_version == "2"
        assert req.content_type == "text/plain"
        assert req.body is None
        assert req.body_type is None

    def test_url(self) -> None:
        req = Request.from_asgi(_scope())
        assert req.url == "https://example.com/blog/post?page=2"
        assert req.path_with_query == "/blog/post?page=2"

    def test_host_falls_back_to_server(self) -> None:
        req = Request.from_asgi(_scope(headers=[], server=("127.0.0.1", 8000)))
        assert req.host == "127.0.0.1:8000"

    def test_websocket_scope_is_get(self) -> None:
        scope = _scope(type="websocket", scheme=None)
        del scope["method"]
        req = Request.from_asgi(scope)
        assert req.method == "GET"
        assert req.scheme == "ws"

    def test_missing_client(self) -> None:
        req = Request.from_asgi(_scope(client=None))
        assert req.ip is None


class TestReadBody:
    async def test_joins_chunks(self) -> None:
        assert await read_body(_receiver(b"ab", b"cd"), limit=100) == b"abcd"

    async def test_limit_enforced(self) -> None:
        with pytest.raises(PayloadTooLarge) as exc_info:
            await read_body(_receiver(b"x" * 10, b"y" * 10), limit=15)
        assert exc_info.value.status == 413

    async def test_disconnect_ends_body(self) -> None:
        async def receive() -> dict:
            return {"type": "http.disconnect"}

        assert await read_body(receive, limit=10) == b""


class TestDecodeBody:
    def test_json(self) -> None:
        assert decode_body(b'{"a": [1, 2]}', "application/json") == ({"a": [1, 2]}, "json")

    def test_json_with_charset(self) -> None:
        body, kind = decode_body(b"[]", "application/json; charset=utf-8")
        assert kind == "json"
        assert body == []

    def test_malformed_json_is_400(self) -> None:
        with pytest.raises(HTTPError) as exc_info:
            decode_body(b"{nope", "application/json")
        assert exc_info.value.status == 400

    def test_text(self) -> None:
        assert decode_body(b"hello", "text/plain; charset=utf-8") == ("hello", "text")

    def test_form(self) -> None:
        body, kind = decode_body(b"a=1", "application/x-www-form-urlencoded")
        assert kind == "form"
        assert isinstance(body, FormData)
        assert body["a"] == "1"

    def test_broken_multipart_is_400(self) -> None:
        with pytest.raises(HTTPError) as exc_info:
            decode_body(b"--x", "multipart/form-data")
        assert exc_info.value.status == 400

    def test_anything_else_is_blob(self) -> None:
        assert decode_body(b"\x00\x01", "image/png") == (b"\x00\x01", "blob")
        assert decode_body(b"raw", "") == (b"raw", "blob")

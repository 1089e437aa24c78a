"""Mutable response facet with a one-shot finalize.

Handlers and middleware build the response in place through ``ctx.res``.
The dispatcher calls ``finalize()`` exactly once when the pipeline is
done; from then on every setter and helper raises ``ResponseSentError``.
"""

import json as json_module
import mimetypes
from collections.abc import AsyncIterator, Mapping, Set
from http import HTTPStatus
from pathlib import Path
from typing import Any, TypeAlias
from urllib.parse import quote

import anyio

from nadder.errors import AssetReadError, ResponseSentError
from nadder.http.cookies import SetCookie
from nadder.http.headers import MutableHeaders

Body: TypeAlias = str | bytes | AsyncIterator[bytes]

_STREAM_CHUNK_SIZE = 64 * 1024

# Reserved and unreserved URL characters, plus "%" so encoded input survives
_URL_SAFE = "/:?#[]@!$&'()*+,;=%~"


def status_text(status: int) -> str:
    """The reason phrase for *status*, or ``""`` if unknown."""
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return ""


def guess_content_type(lookup: str) -> str | None:
    """Best-effort MIME lookup from a filename, path, or bare extension.

    ``"json"``, ``".json"`` and ``"data.json"`` all resolve the same way.
    Text types get an explicit UTF-8 charset.
    """
    name = lookup if "." in lookup else f"file.{lookup}"
    if name.startswith("."):
        name = f"file{name}"
    content_type, _ = mimetypes.guess_type(name, strict=False)
    if content_type is None:
        return None
    if content_type.startswith("text/") or content_type in (
        "application/json",
        "application/javascript",
    ):
        return f"{content_type}; charset=utf-8"
    return content_type


def _jsonable(value: Any) -> Any:
    if isinstance(value, Mapping):
        return dict(value)
    if isinstance(value, Set | tuple):
        return list(value)
    msg = f"Object of type {type(value).__name__} is not JSON serializable"
    raise TypeError(msg)


def to_json(data: Any, *, indent: int | None = 2) -> str:
    """Serialize *data*, turning sets, tuples and mappings into JSON types."""
    return json_module.dumps(data, indent=indent, default=_jsonable)


class ResponseState:
    """The response facet of a request context.

    Usage inside a handler::

        async def GET(ctx):
            ctx.res.status = 201
            ctx.res.headers.set("x-powered-by", "nadder")
            ctx.res.send_json({"ok": True})
    """

    __slots__ = ("_body", "_headers", "_open_files", "_sent", "_status", "_superseded")

    def __init__(self, *, body: Body = "", status: int = 200) -> None:
        self._body: Body = body
        self._status = status
        self._sent = False
        self._superseded: list[AsyncIterator[bytes]] = []
        self._open_files: list[Any] = []
        self._headers = MutableHeaders(guard=self._check_open)

    def __repr__(self) -> str:
        return f"<ResponseState {self._status} sent={self._sent}>"

    # -- Guard --

    def _check_open(self) -> None:
        if self._sent:
            msg = "Response has already been sent and can no longer be modified."
            raise ResponseSentError(msg)

    @property
    def sent(self) -> bool:
        """True once the dispatcher has finalized the response."""
        return self._sent

    def finalize(self) -> None:
        """Freeze the response. Called by the dispatcher exactly once."""
        self._check_open()
        self._sent = True

    async def release(self) -> None:
        """Close every stream and file handle the response opened.

        The dispatcher calls this once the response is sent, whether the
        body went out, was replaced, or was dropped for a bodiless status.
        """
        streams = list(self._superseded)
        if isinstance(self._body, AsyncIterator):
            streams.append(self._body)
        self._superseded.clear()
        for stream in streams:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()
        files, self._open_files = self._open_files, []
        for handle in files:
            await handle.aclose()

    def _replace_body(self, value: Body) -> None:
        current = self._body
        if isinstance(current, AsyncIterator) and current is not value:
            self._superseded.append(current)
        self._body = value

    def reset(self, status: int) -> None:
        """Discard any partial state and start over with *status*.

        Used by the dispatcher's error boundary so a failed handler's
        half-built response never leaks out.
        """
        self._check_open()
        self._headers = MutableHeaders(guard=self._check_open)
        self.send_status(status)

    # -- Fields --

    @property
    def body(self) -> Body:
        return self._body

    @body.setter
    def body(self, value: Body) -> None:
        self._check_open()
        self._replace_body(value)

    @property
    def status(self) -> int:
        return self._status

    @status.setter
    def status(self, value: int) -> None:
        self._check_open()
        self._status = int(value)

    @property
    def headers(self) -> MutableHeaders:
        return self._headers

    # -- Helpers --

    def send_status(self, status: int) -> None:
        """Set *status* and a human-readable ``"404 Not Found"`` body."""
        self._check_open()
        self._status = int(status)
        self._replace_body(f"{self._status} {status_text(self._status)}".rstrip())

    def send_json(self, data: Any) -> None:
        """Serialize *data* as the body with a JSON content type and 200."""
        self._check_open()
        self._replace_body(to_json(data))
        self.infer_content_type("json")
        self._status = 200

    async def send_file(self, filepath: str | Path) -> None:
        """Read a file into the body. Unreadable files become a 404."""
        self._check_open()
        path = anyio.Path(filepath)
        try:
            content = await path.read_bytes()
        except OSError:
            self.send_status(HTTPStatus.NOT_FOUND)
            return
        self._replace_body(content)
        self.infer_content_type(path.name)
        self._status = 200

    async def send_file_stream(self, filepath: str | Path) -> None:
        """Stream a file as the body. Unopenable files become a 404."""
        self._check_open()
        try:
            handle = await anyio.open_file(filepath, "rb")
        except OSError:
            self.send_status(HTTPStatus.NOT_FOUND)
            return
        self._open_files.append(handle)
        self._replace_body(_stream_file(handle, str(filepath)))
        self.infer_content_type(Path(filepath).name)
        self._status = 200

    def infer_content_type(self, lookup: str) -> None:
        """Set ``content-type`` from a filename or extension, if known."""
        content_type = guess_content_type(lookup)
        if content_type:
            self._headers.set("content-type", content_type)

    def mark_for_download(self, filename: str | None = None) -> None:
        """Ask the browser to save the body instead of displaying it.

        Non-ASCII names go out as an RFC 6266 ``filename*`` with an ASCII
        fallback ``filename`` for older clients.
        """
        if not filename:
            self._headers.set("content-disposition", "attachment")
            return
        fallback = filename.encode("ascii", "replace").decode("ascii").replace('"', "'")
        value = f'attachment; filename="{fallback}"'
        if fallback != filename:
            value += f"; filename*=UTF-8''{quote(filename, safe='')}"
        self._headers.set("content-disposition", value)

    def redirect(self, url: str, status: int = HTTPStatus.FOUND) -> None:
        """Redirect to *url* with an empty body.

        Characters a ``location`` header cannot carry are percent-encoded.
        """
        self._check_open()
        self._status = int(status)
        self._replace_body("")
        self._headers.set("location", quote(url, safe=_URL_SAFE))

    def set_cookie(self, name: str, value: str, **options: Any) -> None:
        """Append a ``set-cookie`` header. Options mirror ``SetCookie``."""
        self._headers.append("set-cookie", SetCookie(name, value, **options).to_header_value())

    def delete_cookie(self, name: str, *, path: str = "/", domain: str | None = None) -> None:
        """Append a ``set-cookie`` header that expires *name*."""
        cookie = SetCookie.expire(name, path=path, domain=domain)
        self._headers.append("set-cookie", cookie.to_header_value())


async def _stream_file(handle: Any, filepath: str) -> AsyncIterator[bytes]:
    """Yield a file in chunks, closing it when exhausted."""
    try:
        while chunk := await handle.read(_STREAM_CHUNK_SIZE):
            yield chunk
    except OSError as exc:
        raise AssetReadError(f"Failed while streaming {filepath}") from exc
    finally:
        await handle.aclose()

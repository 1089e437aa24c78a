"""ASGI type aliases and small message helpers.

The dispatcher and test client are the only modules that touch raw
ASGI messages. Everything else works with nadder types.
"""

from collections.abc import Awaitable, Callable, MutableMapping
from typing import Any, TypeAlias

# Raw ASGI 3.0 types
Scope: TypeAlias = MutableMapping[str, Any]
Receive: TypeAlias = Callable[[], Awaitable[MutableMapping[str, Any]]]
Send: TypeAlias = Callable[[MutableMapping[str, Any]], Awaitable[None]]


def encode_headers(headers: list[tuple[str, str]]) -> list[tuple[bytes, bytes]]:
    """Lowercase and latin-1 encode header pairs for an ASGI start message."""
    return [(name.lower().encode("latin-1"), value.encode("latin-1")) for name, value in headers]


def supports_extension(scope: Scope, name: str) -> bool:
    """Whether the server advertised an ASGI extension in *scope*."""
    return name in (scope.get("extensions") or {})

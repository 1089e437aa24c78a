"""Shared type aliases used across nadder modules."""

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, TypeAlias

if TYPE_CHECKING:
    from nadder.context import Context

# Route handler or middleware: receives the request context, returns nothing
Callback: TypeAlias = Callable[["Context"], Awaitable[None] | None]

# Renderer function: (content, context) -> content
RenderFunc: TypeAlias = Callable[[Any, "Context"], Any]

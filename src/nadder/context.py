"""Per-request context.

A ``Context`` is created for every connection and owned by exactly one
task. It bundles the immutable request facet, the mutable response
facet, the WebSocket upgrade capability, and request-scoped state.

The current context is also published through a ``ContextVar`` so
renderers and helpers deep in a call stack can reach it::

    from nadder.context import get_context

    ctx = get_context()

Thread safety:
    ``ContextVar`` is task-local under asyncio and thread-local under
    free-threading (3.14t). No locks needed.
"""

from collections.abc import Awaitable, Callable
from contextvars import ContextVar
from typing import Any

from nadder.http.request import Request
from nadder.http.response import ResponseState
from nadder.realtime.upgrade import Upgrade


class Context:
    """Everything a handler, middleware, or renderer sees for one request.

    Attributes:
        req: The request. Replaced (never mutated) as the dispatcher
            decodes the body and resolves path parameters.
        res: The response facet, frozen once the dispatcher finalizes it.
        upgrade: WebSocket upgrade and channel access.
        data: Page data inherited from ``_data`` files and page exports.
        state: Free-form per-request scratch space.
    """

    __slots__ = ("_render", "data", "req", "res", "state", "upgrade")

    def __init__(
        self,
        req: Request,
        res: ResponseState,
        upgrade: Upgrade,
        *,
        data: dict[str, Any] | None = None,
    ) -> None:
        self.req = req
        self.res = res
        self.upgrade = upgrade
        self.data: dict[str, Any] = data if data is not None else {}
        self.state: dict[str, Any] = {}
        self._render: Callable[[], Awaitable[str]] | None = None

    def __repr__(self) -> str:
        return f"<Context {self.req.method} {self.req.path} -> {self.res.status}>"

    async def render(self) -> str:
        """Render the matched page through its engines.

        Only page routes install a renderer; calling this anywhere else
        raises ``LookupError``.
        """
        if self._render is None:
            msg = f"No page renderer is attached to {self.req.method} {self.req.path}."
            raise LookupError(msg)
        return await self._render()

    def set_renderer(self, render: Callable[[], Awaitable[str]]) -> None:
        self._render = render


context_var: ContextVar[Context] = ContextVar("nadder_context")
"""The current context. Set by the dispatcher for the life of a request."""


def get_context() -> Context:
    """Return the current context.

    Raises ``LookupError`` if called outside a request.
    """
    return context_var.get()

"""The app's write-once lookup tables.

The indexer and the ``App`` setup API fill a ``Registry``; ``freeze()``
turns it read-only before the first request, after which the dispatcher
reads it from every connection without locking.
"""

from collections.abc import Mapping
from typing import Any

from nadder.indexing.types import DataScope, ErrorHandler, Middleware, Processor, Renderer
from nadder.routing.route import RouteEntry
from nadder.routing.router import Router


class Registry:
    """Routes, middleware, page data, error handlers and capabilities."""

    __slots__ = (
        "_data",
        "_error_handlers",
        "_frozen",
        "_middleware",
        "_processors",
        "_renderers",
        "router",
    )

    def __init__(self) -> None:
        self.router = Router()
        self._middleware: list[Middleware] = []
        self._data: list[DataScope] = []
        self._error_handlers: dict[int, ErrorHandler] = {}
        self._renderers: list[Renderer] = []
        self._processors: list[Processor] = []
        self._frozen = False

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = "Registry is frozen; register everything before the first request."
            raise RuntimeError(msg)

    def copy(self) -> "Registry":
        """An unfrozen registry holding everything registered so far."""
        clone = Registry()
        for entry in self.router.routes:
            clone.register_route(entry)
        clone._middleware = list(self._middleware)
        clone._data = list(self._data)
        clone._error_handlers = dict(self._error_handlers)
        clone._renderers = list(self._renderers)
        clone._processors = list(self._processors)
        return clone

    def freeze(self) -> None:
        self._frozen = True
        self.router.freeze()

    # -- Registration --

    def register_route(self, entry: RouteEntry) -> None:
        self.router.register(entry)

    def use_middleware(self, middleware: Middleware) -> None:
        self._check_not_frozen()
        self._middleware.append(middleware)

    def use_data(self, scope: DataScope) -> None:
        self._check_not_frozen()
        self._data.append(scope)

    def use_error_handler(self, handler: ErrorHandler) -> None:
        self._check_not_frozen()
        self._error_handlers[handler.status] = handler

    def use_renderer(self, renderer: Renderer) -> None:
        self._check_not_frozen()
        self._renderers.append(renderer)

    def use_processor(self, processor: Processor) -> None:
        self._check_not_frozen()
        self._processors.append(processor)

    # -- Lookup --

    @property
    def middleware(self) -> tuple[Middleware, ...]:
        return tuple(self._middleware)

    @property
    def renderers(self) -> tuple[Renderer, ...]:
        return tuple(self._renderers)

    def middleware_for(self, method: str, path: str) -> list[Middleware]:
        """Middleware applying to this request, in registration order."""
        return [mw for mw in self._middleware if mw.applies(method, path)]

    def data_for(self, path: str) -> dict[str, Any]:
        """Merge every data scope matching *path*; later scopes win."""
        merged: dict[str, Any] = {}
        for scope in self._data:
            if scope.pattern.test(path):
                merged.update(scope.values)
        return merged

    def error_handler(self, status: int) -> ErrorHandler | None:
        return self._error_handlers.get(status)

    @property
    def error_handlers(self) -> Mapping[int, ErrorHandler]:
        return dict(self._error_handlers)

    def renderer_by_name(self, name: str) -> Renderer | None:
        for renderer in self._renderers:
            if renderer.name == name:
                return renderer
        return None

    def renderers_for(self, pathname: str) -> list[Renderer]:
        return [r for r in self._renderers if r.applies_to(pathname)]

    def processors_for(self, pathname: str) -> list[Processor]:
        return [p for p in self._processors if p.applies_to(pathname)]

"""Nadder application class.

Mutable during setup (renderers, processors, routes, middleware, error
pages, template filters). Frozen at runtime when the ASGI lifespan
starts or the first connection arrives: the manifest is indexed then,
and the registry becomes read-only.
"""

import logging
from collections.abc import Callable, Mapping
from typing import Any

import anyio
from kida import Environment

from nadder._internal.asgi import Receive, Scope, Send
from nadder._internal.invoke import invoke
from nadder._internal.types import Callback
from nadder.config import AppConfig
from nadder.indexing.indexer import index_routes, index_static
from nadder.indexing.registry import Registry
from nadder.indexing.static import asset_url
from nadder.indexing.types import ErrorHandler, Manifest, Middleware, Processor, Renderer
from nadder.realtime.channels import ChannelManager
from nadder.routing.pattern import RoutePattern, compile_pattern
from nadder.routing.route import ANY, HTTP_METHODS, RouteEntry
from nadder.server.dispatch import handle_connection

logger = logging.getLogger("nadder.server")


def _as_pattern(pattern: RoutePattern | str | None) -> RoutePattern | None:
    if pattern is None or isinstance(pattern, RoutePattern):
        return pattern
    return compile_pattern(pattern)


def _check_method(method: str) -> str:
    method = method.upper()
    if method != ANY and method not in HTTP_METHODS:
        msg = f"Unsupported method {method!r}. Use one of {', '.join(HTTP_METHODS)} or {ANY!r}."
        raise ValueError(msg)
    return method


class App:
    """The nadder application.

    Usage::

        from nadder import App, AppConfig
        from nadder.renderers.markdown import markdown_renderer

        app = App(AppConfig(routes_dir="site/routes", static_dir="site/static"))
        app.use_renderer(markdown_renderer())

        @app.route("/health")
        def health(ctx):
            ctx.res.send_json({"ok": True})

        app.run()

    Routes are tried in this order: static assets, ``app.route``
    registrations, then pages from ``routes/`` (explicit ``pattern``
    exports first). Middleware added with ``use_middleware`` runs before
    ``_middleware`` files; ``app.error`` handlers override ``_<status>``
    files for the same status.

    Thread safety:
        Setup is single-threaded (decorators at import time). The freeze
        transition holds ``_freeze_lock`` with a double-check, so exactly
        one task indexes the manifest even if several connections arrive
        before the lifespan startup completes.
    """

    __slots__ = (
        "_channels",
        "_exports",
        "_freeze_lock",
        "_frozen",
        "_kida_env",
        "_pending_error_handlers",
        "_pending_routes",
        "_registry",
        "_shutdown_hooks",
        "_startup_hooks",
        "config",
    )

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        exports: Mapping[str, Mapping[str, Any]] | None = None,
        kida_env: Environment | None = None,
    ) -> None:
        self.config: AppConfig = config or AppConfig()
        self._exports: dict[str, Mapping[str, Any]] = dict(exports or {})
        self._registry = Registry()
        self._channels = ChannelManager()
        self._pending_routes: list[RouteEntry] = []
        self._pending_error_handlers: list[ErrorHandler] = []
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []
        self._kida_env: Environment = kida_env or Environment()
        self._frozen: bool = False
        self._freeze_lock = anyio.Lock()

    # -- Introspection --

    @property
    def registry(self) -> Registry:
        return self._registry

    @property
    def channels(self) -> ChannelManager:
        return self._channels

    @property
    def template_env(self) -> Environment:
        """The kida environment shared by template renderers."""
        return self._kida_env

    @property
    def manifest(self) -> Manifest:
        """Where and how the indexer reads the route and static trees."""
        return Manifest.from_config(self.config, self._exports)

    def asset_url(self, path: str) -> str:
        """Cache-busted URL for a static asset, for use in templates.

        ``app.asset_url("/style.css")`` gives
        ``/style.css?__nadder_cache_id=<build id>``.
        """
        return asset_url(path, self.manifest)

    # -- Route registration --

    def route(
        self,
        path: str,
        *,
        method: str = "GET",
    ) -> Callable[[Callback], Callback]:
        """Register a route handler via decorator.

        Args:
            path: Route path. Use ``[name]`` or ``:name`` for parameters
                and ``[...name]`` for the rest of the path.
            method: One of the routable methods, or ``"*"`` for all.
        """
        entry_method = _check_method(method)
        pattern = compile_pattern(path)

        def decorator(func: Callback) -> Callback:
            self._check_not_frozen()
            self._pending_routes.append(
                RouteEntry(entry_method, pattern, func, initialises_response=True)
            )
            return func

        return decorator

    def export(self, pathname: str, values: Mapping[str, Any]) -> None:
        """Attach explicit exports to a route file, by its pathname.

        ``app.export("/blog/[slug].md", {"renderers": ["markdown"]})``.
        These win over everything the file declares itself.
        """
        self._check_not_frozen()
        merged = dict(self._exports.get(pathname, {}))
        merged.update(values)
        self._exports[pathname] = merged

    # -- Middleware --

    def use_middleware(
        self,
        handler: Callback,
        pattern: RoutePattern | str | None = None,
        *,
        method: str = ANY,
    ) -> Callback:
        """Run *handler* after the route handler for matching requests.

        With no pattern the middleware applies to every request. Returns
        *handler*, so it also works as a decorator.
        """
        self._check_not_frozen()
        self._registry.use_middleware(
            Middleware(handler=handler, pattern=_as_pattern(pattern), method=_check_method(method))
        )
        return handler

    # -- Error handlers --

    def error(self, status: int) -> Callable[[Callback], Callback]:
        """Register an error page for *status* via decorator.

        The handler runs when a response is about to go out with that
        status; it should set the body and leave the status alone.
        """

        def decorator(func: Callback) -> Callback:
            self._check_not_frozen()
            self._pending_error_handlers.append(ErrorHandler(status=int(status), handler=func))
            return func

        return decorator

    # -- Capabilities --

    def use_renderer(self, renderer: Renderer) -> None:
        """Add a rendering engine. Engines chain in registration order."""
        self._check_not_frozen()
        self._registry.use_renderer(renderer)

    def use_processor(self, processor: Processor) -> None:
        """Add a static asset transform. Processors chain in registration order."""
        self._check_not_frozen()
        self._registry.use_processor(processor)

    def use_filter(
        self,
        name: str | None = None,
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Register a kida template filter."""

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self._check_not_frozen()
            self._kida_env.update_filters({name or func.__name__: func})
            return func

        return decorator

    # -- Lifecycle hooks --

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync startup hook via decorator.

        Hooks run in registration order during ASGI lifespan startup,
        after the manifest is indexed and before the first request.
        """
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync shutdown hook via decorator."""
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    # -- Serving --

    def run(self, host: str | None = None, port: int | None = None) -> None:
        """Index the manifest and serve with pounce until interrupted.

        Indexing happens before the server starts, so configuration
        errors surface immediately instead of on the first request.
        """
        anyio.run(self._ensure_frozen)

        from nadder.server.runner import run_server

        run_server(
            self,
            host or self.config.host,
            port or self.config.port,
            workers=self.config.workers,
            debug=self.config.debug,
            log_level=self.config.log_level,
            log_format=self.config.log_format,
            websocket_compression=self.config.websocket_compression,
            websocket_max_message_size=self.config.websocket_max_message_size,
        )

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point.

        Handles the lifespan scope directly, then delegates ``http`` and
        ``websocket`` scopes to the dispatcher.
        """
        if scope["type"] == "lifespan":
            await self._handle_lifespan(scope, receive, send)
            return

        await self._ensure_frozen()
        await handle_connection(
            scope,
            receive,
            send,
            registry=self._registry,
            channels=self._channels,
            max_content_length=self.config.max_content_length,
        )

    async def _handle_lifespan(
        self,
        scope: Scope,
        receive: Receive,
        send: Send,
    ) -> None:
        """Run the ASGI lifespan protocol.

        Indexes the manifest at startup, then runs startup/shutdown hooks
        and signals completion back to the server. A configuration error
        fails the startup.
        """
        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    await self._ensure_frozen()
                    await self.startup()
                    await send({"type": "lifespan.startup.complete"})
                except Exception as exc:
                    logger.exception("Startup failed")
                    await send(
                        {
                            "type": "lifespan.startup.failed",
                            "message": str(exc),
                        }
                    )
                    return

            elif msg_type == "lifespan.shutdown":
                await self.shutdown()
                await send({"type": "lifespan.shutdown.complete"})
                return

    async def startup(self) -> None:
        """Run startup hooks in registration order."""
        for hook in self._startup_hooks:
            await invoke(hook)

    async def shutdown(self) -> None:
        """Run shutdown hooks in registration order."""
        for hook in self._shutdown_hooks:
            await invoke(hook)

    # -- Internal --

    async def _ensure_frozen(self) -> None:
        """Freeze exactly once, however many connections race to do it."""
        if self._frozen:
            return
        async with self._freeze_lock:
            if self._frozen:
                return
            await self._freeze()
            self._frozen = True

    async def _freeze(self) -> None:
        """Index the manifest and lock the registry.

        MUST only be called while holding _freeze_lock. Indexing runs on a
        copy of the setup-time registry, published only once it succeeds,
        so a failed freeze can be retried from a clean slate.
        """
        registry = self._registry.copy()
        manifest = self.manifest

        # 1. Static assets take precedence over everything else
        assets = await index_static(manifest, registry)

        # 2. Programmatic routes, in decoration order
        for entry in self._pending_routes:
            registry.register_route(entry)

        # 3. The routes/ tree (pages, data, middleware, error pages)
        files = index_routes(manifest, registry)

        # 4. app.error() handlers override _<status> files
        for handler in self._pending_error_handlers:
            registry.use_error_handler(handler)

        registry.freeze()
        self._registry = registry
        logger.info(
            "App frozen: %d routes from %d route files and %d static assets (build %s)",
            len(registry.router),
            files,
            assets,
            self.config.build_id,
        )

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register routes, middleware, and renderers before calling app.run()."
            )
            raise RuntimeError(msg)


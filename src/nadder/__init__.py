"""Nadder: filesystem-routed server-rendered sites over ASGI.

A ``routes/`` directory becomes the route table: pages render through
pluggable engines, ``_data`` and ``_middleware`` files scope data and
callbacks to their directory, and ``_<status>`` files become error
pages. A ``static/`` directory is served with content ETags and
build-scoped cache busting. WebSocket upgrades join named broadcast
channels.

Basic usage::

    from nadder import App, AppConfig
    from nadder.renderers.markdown import markdown_renderer

    app = App(AppConfig(routes_dir="routes", static_dir="static"))
    app.use_renderer(markdown_renderer())
    app.run()
"""

__version__ = "0.1.0"
__all__ = [
    "App",
    "AppConfig",
    "ConfigurationError",
    "Context",
    "FrontMatterError",
    "HTTPError",
    "NadderError",
    "NotFound",
    "Processor",
    "Renderer",
    "StaticAsset",
    "get_context",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import nadder`` fast while providing a clean top-level API.
    """
    if name == "App":
        from nadder.app import App

        return App

    if name == "AppConfig":
        from nadder.config import AppConfig

        return AppConfig

    if name in ("Context", "get_context"):
        from nadder import context as _ctx

        return getattr(_ctx, name)

    if name in ("Processor", "Renderer", "StaticAsset"):
        from nadder.indexing import types as _types

        return getattr(_types, name)

    if name in (
        "ConfigurationError",
        "FrontMatterError",
        "HTTPError",
        "NadderError",
        "NotFound",
    ):
        from nadder import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)

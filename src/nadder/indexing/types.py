"""Records produced and consumed by the manifest indexer.

Capabilities (``Renderer``, ``Processor``) and registry entries are
frozen dataclasses built once at startup. ``RouteExports`` is the one
mutable record: it collects a route file's exports while the file is
being indexed and is discarded afterwards.
"""

import re
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from nadder._internal.types import Callback, RenderFunc
from nadder.routing.pattern import RoutePattern, compile_pattern
from nadder.routing.route import ANY, HTTP_METHODS

if TYPE_CHECKING:
    from nadder.config import AppConfig

# Export names that provide the page's render function
RENDER_EXPORTS = ("default", "handler")


def _matches_target(pathname: str, targets: tuple[str, ...]) -> bool:
    name = pathname.rsplit("/", 1)[-1]
    return any(name.endswith(target) for target in targets)


@dataclass(frozen=True, slots=True)
class Renderer:
    """A rendering engine plugged into the page pipeline.

    ``render(content, ctx)`` returns the transformed content; it may be
    sync or async. Engines are chained in registration order.

    Attributes:
        name: Identifier used by a page's ``renderers`` export.
        targets: File suffixes (``".md"``) the engine applies to.
    """

    name: str
    targets: tuple[str, ...]
    render: RenderFunc

    def applies_to(self, pathname: str) -> bool:
        return _matches_target(pathname, self.targets)


@dataclass(frozen=True, slots=True)
class StaticAsset:
    """A static file on its way into the route table."""

    pathname: str
    content: bytes
    content_type: str = "application/octet-stream"


@dataclass(frozen=True, slots=True)
class Processor:
    """A static asset transform (minifier, bundler, ...).

    ``transform(asset)`` returns a new ``StaticAsset``, sync or async.
    """

    name: str
    targets: tuple[str, ...]
    transform: Callable[[StaticAsset], StaticAsset | Awaitable[StaticAsset]]

    def applies_to(self, pathname: str) -> bool:
        return _matches_target(pathname, self.targets)


@dataclass(frozen=True, slots=True)
class Middleware:
    """A callback run after the primary handler.

    ``pattern=None`` means the middleware runs for every request.
    """

    handler: Callback
    pattern: RoutePattern | None = None
    method: str = ANY

    def applies(self, method: str, path: str) -> bool:
        if self.method not in (ANY, method):
            return False
        return self.pattern is None or self.pattern.test(path)


@dataclass(frozen=True, slots=True)
class DataScope:
    """Page data visible to every path *pattern* matches."""

    pattern: RoutePattern
    values: Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class ErrorHandler:
    """Callback run when the dispatcher is about to emit *status*."""

    status: int
    handler: Callback


@dataclass(frozen=True, slots=True)
class RouteFile:
    """A file found while walking a manifest directory.

    ``pathname`` is relative to the walked root, POSIX style, with a
    leading slash (``/blog/[slug].md``).
    """

    pathname: str
    path: Path
    content: bytes

    @property
    def extension(self) -> str:
        name = self.pathname.rsplit("/", 1)[-1]
        stem, dot, ext = name.rpartition(".")
        return f".{ext}" if dot and stem else ""


@dataclass(slots=True)
class RouteExports:
    """Everything a route file contributes, merged from its sources.

    Sources overlay in increasing precedence: the file body, structured
    file content, front-matter, then explicit module exports.
    """

    pattern: RoutePattern | None = None
    handlers: dict[str, Callback] = field(default_factory=dict)
    render: Callable[..., Any] | None = None
    renderers: tuple[str, ...] | None = None
    content_type: str | None = None
    method: str | None = None
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def is_page(self) -> bool:
        """Whether the exports describe something that renders on GET."""
        return "GET" in self.handlers or self.render is not None

    def overlay(self, values: Mapping[str, Any]) -> None:
        """Merge *values* field by field; later calls win."""
        for key, value in values.items():
            if key == "pattern":
                if not isinstance(value, RoutePattern):
                    value = compile_pattern(str(value))
                self.pattern = value
            elif key in HTTP_METHODS and callable(value):
                self.handlers[key] = value
            elif key in RENDER_EXPORTS and callable(value):
                self.render = value
            elif key == "renderers":
                self.renderers = (value,) if isinstance(value, str) else tuple(value)
            elif key in ("content_type", "contentType"):
                self.content_type = str(value)
            elif key == "method":
                self.method = str(value).upper()
            else:
                self.data[key] = value


@dataclass(frozen=True, slots=True)
class Manifest:
    """Where the indexer looks and how it treats what it finds.

    Attributes:
        routes_dir: Route-definition tree, or ``None`` to skip.
        static_dir: Static-asset tree, or ``None`` to skip.
        ignore_pattern: Regex searched against each file's pathname.
        exports: Explicit exports keyed by pathname; they take
            precedence over everything read from the file itself.
    """

    routes_dir: Path | None = None
    static_dir: Path | None = None
    ignore_pattern: re.Pattern[str] | None = None
    cache_param: str = "__nadder_cache_id"
    build_id: str = ""
    default_content_type: str = "text/html; charset=utf-8"
    exports: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)

    @classmethod
    def from_config(
        cls,
        config: "AppConfig",
        exports: Mapping[str, Mapping[str, Any]] | None = None,
    ) -> "Manifest":
        return cls(
            routes_dir=Path(config.routes_dir) if config.routes_dir else None,
            static_dir=Path(config.static_dir) if config.static_dir else None,
            ignore_pattern=config.compiled_ignore_pattern,
            cache_param=config.cache_param,
            build_id=config.build_id,
            default_content_type=config.default_content_type,
            exports=exports or {},
        )

    def ignores(self, pathname: str) -> bool:
        return self.ignore_pattern is not None and self.ignore_pattern.search(pathname) is not None

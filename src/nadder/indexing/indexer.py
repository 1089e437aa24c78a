"""Manifest indexer: compile ``routes/`` and ``static/`` into the registry.

Runs once while the app freezes. Every file under ``routes/`` has one
role, decided by its name:

    _data.*          page data for the directory and everything below it
    _middleware.*    a callback run after the handler for nested paths
    _404.*, _500.*   error page for that status (any 400-599)
    anything else    a page, plus any other method handlers it exports

Page content comes from several sources, merged with increasing
precedence: the file body, whole-file structured data (``.json``,
``.yaml``, ``.toml``), front-matter, then explicit exports (a ``.py``
module's public names, then ``Manifest.exports``).
"""

import logging
import re
from dataclasses import dataclass
from enum import StrEnum
from functools import partial
from http import HTTPStatus
from typing import Any

from nadder._internal.invoke import invoke
from nadder._internal.types import Callback
from nadder.context import Context
from nadder.errors import ConfigurationError
from nadder.http.response import guess_content_type
from nadder.indexing.discovery import load_module_exports, walk_directory
from nadder.indexing.frontmatter import (
    STRUCTURED_EXTENSIONS,
    extract_front_matter,
    parse_structured,
)
from nadder.indexing.registry import Registry
from nadder.indexing.static import static_handler
from nadder.indexing.types import (
    DataScope,
    ErrorHandler,
    Manifest,
    Middleware,
    Renderer,
    RouteExports,
    RouteFile,
    StaticAsset,
)
from nadder.routing.pattern import compile_pattern, literal_pattern
from nadder.routing.route import ANY, RouteEntry

logger = logging.getLogger("nadder.indexing")

_ERROR_FILE_RE = re.compile(r"/_(\d+)\.[^/]+$")
_DATA_FILE_RE = re.compile(r"/_data\.[^/]+$")
_MIDDLEWARE_FILE_RE = re.compile(r"/_middleware\.[^/]+$")


class FileRole(StrEnum):
    PAGE = "page"
    DATA = "data"
    MIDDLEWARE = "middleware"
    ERROR = "error"


def classify(pathname: str) -> tuple[FileRole, int | None]:
    """Role of a route file, plus the status for error pages."""
    if _DATA_FILE_RE.search(pathname):
        return FileRole.DATA, None
    if _MIDDLEWARE_FILE_RE.search(pathname):
        return FileRole.MIDDLEWARE, None
    m = _ERROR_FILE_RE.search(pathname)
    if m is not None and 400 <= int(m.group(1)) <= 599:
        return FileRole.ERROR, int(m.group(1))
    return FileRole.PAGE, None


@dataclass(slots=True)
class ParsedRoute:
    """A route file after its sources are merged.

    Attributes:
        explicit: The file had explicit exports (a ``.py`` module or a
            ``Manifest.exports`` entry).
        custom_pattern: The ``pattern`` came from the file's exports
            rather than its path.
    """

    exports: RouteExports
    body: str
    explicit: bool
    custom_pattern: bool


def read_exports(file: RouteFile, manifest: Manifest) -> ParsedRoute:
    """Merge everything *file* contributes."""
    exports = RouteExports()
    ext = file.extension
    body = ""
    explicit = False

    if ext == ".py":
        exports.overlay(load_module_exports(file))
        explicit = True
    else:
        try:
            body = file.content.decode("utf-8")
        except UnicodeDecodeError as exc:
            msg = f"Route file {file.pathname} is not valid UTF-8."
            raise ConfigurationError(msg) from exc
        fmt = STRUCTURED_EXTENSIONS.get(ext)
        if fmt is not None:
            exports.overlay(parse_structured(body, fmt, file.pathname))
        attrs, body = extract_front_matter(body, file.pathname)
        exports.overlay(attrs)

    override = manifest.exports.get(file.pathname)
    if override is not None:
        exports.overlay(override)
        explicit = True

    custom_pattern = exports.pattern is not None
    if exports.pattern is None:
        stem = file.pathname[: -len(ext)] if ext else file.pathname
        exports.pattern = compile_pattern(stem)
    return ParsedRoute(exports, body, explicit, custom_pattern)


def _resolve_engines(
    exports: RouteExports, pathname: str, registry: Registry
) -> list[Renderer]:
    if exports.renderers is None:
        return registry.renderers_for(pathname)
    engines = []
    for name in exports.renderers:
        engine = registry.renderer_by_name(name)
        if engine is None:
            msg = f"Route {pathname} asks for renderer {name!r}, which is not registered."
            raise ConfigurationError(msg)
        engines.append(engine)
    return engines


async def _render_page(
    render: Any, body: str, engines: list[Renderer], ctx: Context
) -> str:
    page = await invoke(render, ctx) if render is not None else body
    for engine in engines:
        page = await invoke(engine.render, page, ctx)
    return str(page)


def page_handler(
    exports: RouteExports,
    body: str,
    pathname: str,
    registry: Registry,
    default_content_type: str,
    *,
    status: int | None = None,
) -> Callback:
    """Build the handler that renders a page (or an error page).

    When the file also exports ``GET``, that handler is called with
    ``ctx.render()`` ready to use. Otherwise the rendered document is
    the body. Error pages pass *status* and keep it; pages answer 200.
    """
    engines = _resolve_engines(exports, pathname, registry)
    render = exports.render
    get = exports.handlers.get("GET")
    content_type = exports.content_type or default_content_type

    async def render_route(ctx: Context) -> None:
        ctx.set_renderer(partial(_render_page, render, body, engines, ctx))
        if get is not None:
            await invoke(get, ctx)
            return
        document = await ctx.render()
        ctx.res.status = status if status is not None else HTTPStatus.OK
        ctx.res.body = document
        if "content-type" not in ctx.res.headers:
            ctx.res.headers.set("content-type", content_type)

    render_route.__qualname__ = f"render_route[{pathname}]"
    return render_route


def index_routes(manifest: Manifest, registry: Registry) -> int:
    """Walk ``manifest.routes_dir`` and register what it describes.

    Pages with an explicit ``pattern`` are registered before pages whose
    pattern comes from the filesystem. Returns the number of files used.
    """
    root = manifest.routes_dir
    if root is None or not root.is_dir():
        logger.debug("No routes directory at %s, skipping", root)
        return 0

    explicit_routes: list[RouteEntry] = []
    derived_routes: list[RouteEntry] = []
    indexed = 0

    for file in walk_directory(root):
        role, status = classify(file.pathname)
        if role is FileRole.PAGE and manifest.ignores(file.pathname):
            logger.debug("Ignoring %s", file.pathname)
            continue

        parsed = read_exports(file, manifest)
        exports, body = parsed.exports, parsed.body
        pattern = exports.pattern
        assert pattern is not None
        indexed += 1
        logger.debug("Indexed %s as %s %s", file.pathname, role, pattern)

        match role:
            case FileRole.MIDDLEWARE:
                handler = exports.render
                if handler is None:
                    msg = (
                        f"Middleware {file.pathname} must export "
                        "a 'handler' or 'default' callable."
                    )
                    raise ConfigurationError(msg)
                registry.use_middleware(
                    Middleware(handler=handler, pattern=pattern, method=exports.method or ANY)
                )
            case FileRole.DATA:
                registry.use_data(DataScope(pattern=pattern, values=dict(exports.data)))
            case FileRole.ERROR:
                assert status is not None
                handler = page_handler(
                    exports,
                    body,
                    file.pathname,
                    registry,
                    manifest.default_content_type,
                    status=status,
                )
                registry.use_error_handler(ErrorHandler(status=status, handler=handler))
            case FileRole.PAGE:
                routes = explicit_routes if parsed.custom_pattern else derived_routes
                if exports.is_page or not parsed.explicit:
                    handler = page_handler(
                        exports, body, file.pathname, registry, manifest.default_content_type
                    )
                    routes.append(RouteEntry("GET", pattern, handler, initialises_response=True))
                for method, method_handler in exports.handlers.items():
                    if method == "GET":
                        continue
                    routes.append(
                        RouteEntry(method, pattern, method_handler, initialises_response=True)
                    )
                if exports.data:
                    registry.use_data(DataScope(pattern=pattern, values=dict(exports.data)))

    for entry in (*explicit_routes, *derived_routes):
        registry.register_route(entry)

    logger.info(
        "Indexed %d route files (%d routes, %d middleware)",
        indexed,
        len(explicit_routes) + len(derived_routes),
        len(registry.middleware),
    )
    return indexed


async def index_static(manifest: Manifest, registry: Registry) -> int:
    """Register a cached ``GET`` route for every asset in ``static/``.

    Processors run in registration order on assets whose names they
    target. The ignore pattern is checked against the processed name,
    so a processor can rename an asset out of (or into) the ignore set.
    Returns the number of assets served.
    """
    root = manifest.static_dir
    if root is None or not root.is_dir():
        logger.debug("No static directory at %s, skipping", root)
        return 0

    served = 0
    for file in walk_directory(root):
        asset = StaticAsset(
            pathname=file.pathname,
            content=file.content,
            content_type=guess_content_type(file.pathname) or "application/octet-stream",
        )
        for processor in registry.processors_for(asset.pathname):
            asset = await invoke(processor.transform, asset)
        if manifest.ignores(asset.pathname):
            logger.debug("Ignoring static asset %s", asset.pathname)
            continue
        registry.register_route(
            RouteEntry(
                "GET",
                literal_pattern(asset.pathname),
                static_handler(asset, manifest),
                initialises_response=True,
            )
        )
        served += 1
        logger.debug("Serving static asset %s (%s)", asset.pathname, asset.content_type)

    logger.info("Indexed %d static assets", served)
    return served

"""Error handling pipeline for nadder requests.

Converts exceptions raised by handlers and middleware into responses,
and runs the registered error page (``_404.md``, ``app.error(500)``)
for whatever status the response is about to go out with.
"""

import logging

from nadder._internal.invoke import invoke
from nadder.context import Context
from nadder.errors import HTTPError
from nadder.indexing.registry import Registry

logger = logging.getLogger("nadder.server")


def apply_http_error(ctx: Context, exc: HTTPError) -> None:
    """Replace the response with the status (and headers) of *exc*."""
    logger.debug("%d %s %s: %s", exc.status, ctx.req.method, ctx.req.path, exc.detail)
    ctx.res.reset(exc.status)
    for name, value in exc.headers:
        ctx.res.headers.append(name, value)


def apply_internal_error(ctx: Context) -> None:
    """Log the active exception and replace the response with a 500.

    Must be called from an ``except`` block.
    """
    logger.exception("[%s] %s %s failed", ctx.req.ip, ctx.req.method, ctx.req.path)
    ctx.res.reset(500)


async def run_error_handler(ctx: Context, registry: Registry) -> None:
    """Run the error page registered for the response's status, if any.

    Error handlers may be sync or async. One that raises is logged and
    the response falls back to the plain status body.
    """
    status = ctx.res.status
    entry = registry.error_handler(status)
    if entry is None:
        return
    try:
        await invoke(entry.handler, ctx)
    except Exception:
        logger.exception(
            "Error handler for %d failed on %s %s", status, ctx.req.method, ctx.req.path
        )
        ctx.res.reset(status)

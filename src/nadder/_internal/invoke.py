"""Invoke helpers: call sync or async callbacks uniformly.

Route handlers, middleware, renderers, processors and error handlers
can all be ``def`` or ``async def``. Any code that calls a user-provided
callback goes through this helper so the check lives in one place.

Usage::

    from nadder._internal.invoke import invoke

    result = await invoke(handler, ctx)
"""

import inspect
from typing import Any


async def invoke(callback: Any, *args: Any, **kwargs: Any) -> Any:
    """Call a callback and await the result if it's awaitable."""
    result = callback(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result

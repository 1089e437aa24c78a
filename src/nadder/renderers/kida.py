"""Kida template rendering engine.

Renders page content as a kida template. The template sees the page
data merged from ``_data`` files and page exports, plus:

    req       the request
    params    path parameters (``{{ params.slug }}``)
    asset     ``asset(path)`` returns a cache-busted static asset URL

Compiled templates are cached by source in a bounded LRU, so a static
page is parsed once per process while pages whose source changes per
request cannot grow the cache without limit.
"""

import threading
from collections import OrderedDict
from collections.abc import Callable
from typing import Any

from kida import Environment

from nadder.context import Context
from nadder.indexing.types import Renderer


class KidaRenderer:
    """Render strings through a kida ``Environment``.

    Thread safety:
        The compiled-template cache is guarded by a lock; rendering
        itself does not mutate shared state. At most *cache_size*
        compiled templates are kept, least recently used first out.
    """

    __slots__ = ("_asset_url", "_cache", "_lock", "cache_size", "env")

    def __init__(
        self,
        env: Environment,
        *,
        asset_url: Callable[[str], str] | None = None,
        cache_size: int = 256,
    ) -> None:
        self.env = env
        self._asset_url = asset_url
        self.cache_size = cache_size
        self._cache: OrderedDict[str, Any] = OrderedDict()
        self._lock = threading.Lock()

    def _compile(self, source: str) -> Any:
        with self._lock:
            template = self._cache.get(source)
            if template is not None:
                self._cache.move_to_end(source)
                return template
            template = self.env.from_string(source)
            self._cache[source] = template
            while len(self._cache) > self.cache_size:
                self._cache.popitem(last=False)
            return template

    def context_for(self, ctx: Context) -> dict[str, Any]:
        values: dict[str, Any] = dict(ctx.data)
        values["req"] = ctx.req
        values["params"] = ctx.req.path_params
        if self._asset_url is not None:
            values["asset"] = self._asset_url
        return values

    def __call__(self, content: Any, ctx: Context) -> str:
        return self._compile(str(content)).render(self.context_for(ctx))


def kida_renderer(
    env: Environment | None = None,
    *,
    name: str = "kida",
    targets: tuple[str, ...] = (".kida",),
    asset_url: Callable[[str], str] | None = None,
    cache_size: int = 256,
) -> Renderer:
    """Build a ``Renderer`` capability for kida template pages.

    Pass ``app.template_env`` so filters registered with
    ``app.use_filter`` are available, and ``app.asset_url`` to expose
    ``asset()`` in templates.
    """
    return Renderer(
        name=name,
        targets=targets,
        render=KidaRenderer(env or Environment(), asset_url=asset_url, cache_size=cache_size),
    )

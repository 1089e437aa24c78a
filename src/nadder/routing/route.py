"""RouteEntry and RouteMatch frozen dataclasses."""

from dataclasses import dataclass
from typing import Any

from nadder._internal.types import Callback
from nadder.routing.pattern import RoutePattern

# Methods the dispatcher will route; anything else is answered with 501
HTTP_METHODS: tuple[str, ...] = ("POST", "GET", "PUT", "PATCH", "DELETE")

# Registration-side wildcard: the entry matches every routable method
ANY = "*"


@dataclass(frozen=True, slots=True)
class RouteEntry:
    """A registered route.

    Created once while indexing, immutable thereafter.

    Attributes:
        method: One of ``HTTP_METHODS`` or ``ANY``.
        pattern: Compiled path matcher.
        handler: Callback receiving the request context.
        initialises_response: True when the handler builds the whole
            response itself (method exports, static assets) rather than
            decorating a page render.
    """

    method: str
    pattern: RoutePattern
    handler: Callback
    initialises_response: bool = False

    def accepts(self, method: str) -> bool:
        return self.method == ANY or self.method == method


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful route lookup."""

    entry: RouteEntry
    path_params: dict[str, str]

    @property
    def handler(self) -> Any:
        return self.entry.handler

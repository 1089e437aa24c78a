"""Routing: compiled path patterns and an ordered, first-match route table.

Routes are registered while the app is set up (programmatically or by
the manifest indexer) and the table is frozen before the first request.
"""

from nadder.routing.pattern import RoutePattern, compile_pattern, normalize_path
from nadder.routing.route import ANY, HTTP_METHODS, RouteEntry, RouteMatch
from nadder.routing.router import Router

__all__ = [
    "ANY",
    "HTTP_METHODS",
    "RouteEntry",
    "RouteMatch",
    "RoutePattern",
    "Router",
    "compile_pattern",
    "normalize_path",
]

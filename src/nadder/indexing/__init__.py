"""Manifest indexing: turn ``routes/`` and ``static/`` into a registry.

The app calls ``index_static`` then ``index_routes`` while it freezes,
so static assets take precedence over page routes with the same path.
"""

from nadder.indexing.indexer import index_routes, index_static, page_handler
from nadder.indexing.registry import Registry
from nadder.indexing.static import asset_url, etags_match, make_etag
from nadder.indexing.types import (
    DataScope,
    ErrorHandler,
    Manifest,
    Middleware,
    Processor,
    Renderer,
    StaticAsset,
)

__all__ = [
    "DataScope",
    "ErrorHandler",
    "Manifest",
    "Middleware",
    "Processor",
    "Registry",
    "Renderer",
    "StaticAsset",
    "asset_url",
    "etags_match",
    "index_routes",
    "index_static",
    "make_etag",
    "page_handler",
]

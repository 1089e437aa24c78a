"""Conditional caching for static assets.

Every asset gets a content-hash ETag and is meant to be linked with a
cache-busting query parameter carrying the build id::

    /style.css?__nadder_cache_id=3f9c0a1b2c4d

Requests are answered as follows:

1. A cache id from another build redirects to the bare URL, so clients
   holding stale links fetch the current file.
2. A cache id from this build gets a one-year ``immutable`` cache-control.
3. If ``if-none-match`` matches the ETag (weak comparison) the answer is
   ``304`` with no body, otherwise ``200`` with the content.
"""

import hashlib
from http import HTTPStatus

from nadder._internal.types import Callback
from nadder.context import Context
from nadder.indexing.types import Manifest, StaticAsset

IMMUTABLE_CACHE_CONTROL = "public, max-age=31536000, immutable"


def make_etag(content: bytes) -> str:
    """Strong ETag derived from the asset content."""
    return '"' + hashlib.sha256(content).hexdigest()[:32] + '"'


def _strip_weak(tag: str) -> str:
    tag = tag.strip()
    return tag[2:] if tag.startswith("W/") else tag


def etags_match(etag: str, if_none_match: str | None) -> bool:
    """Weak comparison of *etag* against an ``if-none-match`` header.

    The header may list several tags or be ``*``.
    """
    if not if_none_match:
        return False
    if if_none_match.strip() == "*":
        return True
    target = _strip_weak(etag)
    return any(_strip_weak(candidate) == target for candidate in if_none_match.split(","))


def asset_url(pathname: str, manifest: Manifest) -> str:
    """URL for *pathname* carrying the current build's cache id."""
    return f"{pathname}?{manifest.cache_param}={manifest.build_id}"


def static_handler(asset: StaticAsset, manifest: Manifest) -> Callback:
    """Build the ``GET`` handler serving *asset*."""
    etag = make_etag(asset.content)
    cache_param = manifest.cache_param
    build_id = manifest.build_id

    def serve_asset(ctx: Context) -> None:
        res = ctx.res
        cache_id = ctx.req.query.get(cache_param)
        if cache_id and cache_id != build_id:
            query = ctx.req.query.without(cache_param).to_string()
            location = f"{ctx.req.path}?{query}" if query else ctx.req.path
            res.redirect(location, HTTPStatus.TEMPORARY_REDIRECT)
            return

        res.headers.set("content-type", asset.content_type)
        res.headers.set("vary", "If-None-Match")
        res.headers.set("etag", etag)
        if cache_id:
            res.headers.set("cache-control", IMMUTABLE_CACHE_CONTROL)

        if etags_match(etag, ctx.req.headers.get("if-none-match")):
            res.status = HTTPStatus.NOT_MODIFIED
            res.body = b""
        else:
            res.status = HTTPStatus.OK
            res.body = asset.content

    serve_asset.__qualname__ = f"serve_asset[{asset.pathname}]"
    return serve_asset

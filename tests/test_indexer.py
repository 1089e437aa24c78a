"""Tests for nadder.indexing.indexer: turning a routes/ tree into a registry."""

import re
from pathlib import Path

import pytest

from nadder.context import Context
from nadder.errors import ConfigurationError
from nadder.http.request import Request
from nadder.http.response import ResponseState
from nadder.indexing.indexer import FileRole, classify, index_routes, page_handler, read_exports
from nadder.indexing.registry import Registry
from nadder.indexing.types import Manifest, Renderer, RouteExports, RouteFile
from nadder.realtime.channels import ChannelManager
from nadder.realtime.upgrade import Upgrade


def _context(path: str = "/", method: str = "GET") -> Context:
    scope = {"type": "http", "method": method, "path": path, "query_string": b"", "headers": []}
    req = Request.from_asgi(scope)
    res = ResponseState()
    return Context(req, res, Upgrade(req, res, ChannelManager()))


def _write(root: Path, pathname: str, content: str) -> None:
    target = root / pathname.lstrip("/")
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(content)


def _route_file(root: Path, pathname: str, content: str) -> RouteFile:
    _write(root, pathname, content)
    path = root / pathname.lstrip("/")
    return RouteFile(pathname=pathname, path=path, content=path.read_bytes())


@pytest.fixture
def site(tmp_path) -> Path:
    routes = tmp_path / "routes"
    _write(routes, "/index.md", "---\ntitle: Home\n---\n# Welcome")
    _write(routes, "/about.md", "About us")
    _write(routes, "/blog/[slug].md", "A post")
    _write(routes, "/blog/_data.yaml", "section: blog\n")
    _write(routes, "/docs/[...path].md", "Docs")
    _write(routes, "/_404.md", "Nothing here")
    _write(routes, "/_middleware.py", "def handler(ctx):\n    ctx.res.headers.set('x-mw', '1')\n")
    _write(routes, "/api.py", "async def POST(ctx):\n    ctx.res.send_json({'ok': True})\n")
    _write(routes, "/drafts/wip.md", "secret")
    return routes


class TestClassify:
    def test_roles(self) -> None:
        assert classify("/blog/_data.yaml") == (FileRole.DATA, None)
        assert classify("/_middleware.py") == (FileRole.MIDDLEWARE, None)
        assert classify("/_404.md") == (FileRole.ERROR, 404)
        assert classify("/admin/_500.kida") == (FileRole.ERROR, 500)
        assert classify("/blog/post.md") == (FileRole.PAGE, None)

    def test_out_of_range_status_is_a_page(self) -> None:
        assert classify("/_200.md") == (FileRole.PAGE, None)
        assert classify("/_42.md") == (FileRole.PAGE, None)


class TestReadExports:
    def test_front_matter_becomes_data(self, tmp_path) -> None:
        file = _route_file(tmp_path, "/post.md", "---\ntitle: Hi\nrenderers: markdown\n---\nbody")
        parsed = read_exports(file, Manifest())
        assert parsed.exports.data == {"title": "Hi"}
        assert parsed.exports.renderers == ("markdown",)
        assert parsed.body == "body"
        assert not parsed.explicit
        assert not parsed.custom_pattern
        assert parsed.exports.pattern.pathname == "/post"

    def test_structured_file(self, tmp_path) -> None:
        file = _route_file(tmp_path, "/feed.json", '{"title": "Feed", "limit": 10}')
        parsed = read_exports(file, Manifest())
        assert parsed.exports.data == {"title": "Feed", "limit": 10}
        assert parsed.exports.pattern.pathname == "/feed"

    def test_custom_pattern(self, tmp_path) -> None:
        file = _route_file(tmp_path, "/posts/show.md", "---\npattern: /p/:id\n---\n")
        parsed = read_exports(file, Manifest())
        assert parsed.custom_pattern
        assert parsed.exports.pattern.match("/p/7") == {"id": "7"}

    def test_manifest_exports_win(self, tmp_path) -> None:
        file = _route_file(tmp_path, "/page.md", "---\ntitle: From file\n---\n")
        manifest = Manifest(exports={"/page.md": {"title": "From app"}})
        parsed = read_exports(file, manifest)
        assert parsed.exports.data["title"] == "From app"
        assert parsed.explicit

    def test_python_module_is_explicit(self, tmp_path) -> None:
        file = _route_file(tmp_path, "/form.py", "def POST(ctx):\n    pass\n")
        parsed = read_exports(file, Manifest())
        assert parsed.explicit
        assert set(parsed.exports.handlers) == {"POST"}
        assert not parsed.exports.is_page

    def test_invalid_utf8(self, tmp_path) -> None:
        path = tmp_path / "bad.md"
        path.write_bytes(b"\xff\xfe\x00")
        file = RouteFile(pathname="/bad.md", path=path, content=path.read_bytes())
        with pytest.raises(ConfigurationError, match="UTF-8"):
            read_exports(file, Manifest())


class TestIndexRoutes:
    def test_route_table(self, site) -> None:
        registry = Registry()
        count = index_routes(Manifest(routes_dir=site), registry)

        table = [(e.method, e.pattern.pathname) for e in registry.router.routes]
        assert table == [
            ("GET", "/about"),
            ("POST", "/api"),
            ("GET", "/"),
            ("GET", "/blog/:slug"),
            ("GET", "/docs/:path*"),
            ("GET", "/drafts/wip"),
        ]
        assert count == 9

    def test_every_entry_initialises_response(self, site) -> None:
        registry = Registry()
        index_routes(Manifest(routes_dir=site), registry)
        assert all(entry.initialises_response for entry in registry.router.routes)

    def test_ignore_pattern_applies_to_pages(self, site) -> None:
        registry = Registry()
        manifest = Manifest(routes_dir=site, ignore_pattern=re.compile(r"^/drafts/|_404"))
        index_routes(manifest, registry)

        paths = [e.pattern.pathname for e in registry.router.routes]
        assert "/drafts/wip" not in paths
        # Error pages are not pages, so the ignore pattern leaves them alone
        assert registry.error_handler(404) is not None

    def test_data_inherits_down_the_tree(self, site) -> None:
        registry = Registry()
        index_routes(Manifest(routes_dir=site), registry)
        assert registry.data_for("/blog/hello") == {"section": "blog"}
        assert registry.data_for("/blog") == {"section": "blog"}
        assert registry.data_for("/about") == {}

    def test_page_data_scoped_to_page(self, site) -> None:
        registry = Registry()
        index_routes(Manifest(routes_dir=site), registry)
        assert registry.data_for("/") == {"title": "Home"}
        assert registry.data_for("/about") == {}

    def test_middleware_and_error_pages(self, site) -> None:
        registry = Registry()
        index_routes(Manifest(routes_dir=site), registry)
        assert len(registry.middleware_for("GET", "/anything/at/all")) == 1
        assert set(registry.error_handlers) == {404}

    def test_explicit_patterns_come_first(self, tmp_path) -> None:
        routes = tmp_path / "routes"
        _write(routes, "/[slug].md", "catch-all")
        _write(routes, "/z/special.md", "---\npattern: /special\n---\nspecial")

        registry = Registry()
        index_routes(Manifest(routes_dir=routes), registry)
        assert [e.pattern.pathname for e in registry.router.routes] == ["/special", "/:slug"]
        match = registry.router.resolve("GET", "/special")
        assert match is not None
        assert "special" in match.handler.__qualname__

    def test_explicit_exports_without_get(self, tmp_path) -> None:
        routes = tmp_path / "routes"
        _write(routes, "/submit.md", "form")
        manifest = Manifest(routes_dir=routes, exports={"/submit.md": {"POST": lambda ctx: None}})

        registry = Registry()
        index_routes(manifest, registry)
        assert [e.method for e in registry.router.routes] == ["POST"]

    def test_middleware_needs_a_handler(self, tmp_path) -> None:
        routes = tmp_path / "routes"
        _write(routes, "/_middleware.yaml", "name: nope\n")
        with pytest.raises(ConfigurationError, match="must export"):
            index_routes(Manifest(routes_dir=routes), Registry())

    def test_unknown_renderer(self, tmp_path) -> None:
        routes = tmp_path / "routes"
        _write(routes, "/page.md", "---\nrenderers: [missing]\n---\n")
        with pytest.raises(ConfigurationError, match="missing"):
            index_routes(Manifest(routes_dir=routes), Registry())

    def test_missing_directory(self, tmp_path) -> None:
        registry = Registry()
        assert index_routes(Manifest(routes_dir=tmp_path / "nope"), registry) == 0
        assert len(registry.router) == 0


class TestPageHandler:
    async def test_renders_through_engines(self) -> None:
        registry = Registry()
        registry.use_renderer(Renderer("upper", (".md",), lambda content, ctx: content.upper()))
        registry.use_renderer(Renderer("wrap", (".md",), lambda content, ctx: f"<p>{content}</p>"))
        registry.use_renderer(Renderer("other", (".kida",), lambda content, ctx: "never"))

        handler = page_handler(RouteExports(), "hello", "/page.md", registry, "text/html")
        ctx = _context("/page")
        await handler(ctx)

        assert ctx.res.status == 200
        assert ctx.res.body == "<p>HELLO</p>"
        assert ctx.res.headers["content-type"] == "text/html"

    async def test_named_renderers_override_targets(self) -> None:
        registry = Registry()
        registry.use_renderer(Renderer("upper", (".md",), lambda content, ctx: content.upper()))
        registry.use_renderer(Renderer("stars", (), lambda content, ctx: f"*{content}*"))

        exports = RouteExports(renderers=("stars",))
        handler = page_handler(exports, "hi", "/page.md", registry, "text/html")
        ctx = _context()
        await handler(ctx)
        assert ctx.res.body == "*hi*"

    async def test_render_export_feeds_engines(self) -> None:
        registry = Registry()
        registry.use_renderer(Renderer("upper", (".py",), lambda content, ctx: content.upper()))

        async def default(ctx):
            return f"path {ctx.req.path}"

        exports = RouteExports(render=default, content_type="text/plain")
        handler = page_handler(exports, "", "/page.py", registry, "text/html")
        ctx = _context("/page")
        await handler(ctx)
        assert ctx.res.body == "PATH /PAGE"
        assert ctx.res.headers["content-type"] == "text/plain"

    async def test_get_export_can_render(self) -> None:
        registry = Registry()

        async def get(ctx):
            ctx.res.status = 201
            ctx.res.body = "[" + await ctx.render() + "]"

        exports = RouteExports(handlers={"GET": get})
        handler = page_handler(exports, "body", "/page.md", registry, "text/html")
        ctx = _context()
        await handler(ctx)
        assert ctx.res.status == 201
        assert ctx.res.body == "[body]"
        assert "content-type" not in ctx.res.headers

    async def test_error_page_keeps_status(self) -> None:
        handler = page_handler(
            RouteExports(), "gone", "/_404.md", Registry(), "text/html", status=404
        )
        ctx = _context()
        ctx.res.send_status(404)
        await handler(ctx)
        assert ctx.res.status == 404
        assert ctx.res.body == "gone"

    async def test_existing_content_type_kept(self) -> None:
        handler = page_handler(RouteExports(), "x", "/p.md", Registry(), "text/html")
        ctx = _context()
        ctx.res.headers.set("content-type", "text/markdown")
        await handler(ctx)
        assert ctx.res.headers["content-type"] == "text/markdown"

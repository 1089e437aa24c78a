"""Tests for nadder.routing.pattern: compiling and matching route paths."""

import pytest

from nadder.errors import ConfigurationError
from nadder.routing.pattern import (
    Segment,
    SegmentKind,
    compile_pattern,
    literal_pattern,
    normalize_path,
    parse_segment,
)


class TestNormalizePath:
    def test_trailing_slash_removed(self) -> None:
        assert normalize_path("/a/") == "/a"

    def test_repeated_slashes_collapse(self) -> None:
        assert normalize_path("//a///b") == "/a/b"

    def test_leading_slash_added(self) -> None:
        assert normalize_path("a/b") == "/a/b"

    def test_root_stays_root(self) -> None:
        assert normalize_path("/") == "/"
        assert normalize_path("") == "/"
        assert normalize_path("///") == "/"


class TestParseSegment:
    @pytest.mark.parametrize(
        ("part", "expected"),
        [
            ("blog", Segment(SegmentKind.LITERAL, "blog")),
            ("[slug]", Segment(SegmentKind.PARAM, "slug")),
            ("[...path]", Segment(SegmentKind.REPEATED, "path")),
            (":id", Segment(SegmentKind.PARAM, "id")),
            (":rest*", Segment(SegmentKind.REPEATED, "rest")),
            ("*", Segment(SegmentKind.WILDCARD)),
        ],
    )
    def test_classifies(self, part: str, expected: Segment) -> None:
        assert parse_segment(part) == expected


class TestCompilePattern:
    def test_literal(self) -> None:
        pattern = compile_pattern("/about")
        assert pattern.match("/about") == {}
        assert pattern.match("/about/team") is None

    def test_root(self) -> None:
        pattern = compile_pattern("/")
        assert pattern.test("/")
        assert not pattern.test("/a")

    def test_named_param(self) -> None:
        pattern = compile_pattern("/blog/[slug]")
        assert pattern.match("/blog/hello") == {"slug": "hello"}
        assert pattern.match("/blog") is None
        assert pattern.match("/blog/a/b") is None

    def test_colon_param(self) -> None:
        pattern = compile_pattern("/users/:id")
        assert pattern.match("/users/42") == {"id": "42"}

    def test_repeated_param_captures_rest(self) -> None:
        pattern = compile_pattern("/docs/[...path]")
        assert pattern.match("/docs/guide/install") == {"path": "guide/install"}

    def test_repeated_param_may_be_empty(self) -> None:
        pattern = compile_pattern("/docs/[...path]")
        assert pattern.match("/docs") == {"path": ""}

    def test_index_is_elided(self) -> None:
        assert compile_pattern("/a/index").pathname == "/a"
        assert compile_pattern("/index").pathname == "/"

    def test_nested_index_with_param(self) -> None:
        pattern = compile_pattern("/blog/[slug]/index")
        assert pattern.pathname == "/blog/:slug"
        assert pattern.match("/blog/first-post") == {"slug": "first-post"}

    def test_index_only_elided_at_end(self) -> None:
        pattern = compile_pattern("/index/about")
        assert pattern.test("/index/about")

    @pytest.mark.parametrize("marker", ["_middleware", "_data"])
    def test_scope_markers_become_wildcards(self, marker: str) -> None:
        pattern = compile_pattern(f"/admin/{marker}")
        assert pattern.pathname == "/admin/*"
        assert pattern.test("/admin")
        assert pattern.test("/admin/users/1")
        assert not pattern.test("/administrator")

    def test_root_scope_marker_matches_everything(self) -> None:
        pattern = compile_pattern("/_data")
        assert pattern.test("/")
        assert pattern.test("/any/path/at/all")

    def test_trailing_slash_equivalence(self) -> None:
        pattern = compile_pattern("/blog/[slug]/")
        assert pattern.match("/blog/x/") == pattern.match("/blog/x") == {"slug": "x"}

    def test_repeated_not_last_raises(self) -> None:
        with pytest.raises(ConfigurationError, match="final segment"):
            compile_pattern("/docs/[...path]/edit")

    def test_wildcard_not_last_raises(self) -> None:
        with pytest.raises(ConfigurationError):
            compile_pattern("/a/*/b")

    def test_unnamed_param_raises(self) -> None:
        with pytest.raises(ConfigurationError, match="no name"):
            compile_pattern("/a/[]")

    def test_literal_segments_are_escaped(self) -> None:
        pattern = compile_pattern("/file.txt")
        assert pattern.test("/file.txt")
        assert not pattern.test("/fileXtxt")

    def test_pathname_round_trip(self) -> None:
        pattern = compile_pattern("/docs/[section]/[...rest]")
        assert pattern.pathname == "/docs/:section/:rest*"
        assert str(pattern) == pattern.pathname


class TestLiteralPattern:
    def test_brackets_are_literal(self) -> None:
        pattern = literal_pattern("/[id].txt")
        assert pattern.test("/[id].txt")
        assert not pattern.test("/42.txt")

    def test_index_is_kept(self) -> None:
        assert literal_pattern("/docs/index").test("/docs/index")

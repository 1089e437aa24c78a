"""Tests for nadder.indexing.frontmatter: fenced blocks and whole-file data."""

import pytest

from nadder.errors import FrontMatterError
from nadder.indexing.frontmatter import extract_front_matter, parse_structured


class TestExtractFrontMatter:
    def test_yaml_block(self) -> None:
        text = "---\ntitle: Hello\ntags: [a, b]\n---\n# Body\n"
        attrs, body = extract_front_matter(text, "/p.md")
        assert attrs == {"title": "Hello", "tags": ["a", "b"]}
        assert body == "# Body\n"

    def test_explicit_yaml_fence(self) -> None:
        attrs, _ = extract_front_matter("---yaml\ntitle: Hi\n---\n", "/p.md")
        assert attrs == {"title": "Hi"}

    def test_toml_dash_fence(self) -> None:
        attrs, body = extract_front_matter('---toml\ntitle = "Hi"\n---\nbody', "/p.md")
        assert attrs == {"title": "Hi"}
        assert body == "body"

    def test_toml_plus_fence(self) -> None:
        attrs, body = extract_front_matter('+++\ntitle = "Hi"\ncount = 3\n+++\nbody', "/p.md")
        assert attrs == {"title": "Hi", "count": 3}
        assert body == "body"

    def test_json_fence(self) -> None:
        attrs, body = extract_front_matter('---json\n{"title": "Hi"}\n---\nbody', "/p.md")
        assert attrs == {"title": "Hi"}
        assert body == "body"

    def test_windows_line_endings(self) -> None:
        attrs, body = extract_front_matter("---\r\ntitle: Hi\r\n---\r\nbody", "/p.md")
        assert attrs == {"title": "Hi"}
        assert body == "body"

    def test_byte_order_mark(self) -> None:
        attrs, body = extract_front_matter("\ufeff---\ntitle: Hi\n---\nbody", "/p.md")
        assert attrs == {"title": "Hi"}
        assert body == "body"

    def test_empty_block(self) -> None:
        attrs, body = extract_front_matter("---\n---\nbody", "/p.md")
        assert attrs == {}
        assert body == "body"

    def test_no_front_matter(self) -> None:
        text = "# Just markdown\n\n---\n\nwith a rule"
        assert extract_front_matter(text, "/p.md") == ({}, text)

    def test_not_at_start(self) -> None:
        text = "intro\n---\ntitle: x\n---\n"
        assert extract_front_matter(text, "/p.md") == ({}, text)

    def test_malformed_yaml(self) -> None:
        with pytest.raises(FrontMatterError) as exc_info:
            extract_front_matter("---\ntitle: [unclosed\n---\nbody", "/broken.md")
        assert exc_info.value.pathname == "/broken.md"

    def test_non_mapping(self) -> None:
        with pytest.raises(FrontMatterError, match="expected a mapping"):
            extract_front_matter("---\n- a\n- b\n---\n", "/list.md")


class TestParseStructured:
    def test_json(self) -> None:
        assert parse_structured('{"a": 1}', "json", "/a.json") == {"a": 1}

    def test_empty_json(self) -> None:
        assert parse_structured("  ", "json", "/a.json") == {}

    def test_yaml(self) -> None:
        assert parse_structured("a: 1\nb: two\n", "yaml", "/a.yaml") == {"a": 1, "b": "two"}

    def test_toml(self) -> None:
        parsed = parse_structured("[site]\nname = 'x'\n", "toml", "/a.toml")
        assert parsed == {"site": {"name": "x"}}

    def test_bad_json(self) -> None:
        with pytest.raises(FrontMatterError):
            parse_structured("{", "json", "/a.json")

    def test_bad_toml(self) -> None:
        with pytest.raises(FrontMatterError):
            parse_structured("= nope", "toml", "/a.toml")

    def test_json_array_rejected(self) -> None:
        with pytest.raises(FrontMatterError):
            parse_structured("[1, 2]", "json", "/a.json")

"""Structured data in route files: whole-file formats and front-matter.

Front-matter is a fenced block at the very top of a content file::

    ---                 ---toml             +++               ---json
    title: Hello        title = "Hello"     title = "Hi"      {"title": "Hi"}
    ---                 ---                 +++               ---

A bare ``---`` fence (or ``---yaml``) is YAML and ``+++`` is TOML.
Files with a ``.json``, ``.yaml``/``.yml`` or ``.toml`` extension are
parsed whole. Either way the result must be a mapping.
"""

import json
import re
import tomllib
from typing import Any

import yaml

from nadder.errors import FrontMatterError

STRUCTURED_EXTENSIONS: dict[str, str] = {
    ".json": "json",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".toml": "toml",
}

_FRONT_MATTER_RE = re.compile(
    r"\A\ufeff?(?:"
    r"---(?P<dash_fmt>yaml|toml|json)?[ \t]*\r?\n(?P<dash_body>.*?)(?:\r?\n)?^---[ \t]*\r?$"
    r"|"
    r"\+\+\+[ \t]*\r?\n(?P<plus_body>.*?)(?:\r?\n)?^\+\+\+[ \t]*\r?$"
    r")(?:\r?\n)?",
    re.DOTALL | re.MULTILINE,
)


def parse_structured(text: str, fmt: str, pathname: str) -> dict[str, Any]:
    """Parse *text* as ``json``, ``yaml`` or ``toml`` into a mapping.

    Raises ``FrontMatterError`` on syntax errors or a non-mapping result.
    """
    try:
        if fmt == "json":
            value = json.loads(text) if text.strip() else {}
        elif fmt == "toml":
            value = tomllib.loads(text)
        else:
            value = yaml.safe_load(text)
    except (ValueError, yaml.YAMLError) as exc:
        raise FrontMatterError(pathname, str(exc)) from exc
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise FrontMatterError(pathname, f"expected a mapping, got {type(value).__name__}")
    return value


def extract_front_matter(text: str, pathname: str) -> tuple[dict[str, Any], str]:
    """Split *text* into ``(attributes, body)``.

    Text without front-matter comes back unchanged with empty attributes.
    """
    match = _FRONT_MATTER_RE.match(text)
    if match is None:
        return {}, text
    if match.group("plus_body") is not None:
        attrs = parse_structured(match.group("plus_body"), "toml", pathname)
    else:
        fmt = match.group("dash_fmt") or "yaml"
        attrs = parse_structured(match.group("dash_body"), fmt, pathname)
    return attrs, text[match.end() :]

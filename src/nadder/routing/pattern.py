"""Route pattern compiler.

Turns a route path into a ``RoutePattern``: an ordered tuple of segment
matchers plus a compiled regex that tests paths and extracts parameters.

Accepted segment syntax::

    /blog/posts          literal segments
    /blog/[slug]         named parameter, one segment
    /docs/[...path]      repeated parameter, rest of the path (may be empty)
    /blog/:slug          named parameter (explicit override patterns)
    /docs/:path*         repeated parameter (explicit override patterns)
    /admin/*             wildcard, the path itself and everything below it

Filesystem conventions are applied here too: a final ``index`` segment
collapses to its parent, and a final ``_middleware`` or ``_data`` segment
becomes a wildcard scoped to its directory.
"""

import re
from dataclasses import dataclass, field
from enum import StrEnum

from nadder.errors import ConfigurationError

_SCOPE_MARKERS = frozenset({"_middleware", "_data"})
_SLASHES_RE = re.compile(r"/+")


class SegmentKind(StrEnum):
    LITERAL = "literal"
    PARAM = "param"
    REPEATED = "repeated"
    WILDCARD = "wildcard"


@dataclass(frozen=True, slots=True)
class Segment:
    """One parsed path segment.

    ``value`` is the literal text for literals and the parameter name
    for parameters. Wildcards have an empty value.
    """

    kind: SegmentKind
    value: str = ""

    def __str__(self) -> str:
        match self.kind:
            case SegmentKind.PARAM:
                return f":{self.value}"
            case SegmentKind.REPEATED:
                return f":{self.value}*"
            case SegmentKind.WILDCARD:
                return "*"
        return self.value


@dataclass(frozen=True, slots=True)
class RoutePattern:
    """A compiled path matcher.

    Attributes:
        source: The path the pattern was compiled from.
        segments: Parsed segments after filesystem conventions apply.
        regex: Anchored regex over normalized paths.
        groups: Regex group name -> parameter name.
    """

    source: str
    segments: tuple[Segment, ...]
    regex: re.Pattern[str] = field(repr=False, compare=False)
    groups: tuple[tuple[str, str], ...] = field(repr=False, compare=False)

    @property
    def pathname(self) -> str:
        """Canonical form, e.g. ``/blog/:slug`` or ``/docs/:path*``."""
        return "/" + "/".join(str(segment) for segment in self.segments)

    def match(self, path: str) -> dict[str, str] | None:
        """Return extracted parameters if *path* matches, else ``None``."""
        m = self.regex.match(normalize_path(path))
        if m is None:
            return None
        return {name: m.group(group) or "" for group, name in self.groups}

    def test(self, path: str) -> bool:
        """Whether *path* matches, without extracting parameters."""
        return self.regex.match(normalize_path(path)) is not None

    def __str__(self) -> str:
        return self.pathname


def normalize_path(path: str) -> str:
    """Collapse repeated slashes, ensure a leading one, drop trailing ones.

    ``"/a/"``, ``"a"`` and ``"//a"`` all normalize to ``"/a"``; the root
    stays ``"/"``.
    """
    path = _SLASHES_RE.sub("/", "/" + path)
    if len(path) > 1:
        path = path.rstrip("/")
    return path or "/"


def parse_segment(part: str) -> Segment:
    """Classify a single non-empty path segment."""
    if part.startswith("[...") and part.endswith("]"):
        return Segment(SegmentKind.REPEATED, part[4:-1])
    if part.startswith("[") and part.endswith("]"):
        return Segment(SegmentKind.PARAM, part[1:-1])
    if part.startswith(":") and part.endswith("*"):
        return Segment(SegmentKind.REPEATED, part[1:-1])
    if part.startswith(":"):
        return Segment(SegmentKind.PARAM, part[1:])
    if part == "*":
        return Segment(SegmentKind.WILDCARD)
    return Segment(SegmentKind.LITERAL, part)


def compile_pattern(path: str) -> RoutePattern:
    """Compile a route path into a ``RoutePattern``.

    Raises ``ConfigurationError`` when a repeated parameter or wildcard
    is not the final segment, or a parameter has no name.
    """
    segments = [parse_segment(part) for part in path.split("/") if part]

    if segments and segments[-1] == Segment(SegmentKind.LITERAL, "index"):
        segments.pop()
    last = segments[-1] if segments else None
    if last is not None and last.kind is SegmentKind.LITERAL and last.value in _SCOPE_MARKERS:
        segments[-1] = Segment(SegmentKind.WILDCARD)

    regex_parts: list[str] = []
    groups: list[tuple[str, str]] = []
    for index, segment in enumerate(segments):
        is_last = index == len(segments) - 1
        if segment.kind in (SegmentKind.REPEATED, SegmentKind.WILDCARD) and not is_last:
            msg = (
                f"Route {path!r}: {segment} must be the final segment. "
                "Catch-all parameters consume the rest of the path."
            )
            raise ConfigurationError(msg)
        if segment.kind in (SegmentKind.PARAM, SegmentKind.REPEATED) and not segment.value:
            msg = f"Route {path!r}: parameter segment has no name."
            raise ConfigurationError(msg)

        match segment.kind:
            case SegmentKind.LITERAL:
                regex_parts.append("/" + re.escape(segment.value))
            case SegmentKind.PARAM:
                group = f"p{len(groups)}"
                groups.append((group, segment.value))
                regex_parts.append(f"/(?P<{group}>[^/]+)")
            case SegmentKind.REPEATED:
                group = f"p{len(groups)}"
                groups.append((group, segment.value))
                regex_parts.append(f"(?:/(?P<{group}>.+))?")
            case SegmentKind.WILDCARD:
                regex_parts.append("(?:/.*)?")

    regex = re.compile("^" + "".join(regex_parts) + "/?$")
    return RoutePattern(
        source=path,
        segments=tuple(segments),
        regex=regex,
        groups=tuple(groups),
    )


def literal_pattern(path: str) -> RoutePattern:
    """Compile *path* with every segment taken literally.

    Static asset paths go through here so file names like ``[id].txt``
    or ``index`` are served as-is.
    """
    segments = tuple(Segment(SegmentKind.LITERAL, part) for part in path.split("/") if part)
    regex = re.compile("^" + "".join("/" + re.escape(s.value) for s in segments) + "/?$")
    return RoutePattern(source=path, segments=segments, regex=regex, groups=())

"""Nadder exception hierarchy.

Shared across the indexer, router, dispatcher, and response helpers so
every module raises and catches the same types.
"""

from dataclasses import dataclass


class NadderError(Exception):
    """Base for all nadder-specific errors."""


class ConfigurationError(NadderError):
    """Raised when the app or its route tree is invalid.

    Surfaced while indexing in ``App._freeze()``, which aborts startup.
    """


class FrontMatterError(ConfigurationError):
    """Raised when a route file's structured data cannot be parsed."""

    def __init__(self, pathname: str, reason: str) -> None:
        super().__init__(f"Malformed structured data in {pathname}: {reason}")
        self.pathname = pathname
        self.reason = reason


@dataclass(frozen=True, slots=True)
class HTTPError(NadderError):
    """An error that maps directly to an HTTP status code.

    Handlers may raise these; the dispatcher converts them into a
    response with the given status instead of a 500.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818
    """404: no route matched the request path."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class NotImplementedMethod(HTTPError):  # noqa: N818
    """501: the request method is outside the supported set."""

    def __init__(self, method: str) -> None:
        super().__init__(status=501, detail=f"Method {method} is not implemented")


class PayloadTooLarge(HTTPError):  # noqa: N818
    """413: the request body exceeds ``max_content_length``."""

    def __init__(self, limit: int) -> None:
        super().__init__(status=413, detail=f"Request body exceeds {limit} bytes")


class AssetReadError(NadderError):
    """A file could not be read from disk.

    Response helpers convert this into a 404 rather than propagating it.
    """


class ResponseSentError(NadderError):
    """Raised when a finalized response is mutated."""

"""Application configuration.

AppConfig is a frozen dataclass: immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

import re
import uuid
from dataclasses import dataclass, field
from pathlib import Path


def _new_build_id() -> str:
    return uuid.uuid4().hex[:12]


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(debug=True, port=3000, routes_dir="site/routes")
    """

    # Server
    host: str = "127.0.0.1"
    port: int = 3000
    debug: bool = False
    workers: int = 0  # 0 = auto-detect from CPU count

    # Logging (forwarded to the pounce server)
    log_level: str = "info"
    log_format: str = "text"

    # Manifest
    routes_dir: str | Path | None = "routes"
    static_dir: str | Path | None = "static"
    ignore_pattern: re.Pattern[str] | str | None = None

    # Static asset caching
    cache_param: str = "__nadder_cache_id"
    build_id: str = field(default_factory=_new_build_id)

    # Responses
    default_content_type: str = "text/html; charset=utf-8"

    # Limits
    max_content_length: int = 16 * 1024 * 1024  # 16 MB

    # Sessions
    secret_key: str = ""
    session_cookie: str = "nadder_session"
    session_max_age: int = 86400

    # WebSocket
    websocket_compression: bool = True
    websocket_max_message_size: int = 10_485_760  # 10 MB

    @property
    def compiled_ignore_pattern(self) -> re.Pattern[str] | None:
        """The ignore pattern as a compiled regex, or ``None``."""
        if self.ignore_pattern is None or isinstance(self.ignore_pattern, re.Pattern):
            return self.ignore_pattern
        return re.compile(self.ignore_pattern)

"""Session stores."""

import copy
import threading
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Session(Protocol):
    """Storage contract for session data.

    Methods may be sync or async; ``SessionManager`` awaits results
    when needed.
    """

    def get(self, session_id: str) -> Any: ...

    def set(self, session_id: str, data: dict[str, Any]) -> Any: ...

    def destroy(self, session_id: str) -> Any: ...


class MemorySession:
    """In-process session store.

    Data is deep-copied on the way in and out, so handlers can mutate
    what they loaded without touching the stored copy until they save.
    Lost on restart and not shared between worker processes.

    Thread safety:
        All access goes through ``_lock``.
    """

    __slots__ = ("_data", "_lock")

    def __init__(self) -> None:
        self._data: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def get(self, session_id: str) -> dict[str, Any] | None:
        with self._lock:
            data = self._data.get(session_id)
            return copy.deepcopy(data) if data is not None else None

    def set(self, session_id: str, data: dict[str, Any]) -> None:
        with self._lock:
            self._data[session_id] = copy.deepcopy(data)

    def destroy(self, session_id: str) -> None:
        with self._lock:
            self._data.pop(session_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._data

"""Case-insensitive HTTP headers.

``Headers`` is the immutable request side: it stores raw byte pairs from
the ASGI scope and decodes on access. ``MutableHeaders`` is the response
side, edited by handlers until the response is finalized.
"""

from collections.abc import Callable, Iterator, Mapping


class Headers(Mapping[str, str]):
    """Immutable, case-insensitive HTTP headers.

    ``__getitem__`` returns the first matching value.
    ``get_list`` returns all values for a header (e.g. multiple ``Cookie``).
    """

    __slots__ = ("_raw",)

    def __init__(self, raw: tuple[tuple[bytes, bytes], ...] = ()) -> None:
        object.__setattr__(self, "_raw", raw)

    def __getitem__(self, key: str) -> str:
        key_lower = key.lower().encode("latin-1")
        for name, value in self._raw:
            if name.lower() == key_lower:
                return value.decode("latin-1")
        raise KeyError(key)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        key_lower = key.lower().encode("latin-1")
        return any(name.lower() == key_lower for name, _ in self._raw)

    def __iter__(self) -> Iterator[str]:
        seen: set[str] = set()
        for name, _ in self._raw:
            key = name.decode("latin-1").lower()
            if key not in seen:
                seen.add(key)
                yield key

    def __len__(self) -> int:
        return len(set(self))

    def __repr__(self) -> str:
        items = ", ".join(f"{k!r}: {self[k]!r}" for k in self)
        return f"Headers({{{items}}})"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        """Return the first value for *key*, or *default* if missing."""
        try:
            return self[key]
        except KeyError:
            return default

    def get_list(self, key: str) -> list[str]:
        """Return all values for *key*."""
        key_lower = key.lower().encode("latin-1")
        return [value.decode("latin-1") for name, value in self._raw if name.lower() == key_lower]

    @property
    def raw(self) -> tuple[tuple[bytes, bytes], ...]:
        """Access raw header byte pairs for ASGI compatibility."""
        return self._raw


class MutableHeaders:
    """Ordered, case-insensitive response headers.

    ``set`` replaces every value for a name, ``append`` adds another
    (used for ``set-cookie``). Names are stored lowercased.

    An optional *guard* is called before every mutation; the response
    facet uses it to reject edits once the response has been sent.
    """

    __slots__ = ("_guard", "_items")

    def __init__(
        self,
        items: Mapping[str, str] | None = None,
        *,
        guard: Callable[[], None] | None = None,
    ) -> None:
        self._items: list[tuple[str, str]] = [
            (name.lower(), value) for name, value in (items or {}).items()
        ]
        self._guard = guard

    def _check(self) -> None:
        if self._guard is not None:
            self._guard()

    @staticmethod
    def _validate(name: str, value: str) -> None:
        try:
            name.encode("ascii")
            value.encode("latin-1")
        except UnicodeEncodeError as exc:
            msg = f"Header {name!r} must be latin-1 encodable; percent-encode non-ASCII values."
            raise ValueError(msg) from exc
        if "\r" in value or "\n" in value:
            msg = f"Header {name!r} must not contain line breaks."
            raise ValueError(msg)

    def set(self, name: str, value: str) -> None:
        self._check()
        self._validate(name, value)
        key = name.lower()
        self._items = [(n, v) for n, v in self._items if n != key]
        self._items.append((key, value))

    def append(self, name: str, value: str) -> None:
        self._check()
        self._validate(name, value)
        self._items.append((name.lower(), value))

    def delete(self, name: str) -> None:
        self._check()
        key = name.lower()
        self._items = [(n, v) for n, v in self._items if n != key]

    def clear(self) -> None:
        self._check()
        self._items = []

    def get(self, name: str, default: str | None = None) -> str | None:
        key = name.lower()
        for n, v in reversed(self._items):
            if n == key:
                return v
        return default

    def get_list(self, name: str) -> list[str]:
        key = name.lower()
        return [v for n, v in self._items if n == key]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and any(n == name.lower() for n, _ in self._items)

    def __getitem__(self, name: str) -> str:
        value = self.get(name)
        if value is None:
            raise KeyError(name)
        return value

    def __setitem__(self, name: str, value: str) -> None:
        self.set(name, value)

    def __delitem__(self, name: str) -> None:
        self.delete(name)

    def __iter__(self) -> Iterator[str]:
        seen: set[str] = set()
        for name, _ in self._items:
            if name not in seen:
                seen.add(name)
                yield name

    def __len__(self) -> int:
        return len(set(self))

    def __repr__(self) -> str:
        return f"MutableHeaders({self._items!r})"

    def items(self) -> list[tuple[str, str]]:
        """All header pairs in insertion order, duplicates included."""
        return list(self._items)

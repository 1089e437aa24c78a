"""Ordered route registry with first-match lookup.

There is no specificity ranking: the first entry, in registration
order, whose method and pattern both match wins. Whoever registers
routes is responsible for putting specific routes before catch-alls.
"""

from nadder.routing.pattern import normalize_path
from nadder.routing.route import ANY, HTTP_METHODS, RouteEntry, RouteMatch


class Router:
    """Ordered collection of ``RouteEntry`` objects.

    Usage::

        router = Router()
        router.register(RouteEntry("GET", compile_pattern("/users/[id]"), handler))
        router.freeze()
        match = router.resolve("GET", "/users/42/")
        match.path_params  # {"id": "42"}
    """

    __slots__ = ("_entries", "_frozen")

    def __init__(self) -> None:
        self._entries: list[RouteEntry] = []
        self._frozen = False

    def register(self, entry: RouteEntry) -> None:
        """Append *entry*. Must be called before ``freeze()``."""
        if self._frozen:
            msg = "Cannot register routes after the router is frozen."
            raise RuntimeError(msg)
        if entry.method != ANY and entry.method not in HTTP_METHODS:
            msg = (
                f"Unsupported route method {entry.method!r}; "
                f"expected one of {HTTP_METHODS} or '*'."
            )
            raise ValueError(msg)
        self._entries.append(entry)

    def freeze(self) -> None:
        """Stop accepting registrations; lookups are lock-free from here on."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def routes(self) -> tuple[RouteEntry, ...]:
        """All registered entries in registration order."""
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def resolve(self, method: str, path: str) -> RouteMatch | None:
        """Return the first entry accepting *method* whose pattern matches *path*.

        Returns ``None`` when nothing matches.
        """
        path = normalize_path(path)
        for entry in self._entries:
            if not entry.accepts(method):
                continue
            params = entry.pattern.match(path)
            if params is not None:
                return RouteMatch(entry=entry, path_params=params)
        return None

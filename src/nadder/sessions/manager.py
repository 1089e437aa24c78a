"""Signed session-id cookies in front of a ``Session`` store."""

import secrets
from typing import TYPE_CHECKING, Any

from itsdangerous import BadSignature, URLSafeTimedSerializer

from nadder._internal.invoke import invoke
from nadder.context import Context
from nadder.errors import ConfigurationError
from nadder.sessions.store import Session

if TYPE_CHECKING:
    from nadder.config import AppConfig

# ctx.state key holding the verified session id for the request
SESSION_ID_KEY = "session_id"


class SessionManager:
    """Load, save, and destroy sessions for a request context.

    Args:
        store: Where session data lives.
        secret_key: Signing key for the cookie. Must not be empty.
        cookie_name: Name of the session cookie.
        max_age: Seconds before a signed id expires; also the cookie's
            ``Max-Age``.
    """

    __slots__ = ("_serializer", "cookie_name", "max_age", "secure", "store")

    def __init__(
        self,
        store: Session,
        *,
        secret_key: str,
        cookie_name: str = "nadder_session",
        max_age: int = 86400,
        secure: bool = False,
    ) -> None:
        if not secret_key:
            msg = "SessionManager requires a non-empty secret_key."
            raise ConfigurationError(msg)
        self.store = store
        self.cookie_name = cookie_name
        self.max_age = max_age
        self.secure = secure
        self._serializer = URLSafeTimedSerializer(secret_key, salt="nadder.session")

    @classmethod
    def from_config(cls, store: Session, config: "AppConfig") -> "SessionManager":
        return cls(
            store,
            secret_key=config.secret_key,
            cookie_name=config.session_cookie,
            max_age=config.session_max_age,
        )

    def session_id(self, ctx: Context) -> str | None:
        """The verified session id for *ctx*, or ``None``.

        Tampered or expired cookies are treated as absent.
        """
        if SESSION_ID_KEY in ctx.state:
            return ctx.state[SESSION_ID_KEY]
        cookie = ctx.req.cookies.get(self.cookie_name)
        if not cookie:
            return None
        try:
            value = self._serializer.loads(cookie, max_age=self.max_age)
        except BadSignature:
            return None
        return value if isinstance(value, str) else None

    async def load(self, ctx: Context) -> dict[str, Any]:
        """Return the session data for *ctx*, empty if there is none."""
        session_id = self.session_id(ctx)
        if session_id is None:
            return {}
        data = await invoke(self.store.get, session_id)
        return dict(data) if data else {}

    async def save(self, ctx: Context, data: dict[str, Any]) -> str:
        """Store *data* and set the session cookie. Returns the session id.

        A request without a valid session gets a fresh random id.
        """
        session_id = self.session_id(ctx) or secrets.token_urlsafe(32)
        await invoke(self.store.set, session_id, data)
        ctx.state[SESSION_ID_KEY] = session_id
        ctx.res.set_cookie(
            self.cookie_name,
            self._serializer.dumps(session_id),
            max_age=self.max_age,
            secure=self.secure,
        )
        return session_id

    async def destroy(self, ctx: Context) -> None:
        """Delete the session data and expire the cookie."""
        session_id = self.session_id(ctx)
        if session_id is not None:
            await invoke(self.store.destroy, session_id)
        ctx.state[SESSION_ID_KEY] = None
        ctx.res.delete_cookie(self.cookie_name)

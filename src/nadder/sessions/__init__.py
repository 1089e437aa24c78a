"""Server-side sessions keyed by a signed cookie.

The cookie carries only a random session id, signed with
``itsdangerous`` so clients cannot forge or guess one. Session data
lives in a ``Session`` store: ``MemorySession`` for a single process,
or anything else implementing ``get``/``set``/``destroy``.

Usage::

    sessions = SessionManager(MemorySession(), secret_key="change-me")

    async def POST(ctx):
        session = await sessions.load(ctx)
        session["visits"] = session.get("visits", 0) + 1
        await sessions.save(ctx, session)
"""

from nadder.sessions.manager import SessionManager
from nadder.sessions.store import MemorySession, Session

__all__ = ["MemorySession", "Session", "SessionManager"]

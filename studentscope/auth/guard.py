"""Role checks that do not depend on the transport.

A request moves from unauthenticated, to authenticated once its token
resolves through the session store, to authorized once its role is allowed.
"""

from collections.abc import Callable, Iterable

from studentscope.auth.sessions import SessionInfo, SessionStore
from studentscope.core.errors import ForbiddenError, InvalidSessionError, NoSessionError

RoleChecker = Callable[[SessionStore, str | None], SessionInfo]


def resolve_session(store: SessionStore, token: str | None) -> SessionInfo:
    if not token:
        raise NoSessionError("No session token")
    session = store.get(token)
    if session is None:
        raise InvalidSessionError("Invalid or expired session")
    return session


def require_role(allowed_roles: Iterable[str] | None = None) -> RoleChecker:
    """Build a checker admitting sessions whose role is in ``allowed_roles``.

    A bare string names a single role. ``None`` or an empty collection admits
    any authenticated session.
    """
    if isinstance(allowed_roles, str):
        allowed_roles = (allowed_roles,)
    allowed = frozenset(allowed_roles or ())

    def check(store: SessionStore, token: str | None) -> SessionInfo:
        session = resolve_session(store, token)
        if allowed and session.role not in allowed:
            raise ForbiddenError(f"Role {session.role!r} is not allowed")
        return session

    return check

from collections.abc import Callable

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from studentscope.auth import guard
from studentscope.auth.sessions import SessionInfo, SessionStore
from studentscope.core import config
from studentscope.database import get_db


def read_session_token(request: Request) -> str | None:
    """The one place the session cookie is read."""
    token = (request.cookies.get(config.SESSION_COOKIE_NAME) or "").strip()
    return token or None


def get_session_store(db: Session = Depends(get_db)) -> SessionStore:
    return SessionStore(db)


def role_required(*roles: str) -> Callable[..., SessionInfo]:
    """FastAPI dependency admitting only sessions with one of ``roles``.

    With no roles, any authenticated session is admitted.
    """
    check = guard.require_role(roles)

    def dependency(
        request: Request,
        store: SessionStore = Depends(get_session_store),
    ) -> SessionInfo:
        session = check(store, read_session_token(request))
        request.state.session = session
        return session

    return dependency


get_current_session = role_required()

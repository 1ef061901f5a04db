"""Server-side session storage.

A session is valid iff its row exists and ``expires_at`` is still in the
future. Expired rows are removed the first time they are read; the periodic
``cleanup_expired`` sweep only reclaims space.
"""

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from studentscope.core import config
from studentscope.core.errors import SessionCreationError, StorageError
from studentscope.database import utcnow
from studentscope.models.session import UserSession
from studentscope.models.user import User

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32


@dataclass(frozen=True)
class SessionInfo:
    user_id: int
    username: str
    role: str
    expires_at: datetime
    class_id: int | None = None


class SessionStore:
    def __init__(
        self,
        db: Session,
        clock: Callable[[], datetime] = utcnow,
        ttl: timedelta | None = None,
    ):
        self.db = db
        self.clock = clock
        self.ttl = ttl or timedelta(hours=config.SESSION_TTL_HOURS)

    def create(self, user: User) -> str:
        token = secrets.token_hex(TOKEN_BYTES)
        self.db.add(
            UserSession(
                token=token,
                user_id=user.id,
                expires_at=self.clock() + self.ttl,
                created_at=self.clock(),
            )
        )
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise SessionCreationError("Could not persist session") from exc
        return token

    def get(self, token: str | None) -> SessionInfo | None:
        if not token:
            return None
        try:
            row = (
                self.db.query(UserSession, User)
                .join(User, User.id == UserSession.user_id)
                .filter(UserSession.token == token)
                .first()
            )
            if row is None:
                return None

            user_session, user = row
            if user_session.expires_at <= self.clock():
                self.db.delete(user_session)
                self.db.commit()
                logger.debug("Removed expired session for user %s", user.id)
                return None
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StorageError("Session lookup failed") from exc

        return SessionInfo(
            user_id=user.id,
            username=user.username,
            role=user.role,
            expires_at=user_session.expires_at,
            class_id=user.class_id,
        )

    def destroy(self, token: str | None) -> None:
        if not token:
            return
        self._delete(UserSession.token == token)

    def destroy_all_for_user(self, user_id: int, keep_token: str | None = None) -> int:
        criteria = [UserSession.user_id == user_id]
        if keep_token:
            criteria.append(UserSession.token != keep_token)
        return self._delete(*criteria)

    def cleanup_expired(self) -> int:
        removed = self._delete(UserSession.expires_at <= self.clock())
        if removed:
            logger.info("Removed %d expired sessions", removed)
        return removed

    def _delete(self, *criteria) -> int:
        try:
            removed = (
                self.db.query(UserSession)
                .filter(*criteria)
                .delete(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StorageError("Session delete failed") from exc
        return removed

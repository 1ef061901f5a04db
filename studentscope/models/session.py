"""Session model definitions."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from studentscope.database import Base, utcnow


class UserSession(Base):
    """Represents one logged-in session, keyed by its opaque token."""
    __tablename__ = "sessions"

    token = Column(String(64), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    expires_at = Column(DateTime, index=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

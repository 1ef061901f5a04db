"""Password reset request model definitions."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from studentscope.database import Base, utcnow

PENDING = "pending"
APPROVED = "approved"
REJECTED = "rejected"


class PasswordResetRequest(Base):
    """A user's request for a new password, awaiting review.

    The requested credential is stored already hashed.
    """
    __tablename__ = "password_reset_requests"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    role = Column(String(20), nullable=False)
    new_password = Column(String(255), nullable=False)
    new_salt = Column(String(255), nullable=False)
    status = Column(String(20), default=PENDING, index=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    reviewed_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)

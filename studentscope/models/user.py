"""User model definitions."""

from sqlalchemy import CheckConstraint, Column, Integer, String
from studentscope.database import Base

ROLES = ("admin", "teacher", "student", "clerk")


class User(Base):
    """Represents an application account and its credential hash record."""
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            "role IN ('admin', 'teacher', 'student', 'clerk')",
            name="ck_users_role",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, index=True, nullable=False)
    password = Column(String(255), nullable=False)
    salt = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False)
    class_id = Column(Integer, nullable=True)
    pin_hash = Column(String(255), nullable=True)
    pin_salt = Column(String(255), nullable=True)

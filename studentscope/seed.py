"""Provision the default accounts for a fresh database.

Usage:
    python -m studentscope.seed
"""
import logging

from sqlalchemy.orm import Session

from studentscope.auth.authenticator import create_user, get_user_by_username
from studentscope.core import config
from studentscope.database import Database
from studentscope.models.user import User

logger = logging.getLogger(__name__)

DEFAULT_PASSWORD = "123"
DEFAULT_USERS = (
    ("admin", "admin"),
    ("teacher", "teacher"),
    ("student", "student"),
    ("clerk", "clerk"),
)


def seed_default_users(db: Session) -> list[User]:
    """Create each default account that does not exist yet."""
    created = []
    for username, role in DEFAULT_USERS:
        if get_user_by_username(db, username) is None:
            created.append(create_user(db, username, DEFAULT_PASSWORD, role))
    return created


def main() -> None:
    logging.basicConfig(level=config.LOG_LEVEL)
    database = Database(config.DATABASE_URL)
    try:
        database.create_schema()
        with database.session() as db:
            created = seed_default_users(db)
    finally:
        database.dispose()
    logger.info("Seeded %d default users", len(created))


if __name__ == "__main__":
    main()

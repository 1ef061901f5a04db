import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from studentscope.auth.passwords import generate_salt, hash_password, make_credential, verify_password
from studentscope.core.errors import InvalidInputError, StorageError
from studentscope.models.user import ROLES, User

logger = logging.getLogger(__name__)

# Hashed against when the username does not exist, so both failure paths do the same work.
_DUMMY_SALT = generate_salt()
_DUMMY_HASH = hash_password("not-a-real-password", _DUMMY_SALT)


def get_user_by_username(db: Session, username: str) -> User | None:
    try:
        return db.query(User).filter(User.username == username).first()
    except SQLAlchemyError as exc:
        raise StorageError("User lookup failed") from exc


def get_user_by_id(db: Session, user_id: int) -> User | None:
    try:
        return db.get(User, user_id)
    except SQLAlchemyError as exc:
        raise StorageError("User lookup failed") from exc


def authenticate(db: Session, username: str, password: str) -> User | None:
    """Return the user whose stored hash matches ``password``, else None.

    Unknown usernames and wrong passwords look the same to the caller.
    """
    if not username or not password:
        return None

    user = get_user_by_username(db, username)
    if user is None:
        verify_password(password, _DUMMY_SALT, _DUMMY_HASH)
        logger.debug("Login rejected for username %r", username)
        return None

    if not verify_password(password, user.salt, user.password):
        logger.debug("Login rejected for username %r", username)
        return None
    return user


def create_user(
    db: Session,
    username: str,
    password: str,
    role: str,
    class_id: int | None = None,
) -> User:
    username = (username or "").strip()
    if not username:
        raise InvalidInputError("Username is required.")
    if not password:
        raise InvalidInputError("Password is required.")
    if role not in ROLES:
        raise InvalidInputError(f"Unknown role: {role}")

    hashed, salt = make_credential(password)
    user = User(username=username, password=hashed, salt=salt, role=role, class_id=class_id)
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise InvalidInputError("Username already exists.") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError("Could not create user") from exc
    db.refresh(user)
    logger.info("Created user %s (%s)", user.username, user.role)
    return user


def set_password(db: Session, user: User, new_password: str) -> None:
    """Replace the user's hash and salt wholesale."""
    if not new_password:
        raise InvalidInputError("New password is required.")
    user.password, user.salt = make_credential(new_password)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError("Could not update password") from exc


def change_password(db: Session, user_id: int, old_password: str, new_password: str) -> bool:
    if not new_password:
        raise InvalidInputError("New password is required.")

    user = get_user_by_id(db, user_id)
    if user is None or not verify_password(old_password, user.salt, user.password):
        return False

    set_password(db, user, new_password)
    logger.info("Password changed for user %s", user.id)
    return True

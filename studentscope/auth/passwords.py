import hashlib
import hmac
import secrets

from studentscope.core.errors import InvalidInputError

ITERATIONS = 100_000
KEY_LENGTH = 64
DIGEST = "sha512"
SALT_BYTES = 16


def generate_salt() -> str:
    return secrets.token_hex(SALT_BYTES)


def hash_password(password: str, salt: str) -> str:
    """Derive the stored hex hash for ``password`` under ``salt``.

    The salt's text is the salt, so hashes written by earlier deployments
    keep verifying.
    """
    if not password or not salt:
        raise InvalidInputError("Password and salt are required.")
    derived = hashlib.pbkdf2_hmac(
        DIGEST,
        password.encode("utf-8"),
        salt.encode("utf-8"),
        ITERATIONS,
        dklen=KEY_LENGTH,
    )
    return derived.hex()


def verify_password(password: str, salt: str, expected_hash: str) -> bool:
    if not password or not salt or not expected_hash:
        return False
    return hmac.compare_digest(hash_password(password, salt), expected_hash)


def make_credential(password: str) -> tuple[str, str]:
    """Return a fresh ``(hash, salt)`` pair for ``password``."""
    salt = generate_salt()
    return hash_password(password, salt), salt

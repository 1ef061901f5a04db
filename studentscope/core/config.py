import os

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]

APP_ENV = os.getenv("APP_ENV", "development")

DEFAULT_DATABASE_URL = "sqlite:///./studentscope.db"
DATABASE_URL = os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)

HOST = os.getenv("HOST", "127.0.0.1")
PORT = int(os.getenv("PORT", "3000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

CORS_ORIGINS = _get_list(os.getenv("CORS_ORIGINS"), ["http://localhost:3000"])

SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "sessionToken")
SESSION_TTL_HOURS = int(os.getenv("SESSION_TTL_HOURS", "24"))
# "auto" marks the cookie Secure only when the request arrived over https.
SESSION_COOKIE_SECURE = os.getenv("SESSION_COOKIE_SECURE", "auto").strip().lower()
SESSION_CLEANUP_INTERVAL_MINUTES = int(os.getenv("SESSION_CLEANUP_INTERVAL_MINUTES", "60"))

SEED_DEFAULT_USERS = _get_bool(
    os.getenv("SEED_DEFAULT_USERS"),
    default=APP_ENV.lower() == "development",
)


def validate_runtime_config() -> None:
    if APP_ENV.lower() != "production":
        return
    if DATABASE_URL == DEFAULT_DATABASE_URL:
        raise RuntimeError("DATABASE_URL must be set in production.")
    if SEED_DEFAULT_USERS:
        raise RuntimeError("SEED_DEFAULT_USERS must be disabled in production.")
    if SESSION_COOKIE_SECURE == "false":
        raise RuntimeError("SESSION_COOKIE_SECURE cannot be false in production.")

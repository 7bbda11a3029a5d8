import os

from dotenv import load_dotenv

# Load .env from the project root
load_dotenv()

_TRUTHY = {"1", "true", "yes", "on"}


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in _TRUTHY


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"Invalid integer for {name}: {raw}") from exc


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./saasresto.db")
ENV = os.getenv("ENV", "dev")
ENV_NORMALIZED = ENV.strip().lower()
IS_DEV = ENV_NORMALIZED in {"dev", "development", "local"}
IS_TEST = ENV_NORMALIZED == "test"
IS_PROD = ENV_NORMALIZED in {"prod", "production"}

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Tenant routing
APP_BASE_DOMAIN = os.getenv("APP_BASE_DOMAIN", "saasresto.localhost").strip().lower()
APP_BASE_URL = os.getenv("APP_BASE_URL", "").strip() or f"https://app.{APP_BASE_DOMAIN}"
APP_URL = os.getenv("APP_URL", "http://localhost:8000").strip()
TENANT_HEADER = "x-tenant-slug"

# Sessions
SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "session_token").strip() or "session_token"
SESSION_TTL_DAYS = _env_int("SESSION_TTL_DAYS", 7)
COOKIE_SECURE = _env_bool("COOKIE_SECURE", "0" if (IS_DEV or IS_TEST) else "1")
COOKIE_DOMAIN = os.getenv("COOKIE_DOMAIN", "").strip() or None

# Passwords
BCRYPT_ROUNDS = _env_int("BCRYPT_ROUNDS", 12)
if not IS_TEST and BCRYPT_ROUNDS < 12:
    BCRYPT_ROUNDS = 12
PASSWORD_RESET_TTL_MINUTES = _env_int("PASSWORD_RESET_TTL_MINUTES", 60)

# Rate limits (max attempts, window in seconds)
RATE_LIMIT_LOGIN_MAX = _env_int("RATE_LIMIT_LOGIN_MAX", 5)
RATE_LIMIT_LOGIN_WINDOW_SECONDS = _env_int("RATE_LIMIT_LOGIN_WINDOW_SECONDS", 60)
RATE_LIMIT_REGISTER_MAX = _env_int("RATE_LIMIT_REGISTER_MAX", 5)
RATE_LIMIT_FORGOT_PASSWORD_MAX = _env_int("RATE_LIMIT_FORGOT_PASSWORD_MAX", 5)
RATE_LIMIT_RESET_PASSWORD_MAX = _env_int("RATE_LIMIT_RESET_PASSWORD_MAX", 10)
RATE_LIMIT_CHANGE_PASSWORD_MAX = _env_int("RATE_LIMIT_CHANGE_PASSWORD_MAX", 5)
RATE_LIMIT_ACTION_WINDOW_SECONDS = _env_int("RATE_LIMIT_ACTION_WINDOW_SECONDS", 60)
RATE_LIMIT_SWEEP_INTERVAL_SECONDS = _env_int("RATE_LIMIT_SWEEP_INTERVAL_SECONDS", 60)

# CORS
_cors_env = os.getenv("CORS_ORIGINS", "")
CORS_ORIGINS = [origin.strip() for origin in _cors_env.split(",") if origin.strip() and origin.strip() != "*"]

if not CORS_ORIGINS and IS_DEV:
    CORS_ORIGINS = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

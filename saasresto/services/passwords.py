from __future__ import annotations

import re
from functools import lru_cache

import bcrypt
from starlette.concurrency import run_in_threadpool

from saasresto.core.config import BCRYPT_ROUNDS

BCRYPT_MAX_BYTES = 72
STRONG_PASSWORD_MIN_LENGTH = 10
TEAM_PASSWORD_MIN_LENGTH = 8


def _encode_for_bcrypt(password: str) -> bytes:
    # bcrypt only considers the first 72 bytes; bcrypt 5 raises beyond that.
    return (password or "").encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(_encode_for_bcrypt(password), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(_encode_for_bcrypt(password), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash.
        return False


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return hash_password("saasresto-dummy-password")


def warm_dummy_hash() -> None:
    """Precompute the hash compared against for unknown users."""
    _dummy_hash()


async def hash_password_async(password: str) -> str:
    return await run_in_threadpool(hash_password, password)


async def verify_password_async(password: str, password_hash: str) -> bool:
    return await run_in_threadpool(verify_password, password, password_hash)


async def burn_password_check(password: str) -> None:
    """Spend one comparison's worth of time when there is no real hash to check."""
    await run_in_threadpool(verify_password, password, _dummy_hash())


def strong_password_error(password: str) -> str | None:
    """Rule for registration, reset and change: length, a letter and a digit."""
    if len(password or "") < STRONG_PASSWORD_MIN_LENGTH:
        return f"Password must be at least {STRONG_PASSWORD_MIN_LENGTH} characters."
    if not re.search(r"[A-Za-z]", password):
        return "Password must contain at least one letter."
    if not re.search(r"\d", password):
        return "Password must contain at least one number."
    return None


def team_password_error(password: str) -> str | None:
    if len(password or "") < TEAM_PASSWORD_MIN_LENGTH:
        return f"Password must be at least {TEAM_PASSWORD_MIN_LENGTH} characters."
    if not re.search(r"[A-Z]", password):
        return "Password must contain at least one uppercase letter."
    if not re.search(r"[a-z]", password):
        return "Password must contain at least one lowercase letter."
    if not re.search(r"\d", password):
        return "Password must contain at least one number."
    if not re.search(r"[^A-Za-z0-9]", password):
        return "Password must contain at least one special character."
    return None

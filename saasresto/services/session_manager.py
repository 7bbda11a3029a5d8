"""Opaque session tokens and their cookie binding.

The raw token only ever lives in the client cookie; the store keeps its
SHA-256 hex digest. Expired sessions are deleted when validation finds them.
"""

from __future__ import annotations

import hashlib
import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from fastapi import Request, Response

from saasresto.core.config import COOKIE_DOMAIN, COOKIE_SECURE, SESSION_COOKIE_NAME, SESSION_TTL_DAYS
from saasresto.core.errors import SessionExpired, SessionNotFound
from saasresto.models.session import UserSession
from saasresto.models.tenant import Tenant
from saasresto.models.user import User
from saasresto.services.credential_store import CredentialStore
from saasresto.utils.clock import utcnow

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32


@dataclass(frozen=True)
class SessionMetadata:
    user_agent: str | None = None
    ip_address: str | None = None

    @classmethod
    def from_request(cls, request: Request) -> "SessionMetadata":
        user_agent = request.headers.get("user-agent")
        return cls(
            user_agent=user_agent[:512] if user_agent else None,
            ip_address=client_ip(request),
        )


@dataclass(frozen=True)
class AuthResult:
    user: User
    tenant: Tenant
    session: UserSession


def client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else None


def generate_session_token() -> str:
    return secrets.token_urlsafe(TOKEN_BYTES)


def hash_token(raw_token: str) -> str:
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


class SessionManager:
    def __init__(
        self,
        store: CredentialStore,
        *,
        ttl_days: int = SESSION_TTL_DAYS,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.ttl = timedelta(days=ttl_days)
        self._clock = clock

    async def issue(self, user: User, tenant: Tenant, metadata: SessionMetadata | None = None) -> str:
        """Persist a new session and return the raw token for the cookie."""
        metadata = metadata or SessionMetadata()
        raw_token = generate_session_token()
        await self.store.insert_session(
            tenant_id=tenant.id,
            user_id=user.id,
            token_hash=hash_token(raw_token),
            expires_at=self._clock() + self.ttl,
            user_agent=metadata.user_agent,
            ip_address=metadata.ip_address,
        )
        logger.info("[SESSION] issued tenant_id=%s user_id=%s", tenant.id, user.id)
        return raw_token

    async def validate(self, raw_token: str) -> AuthResult:
        if not raw_token:
            raise SessionNotFound()

        record = await self.store.find_session_by_token_hash(hash_token(raw_token))
        if record is None:
            raise SessionNotFound()

        if record.expires_at <= self._clock():
            await self.store.delete_session(record.id)
            logger.info("[SESSION] expired session removed user_id=%s", record.user_id)
            raise SessionExpired()

        return AuthResult(user=record.user, tenant=record.tenant, session=record)

    async def revoke(self, raw_token: str) -> None:
        if not raw_token:
            return
        await self.store.delete_session_by_token_hash(hash_token(raw_token))

    async def revoke_all_for_user(self, user_id: int, excluding_session_id: int | None = None) -> int:
        removed = await self.store.delete_sessions_for_user(user_id, excluding_session_id)
        logger.info("[SESSION] revoked sessions user_id=%s count=%s", user_id, removed)
        return removed


def session_cookie_options() -> dict[str, Any]:
    return {
        "domain": COOKIE_DOMAIN,
        "httponly": True,
        "samesite": "lax",
        "path": "/",
        "secure": COOKIE_SECURE,
    }


def set_session_cookie(response: Response, raw_token: str, ttl_days: int = SESSION_TTL_DAYS) -> None:
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=raw_token,
        max_age=ttl_days * 24 * 60 * 60,
        **session_cookie_options(),
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(key=SESSION_COOKIE_NAME, **session_cookie_options())


def get_session_token(request: Request) -> str | None:
    return request.cookies.get(SESSION_COOKIE_NAME) or None

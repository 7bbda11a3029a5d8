from __future__ import annotations

import logging
from dataclasses import dataclass

from saasresto.core.errors import InvalidCredentials, RateLimited
from saasresto.core.rate_limiter import RateLimiter
from saasresto.models.tenant import Tenant
from saasresto.models.user import User
from saasresto.services import passwords
from saasresto.services.credential_store import CredentialStore, normalize_email
from saasresto.services.session_manager import SessionManager, SessionMetadata

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoginSuccess:
    token: str
    user: User
    tenant: Tenant


def login_rate_limit_key(tenant_slug: str, email: str) -> str:
    return f"{(tenant_slug or '').lower()}:{normalize_email(email)}"


class AuthenticationService:
    """Tenant-scoped email/password login.

    The rate-limit gate runs before any store access or password comparison.
    Unknown tenant, unknown user and wrong password all raise the same
    ``InvalidCredentials`` after a comparable amount of hashing work.
    """

    def __init__(self, store: CredentialStore, sessions: SessionManager, rate_limiter: RateLimiter) -> None:
        self.store = store
        self.sessions = sessions
        self.rate_limiter = rate_limiter

    async def login(
        self,
        email: str,
        password: str,
        tenant_slug: str,
        metadata: SessionMetadata | None = None,
    ) -> LoginSuccess:
        key = login_rate_limit_key(tenant_slug, email)
        decision = self.rate_limiter.check(key)
        if not decision.allowed:
            logger.warning("[AUTH] login rate limited tenant=%s", tenant_slug)
            raise RateLimited(retry_after_seconds=decision.retry_after_seconds)

        tenant = await self.store.get_tenant_by_slug(tenant_slug) if tenant_slug else None
        user = await self.store.get_user_by_email(tenant.id, email) if tenant is not None else None

        if user is None:
            await passwords.burn_password_check(password)
            logger.info("[AUTH] login failed tenant=%s reason=unknown_principal", tenant_slug)
            raise InvalidCredentials()

        if not await passwords.verify_password_async(password, user.password_hash):
            logger.info("[AUTH] login failed tenant=%s user_id=%s reason=bad_password", tenant_slug, user.id)
            raise InvalidCredentials()

        self.rate_limiter.clear(key)
        token = await self.sessions.issue(user, tenant, metadata)
        logger.info("[AUTH] login succeeded tenant=%s user_id=%s", tenant_slug, user.id)
        return LoginSuccess(token=token, user=user, tenant=tenant)

"""Single-use password reset tokens.

Requests for unknown tenants or accounts are indistinguishable from real ones
to the caller. Delivery of the link is delegated to a ``ResetLinkNotifier``.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Protocol
from urllib.parse import urlencode

from saasresto.core.config import APP_BASE_URL, PASSWORD_RESET_TTL_MINUTES
from saasresto.core.errors import InvalidResetToken
from saasresto.models.tenant import Tenant
from saasresto.models.user import User
from saasresto.services import passwords
from saasresto.services.credential_store import CredentialStore
from saasresto.services.session_manager import hash_token
from saasresto.utils.clock import utcnow

logger = logging.getLogger(__name__)

RESET_TOKEN_BYTES = 32


class ResetLinkNotifier(Protocol):
    async def send_reset_link(self, *, user: User, tenant: Tenant, reset_url: str) -> None:
        ...


class LoggingResetLinkNotifier:
    """Records that a link was issued; the link itself is never logged."""

    async def send_reset_link(self, *, user: User, tenant: Tenant, reset_url: str) -> None:
        logger.info("[AUTH] password reset link issued tenant=%s user_id=%s", tenant.slug, user.id)


def build_reset_url(raw_token: str, app_base_url: str = APP_BASE_URL) -> str:
    return f"{app_base_url.rstrip('/')}/app/reset-password?{urlencode({'token': raw_token})}"


class PasswordResetService:
    def __init__(
        self,
        store: CredentialStore,
        notifier: ResetLinkNotifier | None = None,
        *,
        ttl_minutes: int = PASSWORD_RESET_TTL_MINUTES,
        app_base_url: str = APP_BASE_URL,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.notifier = notifier or LoggingResetLinkNotifier()
        self.ttl = timedelta(minutes=ttl_minutes)
        self.app_base_url = app_base_url
        self._clock = clock

    async def request_reset(self, tenant_slug: str | None, email: str) -> None:
        tenant = await self.store.get_tenant_by_slug(tenant_slug) if tenant_slug else None
        user = await self.store.get_user_by_email(tenant.id, email) if tenant is not None else None
        if user is None:
            logger.info("[AUTH] password reset requested for unknown account tenant=%s", tenant_slug)
            return

        raw_token = secrets.token_urlsafe(RESET_TOKEN_BYTES)
        await self.store.insert_password_reset_token(
            tenant_id=tenant.id,
            user_id=user.id,
            token_hash=hash_token(raw_token),
            expires_at=self._clock() + self.ttl,
        )

        try:
            await self.notifier.send_reset_link(
                user=user,
                tenant=tenant,
                reset_url=build_reset_url(raw_token, self.app_base_url),
            )
        except Exception:
            # The caller always answers the same message; delivery failures stay server-side.
            logger.exception("[AUTH] password reset delivery failed tenant=%s user_id=%s", tenant.slug, user.id)

    async def reset_password(self, raw_token: str, new_password: str) -> None:
        if not raw_token:
            raise InvalidResetToken()

        now = self._clock()
        record = await self.store.find_usable_reset_token(hash_token(raw_token), now)
        if record is None:
            raise InvalidResetToken()

        password_hash = await passwords.hash_password_async(new_password)
        consumed = await self.store.consume_reset_token(
            token_id=record.id,
            user_id=record.user_id,
            password_hash=password_hash,
            now=now,
        )
        if not consumed:
            raise InvalidResetToken()
        logger.info("[AUTH] password reset completed user_id=%s", record.user_id)

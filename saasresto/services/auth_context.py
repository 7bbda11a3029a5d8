from __future__ import annotations

import logging
from collections.abc import Iterable

from fastapi import Request

from saasresto.core.config import APP_BASE_DOMAIN
from saasresto.core.errors import RoleDenied, Unauthorized
from saasresto.core.request_context import update_request_context
from saasresto.models.user import ROLE_OWNER
from saasresto.services.hostname import resolve_tenant_slug_from_request
from saasresto.services.session_manager import AuthResult, SessionManager, get_session_token

logger = logging.getLogger(__name__)

_UNAUTHENTICATED = object()


class AuthContextProvider:
    """Who is calling, for which tenant, under which session.

    The outcome of ``get_auth`` is cached on ``request.state`` so one request
    validates its cookie at most once. Raising ``Unauthorized`` or
    ``RoleDenied`` is the only signal; API and page dependencies translate it.
    """

    def __init__(self, request: Request, sessions: SessionManager, base_domain: str = APP_BASE_DOMAIN) -> None:
        self.request = request
        self.sessions = sessions
        self.base_domain = base_domain

    async def get_auth(self) -> AuthResult | None:
        cached = getattr(self.request.state, "auth", None)
        if cached is _UNAUTHENTICATED:
            return None
        if cached is not None:
            return cached

        result = await self._resolve()
        self.request.state.auth = result if result is not None else _UNAUTHENTICATED
        if result is not None:
            update_request_context(tenant_slug=result.tenant.slug, user_id=str(result.user.id))
        return result

    async def _resolve(self) -> AuthResult | None:
        token = get_session_token(self.request)
        if not token:
            return None

        try:
            result = await self.sessions.validate(token)
        except Unauthorized as exc:
            logger.debug("[SESSION] rejected reason=%s", type(exc).__name__)
            return None

        request_tenant = resolve_tenant_slug_from_request(self.request.headers, self.base_domain)
        if request_tenant and request_tenant != result.tenant.slug:
            logger.warning(
                "[SESSION] tenant mismatch session_tenant=%s request_tenant=%s user_id=%s",
                result.tenant.slug,
                request_tenant,
                result.user.id,
            )
            return None
        return result

    async def require_auth(self) -> AuthResult:
        result = await self.get_auth()
        if result is None:
            raise Unauthorized()
        return result

    async def require_role(self, allowed_roles: Iterable[str]) -> AuthResult:
        result = await self.require_auth()
        allowed = set(allowed_roles)
        if result.user.role not in allowed:
            logger.info(
                "[AUTH] role denied user_id=%s role=%s required=%s",
                result.user.id,
                result.user.role,
                ",".join(sorted(allowed)),
            )
            raise RoleDenied()
        return result

    async def require_owner(self) -> AuthResult:
        return await self.require_role({ROLE_OWNER})

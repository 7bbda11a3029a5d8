from __future__ import annotations

import logging
from typing import Iterable

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from saasresto.core.database import get_db
from saasresto.core.errors import RateLimited, RoleDenied, Unauthorized
from saasresto.core.rate_limiter import RateLimiter, RateLimiters, build_rate_limiters
from saasresto.models.user import ROLE_OWNER
from saasresto.services.auth_context import AuthContextProvider
from saasresto.services.authentication import AuthenticationService
from saasresto.services.credential_store import CredentialStore
from saasresto.services.password_reset import PasswordResetService
from saasresto.services.session_manager import AuthResult, SessionManager

logger = logging.getLogger(__name__)

LOGIN_PAGE_PATH = "/app/login"
APP_HOME_PATH = "/app"


def get_credential_store(db: AsyncSession = Depends(get_db)) -> CredentialStore:
    return CredentialStore(db)


def get_session_manager(store: CredentialStore = Depends(get_credential_store)) -> SessionManager:
    return SessionManager(store)


def get_rate_limiters(request: Request) -> RateLimiters:
    limiters = getattr(request.app.state, "rate_limiters", None)
    if limiters is None:
        limiters = build_rate_limiters()
        request.app.state.rate_limiters = limiters
    return limiters


def get_authentication_service(
    store: CredentialStore = Depends(get_credential_store),
    sessions: SessionManager = Depends(get_session_manager),
    limiters: RateLimiters = Depends(get_rate_limiters),
) -> AuthenticationService:
    return AuthenticationService(store, sessions, limiters.login)


def get_password_reset_service(
    request: Request,
    store: CredentialStore = Depends(get_credential_store),
) -> PasswordResetService:
    return PasswordResetService(store, getattr(request.app.state, "reset_notifier", None))


def get_auth_context(
    request: Request,
    sessions: SessionManager = Depends(get_session_manager),
) -> AuthContextProvider:
    return AuthContextProvider(request, sessions)


def enforce_rate_limit(limiter: RateLimiter, key: str) -> None:
    decision = limiter.check(key)
    if not decision.allowed:
        logger.warning("[AUTH] rate limited action=%s", limiter.action)
        raise RateLimited(retry_after_seconds=decision.retry_after_seconds)


# API surface: failures propagate as typed errors and become JSON 401/403.


async def get_optional_auth(auth: AuthContextProvider = Depends(get_auth_context)) -> AuthResult | None:
    return await auth.get_auth()


async def require_auth(auth: AuthContextProvider = Depends(get_auth_context)) -> AuthResult:
    return await auth.require_auth()


def require_role(roles: Iterable[str]):
    allowed = {role.strip().upper() for role in roles}

    async def _dependency(auth: AuthContextProvider = Depends(get_auth_context)) -> AuthResult:
        return await auth.require_role(allowed)

    return _dependency


require_owner = require_role({ROLE_OWNER})


# Page surface: failures become redirects.


def _redirect(location: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_303_SEE_OTHER, headers={"Location": location})


async def require_auth_ui(auth: AuthContextProvider = Depends(get_auth_context)) -> AuthResult:
    try:
        return await auth.require_auth()
    except Unauthorized as exc:
        raise _redirect(LOGIN_PAGE_PATH) from exc


def require_role_ui(roles: Iterable[str]):
    allowed = {role.strip().upper() for role in roles}

    async def _dependency(auth: AuthContextProvider = Depends(get_auth_context)) -> AuthResult:
        try:
            return await auth.require_role(allowed)
        except Unauthorized as exc:
            raise _redirect(LOGIN_PAGE_PATH) from exc
        except RoleDenied as exc:
            # Authenticated but under-privileged: back to the app home, not an error page.
            raise _redirect(APP_HOME_PATH) from exc

    return _dependency


require_owner_ui = require_role_ui({ROLE_OWNER})

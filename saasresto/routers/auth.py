from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from sqlalchemy.exc import SQLAlchemyError

from saasresto.core.errors import RESET_REQUESTED_MESSAGE
from saasresto.core.rate_limiter import RateLimiters
from saasresto.deps import (
    enforce_rate_limit,
    get_authentication_service,
    get_credential_store,
    get_password_reset_service,
    get_rate_limiters,
    get_session_manager,
    require_auth,
)
from saasresto.services import passwords
from saasresto.services.authentication import AuthenticationService
from saasresto.services.credential_store import CredentialStore, DuplicateRecordError, normalize_email
from saasresto.services.hostname import resolve_tenant_slug_from_request, tenant_public_url
from saasresto.services.password_reset import PasswordResetService
from saasresto.services.session_manager import (
    AuthResult,
    SessionManager,
    SessionMetadata,
    clear_session_cookie,
    client_ip,
    get_session_token,
    set_session_cookie,
)
from saasresto.utils.slug import SLUG_MAX_LENGTH, SLUG_MIN_LENGTH, is_valid_tenant_slug

router = APIRouter(prefix="/api/auth", tags=["auth"])
logger = logging.getLogger(__name__)

SLUG_TAKEN_MESSAGE = "This address is already taken. Please choose another."
WRONG_CURRENT_PASSWORD_MESSAGE = "Current password is incorrect."


def _check_strong_password(value: str) -> str:
    error = passwords.strong_password_error(value)
    if error:
        raise ValueError(error)
    return value


class LoginPayload(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class RegisterPayload(BaseModel):
    restaurant_name: str = Field(..., min_length=2, max_length=80)
    slug: str = Field(..., min_length=SLUG_MIN_LENGTH, max_length=SLUG_MAX_LENGTH)
    email: EmailStr
    password: str
    confirm_password: str
    owner_name: str | None = Field(default=None, max_length=80)

    @field_validator("restaurant_name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 2:
            raise ValueError("Restaurant name must be at least 2 characters.")
        return value

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, value: str) -> str:
        value = value.strip().lower()
        if not is_valid_tenant_slug(value):
            raise ValueError("Use only lowercase letters, numbers and hyphens; reserved names are not allowed.")
        return value

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        return _check_strong_password(value)

    @model_validator(mode="after")
    def passwords_match(self) -> "RegisterPayload":
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match.")
        return self


class ChangePasswordPayload(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str
    confirm_password: str

    @field_validator("new_password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        return _check_strong_password(value)

    @model_validator(mode="after")
    def passwords_match(self) -> "ChangePasswordPayload":
        if self.new_password != self.confirm_password:
            raise ValueError("Passwords do not match.")
        return self


class ForgotPasswordPayload(BaseModel):
    email: EmailStr


class ResetPasswordPayload(BaseModel):
    token: str = Field(..., min_length=1)
    password: str
    confirm_password: str

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        return _check_strong_password(value)

    @model_validator(mode="after")
    def passwords_match(self) -> "ResetPasswordPayload":
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match.")
        return self


def _principal_payload(user, tenant) -> dict:
    return {
        "user": {"id": user.id, "email": user.email, "name": user.name, "role": user.role},
        "tenant": {"id": tenant.id, "name": tenant.name, "slug": tenant.slug},
    }


def _ip_key(request: Request) -> str:
    return client_ip(request) or "unknown"


@router.post("/login")
async def login(
    payload: LoginPayload,
    request: Request,
    response: Response,
    auth_service: AuthenticationService = Depends(get_authentication_service),
):
    # The tenant always comes from the host, never from the body.
    tenant_slug = resolve_tenant_slug_from_request(request.headers)
    result = await auth_service.login(
        payload.email,
        payload.password,
        tenant_slug or "",
        SessionMetadata.from_request(request),
    )
    # Only reached once the session row is committed.
    set_session_cookie(response, result.token)
    return {"success": True, "redirect_url": "/app", **_principal_payload(result.user, result.tenant)}


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterPayload,
    request: Request,
    response: Response,
    store: CredentialStore = Depends(get_credential_store),
    sessions: SessionManager = Depends(get_session_manager),
    limiters: RateLimiters = Depends(get_rate_limiters),
):
    enforce_rate_limit(limiters.register, _ip_key(request))

    if await store.slug_exists(payload.slug):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=SLUG_TAKEN_MESSAGE)

    password_hash = await passwords.hash_password_async(payload.password)
    try:
        tenant, owner = await store.create_tenant_with_owner(
            slug=payload.slug,
            name=payload.restaurant_name,
            email=payload.email,
            password_hash=password_hash,
            owner_name=payload.owner_name,
        )
    except DuplicateRecordError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=SLUG_TAKEN_MESSAGE) from exc

    token = await sessions.issue(owner, tenant, SessionMetadata.from_request(request))
    set_session_cookie(response, token)
    logger.info("[AUTH] tenant registered tenant=%s user_id=%s", tenant.slug, owner.id)
    return {
        "success": True,
        "message": "Account created.",
        "tenant_slug": tenant.slug,
        "public_url": tenant_public_url(tenant.slug),
    }


@router.get("/slug-availability")
async def slug_availability(
    slug: str = Query(default=""),
    store: CredentialStore = Depends(get_credential_store),
):
    normalized = slug.strip().lower()
    if not is_valid_tenant_slug(normalized):
        return {"available": False}
    try:
        taken = await store.slug_exists(normalized)
    except SQLAlchemyError:
        logger.exception("[AUTH] slug availability check failed")
        return {"available": False}
    return {"available": not taken}


@router.get("/me")
async def me(auth: AuthResult = Depends(require_auth)):
    return _principal_payload(auth.user, auth.tenant)


@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    sessions: SessionManager = Depends(get_session_manager),
):
    token = get_session_token(request)
    if token:
        try:
            await sessions.revoke(token)
        except Exception:
            logger.exception("[SESSION] server-side logout failed; clearing cookie anyway")
    clear_session_cookie(response)
    return {"success": True}


@router.post("/change-password")
async def change_password(
    payload: ChangePasswordPayload,
    request: Request,
    auth: AuthResult = Depends(require_auth),
    store: CredentialStore = Depends(get_credential_store),
    limiters: RateLimiters = Depends(get_rate_limiters),
):
    enforce_rate_limit(limiters.change_password, _ip_key(request))

    if not await passwords.verify_password_async(payload.current_password, auth.user.password_hash):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=WRONG_CURRENT_PASSWORD_MESSAGE)

    password_hash = await passwords.hash_password_async(payload.new_password)
    revoked = await store.change_password_keeping_session(
        tenant_id=auth.tenant.id,
        user_id=auth.user.id,
        password_hash=password_hash,
        keep_session_id=auth.session.id,
    )
    logger.info("[AUTH] password changed user_id=%s other_sessions_revoked=%s", auth.user.id, revoked)
    return {"success": True, "message": "Password updated."}


@router.post("/forgot-password")
async def forgot_password(
    payload: ForgotPasswordPayload,
    request: Request,
    reset_service: PasswordResetService = Depends(get_password_reset_service),
    limiters: RateLimiters = Depends(get_rate_limiters),
):
    enforce_rate_limit(limiters.forgot_password, _ip_key(request))

    tenant_slug = resolve_tenant_slug_from_request(request.headers)
    try:
        await reset_service.request_reset(tenant_slug, normalize_email(payload.email))
    except SQLAlchemyError:
        logger.exception("[AUTH] password reset request failed")
    return {"success": True, "message": RESET_REQUESTED_MESSAGE}


@router.post("/reset-password")
async def reset_password(
    payload: ResetPasswordPayload,
    request: Request,
    reset_service: PasswordResetService = Depends(get_password_reset_service),
    limiters: RateLimiters = Depends(get_rate_limiters),
):
    enforce_rate_limit(limiters.reset_password, _ip_key(request))
    await reset_service.reset_password(payload.token, payload.password)
    return {"success": True, "message": "Password reset. You can now log in."}

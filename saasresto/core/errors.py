"""Auth error taxonomy and the HTTP shape each error is exposed with.

Services raise these; routers and dependencies never build error payloads
by hand. Messages are fixed strings so internal details never reach clients.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Invalid credentials."
RATE_LIMITED_MESSAGE = "Too many attempts. Please try again in a few minutes."
UNAUTHORIZED_MESSAGE = "Not authenticated."
ROLE_DENIED_MESSAGE = "Insufficient permissions."
TENANT_NOT_FOUND_MESSAGE = "Tenant not found"
GENERIC_ERROR_MESSAGE = "An error occurred. Please try again."
INVALID_RESET_TOKEN_MESSAGE = "Invalid or expired link. Please request a new password reset."
RESET_REQUESTED_MESSAGE = "If an account exists with this email, you will receive a link to reset your password."


class AuthError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "AUTH_ERROR"
    message = GENERIC_ERROR_MESSAGE

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        if message:
            self.message = message


class InvalidCredentials(AuthError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "INVALID_CREDENTIALS"
    message = INVALID_CREDENTIALS_MESSAGE


class RateLimited(AuthError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    code = "RATE_LIMITED"
    message = RATE_LIMITED_MESSAGE

    def __init__(self, retry_after_seconds: int = 0, message: str | None = None) -> None:
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds


class Unauthorized(AuthError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHORIZED"
    message = UNAUTHORIZED_MESSAGE


class SessionNotFound(Unauthorized):
    pass


class SessionExpired(Unauthorized):
    pass


class RoleDenied(AuthError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"
    message = ROLE_DENIED_MESSAGE


class TenantNotResolved(AuthError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    message = TENANT_NOT_FOUND_MESSAGE


class InvalidResetToken(AuthError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "INVALID_TOKEN"
    message = INVALID_RESET_TOKEN_MESSAGE


def error_payload(message: str, code: str | None = None) -> dict[str, str]:
    payload = {"detail": message}
    if code:
        payload["code"] = code
    return payload


async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    headers: dict[str, str] = {}
    if isinstance(exc, RateLimited) and exc.retry_after_seconds:
        headers["Retry-After"] = str(exc.retry_after_seconds)

    # Session failures are never distinguished externally.
    if isinstance(exc, Unauthorized):
        body = error_payload(UNAUTHORIZED_MESSAGE, Unauthorized.code)
    else:
        body = error_payload(exc.message, exc.code)

    if exc.status_code >= 500:
        logger.error("Auth error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content=body, headers=headers)


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_payload(GENERIC_ERROR_MESSAGE, "INTERNAL_ERROR"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AuthError, auth_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)

from unittest.mock import AsyncMock, patch

import pytest

from saasresto.core.errors import INVALID_CREDENTIALS_MESSAGE, InvalidCredentials, RateLimited
from saasresto.core.rate_limiter import InMemoryRateLimiter
from saasresto.models.user import ROLE_OWNER
from saasresto.services import passwords
from saasresto.services.authentication import AuthenticationService, login_rate_limit_key
from saasresto.services.session_manager import SessionManager
from tests.helpers import DEMO_OWNER_EMAIL, DEMO_OWNER_PASSWORD


def _service(store, limit: int = 5) -> AuthenticationService:
    limiter = InMemoryRateLimiter("login", limit=limit, window_seconds=60)
    return AuthenticationService(store, SessionManager(store), limiter)


@pytest.mark.asyncio
async def test_demo_owner_logs_in_and_session_validates(store, demo_tenant):
    service = _service(store)

    result = await service.login(DEMO_OWNER_EMAIL, DEMO_OWNER_PASSWORD, "demo")
    validated = await service.sessions.validate(result.token)

    assert result.token
    assert validated.user.email == DEMO_OWNER_EMAIL
    assert validated.user.role == ROLE_OWNER
    assert validated.tenant.slug == "demo"


@pytest.mark.asyncio
async def test_email_is_matched_case_insensitively(store, demo_tenant):
    service = _service(store)

    result = await service.login("  Demo@Demo.COM ", DEMO_OWNER_PASSWORD, "demo")

    assert result.user.id == demo_tenant["owner"].id


@pytest.mark.asyncio
async def test_sixth_wrong_password_is_rate_limited(store, demo_tenant):
    service = _service(store, limit=5)

    for _ in range(5):
        with pytest.raises(InvalidCredentials):
            await service.login(DEMO_OWNER_EMAIL, "wrong-password-1", "demo")

    with pytest.raises(RateLimited) as exc:
        await service.login(DEMO_OWNER_EMAIL, "wrong-password-1", "demo")
    assert exc.value.retry_after_seconds > 0


@pytest.mark.asyncio
async def test_rate_limited_attempt_never_checks_a_password(store, demo_tenant):
    service = _service(store, limit=5)
    for _ in range(5):
        with pytest.raises(InvalidCredentials):
            await service.login(DEMO_OWNER_EMAIL, "wrong-password-1", "demo")

    with patch.object(passwords, "verify_password", wraps=passwords.verify_password) as spy:
        with pytest.raises(RateLimited):
            await service.login(DEMO_OWNER_EMAIL, DEMO_OWNER_PASSWORD, "demo")

    spy.assert_not_called()


@pytest.mark.asyncio
async def test_rate_limited_attempt_never_touches_the_store(store, demo_tenant):
    service = _service(store, limit=1)
    with pytest.raises(InvalidCredentials):
        await service.login(DEMO_OWNER_EMAIL, "wrong-password-1", "demo")

    with patch.object(store, "get_tenant_by_slug", new=AsyncMock()) as lookup:
        with pytest.raises(RateLimited):
            await service.login(DEMO_OWNER_EMAIL, DEMO_OWNER_PASSWORD, "demo")

    lookup.assert_not_awaited()


@pytest.mark.asyncio
async def test_failures_are_indistinguishable(store, demo_tenant):
    service = _service(store, limit=100)
    attempts = [
        (DEMO_OWNER_EMAIL, DEMO_OWNER_PASSWORD, "no-such-tenant"),
        ("nobody@demo.com", DEMO_OWNER_PASSWORD, "demo"),
        (DEMO_OWNER_EMAIL, "wrong-password-1", "demo"),
    ]

    errors = []
    for email, password, slug in attempts:
        with pytest.raises(InvalidCredentials) as exc:
            await service.login(email, password, slug)
        errors.append((type(exc.value), exc.value.code, exc.value.message, exc.value.status_code))

    assert len(set(errors)) == 1
    assert errors[0][2] == INVALID_CREDENTIALS_MESSAGE


@pytest.mark.asyncio
async def test_unknown_principal_still_spends_a_hash_comparison(store, demo_tenant):
    service = _service(store)

    with patch.object(passwords, "verify_password", wraps=passwords.verify_password) as spy:
        with pytest.raises(InvalidCredentials):
            await service.login("nobody@demo.com", "whatever-123", "demo")
        with pytest.raises(InvalidCredentials):
            await service.login(DEMO_OWNER_EMAIL, "whatever-123", "ghost-town")

    assert spy.call_count == 2


@pytest.mark.asyncio
async def test_success_clears_the_rate_limit_entry(store, demo_tenant):
    service = _service(store, limit=3)
    for _ in range(2):
        with pytest.raises(InvalidCredentials):
            await service.login(DEMO_OWNER_EMAIL, "wrong-password-1", "demo")

    await service.login(DEMO_OWNER_EMAIL, DEMO_OWNER_PASSWORD, "demo")

    decision = service.rate_limiter.check(login_rate_limit_key("demo", DEMO_OWNER_EMAIL))
    assert decision.remaining == 2


@pytest.mark.asyncio
async def test_no_session_is_created_for_failed_login(store, demo_tenant):
    service = _service(store)

    with patch.object(service.sessions, "issue", new=AsyncMock()) as issue:
        with pytest.raises(InvalidCredentials):
            await service.login(DEMO_OWNER_EMAIL, "wrong-password-1", "demo")

    issue.assert_not_awaited()

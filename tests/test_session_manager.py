from datetime import timedelta

import pytest

from saasresto.core.errors import SessionExpired, SessionNotFound
from saasresto.models.user import ROLE_OWNER
from saasresto.services.session_manager import SessionManager, SessionMetadata, hash_token
from saasresto.utils.clock import utcnow


class MovableClock:
    def __init__(self) -> None:
        self.now = utcnow()

    def __call__(self):
        return self.now


@pytest.mark.asyncio
async def test_issue_then_validate_round_trip(store, demo_tenant):
    clock = MovableClock()
    sessions = SessionManager(store, ttl_days=7, clock=clock)
    owner, tenant = demo_tenant["owner"], demo_tenant["tenant"]

    token = await sessions.issue(owner, tenant, SessionMetadata(user_agent="pytest", ip_address="10.0.0.1"))
    result = await sessions.validate(token)

    assert result.user.id == owner.id
    assert result.tenant.id == tenant.id
    assert result.user.role == ROLE_OWNER
    assert abs(result.session.expires_at - (clock.now + timedelta(days=7))) < timedelta(seconds=5)
    assert result.session.user_agent == "pytest"
    assert result.session.ip_address == "10.0.0.1"


@pytest.mark.asyncio
async def test_only_the_token_hash_is_persisted(store, demo_tenant):
    sessions = SessionManager(store)

    token = await sessions.issue(demo_tenant["owner"], demo_tenant["tenant"])
    record = await store.find_session_by_token_hash(hash_token(token))

    assert record is not None
    assert record.token_hash != token
    assert len(record.token_hash) == 64
    assert len(token) >= 32


@pytest.mark.asyncio
async def test_unknown_token_is_not_found(store, demo_tenant):
    sessions = SessionManager(store)

    with pytest.raises(SessionNotFound):
        await sessions.validate("not-a-real-token")
    with pytest.raises(SessionNotFound):
        await sessions.validate("")


@pytest.mark.asyncio
async def test_revoke_is_idempotent(store, demo_tenant):
    sessions = SessionManager(store)
    token = await sessions.issue(demo_tenant["owner"], demo_tenant["tenant"])

    await sessions.revoke(token)
    await sessions.revoke(token)

    with pytest.raises(SessionNotFound):
        await sessions.validate(token)


@pytest.mark.asyncio
async def test_expired_session_is_removed_on_validation(store, demo_tenant):
    clock = MovableClock()
    sessions = SessionManager(store, ttl_days=7, clock=clock)
    token = await sessions.issue(demo_tenant["owner"], demo_tenant["tenant"])

    clock.now += timedelta(days=7, seconds=1)

    with pytest.raises(SessionExpired):
        await sessions.validate(token)
    assert await store.find_session_by_token_hash(hash_token(token)) is None
    with pytest.raises(SessionNotFound):
        await sessions.validate(token)


@pytest.mark.asyncio
async def test_revoke_all_for_user_can_keep_one_session(store, demo_tenant):
    sessions = SessionManager(store)
    owner, tenant = demo_tenant["owner"], demo_tenant["tenant"]
    current = await sessions.issue(owner, tenant)
    other = await sessions.issue(owner, tenant)
    staff_token = await sessions.issue(demo_tenant["staff"], tenant)
    current_session = (await sessions.validate(current)).session

    removed = await sessions.revoke_all_for_user(owner.id, excluding_session_id=current_session.id)

    assert removed == 1
    assert (await sessions.validate(current)).user.id == owner.id
    assert (await sessions.validate(staff_token)).user.id == demo_tenant["staff"].id
    with pytest.raises(SessionNotFound):
        await sessions.validate(other)

import os

os.environ["ENV"] = "test"
os.environ["APP_BASE_DOMAIN"] = "saasresto.test"
os.environ["APP_BASE_URL"] = "https://app.saasresto.test"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["COOKIE_SECURE"] = "0"
os.environ.pop("COOKIE_DOMAIN", None)

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from saasresto.core.database import Base, get_db  # noqa: E402
from saasresto.core.metrics import request_metrics  # noqa: E402
from saasresto.core.rate_limiter import build_rate_limiters  # noqa: E402
from saasresto.models.user import ROLE_OWNER, ROLE_STAFF  # noqa: E402
from saasresto.services.credential_store import CredentialStore  # noqa: E402
from saasresto.services.passwords import hash_password  # noqa: E402
import saasresto.models  # noqa: E402,F401

from tests.helpers import APP_HOST, DEMO_OWNER_EMAIL, DEMO_OWNER_PASSWORD, DEMO_STAFF_EMAIL, DEMO_STAFF_PASSWORD  # noqa: E402


@pytest_asyncio.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def store(db_session):
    return CredentialStore(db_session)


@pytest_asyncio.fixture
async def demo_tenant(session_factory):
    async with session_factory() as session:
        seed_store = CredentialStore(session)
        tenant, owner = await seed_store.create_tenant_with_owner(
            slug="demo",
            name="Restaurant Demo",
            email=DEMO_OWNER_EMAIL,
            password_hash=hash_password(DEMO_OWNER_PASSWORD),
            owner_name="Demo Owner",
        )
        staff = await seed_store.create_user(
            tenant_id=tenant.id,
            email=DEMO_STAFF_EMAIL,
            password_hash=hash_password(DEMO_STAFF_PASSWORD),
            name="Demo Staff",
            role=ROLE_STAFF,
        )
    assert owner.role == ROLE_OWNER
    return {"tenant": tenant, "owner": owner, "staff": staff}


@pytest_asyncio.fixture
async def app(session_factory):
    from saasresto.main import app as fastapi_app

    async def _get_test_db():
        async with session_factory() as session:
            yield session

    fastapi_app.dependency_overrides[get_db] = _get_test_db
    fastapi_app.state.rate_limiters = build_rate_limiters()
    fastapi_app.state.reset_notifier = None
    request_metrics.reset()

    yield fastapi_app

    fastapi_app.dependency_overrides.clear()
    fastapi_app.state.reset_notifier = None


@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url=f"http://{APP_HOST}") as async_client:
        yield async_client

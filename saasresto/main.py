import asyncio
import contextlib
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.concurrency import run_in_threadpool

from saasresto.core.config import CORS_ORIGINS, DATABASE_URL, RATE_LIMIT_SWEEP_INTERVAL_SECONDS
from saasresto.core.database import Base, engine
from saasresto.core.errors import register_exception_handlers
from saasresto.core.logging_setup import configure_logging
from saasresto.core.rate_limiter import build_rate_limiters, run_periodic_sweep
from saasresto.core.startup_checks import ensure_migrations_applied, validate_database_environment
from saasresto.middleware.edge import EdgeRoutingMiddleware
from saasresto.middleware.observability import ObservabilityMiddleware
from saasresto.middleware.security_headers import SecurityHeadersMiddleware
from saasresto.services.passwords import warm_dummy_hash
import saasresto.models  # registers every model on Base before create_all

from saasresto.routers.auth import router as auth_router
from saasresto.routers.health import router as health_router
from saasresto.routers.internal_metrics import router as internal_metrics_router
from saasresto.routers.pages import router as pages_router
from saasresto.routers.team import router as team_router
from saasresto.routers.tenant_public import router as tenant_public_router

configure_logging()

logger = logging.getLogger(__name__)
STARTUP_PREFIX = "[STARTUP]"
REPO_ROOT = Path(__file__).resolve().parents[1]
ALEMBIC_CONFIG_PATH = Path(os.getenv("ALEMBIC_CONFIG", str(REPO_ROOT / "alembic.ini")))


async def _startup_tasks() -> None:
    try:
        validate_database_environment()
        if DATABASE_URL.startswith("sqlite"):
            async with engine.begin() as connection:
                await connection.run_sync(Base.metadata.create_all)
        await ensure_migrations_applied(engine=engine, alembic_config_path=ALEMBIC_CONFIG_PATH)
    except Exception:
        logger.exception("%s ERROR startup failed", STARTUP_PREFIX)
        raise


@asynccontextmanager
async def lifespan(app: FastAPI):
    await _startup_tasks()
    await run_in_threadpool(warm_dummy_hash)
    sweeper = asyncio.create_task(
        run_periodic_sweep(app.state.rate_limiters.all(), RATE_LIMIT_SWEEP_INTERVAL_SECONDS)
    )
    try:
        yield
    finally:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper
        await engine.dispose()


app = FastAPI(
    title="SaaS Resto API",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)
app.state.rate_limiters = build_rate_limiters()
app.state.reset_notifier = None

register_exception_handlers(app)

# Last added runs first: edge routing sees the raw request before anything else.
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(ObservabilityMiddleware)
app.add_middleware(EdgeRoutingMiddleware)

# Routers
app.include_router(auth_router)
app.include_router(team_router)
app.include_router(pages_router)
app.include_router(tenant_public_router)
app.include_router(health_router)
app.include_router(internal_metrics_router)


@app.get("/")
async def root():
    return {"status": "ok"}

"""Edge routing decision.

``route_request`` is a pure function of the request headers, path and routing
configuration. It never touches the database or sessions; the middleware in
``saasresto.middleware.edge`` applies its decision to the ASGI scope.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Union

from saasresto.core.config import APP_BASE_DOMAIN, TENANT_HEADER
from saasresto.services.hostname import extract_tenant_slug

TENANT_PATH_PREFIX = "/t"

DEFAULT_BYPASS_PREFIXES = (
    "/app",
    "/api",
    "/internal",
    "/_internal",
    "/static",
    "/uploads",
    "/docs",
    "/redoc",
    "/openapi.json",
    TENANT_PATH_PREFIX,
)


@dataclass(frozen=True)
class RoutingConfig:
    base_domain: str = APP_BASE_DOMAIN
    tenant_header: str = TENANT_HEADER
    tenant_path_prefix: str = TENANT_PATH_PREFIX
    bypass_prefixes: tuple[str, ...] = field(default=DEFAULT_BYPASS_PREFIXES)


@dataclass(frozen=True)
class PassThrough:
    pass


@dataclass(frozen=True)
class RewriteTo:
    path: str
    tenant_slug: str


RouteDecision = Union[PassThrough, RewriteTo]

PASS_THROUGH = PassThrough()


def _has_prefix(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix.rstrip("/") + "/")


def is_bypassed_path(path: str, config: RoutingConfig) -> bool:
    if "." in path:
        # Treated as a static asset.
        return True
    return any(_has_prefix(path, prefix) for prefix in config.bypass_prefixes)


def tenant_path(slug: str, path: str, prefix: str = TENANT_PATH_PREFIX) -> str:
    if not path or path == "/":
        return f"{prefix}/{slug}"
    if not path.startswith("/"):
        path = f"/{path}"
    return f"{prefix}/{slug}{path}"


def route_request(headers: Mapping[str, str], path: str, config: RoutingConfig | None = None) -> RouteDecision:
    """Decide whether a request is tenant-facing.

    Rewriting is purely syntactic: a host naming a tenant that does not
    exist is still rewritten, the tenant-scoped handler reports not found.
    """
    config = config or RoutingConfig()
    path = path or "/"

    if is_bypassed_path(path, config):
        return PASS_THROUGH

    slug = extract_tenant_slug(headers.get("host"), config.base_domain)
    if slug is None:
        return PASS_THROUGH

    return RewriteTo(path=tenant_path(slug, path, config.tenant_path_prefix), tenant_slug=slug)

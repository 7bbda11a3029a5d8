from __future__ import annotations

import logging

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from saasresto.services.edge_router import RewriteTo, RoutingConfig, route_request

logger = logging.getLogger(__name__)


class EdgeRoutingMiddleware(BaseHTTPMiddleware):
    """Applies the edge routing decision to the ASGI scope before routing.

    Any client-supplied copy of the trusted tenant header is dropped on every
    request; only a rewrite sets it again.
    """

    def __init__(self, app, *, config: RoutingConfig | None = None) -> None:
        super().__init__(app)
        self._config = config or RoutingConfig()

    async def dispatch(self, request: Request, call_next):
        scope = request.scope
        header_name = self._config.tenant_header.lower().encode("latin-1")
        raw_headers = [(key, value) for key, value in scope["headers"] if key.lower() != header_name]
        if len(raw_headers) != len(scope["headers"]):
            logger.warning("[EDGE] dropped client-supplied %s header", self._config.tenant_header)

        decision = route_request(request.headers, scope["path"], self._config)
        request.state.edge_tenant_slug = None

        if isinstance(decision, RewriteTo):
            raw_headers.append((header_name, decision.tenant_slug.encode("latin-1")))
            scope["path"] = decision.path
            scope["raw_path"] = decision.path.encode("utf-8")
            request.state.edge_tenant_slug = decision.tenant_slug
            logger.debug("[EDGE] rewrite slug=%s path=%s", decision.tenant_slug, decision.path)

        scope["headers"] = raw_headers
        return await call_next(request)

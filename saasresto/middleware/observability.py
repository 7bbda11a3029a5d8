from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from saasresto.core.metrics import request_metrics
from saasresto.core.request_context import clear_request_context, update_request_context

logger = logging.getLogger(__name__)


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        update_request_context(request_id=request_id)

        status_code = 500
        response = None
        method = request.method

        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            # Path after any edge rewrite.
            endpoint = request.scope.get("path", request.url.path)
            tenant_slug = _extract_tenant_slug(request)
            user_id = _extract_user_id(request)
            duration_ms = round((time.perf_counter() - start) * 1000, 2)

            update_request_context(tenant_slug=tenant_slug, user_id=user_id)
            request_metrics.observe(
                endpoint=endpoint,
                method=method,
                status_code=status_code,
                duration_ms=duration_ms,
                tenant_slug=tenant_slug,
                rewritten=getattr(request.state, "edge_tenant_slug", None) is not None,
            )

            logger.info(
                "request completed",
                extra={
                    "endpoint": endpoint,
                    "method": method,
                    "status_code": status_code,
                    "duration_ms": duration_ms,
                },
            )

            if response is not None:
                response.headers["X-Request-ID"] = request_id

            clear_request_context()


def _extract_tenant_slug(request: Request) -> str | None:
    edge_slug = getattr(request.state, "edge_tenant_slug", None)
    if edge_slug:
        return edge_slug
    auth = getattr(request.state, "auth", None)
    tenant = getattr(auth, "tenant", None)
    return getattr(tenant, "slug", None)


def _extract_user_id(request: Request) -> str | None:
    auth = getattr(request.state, "auth", None)
    user = getattr(auth, "user", None)
    if user is None:
        return None
    user_id = getattr(user, "id", None)
    return str(user_id) if user_id is not None else None

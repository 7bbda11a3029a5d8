from __future__ import annotations

from fastapi import APIRouter, Depends

from saasresto.core.metrics import request_metrics
from saasresto.deps import require_owner
from saasresto.services.session_manager import AuthResult

router = APIRouter(prefix="/internal/metrics", tags=["internal-metrics"])


@router.get("/tenants")
async def tenant_metrics(auth: AuthResult = Depends(require_owner)):
    """Counters for the caller's own tenant only."""
    return {"tenant": auth.tenant.slug, "metrics": request_metrics.snapshot_tenant(auth.tenant.slug)}

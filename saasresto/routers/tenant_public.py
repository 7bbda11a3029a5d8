from __future__ import annotations

from fastapi import APIRouter, Depends

from saasresto.core.errors import TenantNotResolved
from saasresto.deps import get_credential_store
from saasresto.services.credential_store import CredentialStore

router = APIRouter(prefix="/t", tags=["tenant-public"])


async def _tenant_page(tenant_slug: str, path: str, store: CredentialStore) -> dict:
    tenant = await store.get_tenant_by_slug(tenant_slug)
    if tenant is None:
        raise TenantNotResolved()
    return {"slug": tenant.slug, "name": tenant.name, "path": f"/{path}" if path else "/"}


@router.get("/{tenant_slug}")
async def tenant_home(tenant_slug: str, store: CredentialStore = Depends(get_credential_store)):
    return await _tenant_page(tenant_slug, "", store)


@router.get("/{tenant_slug}/{path:path}")
async def tenant_path(tenant_slug: str, path: str, store: CredentialStore = Depends(get_credential_store)):
    return await _tenant_page(tenant_slug, path, store)

"""Admin app page surface.

Rendering lives in the frontend; these endpoints expose the context a page
needs and apply the page-style auth redirects.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from saasresto.deps import get_optional_auth, require_auth_ui, require_owner_ui
from saasresto.services.hostname import resolve_tenant_slug_from_request, tenant_public_url
from saasresto.services.session_manager import AuthResult

router = APIRouter(prefix="/app", tags=["pages"])


def _page_context(auth: AuthResult, page: str) -> dict:
    return {
        "page": page,
        "user": {"id": auth.user.id, "name": auth.user.name, "email": auth.user.email, "role": auth.user.role},
        "tenant": {
            "id": auth.tenant.id,
            "name": auth.tenant.name,
            "slug": auth.tenant.slug,
            "public_url": tenant_public_url(auth.tenant.slug),
        },
    }


@router.get("/login")
async def login_page(request: Request, auth: AuthResult | None = Depends(get_optional_auth)):
    return {
        "page": "login",
        "tenant_slug": resolve_tenant_slug_from_request(request.headers),
        "authenticated": auth is not None,
    }


@router.get("")
async def app_home(auth: AuthResult = Depends(require_auth_ui)):
    return _page_context(auth, "home")


@router.get("/team")
async def team_page(auth: AuthResult = Depends(require_owner_ui)):
    return _page_context(auth, "team")

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, EmailStr, Field, field_validator

from saasresto.deps import get_credential_store, require_owner
from saasresto.models.user import ROLE_STAFF, USER_ROLES, User
from saasresto.services import passwords
from saasresto.services.credential_store import CredentialStore, DuplicateRecordError
from saasresto.services.session_manager import AuthResult

router = APIRouter(prefix="/api/app/team", tags=["team"])
logger = logging.getLogger(__name__)

MEMBER_NOT_FOUND_MESSAGE = "User not found"


def _check_role(value: str) -> str:
    normalized = (value or "").strip().upper()
    if normalized not in USER_ROLES:
        raise ValueError("Role must be OWNER or STAFF.")
    return normalized


class TeamMemberCreate(BaseModel):
    email: EmailStr
    password: str
    name: str | None = Field(default=None, max_length=80)
    role: str = ROLE_STAFF

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        error = passwords.team_password_error(value)
        if error:
            raise ValueError(error)
        return value

    @field_validator("role")
    @classmethod
    def validate_role(cls, value: str) -> str:
        return _check_role(value)


class TeamMemberUpdate(BaseModel):
    name: str | None = Field(default=None, max_length=80)
    role: str | None = None

    @field_validator("role")
    @classmethod
    def validate_role(cls, value: str | None) -> str | None:
        return _check_role(value) if value is not None else None


class TeamMemberRead(BaseModel):
    id: int
    email: str
    name: str | None
    role: str
    created_at: datetime | None

    @classmethod
    def from_user(cls, user: User) -> "TeamMemberRead":
        return cls(id=user.id, email=user.email, name=user.name, role=user.role, created_at=user.created_at)


async def _get_member_or_404(store: CredentialStore, tenant_id: int, user_id: int) -> User:
    member = await store.get_user(tenant_id, user_id)
    if member is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=MEMBER_NOT_FOUND_MESSAGE)
    return member


@router.get("", response_model=list[TeamMemberRead])
async def list_members(
    auth: AuthResult = Depends(require_owner),
    store: CredentialStore = Depends(get_credential_store),
):
    members = await store.list_users(auth.tenant.id)
    return [TeamMemberRead.from_user(member) for member in members]


@router.post("", response_model=TeamMemberRead, status_code=status.HTTP_201_CREATED)
async def create_member(
    payload: TeamMemberCreate,
    auth: AuthResult = Depends(require_owner),
    store: CredentialStore = Depends(get_credential_store),
):
    if await store.get_user_by_email(auth.tenant.id, payload.email) is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already in use")

    password_hash = await passwords.hash_password_async(payload.password)
    try:
        member = await store.create_user(
            tenant_id=auth.tenant.id,
            email=payload.email,
            password_hash=password_hash,
            name=payload.name,
            role=payload.role,
        )
    except DuplicateRecordError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already in use") from exc

    logger.info("[TEAM] member created tenant=%s user_id=%s role=%s", auth.tenant.slug, member.id, member.role)
    return TeamMemberRead.from_user(member)


@router.get("/{user_id}", response_model=TeamMemberRead)
async def get_member(
    user_id: int,
    auth: AuthResult = Depends(require_owner),
    store: CredentialStore = Depends(get_credential_store),
):
    return TeamMemberRead.from_user(await _get_member_or_404(store, auth.tenant.id, user_id))


@router.patch("/{user_id}", response_model=TeamMemberRead)
async def update_member(
    user_id: int,
    payload: TeamMemberUpdate,
    auth: AuthResult = Depends(require_owner),
    store: CredentialStore = Depends(get_credential_store),
):
    member = await _get_member_or_404(store, auth.tenant.id, user_id)
    if payload.role is not None and member.id == auth.user.id and payload.role != member.role:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot change your own role")

    member = await store.update_user(member, name=payload.name, role=payload.role)
    return TeamMemberRead.from_user(member)


@router.delete("/{user_id}")
async def delete_member(
    user_id: int,
    auth: AuthResult = Depends(require_owner),
    store: CredentialStore = Depends(get_credential_store),
):
    member = await _get_member_or_404(store, auth.tenant.id, user_id)
    if member.id == auth.user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot delete yourself")

    await store.delete_user(auth.tenant.id, member.id)
    logger.info("[TEAM] member removed tenant=%s user_id=%s", auth.tenant.slug, member.id)
    return {"success": True}

"""Persistence operations for tenants, users, sessions and reset tokens.

Every mutating method commits its own unit of work. Compound operations
(password change, password reset, member removal) run in a single
transaction and roll back as a whole on failure.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from saasresto.models.password_reset_token import PasswordResetToken
from saasresto.models.session import UserSession
from saasresto.models.tenant import Tenant
from saasresto.models.user import ROLE_OWNER, ROLE_STAFF, User

logger = logging.getLogger(__name__)


class DuplicateRecordError(Exception):
    """A unique constraint (tenant slug, tenant+email) was violated."""


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class CredentialStore:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _commit(self) -> None:
        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            raise DuplicateRecordError(str(exc.orig)) from exc
        except Exception:
            await self.db.rollback()
            raise

    # Tenants

    async def get_tenant_by_slug(self, slug: str) -> Tenant | None:
        result = await self.db.execute(select(Tenant).where(Tenant.slug == slug.lower()))
        return result.scalars().first()

    async def slug_exists(self, slug: str) -> bool:
        result = await self.db.execute(select(func.count(Tenant.id)).where(Tenant.slug == slug.lower()))
        return bool(result.scalar_one())

    async def create_tenant_with_owner(
        self,
        *,
        slug: str,
        name: str,
        email: str,
        password_hash: str,
        owner_name: str | None = None,
    ) -> tuple[Tenant, User]:
        tenant = Tenant(slug=slug.lower(), name=name)
        self.db.add(tenant)
        try:
            await self.db.flush()
            owner = User(
                tenant_id=tenant.id,
                email=normalize_email(email),
                name=owner_name,
                password_hash=password_hash,
                role=ROLE_OWNER,
            )
            self.db.add(owner)
            await self.db.flush()
        except IntegrityError as exc:
            await self.db.rollback()
            raise DuplicateRecordError(str(exc.orig)) from exc
        await self._commit()
        return tenant, owner

    # Users

    async def get_user_by_email(self, tenant_id: int, email: str) -> User | None:
        result = await self.db.execute(
            select(User).where(User.tenant_id == tenant_id, User.email == normalize_email(email))
        )
        return result.scalars().first()

    async def get_user(self, tenant_id: int, user_id: int) -> User | None:
        result = await self.db.execute(select(User).where(User.tenant_id == tenant_id, User.id == user_id))
        return result.scalars().first()

    async def list_users(self, tenant_id: int) -> list[User]:
        result = await self.db.execute(
            select(User).where(User.tenant_id == tenant_id).order_by(User.created_at.desc(), User.id.desc())
        )
        return list(result.scalars().all())

    async def create_user(
        self,
        *,
        tenant_id: int,
        email: str,
        password_hash: str,
        name: str | None = None,
        role: str = ROLE_STAFF,
    ) -> User:
        user = User(
            tenant_id=tenant_id,
            email=normalize_email(email),
            name=name,
            password_hash=password_hash,
            role=role,
        )
        self.db.add(user)
        await self._commit()
        return user

    async def update_user(self, user: User, *, name: str | None = None, role: str | None = None) -> User:
        if name is not None:
            user.name = name
        if role is not None:
            user.role = role
        await self._commit()
        return user

    async def delete_user(self, tenant_id: int, user_id: int) -> None:
        """Remove a member together with their sessions and reset tokens."""
        await self.db.execute(
            delete(UserSession).where(UserSession.tenant_id == tenant_id, UserSession.user_id == user_id)
        )
        await self.db.execute(
            delete(PasswordResetToken).where(
                PasswordResetToken.tenant_id == tenant_id, PasswordResetToken.user_id == user_id
            )
        )
        await self.db.execute(delete(User).where(User.tenant_id == tenant_id, User.id == user_id))
        await self._commit()

    # Sessions

    async def insert_session(
        self,
        *,
        tenant_id: int,
        user_id: int,
        token_hash: str,
        expires_at: datetime,
        user_agent: str | None = None,
        ip_address: str | None = None,
    ) -> UserSession:
        record = UserSession(
            tenant_id=tenant_id,
            user_id=user_id,
            token_hash=token_hash,
            expires_at=expires_at,
            user_agent=user_agent,
            ip_address=ip_address,
        )
        self.db.add(record)
        await self._commit()
        return record

    async def find_session_by_token_hash(self, token_hash: str) -> UserSession | None:
        """Session joined with its user and tenant."""
        result = await self.db.execute(select(UserSession).where(UserSession.token_hash == token_hash))
        return result.scalars().first()

    async def delete_session(self, session_id: int) -> None:
        await self.db.execute(delete(UserSession).where(UserSession.id == session_id))
        await self._commit()

    async def delete_session_by_token_hash(self, token_hash: str) -> int:
        result = await self.db.execute(delete(UserSession).where(UserSession.token_hash == token_hash))
        await self._commit()
        return result.rowcount or 0

    async def delete_sessions_for_user(self, user_id: int, excluding_session_id: int | None = None) -> int:
        stmt = delete(UserSession).where(UserSession.user_id == user_id)
        if excluding_session_id is not None:
            stmt = stmt.where(UserSession.id != excluding_session_id)
        result = await self.db.execute(stmt)
        await self._commit()
        return result.rowcount or 0

    async def change_password_keeping_session(
        self, *, tenant_id: int, user_id: int, password_hash: str, keep_session_id: int
    ) -> int:
        """Update the hash and drop every other session of the user in one transaction."""
        await self.db.execute(
            update(User).where(User.tenant_id == tenant_id, User.id == user_id).values(password_hash=password_hash)
        )
        result = await self.db.execute(
            delete(UserSession).where(
                UserSession.tenant_id == tenant_id,
                UserSession.user_id == user_id,
                UserSession.id != keep_session_id,
            )
        )
        await self._commit()
        return result.rowcount or 0

    # Password reset tokens

    async def insert_password_reset_token(
        self, *, tenant_id: int, user_id: int, token_hash: str, expires_at: datetime
    ) -> PasswordResetToken:
        record = PasswordResetToken(
            tenant_id=tenant_id,
            user_id=user_id,
            token_hash=token_hash,
            expires_at=expires_at,
        )
        self.db.add(record)
        await self._commit()
        return record

    async def find_usable_reset_token(self, token_hash: str, now: datetime) -> PasswordResetToken | None:
        result = await self.db.execute(
            select(PasswordResetToken).where(
                PasswordResetToken.token_hash == token_hash,
                PasswordResetToken.used_at.is_(None),
                PasswordResetToken.expires_at > now,
            )
        )
        return result.scalars().first()

    async def consume_reset_token(self, *, token_id: int, user_id: int, password_hash: str, now: datetime) -> bool:
        """Mark the token used, set the new hash and drop all sessions, all or nothing.

        Returns False when the token was consumed concurrently.
        """
        marked = await self.db.execute(
            update(PasswordResetToken)
            .where(PasswordResetToken.id == token_id, PasswordResetToken.used_at.is_(None))
            .values(used_at=now)
        )
        if not marked.rowcount:
            await self.db.rollback()
            return False
        await self.db.execute(update(User).where(User.id == user_id).values(password_hash=password_hash))
        await self.db.execute(delete(UserSession).where(UserSession.user_id == user_id))
        await self._commit()
        return True

#!/usr/bin/env python3
"""Create the demo restaurant with an owner and a staff member."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT))

from saasresto.core.config import IS_PROD  # noqa: E402
from saasresto.core.database import Base, SessionLocal, engine  # noqa: E402
from saasresto.models.user import ROLE_OWNER, ROLE_STAFF  # noqa: E402
from saasresto.services.credential_store import CredentialStore  # noqa: E402
from saasresto.services.hostname import tenant_public_url  # noqa: E402
from saasresto.services.passwords import hash_password_async  # noqa: E402
import saasresto.models  # noqa: E402,F401

DEMO_SLUG = "demo"
DEMO_NAME = "Restaurant Demo"
DEMO_OWNER = ("demo@demo.com", "Demo12345!", "Demo Owner", ROLE_OWNER)
DEMO_STAFF = ("staff@demo.com", "Staff12345!", "Demo Staff", ROLE_STAFF)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed the demo tenant.")
    parser.add_argument(
        "--force",
        action="store_true",
        help="Allow running against a production environment",
    )
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create missing tables from the models first (development databases)",
    )
    return parser.parse_args()


async def seed(create_tables: bool) -> None:
    if create_tables:
        async with engine.begin() as connection:
            await connection.run_sync(Base.metadata.create_all)

    async with SessionLocal() as db:
        store = CredentialStore(db)
        tenant = await store.get_tenant_by_slug(DEMO_SLUG)
        if tenant is None:
            email, password, name, _ = DEMO_OWNER
            tenant, _owner = await store.create_tenant_with_owner(
                slug=DEMO_SLUG,
                name=DEMO_NAME,
                email=email,
                password_hash=await hash_password_async(password),
                owner_name=name,
            )
            print(f"Tenant created: {tenant.slug}")
        else:
            print(f"Tenant exists: {tenant.slug}")

        for email, password, name, role in (DEMO_OWNER, DEMO_STAFF):
            if await store.get_user_by_email(tenant.id, email) is not None:
                print(f"User exists: {email}")
                continue
            await store.create_user(
                tenant_id=tenant.id,
                email=email,
                password_hash=await hash_password_async(password),
                name=name,
                role=role,
            )
            print(f"User created: {email} ({role})")

        print(f"Public menu: {tenant_public_url(tenant.slug)}")

    await engine.dispose()


def main() -> int:
    args = parse_args()
    if IS_PROD and not args.force:
        print("Refusing to seed demo data in production. Use --force to override.")
        return 1

    asyncio.run(seed(args.create_tables))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

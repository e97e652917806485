#!/usr/bin/env python3
"""
Provision the platform super admin. The API has no route that creates one.
Run after migrations:

    SUPER_ADMIN_PASSWORD=... python scripts/create_super_admin.py admin@example.com "Platform Admin"
"""

import asyncio
import os
import sys
from uuid import uuid4

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from wsm.auth.credentials import hash_password
from wsm.database import async_session_maker, engine
from wsm.models import User
from wsm.models.enums import Role
from wsm.storage.repositories import get_user_by_email


async def create_super_admin(email: str, full_name: str, password: str) -> None:
    email = email.strip().lower()
    async with async_session_maker() as session:
        if await get_user_by_email(session, None, email):
            print(f"Super admin {email} already exists.")
            return
        session.add(
            User(
                id=str(uuid4()),
                tenant_id=None,
                email=email,
                password_hash=hash_password(password),
                full_name=full_name,
                role=Role.SUPER_ADMIN.value,
                is_active=True,
            )
        )
        await session.commit()
    await engine.dispose()
    print(f"Created super admin {email}.")


def main() -> None:
    if len(sys.argv) != 3:
        print(__doc__)
        sys.exit(2)
    password = os.environ.get("SUPER_ADMIN_PASSWORD", "")
    if len(password) < 8:
        print("SUPER_ADMIN_PASSWORD must be set to at least 8 characters.")
        sys.exit(2)
    asyncio.run(create_super_admin(sys.argv[1], sys.argv[2], password))


if __name__ == "__main__":
    main()

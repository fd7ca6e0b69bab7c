#!/usr/bin/env python3
"""
Create the first admin account.

Self-registration only produces unverified medical staff, so a fresh
deployment needs one admin seeded from the command line.

Usage:
    python scripts/create_admin.py <username> <email> "Full Name"
    python scripts/create_admin.py <username> <email> "Full Name" --phone +2348000000000

The password is read from the ADMIN_PASSWORD environment variable or prompted.
"""

import argparse
import asyncio
import getpass
import os
import sys
from datetime import UTC, datetime

import dotenv
from sqlalchemy import insert, or_, select

from mri_records.core.permissions import Role
from mri_records.core.security import get_password_hash
from mri_records.database import AsyncSessionLocal, engine
from mri_records.models.users import users

dotenv.load_dotenv()


async def create_admin(username: str, email: str, full_name: str, password: str, phone: str | None) -> int:
    """Insert a verified admin with download rights and return its id."""
    async with AsyncSessionLocal() as session:
        existing = await session.execute(
            select(users.c.id).where(or_(users.c.username == username, users.c.email == email))
        )
        if existing.first() is not None:
            raise ValueError(f"User {username!r} or email {email!r} already exists")

        now = datetime.now(UTC)
        result = await session.execute(
            insert(users)
            .values(
                username=username,
                email=email,
                password_hash=get_password_hash(password),
                full_name=full_name,
                phone_number=phone,
                role=Role.ADMIN.value,
                is_verified=True,
                can_download=True,
                created_at=now,
                updated_at=now,
            )
            .returning(users.c.id)
        )
        user_id = result.scalar_one()
        await session.commit()

    await engine.dispose()
    return user_id


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Create an admin account",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("username", help="Login name")
    parser.add_argument("email", help="Email address")
    parser.add_argument("full_name", help="Display name")
    parser.add_argument("--phone", help="Phone number")
    args = parser.parse_args()

    password = os.getenv("ADMIN_PASSWORD") or getpass.getpass("Password: ")
    if len(password) < 8:
        print("Error: password must be at least 8 characters", file=sys.stderr)
        sys.exit(1)

    try:
        user_id = asyncio.run(
            create_admin(args.username, args.email, args.full_name, password, args.phone)
        )
    except ValueError as e:
        print(f"✗ {e}", file=sys.stderr)
        sys.exit(1)

    print(f"✓ Admin {args.username} created with id {user_id}")


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""
Create the first admin account.

Usage:
    python scripts/seed_admin.py --email admin@example.com --name "Ops Admin"

The password is read from ADMIN_PASSWORD or prompted for. Tables are
created first when they do not exist yet.
"""
import argparse
import asyncio
import getpass
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.core.database import create_all_tables, get_db_session  # noqa: E402
from app.core.exceptions import CourierError  # noqa: E402
from app.services.user_service import UserService  # noqa: E402


async def seed_admin(name: str, email: str, password: str) -> int:
    await create_all_tables()
    async with get_db_session() as db:
        user = await UserService(db).create_admin(name=name, email=email, password=password)
        return user.id


def main() -> int:
    parser = argparse.ArgumentParser(description="Create an admin user")
    parser.add_argument("--email", required=True)
    parser.add_argument("--name", default="Administrator")
    args = parser.parse_args()

    password = os.environ.get("ADMIN_PASSWORD") or getpass.getpass("Password: ")

    try:
        user_id = asyncio.run(seed_admin(args.name, args.email, password))
    except CourierError as e:
        print(f"ERROR: {e.message}")
        return 1

    print(f"Admin {args.email} created (id={user_id})")
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""Create the first administrator account.

Admins can only be created by other admins through the API, so a fresh
database needs one created out of band.

Usage (from backend/ directory):
    python scripts/create_admin.py admin@example.org --name "Site Admin"

The password is read from the ADMIN_PASSWORD environment variable, or
prompted for when unset.

Prerequisites:
    - DB is running and migrated (alembic upgrade head)
"""
import argparse
import asyncio
import getpass
import os
import sys
from pathlib import Path

# Windows: asyncpg requires SelectorEventLoop
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Allow imports from backend/app/
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.database import async_session_factory, engine
from app.exceptions import AppException, ValidationError
from app.services import admin_user_service


async def create_admin(email: str, password: str, full_name: str | None) -> int:
    async with async_session_factory() as session:
        try:
            user = await admin_user_service.create_admin_account(session, email, password, full_name)
            await session.commit()
        except ValidationError as exc:
            await session.rollback()
            print(f"ERROR: {exc.detail}")
            for error in exc.errors:
                print(f"  - {error}")
            return 1
        except AppException as exc:
            await session.rollback()
            print(f"ERROR: {exc.detail}")
            return 1
    print(f"Created admin: {user.email} (id={user.id})")
    return 0


async def main() -> int:
    parser = argparse.ArgumentParser(description="Create an administrator account")
    parser.add_argument("email")
    parser.add_argument("--name", default=None, help="Display name (defaults to the email local part)")
    args = parser.parse_args()

    password = os.environ.get("ADMIN_PASSWORD") or getpass.getpass("Password: ")
    try:
        return await create_admin(args.email, password, args.name)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))

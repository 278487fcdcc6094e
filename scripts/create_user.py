#!/usr/bin/env python3
"""
scripts/create_user.py

Provision a dashboard user directly in the database.

Usage:
  python scripts/create_user.py --email agent@example.com --name "Agent" --phone +91-80-46669001 [--admin]

Anything not passed on the command line is prompted for; the password is always
read without echo unless given with --password.
"""
import argparse
import asyncio
import getpass
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app.config import get_settings  # noqa: E402
from app.db.db import connect_db, disconnect_db  # noqa: E402
from app.storage.users_store import DuplicateUserError, provision_user  # noqa: E402
from app.utils.logging import get_logger  # noqa: E402

settings = get_settings()
logger = get_logger("call-center.scripts.create_user", settings.LOG_LEVEL)


def _ask(value, prompt):
    return value if value else input(prompt).strip()


async def run(args) -> int:
    email = _ask(args.email, "Enter email: ")
    password = args.password or getpass.getpass("Enter password: ")
    name = _ask(args.name, "Enter name: ")
    phone = _ask(args.phone, "Enter assigned phone number (e.g., +91-80-46669001): ")
    is_admin = args.admin if args.admin else input("Is admin? (y/n): ").strip().lower() == "y"

    await connect_db(args.db_url or settings.DB_URL)
    try:
        user = await provision_user(name, email, password, phone, is_admin=is_admin)
    except DuplicateUserError as exc:
        print(f"\n{exc}")
        return 1
    finally:
        await disconnect_db()

    print("\n========================================")
    print("USER CREATED SUCCESSFULLY")
    print("========================================")
    print(f"Email: {user['email']}")
    print(f"Name: {user['name']}")
    print(f"Phone Number: {user['assigned_phone_number']}")
    print(f"Role: {user['role']}")
    print("========================================\n")
    return 0


def main():
    parser = argparse.ArgumentParser(description="Create a dashboard user")
    parser.add_argument("--email")
    parser.add_argument("--password")
    parser.add_argument("--name")
    parser.add_argument("--phone", help="Assigned phone number")
    parser.add_argument("--admin", action="store_true")
    parser.add_argument("--db-url", default=None)
    args = parser.parse_args()

    try:
        sys.exit(asyncio.run(run(args)))
    except Exception:
        logger.exception("Failed to create user")
        sys.exit(1)


if __name__ == "__main__":
    main()

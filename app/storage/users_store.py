# app/storage/users_store.py
"""
User storage.

Exposes:
 - create_user(...)        insert; unique violations surface as store errors
 - get_user_by_email(email)
 - get_user_by_id(user_id)
 - get_user_by_phone(phone)
 - provision_user(...)     operator routine with friendly duplicate checks
 - public_user(user)       user dict without the password hash
"""
import logging
from typing import Any, Dict, Optional

from app.db.db import get_database
from app.models.db_models import users
from app.utils.dates import now_iso
from app.utils.security import hash_password

logger = logging.getLogger("call-center.storage.users")


class DuplicateUserError(ValueError):
    """Raised by provision_user when the email or phone number is already taken."""


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def create_user(
    name: str,
    email: str,
    password: str,
    assigned_phone_number: Optional[str] = None,
    role: str = "user",
) -> Dict[str, Any]:
    db = get_database()
    values = {
        "name": name,
        "email": normalize_email(email),
        "password": hash_password(password),
        "assigned_phone_number": assigned_phone_number or None,
        "role": role or "user",
        "created_at": now_iso(),
    }
    user_id = await db.execute(users.insert().values(**values))
    return await get_user_by_id(user_id)


async def get_user_by_email(email: str) -> Optional[Dict[str, Any]]:
    db = get_database()
    row = await db.fetch_one(users.select().where(users.c.email == normalize_email(email)))
    return dict(row) if row else None


async def get_user_by_id(user_id: Any) -> Optional[Dict[str, Any]]:
    db = get_database()
    try:
        user_id = int(user_id)
    except (TypeError, ValueError):
        return None
    row = await db.fetch_one(users.select().where(users.c.id == user_id))
    return dict(row) if row else None


async def get_user_by_phone(phone: str) -> Optional[Dict[str, Any]]:
    db = get_database()
    row = await db.fetch_one(users.select().where(users.c.assigned_phone_number == phone))
    return dict(row) if row else None


async def provision_user(
    name: str,
    email: str,
    password: str,
    assigned_phone_number: str,
    is_admin: bool = False,
) -> Dict[str, Any]:
    if await get_user_by_email(email):
        raise DuplicateUserError("Email already registered!")
    if await get_user_by_phone(assigned_phone_number):
        raise DuplicateUserError("Phone number already assigned!")
    user = await create_user(name, email, password, assigned_phone_number, "admin" if is_admin else "user")
    logger.info("Provisioned user %s (role=%s)", user["email"], user["role"])
    return user


def public_user(user: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in user.items() if k != "password"}

# app/utils/security.py
"""
Password hashing and bearer-token helpers.

Provides:
 - hash_password(password) -> bcrypt hash (str)
 - verify_password(password, hashed) -> bool
 - create_access_token(claims, secret=None, expires_hours=None) -> str
 - decode_access_token(token, secret=None) -> dict  (raises jwt.PyJWTError)

Tokens are HS256 JWTs carrying the user's identity and role.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
import jwt

from app.config import get_settings

settings = get_settings()

ALGORITHM = "HS256"
BCRYPT_ROUNDS = 10
# bcrypt only looks at the first 72 bytes; newer releases raise instead of truncating
BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt(BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(_password_bytes(password), hashed.encode("utf-8"))
    except ValueError:
        # malformed stored hash
        return False


def create_access_token(claims: Dict[str, Any], secret: Optional[str] = None, expires_hours: Optional[int] = None) -> str:
    if secret is None:
        secret = settings.JWT_SECRET
    if expires_hours is None:
        expires_hours = settings.JWT_EXPIRES_HOURS
    now = datetime.now(timezone.utc)
    payload = dict(claims)
    payload.update({"iat": now, "exp": now + timedelta(hours=expires_hours)})
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def decode_access_token(token: str, secret: Optional[str] = None) -> Dict[str, Any]:
    """Verify signature and expiry. Raises jwt.PyJWTError on any failure."""
    if secret is None:
        secret = settings.JWT_SECRET
    return jwt.decode(token, secret, algorithms=[ALGORITHM])

# app/api/auth.py
import logging
from typing import Any, Dict, Optional

import jwt
from fastapi import APIRouter, Depends, Header, HTTPException

from app.models.schemas import LoginIn, RegisterIn
from app.storage import users_store
from app.utils.security import create_access_token, decode_access_token, verify_password

logger = logging.getLogger("call-center.api.auth")
router = APIRouter()


async def get_current_user(authorization: Optional[str] = Header(None)) -> Dict[str, Any]:
    """
    Bearer-token gate for protected routes.

    Missing token -> 401, bad signature or expired token -> 403. On success returns the
    decoded identity (userId, email, phoneNumber, role).
    """
    parts = (authorization or "").split(" ")
    token = parts[1] if len(parts) > 1 else None
    if not token:
        raise HTTPException(status_code=401, detail="Access denied - No token provided")
    try:
        return decode_access_token(token)
    except jwt.PyJWTError:
        raise HTTPException(status_code=403, detail="Invalid or expired token")


def _user_summary(user: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": user["id"],
        "email": user["email"],
        "name": user["name"],
        "phoneNumber": user.get("assigned_phone_number"),
        "role": user["role"],
    }


@router.post("/register", status_code=201, summary="Register a user")
async def register(payload: RegisterIn):
    if not payload.email or not payload.password or not payload.name:
        raise HTTPException(status_code=400, detail="Name, email, and password are required")

    if await users_store.get_user_by_email(payload.email):
        raise HTTPException(status_code=400, detail="User with this email already exists")

    try:
        user = await users_store.create_user(
            name=payload.name,
            email=payload.email,
            password=payload.password,
            assigned_phone_number=payload.assignedPhoneNumber,
            role=payload.role or "user",
        )
    except Exception:
        logger.exception("Registration error")
        raise HTTPException(status_code=500, detail="Registration failed")

    logger.info("New user registered: %s", user["email"])
    return {"message": "User registered successfully", "userId": user["id"]}


@router.post("/login", summary="Exchange credentials for a bearer token")
async def login(payload: LoginIn):
    if not payload.email or not payload.password:
        raise HTTPException(status_code=400, detail="Email and password are required")

    try:
        user = await users_store.get_user_by_email(payload.email)
    except Exception:
        logger.exception("Login error")
        raise HTTPException(status_code=500, detail="Login failed")

    if not user or not verify_password(payload.password, user["password"]):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    token = create_access_token(
        {
            "userId": user["id"],
            "email": user["email"],
            "phoneNumber": user.get("assigned_phone_number"),
            "role": user["role"],
        }
    )
    logger.info("User logged in: %s", user["email"])
    return {"token": token, "user": _user_summary(user)}


@router.get("/verify", summary="Check a bearer token")
async def verify(identity: Dict[str, Any] = Depends(get_current_user)):
    try:
        user = await users_store.get_user_by_id(identity.get("userId"))
    except Exception:
        logger.exception("Verification error")
        raise HTTPException(status_code=500, detail="Verification failed")
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return {"valid": True, "user": _user_summary(user)}


@router.get("/me", summary="Current user profile")
async def me(identity: Dict[str, Any] = Depends(get_current_user)):
    try:
        user = await users_store.get_user_by_id(identity.get("userId"))
    except Exception:
        logger.exception("Fetch user error")
        raise HTTPException(status_code=500, detail="Failed to fetch user info")
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return users_store.public_user(user)

"""
Authentication utilities

Two independent schemes:
- Grid explorer: Firebase ID tokens (verified with firebase_admin)
- Tutoring portal: short-lived HS256 tokens issued after PIN verification
"""
import logging
import os
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, Header
from firebase_admin import auth as firebase_auth
from jose import JWTError, jwt
from dotenv import load_dotenv

from .clients import get_firebase_app

load_dotenv()
load_dotenv('../.env')

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"
ROLE_TUTEE = "tutee"
ROLE_ADMIN = "admin"


def _bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise HTTPException(status_code=401, detail="Authorization header required")

    if not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Invalid authorization header format")

    return authorization.replace("Bearer ", "", 1)


# ==================== Grid explorer (Firebase) ====================

async def get_current_user(authorization: Optional[str] = Header(None)):
    """
    Validate a Firebase ID token and return the signed-in user

    Args:
        authorization: Bearer token from Authorization header

    Returns:
        dict: id, email, name

    Raises:
        HTTPException: If the token is missing, malformed, expired or revoked
    """
    token = _bearer_token(authorization)
    app = get_firebase_app()

    try:
        decoded = firebase_auth.verify_id_token(token, app=app)
    except Exception as e:
        logger.warning(f"⚠️ [auth] Firebase token rejected: {e}")
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    return {
        "id": decoded["uid"],
        "email": decoded.get("email"),
        "name": decoded.get("name"),
    }


# ==================== Tutoring portal (PIN tokens) ====================

def _jwt_secret() -> str:
    secret = os.getenv("PORTAL_JWT_SECRET")
    if not secret:
        raise HTTPException(status_code=500, detail="Portal authentication is not configured")
    return secret


def create_portal_token(subject: str, role: str = ROLE_TUTEE, minutes: Optional[int] = None) -> str:
    """
    Issue a portal token after a successful PIN check

    Args:
        subject: Tutee id (or "admin")
        role: "tutee" or "admin"
        minutes: Lifetime (default PORTAL_TOKEN_MINUTES or 120)
    """
    lifetime = minutes or int(os.getenv("PORTAL_TOKEN_MINUTES", "120"))
    now = datetime.now(timezone.utc)
    claims = {
        "sub": subject,
        "role": role,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=lifetime)).timestamp()),
    }
    return jwt.encode(claims, _jwt_secret(), algorithm=JWT_ALGORITHM)


async def get_portal_user(authorization: Optional[str] = Header(None)):
    """
    Validate a portal token

    Returns:
        dict: tutee_id (None for admin), role
    """
    token = _bearer_token(authorization)

    try:
        claims = jwt.decode(token, _jwt_secret(), algorithms=[JWT_ALGORITHM])
    except JWTError:
        raise HTTPException(status_code=401, detail="Could not validate credentials")

    role = claims.get("role")
    if role not in (ROLE_TUTEE, ROLE_ADMIN):
        raise HTTPException(status_code=401, detail="Could not validate credentials")

    return {
        "tutee_id": claims.get("sub") if role == ROLE_TUTEE else None,
        "role": role,
    }


def require_admin(user: dict):
    """
    Check if the portal user is the admin

    Raises:
        HTTPException: If user is not the admin
    """
    if user.get("role") != ROLE_ADMIN:
        raise HTTPException(status_code=403, detail="Admin access required")


def require_tutee_access(user: dict, tutee_id: str):
    """Allow the admin, or the tutee the token was issued for"""
    if user.get("role") == ROLE_ADMIN:
        return
    if user.get("tutee_id") != tutee_id:
        raise HTTPException(status_code=403, detail="Not allowed to access this tutee")


async def get_admin_user(user: dict = Depends(get_portal_user)):
    """Dependency form of require_admin"""
    require_admin(user)
    return user

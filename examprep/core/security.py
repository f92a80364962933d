# examprep/core/security.py
"""
Authentication guards
Password hashing, JWT issuing and the role checks used by every router
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

import bcrypt
from fastapi import Depends, Header, HTTPException
from jose import JWTError, jwt
from motor.motor_asyncio import AsyncIOMotorDatabase

from examprep.core import config
from examprep.core.database import get_db

logger = logging.getLogger(__name__)

ROLE_STUDENT = "student"
ROLE_ADMIN = "admin"
ROLE_SUBADMIN = "subadmin"
ADMIN_ROLES = (ROLE_ADMIN, ROLE_SUBADMIN)


class UserContext:
    """
    Authenticated caller resolved from a bearer token
    """
    def __init__(self, user_id: str, role: str, email: Optional[str] = None, name: Optional[str] = None):
        self.user_id = user_id
        self.role = role
        self.email = email
        self.name = name

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    def __repr__(self):
        return f"UserContext(user_id={self.user_id!r}, role={self.role!r})"


# ==================== PASSWORDS ====================

def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=config.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed hash in storage
        return False


# ==================== TOKENS ====================

def create_access_token(
    subject: str,
    role: str,
    extra: Optional[dict] = None,
    expires_hours: Optional[int] = None
) -> str:
    if expires_hours is None:
        expires_hours = config.ADMIN_TOKEN_EXPIRE_HOURS if role in ADMIN_ROLES else config.STUDENT_TOKEN_EXPIRE_HOURS
    now = datetime.utcnow()
    payload = {
        "sub": subject,
        "role": role,
        "iat": now,
        "exp": now + timedelta(hours=expires_hours),
    }
    if extra:
        payload.update(extra)
    return jwt.encode(payload, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or Expired Token")


def extract_bearer_token(authorization: Optional[str]) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Token missing or malformed")
    token = authorization.split(" ", 1)[1].strip()
    if not token:
        raise HTTPException(status_code=401, detail="Token missing or malformed")
    return token


def verify_token(authorization: str = Header(None)) -> dict:
    """Decode the bearer token of a request (signature + expiry)"""
    payload = decode_token(extract_bearer_token(authorization))
    if not payload.get("sub") or not payload.get("role"):
        raise HTTPException(status_code=401, detail="Invalid or Expired Token")
    return payload


def _context_from_payload(payload: dict) -> UserContext:
    return UserContext(
        user_id=payload["sub"],
        role=payload["role"],
        email=payload.get("email"),
        name=payload.get("name"),
    )


# ==================== DEPENDENCIES ====================

async def get_current_user(
    payload: dict = Depends(verify_token),
    db: AsyncIOMotorDatabase = Depends(get_db)
) -> UserContext:
    """
    Any authenticated caller.
    Student tokens must still map to an existing account; admin tokens are
    trusted as issued.
    """
    if payload["role"] in ADMIN_ROLES:
        return _context_from_payload(payload)

    user = await db.users.find_one({"user_id": payload["sub"]})
    if not user:
        raise HTTPException(status_code=401, detail="User not found")

    return UserContext(
        user_id=user["user_id"],
        role=user.get("role", ROLE_STUDENT),
        email=user.get("email"),
        name=user.get("name"),
    )


async def get_current_student(user: UserContext = Depends(get_current_user)) -> UserContext:
    if user.role != ROLE_STUDENT:
        raise HTTPException(status_code=403, detail="Student account required")
    return user


def permit_roles(*roles: str):
    """Build a dependency that only lets the given roles through"""
    allowed = set(roles)

    def guard(payload: dict = Depends(verify_token)) -> UserContext:
        if payload["role"] not in allowed:
            raise HTTPException(status_code=403, detail="Access denied. Insufficient permissions")
        return _context_from_payload(payload)

    return guard


admin_auth = permit_roles(ROLE_ADMIN, ROLE_SUBADMIN)
admin_only = permit_roles(ROLE_ADMIN)


def optional_auth(authorization: str = Header(None)) -> Optional[UserContext]:
    """Resolve the caller when a valid token is present, otherwise continue as guest"""
    if not authorization:
        return None
    try:
        return _context_from_payload(verify_token(authorization))
    except HTTPException:
        logger.debug("Optional auth: invalid token, continuing as guest")
        return None

# backend/sstdb/security.py

"""
Security helpers for the SST backend.

Responsibilities:
- Admin password verification (Argon2id)
- JWT access token creation and decoding
- FastAPI dependencies for the two roles: admin and visitor

There is a single administrator configured through the environment;
visitors get a read-only token without credentials.
"""

from __future__ import annotations

import hmac
import os
from datetime import datetime, timedelta, timezone
from typing import Optional

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHash, VerificationError, VerifyMismatchError
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt

# ---------------------------------------------------------------------------
# CONFIG
# ---------------------------------------------------------------------------

# In production, ALWAYS override these via environment variables.
SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME_IN_PRODUCTION")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

try:
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(
        os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "480")
    )
except ValueError:
    ACCESS_TOKEN_EXPIRE_MINUTES = 480

ROLE_ADMIN = "admin"
ROLE_VISITOR = "visitor"
ROLES = {ROLE_ADMIN, ROLE_VISITOR}

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


# ---------------------------------------------------------------------------
# PASSWORD HASHING
# ---------------------------------------------------------------------------

_pwd_hasher = PasswordHasher(
    time_cost=int(os.getenv("ARGON2_TIME_COST", "3")),
    memory_cost=int(os.getenv("ARGON2_MEMORY_COST", "65536")),  # KiB (64MB)
    parallelism=int(os.getenv("ARGON2_PARALLELISM", "2")),
)


def get_password_hash(password: str) -> str:
    """Hash a password for the SST_ADMIN_PASSWORD_HASH variable (Argon2id)."""
    return _pwd_hasher.hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    if not plain_password or not hashed_password:
        return False
    try:
        return _pwd_hasher.verify(hashed_password, plain_password)
    except (VerifyMismatchError, VerificationError, InvalidHash):
        return False


def authenticate_admin(username: str, password: str) -> bool:
    """
    Check credentials against SST_ADMIN_USERNAME / SST_ADMIN_PASSWORD_HASH
    (read at call time). Admin login is disabled while no hash is set.
    """
    expected_user = os.getenv("SST_ADMIN_USERNAME", "admin")
    password_hash = os.getenv("SST_ADMIN_PASSWORD_HASH")
    if not password_hash:
        return False
    user_ok = hmac.compare_digest((username or "").strip(), expected_user)
    return verify_password(password, password_hash) and user_ok


# ---------------------------------------------------------------------------
# JWT TOKENS
# ---------------------------------------------------------------------------


def create_access_token(
    *,
    role: str,
    subject: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    if role not in ROLES:
        raise ValueError(f"Unknown role {role!r}")

    expire = datetime.now(timezone.utc) + (
        expires_delta
        if expires_delta is not None
        else timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode = {"sub": subject, "role": role, "exp": expire}
    return jwt.encode(to_encode, SECRET_KEY, algorithm=JWT_ALGORITHM)


# ---------------------------------------------------------------------------
# FASTAPI DEPENDENCIES
# ---------------------------------------------------------------------------


def _credentials_exception() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_role(token: str = Depends(oauth2_scheme)) -> str:
    """Decode the bearer token and return its role claim."""
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError:
        raise _credentials_exception()

    role = payload.get("role")
    if role not in ROLES:
        raise _credentials_exception()
    return role


def require_admin(role: str = Depends(get_current_role)) -> str:
    if role != ROLE_ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the administrator may change compliance data.",
        )
    return role

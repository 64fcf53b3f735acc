# backend/sstdb/apps/accounts/router.py

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from sstdb import security
from . import schemas

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/login",
    response_model=schemas.Token,
    summary="Administrator login",
)
def login(payload: schemas.LoginRequest):
    """
    Admin login with the single configured username and password.

    Returns a bearer token whose `role` claim is `admin`.
    """
    if not security.authenticate_admin(payload.username, payload.password):
        logger.warning("Rejected admin login", extra={"username": payload.username})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password.",
        )

    token = security.create_access_token(role=security.ROLE_ADMIN, subject=payload.username.strip())
    return schemas.Token(
        access_token=token,
        expires_in=security.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        role=security.ROLE_ADMIN,
    )


@router.post(
    "/visitor",
    response_model=schemas.Token,
    summary="Read-only visitor access",
)
def visitor_login():
    token = security.create_access_token(role=security.ROLE_VISITOR, subject="visitor")
    return schemas.Token(
        access_token=token,
        expires_in=security.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        role=security.ROLE_VISITOR,
    )

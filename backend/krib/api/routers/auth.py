# krib/api/routers/auth.py
import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from jose import JWTError

from krib.core.enums import UserRole
from krib.core.security import (
    create_access_token,
    create_refresh_token,
    token_claims,
    verify_password,
    verify_refresh_token,
)
from krib.db import crud_users
from krib.db.models import User
from krib.db.session import get_db
from krib.schemas.auth import RefreshRequest, Token
from krib.schemas.user import UserCreate, UserLogin, UserOut

logger = logging.getLogger(__name__)
router = APIRouter()


async def _issue_tokens(db: AsyncSession, user: User) -> Token:
    """
    Mint an access/refresh pair and persist the refresh token
    (older refresh tokens for the user are revoked).
    """
    claims = token_claims(user)
    access = create_access_token(claims)
    refresh = create_refresh_token(claims)
    await crud_users.save_refresh_token(db, user.id, refresh)
    return Token(
        access_token=access,
        refresh_token=refresh,
        user=UserOut.model_validate(user),
    )


@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
async def register(payload: UserCreate, db: AsyncSession = Depends(get_db)):
    existing = await crud_users.get_user_by_email(db, payload.email)
    if existing:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email exists")

    user = await crud_users.create_user(
        db=db,
        name=payload.name,
        email=payload.email,
        password=payload.password,
        phone=payload.phone,
        role=UserRole.HOST.value if payload.is_host else UserRole.GUEST.value,
    )
    logger.info("Registered user %s as %s", user.id, user.role)
    return await _issue_tokens(db, user)


@router.post("/login", response_model=Token)
async def login(payload: UserLogin, db: AsyncSession = Depends(get_db)):
    user = await crud_users.get_user_by_email(db, payload.email)
    if not user or not verify_password(payload.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account is suspended or inactive",
        )
    return await _issue_tokens(db, user)


@router.post("/refresh", response_model=Token)
async def refresh(body: RefreshRequest, db: AsyncSession = Depends(get_db)):
    token = body.token
    if not token:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing token")

    try:
        payload = verify_refresh_token(token)
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid refresh token",
        )

    if not await crud_users.is_refresh_token_active(db, token):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token revoked",
        )

    user = await crud_users.get_user(db, int(payload["user_id"]))
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    return await _issue_tokens(db, user)


@router.post("/logout")
async def logout(
    body: Optional[RefreshRequest] = Body(None),
    db: AsyncSession = Depends(get_db),
):
    # Frontend may not send a body
    token = body.token if body else None
    if token:
        await crud_users.revoke_refresh_token(db, token)
    return {"ok": True}

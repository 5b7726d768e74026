"""Authentication router: /api/auth/user endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from devquest.auth.dependencies import get_current_user
from devquest.auth.jwt import create_access_token
from devquest.auth.schemas import (
    AuthResponse,
    LoginRequest,
    RegisterRequest,
    UserEnvelope,
    UserListResponse,
    UserResponse,
)
from devquest.auth.service import authenticate_user, list_users, register_user
from devquest.config import get_settings
from devquest.database import get_session
from devquest.db.models import User

logger = structlog.get_logger()

router = APIRouter(prefix="/api/auth/user", tags=["Authentication"])


def _issue_token(user: User, message: str) -> AuthResponse:
    """Sign an access token for the user and wrap it with the profile."""
    settings = get_settings()
    return AuthResponse(
        message=message,
        user=UserResponse.from_user(user),
        access_token=create_access_token(user.id, user.role),
        token_type="bearer",
        expires_in=settings.jwt_access_token_expire_minutes * 60,
    )


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_session),
) -> AuthResponse:
    """Register with name, email, password and role."""
    user = await register_user(
        db,
        name=body.name,
        email=body.email,
        password=body.password,
        role=body.role,
    )
    await db.commit()
    return _issue_token(user, "User registered successfully.")


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_session),
) -> AuthResponse:
    """Login with email + password."""
    user = await authenticate_user(db, body.email, body.password)
    await db.commit()
    return _issue_token(user, "Login successful.")


@router.get("/me", response_model=UserEnvelope)
async def me(user: User = Depends(get_current_user)) -> UserEnvelope:
    """Get the authenticated user's profile, badges and counters."""
    return UserEnvelope(message="User fetched successfully.", user=UserResponse.from_user(user))


@router.get("/all", response_model=UserListResponse)
async def all_users(
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> UserListResponse:
    """List every registered user (password hashes are never returned)."""
    users = await list_users(db)
    return UserListResponse(
        message="Users fetched successfully.",
        count=len(users),
        users=[UserResponse.from_user(u) for u in users],
    )

"""
Authentication business logic.

Handles user lookup, registration and password login.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, select

from devquest.auth.password import (
    PasswordStrengthError,
    check_needs_rehash,
    hash_password,
    validate_password_strength,
    verify_password,
)
from devquest.db.models import User
from devquest.errors import NotFoundError, ValidationError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


# ---------------------------------------------------------------------------
# User queries
# ---------------------------------------------------------------------------


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    """Fetch a user by ID."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Fetch a user by email (case-insensitive)."""
    result = await db.execute(select(User).where(func.lower(User.email) == email.lower().strip()))
    return result.scalar_one_or_none()


async def require_user(db: AsyncSession, user_id: int, label: str = "User") -> User:
    """Fetch a user by ID or raise NotFoundError."""
    user = await get_user_by_id(db, user_id)
    if user is None:
        msg = f"{label} not found."
        raise NotFoundError(msg)
    return user


async def list_users(db: AsyncSession) -> list[User]:
    """All users, oldest first."""
    result = await db.execute(select(User).order_by(User.id))
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


async def register_user(
    db: AsyncSession,
    name: str,
    email: str,
    password: str,
    role: str,
) -> User:
    """
    Register a new user with email + password.

    Raises:
        ValidationError: If the email already exists or the password is too weak.
    """
    try:
        validate_password_strength(password)
    except PasswordStrengthError as e:
        raise ValidationError(str(e)) from e

    existing = await get_user_by_email(db, email)
    if existing is not None:
        msg = "Email already registered."
        raise ValidationError(msg)

    user = User(
        name=name.strip(),
        email=email.lower().strip(),
        password_hash=hash_password(password),
        role=role,
        xp=0,
        level=1,
        tasks_completed=0,
        badge_links=[],
        project_links=[],
    )
    db.add(user)
    await db.flush()
    logger.info("user_registered", user_id=user.id, role=role)
    return user


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


async def authenticate_user(db: AsyncSession, email: str, password: str) -> User:
    """
    Authenticate a user with email + password.

    Raises:
        NotFoundError: If no user has that email.
        ValidationError: If the password does not match.
    """
    user = await get_user_by_email(db, email)
    if user is None:
        msg = "User not found."
        raise NotFoundError(msg)

    if not verify_password(password, user.password_hash):
        logger.info("login_failed", user_id=user.id)
        msg = "Incorrect password."
        raise ValidationError(msg)

    if check_needs_rehash(user.password_hash):
        user.password_hash = hash_password(password)
        await db.flush()

    logger.info("login_succeeded", user_id=user.id)
    return user

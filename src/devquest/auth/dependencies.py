"""FastAPI authentication dependencies."""

from __future__ import annotations

import jwt
from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from devquest.auth.jwt import verify_token
from devquest.auth.service import get_user_by_id
from devquest.database import get_session
from devquest.db.models import User
from devquest.errors import AuthenticationError

_bearer = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> User:
    """
    Extract and verify the bearer JWT, return the User model.

    Raises AuthenticationError (401) when the header is missing, the token is
    invalid or expired, or the user no longer exists.
    """
    if credentials is None:
        msg = "No token provided."
        raise AuthenticationError(msg)

    try:
        payload = verify_token(credentials.credentials, expected_type="access")
        user_id = int(payload["sub"])
    except (jwt.InvalidTokenError, KeyError, ValueError) as e:
        msg = "Invalid or expired token."
        raise AuthenticationError(msg) from e

    user = await get_user_by_id(db, user_id)
    if user is None:
        msg = "User not found."
        raise AuthenticationError(msg)
    return user

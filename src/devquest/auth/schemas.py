"""Request/response schemas for authentication and user endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, EmailStr, Field, field_validator

from devquest.db.models import User
from devquest.gamification.schemas import BadgeResponse

Role = Literal["client", "pm", "developer"]


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Registration request. Every field is required."""

    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)
    role: Role

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Normalize email to lowercase."""
        return v.lower().strip()


class LoginRequest(BaseModel):
    """Login with email + password."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Normalize email to lowercase."""
        return v.lower().strip()


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """Full user profile including progression counters."""

    id: int
    name: str
    email: str
    role: str
    xp: int
    level: int
    tasks_completed: int
    badges: list[BadgeResponse] = []
    projects_involved: list[int] = []
    created_at: datetime | None = None

    @classmethod
    def from_user(cls, user: User) -> UserResponse:
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role,
            xp=user.xp,
            level=user.level,
            tasks_completed=user.tasks_completed,
            badges=[BadgeResponse.model_validate(b) for b in user.badges],
            projects_involved=user.projects_involved,
            created_at=user.created_at,
        )


class UserRef(BaseModel):
    """Populated reference to a user (name and email only)."""

    id: int
    name: str
    email: str

    @classmethod
    def from_user(cls, user: User | None) -> UserRef | None:
        if user is None:
            return None
        return cls(id=user.id, name=user.name, email=user.email)


class AuthResponse(BaseModel):
    message: str
    user: UserResponse
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class UserEnvelope(BaseModel):
    message: str
    user: UserResponse


class UserListResponse(BaseModel):
    message: str
    count: int
    users: list[UserResponse]

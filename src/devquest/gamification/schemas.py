"""Pydantic request/response models for the badge catalog."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

CriteriaType = Literal["tasksCompleted", "level", "xp"]


class BadgeCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=128)
    description: str = ""
    icon: str = Field("", max_length=256)
    criteria_type: CriteriaType
    criteria_value: int = Field(..., gt=0)


class BadgeUpdateRequest(BaseModel):
    """Partial update: only fields that are sent are applied."""

    title: str | None = Field(None, min_length=1, max_length=128)
    description: str | None = None
    icon: str | None = Field(None, max_length=256)
    criteria_type: CriteriaType | None = None
    criteria_value: int | None = Field(None, gt=0)


class BadgeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str
    icon: str
    criteria_type: str
    criteria_value: int
    created_at: datetime | None = None


class BadgeEnvelope(BaseModel):
    message: str
    badge: BadgeResponse


class BadgeListResponse(BaseModel):
    message: str
    count: int
    badges: list[BadgeResponse]


class MessageResponse(BaseModel):
    message: str

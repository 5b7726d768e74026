"""Badge catalog API endpoints under /api/badge."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from devquest.auth.dependencies import get_current_user
from devquest.database import get_session
from devquest.db.models import User
from devquest.gamification.badge_service import (
    create_badge,
    delete_badge,
    get_badge,
    list_badges,
    update_badge,
)
from devquest.gamification.schemas import (
    BadgeCreateRequest,
    BadgeEnvelope,
    BadgeListResponse,
    BadgeResponse,
    BadgeUpdateRequest,
    MessageResponse,
)
from devquest.policies import authorize

router = APIRouter(prefix="/api/badge", tags=["Badges"])


@router.post("", response_model=BadgeEnvelope, status_code=201)
async def create_badge_endpoint(
    body: BadgeCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> BadgeEnvelope:
    """Add a badge definition."""
    authorize("badge.manage", user)
    badge = await create_badge(
        db,
        title=body.title,
        criteria_type=body.criteria_type,
        criteria_value=body.criteria_value,
        description=body.description,
        icon=body.icon,
    )
    await db.commit()
    return BadgeEnvelope(message="Badge created successfully", badge=BadgeResponse.model_validate(badge))


@router.get("", response_model=BadgeListResponse)
async def list_badges_endpoint(
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> BadgeListResponse:
    """All badge definitions, newest first."""
    badges = await list_badges(db)
    return BadgeListResponse(
        message="Badges fetched successfully",
        count=len(badges),
        badges=[BadgeResponse.model_validate(b) for b in badges],
    )


@router.get("/{badge_id}", response_model=BadgeEnvelope)
async def get_badge_endpoint(
    badge_id: int,
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> BadgeEnvelope:
    """Single badge definition."""
    badge = await get_badge(db, badge_id)
    return BadgeEnvelope(message="Badge fetched successfully", badge=BadgeResponse.model_validate(badge))


@router.put("/{badge_id}", response_model=BadgeEnvelope)
async def update_badge_endpoint(
    badge_id: int,
    body: BadgeUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> BadgeEnvelope:
    """Partially update a badge definition."""
    authorize("badge.manage", user)
    badge = await update_badge(db, badge_id, body.model_dump(exclude_unset=True))
    await db.commit()
    return BadgeEnvelope(message="Badge updated successfully", badge=BadgeResponse.model_validate(badge))


@router.delete("/{badge_id}", response_model=MessageResponse)
async def delete_badge_endpoint(
    badge_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> MessageResponse:
    """Delete a badge; users holding it lose the reference."""
    authorize("badge.manage", user)
    await delete_badge(db, badge_id)
    await db.commit()
    return MessageResponse(message="Badge deleted successfully")

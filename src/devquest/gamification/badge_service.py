"""Badge catalog service: create, list, fetch, update and delete definitions."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from devquest.db.models import BADGE_CRITERIA_TYPES, Badge, UserBadge
from devquest.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def _validate_criteria(criteria_type: str | None, criteria_value: int | None) -> None:
    if criteria_type is not None and criteria_type not in BADGE_CRITERIA_TYPES:
        msg = f"criteria_type must be one of {', '.join(BADGE_CRITERIA_TYPES)}."
        raise ValidationError(msg)
    if criteria_value is not None and criteria_value <= 0:
        msg = "criteria_value must be a positive number."
        raise ValidationError(msg)


async def create_badge(
    db: AsyncSession,
    title: str,
    criteria_type: str,
    criteria_value: int,
    description: str = "",
    icon: str = "",
) -> Badge:
    """Add a badge definition to the catalog."""
    if not title or not criteria_type or not criteria_value:
        msg = "Missing required fields."
        raise ValidationError(msg)
    _validate_criteria(criteria_type, criteria_value)

    badge = Badge(
        title=title.strip(),
        description=description or "",
        icon=icon or "",
        criteria_type=criteria_type,
        criteria_value=criteria_value,
    )
    db.add(badge)
    await db.flush()
    logger.info("Badge created: %s (%s >= %s)", badge.title, criteria_type, criteria_value)
    return badge


async def list_badges(db: AsyncSession) -> list[Badge]:
    """All badges, newest first."""
    result = await db.execute(select(Badge).order_by(Badge.created_at.desc(), Badge.id.desc()))
    return list(result.scalars().all())


async def get_badge(db: AsyncSession, badge_id: int) -> Badge:
    """Fetch a badge or raise NotFoundError."""
    result = await db.execute(select(Badge).where(Badge.id == badge_id))
    badge = result.scalar_one_or_none()
    if badge is None:
        msg = "Badge not found"
        raise NotFoundError(msg)
    return badge


async def get_badge_by_title(db: AsyncSession, title: str) -> Badge | None:
    result = await db.execute(select(Badge).where(Badge.title == title))
    return result.scalars().first()


async def update_badge(db: AsyncSession, badge_id: int, updates: dict[str, Any]) -> Badge:
    """Apply a partial update to a badge definition."""
    badge = await get_badge(db, badge_id)
    _validate_criteria(updates.get("criteria_type"), updates.get("criteria_value"))
    for key, value in updates.items():
        if value is not None:
            setattr(badge, key, value)
    await db.flush()
    return badge


async def delete_badge(db: AsyncSession, badge_id: int) -> None:
    """Remove a badge and every user's holding of it."""
    badge = await get_badge(db, badge_id)
    removed = await db.execute(delete(UserBadge).where(UserBadge.badge_id == badge.id))
    await db.delete(badge)
    await db.flush()
    logger.info("Badge deleted: %s (removed from %s users)", badge.title, removed.rowcount)

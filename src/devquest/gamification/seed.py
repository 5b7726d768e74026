"""Default badge catalog, seeded idempotently at startup."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from devquest.db.models import Badge
from devquest.gamification.badge_service import get_badge_by_title

logger = logging.getLogger(__name__)

BADGE_SEED_DATA: list[dict] = [
    # XP milestones
    {
        "title": "First Steps",
        "description": "Earn your first 50 XP",
        "icon": "🌱",
        "criteria_type": "xp",
        "criteria_value": 50,
    },
    {
        "title": "Rising Star",
        "description": "Reach 500 XP",
        "icon": "⭐",
        "criteria_type": "xp",
        "criteria_value": 500,
    },
    {
        "title": "XP Hoarder",
        "description": "Reach 2,500 XP",
        "icon": "💎",
        "criteria_type": "xp",
        "criteria_value": 2500,
    },
    # Task milestones
    {
        "title": "Task Starter",
        "description": "Complete your first task",
        "icon": "✅",
        "criteria_type": "tasksCompleted",
        "criteria_value": 1,
    },
    {
        "title": "Task Runner",
        "description": "Complete 10 tasks",
        "icon": "🏃",
        "criteria_type": "tasksCompleted",
        "criteria_value": 10,
    },
    {
        "title": "Task Machine",
        "description": "Complete 50 tasks",
        "icon": "🤖",
        "criteria_type": "tasksCompleted",
        "criteria_value": 50,
    },
    # Level milestones
    {
        "title": "Level Climber",
        "description": "Reach level 2",
        "icon": "🧗",
        "criteria_type": "level",
        "criteria_value": 2,
    },
    {
        "title": "Veteran",
        "description": "Reach level 5",
        "icon": "🎖️",
        "criteria_type": "level",
        "criteria_value": 5,
    },
]


async def seed_badges(db: AsyncSession) -> int:
    """Insert any missing default badges (matched by title). Returns the number inserted."""
    inserted = 0
    for data in BADGE_SEED_DATA:
        if await get_badge_by_title(db, data["title"]) is not None:
            continue
        db.add(Badge(**data))
        inserted += 1

    await db.commit()
    if inserted:
        logger.info("Seeded %d badge definitions", inserted)
    return inserted

"""Progression engine: XP accrual, badge unlocking and level-up.

Badge criteria are evaluated through a single rule table so every caller
checks xp, level and tasksCompleted the same way.

Two level policies are supported (``DEVQUEST_LEVEL_POLICY``):

* ``badge_tiers``: level = 1 + badges // badges_per_level, never decreasing.
* ``legacy_increment``: every ``update_progress`` call that observes at least
  ``badges_per_level`` held badges adds exactly one level, so levels keep
  accumulating with each completion.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from devquest.auth.service import get_user_by_id
from devquest.config import Settings, get_settings
from devquest.database import session_scope
from devquest.db.models import Badge, Project, User, UserBadge

logger = structlog.get_logger()

CRITERIA_SELECTORS: dict[str, Callable[[User], int]] = {
    "xp": lambda user: user.xp,
    "level": lambda user: user.level,
    "tasksCompleted": lambda user: user.tasks_completed,
}


@dataclass
class ProgressResult:
    """Outcome of one ``update_progress`` call."""

    user_id: int
    old_level: int
    new_level: int
    unlocked: list[str] = field(default_factory=list)

    @property
    def leveled_up(self) -> bool:
        return self.new_level > self.old_level


# ---------------------------------------------------------------------------
# Pure rules
# ---------------------------------------------------------------------------


def criteria_met(user: User, badge: Badge) -> bool:
    """True when the user's counter for the badge's criteria reaches its threshold."""
    selector = CRITERIA_SELECTORS.get(badge.criteria_type)
    if selector is None:
        return False
    return selector(user) >= badge.criteria_value


def compute_level(badge_count: int, badges_per_level: int = 3) -> int:
    """Level reached by holding ``badge_count`` badges under the tiered policy."""
    return 1 + badge_count // badges_per_level


def next_level(
    current_level: int,
    badge_count: int,
    policy: str = "badge_tiers",
    badges_per_level: int = 3,
) -> int:
    """Level after one progression pass."""
    if policy == "legacy_increment":
        return current_level + 1 if badge_count >= badges_per_level else current_level
    return max(current_level, compute_level(badge_count, badges_per_level))


def unlock_badges(user: User, catalog: Iterable[Badge]) -> list[Badge]:
    """Attach every catalog badge the user qualifies for and does not hold yet.

    Returns the newly unlocked badges. Held badges are never removed.
    """
    held = user.badge_ids
    unlocked: list[Badge] = []
    for badge in catalog:
        if badge.id in held or not criteria_met(user, badge):
            continue
        user.badge_links.append(UserBadge(badge_id=badge.id, badge=badge))
        held.add(badge.id)
        unlocked.append(badge)
    return unlocked


def award_xp(user: User, amount: int, reason: str = "") -> None:
    """Credit XP to a user. XP never decreases."""
    if amount < 0:
        msg = f"XP award must be non-negative, got {amount}"
        raise ValueError(msg)
    user.xp += amount
    logger.info("xp_awarded", user_id=user.id, amount=amount, reason=reason or "unspecified")


# ---------------------------------------------------------------------------
# Store-backed operations
# ---------------------------------------------------------------------------


async def load_catalog(db: AsyncSession) -> list[Badge]:
    """All badges, lowest threshold first."""
    result = await db.execute(select(Badge).order_by(Badge.criteria_value.asc(), Badge.id.asc()))
    return list(result.scalars().all())


async def update_progress(
    db: AsyncSession,
    user_id: int,
    settings: Settings | None = None,
) -> ProgressResult | None:
    """Unlock earned badges and apply the level rule for one user.

    Returns None when the user does not exist.
    """
    settings = settings or get_settings()
    user = await get_user_by_id(db, user_id)
    if user is None:
        logger.warning("progression_skipped", user_id=user_id, reason="user_not_found")
        return None

    catalog = await load_catalog(db)
    old_level = user.level
    unlocked = unlock_badges(user, catalog)

    if settings.level_policy == "legacy_increment":
        user.level = next_level(user.level, len(user.badge_links), "legacy_increment", settings.badges_per_level)
        if user.level != old_level:
            unlocked += unlock_badges(user, catalog)
    else:
        # Level badges can unlock further tiers; iterate until stable
        while True:
            level = next_level(user.level, len(user.badge_links), "badge_tiers", settings.badges_per_level)
            if level == user.level:
                break
            user.level = level
            unlocked += unlock_badges(user, catalog)

    await db.flush()

    for badge in unlocked:
        logger.info("badge_unlocked", user_id=user.id, badge=badge.title)
    if user.level != old_level:
        logger.info("level_up", user_id=user.id, old_level=old_level, new_level=user.level)

    return ProgressResult(
        user_id=user.id,
        old_level=old_level,
        new_level=user.level,
        unlocked=[b.title for b in unlocked],
    )


def completion_award(project: Project, settings: Settings | None = None) -> int:
    """XP each person receives when ``project`` is completed."""
    settings = settings or get_settings()
    return project.xp_per_task or settings.default_project_completion_xp


def distribute_project_xp(project: Project, settings: Settings | None = None) -> list[User]:
    """Flat completion award to the PM and every member of a project.

    Each person receives ``completion_award(project)`` (``xp_per_task``, falling
    back to the configured default when unset or zero) exactly once. Returns
    the recipients.
    """
    amount = completion_award(project, settings)

    recipients: list[User] = []
    seen: set[int] = set()
    for user in ([project.pm] if project.pm else []) + project.members:
        if user.id in seen:
            continue
        seen.add(user.id)
        award_xp(user, amount, reason=f"project {project.id} completed")
        recipients.append(user)

    project.xp_awarded_at = datetime.now(timezone.utc)
    return recipients


async def update_progress_safely(user_ids: Iterable[int]) -> list[ProgressResult]:
    """Run ``update_progress`` for each user in its own session.

    Progression is a best-effort side effect of completions: a failure is
    logged and rolled back without affecting the completion that triggered it.
    """
    results: list[ProgressResult] = []
    for user_id in user_ids:
        try:
            async with session_scope() as db:
                result = await update_progress(db, user_id)
                await db.commit()
        except Exception:
            logger.exception("progression_failed", user_id=user_id)
            continue
        if result is not None:
            results.append(result)
    return results

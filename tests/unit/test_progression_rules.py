"""Pure progression rules: criteria table, level policies, unlocks and XP awards."""

import pytest

from devquest.config import Settings
from devquest.db.models import Badge, Project, ProjectMember, User
from devquest.gamification.progression import (
    CRITERIA_SELECTORS,
    award_xp,
    completion_award,
    compute_level,
    criteria_met,
    distribute_project_xp,
    next_level,
    unlock_badges,
)


def _user(user_id: int = 1, xp: int = 0, level: int = 1, tasks_completed: int = 0, role: str = "developer") -> User:
    return User(
        id=user_id,
        name=f"user{user_id}",
        email=f"user{user_id}@example.com",
        password_hash="x",
        role=role,
        xp=xp,
        level=level,
        tasks_completed=tasks_completed,
        badge_links=[],
        project_links=[],
    )


def _badge(badge_id: int, criteria_type: str, value: int) -> Badge:
    return Badge(id=badge_id, title=f"{criteria_type}-{value}", criteria_type=criteria_type, criteria_value=value)


class TestCriteriaTable:
    def test_covers_every_criteria_type(self):
        assert set(CRITERIA_SELECTORS) == {"xp", "level", "tasksCompleted"}

    def test_xp_threshold_inclusive(self):
        assert criteria_met(_user(xp=50), _badge(1, "xp", 50))
        assert not criteria_met(_user(xp=49), _badge(1, "xp", 50))

    def test_level_threshold(self):
        assert criteria_met(_user(level=2), _badge(1, "level", 2))

    def test_tasks_completed_threshold(self):
        assert criteria_met(_user(tasks_completed=10), _badge(1, "tasksCompleted", 10))
        assert not criteria_met(_user(tasks_completed=9), _badge(1, "tasksCompleted", 10))

    def test_unknown_criteria_never_met(self):
        assert not criteria_met(_user(xp=1000), _badge(1, "streak", 1))


class TestLevelPolicies:
    @pytest.mark.parametrize(
        ("badges", "expected"),
        [(0, 1), (2, 1), (3, 2), (5, 2), (6, 3), (9, 4)],
    )
    def test_compute_level(self, badges: int, expected: int):
        assert compute_level(badges) == expected

    def test_tiers_never_decrease(self):
        assert next_level(5, 3, "badge_tiers") == 5

    def test_tiers_raise_to_badge_tier(self):
        assert next_level(1, 6, "badge_tiers") == 3

    def test_legacy_increments_once_per_call(self):
        assert next_level(1, 3, "legacy_increment") == 2
        assert next_level(2, 3, "legacy_increment") == 3

    def test_legacy_requires_three_badges(self):
        assert next_level(4, 2, "legacy_increment") == 4

    def test_custom_badges_per_level(self):
        assert next_level(1, 4, "badge_tiers", badges_per_level=2) == 3


class TestUnlockBadges:
    def test_unlocks_qualifying_badges(self):
        user = _user(xp=60, tasks_completed=1)
        catalog = [_badge(1, "xp", 50), _badge(2, "tasksCompleted", 1), _badge(3, "xp", 500)]
        unlocked = unlock_badges(user, catalog)
        assert [b.id for b in unlocked] == [1, 2]
        assert user.badge_ids == {1, 2}

    def test_unlock_is_idempotent(self):
        user = _user(xp=60)
        catalog = [_badge(1, "xp", 50)]
        unlock_badges(user, catalog)
        assert unlock_badges(user, catalog) == []
        assert len(user.badge_links) == 1

    def test_held_badges_are_never_removed(self):
        user = _user(xp=60)
        unlock_badges(user, [_badge(1, "xp", 50)])
        user.xp = 0
        unlock_badges(user, [_badge(1, "xp", 50)])
        assert user.badge_ids == {1}


class TestAwardXp:
    def test_adds_xp(self):
        user = _user(xp=10)
        award_xp(user, 40, reason="test")
        assert user.xp == 50

    def test_zero_is_allowed(self):
        user = _user(xp=10)
        award_xp(user, 0)
        assert user.xp == 10

    def test_negative_rejected(self):
        user = _user(xp=10)
        with pytest.raises(ValueError, match="non-negative"):
            award_xp(user, -5)
        assert user.xp == 10


class TestDistributeProjectXp:
    def _project(self, pm: User, members: list[User], xp_per_task: int | None = None) -> Project:
        return Project(
            id=7,
            title="P",
            status="completed",
            pm=pm,
            pm_id=pm.id,
            xp_per_task=xp_per_task,
            member_links=[ProjectMember(user_id=m.id, user=m) for m in members],
        )

    def test_default_award_to_pm_and_members(self):
        pm = _user(1, role="pm")
        devs = [_user(2), _user(3)]
        project = self._project(pm, devs)
        recipients = distribute_project_xp(project, Settings(default_project_completion_xp=50))
        assert [u.id for u in recipients] == [1, 2, 3]
        assert [u.xp for u in (pm, *devs)] == [50, 50, 50]
        assert project.xp_awarded_at is not None

    def test_xp_per_task_overrides_default(self):
        pm = _user(1, role="pm")
        project = self._project(pm, [_user(2)], xp_per_task=120)
        distribute_project_xp(project, Settings())
        assert pm.xp == 120

    def test_zero_xp_per_task_falls_back_to_default(self):
        pm = _user(1, role="pm")
        project = self._project(pm, [], xp_per_task=0)
        distribute_project_xp(project, Settings(default_project_completion_xp=50))
        assert pm.xp == 50

    def test_pm_listed_as_member_is_paid_once(self):
        pm = _user(1, role="pm")
        project = self._project(pm, [pm])
        recipients = distribute_project_xp(project, Settings(default_project_completion_xp=50))
        assert len(recipients) == 1
        assert pm.xp == 50

    @pytest.mark.parametrize(("xp_per_task", "expected"), [(None, 50), (0, 50), (75, 75)])
    def test_completion_award_matches_payout(self, xp_per_task: int | None, expected: int):
        pm = _user(1, role="pm")
        project = self._project(pm, [], xp_per_task=xp_per_task)
        settings = Settings(default_project_completion_xp=50)
        assert completion_award(project, settings) == expected
        distribute_project_xp(project, settings)
        assert pm.xp == expected

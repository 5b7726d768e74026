"""update_progress against a real session: unlocks, level policies, best-effort wrapper."""

from sqlalchemy.ext.asyncio import AsyncSession

from devquest.config import Settings
from devquest.db.models import Badge, User
from devquest.gamification.progression import update_progress, update_progress_safely


async def _make_user(db: AsyncSession, xp: int = 0, tasks_completed: int = 0) -> User:
    user = User(
        name="Dana Dev",
        email="dana@example.com",
        password_hash="x",
        role="developer",
        xp=xp,
        level=1,
        tasks_completed=tasks_completed,
        badge_links=[],
        project_links=[],
    )
    db.add(user)
    await db.flush()
    return user


async def _make_badges(db: AsyncSession, definitions: list[tuple[str, str, int]]) -> None:
    for title, criteria_type, value in definitions:
        db.add(Badge(title=title, criteria_type=criteria_type, criteria_value=value))
    await db.flush()


THREE_XP_BADGES = [("Bronze", "xp", 10), ("Silver", "xp", 20), ("Gold", "xp", 30)]


class TestUpdateProgress:
    async def test_unknown_user_returns_none(self, db_session: AsyncSession):
        assert await update_progress(db_session, 999, Settings()) is None

    async def test_unlocks_xp_badge(self, db_session: AsyncSession):
        user = await _make_user(db_session, xp=50)
        await _make_badges(db_session, [("First Steps", "xp", 50), ("Rising Star", "xp", 500)])

        result = await update_progress(db_session, user.id, Settings())

        assert result is not None
        assert result.unlocked == ["First Steps"]
        assert [b.title for b in user.badges] == ["First Steps"]
        assert user.level == 1
        assert not result.leveled_up

    async def test_second_call_unlocks_nothing(self, db_session: AsyncSession):
        user = await _make_user(db_session, xp=50)
        await _make_badges(db_session, [("First Steps", "xp", 50)])

        await update_progress(db_session, user.id, Settings())
        result = await update_progress(db_session, user.id, Settings())

        assert result.unlocked == []
        assert len(user.badge_links) == 1

    async def test_badge_tiers_grants_level_badges_in_same_call(self, db_session: AsyncSession):
        user = await _make_user(db_session, xp=30)
        await _make_badges(db_session, [*THREE_XP_BADGES, ("Level Climber", "level", 2)])

        result = await update_progress(db_session, user.id, Settings(level_policy="badge_tiers"))

        assert result.old_level == 1
        assert result.new_level == 2
        assert "Level Climber" in result.unlocked
        assert len(user.badge_links) == 4

    async def test_badge_tiers_is_stable_across_calls(self, db_session: AsyncSession):
        user = await _make_user(db_session, xp=30)
        await _make_badges(db_session, THREE_XP_BADGES)
        settings = Settings(level_policy="badge_tiers")

        await update_progress(db_session, user.id, settings)
        await update_progress(db_session, user.id, settings)

        assert user.level == 2

    async def test_legacy_increment_accumulates(self, db_session: AsyncSession):
        user = await _make_user(db_session, xp=30)
        await _make_badges(db_session, THREE_XP_BADGES)
        settings = Settings(level_policy="legacy_increment")

        first = await update_progress(db_session, user.id, settings)
        second = await update_progress(db_session, user.id, settings)

        assert (first.old_level, first.new_level) == (1, 2)
        assert (second.old_level, second.new_level) == (2, 3)

    async def test_legacy_increment_needs_three_badges(self, db_session: AsyncSession):
        user = await _make_user(db_session, xp=20)
        await _make_badges(db_session, THREE_XP_BADGES)

        result = await update_progress(db_session, user.id, Settings(level_policy="legacy_increment"))

        assert result.new_level == 1
        assert len(result.unlocked) == 2


class TestUpdateProgressSafely:
    async def test_commits_in_own_session(self, db_session: AsyncSession):
        user = await _make_user(db_session, tasks_completed=1)
        await _make_badges(db_session, [("Task Starter", "tasksCompleted", 1)])
        await db_session.commit()

        results = await update_progress_safely([user.id])

        assert [r.unlocked for r in results] == [["Task Starter"]]

    async def test_skips_missing_users(self, database: None):
        assert await update_progress_safely([12345]) == []

    async def test_failures_are_swallowed(self, database: None, monkeypatch):
        async def boom(*_args, **_kwargs):
            raise RuntimeError("db down")

        monkeypatch.setattr("devquest.gamification.progression.update_progress", boom)
        assert await update_progress_safely([1, 2]) == []

"""Initial schema: users, badges, projects and tasks.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Users ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id BIGSERIAL PRIMARY KEY,
            name VARCHAR(100) NOT NULL,
            email VARCHAR(320) UNIQUE NOT NULL,
            password_hash VARCHAR(256) NOT NULL,
            role VARCHAR(16) NOT NULL CHECK (role IN ('client', 'pm', 'developer')),
            xp INTEGER NOT NULL DEFAULT 0 CHECK (xp >= 0),
            level INTEGER NOT NULL DEFAULT 1 CHECK (level >= 1),
            tasks_completed INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE UNIQUE INDEX IF NOT EXISTS idx_users_email_lower ON users(LOWER(email))")

    # --- Badge catalog ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS badges (
            id BIGSERIAL PRIMARY KEY,
            title VARCHAR(128) NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            icon VARCHAR(256) NOT NULL DEFAULT '',
            criteria_type VARCHAR(32) NOT NULL
                CHECK (criteria_type IN ('tasksCompleted', 'level', 'xp')),
            criteria_value INTEGER NOT NULL CHECK (criteria_value > 0),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_badges (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            badge_id BIGINT NOT NULL REFERENCES badges(id) ON DELETE CASCADE,
            earned_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            UNIQUE(user_id, badge_id)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_user_badges_user ON user_badges(user_id)")

    # --- Projects ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS projects (
            id BIGSERIAL PRIMARY KEY,
            title VARCHAR(150) NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            client_id BIGINT NOT NULL REFERENCES users(id),
            pm_id BIGINT REFERENCES users(id),
            status VARCHAR(16) NOT NULL DEFAULT 'assigned'
                CHECK (status IN ('assigned', 'accepted', 'working', 'completed', 'cancelled')),
            start_date TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            deadline TIMESTAMPTZ,
            completed_at TIMESTAMPTZ,
            xp_awarded_at TIMESTAMPTZ,
            total_tasks INTEGER NOT NULL DEFAULT 0,
            completed_tasks INTEGER NOT NULL DEFAULT 0,
            percent_complete INTEGER NOT NULL DEFAULT 0,
            xp_budget INTEGER NOT NULL DEFAULT 0 CHECK (xp_budget >= 0),
            xp_per_task INTEGER,
            tags JSON NOT NULL DEFAULT '[]',
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_projects_client ON projects(client_id)")
    op.execute("CREATE INDEX IF NOT EXISTS idx_projects_pm ON projects(pm_id)")

    op.execute("""
        CREATE TABLE IF NOT EXISTS project_members (
            id BIGSERIAL PRIMARY KEY,
            project_id BIGINT NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            joined_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            UNIQUE(project_id, user_id)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_projects (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            project_id BIGINT NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
            UNIQUE(user_id, project_id)
        )
    """)

    # --- Tasks ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS tasks (
            id BIGSERIAL PRIMARY KEY,
            title VARCHAR(200) NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            project_id BIGINT NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
            created_by_id BIGINT NOT NULL REFERENCES users(id),
            assigned_to_id BIGINT REFERENCES users(id),
            status VARCHAR(16) NOT NULL DEFAULT 'assigned'
                CHECK (status IN ('assigned', 'accepted', 'in_progress', 'review', 'done')),
            xp INTEGER NOT NULL CHECK (xp >= 0),
            priority VARCHAR(16) NOT NULL DEFAULT 'medium'
                CHECK (priority IN ('low', 'medium', 'high', 'urgent')),
            deadline TIMESTAMPTZ,
            completed_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_tasks_project ON tasks(project_id, created_at DESC)")
    op.execute("CREATE INDEX IF NOT EXISTS idx_tasks_assignee ON tasks(assigned_to_id)")

    op.execute("""
        CREATE TABLE IF NOT EXISTS task_comments (
            id BIGSERIAL PRIMARY KEY,
            task_id BIGINT NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
            author_id BIGINT NOT NULL REFERENCES users(id),
            message TEXT NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_task_comments_task ON task_comments(task_id, created_at)")


def downgrade() -> None:
    for table in [
        "task_comments",
        "tasks",
        "user_projects",
        "project_members",
        "projects",
        "user_badges",
        "badges",
        "users",
    ]:
        op.execute(f"DROP TABLE IF EXISTS {table} CASCADE")

"""Project business logic.

Rules:
- Only clients create projects; the creator is the immutable owner
- A PM must have the ``pm`` role; assigning one resets status to ``assigned``
- Completion distributes the flat project XP award once
- Projects can be deleted only before a PM accepts them
"""

from __future__ import annotations

from datetime import datetime, timezone

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from devquest.auth.service import require_user
from devquest.db.models import Project, ProjectMember, Task, TaskComment, User, UserProject
from devquest.errors import NotFoundError, ValidationError
from devquest.gamification.progression import completion_award, distribute_project_xp
from devquest.policies import authorize
from devquest.projects.lifecycle import ensure_not_terminal, transition

logger = structlog.get_logger()


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def get_project(db: AsyncSession, project_id: int) -> Project:
    """Fetch a project with client, PM and members populated."""
    result = await db.execute(select(Project).where(Project.id == project_id))
    project = result.unique().scalar_one_or_none()
    if project is None:
        msg = "Project not found"
        raise NotFoundError(msg)
    return project


async def list_all_projects(db: AsyncSession) -> list[Project]:
    """Every project, newest first."""
    result = await db.execute(select(Project).order_by(Project.created_at.desc(), Project.id.desc()))
    return list(result.unique().scalars().all())


async def list_projects_for_user(db: AsyncSession, user: User) -> list[Project]:
    """Projects visible to the caller by role: owned, managed or staffed on."""
    query = select(Project).order_by(Project.created_at.desc(), Project.id.desc())
    if user.role == "client":
        query = query.where(Project.client_id == user.id)
    elif user.role == "pm":
        query = query.where(Project.pm_id == user.id)
    else:
        member_of = select(ProjectMember.project_id).where(ProjectMember.user_id == user.id)
        query = query.where(Project.id.in_(member_of))
    result = await db.execute(query)
    return list(result.unique().scalars().all())


# ---------------------------------------------------------------------------
# Membership helpers
# ---------------------------------------------------------------------------


def involve(user: User, project: Project) -> None:
    """Record the project in the user's ``projects_involved``."""
    if project.id not in user.projects_involved:
        user.project_links.append(UserProject(user_id=user.id, project_id=project.id))


def add_member(project: Project, developer: User) -> None:
    """Staff a developer on the project (idempotent)."""
    if developer.id not in project.member_ids:
        project.member_links.append(ProjectMember(user_id=developer.id, user=developer))
    involve(developer, project)


async def require_pm(db: AsyncSession, pm_id: int) -> User:
    pm = await require_user(db, pm_id, label="PM")
    if pm.role != "pm":
        msg = "Assigned user must have the 'pm' role."
        raise ValidationError(msg)
    return pm


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


async def create_project(
    db: AsyncSession,
    client: User,
    title: str,
    description: str = "",
    pm_id: int | None = None,
    deadline: datetime | None = None,
    tags: list[str] | None = None,
    xp_budget: int = 0,
    xp_per_task: int | None = None,
) -> Project:
    """Create a project owned by the calling client."""
    authorize("project.create", client)
    if not title or not title.strip():
        msg = "Title is required"
        raise ValidationError(msg)

    pm = await require_pm(db, pm_id) if pm_id is not None else None

    project = Project(
        title=title.strip(),
        description=(description or "").strip(),
        client_id=client.id,
        client=client,
        pm_id=pm.id if pm else None,
        pm=pm,
        status="assigned",
        deadline=deadline,
        tags=[t.strip() for t in (tags or []) if t.strip()],
        xp_budget=xp_budget,
        xp_per_task=xp_per_task,
        total_tasks=0,
        completed_tasks=0,
        percent_complete=0,
        member_links=[],
    )
    db.add(project)
    await db.flush()

    involve(client, project)
    if pm is not None:
        involve(pm, project)
    await db.flush()

    logger.info("project_created", project_id=project.id, client_id=client.id, pm_id=project.pm_id)
    return project


async def assign_pm(db: AsyncSession, user: User, project_id: int, pm_id: int) -> Project:
    """Set the project's PM and reset status to ``assigned``."""
    project = await get_project(db, project_id)
    authorize("project.assign_pm", user, project)
    ensure_not_terminal(project, "assign a PM to")

    pm = await require_pm(db, pm_id)
    project.pm_id = pm.id
    project.pm = pm
    project.status = "assigned"
    involve(pm, project)
    await db.flush()
    logger.info("project_pm_assigned", project_id=project.id, pm_id=pm.id)
    return project


async def accept_project(db: AsyncSession, user: User, project_id: int) -> Project:
    project = await get_project(db, project_id)
    authorize("project.accept", user, project)
    transition(project, "accepted", "accept")
    await db.flush()
    return project


async def start_project(db: AsyncSession, user: User, project_id: int) -> Project:
    project = await get_project(db, project_id)
    authorize("project.start", user, project)
    transition(project, "working", "start")
    await db.flush()
    return project


async def cancel_project(db: AsyncSession, user: User, project_id: int) -> Project:
    project = await get_project(db, project_id)
    authorize("project.cancel", user, project)
    transition(project, "cancelled", "cancel")
    await db.flush()
    logger.info("project_cancelled", project_id=project.id, by=user.id)
    return project


async def complete_project(db: AsyncSession, user: User, project_id: int) -> tuple[Project, list[User]]:
    """Mark the project completed and award the flat XP to the PM and members.

    A project that reached 100% through task completion is already
    ``completed`` but has not paid out yet, so it can still be completed here.
    Returns the project and the users who received XP.
    """
    project = await get_project(db, project_id)
    authorize("project.complete", user, project)
    if project.status == "cancelled":
        msg = "Cannot complete a cancelled project."
        raise ValidationError(msg)
    if project.xp_awarded_at is not None:
        msg = "Project XP already awarded."
        raise ValidationError(msg)

    if project.status != "completed" or project.completed_at is None:
        project.completed_at = datetime.now(timezone.utc)
    project.status = "completed"

    recipients = distribute_project_xp(project)
    await db.flush()
    logger.info(
        "project_completed",
        project_id=project.id,
        recipients=[u.id for u in recipients],
        xp_each=completion_award(project),
    )
    return project, recipients


async def delete_project(db: AsyncSession, user: User, project_id: int) -> None:
    """Delete a not-yet-accepted project together with its tasks."""
    project = await get_project(db, project_id)
    authorize("project.delete", user, project)
    if project.status != "assigned":
        msg = "Only projects that have not been accepted can be deleted."
        raise ValidationError(msg)

    task_ids = select(Task.id).where(Task.project_id == project.id)
    await db.execute(delete(TaskComment).where(TaskComment.task_id.in_(task_ids)))
    await db.execute(delete(Task).where(Task.project_id == project.id))
    await db.execute(delete(UserProject).where(UserProject.project_id == project.id))
    await db.delete(project)
    await db.flush()
    logger.info("project_deleted", project_id=project_id, by=user.id)

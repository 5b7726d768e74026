"""Task business logic.

Rules:
- Only the project's PM creates tasks; only the creating PM edits or deletes them
- Task XP may not exceed the project's XP budget
- Only the assignee moves a task through accepted -> in_progress -> review
- The project's PM completes a task; the assignee is credited its XP once
- Project counters (total/completed/percent) follow every create, complete and delete
- Tasks of a completed or cancelled project are frozen
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from devquest.auth.service import require_user
from devquest.config import get_settings
from devquest.db.models import Project, Task, TaskComment, User
from devquest.errors import NotFoundError, ValidationError
from devquest.gamification.progression import award_xp
from devquest.policies import authorize
from devquest.projects.lifecycle import ensure_not_terminal, recalculate_progress
from devquest.projects.service import add_member, get_project

logger = structlog.get_logger()

SORT_ORDERS = {
    "latest": (Task.created_at.desc(), Task.id.desc()),
    "oldest": (Task.created_at.asc(), Task.id.asc()),
    "xp-high": (Task.xp.desc(), Task.id.desc()),
    "xp-low": (Task.xp.asc(), Task.id.asc()),
}

EDITABLE_FIELDS = ("title", "description", "xp", "priority", "deadline")


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def get_task(db: AsyncSession, task_id: int) -> Task:
    """Fetch a task with project, creator, assignee and comments populated."""
    result = await db.execute(select(Task).where(Task.id == task_id))
    task = result.unique().scalar_one_or_none()
    if task is None:
        msg = "Task not found."
        raise NotFoundError(msg)
    return task


async def list_tasks(
    db: AsyncSession,
    status: str | None = None,
    project_id: int | None = None,
    assigned_to_id: int | None = None,
    page: int = 1,
    limit: int = 10,
    sort: str = "latest",
) -> tuple[list[Task], int]:
    """Filtered, sorted, paginated task list. Returns (tasks, total matching)."""
    filters = []
    if status is not None:
        filters.append(Task.status == status)
    if project_id is not None:
        filters.append(Task.project_id == project_id)
    if assigned_to_id is not None:
        filters.append(Task.assigned_to_id == assigned_to_id)

    total_result = await db.execute(select(func.count()).select_from(Task).where(*filters))
    total = total_result.scalar_one()

    offset = (page - 1) * limit
    result = await db.execute(
        select(Task)
        .where(*filters)
        .order_by(*SORT_ORDERS.get(sort, SORT_ORDERS["latest"]))
        .offset(offset)
        .limit(limit)
    )
    return list(result.unique().scalars().all()), total


async def list_tasks_for_project(db: AsyncSession, project_id: int) -> list[Task]:
    """Every task of a project, newest first."""
    await get_project(db, project_id)
    result = await db.execute(
        select(Task)
        .where(Task.project_id == project_id)
        .order_by(*SORT_ORDERS["latest"])
    )
    return list(result.unique().scalars().all())


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


async def require_developer(db: AsyncSession, user_id: int) -> User:
    developer = await require_user(db, user_id, label="Developer")
    if developer.role != "developer":
        msg = "Tasks can only be assigned to developers."
        raise ValidationError(msg)
    return developer


async def check_xp_budget(
    db: AsyncSession,
    project: Project,
    xp: int,
    exclude_task_id: int | None = None,
    label: str = "Task XP",
) -> None:
    """Reject ``xp`` above the project's budget.

    With ``enforce_cumulative_xp_budget`` the sum over every task of the
    project (``exclude_task_id`` replaced by ``xp``) is checked as well.
    """
    if xp < 0:
        msg = "XP must be a non-negative integer."
        raise ValidationError(msg)
    if xp > project.xp_budget:
        msg = f"{label} ({xp}) cannot exceed project XP budget ({project.xp_budget})."
        raise ValidationError(msg)

    if not get_settings().enforce_cumulative_xp_budget:
        return
    query = select(func.coalesce(func.sum(Task.xp), 0)).where(Task.project_id == project.id)
    if exclude_task_id is not None:
        query = query.where(Task.id != exclude_task_id)
    allocated = (await db.execute(query)).scalar_one()
    if allocated + xp > project.xp_budget:
        msg = f"Total task XP ({allocated + xp}) cannot exceed project XP budget ({project.xp_budget})."
        raise ValidationError(msg)


async def _assign(db: AsyncSession, task: Task, project: Project, developer_id: int | None) -> None:
    if developer_id is None:
        task.assigned_to_id = None
        task.assigned_to = None
        return
    developer = await require_developer(db, developer_id)
    task.assigned_to_id = developer.id
    task.assigned_to = developer
    add_member(project, developer)


# ---------------------------------------------------------------------------
# PM operations
# ---------------------------------------------------------------------------


async def create_task(
    db: AsyncSession,
    pm: User,
    title: str,
    project_id: int | None,
    xp: int | None,
    description: str = "",
    assigned_to_id: int | None = None,
    priority: str = "medium",
    deadline: datetime | None = None,
) -> Task:
    """Create a task on a project managed by ``pm``."""
    if not title or not title.strip() or project_id is None or xp is None:
        msg = "Title, project and XP are required."
        raise ValidationError(msg)

    project = await get_project(db, project_id)
    authorize("task.create", pm, project)
    ensure_not_terminal(project, "add tasks to")
    await check_xp_budget(db, project, xp)

    task = Task(
        title=title.strip(),
        description=(description or "").strip(),
        project_id=project.id,
        project=project,
        created_by_id=pm.id,
        created_by=pm,
        status="assigned",
        xp=xp,
        priority=priority,
        deadline=deadline,
        comments=[],
    )
    await _assign(db, task, project, assigned_to_id)
    db.add(task)

    project.total_tasks += 1
    recalculate_progress(project)
    await db.flush()

    logger.info(
        "task_created",
        task_id=task.id,
        project_id=project.id,
        assigned_to=task.assigned_to_id,
        xp=task.xp,
    )
    return task


async def edit_task(db: AsyncSession, pm: User, task_id: int, updates: dict[str, Any]) -> Task:
    """Shallow-merge ``updates`` into a task created by ``pm``.

    ``assigned_to`` (re)assigns the task under the same rules as creation;
    ``None`` unassigns it.
    """
    task = await get_task(db, task_id)
    authorize("task.edit", pm, task)
    ensure_not_terminal(task.project, "edit tasks on")

    if "title" in updates and (updates["title"] is None or not updates["title"].strip()):
        msg = "Title cannot be empty."
        raise ValidationError(msg)
    if updates.get("xp") is not None:
        await check_xp_budget(db, task.project, updates["xp"], exclude_task_id=task.id, label="Updated XP")

    for field_name in EDITABLE_FIELDS:
        if field_name in updates and updates[field_name] is not None:
            value = updates[field_name]
            setattr(task, field_name, value.strip() if isinstance(value, str) else value)
    if "assigned_to" in updates:
        await _assign(db, task, task.project, updates["assigned_to"])

    await db.flush()
    logger.info("task_edited", task_id=task.id, fields=sorted(updates))
    return task


async def complete_task(db: AsyncSession, pm: User, task_id: int) -> tuple[Task, User | None]:
    """Mark a task done, advance project progress and credit the assignee.

    Returns the task and the credited developer (None for unassigned tasks).
    Badge and level progression for the developer runs after the commit.
    """
    task = await get_task(db, task_id)
    authorize("task.complete", pm, task)
    if task.status == "done":
        msg = "Task already completed."
        raise ValidationError(msg)
    ensure_not_terminal(task.project, "complete tasks on")

    task.status = "done"
    task.completed_at = datetime.now(timezone.utc)

    project = task.project
    project.completed_tasks += 1
    recalculate_progress(project)

    developer = task.assigned_to
    if developer is not None:
        award_xp(developer, task.xp, reason=f"task {task.id} completed")
        developer.tasks_completed += 1

    await db.flush()
    logger.info(
        "task_completed",
        task_id=task.id,
        project_id=project.id,
        developer_id=developer.id if developer else None,
        xp=task.xp,
        percent_complete=project.percent_complete,
    )
    return task, developer


async def delete_task(db: AsyncSession, pm: User, task_id: int) -> None:
    """Delete a task and resynchronise its project's counters."""
    task = await get_task(db, task_id)
    authorize("task.delete", pm, task)
    ensure_not_terminal(task.project, "delete tasks from")

    project = task.project
    project.total_tasks = max(0, project.total_tasks - 1)
    if task.status == "done":
        project.completed_tasks = max(0, project.completed_tasks - 1)
    recalculate_progress(project)

    await db.delete(task)
    await db.flush()
    logger.info("task_deleted", task_id=task_id, project_id=project.id, by=pm.id)


# ---------------------------------------------------------------------------
# Developer operations
# ---------------------------------------------------------------------------


async def _advance(db: AsyncSession, user: User, task_id: int, operation: str, status: str) -> Task:
    task = await get_task(db, task_id)
    authorize(operation, user, task)
    if task.status == "done":
        msg = "Task already completed."
        raise ValidationError(msg)
    ensure_not_terminal(task.project, "update tasks on")
    task.status = status
    await db.flush()
    logger.info("task_status_changed", task_id=task.id, status=status, by=user.id)
    return task


async def accept_task(db: AsyncSession, user: User, task_id: int) -> Task:
    return await _advance(db, user, task_id, "task.accept", "accepted")


async def start_task(db: AsyncSession, user: User, task_id: int) -> Task:
    return await _advance(db, user, task_id, "task.start", "in_progress")


async def submit_for_review(db: AsyncSession, user: User, task_id: int) -> Task:
    return await _advance(db, user, task_id, "task.review", "review")


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------


async def add_comment(db: AsyncSession, user: User, task_id: int, message: str) -> Task:
    """Append a comment from the project's client, PM or the task's assignee."""
    if not message or not message.strip():
        msg = "Comment message is required."
        raise ValidationError(msg)
    task = await get_task(db, task_id)
    authorize("task.comment", user, task)

    task.comments.append(TaskComment(author_id=user.id, author=user, message=message.strip()))
    await db.flush()
    logger.info("task_comment_added", task_id=task.id, author_id=user.id)
    return task

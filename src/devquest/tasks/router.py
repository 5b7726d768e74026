"""Task API endpoints under /api/tasks."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from devquest.auth.dependencies import get_current_user
from devquest.database import get_session
from devquest.db.models import Task, User
from devquest.gamification.progression import update_progress_safely
from devquest.gamification.schemas import MessageResponse
from devquest.tasks.schemas import (
    CommentRequest,
    TaskCreateRequest,
    TaskEnvelope,
    TaskListResponse,
    TaskResponse,
    TaskSort,
    TaskStatus,
    TaskUpdateRequest,
)
from devquest.tasks.service import (
    accept_task,
    add_comment,
    complete_task,
    create_task,
    delete_task,
    edit_task,
    get_task,
    list_tasks,
    list_tasks_for_project,
    start_task,
    submit_for_review,
)

router = APIRouter(prefix="/api/tasks", tags=["Tasks"])


def _envelope(message: str, task: Task) -> TaskEnvelope:
    return TaskEnvelope(message=message, task=TaskResponse.from_task(task))


# ---------------------------------------------------------------------------
# PM
# ---------------------------------------------------------------------------


@router.post("/create", response_model=TaskEnvelope, status_code=201)
async def create_task_endpoint(
    body: TaskCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> TaskEnvelope:
    """PM creates a task on a project they manage."""
    task = await create_task(
        db,
        pm=user,
        title=body.title,
        project_id=body.project_id,
        xp=body.xp,
        description=body.description,
        assigned_to_id=body.assigned_to,
        priority=body.priority,
        deadline=body.deadline,
    )
    await db.commit()
    return _envelope("Task created successfully.", task)


@router.put("/edit/{task_id}", response_model=TaskEnvelope)
async def edit_task_endpoint(
    task_id: int,
    body: TaskUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> TaskEnvelope:
    task = await edit_task(db, user, task_id, body.model_dump(exclude_unset=True))
    await db.commit()
    return _envelope("Task updated successfully.", task)


@router.put("/complete/{task_id}", response_model=TaskEnvelope)
async def complete_task_endpoint(
    task_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> TaskEnvelope:
    """PM approves a task; the assignee gets its XP, then badges and level update."""
    task, developer = await complete_task(db, user, task_id)
    await db.commit()
    response = _envelope("Task marked as complete successfully.", task)
    if developer is not None:
        await update_progress_safely([developer.id])
    return response


@router.delete("/{task_id}", response_model=MessageResponse)
async def delete_task_endpoint(
    task_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> MessageResponse:
    await delete_task(db, user, task_id)
    await db.commit()
    return MessageResponse(message="Task deleted successfully.")


# ---------------------------------------------------------------------------
# Developer
# ---------------------------------------------------------------------------


@router.put("/accept/{task_id}", response_model=TaskEnvelope)
async def accept_task_endpoint(
    task_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> TaskEnvelope:
    task = await accept_task(db, user, task_id)
    await db.commit()
    return _envelope("Task accepted successfully.", task)


@router.put("/start/{task_id}", response_model=TaskEnvelope)
async def start_task_endpoint(
    task_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> TaskEnvelope:
    task = await start_task(db, user, task_id)
    await db.commit()
    return _envelope("Task started.", task)


@router.put("/review/{task_id}", response_model=TaskEnvelope)
async def review_task_endpoint(
    task_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> TaskEnvelope:
    task = await submit_for_review(db, user, task_id)
    await db.commit()
    return _envelope("Task submitted for review.", task)


# ---------------------------------------------------------------------------
# Reads and comments
# ---------------------------------------------------------------------------


@router.get("/all", response_model=TaskListResponse)
async def list_tasks_endpoint(
    status: TaskStatus | None = Query(None),
    project_id: int | None = Query(None),
    assigned_to: int | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort: TaskSort = Query("latest"),
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> TaskListResponse:
    """Filtered, paginated task list."""
    tasks, total = await list_tasks(
        db,
        status=status,
        project_id=project_id,
        assigned_to_id=assigned_to,
        page=page,
        limit=limit,
        sort=sort,
    )
    return TaskListResponse(
        message="Tasks fetched successfully.",
        count=len(tasks),
        total=total,
        page=page,
        limit=limit,
        tasks=[TaskResponse.from_task(t) for t in tasks],
    )


@router.get("/project/{project_id}", response_model=TaskListResponse)
async def project_tasks_endpoint(
    project_id: int,
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> TaskListResponse:
    """Every task of one project, newest first."""
    tasks = await list_tasks_for_project(db, project_id)
    return TaskListResponse(
        message="Tasks fetched successfully.",
        count=len(tasks),
        total=len(tasks),
        page=1,
        limit=max(len(tasks), 1),
        tasks=[TaskResponse.from_task(t) for t in tasks],
    )


@router.get("/{task_id}", response_model=TaskEnvelope)
async def get_task_endpoint(
    task_id: int,
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> TaskEnvelope:
    task = await get_task(db, task_id)
    return _envelope("Task fetched successfully.", task)


@router.post("/{task_id}/comments", response_model=TaskEnvelope, status_code=201)
async def add_comment_endpoint(
    task_id: int,
    body: CommentRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> TaskEnvelope:
    task = await add_comment(db, user, task_id, body.message)
    await db.commit()
    return _envelope("Comment added.", task)

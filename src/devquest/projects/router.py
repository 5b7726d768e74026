"""Project API endpoints under /api/projects."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from devquest.auth.dependencies import get_current_user
from devquest.database import get_session
from devquest.db.models import User
from devquest.gamification.progression import completion_award, update_progress_safely
from devquest.gamification.schemas import MessageResponse
from devquest.projects.schemas import (
    AssignPMRequest,
    ProjectCompleteResponse,
    ProjectCreateRequest,
    ProjectEnvelope,
    ProjectListResponse,
    ProjectResponse,
)
from devquest.projects.service import (
    accept_project,
    assign_pm,
    cancel_project,
    complete_project,
    create_project,
    delete_project,
    get_project,
    list_all_projects,
    list_projects_for_user,
    start_project,
)

router = APIRouter(prefix="/api/projects", tags=["Projects"])


def _envelope(message: str, project) -> ProjectEnvelope:  # noqa: ANN001
    return ProjectEnvelope(message=message, project=ProjectResponse.from_project(project))


@router.post("/create", response_model=ProjectEnvelope, status_code=201)
async def create_project_endpoint(
    body: ProjectCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ProjectEnvelope:
    """Client creates a project."""
    project = await create_project(
        db,
        client=user,
        title=body.title,
        description=body.description,
        pm_id=body.pm_id,
        deadline=body.deadline,
        tags=body.tags,
        xp_budget=body.xp_budget,
        xp_per_task=body.xp_per_task,
    )
    await db.commit()
    return _envelope("Project created successfully.", project)


@router.put("/{project_id}/assign-pm", response_model=ProjectEnvelope)
async def assign_pm_endpoint(
    project_id: int,
    body: AssignPMRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ProjectEnvelope:
    """Client assigns (or reassigns) the project's PM."""
    project = await assign_pm(db, user, project_id, body.pm_id)
    await db.commit()
    return _envelope("PM assigned successfully.", project)


@router.put("/{project_id}/accept", response_model=ProjectEnvelope)
async def accept_project_endpoint(
    project_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ProjectEnvelope:
    """PM accepts the project."""
    project = await accept_project(db, user, project_id)
    await db.commit()
    return _envelope("Project accepted.", project)


@router.put("/{project_id}/start", response_model=ProjectEnvelope)
async def start_project_endpoint(
    project_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ProjectEnvelope:
    """PM moves the project to ``working``."""
    project = await start_project(db, user, project_id)
    await db.commit()
    return _envelope("`Working` state started.", project)


@router.put("/{project_id}/cancel", response_model=ProjectEnvelope)
async def cancel_project_endpoint(
    project_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ProjectEnvelope:
    """Client or PM cancels the project."""
    project = await cancel_project(db, user, project_id)
    await db.commit()
    return _envelope("Project cancelled.", project)


@router.put("/{project_id}/complete", response_model=ProjectCompleteResponse)
async def complete_project_endpoint(
    project_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ProjectCompleteResponse:
    """PM completes the project; the PM and every member receive XP."""
    project, recipients = await complete_project(db, user, project_id)
    await db.commit()
    response = ProjectCompleteResponse(
        message="Project completed! XP awarded.",
        project=ProjectResponse.from_project(project),
        xp_awarded=completion_award(project),
        recipients=[u.id for u in recipients],
    )
    await update_progress_safely(response.recipients)
    return response


@router.get("/all", response_model=ProjectListResponse)
async def list_all_projects_endpoint(
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ProjectListResponse:
    """Every project with client, PM and members populated."""
    projects = await list_all_projects(db)
    return ProjectListResponse(
        message="Projects fetched successfully.",
        count=len(projects),
        projects=[ProjectResponse.from_project(p) for p in projects],
    )


@router.get("", response_model=ProjectListResponse)
async def my_projects_endpoint(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ProjectListResponse:
    """Projects for the caller's role: owned, managed or staffed on."""
    projects = await list_projects_for_user(db, user)
    return ProjectListResponse(
        message="Projects fetched successfully.",
        count=len(projects),
        projects=[ProjectResponse.from_project(p) for p in projects],
    )


@router.get("/{project_id}", response_model=ProjectEnvelope)
async def get_project_endpoint(
    project_id: int,
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ProjectEnvelope:
    """Single project with client, PM and members populated."""
    project = await get_project(db, project_id)
    return _envelope("Project fetched successfully.", project)


@router.delete("/{project_id}", response_model=MessageResponse)
async def delete_project_endpoint(
    project_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> MessageResponse:
    """Client deletes a project that no PM has accepted yet."""
    await delete_project(db, user, project_id)
    await db.commit()
    return MessageResponse(message="Project deleted successfully.")

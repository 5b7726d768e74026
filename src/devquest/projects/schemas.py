"""Request/response schemas for project endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from devquest.auth.schemas import UserRef
from devquest.db.models import Project


class ProjectCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=150)
    description: str = ""
    pm_id: int | None = None
    deadline: datetime | None = None
    tags: list[str] = []
    xp_budget: int = Field(0, ge=0)
    xp_per_task: int | None = Field(None, ge=0)


class AssignPMRequest(BaseModel):
    pm_id: int


class ProjectResponse(BaseModel):
    id: int
    title: str
    description: str
    client: UserRef
    pm: UserRef | None = None
    members: list[UserRef] = []
    status: str
    total_tasks: int
    completed_tasks: int
    percent_complete: int
    xp_budget: int
    xp_per_task: int | None = None
    tags: list[str] = []
    start_date: datetime | None = None
    deadline: datetime | None = None
    completed_at: datetime | None = None
    xp_awarded_at: datetime | None = None
    created_at: datetime | None = None

    @classmethod
    def from_project(cls, project: Project) -> ProjectResponse:
        return cls(
            id=project.id,
            title=project.title,
            description=project.description,
            client=UserRef.from_user(project.client),
            pm=UserRef.from_user(project.pm),
            members=[UserRef.from_user(m) for m in project.members],
            status=project.status,
            total_tasks=project.total_tasks,
            completed_tasks=project.completed_tasks,
            percent_complete=project.percent_complete,
            xp_budget=project.xp_budget,
            xp_per_task=project.xp_per_task,
            tags=list(project.tags or []),
            start_date=project.start_date,
            deadline=project.deadline,
            completed_at=project.completed_at,
            xp_awarded_at=project.xp_awarded_at,
            created_at=project.created_at,
        )


class ProjectEnvelope(BaseModel):
    message: str
    project: ProjectResponse


class ProjectCompleteResponse(BaseModel):
    message: str
    project: ProjectResponse
    xp_awarded: int
    recipients: list[int]


class ProjectListResponse(BaseModel):
    message: str
    count: int
    projects: list[ProjectResponse]

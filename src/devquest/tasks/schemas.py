"""Request/response schemas for task endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from devquest.auth.schemas import UserRef
from devquest.db.models import Project, Task, TaskComment

TaskStatus = Literal["assigned", "accepted", "in_progress", "review", "done"]
TaskPriority = Literal["low", "medium", "high", "urgent"]
TaskSort = Literal["latest", "oldest", "xp-high", "xp-low"]


class TaskCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    project_id: int
    xp: int = Field(..., ge=0)
    assigned_to: int | None = None
    priority: TaskPriority = "medium"
    deadline: datetime | None = None


class TaskUpdateRequest(BaseModel):
    """Partial update; only fields present in the body are applied."""

    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    xp: int | None = Field(None, ge=0)
    assigned_to: int | None = None
    priority: TaskPriority | None = None
    deadline: datetime | None = None


class CommentRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=2000)


class ProjectRef(BaseModel):
    id: int
    title: str
    status: str
    percent_complete: int
    xp_budget: int

    @classmethod
    def from_project(cls, project: Project) -> ProjectRef:
        return cls(
            id=project.id,
            title=project.title,
            status=project.status,
            percent_complete=project.percent_complete,
            xp_budget=project.xp_budget,
        )


class CommentResponse(BaseModel):
    id: int
    author: UserRef
    message: str
    created_at: datetime | None = None

    @classmethod
    def from_comment(cls, comment: TaskComment) -> CommentResponse:
        return cls(
            id=comment.id,
            author=UserRef.from_user(comment.author),
            message=comment.message,
            created_at=comment.created_at,
        )


class TaskResponse(BaseModel):
    id: int
    title: str
    description: str
    project_id: int
    project: ProjectRef
    created_by: UserRef
    assigned_to: UserRef | None = None
    status: str
    xp: int
    priority: str
    deadline: datetime | None = None
    completed_at: datetime | None = None
    comments: list[CommentResponse] = []
    created_at: datetime | None = None

    @classmethod
    def from_task(cls, task: Task) -> TaskResponse:
        return cls(
            id=task.id,
            title=task.title,
            description=task.description,
            project_id=task.project_id,
            project=ProjectRef.from_project(task.project),
            created_by=UserRef.from_user(task.created_by),
            assigned_to=UserRef.from_user(task.assigned_to),
            status=task.status,
            xp=task.xp,
            priority=task.priority,
            deadline=task.deadline,
            completed_at=task.completed_at,
            comments=[CommentResponse.from_comment(c) for c in task.comments],
            created_at=task.created_at,
        )


class TaskEnvelope(BaseModel):
    message: str
    task: TaskResponse


class TaskListResponse(BaseModel):
    message: str
    count: int
    total: int
    page: int
    limit: int
    tasks: list[TaskResponse]

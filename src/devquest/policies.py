"""Authorization policy table.

Every protected operation is looked up here once per request; handlers call
``authorize(operation, user, entity)`` instead of checking roles inline.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from devquest.db.models import Project, Task, User
from devquest.errors import AuthorizationError


def _is_client(user: User, _entity: Any) -> bool:
    return user.role == "client"


def _owns_project(user: User, project: Project) -> bool:
    return project.client_id == user.id


def _manages_project(user: User, project: Project) -> bool:
    return project.pm_id is not None and project.pm_id == user.id


def _owns_or_manages_project(user: User, project: Project) -> bool:
    return _owns_project(user, project) or _manages_project(user, project)


def _created_task(user: User, task: Task) -> bool:
    return task.created_by_id == user.id


def _manages_task_project(user: User, task: Task) -> bool:
    return _manages_project(user, task.project)


def _assigned_task(user: User, task: Task) -> bool:
    return task.assigned_to_id is not None and task.assigned_to_id == user.id


def _party_to_task(user: User, task: Task) -> bool:
    return _owns_or_manages_project(user, task.project) or _assigned_task(user, task)


def _authenticated(_user: User, _entity: Any) -> bool:
    return True


@dataclass(frozen=True)
class Rule:
    """A predicate over (caller, entity) and the message returned on denial."""

    allow: Callable[[User, Any], bool]
    message: str


POLICIES: dict[str, Rule] = {
    # Projects
    "project.create": Rule(_is_client, "Only clients can create projects."),
    "project.assign_pm": Rule(_owns_project, "Only the project's client can assign a PM."),
    "project.accept": Rule(_manages_project, "Only the assigned PM can accept this project."),
    "project.start": Rule(_manages_project, "Only the assigned PM can start this project."),
    "project.cancel": Rule(_owns_or_manages_project, "Only the project's client or PM can cancel it."),
    "project.complete": Rule(_manages_project, "Only the assigned PM can complete this project."),
    "project.delete": Rule(_owns_project, "Only the project's client can delete it."),
    # Tasks
    "task.create": Rule(_manages_project, "Only assigned PM can create tasks."),
    "task.edit": Rule(_created_task, "Only PM can edit tasks."),
    "task.delete": Rule(_created_task, "Only the PM who created this task can delete it."),
    "task.complete": Rule(_manages_task_project, "Only PM can mark task as complete."),
    "task.accept": Rule(_assigned_task, "You cannot accept a task not assigned to you."),
    "task.start": Rule(_assigned_task, "Not your task."),
    "task.review": Rule(_assigned_task, "Not your task."),
    "task.comment": Rule(_party_to_task, "Only the project's client, PM or assignee can comment."),
    # Badge catalog
    "badge.manage": Rule(_authenticated, "Not allowed to manage badges."),
}


def authorize(operation: str, user: User, entity: Any = None) -> None:  # noqa: ANN401
    """Raise AuthorizationError unless ``user`` may perform ``operation`` on ``entity``."""
    rule = POLICIES.get(operation)
    if rule is None:
        msg = f"Unknown operation: {operation}"
        raise KeyError(msg)
    if not rule.allow(user, entity):
        raise AuthorizationError(rule.message)


def is_allowed(operation: str, user: User, entity: Any = None) -> bool:  # noqa: ANN401
    """Boolean form of ``authorize``."""
    return POLICIES[operation].allow(user, entity)

"""Authorization policy table."""

import pytest

from devquest.db.models import Project, Task, User
from devquest.errors import AuthorizationError
from devquest.policies import POLICIES, authorize, is_allowed


def _user(user_id: int, role: str) -> User:
    return User(id=user_id, name=f"u{user_id}", email=f"u{user_id}@example.com", role=role)


CLIENT = _user(1, "client")
PM = _user(2, "pm")
OTHER_PM = _user(3, "pm")
DEV = _user(4, "developer")
OTHER_DEV = _user(5, "developer")


def _project() -> Project:
    return Project(id=10, title="P", client_id=CLIENT.id, pm_id=PM.id, status="assigned")


def _task() -> Task:
    project = _project()
    return Task(id=20, title="T", project_id=project.id, project=project, created_by_id=PM.id, assigned_to_id=DEV.id)


class TestProjectPolicies:
    def test_only_clients_create(self):
        authorize("project.create", CLIENT)
        with pytest.raises(AuthorizationError, match="Only clients can create projects."):
            authorize("project.create", PM)

    def test_only_owner_assigns_pm(self):
        authorize("project.assign_pm", CLIENT, _project())
        assert not is_allowed("project.assign_pm", _user(9, "client"), _project())

    @pytest.mark.parametrize("operation", ["project.accept", "project.start", "project.complete"])
    def test_pm_operations(self, operation: str):
        authorize(operation, PM, _project())
        with pytest.raises(AuthorizationError):
            authorize(operation, OTHER_PM, _project())
        with pytest.raises(AuthorizationError):
            authorize(operation, CLIENT, _project())

    def test_cancel_by_owner_or_pm(self):
        assert is_allowed("project.cancel", CLIENT, _project())
        assert is_allowed("project.cancel", PM, _project())
        assert not is_allowed("project.cancel", DEV, _project())

    def test_unassigned_project_has_no_pm(self):
        project = _project()
        project.pm_id = None
        assert not is_allowed("project.accept", PM, project)


class TestTaskPolicies:
    def test_create_requires_project_pm(self):
        authorize("task.create", PM, _project())
        with pytest.raises(AuthorizationError, match="Only assigned PM can create tasks."):
            authorize("task.create", OTHER_PM, _project())

    def test_complete_requires_project_pm(self):
        authorize("task.complete", PM, _task())
        with pytest.raises(AuthorizationError, match="Only PM can mark task as complete."):
            authorize("task.complete", DEV, _task())

    def test_edit_and_delete_require_creator(self):
        assert is_allowed("task.edit", PM, _task())
        assert not is_allowed("task.edit", OTHER_PM, _task())
        assert not is_allowed("task.delete", OTHER_PM, _task())

    def test_accept_requires_assignee(self):
        authorize("task.accept", DEV, _task())
        with pytest.raises(AuthorizationError, match="You cannot accept a task not assigned to you."):
            authorize("task.accept", OTHER_DEV, _task())

    @pytest.mark.parametrize("operation", ["task.start", "task.review"])
    def test_progress_requires_assignee(self, operation: str):
        with pytest.raises(AuthorizationError, match="Not your task."):
            authorize(operation, OTHER_DEV, _task())

    def test_unassigned_task_cannot_be_accepted(self):
        task = _task()
        task.assigned_to_id = None
        assert not is_allowed("task.accept", DEV, task)

    def test_comment_parties(self):
        task = _task()
        assert is_allowed("task.comment", CLIENT, task)
        assert is_allowed("task.comment", PM, task)
        assert is_allowed("task.comment", DEV, task)
        assert not is_allowed("task.comment", OTHER_DEV, task)


class TestPolicyTable:
    def test_unknown_operation_raises(self):
        with pytest.raises(KeyError):
            authorize("project.archive", CLIENT)

    def test_every_rule_has_a_message(self):
        assert all(rule.message for rule in POLICIES.values())

"""Project state machine and progress rules.

States: assigned -> accepted -> working -> {completed | cancelled}.
Moves between non-terminal states are unguarded (accepting twice, or
accepting after start, is allowed). Only terminal states reject further moves.
"""

from __future__ import annotations

from datetime import datetime, timezone

from devquest.db.models import Project
from devquest.errors import ValidationError

TERMINAL_STATUSES = frozenset({"completed", "cancelled"})


def calculate_percent(completed_tasks: int, total_tasks: int) -> int:
    """Percentage of tasks done, rounded half up, 0 when there are no tasks."""
    if total_tasks <= 0:
        return 0
    completed = max(0, min(completed_tasks, total_tasks))
    return (completed * 200 + total_tasks) // (2 * total_tasks)


def recalculate_progress(project: Project) -> int:
    """Refresh ``percent_complete`` and auto-complete the project at 100%.

    This route to ``completed`` does not distribute project XP; that only
    happens through the explicit completion action. Terminal projects keep
    their status.
    """
    project.percent_complete = calculate_percent(project.completed_tasks, project.total_tasks)
    if project.percent_complete == 100 and project.status not in TERMINAL_STATUSES:
        project.status = "completed"
        project.completed_at = datetime.now(timezone.utc)
    return project.percent_complete


def ensure_not_terminal(project: Project, action: str) -> None:
    """Reject transitions out of completed/cancelled."""
    if project.status in TERMINAL_STATUSES:
        msg = f"Cannot {action} a {project.status} project."
        raise ValidationError(msg)


def transition(project: Project, target: str, action: str) -> None:
    """Move a non-terminal project to ``target``."""
    ensure_not_terminal(project, action)
    project.status = target

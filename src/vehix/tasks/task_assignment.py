# src/vehix/tasks/task_assignment.py

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime

from ..core.users import User, UserRole
from .task_models import Task, utc_now

logger = logging.getLogger(__name__)


def assign(task: Task, user: User | None, *, now: datetime | None = None) -> None:
    """
    Bind the task to user, or unassign it when user is None.

    Any user is accepted. Restricting the choice to technicians is up to the caller
    (see eligible_assignees).
    """
    if user is None:
        task.assigned_to_id = None
        task.assigned_to_name = None
    else:
        task.assigned_to_id = user.id
        task.assigned_to_name = user.display_name
    task.updated_at = now or utc_now()
    logger.debug("Task %s assigned to %s", task.id, task.assigned_to_id)


def eligible_assignees(users: Iterable[User]) -> list[User]:
    return sorted(
        (u for u in users if u.role == UserRole.TECHNICIAN),
        key=lambda u: u.display_name.lower(),
    )

# src/vehix/tasks/task_api.py

"""
High-level task operations used by connectors (one call per UI event).

Each helper loads the task, applies one lifecycle operation and commits through
ctx.task_store. Commits are best-effort: a failing save is logged and the
in-memory result is still returned.

Permission helpers (can_edit, is_assigned_to_current_user) are advisory. Nothing
here refuses an operation based on the current user's role.
"""

from __future__ import annotations

import logging
from datetime import datetime

from ..core.state import EDITOR_ROLES, AppContext
from . import task_assignment, task_lifecycle
from .task_models import (
    Subtask,
    Task,
    TaskFilter,
    TaskFrequency,
    TaskPriority,
    TaskStatus,
    default_subtasks_for,
    utc_now,
)

logger = logging.getLogger(__name__)


class TaskNotFoundError(LookupError):
    pass


class SubtaskNotFoundError(LookupError):
    pass


class UserNotFoundError(LookupError):
    pass


def _commit(ctx: AppContext, task: Task) -> bool:
    try:
        ctx.task_store.save_task(task)
        return True
    except Exception:
        logger.exception("Commit failed task_id=%s", task.id)
        return False


def get_task(ctx: AppContext, task_id: str) -> Task:
    task = ctx.task_store.get_task(task_id)
    if task is None:
        raise TaskNotFoundError(task_id)
    return task


def create_task(
    ctx: AppContext,
    *,
    title: str,
    due_date: datetime,
    description: str = "",
    priority: TaskPriority = TaskPriority.NORMAL,
    task_type: str | None = None,
    is_recurring: bool = False,
    frequency: TaskFrequency = TaskFrequency.ONE_TIME,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    recurring_day_of_week: int | None = None,
    recurring_day_of_month: int | None = None,
    vehicle_id: str | None = None,
    assignee_id: str | None = None,
    subtasks: list[str] | None = None,
    now: datetime | None = None,
) -> Task:
    """
    Create and commit a new pending task.

    When subtasks is None and task_type is one of the predefined maintenance types,
    the type's default checklist is used. Blank subtask titles are dropped.
    """
    assignee = None
    if assignee_id:
        assignee = ctx.users.get(assignee_id)
        if assignee is None:
            raise UserNotFoundError(assignee_id)

    now = now or utc_now()
    if subtasks is None:
        subtasks = default_subtasks_for(task_type)

    creator = ctx.current_user
    task = Task(
        title=title.strip(),
        description=(description or "").strip(),
        due_date=due_date,
        priority=priority,
        task_type=task_type,
        is_recurring=is_recurring,
        frequency=frequency,
        start_date=start_date,
        end_date=end_date,
        recurring_day_of_week=recurring_day_of_week,
        recurring_day_of_month=recurring_day_of_month,
        vehicle_id=vehicle_id,
        assigned_by_id=creator.id if creator else None,
        assigned_by_name=creator.display_name if creator else None,
        subtasks=[Subtask(title=t.strip(), created_at=now) for t in subtasks if t and t.strip()],
        created_at=now,
        updated_at=now,
    )
    if assignee is not None:
        task_assignment.assign(task, assignee, now=now)

    _commit(ctx, task)
    logger.info("Task created id=%s title=%r due=%s", task.id, task.title, task.due_date.isoformat())
    return task


def list_tasks(
    ctx: AppContext,
    status_filter: TaskFilter = TaskFilter.ALL,
    *,
    search: str = "",
    now: datetime | None = None,
) -> list[Task]:
    """
    Tasks for a list tab, optionally narrowed by a case-insensitive search over
    title, description, assignee name and vehicle id.
    """
    tasks = ctx.task_store.list_tasks(status_filter, now=now)
    needle = (search or "").strip().casefold()
    if not needle:
        return tasks

    def matches(task: Task) -> bool:
        fields = (task.title, task.description, task.assigned_to_name, task.vehicle_id)
        return any(f and needle in f.casefold() for f in fields)

    return [t for t in tasks if matches(t)]


def update_status(
    ctx: AppContext, task_id: str, new_status: TaskStatus, *, now: datetime | None = None
) -> Task:
    task = get_task(ctx, task_id)
    task_lifecycle.change_status(task, new_status, now=now)
    _commit(ctx, task)
    logger.info("Task %s -> %s", task.id, new_status.value)
    return task


def complete_task(ctx: AppContext, task_id: str, *, now: datetime | None = None) -> Task:
    return update_status(ctx, task_id, TaskStatus.COMPLETED, now=now)


def reschedule_task(
    ctx: AppContext, task_id: str, new_due_date: datetime, *, now: datetime | None = None
) -> Task:
    task = get_task(ctx, task_id)
    task_lifecycle.reschedule(task, new_due_date, now=now)
    _commit(ctx, task)
    return task


def assign_task(
    ctx: AppContext, task_id: str, user_id: str | None, *, now: datetime | None = None
) -> Task:
    """Assign to user_id, or unassign when user_id is None/empty."""
    user = None
    if user_id:
        user = ctx.users.get(user_id)
        if user is None:
            raise UserNotFoundError(user_id)

    task = get_task(ctx, task_id)
    task_assignment.assign(task, user, now=now)
    _commit(ctx, task)
    return task


def add_subtask(
    ctx: AppContext, task_id: str, title: str, *, now: datetime | None = None
) -> Subtask:
    task = get_task(ctx, task_id)
    subtask = task_lifecycle.add_subtask(task, title, now=now)
    _commit(ctx, task)
    return subtask


def toggle_subtask(ctx: AppContext, task_id: str, subtask_id: str) -> tuple[Task, Subtask]:
    """
    Flip a subtask and commit.

    Returns the parent as well so the caller can check all_subtasks_completed and
    ask the user whether to complete the task.
    """
    task = get_task(ctx, task_id)
    subtask = task_lifecycle.toggle_subtask(task, subtask_id)
    if subtask is None:
        raise SubtaskNotFoundError(subtask_id)
    _commit(ctx, task)
    return task, subtask


def delete_subtask(
    ctx: AppContext, task_id: str, subtask_id: str, *, now: datetime | None = None
) -> Task:
    task = get_task(ctx, task_id)
    if not task_lifecycle.remove_subtask(task, subtask_id, now=now):
        raise SubtaskNotFoundError(subtask_id)
    _commit(ctx, task)
    return task


def delete_task(ctx: AppContext, task_id: str) -> bool:
    """Delete a task with its subtasks. Returns False if nothing was deleted."""
    try:
        deleted = ctx.task_store.delete_task(task_id)
    except Exception:
        logger.exception("Delete failed task_id=%s", task_id)
        return False
    if deleted:
        logger.info("Task deleted id=%s", task_id)
    return deleted


def create_next_recurring_task(
    ctx: AppContext, task_id: str, *, now: datetime | None = None
) -> Task | None:
    """Insert the next occurrence of a recurring task, or return None if there is none."""
    task = get_task(ctx, task_id)
    successor = task_lifecycle.create_next_recurring_task(task, now=now)
    if successor is None:
        return None
    _commit(ctx, successor)
    logger.info(
        "Next occurrence created id=%s from=%s due=%s",
        successor.id,
        task.id,
        successor.due_date.isoformat(),
    )
    return successor


# ---- permission helpers (advisory) ----


def can_edit(ctx: AppContext, task: Task) -> bool:
    user = ctx.current_user
    if user is None:
        return False
    return user.role in EDITOR_ROLES or user.id == task.assigned_by_id


def is_assigned_to_current_user(ctx: AppContext, task: Task) -> bool:
    user = ctx.current_user
    return user is not None and user.id == task.assigned_to_id

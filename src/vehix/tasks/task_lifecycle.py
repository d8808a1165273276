# src/vehix/tasks/task_lifecycle.py

"""
Task lifecycle operations.

All functions mutate the given Task in place (or build a new one) and never touch
storage. Committing is the caller's job, see task_api.py.

Status transitions are intentionally unguarded: any status can be set from any
other, including completed -> pending.
"""

from __future__ import annotations

import logging
from datetime import datetime

from .recurrence import next_due_date
from .task_models import Subtask, Task, TaskStatus, as_utc, utc_now

logger = logging.getLogger(__name__)


def change_status(task: Task, new_status: TaskStatus, *, now: datetime | None = None) -> None:
    now = now or utc_now()
    old = task.status
    task.status = new_status
    task.updated_at = now
    if new_status == TaskStatus.COMPLETED:
        task.completed_at = now
    logger.debug("Task %s status %s -> %s", task.id, old.value, new_status.value)


def mark_completed(task: Task, *, now: datetime | None = None) -> None:
    change_status(task, TaskStatus.COMPLETED, now=now)


def reschedule(task: Task, new_due_date: datetime, *, now: datetime | None = None) -> None:
    task.due_date = as_utc(new_due_date)
    task.updated_at = now or utc_now()
    logger.debug("Task %s rescheduled to %s", task.id, task.due_date.isoformat())


def create_next_recurring_task(task: Task, *, now: datetime | None = None) -> Task | None:
    """
    Build the next occurrence of a recurring task.

    Returns None when:
    - the task is not recurring or its frequency is one_time
    - the next due date would fall after task.end_date

    The successor is pending, carries the parent's details and assignment, and gets
    fresh (uncompleted) copies of the parent's subtasks. The parent is not modified.
    """
    if not task.is_recurring:
        return None

    next_due = next_due_date(as_utc(task.due_date), task.frequency)
    if next_due is None:
        return None

    if task.end_date is not None and next_due > as_utc(task.end_date):
        logger.info("Task %s recurrence ended at %s", task.id, task.end_date.isoformat())
        return None

    now = now or utc_now()
    successor = Task(
        title=task.title,
        description=task.description,
        due_date=next_due,
        status=TaskStatus.PENDING,
        priority=task.priority,
        task_type=task.task_type,
        is_recurring=task.is_recurring,
        frequency=task.frequency,
        start_date=task.start_date,
        end_date=task.end_date,
        recurring_day_of_week=task.recurring_day_of_week,
        recurring_day_of_month=task.recurring_day_of_month,
        vehicle_id=task.vehicle_id,
        assigned_to_id=task.assigned_to_id,
        assigned_to_name=task.assigned_to_name,
        assigned_by_id=task.assigned_by_id,
        assigned_by_name=task.assigned_by_name,
        subtasks=[Subtask(title=s.title, created_at=now) for s in task.subtasks],
        created_at=now,
        updated_at=now,
    )
    logger.debug("Task %s -> next occurrence %s due %s", task.id, successor.id, next_due.isoformat())
    return successor


# ---- subtasks ----


def toggle(subtask: Subtask) -> bool:
    subtask.is_completed = not subtask.is_completed
    return subtask.is_completed


def toggle_subtask(task: Task, subtask_id: str) -> Subtask | None:
    """
    Flip a subtask's completion flag.

    The parent status is left alone even when every subtask is done; callers can
    check task.all_subtasks_completed and offer to complete the task.
    """
    subtask = task.find_subtask(subtask_id)
    if subtask is None:
        return None
    toggle(subtask)
    return subtask


def add_subtask(task: Task, title: str, *, now: datetime | None = None) -> Subtask:
    title = (title or "").strip()
    if not title:
        raise ValueError("subtask title is required")
    now = now or utc_now()
    subtask = Subtask(title=title, created_at=now)
    task.subtasks.append(subtask)
    task.updated_at = now
    return subtask


def remove_subtask(task: Task, subtask_id: str, *, now: datetime | None = None) -> bool:
    before = len(task.subtasks)
    task.subtasks = [s for s in task.subtasks if s.id != subtask_id]
    if len(task.subtasks) == before:
        return False
    task.updated_at = now or utc_now()
    return True

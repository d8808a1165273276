# src/vehix/tasks/task_models.py

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum


def new_id() -> str:
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken as UTC; aware ones are converted to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class TaskStatus(StrEnum):
    """
    Task lifecycle status.

    Notes:
    - completed and cancelled are the usual end states, but nothing stops a caller
      from moving a task out of them again.
    """

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    DELAYED = "delayed"
    CANCELLED = "cancelled"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.PENDING
        try:
            return cls(raw)
        except ValueError:
            return cls.PENDING


class TaskPriority(StrEnum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]

    @classmethod
    def from_db(cls, raw: str | None) -> TaskPriority:
        # Older rows may carry "medium".
        if not raw:
            return cls.NORMAL
        try:
            return cls(raw)
        except ValueError:
            return cls.NORMAL


_PRIORITY_RANK = {
    TaskPriority.LOW: 0,
    TaskPriority.NORMAL: 1,
    TaskPriority.HIGH: 2,
    TaskPriority.URGENT: 3,
}


class TaskFrequency(StrEnum):
    ONE_TIME = "one_time"
    DAILY = "daily"
    WEEKLY = "weekly"
    BI_WEEKLY = "bi_weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskFrequency:
        if not raw:
            return cls.ONE_TIME
        try:
            return cls(raw)
        except ValueError:
            return cls.ONE_TIME


class TaskFilter(StrEnum):
    """Task list tabs."""

    ALL = "all"
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    OVERDUE = "overdue"


CLOSED_STATUSES = frozenset({TaskStatus.COMPLETED, TaskStatus.CANCELLED})


@dataclass(slots=True)
class Subtask:
    title: str
    is_completed: bool = False
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utc_now)


@dataclass(slots=True)
class Task:
    title: str
    due_date: datetime

    description: str = ""
    status: TaskStatus = TaskStatus.PENDING
    priority: TaskPriority = TaskPriority.NORMAL
    task_type: str | None = None

    is_recurring: bool = False
    frequency: TaskFrequency = TaskFrequency.ONE_TIME
    start_date: datetime | None = None
    end_date: datetime | None = None
    recurring_day_of_week: int | None = None  # 1-7, Monday-Sunday
    recurring_day_of_month: int | None = None  # 1-31

    vehicle_id: str | None = None
    assigned_to_id: str | None = None
    assigned_to_name: str | None = None
    assigned_by_id: str | None = None
    assigned_by_name: str | None = None

    subtasks: list[Subtask] = field(default_factory=list)

    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    completed_at: datetime | None = None

    def __post_init__(self) -> None:
        if not self.title or not self.title.strip():
            raise ValueError("title is required")
        if self.is_recurring and self.frequency == TaskFrequency.ONE_TIME:
            raise ValueError("recurring task needs a frequency")
        if self.recurring_day_of_week is not None and not 1 <= self.recurring_day_of_week <= 7:
            raise ValueError("recurring_day_of_week must be 1-7")
        if self.recurring_day_of_month is not None and not 1 <= self.recurring_day_of_month <= 31:
            raise ValueError("recurring_day_of_month must be 1-31")

        self.due_date = as_utc(self.due_date)
        self.created_at = as_utc(self.created_at)
        self.updated_at = as_utc(self.updated_at)
        if self.start_date is not None:
            self.start_date = as_utc(self.start_date)
        if self.end_date is not None:
            self.end_date = as_utc(self.end_date)
        if self.completed_at is not None:
            self.completed_at = as_utc(self.completed_at)

    def is_overdue(self, now: datetime | None = None) -> bool:
        if self.status in CLOSED_STATUSES:
            return False
        return as_utc(now or utc_now()) > as_utc(self.due_date)

    @property
    def all_subtasks_completed(self) -> bool:
        return bool(self.subtasks) and all(s.is_completed for s in self.subtasks)

    @property
    def subtask_progress(self) -> tuple[int, int]:
        done = sum(1 for s in self.subtasks if s.is_completed)
        return done, len(self.subtasks)

    def find_subtask(self, subtask_id: str) -> Subtask | None:
        for s in self.subtasks:
            if s.id == subtask_id:
                return s
        return None


# ---- predefined maintenance task types ----

OIL_CHANGE = "Oil Change"
VEHICLE_CLEANING = "Vehicle Cleaning"
TIRE_ROTATION = "Tire Rotation"
BRAKE_INSPECTION = "Brake Inspection"
FLUID_CHECK = "Fluid Check"
AIR_FILTER_REPLACEMENT = "Air Filter Replacement"
BATTERY_CHECK = "Battery Check"

PREDEFINED_SUBTASKS: dict[str, list[str]] = {
    OIL_CHANGE: [
        "Drain old oil",
        "Replace oil filter",
        "Add new oil",
        "Check oil level",
        "Reset maintenance light if applicable",
    ],
    VEHICLE_CLEANING: [
        "Vacuum interior",
        "Clean dashboard",
        "Wash exterior",
        "Clean windows",
        "Empty trash",
    ],
    TIRE_ROTATION: [
        "Check tire pressure",
        "Rotate tires according to pattern",
        "Check tread wear",
        "Torque lug nuts to specification",
    ],
    BRAKE_INSPECTION: [
        "Inspect brake pads",
        "Check brake fluid level",
        "Inspect brake lines",
        "Test brake operation",
    ],
    FLUID_CHECK: [
        "Check engine oil",
        "Check transmission fluid",
        "Check brake fluid",
        "Check power steering fluid",
        "Check coolant",
        "Check windshield washer fluid",
    ],
    AIR_FILTER_REPLACEMENT: [
        "Remove air filter housing",
        "Replace air filter",
        "Clean housing if dirty",
        "Reinstall housing",
    ],
    BATTERY_CHECK: [
        "Check battery voltage",
        "Inspect terminals for corrosion",
        "Clean terminals if needed",
        "Check battery fluid level if applicable",
    ],
}


def default_subtasks_for(task_type: str | None) -> list[str]:
    if not task_type:
        return []
    return list(PREDEFINED_SUBTASKS.get(task_type, []))

# tests/fakes.py

from __future__ import annotations

import asyncio
import copy
from dataclasses import dataclass, field
from datetime import datetime

from vehix.tasks.task_models import CLOSED_STATUSES, Task, TaskFilter, TaskStatus, utc_now


class FakeTaskRepo:
    """
    In-memory TaskRepo.

    Stores deep copies so tests notice when a caller forgets to commit.
    """

    def __init__(self, tasks: list[Task] | None = None) -> None:
        self.tasks: dict[str, Task] = {t.id: copy.deepcopy(t) for t in tasks or []}
        self.saves = 0

    def save_task(self, task: Task) -> None:
        self.saves += 1
        self.tasks[task.id] = copy.deepcopy(task)

    def get_task(self, task_id: str) -> Task | None:
        t = self.tasks.get(task_id)
        return copy.deepcopy(t) if t is not None else None

    def delete_task(self, task_id: str) -> bool:
        return self.tasks.pop(task_id, None) is not None

    def list_tasks(
        self,
        status_filter: TaskFilter = TaskFilter.ALL,
        *,
        now: datetime | None = None,
        limit: int = 500,
    ) -> list[Task]:
        now = now or utc_now()
        out: list[Task] = []
        for t in self.tasks.values():
            if status_filter == TaskFilter.OVERDUE:
                keep = t.status not in CLOSED_STATUSES and t.due_date < now
            elif status_filter == TaskFilter.ALL:
                keep = True
            else:
                keep = t.status == TaskStatus(status_filter.value)
            if keep:
                out.append(copy.deepcopy(t))
        out.sort(key=lambda x: (x.due_date, -x.priority.rank))
        return out[:limit]

    def count_tasks(self) -> int:
        return len(self.tasks)

    def find_tasks_by_id_prefix(self, prefix: str, *, limit: int = 2) -> list[Task]:
        if not prefix:
            return []
        hits = sorted(tid for tid in self.tasks if tid.startswith(prefix))
        return [copy.deepcopy(self.tasks[tid]) for tid in hits[:limit]]


class FailingTaskRepo(FakeTaskRepo):
    """Reads work, every write blows up."""

    def save_task(self, task: Task) -> None:
        self.saves += 1
        raise OSError("disk full")

    def delete_task(self, task_id: str) -> bool:
        raise OSError("disk full")


@dataclass(slots=True)
class FakeLocationProvider:
    """
    LocationProvider fake.

    - positions: vehicle_id -> (lat, lon); missing ids have no fix
    - failing: ids whose lookup raises
    - gate: if set, every locate() waits for it (lets tests hold a refresh in flight)
    """

    positions: dict[str, tuple[float, float]] = field(default_factory=dict)
    failing: set[str] = field(default_factory=set)
    gate: asyncio.Event | None = None
    calls: list[str] = field(default_factory=list)

    async def locate(self, vehicle_id: str) -> tuple[float, float] | None:
        self.calls.append(vehicle_id)
        if self.gate is not None:
            await self.gate.wait()
        if vehicle_id in self.failing:
            raise RuntimeError("gps unavailable")
        return self.positions.get(vehicle_id)

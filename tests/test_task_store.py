# tests/test_task_store.py

from __future__ import annotations

import sqlite3
from datetime import UTC, datetime, timedelta
from pathlib import Path

from vehix.tasks.task_models import (
    Subtask,
    Task,
    TaskFilter,
    TaskFrequency,
    TaskPriority,
    TaskStatus,
)
from vehix.tasks.task_store import TaskStore

DAY = datetime(2024, 3, 10, tzinfo=UTC)


def _task(title: str, due: datetime, **kw) -> Task:
    return Task(title=title, due_date=due, created_at=DAY, updated_at=DAY, **kw)


def test_save_and_get_keeps_fields_and_subtask_order(store: TaskStore) -> None:
    task = _task(
        "Brake inspection",
        DAY,
        description="Truck 7",
        priority=TaskPriority.URGENT,
        task_type="Brake Inspection",
        is_recurring=True,
        frequency=TaskFrequency.QUARTERLY,
        end_date=DAY + timedelta(days=365),
        vehicle_id="truck-7",
        assigned_to_id="t1",
        assigned_to_name="Tom Tech",
        subtasks=[Subtask(title="Inspect pads", is_completed=True), Subtask(title="Test brakes")],
    )
    store.save_task(task)

    loaded = store.get_task(task.id)

    assert loaded is not None
    assert loaded.title == "Brake inspection"
    assert loaded.description == "Truck 7"
    assert loaded.priority == TaskPriority.URGENT
    assert loaded.status == TaskStatus.PENDING
    assert loaded.due_date == DAY
    assert loaded.end_date == DAY + timedelta(days=365)
    assert loaded.is_recurring and loaded.frequency == TaskFrequency.QUARTERLY
    assert loaded.vehicle_id == "truck-7"
    assert loaded.assigned_to_name == "Tom Tech"
    assert [(s.title, s.is_completed) for s in loaded.subtasks] == [
        ("Inspect pads", True),
        ("Test brakes", False),
    ]
    assert [s.id for s in loaded.subtasks] == [s.id for s in task.subtasks]


def test_save_updates_existing_row_and_replaces_subtasks(store: TaskStore) -> None:
    task = _task("Oil change", DAY, subtasks=[Subtask(title="a"), Subtask(title="b")])
    store.save_task(task)

    task.status = TaskStatus.IN_PROGRESS
    task.subtasks = task.subtasks[1:]
    store.save_task(task)

    assert store.count_tasks() == 1
    assert store.count_subtasks(task.id) == 1
    loaded = store.get_task(task.id)
    assert loaded is not None
    assert loaded.status == TaskStatus.IN_PROGRESS
    assert [s.title for s in loaded.subtasks] == ["b"]


def test_delete_task_cascades_to_subtasks(store: TaskStore) -> None:
    keep = _task("Keep", DAY, subtasks=[Subtask(title="k1")])
    drop = _task("Drop", DAY, subtasks=[Subtask(title="d1"), Subtask(title="d2")])
    store.save_task(keep)
    store.save_task(drop)
    assert store.count_subtasks() == 3

    assert store.delete_task(drop.id) is True
    assert store.delete_task(drop.id) is False

    assert store.get_task(drop.id) is None
    assert store.count_subtasks(drop.id) == 0
    assert store.count_subtasks() == 1


def test_list_tasks_filters_and_order(store: TaskStore) -> None:
    now = DAY + timedelta(days=5)
    late = _task("Late", DAY, priority=TaskPriority.LOW)
    late_urgent = _task("Late urgent", DAY, priority=TaskPriority.URGENT)
    late_done = _task("Late done", DAY, status=TaskStatus.COMPLETED)
    future = _task("Future", DAY + timedelta(days=10), status=TaskStatus.IN_PROGRESS)
    for t in (future, late, late_done, late_urgent):
        store.save_task(t)

    all_titles = [t.title for t in store.list_tasks(TaskFilter.ALL, now=now)]
    assert all_titles == ["Late urgent", "Late done", "Late", "Future"]

    overdue = [t.title for t in store.list_tasks(TaskFilter.OVERDUE, now=now)]
    assert overdue == ["Late urgent", "Late"]

    assert [t.title for t in store.list_tasks(TaskFilter.IN_PROGRESS)] == ["Future"]
    assert [t.title for t in store.list_tasks(TaskFilter.COMPLETED)] == ["Late done"]
    assert {t.title for t in store.list_tasks(TaskFilter.PENDING)} == {"Late", "Late urgent"}


def test_unknown_enum_values_decode_to_defaults(store: TaskStore) -> None:
    task = _task("Legacy", DAY)
    store.save_task(task)
    conn = sqlite3.connect(str(store.db_path))
    try:
        conn.execute(
            "UPDATE tasks SET status = 'weird', priority = 'medium', is_recurring = 1, "
            "frequency = 'yearly' WHERE id = ?",
            (task.id,),
        )
        conn.commit()
    finally:
        conn.close()

    loaded = store.get_task(task.id)
    assert loaded is not None
    assert loaded.status == TaskStatus.PENDING
    assert loaded.priority == TaskPriority.NORMAL
    assert loaded.frequency == TaskFrequency.ONE_TIME
    assert loaded.is_recurring is False


def test_migration_adds_missing_columns(tmp_path: Path) -> None:
    db = tmp_path / "old.sqlite3"
    conn = sqlite3.connect(str(db))
    conn.execute(
        """
        CREATE TABLE tasks (
            id TEXT PRIMARY KEY,
            title TEXT NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            status TEXT NOT NULL DEFAULT 'pending',
            priority TEXT NOT NULL DEFAULT 'normal',
            due_at REAL NOT NULL,
            created_at REAL NOT NULL,
            updated_at REAL NOT NULL
        )
        """
    )
    conn.execute(
        "INSERT INTO tasks(id, title, due_at, created_at, updated_at) VALUES ('old1', 'Wash', ?, ?, ?)",
        (DAY.timestamp(), DAY.timestamp(), DAY.timestamp()),
    )
    conn.commit()
    conn.close()

    store = TaskStore(db)

    loaded = store.get_task("old1")
    assert loaded is not None
    assert loaded.title == "Wash"
    assert loaded.vehicle_id is None
    assert loaded.recurring_day_of_week is None
    assert loaded.subtasks == []

    loaded.vehicle_id = "van-1"
    store.save_task(loaded)
    reloaded = store.get_task("old1")
    assert reloaded is not None
    assert reloaded.vehicle_id == "van-1"


def test_recurring_days_round_trip_and_bad_values_dropped(store: TaskStore) -> None:
    task = _task(
        "Weekly wash",
        DAY,
        is_recurring=True,
        frequency=TaskFrequency.WEEKLY,
        recurring_day_of_week=7,
        recurring_day_of_month=31,
    )
    store.save_task(task)

    loaded = store.get_task(task.id)
    assert loaded is not None
    assert loaded.recurring_day_of_week == 7
    assert loaded.recurring_day_of_month == 31

    conn = sqlite3.connect(str(store.db_path))
    conn.execute(
        "UPDATE tasks SET recurring_day_of_week = 9, recurring_day_of_month = 'x' WHERE id = ?",
        (task.id,),
    )
    conn.commit()
    conn.close()

    loaded = store.get_task(task.id)
    assert loaded is not None
    assert loaded.recurring_day_of_week is None
    assert loaded.recurring_day_of_month is None


def test_find_tasks_by_id_prefix_is_not_limited_by_list_cap(store: TaskStore) -> None:
    for n in range(505):
        store.save_task(_task(f"Task {n}", DAY + timedelta(minutes=n), id=f"a{n:04d}"))
    late = _task("Far future", DAY + timedelta(days=3650), id="zz-late-1")
    store.save_task(late)

    assert late.id not in {t.id for t in store.list_tasks(TaskFilter.ALL)}

    found = store.find_tasks_by_id_prefix("zz-")
    assert [t.id for t in found] == [late.id]
    assert len(store.find_tasks_by_id_prefix("a0")) == 2
    assert len(store.find_tasks_by_id_prefix("a0", limit=10)) == 10
    assert store.find_tasks_by_id_prefix("") == []


def test_find_tasks_by_id_prefix_treats_wildcards_literally(store: TaskStore) -> None:
    store.save_task(_task("One", DAY, id="ab1"))
    store.save_task(_task("Two", DAY, id="a_b", subtasks=[Subtask(title="Check")]))

    assert store.find_tasks_by_id_prefix("%") == []
    found = store.find_tasks_by_id_prefix("a_")
    assert [t.id for t in found] == ["a_b"]
    assert [s.title for s in found[0].subtasks] == ["Check"]

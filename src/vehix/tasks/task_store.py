# src/vehix/tasks/task_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path

from .task_models import (
    Subtask,
    Task,
    TaskFilter,
    TaskFrequency,
    TaskPriority,
    TaskStatus,
    utc_now,
)

logger = logging.getLogger(__name__)

_PRIORITY_ORDER_SQL = (
    "CASE priority WHEN 'urgent' THEN 3 WHEN 'high' THEN 2 WHEN 'low' THEN 0 ELSE 1 END"
)


def _to_ts(value: datetime | None) -> float | None:
    return value.timestamp() if value is not None else None


def _from_ts(raw: float | None) -> datetime | None:
    if raw is None:
        return None
    return datetime.fromtimestamp(float(raw), UTC)


def _opt_int(raw: object, low: int, high: int) -> int | None:
    # Out-of-range values from old or hand-edited rows are dropped.
    if raw is None:
        return None
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return None
    return value if low <= value <= high else None


class TaskStore:
    """
    SQLite task store.

    Two tables:
    - tasks: one row per task
    - subtasks: checklist rows, ON DELETE CASCADE from tasks

    The schema is migration-safe:
    - create tables if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("TaskStore ready db=%s total=%s", self._db_path, self.count_tasks())

    @property
    def db_path(self) -> Path:
        return self._db_path

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        conn.execute("PRAGMA foreign_keys=ON")
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    status TEXT NOT NULL DEFAULT 'pending',
                    priority TEXT NOT NULL DEFAULT 'normal',
                    due_at REAL NOT NULL,
                    completed_at REAL,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL,
                    task_type TEXT,
                    is_recurring INTEGER NOT NULL DEFAULT 0,
                    frequency TEXT NOT NULL DEFAULT 'one_time',
                    start_at REAL,
                    end_at REAL,
                    recurring_day_of_week INTEGER,
                    recurring_day_of_month INTEGER,
                    vehicle_id TEXT,
                    assigned_to_id TEXT,
                    assigned_to_name TEXT,
                    assigned_by_id TEXT,
                    assigned_by_name TEXT
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS subtasks (
                    id TEXT PRIMARY KEY,
                    task_id TEXT NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
                    position INTEGER NOT NULL DEFAULT 0,
                    title TEXT NOT NULL,
                    is_completed INTEGER NOT NULL DEFAULT 0,
                    created_at REAL NOT NULL
                )
                """
            )

            # Migrations (safe): add missing columns.
            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column %s", name)

            add_col("completed_at", "REAL")
            add_col("task_type", "TEXT")
            add_col("is_recurring", "INTEGER NOT NULL DEFAULT 0")
            add_col("frequency", "TEXT NOT NULL DEFAULT 'one_time'")
            add_col("start_at", "REAL")
            add_col("end_at", "REAL")
            add_col("recurring_day_of_week", "INTEGER")
            add_col("recurring_day_of_month", "INTEGER")
            add_col("vehicle_id", "TEXT")
            add_col("assigned_to_id", "TEXT")
            add_col("assigned_to_name", "TEXT")
            add_col("assigned_by_id", "TEXT")
            add_col("assigned_by_name", "TEXT")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_status_due ON tasks(status, due_at)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_assignee ON tasks(assigned_to_id)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_subtasks_task ON subtasks(task_id, position)")

            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _row_to_subtask(row: sqlite3.Row) -> Subtask:
        return Subtask(
            id=str(row["id"]),
            title=str(row["title"] or ""),
            is_completed=bool(row["is_completed"]),
            created_at=_from_ts(row["created_at"]) or utc_now(),
        )

    @staticmethod
    def _row_to_task(row: sqlite3.Row, subtasks: list[Subtask]) -> Task:
        due_at = _from_ts(row["due_at"])
        created_at = _from_ts(row["created_at"]) or utc_now()
        frequency = TaskFrequency.from_db(row["frequency"])
        return Task(
            id=str(row["id"]),
            title=str(row["title"] or "Untitled"),
            description=str(row["description"] or ""),
            status=TaskStatus.from_db(row["status"]),
            priority=TaskPriority.from_db(row["priority"]),
            due_date=due_at or created_at,
            completed_at=_from_ts(row["completed_at"]),
            created_at=created_at,
            updated_at=_from_ts(row["updated_at"]) or created_at,
            task_type=row["task_type"],
            # A recurring row with a lost frequency degrades to one-off.
            is_recurring=bool(row["is_recurring"]) and frequency != TaskFrequency.ONE_TIME,
            frequency=frequency,
            start_date=_from_ts(row["start_at"]),
            end_date=_from_ts(row["end_at"]),
            recurring_day_of_week=_opt_int(row["recurring_day_of_week"], 1, 7),
            recurring_day_of_month=_opt_int(row["recurring_day_of_month"], 1, 31),
            vehicle_id=row["vehicle_id"],
            assigned_to_id=row["assigned_to_id"],
            assigned_to_name=row["assigned_to_name"],
            assigned_by_id=row["assigned_by_id"],
            assigned_by_name=row["assigned_by_name"],
            subtasks=subtasks,
        )

    def _load_subtasks(
        self, conn: sqlite3.Connection, task_ids: Sequence[str]
    ) -> dict[str, list[Subtask]]:
        out: dict[str, list[Subtask]] = {tid: [] for tid in task_ids}
        if not task_ids:
            return out
        placeholders = ",".join("?" for _ in task_ids)
        cur = conn.execute(
            f"""
            SELECT *
            FROM subtasks
            WHERE task_id IN ({placeholders})
            ORDER BY task_id, position ASC, created_at ASC
            """,
            tuple(task_ids),
        )
        for row in cur.fetchall():
            out[str(row["task_id"])].append(self._row_to_subtask(row))
        return out

    # ---- public API ----

    def count_tasks(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)
        finally:
            conn.close()

    def count_subtasks(self, task_id: str | None = None) -> int:
        conn = self._get_conn()
        try:
            if task_id is None:
                (n,) = conn.execute("SELECT COUNT(*) FROM subtasks").fetchone()
            else:
                (n,) = conn.execute(
                    "SELECT COUNT(*) FROM subtasks WHERE task_id = ?", (task_id,)
                ).fetchone()
            return int(n)
        finally:
            conn.close()

    def save_task(self, task: Task) -> None:
        """
        Insert or update a task and replace its subtask rows.

        The whole write happens in one transaction.
        """
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO tasks(
                    id, title, description, status, priority,
                    due_at, completed_at, created_at, updated_at,
                    task_type, is_recurring, frequency, start_at, end_at,
                    recurring_day_of_week, recurring_day_of_month,
                    vehicle_id, assigned_to_id, assigned_to_name,
                    assigned_by_id, assigned_by_name
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    title = excluded.title,
                    description = excluded.description,
                    status = excluded.status,
                    priority = excluded.priority,
                    due_at = excluded.due_at,
                    completed_at = excluded.completed_at,
                    updated_at = excluded.updated_at,
                    task_type = excluded.task_type,
                    is_recurring = excluded.is_recurring,
                    frequency = excluded.frequency,
                    start_at = excluded.start_at,
                    end_at = excluded.end_at,
                    recurring_day_of_week = excluded.recurring_day_of_week,
                    recurring_day_of_month = excluded.recurring_day_of_month,
                    vehicle_id = excluded.vehicle_id,
                    assigned_to_id = excluded.assigned_to_id,
                    assigned_to_name = excluded.assigned_to_name,
                    assigned_by_id = excluded.assigned_by_id,
                    assigned_by_name = excluded.assigned_by_name
                """,
                (
                    task.id,
                    task.title.strip(),
                    task.description,
                    task.status.value,
                    task.priority.value,
                    _to_ts(task.due_date),
                    _to_ts(task.completed_at),
                    _to_ts(task.created_at),
                    _to_ts(task.updated_at),
                    task.task_type,
                    int(task.is_recurring),
                    task.frequency.value,
                    _to_ts(task.start_date),
                    _to_ts(task.end_date),
                    task.recurring_day_of_week,
                    task.recurring_day_of_month,
                    task.vehicle_id,
                    task.assigned_to_id,
                    task.assigned_to_name,
                    task.assigned_by_id,
                    task.assigned_by_name,
                ),
            )
            conn.execute("DELETE FROM subtasks WHERE task_id = ?", (task.id,))
            conn.executemany(
                """
                INSERT INTO subtasks(id, task_id, position, title, is_completed, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                [
                    (s.id, task.id, pos, s.title, int(s.is_completed), _to_ts(s.created_at))
                    for pos, s in enumerate(task.subtasks)
                ],
            )
            conn.commit()
            logger.debug(
                "Task saved id=%s status=%s subtasks=%d",
                task.id,
                task.status.value,
                len(task.subtasks),
            )
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def get_task(self, task_id: str) -> Task | None:
        if not task_id:
            return None
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
            if row is None:
                return None
            subtasks = self._load_subtasks(conn, [task_id])
            return self._row_to_task(row, subtasks[task_id])
        finally:
            conn.close()

    def delete_task(self, task_id: str) -> bool:
        """Delete a task; its subtasks go with it (FK cascade)."""
        conn = self._get_conn()
        try:
            cur = conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
            conn.commit()
            deleted = cur.rowcount == 1
            if deleted:
                logger.debug("Task deleted id=%s", task_id)
            return deleted
        finally:
            conn.close()

    def list_tasks(
        self,
        status_filter: TaskFilter = TaskFilter.ALL,
        *,
        now: datetime | None = None,
        limit: int = 500,
    ) -> list[Task]:
        """
        Tasks for one list tab, ordered by due date then priority (highest first).

        Overdue means: not completed/cancelled and due before now.
        """
        where = ""
        params: list[object] = []

        if status_filter == TaskFilter.PENDING:
            where = "WHERE status = ?"
            params.append(TaskStatus.PENDING.value)
        elif status_filter == TaskFilter.IN_PROGRESS:
            where = "WHERE status = ?"
            params.append(TaskStatus.IN_PROGRESS.value)
        elif status_filter == TaskFilter.COMPLETED:
            where = "WHERE status = ?"
            params.append(TaskStatus.COMPLETED.value)
        elif status_filter == TaskFilter.OVERDUE:
            where = "WHERE status NOT IN (?, ?) AND due_at < ?"
            params.extend(
                [
                    TaskStatus.COMPLETED.value,
                    TaskStatus.CANCELLED.value,
                    (now or utc_now()).timestamp(),
                ]
            )

        params.append(int(limit))

        conn = self._get_conn()
        try:
            rows = conn.execute(
                f"""
                SELECT *
                FROM tasks
                {where}
                ORDER BY due_at ASC, {_PRIORITY_ORDER_SQL} DESC, created_at ASC
                    LIMIT ?
                """,
                params,
            ).fetchall()
            ids = [str(r["id"]) for r in rows]
            subtasks = self._load_subtasks(conn, ids)
            return [self._row_to_task(r, subtasks[str(r["id"])]) for r in rows]
        finally:
            conn.close()

    def find_tasks_by_id_prefix(self, prefix: str, *, limit: int = 2) -> list[Task]:
        """
        Tasks whose id starts with prefix, at most limit of them.

        Callers that need a unique match ask for two rows and treat a second one as
        ambiguity.
        """
        prefix = (prefix or "").strip()
        if not prefix:
            return []
        # Escape LIKE wildcards so a prefix only ever matches literally.
        pattern = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        conn = self._get_conn()
        try:
            rows = conn.execute(
                """
                SELECT *
                FROM tasks
                WHERE id LIKE ? || '%' ESCAPE '\\'
                ORDER BY id ASC
                    LIMIT ?
                """,
                (pattern, int(limit)),
            ).fetchall()
            ids = [str(r["id"]) for r in rows]
            subtasks = self._load_subtasks(conn, ids)
            return [self._row_to_task(r, subtasks[str(r["id"])]) for r in rows]
        finally:
            conn.close()

# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from vehix.core.state import AppContext
from vehix.core.users import User, UserDirectory, UserRole
from vehix.tasks.task_store import TaskStore


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppContext and the bootstrap.

    We intentionally use a SimpleNamespace rather than reading the environment,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="vehix-test",
        log_level="DEBUG",
        current_user_id=None,
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "tasks.sqlite3",
        users_path=tmp_path / "users.json",
        location_refresh_delay=0.0,
    )


@pytest.fixture()
def users() -> UserDirectory:
    return UserDirectory(
        [
            User(id="admin", email="admin@fleet.test", role=UserRole.ADMIN, full_name="Ada Admin"),
            User(id="mgr", email="mgr@fleet.test", role=UserRole.MANAGER),
            User(id="t1", email="tom@fleet.test", role=UserRole.TECHNICIAN, full_name="Tom Tech"),
            User(id="t2", email="tina@fleet.test", role=UserRole.TECHNICIAN, full_name="Tina Tech"),
        ]
    )


@pytest.fixture()
def store(settings: SimpleNamespace) -> TaskStore:
    return TaskStore(settings.tasks_db_path)


@pytest.fixture()
def ctx(settings: SimpleNamespace, store: TaskStore, users: UserDirectory) -> AppContext:
    """
    AppContext wired with a real SQLite store (its behavior is part of what we test)
    and no signed-in user.
    """
    return AppContext(settings=settings, task_store=store, users=users)

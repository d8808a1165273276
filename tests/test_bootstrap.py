# tests/test_bootstrap.py

from __future__ import annotations

import json
from pathlib import Path
from types import SimpleNamespace

import pytest

from vehix.cli.bootstrap import create_app_context
from vehix.config import Settings


def test_settings_from_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("VEHIX_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("VEHIX_LOG_LEVEL", "debug")
    monkeypatch.setenv("VEHIX_CURRENT_USER_ID", " t1 ")
    monkeypatch.setenv("VEHIX_LOCATION_REFRESH_DELAY", "not-a-number")
    monkeypatch.delenv("VEHIX_TASKS_DB_PATH", raising=False)
    monkeypatch.delenv("VEHIX_USERS_PATH", raising=False)

    s = Settings.from_env()

    assert s.log_level == "DEBUG"
    assert s.current_user_id == "t1"
    assert s.tasks_db_path == tmp_path / "data" / "tasks.sqlite3"
    assert s.users_path == tmp_path / "data" / "users.json"
    assert s.location_refresh_delay == 1.5


def test_create_app_context_signs_in_configured_user(settings: SimpleNamespace) -> None:
    settings.users_path.write_text(
        json.dumps([{"id": "t1", "email": "tom@fleet.test", "role": "technician"}]), "utf-8"
    )
    settings.current_user_id = "t1"

    ctx = create_app_context(settings=settings)

    assert ctx.current_user is not None and ctx.current_user.id == "t1"
    assert ctx.task_store.count_tasks() == 0
    assert ctx.locations is not None
    assert settings.tasks_db_path.exists()


def test_create_app_context_unknown_user_stays_signed_out(settings: SimpleNamespace) -> None:
    settings.current_user_id = "ghost"
    ctx = create_app_context(settings=settings)
    assert ctx.current_user is None

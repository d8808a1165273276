# src/vehix/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app, passed explicitly where needed.
- No secrets required at import time.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "VEHIX"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Session ----
    current_user_id: str | None

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    tasks_db_path: Path
    users_path: Path

    # ---- Locations ----
    location_refresh_delay: float

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "vehix").strip() or "vehix"
        log_level = _env(_k("LOG_LEVEL"), "INFO").strip().upper() or "INFO"

        current_user_id = _env(_k("CURRENT_USER_ID")).strip() or None

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/vehix"))
        tasks_db_path = _env_path(_k("TASKS_DB_PATH"), data_dir / "tasks.sqlite3")
        users_path = _env_path(_k("USERS_PATH"), data_dir / "users.json")

        location_refresh_delay = max(0.0, _env_float(_k("LOCATION_REFRESH_DELAY"), 1.5))

        return Settings(
            app_name=app_name,
            log_level=log_level,
            current_user_id=current_user_id,
            data_dir=data_dir,
            tasks_db_path=tasks_db_path,
            users_path=users_path,
            location_refresh_delay=location_refresh_delay,
        )


def get_settings() -> Settings:
    """Load .env (without overriding real env vars) and read settings."""
    load_dotenv(override=False)
    return Settings.from_env()

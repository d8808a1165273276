# src/vehix/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppContext (task store/users/locations),
- picks the signed-in user from settings.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.state import AppContext
from ..core.users import UserDirectory
from ..locations.offline import OfflineLocationProvider
from ..locations.refresh import LocationRefresher
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)
    settings.users_path.parent.mkdir(parents=True, exist_ok=True)


def create_app_context(*, settings=None) -> AppContext:
    """
    Create AppContext from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    ctx = AppContext(
        settings=settings,
        task_store=TaskStore(settings.tasks_db_path),
        users=UserDirectory.load(settings.users_path),
        locations=LocationRefresher(
            OfflineLocationProvider(),
            delay_seconds=settings.location_refresh_delay,
        ),
    )

    if settings.current_user_id:
        user = ctx.switch_user(settings.current_user_id)
        if user is None:
            logger.warning("Configured current user %s not found in %s", settings.current_user_id, settings.users_path)
        else:
            logger.info("Signed in as %s (%s)", user.display_name, user.role.value)

    return ctx

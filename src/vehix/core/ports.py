# src/vehix/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps storage and platform services swappable and makes testing easier.
"""

from collections.abc import Awaitable
from datetime import datetime
from typing import Any, Protocol


class TaskRepo(Protocol):
    def save_task(self, task: Any) -> None: ...
    def get_task(self, task_id: str) -> Any | None: ...
    def delete_task(self, task_id: str) -> bool: ...
    def list_tasks(
            self,
            status_filter: Any = ...,
            *,
            now: datetime | None = None,
            limit: int = 500,
    ) -> list[Any]: ...
    def count_tasks(self) -> int: ...
    def find_tasks_by_id_prefix(self, prefix: str, *, limit: int = 2) -> list[Any]: ...


class LocationProvider(Protocol):
    """
    Platform-side port: where a vehicle currently is.

    Returns (latitude, longitude) or None when the vehicle has no fix.
    """

    def locate(self, vehicle_id: str) -> Awaitable[tuple[float, float] | None]: ...

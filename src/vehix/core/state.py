# src/vehix/core/state.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .ports import TaskRepo
from .users import User, UserDirectory, UserRole

if TYPE_CHECKING:
    from ..locations.refresh import LocationRefresher

# Roles that may edit any task, not only the ones they created.
EDITOR_ROLES = frozenset({UserRole.ADMIN, UserRole.DEALER})


@dataclass
class AppContext:
    """
    Everything a task operation needs, passed explicitly.

    Session data (current user) lives here instead of in module globals so tests and
    connectors can build as many contexts as they like.
    """

    settings: Any
    task_store: TaskRepo
    users: UserDirectory = field(default_factory=UserDirectory)
    current_user: User | None = None
    locations: LocationRefresher | None = None

    def switch_user(self, user_id: str | None) -> User | None:
        self.current_user = self.users.get(user_id)
        return self.current_user

# src/vehix/core/users.py

"""
Users and the JSON-backed user directory.

The directory file is a list of objects:
  [{"id": "u1", "email": "a@b.c", "full_name": "Ann", "role": "technician"}, ...]

Loading is best-effort: malformed entries are skipped, a broken file gives an
empty directory.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

logger = logging.getLogger(__name__)


class UserRole(StrEnum):
    STANDARD = "standard"
    PREMIUM = "premium"
    ADMIN = "admin"
    DEALER = "dealer"
    TECHNICIAN = "technician"
    OWNER = "owner"
    MANAGER = "manager"

    @classmethod
    def from_raw(cls, raw: str | None) -> UserRole:
        if not raw:
            return cls.STANDARD
        try:
            return cls(raw.strip().lower())
        except ValueError:
            return cls.STANDARD


@dataclass(slots=True, frozen=True)
class User:
    id: str
    email: str
    role: UserRole = UserRole.STANDARD
    full_name: str | None = None

    @property
    def display_name(self) -> str:
        return self.full_name or self.email


class UserDirectory:
    """In-memory user lookup, read from a JSON file that is maintained by hand."""

    def __init__(self, users: Iterable[User] = ()) -> None:
        self._users: dict[str, User] = {u.id: u for u in users}

    def __iter__(self) -> Iterator[User]:
        return iter(self._users.values())

    def __len__(self) -> int:
        return len(self._users)

    def get(self, user_id: str | None) -> User | None:
        if not user_id:
            return None
        return self._users.get(user_id)

    def add(self, user: User) -> None:
        self._users[user.id] = user

    @classmethod
    def load(cls, path: str | Path) -> UserDirectory:
        path = Path(path)
        if not path.exists():
            return cls()
        try:
            data = json.loads(path.read_text("utf-8"))
        except Exception:
            logger.exception("Failed to load users from %s", path)
            return cls()

        if not isinstance(data, list):
            logger.warning("Users file %s is not a list; ignoring.", path)
            return cls()

        users: list[User] = []
        for item in data:
            if not isinstance(item, dict):
                continue
            user_id = str(item.get("id") or "").strip()
            email = str(item.get("email") or "").strip()
            if not user_id or not email:
                continue
            full_name = item.get("full_name")
            users.append(
                User(
                    id=user_id,
                    email=email,
                    role=UserRole.from_raw(item.get("role")),
                    full_name=str(full_name) if full_name else None,
                )
            )
        logger.info("Loaded users: %d from %s", len(users), path)
        return cls(users)

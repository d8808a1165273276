# src/vehix/locations/offline.py

from __future__ import annotations

import hashlib


class OfflineLocationProvider:
    """
    Offline deterministic location provider used for demos when no platform
    location service is wired in.

    Each vehicle id maps to a stable point inside a small box around the
    configured base coordinates.
    """

    def __init__(self, base: tuple[float, float] = (37.3349, -122.0090), spread: float = 0.05) -> None:
        self._base = base
        self._spread = spread

    async def locate(self, vehicle_id: str) -> tuple[float, float] | None:
        if not vehicle_id:
            return None
        digest = hashlib.sha256(vehicle_id.encode("utf-8")).digest()
        dx = int.from_bytes(digest[:4], "big") / 0xFFFFFFFF - 0.5
        dy = int.from_bytes(digest[4:8], "big") / 0xFFFFFFFF - 0.5
        lat, lon = self._base
        return round(lat + dx * self._spread, 6), round(lon + dy * self._spread, 6)

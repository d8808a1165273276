# src/vehix/locations/refresh.py

from __future__ import annotations

"""
Vehicle location refresh.

A refresh waits a fixed delay, then asks the location provider for every
requested vehicle and caches what it gets. Only one refresh runs at a time:
while one is in flight, further refresh() calls return None immediately.

There is no cancellation or timeout of its own. Cancelling the awaiting
coroutine is the only way to stop a refresh early.
"""

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from ..core.ports import LocationProvider
from ..tasks.task_models import utc_now

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class VehicleLocation:
    vehicle_id: str
    latitude: float
    longitude: float
    updated_at: datetime


class LocationRefresher:
    def __init__(self, provider: LocationProvider, *, delay_seconds: float = 1.5) -> None:
        self._provider = provider
        self._delay = max(0.0, float(delay_seconds))
        self._refreshing = False
        self._locations: dict[str, VehicleLocation] = {}

    @property
    def is_refreshing(self) -> bool:
        return self._refreshing

    @property
    def locations(self) -> dict[str, VehicleLocation]:
        return dict(self._locations)

    async def refresh(self, vehicle_ids: Iterable[str]) -> dict[str, VehicleLocation] | None:
        """
        Refresh locations for vehicle_ids.

        Returns the locations found in this round, or None if another refresh
        was already running. Provider failures for a single vehicle are logged
        and that vehicle keeps its previous cached location.
        """
        if self._refreshing:
            logger.debug("Location refresh already in flight; ignoring request")
            return None

        self._refreshing = True
        try:
            ids = [v for v in vehicle_ids if v]
            await asyncio.sleep(self._delay)

            found: dict[str, VehicleLocation] = {}
            for vehicle_id in ids:
                try:
                    coords = await self._provider.locate(vehicle_id)
                except Exception:
                    logger.exception("locate failed vehicle_id=%s", vehicle_id)
                    continue
                if coords is None:
                    continue
                lat, lon = coords
                found[vehicle_id] = VehicleLocation(
                    vehicle_id=vehicle_id,
                    latitude=float(lat),
                    longitude=float(lon),
                    updated_at=utc_now(),
                )

            self._locations.update(found)
            logger.info("Location refresh done: %d/%d vehicles located", len(found), len(ids))
            return found
        finally:
            self._refreshing = False

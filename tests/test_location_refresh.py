# tests/test_location_refresh.py

from __future__ import annotations

import asyncio

import pytest

from vehix.locations.offline import OfflineLocationProvider
from vehix.locations.refresh import LocationRefresher

from .fakes import FakeLocationProvider


@pytest.mark.asyncio
async def test_refresh_caches_found_locations() -> None:
    provider = FakeLocationProvider(positions={"v1": (1.0, 2.0)}, failing={"v3"})
    refresher = LocationRefresher(provider, delay_seconds=0)

    found = await refresher.refresh(["v1", "v2", "v3", ""])

    assert found is not None
    assert set(found) == {"v1"}
    assert (found["v1"].latitude, found["v1"].longitude) == (1.0, 2.0)
    assert provider.calls == ["v1", "v2", "v3"]
    assert set(refresher.locations) == {"v1"}
    assert not refresher.is_refreshing


@pytest.mark.asyncio
async def test_refresh_in_flight_blocks_second_call() -> None:
    provider = FakeLocationProvider(positions={"v1": (1.0, 2.0)}, gate=asyncio.Event())
    refresher = LocationRefresher(provider, delay_seconds=0)

    first = asyncio.create_task(refresher.refresh(["v1"]))
    await asyncio.sleep(0.01)
    assert refresher.is_refreshing

    assert await refresher.refresh(["v1"]) is None
    assert provider.calls == ["v1"]

    provider.gate.set()
    result = await first
    assert result is not None and "v1" in result
    assert not refresher.is_refreshing


@pytest.mark.asyncio
async def test_cancelled_refresh_clears_flag() -> None:
    provider = FakeLocationProvider(gate=asyncio.Event())
    refresher = LocationRefresher(provider, delay_seconds=0)

    runner = asyncio.create_task(refresher.refresh(["v1"]))
    await asyncio.sleep(0.01)
    runner.cancel()
    with pytest.raises(asyncio.CancelledError):
        await runner

    assert not refresher.is_refreshing


@pytest.mark.asyncio
async def test_offline_provider_is_deterministic() -> None:
    provider = OfflineLocationProvider(base=(10.0, 20.0), spread=0.1)

    a = await provider.locate("van-1")
    b = await provider.locate("van-1")

    assert a == b
    assert a is not None
    assert abs(a[0] - 10.0) <= 0.05 and abs(a[1] - 20.0) <= 0.05
    assert await provider.locate("") is None

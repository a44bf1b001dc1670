"""Tests for the cache-first prayer times coordinator."""

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from homeassistant.core import HomeAssistant

from custom_components.prayer_reminders.cache import PrayerTimeCache
from custom_components.prayer_reminders.coordinator import PrayerTimesCoordinator
from custom_components.prayer_reminders.exceptions import SourceUnavailableError
from custom_components.prayer_reminders.models import (
    CitySource,
    Coordinate,
    JuristicSchool,
    PermissionStatus,
)
from custom_components.prayer_reminders.store import MemoryKeyValueStore

from .common import DOHA, DOHA_TIMINGS, FakeLocationProvider, FakeResolver, unavailable

# 12:00 in Doha
NOW = datetime(2024, 3, 15, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def cache() -> PrayerTimeCache:
    return PrayerTimeCache(MemoryKeyValueStore())


@pytest.fixture
def location() -> FakeLocationProvider:
    return FakeLocationProvider()


@pytest.fixture
def resolver() -> FakeResolver:
    return FakeResolver()


def make_coordinator(
    hass: HomeAssistant,
    resolver: FakeResolver,
    cache: PrayerTimeCache,
    location: FakeLocationProvider,
    config: dict | None = None,
) -> PrayerTimesCoordinator:
    return PrayerTimesCoordinator(
        hass,
        config or {},
        resolver,
        cache,
        location,
        clock=lambda: NOW,
        config_entry=None,
    )


async def test_first_load_fetches_and_caches(
    hass: HomeAssistant,
    resolver: FakeResolver,
    cache: PrayerTimeCache,
    location: FakeLocationProvider,
) -> None:
    coordinator = make_coordinator(hass, resolver, cache, location)

    snapshot = await coordinator.async_load_snapshot()

    assert snapshot is not None
    assert snapshot.timings == DOHA_TIMINGS
    assert snapshot.timezone == "Asia/Qatar"
    assert snapshot.date == "2024-03-15"
    assert snapshot.city == "Qatar"
    assert snapshot.source == "aladhan"
    assert snapshot.next_prayer.name == "Asr"
    assert snapshot.degraded is False

    cached = await cache.async_get(DOHA, "2024-03-15")
    assert cached["maghrib"] == "17:42"
    assert cached["next_prayer"] == "Asr"
    assert cached["hijri_date"] == "5 Ramadan 1445"
    assert await cache.async_get_location() == DOHA
    assert await cache.async_get_permission_status() == PermissionStatus.GRANTED

    record = await cache.async_get_full_timings()
    assert record["date"] == "2024-03-15"
    assert record["timezone"] == "Asia/Qatar"


async def test_second_load_is_a_cache_hit(
    hass: HomeAssistant,
    resolver: FakeResolver,
    cache: PrayerTimeCache,
    location: FakeLocationProvider,
) -> None:
    coordinator = make_coordinator(hass, resolver, cache, location)

    await coordinator.async_load_snapshot()
    snapshot = await coordinator.async_load_snapshot()

    assert len(resolver.calls) == 1
    assert snapshot.timings == DOHA_TIMINGS
    assert snapshot.city_source == CitySource.RESOLVED
    assert snapshot.coordinate == DOHA
    assert snapshot.source == "aladhan"


async def test_force_fetch_bypasses_cache(
    hass: HomeAssistant,
    resolver: FakeResolver,
    cache: PrayerTimeCache,
    location: FakeLocationProvider,
) -> None:
    coordinator = make_coordinator(hass, resolver, cache, location)

    await coordinator.async_load_snapshot()
    await coordinator.async_load_snapshot(force_fetch=True)

    assert len(resolver.calls) == 2


async def test_configured_school_is_used(
    hass: HomeAssistant,
    resolver: FakeResolver,
    cache: PrayerTimeCache,
    location: FakeLocationProvider,
) -> None:
    coordinator = make_coordinator(hass, resolver, cache, location, {"school": 0})
    await coordinator.async_load_snapshot()
    assert resolver.calls[0][1] == JuristicSchool.SHAFI


async def test_stored_school_is_used_without_config(
    hass: HomeAssistant,
    resolver: FakeResolver,
    cache: PrayerTimeCache,
    location: FakeLocationProvider,
) -> None:
    await cache.async_save_school(JuristicSchool.SHAFI)
    coordinator = make_coordinator(hass, resolver, cache, location)
    await coordinator.async_load_snapshot()
    assert resolver.calls[0][1] == JuristicSchool.SHAFI


async def test_permission_denied_serves_last_cached_record(
    hass: HomeAssistant,
    resolver: FakeResolver,
    cache: PrayerTimeCache,
    location: FakeLocationProvider,
) -> None:
    coordinator = make_coordinator(hass, resolver, cache, location)
    await coordinator.async_load_snapshot()

    location.status = PermissionStatus.DENIED
    snapshot = await coordinator.async_load_snapshot()

    assert snapshot.degraded is True
    assert snapshot.permission_granted is False
    assert snapshot.coordinate is None
    assert snapshot.timings == DOHA_TIMINGS
    assert len(resolver.calls) == 1
    assert await cache.async_get_permission_status() == PermissionStatus.DENIED


async def test_undetermined_permission_is_requested(
    hass: HomeAssistant, resolver: FakeResolver, cache: PrayerTimeCache
) -> None:
    location = FakeLocationProvider(
        status=PermissionStatus.UNDETERMINED, requested_status=PermissionStatus.GRANTED
    )
    coordinator = make_coordinator(hass, resolver, cache, location)

    snapshot = await coordinator.async_load_snapshot()

    assert location.requests == 1
    assert snapshot.degraded is False


async def test_nothing_available(
    hass: HomeAssistant, resolver: FakeResolver, cache: PrayerTimeCache
) -> None:
    location = FakeLocationProvider(coordinate=None)
    coordinator = make_coordinator(hass, resolver, cache, location)

    assert await coordinator.async_load_snapshot() is None

    await coordinator.async_refresh()
    assert coordinator.last_update_success is False
    assert resolver.calls == []


async def test_last_known_location_is_used(
    hass: HomeAssistant,
    resolver: FakeResolver,
    cache: PrayerTimeCache,
    location: FakeLocationProvider,
) -> None:
    await cache.async_save_location(DOHA)
    location.coordinate = None
    coordinator = make_coordinator(hass, resolver, cache, location)

    snapshot = await coordinator.async_load_snapshot()

    assert snapshot.coordinate == DOHA
    assert resolver.calls[0][0] == DOHA


async def test_source_failure_falls_back_to_cache(
    hass: HomeAssistant,
    resolver: FakeResolver,
    cache: PrayerTimeCache,
    location: FakeLocationProvider,
) -> None:
    coordinator = make_coordinator(hass, resolver, cache, location)
    await coordinator.async_load_snapshot()

    resolver.error = unavailable()
    snapshot = await coordinator.async_load_snapshot(force_fetch=True)

    assert snapshot.degraded is True
    assert snapshot.permission_granted is True
    assert snapshot.timings == DOHA_TIMINGS


async def test_source_failure_with_empty_cache(
    hass: HomeAssistant, cache: PrayerTimeCache, location: FakeLocationProvider
) -> None:
    resolver = FakeResolver(error=unavailable())
    coordinator = make_coordinator(hass, resolver, cache, location)

    with pytest.raises(SourceUnavailableError):
        await coordinator.async_load_snapshot()

    await coordinator.async_refresh()
    assert coordinator.last_update_success is False


async def test_refresh_publishes_snapshot(
    hass: HomeAssistant,
    resolver: FakeResolver,
    cache: PrayerTimeCache,
    location: FakeLocationProvider,
) -> None:
    coordinator = make_coordinator(hass, resolver, cache, location)

    await coordinator.async_refresh()
    assert coordinator.last_update_success is True
    assert coordinator.data.city == "Qatar"

    await coordinator.async_refresh()
    assert len(resolver.calls) == 1

    await coordinator.async_request_full_refresh()
    assert len(resolver.calls) == 2

    await coordinator.async_refresh()
    assert len(resolver.calls) == 2


async def test_cache_day_follows_the_location_date(
    hass: HomeAssistant, cache: PrayerTimeCache
) -> None:
    # Madrid's longitude estimate is UTC, but the source reports Europe/Madrid
    madrid = Coordinate(40.4168, -3.7038)
    resolver = FakeResolver(timezone="Europe/Madrid")
    clock = [datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)]
    coordinator = PrayerTimesCoordinator(
        hass,
        {},
        resolver,
        cache,
        FakeLocationProvider(coordinate=madrid),
        clock=lambda: clock[0],
        config_entry=None,
    )

    first = await coordinator.async_load_snapshot()
    assert first.date == "2024-06-15"

    # 00:30 on 16 June in Madrid, still 15 June in UTC
    clock[0] = datetime(2024, 6, 15, 22, 30, tzinfo=timezone.utc)
    second = await coordinator.async_load_snapshot()

    assert second.date == "2024-06-16"
    assert len(resolver.calls) == 2
    assert resolver.calls[1][2] == date(2024, 6, 16)

"""DataUpdateCoordinator for Prayer Reminders."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator, UpdateFailed
from homeassistant.util import dt as dt_util

from .cache import PrayerTimeCache
from .calculator import next_prayer, wall_clock
from .const import CONF_SCHOOL, DOMAIN
from .exceptions import SourceUnavailableError
from .location import LocationProvider
from .models import (
    CitySource,
    Coordinate,
    JuristicSchool,
    LocationTimeContext,
    PermissionStatus,
    PrayerSnapshot,
    PrayerTimingSet,
)
from .resolver import TimeSourceResolver, resolve_timezone

_LOGGER = logging.getLogger(__name__)


def snapshot_payload(snapshot: PrayerSnapshot) -> dict:
    """Cache record for a snapshot."""
    upcoming = snapshot.next_prayer
    return {
        "maghrib": snapshot.timings.get("Maghrib"),
        "hijri_date": snapshot.hijri_date,
        "gregorian_date": snapshot.gregorian_date,
        "next_prayer": upcoming.name if upcoming else None,
        "next_prayer_time": upcoming.time if upcoming else None,
        "city": snapshot.city,
        "date": snapshot.date,
        "timings": snapshot.timings.as_dict(),
        "timezone": snapshot.timezone,
        "city_source": str(snapshot.city_source),
        "source": snapshot.source,
    }


class PrayerTimesCoordinator(DataUpdateCoordinator[PrayerSnapshot]):
    """Coordinator that resolves prayer times, cache first."""

    def __init__(
        self,
        hass: HomeAssistant,
        config: dict,
        resolver: TimeSourceResolver,
        cache: PrayerTimeCache,
        location: LocationProvider,
        clock: Callable[[], datetime] = dt_util.utcnow,
        config_entry: ConfigEntry | None = None,
    ) -> None:
        """Initialize the coordinator."""
        super().__init__(
            hass,
            _LOGGER,
            config_entry=config_entry,
            name=DOMAIN,
            update_interval=timedelta(hours=6),
        )
        self.config = config
        self._resolver = resolver
        self._cache = cache
        self._location = location
        self._clock = clock
        self._force_fetch = False

    async def _async_update_data(self) -> PrayerSnapshot:
        """Load the current snapshot, fetching only when the cache misses."""
        force_fetch, self._force_fetch = self._force_fetch, False
        _LOGGER.debug("Coordinator: update (force_fetch=%s)", force_fetch)

        try:
            snapshot = await self.async_load_snapshot(force_fetch=force_fetch)
        except SourceUnavailableError as err:
            raise UpdateFailed(f"Failed to fetch prayer times: {err}") from err

        if snapshot is None:
            raise UpdateFailed("No prayer times available, live or cached")
        return snapshot

    async def async_request_full_refresh(self) -> None:
        """Re-read location and re-fetch prayer data, bypassing the cache."""
        self._force_fetch = True
        await self.async_refresh()

    async def async_load_snapshot(self, force_fetch: bool = False) -> PrayerSnapshot | None:
        """Permission, then location, then cache or sources.

        Returns None only when nothing at all is available.
        """
        permission = await self._location.async_get_permission()
        if permission.status == PermissionStatus.UNDETERMINED:
            permission = await self._location.async_request_permission()
        await self._cache.async_save_permission_status(permission.status)

        if not permission.granted:
            _LOGGER.warning("Location permission %s, using cached times", permission.status)
            return await self._async_degraded_snapshot(permission_granted=False)

        coordinate = await self._async_get_coordinate()
        if coordinate is None:
            _LOGGER.warning("No location available, using cached times")
            return await self._async_degraded_snapshot(permission_granted=True)

        now = self._clock()
        day = wall_clock(now, await self._async_day_timezone(coordinate)).date
        day_str = day.isoformat()

        if not force_fetch:
            payload = await self._cache.async_get(coordinate, day_str)
            if payload:
                _LOGGER.debug("Coordinator: cache hit for %s", day_str)
                snapshot = self._snapshot_from_payload(payload, now, coordinate=coordinate)
                if snapshot is not None:
                    return snapshot

        school = await self._async_get_school()
        try:
            resolved = await self._resolver.async_resolve(coordinate, school, day)
        except SourceUnavailableError:
            fallback = await self._async_degraded_snapshot(permission_granted=True)
            if fallback is None:
                raise
            _LOGGER.warning("All prayer time sources failed, using cached times")
            return fallback

        snapshot = self._build_snapshot(
            resolved.timings,
            resolved.context,
            day_str,
            now,
            hijri_date=resolved.hijri_date,
            gregorian_date=resolved.gregorian_date,
            source=resolved.source,
        )
        await self._cache.async_put(coordinate, day_str, snapshot_payload(snapshot))
        await self._cache.async_put_full_timings(snapshot.timings, day_str, snapshot.timezone)
        _LOGGER.info(
            "Coordinator: prayer times refreshed for %s in %s from %s",
            day_str,
            snapshot.city,
            resolved.source,
        )
        return snapshot

    async def _async_get_coordinate(self) -> Coordinate | None:
        """Live coordinate, else the last one we stored."""
        coordinate = await self._location.async_get_coordinate()
        if coordinate is not None:
            await self._cache.async_save_location(coordinate)
            return coordinate

        coordinate = await self._cache.async_get_location()
        if coordinate is not None:
            _LOGGER.debug("Coordinator: using last known location %s", coordinate)
        return coordinate

    async def _async_day_timezone(self, coordinate: Coordinate) -> str:
        """Zone whose calendar date keys the cache for this location.

        The source's timezone from the last fetch here, else the estimate.
        """
        timezone = await self._cache.async_get_timezone(coordinate)
        if timezone is None:
            timezone, _city_source = resolve_timezone(coordinate)
        return timezone

    async def _async_get_school(self) -> JuristicSchool:
        school = self.config.get(CONF_SCHOOL)
        if school is None:
            return await self._cache.async_get_school()
        return JuristicSchool(int(school))

    async def _async_degraded_snapshot(self, permission_granted: bool) -> PrayerSnapshot | None:
        payload = await self._cache.async_get_raw()
        if not payload:
            return None
        return self._snapshot_from_payload(
            payload,
            self._clock(),
            coordinate=None,
            permission_granted=permission_granted,
            degraded=True,
        )

    def _snapshot_from_payload(
        self,
        payload: dict,
        now: datetime,
        coordinate: Coordinate | None,
        permission_granted: bool = True,
        degraded: bool = False,
    ) -> PrayerSnapshot | None:
        timings = PrayerTimingSet(payload.get("timings") or {})
        if not len(timings):
            _LOGGER.debug("Ignoring cached record without timings")
            return None

        try:
            city_source = CitySource(payload.get("city_source"))
        except ValueError:
            city_source = CitySource.ESTIMATED
        timezone = payload.get("timezone") or "UTC"

        return PrayerSnapshot(
            timings=timings,
            timezone=timezone,
            date=payload.get("date", ""),
            coordinate=coordinate,
            city=payload.get("city") or "Unknown",
            city_source=city_source,
            hijri_date=payload.get("hijri_date", ""),
            gregorian_date=payload.get("gregorian_date", ""),
            next_prayer=next_prayer(timings, timezone, now),
            permission_granted=permission_granted,
            degraded=degraded,
            source=payload.get("source", ""),
        )

    @staticmethod
    def _build_snapshot(
        timings: PrayerTimingSet,
        context: LocationTimeContext,
        day: str,
        now: datetime,
        hijri_date: str = "",
        gregorian_date: str = "",
        source: str = "",
    ) -> PrayerSnapshot:
        return PrayerSnapshot(
            timings=timings,
            timezone=context.timezone,
            date=day,
            coordinate=context.coordinate,
            city=context.city,
            city_source=context.city_source,
            hijri_date=hijri_date,
            gregorian_date=gregorian_date,
            next_prayer=next_prayer(timings, context.timezone, now),
            source=source,
        )

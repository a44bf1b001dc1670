"""Per-day, per-location prayer time cache plus stored preferences.

Validated reads require the same calendar date and the same rounded location.
Raw reads return whatever was written last, for when location is unavailable.
"""

from __future__ import annotations

import logging
from typing import Any

from homeassistant.util import dt as dt_util

from .const import (
    DEFAULT_SCHOOL,
    KEY_FULL_TIMINGS,
    KEY_LOCATION,
    KEY_LOCATION_ENABLED,
    KEY_PERMISSION_STATUS,
    KEY_PRAYER_TIMES,
    KEY_SCHOOL,
    LOCATION_HASH_PRECISION,
)
from .models import Coordinate, JuristicSchool, PermissionStatus, PrayerTimingSet
from .store import KeyValueStore

_LOGGER = logging.getLogger(__name__)


class PrayerTimeCache:
    """Cache layer over a key-value store."""

    def __init__(
        self, store: KeyValueStore, precision: int = LOCATION_HASH_PRECISION
    ) -> None:
        """Initialize the cache."""
        self._store = store
        self._precision = precision

    def location_hash(self, coordinate: Coordinate) -> str:
        return coordinate.location_hash(self._precision)

    async def _async_read(self, key: str) -> Any:
        try:
            return await self._store.async_get(key)
        except Exception:
            _LOGGER.exception("Error reading %s from storage", key)
            return None

    async def _async_write(self, key: str, value: Any) -> bool:
        try:
            await self._store.async_set(key, value)
        except Exception:
            _LOGGER.exception("Error saving %s to storage", key)
            return False
        return True

    # --- Prayer times ---

    async def async_get(self, coordinate: Coordinate, day: str) -> dict | None:
        """Return the cached payload only for the same day and location bucket."""
        entry = await self._async_read(KEY_PRAYER_TIMES)
        if not isinstance(entry, dict):
            return None

        location_hash = self.location_hash(coordinate)
        if entry.get("date") != day or entry.get("location_hash") != location_hash:
            _LOGGER.debug(
                "Cache miss: have %s@%s, want %s@%s",
                entry.get("date"),
                entry.get("location_hash"),
                day,
                location_hash,
            )
            return None
        return entry.get("payload")

    async def async_put(self, coordinate: Coordinate, day: str, payload: dict) -> bool:
        """Replace the cached entry with payload for this day and location."""
        entry = {
            "date": day,
            "location_hash": self.location_hash(coordinate),
            "written_at": dt_util.utcnow().isoformat(),
            "payload": payload,
        }
        return await self._async_write(KEY_PRAYER_TIMES, entry)

    async def async_get_raw(self) -> dict | None:
        """Return the last written payload regardless of date or location."""
        entry = await self._async_read(KEY_PRAYER_TIMES)
        if not isinstance(entry, dict):
            return None
        return entry.get("payload")

    async def async_get_timezone(self, coordinate: Coordinate) -> str | None:
        """Timezone last resolved for this location bucket, on any date."""
        entry = await self._async_read(KEY_PRAYER_TIMES)
        if not isinstance(entry, dict):
            return None
        if entry.get("location_hash") != self.location_hash(coordinate):
            return None
        payload = entry.get("payload")
        if not isinstance(payload, dict):
            return None
        return payload.get("timezone") or None

    async def async_get_full_timings(self) -> dict | None:
        """Return {timings, date, timezone} however old it is."""
        record = await self._async_read(KEY_FULL_TIMINGS)
        if not isinstance(record, dict) or not record.get("timings"):
            return None
        return record

    async def async_put_full_timings(
        self, timings: PrayerTimingSet, day: str, timezone: str
    ) -> bool:
        record = {"timings": timings.as_dict(), "date": day, "timezone": timezone}
        return await self._async_write(KEY_FULL_TIMINGS, record)

    # --- Location ---

    async def async_get_location(self) -> Coordinate | None:
        record = await self._async_read(KEY_LOCATION)
        if not isinstance(record, dict):
            return None
        try:
            return Coordinate(float(record["latitude"]), float(record["longitude"]))
        except (KeyError, TypeError, ValueError):
            _LOGGER.warning("Ignoring malformed stored location: %s", record)
            return None

    async def async_save_location(self, coordinate: Coordinate) -> bool:
        record = {**coordinate.as_dict(), "last_updated": dt_util.utcnow().isoformat()}
        return await self._async_write(KEY_LOCATION, record)

    # --- Preferences ---

    async def async_get_permission_status(self) -> PermissionStatus | None:
        value = await self._async_read(KEY_PERMISSION_STATUS)
        try:
            return PermissionStatus(value) if value else None
        except ValueError:
            return None

    async def async_save_permission_status(self, status: PermissionStatus) -> bool:
        return await self._async_write(KEY_PERMISSION_STATUS, str(status))

    async def async_get_location_enabled(self) -> bool | None:
        """None means the user never chose."""
        value = await self._async_read(KEY_LOCATION_ENABLED)
        return None if value is None else bool(value)

    async def async_save_location_enabled(self, enabled: bool) -> bool:
        return await self._async_write(KEY_LOCATION_ENABLED, enabled)

    async def async_get_school(self) -> JuristicSchool:
        value = await self._async_read(KEY_SCHOOL)
        try:
            return JuristicSchool(int(value))
        except (TypeError, ValueError):
            return JuristicSchool(DEFAULT_SCHOOL)

    async def async_save_school(self, school: JuristicSchool) -> bool:
        return await self._async_write(KEY_SCHOOL, int(school))

"""Choose, correct, validate and fall back between prayer time sources."""

from __future__ import annotations

import logging
from datetime import date

from .calculator import format_time, is_ordered, parse_time
from .const import (
    PLAUSIBLE_HOURS,
    PRAYER_ORDER,
    REGION_TIMEZONES,
    REGIONAL_BOUNDS,
    REGIONAL_HOUR_FLOORS,
)
from .exceptions import SourceUnavailableError, TimingValidationError
from .models import (
    CitySource,
    Coordinate,
    JuristicSchool,
    LocationTimeContext,
    PrayerTimingSet,
    ResolvedTimings,
)
from .sources import GlobalTimeSource, RegionalTimeSource, SourceResponse

_LOGGER = logging.getLogger(__name__)


def _in_bounds(coordinate: Coordinate, bounds: tuple[float, float, float, float]) -> bool:
    min_lat, max_lat, min_lon, max_lon = bounds
    return (
        min_lat <= coordinate.latitude <= max_lat
        and min_lon <= coordinate.longitude <= max_lon
    )


def in_regional_coverage(coordinate: Coordinate) -> bool:
    """Return True when the regional high-precision source covers the point."""
    return _in_bounds(coordinate, REGIONAL_BOUNDS)


def correct_regional_timings(raw: dict[str, str]) -> PrayerTimingSet:
    """Undo the regional feed's missing AM/PM on afternoon prayers.

    Asr, Maghrib and Isha read below their hour floor are moved 12 hours on.
    """
    corrected: dict[str, str] = {}
    for name in PRAYER_ORDER:
        value = raw.get(name)
        if not value:
            continue
        try:
            hour, minute = parse_time(value)
        except ValueError as err:
            raise TimingValidationError(f"Unparseable {name} time {value!r}") from err

        floor = REGIONAL_HOUR_FLOORS.get(name)
        if floor is not None and hour < floor and hour < 12:
            _LOGGER.debug("Correcting %s from %s to PM", name, value)
            hour += 12
        corrected[name] = format_time(hour, minute)
    return PrayerTimingSet(corrected)


def validate_timings(timings: PrayerTimingSet) -> None:
    """Raise TimingValidationError unless every prayer is plausible and ordered."""
    for name in PRAYER_ORDER:
        value = timings.get(name)
        if value is None:
            raise TimingValidationError(f"Missing {name} time")
        hour, _minute = parse_time(value)
        low, high = PLAUSIBLE_HOURS[name]
        if not low <= hour <= high:
            raise TimingValidationError(
                f"{name} at {value} outside {low:02d}:00-{high:02d}:59"
            )

    if not is_ordered(timings):
        raise TimingValidationError(f"Prayer times out of order: {timings.as_dict()}")


def estimate_timezone(longitude: float) -> str:
    """Coarse IANA zone from longitude, 15 degrees per hour."""
    hours = max(-12, min(14, round(longitude / 15)))
    if hours == 0:
        return "UTC"
    # Etc/GMT zones use inverted signs: UTC+3 is Etc/GMT-3
    return f"Etc/GMT{-hours:+d}"


def resolve_timezone(
    coordinate: Coordinate | None, source_timezone: str | None = None
) -> tuple[str, CitySource]:
    """Timezone from the source, then known regions, then longitude."""
    if source_timezone:
        return source_timezone, CitySource.RESOLVED
    if coordinate is None:
        return "UTC", CitySource.ESTIMATED

    for bounds, timezone in REGION_TIMEZONES:
        if _in_bounds(coordinate, bounds):
            return timezone, CitySource.RESOLVED

    return estimate_timezone(coordinate.longitude), CitySource.ESTIMATED


class TimeSourceResolver:
    """Resolve a coordinate to a timing set and its timezone context."""

    def __init__(
        self, regional: RegionalTimeSource, global_source: GlobalTimeSource
    ) -> None:
        """Initialize with both sources."""
        self._regional = regional
        self._global = global_source

    async def async_resolve(
        self, coordinate: Coordinate, school: JuristicSchool, day: date
    ) -> ResolvedTimings:
        """Regional first when covered, global otherwise or on any failure."""
        if in_regional_coverage(coordinate):
            try:
                return await self._async_resolve_regional(coordinate, day)
            except SourceUnavailableError as err:
                _LOGGER.warning(
                    "Regional prayer times rejected, falling back to %s: %s",
                    self._global.name,
                    err,
                )

        response = await self._global.async_fetch(coordinate, school, day)
        _LOGGER.debug("Global timings for %s: %s", coordinate, response.timings)
        return self._build(
            PrayerTimingSet(response.timings), coordinate, response, self._global.name
        )

    async def _async_resolve_regional(
        self, coordinate: Coordinate, day: date
    ) -> ResolvedTimings:
        response = await self._regional.async_fetch(day)
        timings = correct_regional_timings(response.timings)
        validate_timings(timings)
        _LOGGER.debug("Regional timings for %s: %s", day, timings.as_dict())
        return self._build(timings, coordinate, response, self._regional.name)

    @staticmethod
    def _build(
        timings: PrayerTimingSet,
        coordinate: Coordinate,
        response: SourceResponse,
        source: str,
    ) -> ResolvedTimings:
        timezone, city_source = resolve_timezone(coordinate, response.timezone)
        return ResolvedTimings(
            timings=timings,
            context=LocationTimeContext(
                coordinate=coordinate, timezone=timezone, city_source=city_source
            ),
            source=source,
            hijri_date=response.hijri_date,
            gregorian_date=response.gregorian_date,
        )

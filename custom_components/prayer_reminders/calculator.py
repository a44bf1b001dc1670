"""Schedule calculations for Prayer Reminders.

All comparisons between "now" and a wall-clock HH:MM string in some other
timezone go through WallClock. The wall-clock components of now in the target
zone are read as a naive datetime, and the difference between the real instant
and that naive value is the zone offset for the day. Any HH:MM on the same date
converts back to an absolute instant by adding that offset.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta

from homeassistant.util import dt as dt_util

from .const import PRAYER_ORDER
from .models import NextPrayer, PrayerTimingSet

_LOGGER = logging.getLogger(__name__)


def parse_time(value: str) -> tuple[int, int]:
    """Parse "HH:MM" (also "HH:MM (+03)" and "HH:MM:SS") into (hour, minute)."""
    time_clean = str(value).strip().split(" ")[0].split("(")[0].strip()
    parts = time_clean.split(":")
    if len(parts) < 2:
        raise ValueError(f"Invalid time string: {value!r}")

    hour = int(parts[0])
    minute = int(parts[1])
    if not (0 <= hour < 24 and 0 <= minute < 60):
        raise ValueError(f"Time out of range: {value!r}")
    return hour, minute


def format_time(hour: int, minute: int) -> str:
    return f"{hour:02d}:{minute:02d}"


def format_12_hour(value: str) -> str:
    """Format "18:02" as "6:02 PM"."""
    if not value:
        return ""
    hour, minute = parse_time(value)
    period = "PM" if hour >= 12 else "AM"
    hour12 = hour % 12 or 12
    return f"{hour12}:{minute:02d} {period}"


def countdown_text(total_seconds: float) -> str:
    """Return "starts in 2h 14m 18s", dropping leading zero units."""
    seconds = max(0, int(total_seconds))
    hours, remainder = divmod(seconds, 3600)
    minutes, seconds = divmod(remainder, 60)

    text = "starts in "
    if hours > 0:
        text += f"{hours}h "
    if minutes > 0 or hours > 0:
        text += f"{minutes}m "
    return f"{text}{seconds}s"


def is_ordered(timings: PrayerTimingSet) -> bool:
    """Return True when every prayer is present and strictly increasing."""
    minutes = []
    for name in PRAYER_ORDER:
        value = timings.get(name)
        if value is None:
            return False
        try:
            hour, minute = parse_time(value)
        except ValueError:
            return False
        minutes.append(hour * 60 + minute)
    return all(a < b for a, b in zip(minutes, minutes[1:]))


class WallClock:
    """An instant seen through the wall clock of a named timezone."""

    def __init__(self, now: datetime, timezone: str) -> None:
        """Capture the local wall-clock time and the zone offset for now."""
        tzinfo = dt_util.get_time_zone(timezone)
        if tzinfo is None:
            _LOGGER.warning("Unknown timezone %s, using UTC", timezone)
            tzinfo = dt_util.UTC

        self.timezone = timezone
        self.now = dt_util.as_utc(now)
        self.local = self.now.astimezone(tzinfo).replace(tzinfo=None)
        self.offset = self.now.replace(tzinfo=None) - self.local

    @property
    def date(self) -> date:
        """Calendar date at the location."""
        return self.local.date()

    def naive_at(self, value: str, day_offset: int = 0) -> datetime:
        """Naive local datetime for HH:MM on today's local date plus day_offset."""
        hour, minute = parse_time(value)
        base = self.local.replace(hour=hour, minute=minute, second=0, microsecond=0)
        return base + timedelta(days=day_offset)

    def to_instant(self, naive_local: datetime) -> datetime:
        """Convert a naive local datetime to an aware UTC instant."""
        return (naive_local + self.offset).replace(tzinfo=dt_util.UTC)

    def instant_at(self, value: str, day_offset: int = 0) -> datetime:
        """Absolute instant for HH:MM at the location."""
        return self.to_instant(self.naive_at(value, day_offset))


def wall_clock(now: datetime, timezone: str) -> WallClock:
    return WallClock(now, timezone)


def prayer_instants(timings: PrayerTimingSet, clock: WallClock) -> dict[str, datetime]:
    """Absolute instants for every parseable prayer on the clock's local date.

    Isha earlier than Maghrib belongs to the following day.
    """
    instants: dict[str, datetime] = {}
    for name, value in timings.items():
        try:
            instants[name] = clock.instant_at(value)
        except ValueError:
            _LOGGER.debug("Skipping unparseable %s time: %s", name, value)

    maghrib = instants.get("Maghrib")
    isha = instants.get("Isha")
    if maghrib is not None and isha is not None and isha < maghrib:
        instants["Isha"] = isha + timedelta(days=1)
    return instants


def next_prayer(
    timings: PrayerTimingSet, timezone: str, now: datetime
) -> NextPrayer | None:
    """Return the first prayer strictly after now, else tomorrow's Fajr."""
    clock = wall_clock(now, timezone)

    for name in PRAYER_ORDER:
        value = timings.get(name)
        if not value:
            continue
        try:
            candidate = clock.naive_at(value)
        except ValueError:
            _LOGGER.debug("Skipping unparseable %s time: %s", name, value)
            continue
        if candidate > clock.local:
            return NextPrayer(name=name, time=value, instant=clock.to_instant(candidate))

    fajr = timings.get("Fajr")
    if not fajr:
        return None
    try:
        instant = clock.instant_at(fajr, day_offset=1)
    except ValueError:
        return None
    return NextPrayer(name="Fajr", time=fajr, instant=instant, tomorrow=True)


def is_evening_window(
    timings: PrayerTimingSet, timezone: str, now: datetime
) -> bool | None:
    """True between Maghrib and the next Fajr, None if either is missing."""
    clock = wall_clock(now, timezone)
    instants = prayer_instants(timings, clock)
    maghrib = instants.get("Maghrib")
    fajr = instants.get("Fajr")
    if maghrib is None or fajr is None:
        return None
    return clock.now >= maghrib or clock.now < fajr

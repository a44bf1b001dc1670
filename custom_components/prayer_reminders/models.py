"""Data model for Prayer Reminders."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum, StrEnum

from .const import (
    KIND_REMINDER,
    KIND_START,
    MODE_DAY,
    MODE_EVENING,
    PRAYER_ORDER,
    SOUND_ATHAN,
    SOUND_BEEP,
    SOUND_SILENT,
    SOUND_VIBRATION,
)


class JuristicSchool(IntEnum):
    """Asr calculation convention, stored as 0/1."""

    SHAFI = 0
    HANAFI = 1


class SoundMode(StrEnum):
    """How a prayer notification is delivered."""

    ATHAN = SOUND_ATHAN
    BEEP = SOUND_BEEP
    VIBRATION = SOUND_VIBRATION
    SILENT = SOUND_SILENT


class NotificationKind(StrEnum):
    """Start-of-prayer alert or end-of-window reminder."""

    START = KIND_START
    REMINDER = KIND_REMINDER


class DisplayMode(StrEnum):
    """Presentation mode derived from the prayer schedule."""

    DAY = MODE_DAY
    EVENING = MODE_EVENING


class PermissionStatus(StrEnum):
    """Permission state reported by a provider or dispatcher."""

    GRANTED = "granted"
    DENIED = "denied"
    UNDETERMINED = "undetermined"


class CitySource(StrEnum):
    """Whether the city label came from a data source or an estimate."""

    RESOLVED = "resolved"
    ESTIMATED = "estimated"


@dataclass(frozen=True)
class Coordinate:
    """A latitude/longitude pair in degrees."""

    latitude: float
    longitude: float

    def location_hash(self, precision: int = 2) -> str:
        """Return the rounded "lat,lon" key used to bucket nearby reads."""
        # + 0.0 turns -0.0 into 0.0 so both sides of zero share a bucket
        lat = round(self.latitude, precision) + 0.0
        lon = round(self.longitude, precision) + 0.0
        return f"{lat},{lon}"

    def as_dict(self) -> dict:
        return {"latitude": self.latitude, "longitude": self.longitude}


@dataclass(frozen=True)
class PermissionState:
    """Permission status plus whether the user can still be asked."""

    status: PermissionStatus
    can_ask_again: bool = True

    @property
    def granted(self) -> bool:
        return self.status == PermissionStatus.GRANTED


class PrayerTimingSet:
    """Wall-clock HH:MM times per prayer, in the location's own timezone."""

    def __init__(self, timings: dict[str, str]) -> None:
        """Keep only known prayers, in prayer order."""
        self._timings = {
            name: timings[name] for name in PRAYER_ORDER if timings.get(name)
        }

    def __getitem__(self, name: str) -> str:
        return self._timings[name]

    def __contains__(self, name: object) -> bool:
        return name in self._timings

    def __iter__(self):
        return iter(self._timings)

    def __len__(self) -> int:
        return len(self._timings)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PrayerTimingSet):
            return NotImplemented
        return self._timings == other._timings

    def __repr__(self) -> str:
        return f"PrayerTimingSet({self._timings!r})"

    def get(self, name: str, default: str | None = None) -> str | None:
        return self._timings.get(name, default)

    def items(self):
        return self._timings.items()

    def as_dict(self) -> dict[str, str]:
        return dict(self._timings)

    def is_complete(self) -> bool:
        """Return True when all six entries are present."""
        return len(self._timings) == len(PRAYER_ORDER)


@dataclass(frozen=True)
class LocationTimeContext:
    """Where the timings apply and which timezone they are expressed in."""

    coordinate: Coordinate
    timezone: str
    city_source: CitySource = CitySource.ESTIMATED

    @property
    def city(self) -> str:
        """City label derived from the timezone, e.g. Asia/Karachi -> Karachi."""
        return self.timezone.split("/")[-1].replace("_", " ")


@dataclass
class ResolvedTimings:
    """What a time source resolution produced."""

    timings: PrayerTimingSet
    context: LocationTimeContext
    source: str
    hijri_date: str = ""
    gregorian_date: str = ""


@dataclass(frozen=True)
class NextPrayer:
    """The next upcoming prayer relative to some instant."""

    name: str
    time: str
    instant: datetime
    tomorrow: bool = False


@dataclass(frozen=True)
class PrayerNotificationSetting:
    """Notification preferences for one prayer."""

    enabled: bool = False
    start_notification_enabled: bool = True
    end_window_reminder_enabled: bool = False
    sound_mode: SoundMode = SoundMode.ATHAN


@dataclass(frozen=True)
class NotificationChannel:
    """Delivery profile for one sound mode."""

    channel_id: str
    name: str
    description: str
    importance: str
    sound: bool
    vibration_pattern: tuple[int, ...] | None = None

    @property
    def vibrate(self) -> bool:
        return bool(self.vibration_pattern)


@dataclass(frozen=True)
class NotificationJob:
    """An absolute-instant notification request."""

    prayer_id: str
    kind: NotificationKind
    fire_at: datetime
    sound_mode: SoundMode
    channel_id: str
    title: str = ""
    message: str = ""

    @property
    def tag(self) -> str:
        return f"{self.prayer_id.lower()}_{self.kind}"


@dataclass(frozen=True)
class ScheduledNotification:
    """A job the dispatcher is currently holding."""

    identifier: str
    marker: str
    job: NotificationJob


@dataclass(frozen=True)
class ScheduleResult:
    """Outcome of one scheduling run."""

    count: int
    permission_needed: bool = False
    skipped: int = 0


@dataclass
class PrayerSnapshot:
    """Everything one resolution cycle exposes to entities and evaluators."""

    timings: PrayerTimingSet
    timezone: str
    date: str
    coordinate: Coordinate | None = None
    city: str = "Unknown"
    city_source: CitySource = CitySource.ESTIMATED
    hijri_date: str = ""
    gregorian_date: str = ""
    next_prayer: NextPrayer | None = None
    permission_granted: bool = True
    degraded: bool = False
    source: str = ""

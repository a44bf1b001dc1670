"""Sensor platform for Prayer Reminders."""

from __future__ import annotations

from datetime import timedelta

from homeassistant.components.sensor import SensorDeviceClass, SensorEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.device_registry import DeviceEntryType
from homeassistant.helpers.dispatcher import async_dispatcher_connect
from homeassistant.helpers.entity import DeviceInfo
from homeassistant.helpers.entity_platform import AddEntitiesCallback
from homeassistant.helpers.event import async_track_time_interval
from homeassistant.helpers.update_coordinator import CoordinatorEntity
from homeassistant.util import dt as dt_util

from .calculator import (
    countdown_text,
    format_12_hour,
    is_evening_window,
    next_prayer,
    wall_clock,
)
from .const import DOMAIN, PRAYER_ICONS, PRAYER_ORDER, SIGNAL_SCHEDULE_UPDATED
from .coordinator import PrayerTimesCoordinator
from .mode import ModeState
from .models import DisplayMode, NextPrayer
from .scheduler import NotificationScheduler


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up Prayer Reminders sensors from a config entry."""
    store = hass.data[DOMAIN][entry.entry_id]
    coordinator: PrayerTimesCoordinator = store["coordinator"]

    entities: list[SensorEntity] = []

    # Individual prayer time sensors
    for prayer_name in PRAYER_ORDER:
        entities.append(PrayerTimeSensor(coordinator, entry, prayer_name))

    entities.append(NextPrayerSensor(coordinator, entry))
    entities.append(CountdownSensor(coordinator, entry))
    entities.append(HijriDateSensor(coordinator, entry))
    entities.append(LocationSensor(coordinator, entry))
    entities.append(DisplayModeSensor(coordinator, entry, store["mode_state"]))
    entities.append(NotificationStatusSensor(coordinator, entry, store["scheduler"]))

    async_add_entities(entities)


class PrayerRemindersBaseSensor(CoordinatorEntity[PrayerTimesCoordinator], SensorEntity):
    """Base class for Prayer Reminders sensors."""

    _attr_has_entity_name = True

    def __init__(
        self,
        coordinator: PrayerTimesCoordinator,
        entry: ConfigEntry,
    ) -> None:
        """Initialize the sensor."""
        super().__init__(coordinator)
        self._entry = entry

    @property
    def device_info(self) -> DeviceInfo:
        """Return device info."""
        return DeviceInfo(
            identifiers={(DOMAIN, self._entry.entry_id)},
            name="Prayer Reminders",
            manufacturer="Prayer Reminders",
            model="Prayer Times",
            entry_type=DeviceEntryType.SERVICE,
        )

    def _next_prayer(self) -> NextPrayer | None:
        """Next prayer as of right now, not as of the last refresh."""
        snapshot = self.coordinator.data
        if not snapshot:
            return None
        return next_prayer(snapshot.timings, snapshot.timezone, dt_util.utcnow())


class TickingSensor(PrayerRemindersBaseSensor):
    """Sensor that rewrites its state every interval."""

    _tick = timedelta(minutes=1)

    async def async_added_to_hass(self) -> None:
        """Start the timer when added."""
        await super().async_added_to_hass()
        self.async_on_remove(
            async_track_time_interval(self.hass, self._async_tick, self._tick)
        )

    @callback
    def _async_tick(self, _now) -> None:
        self.async_write_ha_state()


class PrayerTimeSensor(PrayerRemindersBaseSensor):
    """Sensor for individual prayer times."""

    def __init__(
        self,
        coordinator: PrayerTimesCoordinator,
        entry: ConfigEntry,
        prayer_name: str,
    ) -> None:
        """Initialize the prayer time sensor."""
        super().__init__(coordinator, entry)
        self._prayer_name = prayer_name
        self._attr_unique_id = f"{entry.entry_id}_{prayer_name.lower()}"
        self._attr_translation_key = prayer_name.lower()
        self._attr_icon = PRAYER_ICONS.get(prayer_name, "mdi:mosque")

    @property
    def name(self) -> str:
        """Return the name of the sensor."""
        return self._prayer_name

    @property
    def native_value(self) -> str | None:
        """Return the prayer time as HH:MM in the location's timezone."""
        if not self.coordinator.data:
            return None
        return self.coordinator.data.timings.get(self._prayer_name)

    @property
    def extra_state_attributes(self) -> dict:
        """Return extra attributes."""
        snapshot = self.coordinator.data
        value = self.native_value
        if not snapshot or not value:
            return {}

        instant = wall_clock(dt_util.utcnow(), snapshot.timezone).instant_at(value)
        return {
            "time_12h": format_12_hour(value),
            "datetime": instant.isoformat(),
            "timezone": snapshot.timezone,
            "prayer_name": self._prayer_name,
        }


class NextPrayerSensor(TickingSensor):
    """Sensor showing the next upcoming prayer."""

    def __init__(
        self,
        coordinator: PrayerTimesCoordinator,
        entry: ConfigEntry,
    ) -> None:
        """Initialize the next prayer sensor."""
        super().__init__(coordinator, entry)
        self._attr_unique_id = f"{entry.entry_id}_next_prayer"

    @property
    def name(self) -> str:
        return "Next Prayer"

    @property
    def native_value(self) -> str | None:
        """Return the name of the next prayer."""
        upcoming = self._next_prayer()
        return upcoming.name if upcoming else None

    @property
    def icon(self) -> str:
        """Return dynamic icon based on next prayer."""
        upcoming = self._next_prayer()
        if upcoming:
            return PRAYER_ICONS.get(upcoming.name, "mdi:mosque")
        return "mdi:mosque"

    @property
    def extra_state_attributes(self) -> dict:
        """Return extra attributes."""
        upcoming = self._next_prayer()
        if not upcoming:
            return {}

        diff = upcoming.instant - dt_util.utcnow()
        return {
            "time": upcoming.time,
            "time_12h": format_12_hour(upcoming.time),
            "tomorrow": upcoming.tomorrow,
            "countdown_minutes": max(0, int(diff.total_seconds() / 60)),
            "datetime": upcoming.instant.isoformat(),
        }


class CountdownSensor(TickingSensor):
    """Sensor showing countdown to next prayer, updating every minute."""

    def __init__(
        self,
        coordinator: PrayerTimesCoordinator,
        entry: ConfigEntry,
    ) -> None:
        """Initialize the countdown sensor."""
        super().__init__(coordinator, entry)
        self._attr_unique_id = f"{entry.entry_id}_countdown"
        self._attr_icon = "mdi:timer-sand"
        self._attr_native_unit_of_measurement = "min"

    @property
    def name(self) -> str:
        return "Countdown"

    def _seconds_left(self) -> int | None:
        upcoming = self._next_prayer()
        if not upcoming:
            return None
        return max(0, int((upcoming.instant - dt_util.utcnow()).total_seconds()))

    @property
    def native_value(self) -> int | None:
        """Return minutes until next prayer."""
        seconds = self._seconds_left()
        return None if seconds is None else seconds // 60

    @property
    def extra_state_attributes(self) -> dict:
        """Return countdown breakdown."""
        upcoming = self._next_prayer()
        seconds = self._seconds_left()
        if not upcoming or seconds is None:
            return {"prayer_name": None, "time": None, "hours": 0, "minutes": 0, "seconds": 0}

        return {
            "prayer_name": upcoming.name,
            "time": upcoming.time,
            "text": countdown_text(seconds),
            "hours": seconds // 3600,
            "minutes": (seconds % 3600) // 60,
            "seconds": seconds % 60,
        }


class HijriDateSensor(PrayerRemindersBaseSensor):
    """Sensor showing the Hijri date reported by the prayer time source."""

    def __init__(
        self,
        coordinator: PrayerTimesCoordinator,
        entry: ConfigEntry,
    ) -> None:
        """Initialize the Hijri date sensor."""
        super().__init__(coordinator, entry)
        self._attr_unique_id = f"{entry.entry_id}_hijri_date"
        self._attr_icon = "mdi:calendar-star"

    @property
    def name(self) -> str:
        return "Hijri Date"

    @property
    def native_value(self) -> str | None:
        if not self.coordinator.data or not self.coordinator.data.hijri_date:
            return None
        return f"{self.coordinator.data.hijri_date} AH"

    @property
    def extra_state_attributes(self) -> dict:
        snapshot = self.coordinator.data
        if not snapshot:
            return {}
        return {"gregorian_date": snapshot.gregorian_date, "date": snapshot.date}


class LocationSensor(PrayerRemindersBaseSensor):
    """City the prayer times apply to."""

    def __init__(
        self,
        coordinator: PrayerTimesCoordinator,
        entry: ConfigEntry,
    ) -> None:
        super().__init__(coordinator, entry)
        self._attr_unique_id = f"{entry.entry_id}_location"
        self._attr_icon = "mdi:map-marker"

    @property
    def name(self) -> str:
        return "Location"

    @property
    def native_value(self) -> str | None:
        if not self.coordinator.data:
            return None
        return self.coordinator.data.city

    @property
    def extra_state_attributes(self) -> dict:
        snapshot = self.coordinator.data
        if not snapshot:
            return {}
        attrs = {
            "timezone": snapshot.timezone,
            "city_source": str(snapshot.city_source),
            "source": snapshot.source,
            "degraded": snapshot.degraded,
            "location_permission": snapshot.permission_granted,
        }
        if snapshot.coordinate:
            attrs.update(snapshot.coordinate.as_dict())
        return attrs


class DisplayModeSensor(PrayerRemindersBaseSensor):
    """Effective Day/Evening mode, including any preview override."""

    _attr_options = [str(mode) for mode in DisplayMode]
    _attr_device_class = SensorDeviceClass.ENUM

    def __init__(
        self,
        coordinator: PrayerTimesCoordinator,
        entry: ConfigEntry,
        mode_state: ModeState,
    ) -> None:
        """Initialize the display mode sensor."""
        super().__init__(coordinator, entry)
        self._mode_state = mode_state
        self._attr_unique_id = f"{entry.entry_id}_display_mode"

    @property
    def name(self) -> str:
        return "Display Mode"

    async def async_added_to_hass(self) -> None:
        """Follow mode changes as well as coordinator updates."""
        await super().async_added_to_hass()
        self.async_on_remove(self._mode_state.add_listener(self.async_write_ha_state))

    @property
    def native_value(self) -> str:
        return str(self._mode_state.effective_mode)

    @property
    def icon(self) -> str:
        if self._mode_state.effective_mode == DisplayMode.EVENING:
            return "mdi:weather-night"
        return "mdi:white-balance-sunny"

    @property
    def extra_state_attributes(self) -> dict:
        override = self._mode_state.override
        attrs = {
            "automatic": str(self._mode_state.automatic),
            "override": str(override) if override else None,
        }
        snapshot = self.coordinator.data
        if snapshot:
            attrs["evening_window"] = is_evening_window(
                snapshot.timings, snapshot.timezone, dt_util.utcnow()
            )
        return attrs


class NotificationStatusSensor(PrayerRemindersBaseSensor):
    """Outcome of the most recent notification scheduling run."""

    def __init__(
        self,
        coordinator: PrayerTimesCoordinator,
        entry: ConfigEntry,
        scheduler: NotificationScheduler,
    ) -> None:
        """Initialize the notification status sensor."""
        super().__init__(coordinator, entry)
        self._scheduler = scheduler
        self._attr_unique_id = f"{entry.entry_id}_notifications"
        self._attr_icon = "mdi:bell-ring"

    @property
    def name(self) -> str:
        return "Notifications"

    async def async_added_to_hass(self) -> None:
        await super().async_added_to_hass()
        self.async_on_remove(
            async_dispatcher_connect(
                self.hass,
                SIGNAL_SCHEDULE_UPDATED.format(self._entry.entry_id),
                self.async_write_ha_state,
            )
        )

    @property
    def native_value(self) -> str:
        """Return scheduling status."""
        result = self._scheduler.last_result
        if result is None:
            return "idle"
        if result.permission_needed:
            return "permission_needed"
        return "scheduled"

    @property
    def extra_state_attributes(self) -> dict:
        result = self._scheduler.last_result
        if result is None:
            return {}
        return {"count": result.count, "skipped": result.skipped}

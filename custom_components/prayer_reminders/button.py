"""Button platform for Prayer Reminders."""

from __future__ import annotations

import logging

from homeassistant.components.button import ButtonEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.device_registry import DeviceEntryType
from homeassistant.helpers.entity import DeviceInfo
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import DOMAIN
from .exceptions import PermissionDeniedError
from .mode import ModeEvaluator, ModeState
from .scheduler import NotificationScheduler

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up Prayer Reminders buttons from a config entry."""
    store = hass.data[DOMAIN][entry.entry_id]
    async_add_entities(
        [
            RefreshButton(entry, store["evaluator"]),
            TogglePreviewButton(entry, store["mode_state"]),
            TestNotificationButton(entry, store["scheduler"]),
        ]
    )


class PrayerRemindersButton(ButtonEntity):
    """Base class for Prayer Reminders buttons."""

    _attr_has_entity_name = True

    def __init__(self, entry: ConfigEntry, key: str) -> None:
        self._entry = entry
        self._attr_unique_id = f"{entry.entry_id}_{key}"

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


class RefreshButton(PrayerRemindersButton):
    """Re-read location and prayer times."""

    _attr_name = "Refresh"
    _attr_icon = "mdi:refresh"

    def __init__(self, entry: ConfigEntry, evaluator: ModeEvaluator) -> None:
        super().__init__(entry, "refresh")
        self._evaluator = evaluator

    async def async_press(self) -> None:
        _LOGGER.debug("Refresh button pressed")
        await self._evaluator.async_refresh()


class TogglePreviewButton(PrayerRemindersButton):
    """Preview the other display mode until the next evaluation."""

    _attr_name = "Preview Mode"
    _attr_icon = "mdi:theme-light-dark"

    def __init__(self, entry: ConfigEntry, mode_state: ModeState) -> None:
        super().__init__(entry, "toggle_preview")
        self._mode_state = mode_state

    async def async_press(self) -> None:
        mode = self._mode_state.toggle_override()
        _LOGGER.debug("Previewing %s mode", mode)


class TestNotificationButton(PrayerRemindersButton):
    """Queue a test notification shortly from now."""

    _attr_name = "Test Notification"
    _attr_icon = "mdi:bell-check"

    def __init__(self, entry: ConfigEntry, scheduler: NotificationScheduler) -> None:
        super().__init__(entry, "test_notification")
        self._scheduler = scheduler

    async def async_press(self) -> None:
        if await self._scheduler.async_send_test_notification() is None:
            raise PermissionDeniedError(
                "Notification permission not granted; configure a notify service"
            )

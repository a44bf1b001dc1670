"""The Prayer Reminders integration - prayer times, reminders and day/evening mode."""

from __future__ import annotations

import logging
from datetime import datetime

import voluptuous as vol

from homeassistant.config_entries import ConfigEntry
from homeassistant.const import Platform
from homeassistant.core import HomeAssistant, ServiceCall, callback
from homeassistant.helpers.aiohttp_client import async_get_clientsession
from homeassistant.helpers.dispatcher import async_dispatcher_send
from homeassistant.helpers.event import async_track_time_interval
from homeassistant.helpers.start import async_at_started

from .cache import PrayerTimeCache
from .const import (
    ATTR_MODE,
    CONF_LOCATION_ENTITY,
    CONF_METHOD,
    CONF_NOTIFY_SERVICE,
    CONF_REGIONAL_KEY,
    CONF_SCHOOL,
    CONF_USE_LOCATION,
    DEFAULT_METHOD,
    DOMAIN,
    MODE_DAY,
    MODE_EVALUATION_INTERVAL,
    MODE_EVENING,
    MODE_NONE,
    SERVICE_REFRESH,
    SERVICE_RESCHEDULE,
    SERVICE_RESUME,
    SERVICE_SET_MODE_OVERRIDE,
    SERVICE_TEST_NOTIFICATION,
    SERVICES,
    SIGNAL_SCHEDULE_UPDATED,
    STORAGE_KEY,
)
from .coordinator import PrayerTimesCoordinator
from .dispatcher import HassNotificationDispatcher
from .exceptions import PermissionDeniedError, SourceUnavailableError
from .location import HassLocationProvider
from .mode import ModeEvaluator, ModeState
from .models import DisplayMode, JuristicSchool, PrayerSnapshot, PrayerTimingSet
from .resolver import TimeSourceResolver
from .scheduler import NotificationScheduler, settings_from_config
from .sources import GlobalTimeSource, RegionalTimeSource
from .store import HassKeyValueStore

_LOGGER = logging.getLogger(__name__)

PLATFORMS: list[Platform] = [Platform.SENSOR, Platform.BUTTON]

# Service schemas
SERVICE_SET_MODE_OVERRIDE_SCHEMA = vol.Schema(
    {
        vol.Required(ATTR_MODE): vol.In([MODE_DAY, MODE_EVENING, MODE_NONE]),
    }
)


def _storage_key(entry: ConfigEntry) -> str:
    return f"{STORAGE_KEY}.{entry.entry_id}"


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up Prayer Reminders from a config entry."""
    config = {**entry.data, **entry.options}
    session = async_get_clientsession(hass)

    cache = PrayerTimeCache(HassKeyValueStore(hass, _storage_key(entry)))
    use_location = config.get(CONF_USE_LOCATION, True)
    await cache.async_save_location_enabled(use_location)
    if config.get(CONF_SCHOOL) is not None:
        await cache.async_save_school(JuristicSchool(int(config[CONF_SCHOOL])))

    resolver = TimeSourceResolver(
        RegionalTimeSource(session, key=config.get(CONF_REGIONAL_KEY) or None),
        GlobalTimeSource(session, method=int(config.get(CONF_METHOD, DEFAULT_METHOD))),
    )
    location = HassLocationProvider(
        hass,
        use_location=use_location,
        entity_id=config.get(CONF_LOCATION_ENTITY),
    )
    dispatcher = HassNotificationDispatcher(hass, config.get(CONF_NOTIFY_SERVICE))
    scheduler = NotificationScheduler(dispatcher)

    coordinator = PrayerTimesCoordinator(
        hass, config, resolver, cache, location, config_entry=entry
    )
    mode_state = ModeState()

    async def _async_load_snapshot(full_refresh: bool) -> PrayerSnapshot | None:
        """Inputs for one mode evaluation, published to entities."""
        if full_refresh:
            await coordinator.async_request_full_refresh()
            return coordinator.data if coordinator.last_update_success else None
        try:
            snapshot = await coordinator.async_load_snapshot()
        except SourceUnavailableError as err:
            _LOGGER.warning("Mode evaluation could not load prayer times: %s", err)
            return None
        if snapshot is not None:
            coordinator.async_set_updated_data(snapshot)
        return snapshot

    evaluator = ModeEvaluator(mode_state, _async_load_snapshot)

    # Initial data fetch
    await coordinator.async_config_entry_first_refresh()

    # Store integration data
    hass.data.setdefault(DOMAIN, {})
    hass.data[DOMAIN][entry.entry_id] = {
        "coordinator": coordinator,
        "cache": cache,
        "dispatcher": dispatcher,
        "scheduler": scheduler,
        "mode_state": mode_state,
        "evaluator": evaluator,
        "settings": settings_from_config(config),
        "schedule_key": None,
    }
    store = hass.data[DOMAIN][entry.entry_id]

    # Rebuild notifications whenever the day's timings change
    @callback
    def _async_on_coordinator_update() -> None:
        snapshot = coordinator.data
        if snapshot is None:
            return
        key = (snapshot.date, snapshot.timezone, tuple(snapshot.timings.items()))
        if key == store["schedule_key"]:
            return
        store["schedule_key"] = key
        entry.async_create_task(
            hass,
            _async_schedule(hass, entry, snapshot.timings, snapshot.timezone),
            f"{DOMAIN}_schedule_notifications",
        )

    entry.async_on_unload(coordinator.async_add_listener(_async_on_coordinator_update))
    entry.async_on_unload(dispatcher.async_cancel_all)
    _async_on_coordinator_update()

    await evaluator.async_evaluate()

    # Forward platforms
    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)

    # Periodic mode evaluation
    async def _async_on_timer(now: datetime) -> None:
        await evaluator.async_on_timer(now)

    entry.async_on_unload(
        async_track_time_interval(hass, _async_on_timer, MODE_EVALUATION_INTERVAL)
    )

    # Home Assistant finishing startup counts as coming to the foreground
    if not hass.is_running:

        async def _async_on_started(_hass: HomeAssistant) -> None:
            await evaluator.async_on_foreground()

        entry.async_on_unload(async_at_started(hass, _async_on_started))

    # Register services
    _register_services(hass)

    # Listen for options updates
    entry.async_on_unload(entry.add_update_listener(_async_update_options))

    return True


async def _async_update_options(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Handle options update - reload the integration."""
    await hass.config_entries.async_reload(entry.entry_id)


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a Prayer Reminders config entry."""
    unloaded = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)

    if unloaded:
        hass.data[DOMAIN].pop(entry.entry_id, None)
        # Remove services if no more entries
        if not hass.data[DOMAIN]:
            for service_name in SERVICES:
                hass.services.async_remove(DOMAIN, service_name)

    return unloaded


async def async_remove_entry(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Drop the stored cache and preferences of a removed entry."""
    await HassKeyValueStore(hass, _storage_key(entry)).async_clear()


# --- Notifications ---


async def _async_schedule(
    hass: HomeAssistant,
    entry: ConfigEntry,
    timings: PrayerTimingSet,
    timezone: str,
) -> None:
    """Run the scheduler for an entry and tell entities about the result."""
    store = hass.data[DOMAIN].get(entry.entry_id)
    if not store:
        return
    scheduler: NotificationScheduler = store["scheduler"]
    result = await scheduler.async_schedule(store["settings"], timings, timezone)
    if result.permission_needed:
        _LOGGER.warning(
            "Notifications need a notify service; set one in the integration options"
        )
    async_dispatcher_send(hass, SIGNAL_SCHEDULE_UPDATED.format(entry.entry_id))


async def _async_reschedule_from_cache(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Rebuild notifications from the stored full timings, however old."""
    store = hass.data[DOMAIN].get(entry.entry_id)
    if not store:
        return
    cache: PrayerTimeCache = store["cache"]
    record = await cache.async_get_full_timings()
    if record is None:
        _LOGGER.warning("No stored prayer times to schedule notifications from")
        return
    await _async_schedule(
        hass,
        entry,
        PrayerTimingSet(record["timings"]),
        record.get("timezone") or "UTC",
    )


# --- Services ---


def _register_services(hass: HomeAssistant) -> None:
    """Register integration services; each acts on every loaded entry."""

    def _entries() -> list[tuple[str, dict]]:
        return list(hass.data.get(DOMAIN, {}).items())

    async def handle_refresh_times(call: ServiceCall) -> None:
        for _entry_id, store in _entries():
            evaluator: ModeEvaluator = store["evaluator"]
            await evaluator.async_refresh()

    async def handle_resume(call: ServiceCall) -> None:
        for _entry_id, store in _entries():
            evaluator: ModeEvaluator = store["evaluator"]
            await evaluator.async_on_foreground()

    async def handle_set_mode_override(call: ServiceCall) -> None:
        mode = call.data[ATTR_MODE]
        override = None if mode == MODE_NONE else DisplayMode(mode)
        for _entry_id, store in _entries():
            mode_state: ModeState = store["mode_state"]
            mode_state.set_override(override)

    async def handle_reschedule(call: ServiceCall) -> None:
        for entry_id, _store in _entries():
            entry = hass.config_entries.async_get_entry(entry_id)
            if entry is not None:
                await _async_reschedule_from_cache(hass, entry)

    async def handle_test_notification(call: ServiceCall) -> None:
        for _entry_id, store in _entries():
            scheduler: NotificationScheduler = store["scheduler"]
            if await scheduler.async_send_test_notification() is None:
                raise PermissionDeniedError(
                    "Notification permission not granted; configure a notify service"
                )

    if not hass.services.has_service(DOMAIN, SERVICE_REFRESH):
        hass.services.async_register(DOMAIN, SERVICE_REFRESH, handle_refresh_times)
    if not hass.services.has_service(DOMAIN, SERVICE_RESUME):
        hass.services.async_register(DOMAIN, SERVICE_RESUME, handle_resume)
    if not hass.services.has_service(DOMAIN, SERVICE_SET_MODE_OVERRIDE):
        hass.services.async_register(
            DOMAIN,
            SERVICE_SET_MODE_OVERRIDE,
            handle_set_mode_override,
            schema=SERVICE_SET_MODE_OVERRIDE_SCHEMA,
        )
    if not hass.services.has_service(DOMAIN, SERVICE_RESCHEDULE):
        hass.services.async_register(DOMAIN, SERVICE_RESCHEDULE, handle_reschedule)
    if not hass.services.has_service(DOMAIN, SERVICE_TEST_NOTIFICATION):
        hass.services.async_register(
            DOMAIN, SERVICE_TEST_NOTIFICATION, handle_test_notification
        )

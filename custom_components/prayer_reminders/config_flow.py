"""Config flow for Prayer Reminders integration."""

from __future__ import annotations

import logging

import voluptuous as vol

from homeassistant.config_entries import ConfigFlow, ConfigFlowResult, OptionsFlow
from homeassistant.core import callback
from homeassistant.helpers import selector

from .const import (
    CALC_METHODS,
    CONF_LOCATION_ENTITY,
    CONF_METHOD,
    CONF_NOTIFY_SERVICE,
    CONF_REGIONAL_KEY,
    CONF_SCHOOL,
    CONF_USE_LOCATION,
    DEFAULT_METHOD,
    DEFAULT_SCHOOL,
    DEFAULT_SOUND,
    DOMAIN,
    NOTIFY_PRAYERS,
    OPT_ENABLED,
    OPT_REMINDER,
    OPT_SOUND,
    OPT_START,
    SCHOOLS,
    SOUND_MODES,
)
from .scheduler import option_key

_LOGGER = logging.getLogger(__name__)

LOCATION_DOMAINS = ["device_tracker", "person", "zone"]


def _location_schema(current: dict) -> vol.Schema:
    entity = current.get(CONF_LOCATION_ENTITY)
    entity_key = (
        vol.Optional(CONF_LOCATION_ENTITY, default=entity)
        if entity
        else vol.Optional(CONF_LOCATION_ENTITY)
    )
    return vol.Schema(
        {
            vol.Required(
                CONF_USE_LOCATION, default=current.get(CONF_USE_LOCATION, True)
            ): bool,
            entity_key: selector.EntitySelector(
                selector.EntitySelectorConfig(domain=LOCATION_DOMAINS)
            ),
            vol.Required(
                CONF_METHOD, default=current.get(CONF_METHOD, DEFAULT_METHOD)
            ): vol.In(CALC_METHODS),
            vol.Required(
                CONF_SCHOOL, default=current.get(CONF_SCHOOL, DEFAULT_SCHOOL)
            ): vol.In(SCHOOLS),
            vol.Optional(
                CONF_REGIONAL_KEY, default=current.get(CONF_REGIONAL_KEY, "")
            ): str,
        }
    )


def _notify_schema(current: dict) -> vol.Schema:
    return vol.Schema(
        {
            vol.Optional(
                CONF_NOTIFY_SERVICE, default=current.get(CONF_NOTIFY_SERVICE, "")
            ): str,
        }
    )


def _prayers_schema(current: dict) -> vol.Schema:
    fields: dict = {}
    for prayer in NOTIFY_PRAYERS:
        enabled = option_key(prayer, OPT_ENABLED)
        start = option_key(prayer, OPT_START)
        reminder = option_key(prayer, OPT_REMINDER)
        sound = option_key(prayer, OPT_SOUND)
        fields[vol.Required(enabled, default=current.get(enabled, True))] = bool
        fields[vol.Required(start, default=current.get(start, True))] = bool
        fields[vol.Required(reminder, default=current.get(reminder, False))] = bool
        fields[vol.Required(sound, default=current.get(sound, DEFAULT_SOUND))] = vol.In(
            SOUND_MODES
        )
    return vol.Schema(fields)


class PrayerRemindersConfigFlow(ConfigFlow, domain=DOMAIN):
    """Handle a config flow for Prayer Reminders."""

    VERSION = 1

    def __init__(self) -> None:
        """Initialize the config flow."""
        self._data: dict = {}

    async def async_step_user(
        self, user_input: dict | None = None
    ) -> ConfigFlowResult:
        """Step 1: Location and calculation settings."""
        _LOGGER.debug("ConfigFlow: async_step_user called with input: %s", user_input)
        await self.async_set_unique_id(DOMAIN)
        self._abort_if_unique_id_configured()

        if user_input is not None:
            self._data.update(user_input)
            return await self.async_step_notifications()

        return self.async_show_form(step_id="user", data_schema=_location_schema({}))

    async def async_step_notifications(
        self, user_input: dict | None = None
    ) -> ConfigFlowResult:
        """Step 2: Notify service used for prayer notifications."""
        _LOGGER.debug(
            "ConfigFlow: async_step_notifications called with input: %s", user_input
        )
        if user_input is not None:
            self._data.update(user_input)
            return self.async_create_entry(title="Prayer Reminders", data=self._data)

        return self.async_show_form(
            step_id="notifications", data_schema=_notify_schema({})
        )

    @staticmethod
    @callback
    def async_get_options_flow(config_entry):
        """Get the options flow for this handler."""
        return PrayerRemindersOptionsFlow(config_entry)


class PrayerRemindersOptionsFlow(OptionsFlow):
    """Handle options flow for Prayer Reminders."""

    def __init__(self, config_entry) -> None:
        """Initialize options flow."""
        self._config_entry = config_entry
        self._data: dict = {}

    @property
    def _current(self) -> dict:
        return {**self._config_entry.data, **self._config_entry.options, **self._data}

    async def async_step_init(
        self, user_input: dict | None = None
    ) -> ConfigFlowResult:
        """First step of options: location and calculation settings."""
        _LOGGER.debug("OptionsFlow: async_step_init called with input: %s", user_input)
        if user_input is not None:
            self._data.update(user_input)
            return await self.async_step_notifications()

        return self.async_show_form(
            step_id="init", data_schema=_location_schema(self._current)
        )

    async def async_step_notifications(
        self, user_input: dict | None = None
    ) -> ConfigFlowResult:
        """Options step: notify service."""
        _LOGGER.debug(
            "OptionsFlow: async_step_notifications called with input: %s", user_input
        )
        if user_input is not None:
            self._data.update(user_input)
            return await self.async_step_prayers()

        return self.async_show_form(
            step_id="notifications", data_schema=_notify_schema(self._current)
        )

    async def async_step_prayers(
        self, user_input: dict | None = None
    ) -> ConfigFlowResult:
        """Options step: per-prayer notification settings."""
        _LOGGER.debug("OptionsFlow: async_step_prayers called with input: %s", user_input)
        if user_input is not None:
            self._data.update(user_input)
            return self.async_create_entry(title="", data=self._data)

        return self.async_show_form(
            step_id="prayers", data_schema=_prayers_schema(self._current)
        )

"""Location provider: permission state and current coordinate."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from homeassistant.const import ATTR_LATITUDE, ATTR_LONGITUDE
from homeassistant.core import HomeAssistant

from .models import Coordinate, PermissionState, PermissionStatus

_LOGGER = logging.getLogger(__name__)


class LocationProvider(ABC):
    """Where the user is, if they allow us to know."""

    @abstractmethod
    async def async_get_permission(self) -> PermissionState:
        """Return the current permission state without prompting."""

    @abstractmethod
    async def async_request_permission(self) -> PermissionState:
        """Ask for permission where possible and return the outcome."""

    @abstractmethod
    async def async_get_coordinate(self) -> Coordinate | None:
        """Return the current coordinate, or None when unavailable."""


class HassLocationProvider(LocationProvider):
    """Coordinates from a tracked entity, or the Home Assistant home location.

    The "use location" option plays the role of the permission.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        use_location: bool = True,
        entity_id: str | None = None,
    ) -> None:
        self.hass = hass
        self._use_location = use_location
        self._entity_id = entity_id or None

    async def async_get_permission(self) -> PermissionState:
        if not self._use_location:
            return PermissionState(PermissionStatus.DENIED, can_ask_again=True)
        if self._entity_id and self.hass.states.get(self._entity_id) is None:
            return PermissionState(PermissionStatus.UNDETERMINED)
        return PermissionState(PermissionStatus.GRANTED)

    async def async_request_permission(self) -> PermissionState:
        state = await self.async_get_permission()
        if not state.granted:
            _LOGGER.debug(
                "Location not available (%s); enable it in the integration options",
                state.status,
            )
        return state

    async def async_get_coordinate(self) -> Coordinate | None:
        if self._entity_id:
            state = self.hass.states.get(self._entity_id)
            if state is None:
                _LOGGER.debug("Location entity %s not found", self._entity_id)
                return None
            latitude = state.attributes.get(ATTR_LATITUDE)
            longitude = state.attributes.get(ATTR_LONGITUDE)
        else:
            latitude = self.hass.config.latitude
            longitude = self.hass.config.longitude

        if latitude is None or longitude is None:
            return None
        return Coordinate(float(latitude), float(longitude))

"""String-keyed persistent storage used by the cache layer."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

from homeassistant.core import HomeAssistant
from homeassistant.helpers.storage import Store

from .const import STORAGE_KEY, STORAGE_VERSION

_LOGGER = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Minimal async get/set store."""

    @abstractmethod
    async def async_get(self, key: str) -> Any:
        """Return the stored value or None."""

    @abstractmethod
    async def async_set(self, key: str, value: Any) -> None:
        """Store a JSON-serializable value."""

    @abstractmethod
    async def async_remove(self, key: str) -> None:
        """Delete a key if present."""


class MemoryKeyValueStore(KeyValueStore):
    """Process-local store, used when nothing needs to survive a restart."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = dict(initial or {})

    async def async_get(self, key: str) -> Any:
        return self._data.get(key)

    async def async_set(self, key: str, value: Any) -> None:
        self._data[key] = value

    async def async_remove(self, key: str) -> None:
        self._data.pop(key, None)


class HassKeyValueStore(KeyValueStore):
    """One Home Assistant storage document holding all keys."""

    def __init__(self, hass: HomeAssistant, key: str = STORAGE_KEY) -> None:
        self._store: Store[dict[str, Any]] = Store(hass, STORAGE_VERSION, key)
        self._data: dict[str, Any] | None = None

    async def _async_data(self) -> dict[str, Any]:
        if self._data is None:
            self._data = await self._store.async_load() or {}
            _LOGGER.debug("Loaded %d stored keys", len(self._data))
        return self._data

    async def async_get(self, key: str) -> Any:
        data = await self._async_data()
        return data.get(key)

    async def async_set(self, key: str, value: Any) -> None:
        data = await self._async_data()
        data[key] = value
        await self._store.async_save(data)

    async def async_remove(self, key: str) -> None:
        data = await self._async_data()
        if data.pop(key, None) is not None:
            await self._store.async_save(data)

    async def async_clear(self) -> None:
        """Delete the whole storage document."""
        self._data = {}
        await self._store.async_remove()

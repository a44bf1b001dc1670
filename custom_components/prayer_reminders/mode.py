"""Day/Evening display mode with a volatile manual preview override."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime

from homeassistant.core import CALLBACK_TYPE, callback
from homeassistant.util import dt as dt_util

from .calculator import next_prayer
from .const import EVENING_PRAYERS
from .models import Coordinate, DisplayMode, PrayerSnapshot

_LOGGER = logging.getLogger(__name__)


def resolve_mode(
    permission_granted: bool,
    location: Coordinate | None,
    next_prayer_name: str | None,
) -> DisplayMode:
    """Evening only when we know where we are and Fajr or Isha is next."""
    if not permission_granted or location is None or not next_prayer_name:
        return DisplayMode.DAY
    if next_prayer_name in EVENING_PRAYERS:
        return DisplayMode.EVENING
    return DisplayMode.DAY


class ModeState:
    """Automatic mode plus an in-memory override that never outlives an evaluation."""

    def __init__(self, automatic: DisplayMode = DisplayMode.DAY) -> None:
        self.automatic = automatic
        self.override: DisplayMode | None = None
        self._listeners: list[CALLBACK_TYPE] = []

    @property
    def effective_mode(self) -> DisplayMode:
        return self.override or self.automatic

    @callback
    def add_listener(self, update_callback: CALLBACK_TYPE) -> CALLBACK_TYPE:
        """Call update_callback on every change; returns a remover."""
        self._listeners.append(update_callback)

        @callback
        def remove_listener() -> None:
            if update_callback in self._listeners:
                self._listeners.remove(update_callback)

        return remove_listener

    @callback
    def apply_automatic(self, mode: DisplayMode) -> None:
        """Publish an automatic result; any override is dropped."""
        if self.override is not None:
            _LOGGER.debug("Clearing %s preview override", self.override)
        self.automatic = mode
        self.override = None
        self._async_notify()

    @callback
    def set_override(self, mode: DisplayMode | None) -> None:
        self.override = mode
        self._async_notify()

    @callback
    def toggle_override(self) -> DisplayMode:
        """Preview the opposite of what is currently shown."""
        if self.effective_mode == DisplayMode.EVENING:
            mode = DisplayMode.DAY
        else:
            mode = DisplayMode.EVENING
        self.set_override(mode)
        return mode

    @callback
    def _async_notify(self) -> None:
        for update_callback in list(self._listeners):
            update_callback()


class ModeEvaluator:
    """Re-derive the automatic mode; stale evaluations never publish.

    Each call takes a new generation number before awaiting anything. If a
    newer call started while this one was loading, the older result is dropped.
    """

    def __init__(
        self,
        state: ModeState,
        load_snapshot: Callable[[bool], Awaitable[PrayerSnapshot | None]],
        now: Callable[[], datetime] = dt_util.utcnow,
        today: Callable[[], str] | None = None,
    ) -> None:
        """Initialize the evaluator."""
        self.state = state
        self._load_snapshot = load_snapshot
        self._now = now
        self._today = today or (lambda: dt_util.now().date().isoformat())
        self._generation = 0
        self.last_date: str | None = None
        self.snapshot: PrayerSnapshot | None = None

    @property
    def generation(self) -> int:
        return self._generation

    async def async_evaluate(self, full_refresh: bool = False) -> DisplayMode | None:
        """Load inputs, resolve and publish; None when superseded."""
        self._generation += 1
        generation = self._generation
        today = self._today()

        snapshot = await self._load_snapshot(full_refresh)

        if generation != self._generation:
            _LOGGER.debug(
                "Dropping mode evaluation %d, superseded by %d",
                generation,
                self._generation,
            )
            return None

        self.last_date = today
        self.snapshot = snapshot

        if snapshot is None:
            mode = resolve_mode(False, None, None)
        else:
            upcoming = next_prayer(snapshot.timings, snapshot.timezone, self._now())
            mode = resolve_mode(
                snapshot.permission_granted,
                snapshot.coordinate,
                upcoming.name if upcoming else None,
            )
        _LOGGER.debug("Mode evaluation %d: %s", generation, mode)
        self.state.apply_automatic(mode)
        return mode

    async def async_on_timer(self, _now: datetime | None = None) -> None:
        """Periodic cheap re-evaluation."""
        await self.async_evaluate()

    async def async_on_foreground(self) -> None:
        """Re-evaluate on resume; a new calendar date forces a full refresh."""
        today = self._today()
        rolled_over = self.last_date is not None and today != self.last_date
        if rolled_over:
            _LOGGER.info("Date changed from %s to %s, refreshing", self.last_date, today)
        await self.async_evaluate(full_refresh=rolled_over)

    async def async_refresh(self) -> None:
        """User-requested refresh."""
        await self.async_evaluate(full_refresh=True)

"""Tests for the display mode resolver, override and evaluator."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest

from custom_components.prayer_reminders.mode import ModeEvaluator, ModeState, resolve_mode
from custom_components.prayer_reminders.models import DisplayMode, PrayerSnapshot

from .common import LONDON, LONDON_TIMINGS

UTC = timezone.utc


def at(hour: int) -> datetime:
    return datetime(2024, 3, 15, hour, tzinfo=UTC)


def snapshot(permission_granted: bool = True, located: bool = True) -> PrayerSnapshot:
    return PrayerSnapshot(
        timings=LONDON_TIMINGS,
        timezone="Europe/London",
        date="2024-03-15",
        coordinate=LONDON if located else None,
        permission_granted=permission_granted,
    )


@pytest.mark.parametrize(
    ("permission", "location", "next_name", "expected"),
    [
        (True, LONDON, "Fajr", DisplayMode.EVENING),
        (True, LONDON, "Isha", DisplayMode.EVENING),
        (True, LONDON, "Maghrib", DisplayMode.DAY),
        (True, LONDON, "Dhuhr", DisplayMode.DAY),
        (False, LONDON, "Fajr", DisplayMode.DAY),
        (True, None, "Isha", DisplayMode.DAY),
        (True, LONDON, None, DisplayMode.DAY),
    ],
)
def test_resolve_mode(permission, location, next_name, expected) -> None:
    assert resolve_mode(permission, location, next_name) == expected


class TestModeState:
    def test_override_takes_precedence(self) -> None:
        state = ModeState()
        state.set_override(DisplayMode.EVENING)
        assert state.effective_mode == DisplayMode.EVENING
        assert state.automatic == DisplayMode.DAY

    def test_automatic_clears_override(self) -> None:
        state = ModeState()
        state.set_override(DisplayMode.EVENING)
        state.apply_automatic(DisplayMode.DAY)
        assert state.override is None
        assert state.effective_mode == DisplayMode.DAY

    def test_toggle(self) -> None:
        state = ModeState(DisplayMode.EVENING)
        assert state.toggle_override() == DisplayMode.DAY
        assert state.toggle_override() == DisplayMode.EVENING
        assert state.automatic == DisplayMode.EVENING

    def test_listeners(self) -> None:
        state = ModeState()
        calls: list[DisplayMode] = []
        remove = state.add_listener(lambda: calls.append(state.effective_mode))

        state.set_override(DisplayMode.EVENING)
        state.apply_automatic(DisplayMode.DAY)
        remove()
        state.set_override(DisplayMode.EVENING)

        assert calls == [DisplayMode.EVENING, DisplayMode.DAY]


class TestModeEvaluator:
    @staticmethod
    def make(
        state: ModeState,
        snapshots: list[PrayerSnapshot | None],
        now: datetime = at(20),
        today: list[str] | None = None,
    ) -> tuple[ModeEvaluator, list[bool]]:
        requests: list[bool] = []
        dates = today or ["2024-03-15"]

        async def load(full_refresh: bool) -> PrayerSnapshot | None:
            requests.append(full_refresh)
            return snapshots[min(len(requests), len(snapshots)) - 1]

        evaluator = ModeEvaluator(state, load, now=lambda: now, today=lambda: dates[0])
        return evaluator, requests

    async def test_evening_after_isha(self) -> None:
        state = ModeState()
        evaluator, _requests = self.make(state, [snapshot()])

        assert await evaluator.async_evaluate() == DisplayMode.EVENING
        assert state.effective_mode == DisplayMode.EVENING

    async def test_day_in_the_afternoon(self) -> None:
        state = ModeState()
        evaluator, _requests = self.make(state, [snapshot()], now=at(13))

        assert await evaluator.async_evaluate() == DisplayMode.DAY

    async def test_degraded_inputs_give_day(self) -> None:
        state = ModeState(DisplayMode.EVENING)
        evaluator, _requests = self.make(state, [snapshot(permission_granted=False)])
        assert await evaluator.async_evaluate() == DisplayMode.DAY

        evaluator, _requests = self.make(state, [None])
        assert await evaluator.async_evaluate() == DisplayMode.DAY

        evaluator, _requests = self.make(state, [snapshot(located=False)])
        assert await evaluator.async_evaluate() == DisplayMode.DAY

    async def test_timer_tick_clears_override(self) -> None:
        state = ModeState()
        evaluator, _requests = self.make(state, [snapshot()], now=at(13))
        await evaluator.async_evaluate()

        state.set_override(DisplayMode.EVENING)
        assert state.effective_mode == DisplayMode.EVENING

        await evaluator.async_on_timer()

        assert state.override is None
        assert state.effective_mode == DisplayMode.DAY

    async def test_superseded_evaluation_is_dropped(self) -> None:
        state = ModeState()
        gate = asyncio.Event()
        calls = 0

        async def load(full_refresh: bool) -> PrayerSnapshot | None:
            nonlocal calls
            calls += 1
            if calls == 1:
                await gate.wait()
                return snapshot()
            return snapshot(permission_granted=False)

        evaluator = ModeEvaluator(state, load, now=lambda: at(20), today=lambda: "2024-03-15")

        first = asyncio.create_task(evaluator.async_evaluate())
        await asyncio.sleep(0)
        assert await evaluator.async_evaluate() == DisplayMode.DAY

        gate.set()
        assert await first is None
        assert state.automatic == DisplayMode.DAY
        assert evaluator.generation == 2

    async def test_foreground_same_day_is_cheap(self) -> None:
        state = ModeState()
        evaluator, requests = self.make(state, [snapshot()])
        await evaluator.async_evaluate()

        await evaluator.async_on_foreground()

        assert requests == [False, False]

    async def test_foreground_after_rollover_forces_full_refresh(self) -> None:
        state = ModeState()
        dates = ["2024-03-15"]
        evaluator, requests = self.make(state, [snapshot()], today=dates)
        await evaluator.async_evaluate()
        assert evaluator.last_date == "2024-03-15"

        dates[0] = "2024-03-16"
        await evaluator.async_on_foreground()

        assert requests == [False, True]
        assert evaluator.last_date == "2024-03-16"

    async def test_refresh_is_full(self) -> None:
        state = ModeState()
        evaluator, requests = self.make(state, [snapshot()])
        state.set_override(DisplayMode.DAY)

        await evaluator.async_refresh()

        assert requests == [True]
        assert state.override is None

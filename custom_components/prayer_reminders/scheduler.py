"""Prayer notification scheduling.

Every run cancels all of our pending jobs and rebuilds the full set; there is
no incremental update. Jobs are built in a local list first and committed one
by one, so a failure part way through only loses the failing job.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from datetime import datetime

from homeassistant.util import dt as dt_util

from .calculator import prayer_instants, wall_clock
from .const import (
    DEFAULT_SOUND,
    MIN_LEAD_TIME,
    NOTIFICATION_MARKER,
    NOTIFY_PRAYERS,
    OPT_ENABLED,
    OPT_REMINDER,
    OPT_SOUND,
    OPT_START,
    REMINDER_OFFSET,
    TEST_NOTIFICATION_DELAY,
)
from .dispatcher import CHANNELS, NotificationDispatcher, channel_for
from .models import (
    NotificationJob,
    NotificationKind,
    PermissionStatus,
    PrayerNotificationSetting,
    PrayerTimingSet,
    ScheduleResult,
    SoundMode,
)

_LOGGER = logging.getLogger(__name__)


def option_key(prayer: str, option: str) -> str:
    return f"{prayer.lower()}_{option}"


def settings_from_config(config: Mapping) -> dict[str, PrayerNotificationSetting]:
    """Build per-prayer settings from merged entry data/options."""
    settings = {}
    for prayer in NOTIFY_PRAYERS:
        try:
            sound_mode = SoundMode(config.get(option_key(prayer, OPT_SOUND), DEFAULT_SOUND))
        except ValueError:
            sound_mode = SoundMode(DEFAULT_SOUND)
        settings[prayer] = PrayerNotificationSetting(
            enabled=config.get(option_key(prayer, OPT_ENABLED), True),
            start_notification_enabled=config.get(option_key(prayer, OPT_START), True),
            end_window_reminder_enabled=config.get(option_key(prayer, OPT_REMINDER), False),
            sound_mode=sound_mode,
        )
    return settings


def _start_job(prayer: str, fire_at: datetime, sound_mode: SoundMode) -> NotificationJob:
    if sound_mode == SoundMode.SILENT:
        message = f"It's time for {prayer} prayer"
    else:
        message = f"It's time for {prayer} prayer - Allahu Akbar"
    return NotificationJob(
        prayer_id=prayer,
        kind=NotificationKind.START,
        fire_at=fire_at,
        sound_mode=sound_mode,
        channel_id=channel_for(sound_mode).channel_id,
        title=f"{prayer} Prayer",
        message=message,
    )


def _reminder_job(prayer: str, fire_at: datetime) -> NotificationJob:
    minutes = int(REMINDER_OFFSET.total_seconds() // 60)
    return NotificationJob(
        prayer_id=prayer,
        kind=NotificationKind.REMINDER,
        fire_at=fire_at,
        sound_mode=SoundMode.BEEP,
        channel_id=channel_for(SoundMode.BEEP).channel_id,
        title=f"{prayer} Ending Soon",
        message=f"{minutes} minutes left in {prayer} prayer time",
    )


def build_jobs(
    settings: Mapping[str, PrayerNotificationSetting],
    timings: PrayerTimingSet,
    timezone: str,
    now: datetime,
) -> tuple[list[NotificationJob], int]:
    """Return (jobs to create, number skipped as past due)."""
    clock = wall_clock(now, timezone)
    instants = prayer_instants(timings, clock)
    jobs: list[NotificationJob] = []
    candidates: list[NotificationJob] = []

    for index, prayer in enumerate(NOTIFY_PRAYERS):
        setting = settings.get(prayer)
        if setting is None or not setting.enabled:
            _LOGGER.debug("%s: disabled", prayer)
            continue

        start = instants.get(prayer)
        if setting.start_notification_enabled and start is not None:
            candidates.append(_start_job(prayer, start, setting.sound_mode))

        if setting.end_window_reminder_enabled:
            # Isha is the last listed prayer, so it has no window end to remind about
            if index + 1 >= len(NOTIFY_PRAYERS):
                _LOGGER.debug("%s: no end-of-window reminder after the last prayer", prayer)
                continue
            window_end = instants.get(NOTIFY_PRAYERS[index + 1])
            if window_end is not None:
                candidates.append(_reminder_job(prayer, window_end - REMINDER_OFFSET))

    skipped = 0
    for job in candidates:
        if job.fire_at - clock.now <= MIN_LEAD_TIME:
            _LOGGER.debug("Skipping past notification %s at %s", job.tag, job.fire_at)
            skipped += 1
            continue
        jobs.append(job)
    return jobs, skipped


class NotificationScheduler:
    """Cancel-all-then-rebuild scheduler for prayer notifications."""

    def __init__(
        self,
        dispatcher: NotificationDispatcher,
        marker: str = NOTIFICATION_MARKER,
        clock: Callable[[], datetime] = dt_util.utcnow,
    ) -> None:
        """Initialize the scheduler."""
        self._dispatcher = dispatcher
        self._marker = marker
        self._clock = clock
        self._lock = asyncio.Lock()
        self._generation = 0
        self.last_result: ScheduleResult | None = None

    async def async_schedule(
        self,
        settings: Mapping[str, PrayerNotificationSetting],
        timings: PrayerTimingSet,
        timezone: str,
        now: datetime | None = None,
    ) -> ScheduleResult:
        """Replace all of our pending notifications with a fresh set."""
        self._generation += 1
        generation = self._generation
        async with self._lock:
            if generation != self._generation:
                _LOGGER.debug("Scheduling run %d superseded", generation)
                return ScheduleResult(count=0)
            result = await self._async_schedule(
                settings, timings, timezone, now or self._clock()
            )
            self.last_result = result
            return result

    async def _async_schedule(
        self,
        settings: Mapping[str, PrayerNotificationSetting],
        timings: PrayerTimingSet,
        timezone: str,
        now: datetime,
    ) -> ScheduleResult:
        _LOGGER.debug("Scheduling notifications for %s (%s)", timings.as_dict(), timezone)

        if not await self._async_ensure_permission():
            _LOGGER.warning("Notification permission denied, nothing scheduled")
            return ScheduleResult(count=0, permission_needed=True)

        await self._async_ensure_channels()
        await self.async_cancel_all()

        jobs, skipped = build_jobs(settings, timings, timezone, now)

        count = 0
        for job in jobs:
            try:
                identifier = await self._dispatcher.async_schedule(job, self._marker)
            except Exception:
                _LOGGER.exception("Failed to schedule %s at %s", job.tag, job.fire_at)
                continue
            count += 1
            _LOGGER.debug("Scheduled %s at %s (id=%s)", job.tag, job.fire_at, identifier)

        _LOGGER.info("Scheduled %d prayer notifications (%d past due)", count, skipped)
        return ScheduleResult(count=count, skipped=skipped)

    async def _async_ensure_permission(self) -> bool:
        status = await self._dispatcher.async_get_permission()
        if status == PermissionStatus.UNDETERMINED:
            status = await self._dispatcher.async_request_permission()
        return status == PermissionStatus.GRANTED

    async def _async_ensure_channels(self) -> None:
        for sound_mode, channel in CHANNELS.items():
            try:
                await self._dispatcher.async_ensure_channel(channel)
            except Exception:
                _LOGGER.exception("Failed to set up %s channel", sound_mode)

    async def async_cancel_all(self) -> int:
        """Cancel every pending job carrying our marker; return how many."""
        cancelled = 0
        for scheduled in await self._dispatcher.async_list_scheduled():
            if scheduled.marker != self._marker:
                continue
            try:
                await self._dispatcher.async_cancel(scheduled.identifier)
            except Exception:
                _LOGGER.exception("Failed to cancel notification %s", scheduled.identifier)
                continue
            cancelled += 1
        _LOGGER.debug("Cancelled %d old prayer notifications", cancelled)
        return cancelled

    async def async_scheduled_count(self) -> int:
        """How many of our notifications are queued."""
        return sum(
            1
            for scheduled in await self._dispatcher.async_list_scheduled()
            if scheduled.marker == self._marker
        )

    async def async_send_test_notification(self) -> str | None:
        """Queue a test notification on the Athan channel shortly from now."""
        if not await self._async_ensure_permission():
            _LOGGER.warning("Notification permission denied, test not sent")
            return None
        await self._async_ensure_channels()

        job = NotificationJob(
            prayer_id="Test",
            kind=NotificationKind.START,
            fire_at=self._clock() + TEST_NOTIFICATION_DELAY,
            sound_mode=SoundMode.ATHAN,
            channel_id=channel_for(SoundMode.ATHAN).channel_id,
            title="Prayer Reminders Test",
            message="Notification system is working correctly!",
        )
        # Own marker so a rebuild does not cancel it
        identifier = await self._dispatcher.async_schedule(job, f"{self._marker}_test")
        _LOGGER.info("Test notification scheduled (id=%s)", identifier)
        return identifier

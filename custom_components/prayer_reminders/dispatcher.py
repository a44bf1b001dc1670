"""Notification dispatcher: channels, permission and timed delivery."""

from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod

from homeassistant.core import CALLBACK_TYPE, HomeAssistant, callback
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.event import async_track_point_in_time
from homeassistant.util import dt as dt_util

from .const import DOMAIN
from .models import (
    NotificationChannel,
    NotificationJob,
    PermissionStatus,
    ScheduledNotification,
    SoundMode,
)

_LOGGER = logging.getLogger(__name__)

CHANNELS: dict[SoundMode, NotificationChannel] = {
    SoundMode.ATHAN: NotificationChannel(
        channel_id="prayer_athan",
        name="Athan Alert",
        description="Full Athan call to prayer notification",
        importance="max",
        sound=True,
        vibration_pattern=(0, 250, 250, 250),
    ),
    SoundMode.BEEP: NotificationChannel(
        channel_id="prayer_beep",
        name="Prayer Beep",
        description="Short beep notification for prayer",
        importance="high",
        sound=True,
        vibration_pattern=(0, 150),
    ),
    SoundMode.VIBRATION: NotificationChannel(
        channel_id="prayer_vibration",
        name="Prayer Vibration",
        description="Vibration-only prayer notification",
        importance="high",
        sound=False,
        vibration_pattern=(0, 400, 200, 400, 200, 400),
    ),
    SoundMode.SILENT: NotificationChannel(
        channel_id="prayer_silent",
        name="Silent Prayer Alert",
        description="Silent visual-only prayer notification",
        importance="low",
        sound=False,
        vibration_pattern=None,
    ),
}


def channel_for(sound_mode: SoundMode) -> NotificationChannel:
    return CHANNELS.get(sound_mode, CHANNELS[SoundMode.BEEP])


class NotificationDispatcher(ABC):
    """OS-level notification primitive the scheduler drives."""

    @abstractmethod
    async def async_get_permission(self) -> PermissionStatus:
        """Return the permission state without prompting."""

    @abstractmethod
    async def async_request_permission(self) -> PermissionStatus:
        """Prompt for permission where possible."""

    @abstractmethod
    async def async_ensure_channel(self, channel: NotificationChannel) -> None:
        """Create or update a delivery channel."""

    @abstractmethod
    async def async_list_scheduled(self) -> list[ScheduledNotification]:
        """Return every pending notification, ours or not."""

    @abstractmethod
    async def async_cancel(self, identifier: str) -> None:
        """Cancel one pending notification."""

    @abstractmethod
    async def async_schedule(self, job: NotificationJob, marker: str) -> str:
        """Schedule a job and return its identifier."""


class HassNotificationDispatcher(NotificationDispatcher):
    """Delivers through a notify service (e.g. the mobile app) at fire time."""

    def __init__(self, hass: HomeAssistant, service: str | None) -> None:
        self.hass = hass
        self._service = (service or "").removeprefix("notify.") or None
        self._channels: dict[str, NotificationChannel] = {}
        self._scheduled: dict[str, tuple[ScheduledNotification, CALLBACK_TYPE]] = {}

    async def async_get_permission(self) -> PermissionStatus:
        if not self._service:
            return PermissionStatus.UNDETERMINED
        if self.hass.services.has_service("notify", self._service):
            return PermissionStatus.GRANTED
        return PermissionStatus.DENIED

    async def async_request_permission(self) -> PermissionStatus:
        status = await self.async_get_permission()
        if status != PermissionStatus.GRANTED:
            _LOGGER.warning(
                "Notify service %s is not available; configure it in the options",
                self._service,
            )
        return status

    async def async_ensure_channel(self, channel: NotificationChannel) -> None:
        self._channels[channel.channel_id] = channel

    async def async_list_scheduled(self) -> list[ScheduledNotification]:
        return [entry for entry, _unsub in self._scheduled.values()]

    async def async_cancel(self, identifier: str) -> None:
        scheduled = self._scheduled.pop(identifier, None)
        if scheduled:
            scheduled[1]()

    @callback
    def async_cancel_all(self) -> None:
        """Drop every pending timer; used on unload."""
        for _entry, unsub in self._scheduled.values():
            unsub()
        self._scheduled.clear()

    async def async_schedule(self, job: NotificationJob, marker: str) -> str:
        if job.fire_at <= dt_util.utcnow():
            raise HomeAssistantError(f"{job.tag} fire time {job.fire_at} has passed")

        identifier = uuid.uuid4().hex
        scheduled = ScheduledNotification(identifier=identifier, marker=marker, job=job)

        @callback
        def _fire(_now) -> None:
            self._scheduled.pop(identifier, None)
            self.hass.async_create_task(
                self.async_send(job, marker), f"{DOMAIN}_notify_{job.tag}"
            )

        unsub = async_track_point_in_time(self.hass, _fire, job.fire_at)
        self._scheduled[identifier] = (scheduled, unsub)
        return identifier

    async def async_send(self, job: NotificationJob, marker: str) -> None:
        """Send a job now through the notify service."""
        if not self._service:
            return
        channel = self._channels.get(job.channel_id) or channel_for(job.sound_mode)
        data = {
            "tag": f"{marker}_{job.tag}",
            "group": marker,
            "channel": channel.name,
            "importance": channel.importance,
            "ttl": 0,
            "priority": "high",
            "push": {"sound": "default" if channel.sound else "none"},
        }
        if channel.vibration_pattern:
            data["vibrationPattern"] = ", ".join(str(v) for v in channel.vibration_pattern)

        try:
            await self.hass.services.async_call(
                "notify",
                self._service,
                {"title": job.title, "message": job.message, "data": data},
                blocking=True,
            )
        except HomeAssistantError:
            _LOGGER.exception("Failed to send %s notification", job.tag)
            return
        _LOGGER.info("Sent %s notification via notify.%s", job.tag, self._service)

"""Exceptions for Prayer Reminders."""

from homeassistant.exceptions import HomeAssistantError


class PrayerRemindersError(HomeAssistantError):
    """Base error for the integration."""


class SourceUnavailableError(PrayerRemindersError):
    """A prayer time source could not be reached or returned no data."""


class TimingValidationError(SourceUnavailableError):
    """A source answered, but with implausible times."""


class PermissionDeniedError(PrayerRemindersError):
    """Location or notification permission is not granted."""

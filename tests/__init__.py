"""Tests for the Prayer Reminders integration."""

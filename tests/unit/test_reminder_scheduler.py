"""
Unit Tests for the Reminder Scheduler
"""

import pytest
import sys
import os

# Add project root to path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
sys.path.insert(0, os.path.join(project_root, "explorer_portal", "src"))

from explorer_portal.push_notifications import DispatchSummary
from explorer_portal.reminder_scheduler import ReminderScheduler


class StubDispatcher:
    def __init__(self):
        self.calls = 0

    def send_review_reminders(self):
        self.calls += 1
        return DispatchSummary(kind="review_reminder", sent=2, failed=0, results=[])


class TestReminderScheduler:
    """Test suite for ReminderScheduler."""

    def test_disabled_by_default(self, monkeypatch):
        """Test REMINDERS_ENABLED must opt in."""
        monkeypatch.delenv("REMINDERS_ENABLED", raising=False)
        scheduler = ReminderScheduler(StubDispatcher())
        assert scheduler.enabled is False

    def test_env_configuration(self, monkeypatch):
        monkeypatch.setenv("REMINDERS_ENABLED", "true")
        monkeypatch.setenv("REMINDER_INTERVAL_HOURS", "6")

        scheduler = ReminderScheduler(StubDispatcher())

        assert scheduler.enabled is True
        assert scheduler.interval_hours == 6.0

    def test_no_dispatcher_stays_disabled(self):
        scheduler = ReminderScheduler(None, enabled=True)
        assert scheduler.enabled is False

    @pytest.mark.asyncio
    async def test_run_once_records_status(self):
        """Test a manual run updates the status snapshot."""
        dispatcher = StubDispatcher()
        scheduler = ReminderScheduler(dispatcher, enabled=False)

        summary = await scheduler.run_once()

        assert summary.sent == 2
        status = scheduler.get_status()
        assert status["last_sent"] == 2
        assert status["last_run"] is not None

    @pytest.mark.asyncio
    async def test_start_and_stop(self):
        """Test the loop starts and cancels cleanly."""
        scheduler = ReminderScheduler(StubDispatcher(), enabled=True, initial_delay_seconds=3600)

        await scheduler.start()
        assert scheduler.running is True

        await scheduler.stop()
        assert scheduler.running is False
        assert scheduler.task is None

    @pytest.mark.asyncio
    async def test_start_when_disabled(self):
        scheduler = ReminderScheduler(StubDispatcher(), enabled=False)
        await scheduler.start()
        assert scheduler.running is False

"""
Unit Tests for the Work Progress Tracker
"""

import pytest
import sys
import os
from datetime import date

# Add project root to path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
sys.path.insert(0, os.path.join(project_root, "explorer_portal", "src"))
sys.path.insert(0, os.path.join(project_root, "tests"))

from explorer_portal.work_progress import WorkProgressManager, longest_streak
from fakes import FakeSupabase

TODAY = date(2025, 12, 10)


@pytest.fixture
def db():
    return FakeSupabase()


@pytest.fixture
def manager(db):
    return WorkProgressManager(db)


class TestSectionsAndTasks:
    """Test suite for section and task CRUD."""

    def test_sections_in_display_order(self, manager):
        manager.create_section("Research", display_order=2)
        manager.create_section("Admin", display_order=1)

        assert [s.name for s in manager.list_sections()] == ["Admin", "Research"]

    def test_blank_names_rejected(self, manager):
        with pytest.raises(ValueError):
            manager.create_section("  ")
        with pytest.raises(ValueError):
            manager.create_task("s1", "")

    def test_partial_update(self, manager):
        section = manager.create_section("Reasearch")

        updated = manager.update_section(section.id, name="Research")

        assert updated.name == "Research"
        assert updated.display_order == 0

    def test_update_missing_section(self, manager):
        assert manager.update_section("nope", name="x") is None

    def test_tasks_filtered_by_section(self, manager):
        research = manager.create_section("Research")
        admin = manager.create_section("Admin")
        manager.create_task(research.id, "Papers read")
        manager.create_task(admin.id, "Emails")

        assert [t.name for t in manager.list_tasks(research.id)] == ["Papers read"]
        assert len(manager.list_tasks()) == 2

    def test_deleting_section_removes_tasks(self, manager):
        """Test a section's tasks go with it."""
        section = manager.create_section("Research")
        manager.create_task(section.id, "Papers read")

        manager.delete_section(section.id)

        assert manager.list_sections() == []
        assert manager.list_tasks() == []


class TestDailyEntries:
    """Test suite for daily entries and task counts."""

    def test_save_creates_then_updates(self, manager, db):
        """Test one row per day, updated only where values are given."""
        manager.save_daily_entry("2025-12-10", notes="Good day", mood_emoji="😀")
        entry = manager.save_daily_entry("2025-12-10", notes="Great day")

        assert len(db.rows("work_progress_daily_entries")) == 1
        assert entry.notes == "Great day"
        assert entry.mood_emoji == "😀"

    def test_invalid_date(self, manager):
        with pytest.raises(ValueError):
            manager.save_daily_entry("10/12/2025")

    def test_task_count_creates_day(self, manager):
        """Test setting a count on a new day creates the entry with the task attached."""
        section = manager.create_section("Research")
        task = manager.create_task(section.id, "Papers read")

        manager.set_task_count("2025-12-10", task.id, 3)
        manager.set_task_count("2025-12-10", task.id, 4)

        entry = manager.get_daily_entry("2025-12-10")
        assert len(entry.task_entries) == 1
        assert entry.task_entries[0].count == 4
        assert entry.task_entries[0].task_name == "Papers read"

    def test_negative_count_rejected(self, manager):
        with pytest.raises(ValueError):
            manager.set_task_count("2025-12-10", "t1", -1)

    def test_range_newest_first(self, manager):
        for day in ("2025-12-01", "2025-12-05", "2025-12-09"):
            manager.save_daily_entry(day, mood_emoji="🙂")

        entries = manager.list_daily_entries("2025-12-02", "2025-12-09")

        assert [e.entry_date for e in entries] == ["2025-12-09", "2025-12-05"]

    def test_missing_day(self, manager):
        assert manager.get_daily_entry("2025-12-10") is None


class TestStreak:
    """Test suite for streak calculation."""

    def test_longest_streak(self):
        assert longest_streak([]) == 0
        assert longest_streak(["2025-12-01", "2025-12-02", "2025-12-04", "2025-12-05", "2025-12-06"]) == 3

    def test_only_days_with_work_or_mood_count(self, manager):
        """Test an entry with just notes and zero counts breaks the streak."""
        section = manager.create_section("Research")
        task = manager.create_task(section.id, "Papers read")
        manager.save_daily_entry("2025-12-10", mood_emoji="🙂")
        manager.set_task_count("2025-12-09", task.id, 0)
        manager.save_daily_entry("2025-12-09", notes="nothing done")
        manager.set_task_count("2025-12-08", task.id, 2)
        manager.set_task_count("2025-12-07", task.id, 1)

        streak = manager.get_streak(today=TODAY)

        assert streak.current == 1
        assert streak.longest == 2

    def test_streak_ending_yesterday_is_current(self, manager):
        for day in ("2025-12-07", "2025-12-08", "2025-12-09"):
            manager.save_daily_entry(day, mood_emoji="🙂")

        assert manager.get_streak(today=TODAY).current == 3

    def test_old_streak_is_not_current(self, manager):
        for day in ("2025-12-01", "2025-12-02"):
            manager.save_daily_entry(day, mood_emoji="🙂")

        streak = manager.get_streak(today=TODAY)

        assert streak.current == 0
        assert streak.longest == 2


class TestReminderSubscription:
    """Test suite for the daily reminder subscription."""

    def test_subscribe_unsubscribe(self, manager, db):
        """Test one row per device, disabled rather than deleted."""
        manager.subscribe_notifications("1920x1080-Firefox", {"endpoint": "https://a"})
        manager.subscribe_notifications("1920x1080-Firefox", {"endpoint": "https://b"})
        assert manager.notifications_enabled("1920x1080-Firefox") is True
        assert len(db.rows("work_progress_notifications")) == 1

        manager.unsubscribe_notifications("1920x1080-Firefox")

        assert manager.notifications_enabled("1920x1080-Firefox") is False
        assert db.rows("work_progress_notifications")[0]["subscription"] == {"endpoint": "https://b"}

    def test_unknown_device(self, manager):
        assert manager.notifications_enabled("other") is False

"""
Unit Tests for the Push Notification Dispatcher

Tests the review schedule, streaks, message choice and dispatch modes with
a stubbed Web Push sender.
"""

import json
import random
import pytest
import sys
import os
from datetime import date, datetime, timedelta, timezone
from types import SimpleNamespace

# Add project root to path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
sys.path.insert(0, os.path.join(project_root, "explorer_portal", "src"))
sys.path.insert(0, os.path.join(project_root, "tests"))

import requests
from pywebpush import WebPushException

from explorer_portal.push_notifications import (
    ADMIN_SUBSCRIBER,
    PushDispatcher,
    current_streak,
    motivational_message,
    next_review_date,
)
from fakes import FakeSupabase

SUBSCRIPTION = {"endpoint": "https://push.example/abc", "keys": {"p256dh": "k", "auth": "a"}}


class RecordingSender:
    """Stands in for pywebpush.webpush; `gone` endpoints return 410, `unreachable` ones refuse connections."""

    def __init__(self, gone=(), unreachable=()):
        self.gone = set(gone)
        self.unreachable = set(unreachable)
        self.sent = []

    def __call__(self, subscription_info, data, vapid_private_key, vapid_claims):
        if subscription_info["endpoint"] in self.gone:
            raise WebPushException("Gone", response=SimpleNamespace(status_code=410, text="Gone"))
        if subscription_info["endpoint"] in self.unreachable:
            raise requests.exceptions.ConnectionError("Connection refused")
        self.sent.append({"subscription": subscription_info, "data": json.loads(data), "claims": vapid_claims})


def subscription(endpoint):
    return dict(SUBSCRIPTION, endpoint=endpoint)


class TestSchedule:
    """Test suite for next_review_date and current_streak."""

    def test_review_intervals(self):
        """Test the 1, 3, 7, 14, 30, 60, 90 day ladder."""
        base = "2025-01-01T00:00:00Z"
        assert next_review_date(0, base) == datetime(2025, 1, 2, tzinfo=timezone.utc)
        assert next_review_date(2, base) == datetime(2025, 1, 8, tzinfo=timezone.utc)
        assert next_review_date(6, base) == datetime(2025, 4, 1, tzinfo=timezone.utc)
        assert next_review_date(20, base) == next_review_date(6, base)

    def test_streak_ending_today(self):
        today = date(2025, 12, 10)
        entries = ["2025-12-10", "2025-12-09", "2025-12-08", "2025-12-05"]
        assert current_streak(entries, today) == 3

    def test_streak_ending_yesterday(self):
        """Test a streak survives until today's check-in."""
        today = date(2025, 12, 10)
        assert current_streak(["2025-12-09", "2025-12-08"], today) == 2

    def test_streak_broken(self):
        today = date(2025, 12, 10)
        assert current_streak(["2025-12-07", "2025-12-06"], today) == 0
        assert current_streak([], today) == 0

    def test_duplicate_days_count_once(self):
        today = date(2025, 12, 10)
        assert current_streak(["2025-12-10", "2025-12-10T08:00:00", "2025-12-09"], today) == 2


class TestMotivationalMessage:
    """Test suite for motivational_message."""

    @pytest.fixture
    def rng(self):
        return random.Random(7)

    def test_milestones(self, rng):
        assert motivational_message(7, False, rng)[0] == "One week streak! 🎊"
        assert motivational_message(6, False, rng)[0] == "Almost a week! 🎉"
        assert motivational_message(29, False, rng)[0] == "30 days tomorrow! 🚀"

    def test_checked_in_today_mentions_streak(self, rng):
        title, _ = motivational_message(5, True, rng)
        assert "5" in title

    def test_long_streak(self, rng):
        assert motivational_message(45, False, rng)[0] == "45 day streak! 🌟"

    def test_single_day(self, rng):
        assert motivational_message(1, False, rng)[0] == "Keep yesterday's momentum! 🚀"

    def test_no_streak(self, rng):
        title, body = motivational_message(0, False, rng)
        assert title and body


class TestPushDispatcher:
    """Test suite for PushDispatcher dispatch modes."""

    @pytest.fixture
    def db(self):
        return FakeSupabase({
            "tutees": [{"id": "sec3", "name": "Sec 3"}, {"id": "p5", "name": "P5"}],
        })

    def make_dispatcher(self, db, sender):
        return PushDispatcher(db, "vapid-key", "tutor@example.com", sender=sender, rng=random.Random(1))

    def test_send_test_to_every_subscription(self, db):
        """Test every subscription gets a named test payload."""
        db.add("push_subscriptions", {"id": "sub-1", "tutee_id": "sec3", "subscription": subscription("https://a")})
        db.add("push_subscriptions", {"id": "sub-2", "tutee_id": "p5", "subscription": json.dumps(subscription("https://b"))})
        sender = RecordingSender()

        summary = self.make_dispatcher(db, sender).send_test()

        assert summary.sent == 2
        assert summary.failed == 0
        assert sender.sent[0]["data"]["body"].startswith("Hello Sec 3!")
        assert sender.sent[0]["claims"] == {"sub": "mailto:tutor@example.com"}
        assert len(db.rows("notification_logs")) == 2
        assert db.rows("notification_logs")[0]["status"] == "sent"

    def test_gone_subscription_pruned(self, db):
        """Test a 410 deletes the subscription and logs a failure."""
        db.add("push_subscriptions", {"id": "sub-1", "tutee_id": "sec3", "subscription": subscription("https://a")})
        db.add("push_subscriptions", {"id": "sub-2", "tutee_id": "sec3", "subscription": subscription("https://gone")})

        summary = self.make_dispatcher(db, RecordingSender(gone={"https://gone"})).send_test()

        assert summary.sent == 1
        assert summary.failed == 1
        assert summary.results[1].pruned is True
        assert [row["id"] for row in db.rows("push_subscriptions")] == ["sub-1"]
        failed_log = db.rows("notification_logs")[1]
        assert failed_log["status"] == "failed"
        assert failed_log["error_message"]

    def test_network_error_fails_only_that_subscription(self, db):
        """Test a connection error is recorded and the next subscription is still tried."""
        db.add("push_subscriptions", {"id": "sub-1", "tutee_id": "sec3", "subscription": subscription("https://down")})
        db.add("push_subscriptions", {"id": "sub-2", "tutee_id": "p5", "subscription": subscription("https://b")})
        sender = RecordingSender(unreachable={"https://down"})

        summary = self.make_dispatcher(db, sender).send_test()

        assert summary.sent == 1
        assert summary.failed == 1
        assert "ConnectionError" in summary.results[0].error
        assert summary.results[0].pruned is False
        assert [s["subscription"]["endpoint"] for s in sender.sent] == ["https://b"]
        assert [log["status"] for log in db.rows("notification_logs")] == ["failed", "sent"]
        assert len(db.rows("push_subscriptions")) == 2

    def test_invalid_subscription_recorded(self, db):
        db.add("push_subscriptions", {"id": "sub-1", "tutee_id": "sec3", "subscription": "{not json"})

        summary = self.make_dispatcher(db, RecordingSender()).send_test()

        assert summary.failed == 1
        assert "Invalid subscription" in summary.results[0].error

    def test_log_failure_does_not_fail_dispatch(self, db):
        """Test the audit log is best effort."""
        db.add("push_subscriptions", {"id": "sub-1", "tutee_id": "sec3", "subscription": subscription("https://a")})
        db.failures["notification_logs"] = RuntimeError("log table missing")

        summary = self.make_dispatcher(db, RecordingSender()).send_test()

        assert summary.sent == 1

    def test_review_reminders_only_when_due(self, db):
        """Test only due reviews notify, and only that tutee's devices."""
        now = datetime(2025, 12, 10, 12, tzinfo=timezone.utc)
        db.add("learning_point_reviews", {
            "id": "r1", "tutee_id": "sec3", "session_date": "2025-12-01",
            "review_count": 1, "last_reviewed": (now - timedelta(days=4)).isoformat(),
        })
        db.add("learning_point_reviews", {
            "id": "r2", "tutee_id": "p5", "session_date": "2025-12-08",
            "review_count": 3, "last_reviewed": (now - timedelta(days=2)).isoformat(),
        })
        db.add("push_subscriptions", {"id": "sub-1", "tutee_id": "sec3", "subscription": subscription("https://a")})
        db.add("push_subscriptions", {"id": "sub-2", "tutee_id": "p5", "subscription": subscription("https://b")})
        sender = RecordingSender()

        summary = self.make_dispatcher(db, sender).send_review_reminders(now=now)

        assert summary.sent == 1
        assert sender.sent[0]["subscription"]["endpoint"] == "https://a"
        assert "2025-12-01" in sender.sent[0]["data"]["body"]
        assert summary.details["reminded"] == [{"tutee_id": "sec3", "session_date": "2025-12-01"}]

    def test_work_progress_reminders(self, db):
        """Test the streak message goes to enabled subscriptions only."""
        today = date(2025, 12, 10)
        for day in ("2025-12-09", "2025-12-08", "2025-12-07", "2025-12-06", "2025-12-05", "2025-12-04", "2025-12-03"):
            db.add("work_progress_daily_entries", {"entry_date": day})
        db.add("work_progress_notifications", {"id": "w1", "is_enabled": True, "subscription": subscription("https://a")})
        db.add("work_progress_notifications", {"id": "w2", "is_enabled": False, "subscription": subscription("https://b")})
        sender = RecordingSender()

        summary = self.make_dispatcher(db, sender).send_work_progress_reminders(today=today)

        assert summary.sent == 1
        assert summary.details["streak"] == 7
        assert summary.details["has_entry_today"] is False
        assert sender.sent[0]["data"]["title"] == "One week streak! 🎊"
        assert sender.sent[0]["data"]["data"]["streak"] == 7

    def test_work_progress_gone_disables_row(self, db):
        """Test a 410 disables the work-progress row instead of deleting it."""
        db.add("work_progress_notifications", {"id": "w1", "is_enabled": True, "subscription": subscription("https://gone")})

        summary = self.make_dispatcher(db, RecordingSender(gone={"https://gone"})).send_work_progress_reminders(
            today=date(2025, 12, 10)
        )

        assert summary.failed == 1
        assert db.rows("work_progress_notifications")[0]["is_enabled"] is False

    def test_summary_dict(self, db):
        summary = self.make_dispatcher(db, RecordingSender()).send_test()
        data = summary.to_dict()
        assert data["message"] == "Sent 0 notifications"
        assert data["kind"] == "test"

    def test_notify_tutee_targets_one_tutee(self, db):
        """Test a one-off message reaches only the named tutee's devices."""
        db.add("push_subscriptions", {"id": "sub-1", "tutee_id": "sec3", "subscription": subscription("https://a")})
        db.add("push_subscriptions", {"id": "sub-2", "tutee_id": "p5", "subscription": subscription("https://b")})
        db.add("push_subscriptions", {"id": "sub-3", "tutee_id": ADMIN_SUBSCRIBER, "subscription": subscription("https://c")})
        sender = RecordingSender()

        summary = self.make_dispatcher(db, sender).notify_tutee("booking", "sec3", "Request Approved! ✅", "See you")

        assert summary.sent == 1
        assert [s["subscription"]["endpoint"] for s in sender.sent] == ["https://a"]
        assert sender.sent[0]["data"] == {"title": "Request Approved! ✅", "body": "See you", "data": {"url": "/tuition"}}
        assert db.rows("notification_logs")[0]["notification_type"] == "booking"

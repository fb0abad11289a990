"""
Push Notification Dispatcher

Sends Web Push messages to stored browser subscriptions:

- test broadcast to every `push_subscriptions` row
- spaced-repetition review reminders (`learning_point_reviews`)
- daily work-progress streak reminders (`work_progress_notifications`)
- one-off messages to a single tutee or the admin (booking updates)

Each send outcome is written to `notification_logs`. Subscriptions the push
service reports as gone (404/410) are pruned.
"""

import json
import logging
import random
from dataclasses import asdict, dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from pywebpush import WebPushException, webpush

logger = logging.getLogger(__name__)

REVIEW_INTERVALS_DAYS = [1, 3, 7, 14, 30, 60, 90]
GONE_STATUS_CODES = (404, 410)
ADMIN_SUBSCRIBER = "admin"


@dataclass
class SendResult:
    success: bool
    subscription_id: Optional[str] = None
    tutee_id: Optional[str] = None
    error: Optional[str] = None
    pruned: bool = False


@dataclass
class DispatchSummary:
    kind: str
    sent: int
    failed: int
    results: List[SendResult]
    details: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["message"] = f"Sent {self.sent} notifications"
        return data


def _parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def next_review_date(review_count: int, last_reviewed: Any) -> datetime:
    """Spaced-repetition schedule: 1, 3, 7, 14, 30, 60, then every 90 days."""
    index = min(max(int(review_count or 0), 0), len(REVIEW_INTERVALS_DAYS) - 1)
    return _parse_datetime(last_reviewed) + timedelta(days=REVIEW_INTERVALS_DAYS[index])


def current_streak(entry_dates: Iterable[Any], today: date) -> int:
    """
    Consecutive days with an entry, ending today or yesterday.

    A most-recent entry older than yesterday means no current streak.
    """
    unique = sorted({_parse_datetime(d).date() for d in entry_dates}, reverse=True)
    if not unique:
        return 0
    if unique[0] not in (today, today - timedelta(days=1)):
        return 0

    streak = 1
    for previous, current in zip(unique, unique[1:]):
        if (previous - current).days == 1:
            streak += 1
        else:
            break
    return streak


def motivational_message(streak: int, has_entry_today: bool, rng: Optional[random.Random] = None) -> Tuple[str, str]:
    """Pick a (title, body) pair suited to the streak."""
    rng = rng or random.Random()

    if has_entry_today:
        return rng.choice([
            (f"Amazing! {streak} day streak! 🔥", "You're crushing it! Keep up the great work!"),
            (f"{streak} days strong! 💪", "Your consistency is inspiring! See you tomorrow?"),
            (f"Streak champion! {streak} days 🏆", "You're on fire! Tomorrow, let's make it even better!"),
            (f"Legend! {streak} day streak 🌟", "Your dedication is paying off. Keep going!"),
        ])

    milestones = {
        2: ("2 days in a row! 🎯", "You're building momentum! Don't break the chain now!"),
        6: ("Almost a week! 🎉", "Just one more day to hit 7! You've got this!"),
        7: ("One week streak! 🎊", "Amazing! Can you make it to 14? You're doing great!"),
        13: ("2 weeks tomorrow! 🔥", "You're so close to a 14-day streak! Don't lose it now!"),
        14: ("TWO WEEKS! 🏆", "Incredible consistency! Can you hit a month?"),
        29: ("30 days tomorrow! 🚀", "You're ONE DAY away from a MONTH streak! Legendary!"),
    }
    if streak in milestones:
        return milestones[streak]
    if streak >= 30:
        return f"{streak} day streak! 🌟", "You're absolutely incredible! Don't let this slip away!"
    if streak >= 10:
        return rng.choice([
            (f"Don't lose your {streak}-day streak! 🔥", "You've worked too hard to give up now!"),
            (f"{streak} days! Don't break the chain! ⛓️", "Quick check-in = streak saved. You got this!"),
            (f"Protect your {streak}-day streak! 🛡️", "Just a few minutes to keep your momentum going!"),
        ])
    if streak >= 3:
        return rng.choice([
            (f"{streak} days! Keep it going! 💪", "You're building a great habit. Check in today!"),
            (f"{streak}-day streak at risk! ⚠️", "Don't let your progress slip away!"),
            (f"You're on {streak} days! 🌱", "Your streak is growing! Water it today!"),
        ])
    if streak == 1:
        return "Keep yesterday's momentum! 🚀", "Day 2 starts now! Let's build that streak!"
    return rng.choice([
        ("Ready to start a streak? 🔥", "Today could be day 1 of something great!"),
        ("Time to build momentum! 💫", "Every expert was once a beginner. Start today!"),
        ("Your future self will thank you! ✨", "Quick check-in now = progress tracked!"),
    ])


def _status_code(error: WebPushException) -> Optional[int]:
    response = getattr(error, "response", None)
    return getattr(response, "status_code", None)


class PushDispatcher:
    """
    Args:
        supabase_client: Supabase client (service role)
        vapid_private_key: VAPID private key (PEM path or base64 DER)
        vapid_claims_email: Contact address for the VAPID `sub` claim
        sender: Callable with pywebpush.webpush's signature
        rng: Random source for message selection
    """

    def __init__(
        self,
        supabase_client,
        vapid_private_key: Optional[str],
        vapid_claims_email: Optional[str] = None,
        sender: Callable[..., Any] = webpush,
        rng: Optional[random.Random] = None
    ):
        self.supabase = supabase_client
        self.vapid_private_key = vapid_private_key
        self.vapid_claims_email = vapid_claims_email or "admin@example.com"
        self.sender = sender
        self.rng = rng or random.Random()

    # ==================== Sending ====================

    def _subscription_info(self, subscription: Any) -> Dict[str, Any]:
        if isinstance(subscription, str):
            return json.loads(subscription)
        return subscription

    def _log(self, kind: str, tutee_id: Optional[str], payload: Dict[str, Any], result: SendResult) -> None:
        """Best-effort audit row; never fails the dispatch."""
        try:
            self.supabase.table('notification_logs').insert({
                "tutee_id": tutee_id,
                "notification_type": kind,
                "title": payload.get("title"),
                "body": payload.get("body"),
                "status": "sent" if result.success else "failed",
                "error_message": result.error,
            }).execute()
        except Exception as e:
            logger.warning(f"⚠️ [PushDispatcher] Could not write notification log: {e}")

    def _send(
        self,
        kind: str,
        row: Dict[str, Any],
        payload: Dict[str, Any],
        on_gone: Callable[[Dict[str, Any]], None]
    ) -> SendResult:
        tutee_id = row.get("tutee_id")
        result = SendResult(success=False, subscription_id=row.get("id"), tutee_id=tutee_id)

        try:
            self.sender(
                subscription_info=self._subscription_info(row["subscription"]),
                data=json.dumps(payload),
                vapid_private_key=self.vapid_private_key,
                vapid_claims={"sub": f"mailto:{self.vapid_claims_email}"},
            )
            result.success = True
        except WebPushException as e:
            result.error = str(e)
            status = _status_code(e)
            logger.error(f"❌ [PushDispatcher] Push to {row.get('id')} failed ({status}): {e}")
            if status in GONE_STATUS_CODES:
                try:
                    on_gone(row)
                    result.pruned = True
                    logger.info(f"🧹 [PushDispatcher] Pruned expired subscription {row.get('id')}")
                except Exception as prune_error:
                    logger.error(f"❌ [PushDispatcher] Could not prune subscription: {prune_error}")
        except (ValueError, KeyError, TypeError) as e:
            result.error = f"Invalid subscription: {e}"
            logger.error(f"❌ [PushDispatcher] Invalid subscription {row.get('id')}: {e}")
        except Exception as e:
            # Network errors from the push service fail this subscription only
            result.error = f"{type(e).__name__}: {e}"
            logger.error(f"❌ [PushDispatcher] Push to {row.get('id')} failed: {result.error}")

        self._log(kind, tutee_id, payload, result)
        return result

    def _delete_subscription(self, row: Dict[str, Any]) -> None:
        self.supabase.table('push_subscriptions').delete().eq('id', row["id"]).execute()

    def _disable_work_progress(self, row: Dict[str, Any]) -> None:
        self.supabase.table('work_progress_notifications').update({"is_enabled": False}).eq('id', row["id"]).execute()

    def _tutee_names(self) -> Dict[str, str]:
        rows = self.supabase.table('tutees').select('id, name').execute().data or []
        return {row["id"]: row.get("name") or "Student" for row in rows}

    @staticmethod
    def _summary(kind: str, results: List[SendResult], details: Optional[Dict[str, Any]] = None) -> DispatchSummary:
        sent = sum(1 for r in results if r.success)
        return DispatchSummary(kind=kind, sent=sent, failed=len(results) - sent, results=results, details=details)

    # ==================== Dispatch modes ====================

    def send_test(self) -> DispatchSummary:
        """Send a test message to every stored subscription."""
        subscriptions = self.supabase.table('push_subscriptions').select('*').execute().data or []
        names = self._tutee_names()

        results = []
        for row in subscriptions:
            payload = {
                "title": "Test Notification! 🚀",
                "body": f"Hello {names.get(row.get('tutee_id'), 'Student')}! This is a test push notification.",
                "data": {"url": "/tuition"},
            }
            results.append(self._send("test", row, payload, self._delete_subscription))

        summary = self._summary("test", results)
        logger.info(f"📣 [PushDispatcher] Test dispatch: {summary.sent} sent, {summary.failed} failed")
        return summary

    def notify_tutee(self, kind: str, tutee_id: str, title: str, body: str, url: str = "/tuition") -> DispatchSummary:
        """Send one message to every subscription of a tutee (ADMIN_SUBSCRIBER for the admin)."""
        subscriptions = self.supabase.table('push_subscriptions') \
            .select('*') \
            .eq('tutee_id', tutee_id) \
            .execute().data or []

        payload = {"title": title, "body": body, "data": {"url": url}}
        results = [self._send(kind, row, payload, self._delete_subscription) for row in subscriptions]
        return self._summary(kind, results)

    def send_review_reminders(self, now: Optional[datetime] = None) -> DispatchSummary:
        """Remind tutees whose learning points are due for review."""
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)

        reviews = self.supabase.table('learning_point_reviews').select('*').execute().data or []
        names = self._tutee_names()
        results = []
        reminded = []

        for review in reviews:
            try:
                due = next_review_date(review.get("review_count", 0), review["last_reviewed"])
            except (KeyError, ValueError) as e:
                logger.warning(f"⚠️ [PushDispatcher] Skipping review {review.get('id')}: {e}")
                continue
            if due > now:
                continue

            tutee_id = review["tutee_id"]
            try:
                subscriptions = self.supabase.table('push_subscriptions') \
                    .select('*') \
                    .eq('tutee_id', tutee_id) \
                    .execute().data or []
            except Exception as e:
                logger.error(f"❌ [PushDispatcher] Error fetching subscriptions for {tutee_id}: {e}")
                continue

            payload = {
                "title": "Review Time! 📚",
                "body": f"Hey {names.get(tutee_id, 'Student')}, it's time to review your learning points "
                        f"from {review.get('session_date')}!",
                "data": {"url": f"/tuition?tuteeId={tutee_id}&learningPoints=true"},
            }
            for row in subscriptions:
                result = self._send("review_reminder", row, payload, self._delete_subscription)
                results.append(result)
                if result.success:
                    reminded.append({"tutee_id": tutee_id, "session_date": review.get("session_date")})

        summary = self._summary("review_reminder", results, {"reminded": reminded})
        logger.info(f"📚 [PushDispatcher] Review reminders: {summary.sent} sent, {summary.failed} failed")
        return summary

    def send_work_progress_reminders(self, today: Optional[date] = None) -> DispatchSummary:
        """Send the daily streak nudge to every enabled work-progress subscription."""
        today = today or datetime.now(timezone.utc).date()

        entries = self.supabase.table('work_progress_daily_entries') \
            .select('entry_date') \
            .order('entry_date', desc=True) \
            .execute().data or []
        entry_dates = [row["entry_date"] for row in entries if row.get("entry_date")]
        has_entry_today = any(_parse_datetime(d).date() == today for d in entry_dates)
        streak = current_streak(entry_dates, today)

        subscriptions = self.supabase.table('work_progress_notifications') \
            .select('*') \
            .eq('is_enabled', True) \
            .execute().data or []

        title, body = motivational_message(streak, has_entry_today, self.rng)
        details = {"streak": streak, "has_entry_today": has_entry_today, "title": title, "body": body}
        if not subscriptions:
            return self._summary("work_progress", [], details)

        payload = {
            "title": title,
            "body": body,
            "icon": "/icon-512.png",
            "badge": "/badge-96.png",
            "data": {"url": "/work-progress", "streak": streak, "hasEntry": has_entry_today},
            "actions": [
                {"action": "open", "title": "Check In Now 📝"},
                {"action": "dismiss", "title": "Later"},
            ],
        }
        results = [
            self._send("work_progress", row, payload, self._disable_work_progress)
            for row in subscriptions
        ]

        summary = self._summary("work_progress", results, details)
        logger.info(
            f"🔥 [PushDispatcher] Work-progress reminders (streak {streak}): "
            f"{summary.sent} sent, {summary.failed} failed"
        )
        return summary

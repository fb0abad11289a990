"""
Work Progress Tracker

Daily check-ins for the portal owner's own work:

    work_progress_sections       named groups of tasks
    work_progress_tasks          countable tasks within a section
    work_progress_daily_entries  one row per day (notes, mood)
    work_progress_task_entries   per-day count for each task
    work_progress_notifications  push subscriptions for the daily nudge

A day counts toward the streak when any task count is positive or a mood
is set.
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Union

from .push_notifications import current_streak

logger = logging.getLogger(__name__)


@dataclass
class WorkSection:
    id: str
    name: str
    display_order: int = 0

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "WorkSection":
        return cls(id=row["id"], name=row["name"], display_order=int(row.get("display_order") or 0))


@dataclass
class WorkTask:
    id: str
    section_id: str
    name: str
    display_order: int = 0

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "WorkTask":
        return cls(
            id=row["id"],
            section_id=row["section_id"],
            name=row["name"],
            display_order=int(row.get("display_order") or 0),
        )


@dataclass
class TaskEntry:
    id: str
    daily_entry_id: str
    task_id: str
    count: int = 0
    task_name: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any], task_name: Optional[str] = None) -> "TaskEntry":
        return cls(
            id=row["id"],
            daily_entry_id=row["daily_entry_id"],
            task_id=row["task_id"],
            count=int(row.get("count") or 0),
            task_name=task_name,
        )


@dataclass
class DailyEntry:
    id: str
    entry_date: str
    notes: Optional[str] = None
    mood_emoji: Optional[str] = None
    notifications_enabled: bool = False
    task_entries: List[TaskEntry] = field(default_factory=list)

    @property
    def counts_toward_streak(self) -> bool:
        return bool(self.mood_emoji) or any(te.count > 0 for te in self.task_entries)

    @classmethod
    def from_row(cls, row: Dict[str, Any], task_entries: Optional[List[TaskEntry]] = None) -> "DailyEntry":
        return cls(
            id=row["id"],
            entry_date=str(row["entry_date"]),
            notes=row.get("notes"),
            mood_emoji=row.get("mood_emoji"),
            notifications_enabled=bool(row.get("notifications_enabled")),
            task_entries=task_entries or [],
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["counts_toward_streak"] = self.counts_toward_streak
        return data


@dataclass
class StreakSummary:
    current: int
    longest: int


def _check_date(value: Union[str, date]) -> str:
    try:
        return date.fromisoformat(str(value)[:10]).isoformat()
    except ValueError:
        raise ValueError(f"Invalid date: {value!r}")


def _check_name(name: str, what: str) -> str:
    if not name or not name.strip():
        raise ValueError(f"{what} name is required")
    return name.strip()


def longest_streak(entry_dates: Iterable[str]) -> int:
    """Longest run of consecutive days anywhere in the history."""
    days = sorted({date.fromisoformat(str(d)[:10]) for d in entry_dates})
    longest = run = 0
    previous = None
    for day in days:
        run = run + 1 if previous is not None and (day - previous).days == 1 else 1
        longest = max(longest, run)
        previous = day
    return longest


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class WorkProgressManager:
    def __init__(self, supabase_client):
        self.supabase = supabase_client

    # ==================== Sections ====================

    def list_sections(self) -> List[WorkSection]:
        try:
            result = self.supabase.table('work_progress_sections') \
                .select('*') \
                .order('display_order') \
                .execute()
            return [WorkSection.from_row(row) for row in result.data or []]
        except Exception as e:
            logger.error(f"❌ [WorkProgressManager] Error fetching sections: {e}")
            raise

    def create_section(self, name: str, display_order: int = 0) -> WorkSection:
        row = {"name": _check_name(name, "Section"), "display_order": display_order}
        try:
            result = self.supabase.table('work_progress_sections').insert(row).execute()
            return WorkSection.from_row(result.data[0])
        except Exception as e:
            logger.error(f"❌ [WorkProgressManager] Error creating section: {e}")
            raise

    def update_section(
        self,
        section_id: str,
        name: Optional[str] = None,
        display_order: Optional[int] = None
    ) -> Optional[WorkSection]:
        update_data: Dict[str, Any] = {"updated_at": _now()}
        if name is not None:
            update_data["name"] = _check_name(name, "Section")
        if display_order is not None:
            update_data["display_order"] = display_order
        try:
            result = self.supabase.table('work_progress_sections').update(update_data).eq('id', section_id).execute()
            return WorkSection.from_row(result.data[0]) if result.data else None
        except Exception as e:
            logger.error(f"❌ [WorkProgressManager] Error updating section: {e}")
            raise

    def delete_section(self, section_id: str) -> None:
        """Deletes the section and its tasks."""
        try:
            self.supabase.table('work_progress_tasks').delete().eq('section_id', section_id).execute()
            self.supabase.table('work_progress_sections').delete().eq('id', section_id).execute()
        except Exception as e:
            logger.error(f"❌ [WorkProgressManager] Error deleting section: {e}")
            raise

    # ==================== Tasks ====================

    def list_tasks(self, section_id: Optional[str] = None) -> List[WorkTask]:
        try:
            query = self.supabase.table('work_progress_tasks').select('*')
            if section_id:
                query = query.eq('section_id', section_id)
            result = query.order('display_order').execute()
            return [WorkTask.from_row(row) for row in result.data or []]
        except Exception as e:
            logger.error(f"❌ [WorkProgressManager] Error fetching tasks: {e}")
            raise

    def create_task(self, section_id: str, name: str, display_order: int = 0) -> WorkTask:
        row = {"section_id": section_id, "name": _check_name(name, "Task"), "display_order": display_order}
        try:
            result = self.supabase.table('work_progress_tasks').insert(row).execute()
            return WorkTask.from_row(result.data[0])
        except Exception as e:
            logger.error(f"❌ [WorkProgressManager] Error creating task: {e}")
            raise

    def update_task(
        self,
        task_id: str,
        name: Optional[str] = None,
        section_id: Optional[str] = None,
        display_order: Optional[int] = None
    ) -> Optional[WorkTask]:
        update_data: Dict[str, Any] = {"updated_at": _now()}
        if name is not None:
            update_data["name"] = _check_name(name, "Task")
        if section_id is not None:
            update_data["section_id"] = section_id
        if display_order is not None:
            update_data["display_order"] = display_order
        try:
            result = self.supabase.table('work_progress_tasks').update(update_data).eq('id', task_id).execute()
            return WorkTask.from_row(result.data[0]) if result.data else None
        except Exception as e:
            logger.error(f"❌ [WorkProgressManager] Error updating task: {e}")
            raise

    def delete_task(self, task_id: str) -> None:
        try:
            self.supabase.table('work_progress_task_entries').delete().eq('task_id', task_id).execute()
            self.supabase.table('work_progress_tasks').delete().eq('id', task_id).execute()
        except Exception as e:
            logger.error(f"❌ [WorkProgressManager] Error deleting task: {e}")
            raise

    # ==================== Daily entries ====================

    def _attach_task_entries(self, rows: List[Dict[str, Any]]) -> List[DailyEntry]:
        if not rows:
            return []
        task_rows = self.supabase.table('work_progress_task_entries') \
            .select('*') \
            .in_('daily_entry_id', [row["id"] for row in rows]) \
            .execute().data or []
        names = {task.id: task.name for task in self.list_tasks()}

        by_entry: Dict[str, List[TaskEntry]] = {}
        for te in task_rows:
            by_entry.setdefault(te["daily_entry_id"], []).append(TaskEntry.from_row(te, names.get(te["task_id"])))
        return [DailyEntry.from_row(row, by_entry.get(row["id"])) for row in rows]

    def list_daily_entries(self, start_date: Optional[str] = None, end_date: Optional[str] = None) -> List[DailyEntry]:
        """Entries with their task counts, newest first."""
        try:
            query = self.supabase.table('work_progress_daily_entries').select('*')
            if start_date:
                query = query.gte('entry_date', _check_date(start_date))
            if end_date:
                query = query.lte('entry_date', _check_date(end_date))
            rows = query.order('entry_date', desc=True).execute().data or []
            return self._attach_task_entries(rows)
        except Exception as e:
            logger.error(f"❌ [WorkProgressManager] Error fetching daily entries: {e}")
            raise

    def get_daily_entry(self, entry_date: str) -> Optional[DailyEntry]:
        entry_date = _check_date(entry_date)
        entries = self.list_daily_entries(entry_date, entry_date)
        return entries[0] if entries else None

    def save_daily_entry(
        self,
        entry_date: str,
        notes: Optional[str] = None,
        mood_emoji: Optional[str] = None,
        notifications_enabled: Optional[bool] = None
    ) -> DailyEntry:
        """Create the day's entry, or update only the given fields of an existing one."""
        entry_date = _check_date(entry_date)
        changes = {
            key: value for key, value in (
                ("notes", notes),
                ("mood_emoji", mood_emoji),
                ("notifications_enabled", notifications_enabled),
            ) if value is not None
        }

        try:
            existing = self.get_daily_entry(entry_date)
            if existing:
                changes["updated_at"] = _now()
                self.supabase.table('work_progress_daily_entries').update(changes).eq('id', existing.id).execute()
            else:
                self.supabase.table('work_progress_daily_entries').insert({"entry_date": entry_date, **changes}).execute()
        except Exception as e:
            logger.error(f"❌ [WorkProgressManager] Error saving daily entry: {e}")
            raise

        return self.get_daily_entry(entry_date)

    def set_task_count(self, entry_date: str, task_id: str, count: int) -> TaskEntry:
        """Set a task's count for a day, creating the day's entry if needed."""
        if count < 0:
            raise ValueError("Count cannot be negative")

        entry = self.get_daily_entry(entry_date) or self.save_daily_entry(entry_date)
        try:
            existing = self.supabase.table('work_progress_task_entries') \
                .select('*') \
                .eq('daily_entry_id', entry.id) \
                .eq('task_id', task_id) \
                .limit(1) \
                .execute().data
            if existing:
                result = self.supabase.table('work_progress_task_entries') \
                    .update({"count": count, "updated_at": _now()}) \
                    .eq('id', existing[0]["id"]) \
                    .execute()
            else:
                result = self.supabase.table('work_progress_task_entries').insert({
                    "daily_entry_id": entry.id,
                    "task_id": task_id,
                    "count": count,
                }).execute()
            return TaskEntry.from_row(result.data[0])
        except Exception as e:
            logger.error(f"❌ [WorkProgressManager] Error saving task count: {e}")
            raise

    def get_streak(self, today: Optional[date] = None) -> StreakSummary:
        today = today or datetime.now(timezone.utc).date()
        dates = [entry.entry_date for entry in self.list_daily_entries() if entry.counts_toward_streak]
        current = current_streak(dates, today)
        return StreakSummary(current=current, longest=max(longest_streak(dates), current))

    # ==================== Reminder subscriptions ====================

    def subscribe_notifications(self, device_fingerprint: str, subscription: Dict[str, Any]) -> None:
        if not device_fingerprint:
            raise ValueError("Device fingerprint is required")
        try:
            self.supabase.table('work_progress_notifications').upsert({
                "device_fingerprint": device_fingerprint,
                "subscription": subscription,
                "is_enabled": True,
                "updated_at": _now(),
            }, on_conflict='device_fingerprint').execute()
            logger.info("🔔 [WorkProgressManager] Daily reminder subscription saved")
        except Exception as e:
            logger.error(f"❌ [WorkProgressManager] Error saving reminder subscription: {e}")
            raise

    def unsubscribe_notifications(self, device_fingerprint: str) -> None:
        try:
            self.supabase.table('work_progress_notifications') \
                .update({"is_enabled": False}) \
                .eq('device_fingerprint', device_fingerprint) \
                .execute()
        except Exception as e:
            logger.error(f"❌ [WorkProgressManager] Error disabling reminder subscription: {e}")
            raise

    def notifications_enabled(self, device_fingerprint: str) -> bool:
        result = self.supabase.table('work_progress_notifications') \
            .select('is_enabled') \
            .eq('device_fingerprint', device_fingerprint) \
            .limit(1) \
            .execute()
        return bool(result.data and result.data[0].get("is_enabled"))

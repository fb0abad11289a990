"""Calendar slots (`available_dates` table): open time slots, exams and tests."""

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional

from .earnings import normalize_time

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    TIME_SLOT = "time_slot"
    EXAM = "exam"
    TEST = "test"


@dataclass
class AvailableSlot:
    id: str
    date: str
    start_time: str
    end_time: str
    is_available: bool = True
    booked_by: Optional[str] = None
    tutee_id: Optional[str] = None
    notes: Optional[str] = None
    event_type: EventType = EventType.TIME_SLOT

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "AvailableSlot":
        return cls(
            id=row["id"],
            date=str(row["date"]),
            start_time=normalize_time(row["start_time"]) if row.get("start_time") else "",
            end_time=normalize_time(row["end_time"]) if row.get("end_time") else "",
            is_available=bool(row.get("is_available", True)),
            booked_by=row.get("booked_by") or None,
            tutee_id=row.get("tutee_id") or None,
            notes=row.get("notes") or None,
            event_type=EventType(row.get("event_type") or EventType.TIME_SLOT.value),
        )


def _check_times(start_time: str, end_time: str):
    start, end = normalize_time(start_time), normalize_time(end_time)
    if end <= start:
        raise ValueError("End time must be after start time")
    return start, end


def _clean_notes(notes: Optional[str]) -> Optional[str]:
    return notes.strip() if notes and notes.strip() else None


class AvailabilityManager:
    def __init__(self, supabase_client):
        self.supabase = supabase_client

    def list_slots(self, start_date: Optional[str] = None, end_date: Optional[str] = None) -> List[AvailableSlot]:
        """Slots in date then start-time order, optionally within [start_date, end_date]."""
        try:
            query = self.supabase.table('available_dates').select('*')
            if start_date:
                query = query.gte('date', start_date)
            if end_date:
                query = query.lte('date', end_date)
            result = query.order('date').order('start_time').execute()
            return [AvailableSlot.from_row(row) for row in result.data or []]
        except Exception as e:
            logger.error(f"❌ [AvailabilityManager] Error fetching slots: {e}")
            raise

    def get_slot(self, slot_id: str) -> Optional[AvailableSlot]:
        result = self.supabase.table('available_dates').select('*').eq('id', slot_id).limit(1).execute()
        return AvailableSlot.from_row(result.data[0]) if result.data else None

    def create_slot(
        self,
        slot_date: str,
        start_time: str,
        end_time: str,
        is_available: bool = True,
        tutee_id: Optional[str] = None,
        notes: Optional[str] = None,
        event_type: EventType = EventType.TIME_SLOT
    ) -> AvailableSlot:
        start, end = _check_times(start_time, end_time)
        row = {
            "date": date.fromisoformat(slot_date).isoformat(),
            "start_time": start,
            "end_time": end,
            "is_available": is_available,
            "tutee_id": tutee_id or None,
            "notes": _clean_notes(notes),
            "event_type": EventType(event_type).value,
        }
        try:
            result = self.supabase.table('available_dates').insert(row).execute()
        except Exception as e:
            logger.error(f"❌ [AvailabilityManager] Error creating slot: {e}")
            raise

        slot = AvailableSlot.from_row(result.data[0])
        logger.info(f"📅 [AvailabilityManager] Added {slot.event_type.value} on {slot.date} {start}-{end}")
        return slot

    def update_slot(self, slot_id: str, **changes) -> Optional[AvailableSlot]:
        """
        Partial update. Empty notes clear the stored notes; `booked_by` and
        `tutee_id` may be set to None explicitly.
        """
        update_data: Dict[str, Any] = {}
        if changes.get("slot_date") is not None:
            update_data["date"] = date.fromisoformat(changes["slot_date"]).isoformat()
        for key in ("start_time", "end_time"):
            if changes.get(key) is not None:
                update_data[key] = normalize_time(changes[key])
        if changes.get("is_available") is not None:
            update_data["is_available"] = bool(changes["is_available"])
        if changes.get("event_type") is not None:
            update_data["event_type"] = EventType(changes["event_type"]).value
        for key in ("booked_by", "tutee_id"):
            if key in changes:
                update_data[key] = changes[key] or None
        if "notes" in changes:
            update_data["notes"] = _clean_notes(changes["notes"])

        if "start_time" in update_data or "end_time" in update_data:
            current = self.get_slot(slot_id)
            if current is None:
                return None
            _check_times(update_data.get("start_time", current.start_time), update_data.get("end_time", current.end_time))

        try:
            result = self.supabase.table('available_dates').update(update_data).eq('id', slot_id).execute()
            return AvailableSlot.from_row(result.data[0]) if result.data else None
        except Exception as e:
            logger.error(f"❌ [AvailabilityManager] Error updating slot: {e}")
            raise

    def delete_slot(self, slot_id: str) -> None:
        try:
            self.supabase.table('available_dates').delete().eq('id', slot_id).execute()
        except Exception as e:
            logger.error(f"❌ [AvailabilityManager] Error deleting slot: {e}")
            raise

    def book_slot(self, slot_id: str, tutee_id: str) -> Optional[AvailableSlot]:
        """
        Mark an open time slot as booked by a tutee.

        Returns:
            The booked slot, or None if no such slot

        Raises:
            ValueError: If the slot is already booked or is not a time slot
        """
        slot = self.get_slot(slot_id)
        if slot is None:
            return None
        if slot.event_type != EventType.TIME_SLOT:
            raise ValueError(f"Cannot book a {slot.event_type.value}")

        # Only matches while still open, so two bookings cannot both succeed
        result = self.supabase.table('available_dates') \
            .update({"booked_by": tutee_id, "is_available": False}) \
            .eq('id', slot_id) \
            .eq('is_available', True) \
            .execute()
        if not result.data:
            raise ValueError("Slot is already booked")

        logger.info(f"✅ [AvailabilityManager] {tutee_id} booked {slot.date} {slot.start_time}")
        return AvailableSlot.from_row(result.data[0])

    def cancel_booking(self, slot_id: str) -> Optional[AvailableSlot]:
        return self.update_slot(slot_id, booked_by=None, is_available=True)

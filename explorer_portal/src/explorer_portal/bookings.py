"""
Booking requests (`booking_requests` table)

Tutees ask for a session time; the admin approves or rejects it. When a
PushDispatcher is supplied, new requests notify the admin and decisions
notify the tutee. Notification failures never fail the request itself.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from .earnings import normalize_time
from .push_notifications import ADMIN_SUBSCRIBER

logger = logging.getLogger(__name__)


class BookingStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


@dataclass
class BookingRequest:
    id: str
    tutee_id: str
    requested_date: str
    requested_start_time: str
    requested_end_time: str
    status: BookingStatus = BookingStatus.PENDING
    admin_notes: Optional[str] = None
    tutee_notes: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "BookingRequest":
        return cls(
            id=row["id"],
            tutee_id=row["tutee_id"],
            requested_date=str(row["requested_date"]),
            requested_start_time=normalize_time(row["requested_start_time"]),
            requested_end_time=normalize_time(row["requested_end_time"]),
            status=BookingStatus(row.get("status") or BookingStatus.PENDING.value),
            admin_notes=row.get("admin_notes") or None,
            tutee_notes=row.get("tutee_notes") or None,
            created_at=row.get("created_at"),
        )


class BookingManager:
    """
    Args:
        supabase_client: Supabase client (service role)
        dispatcher: Optional PushDispatcher for request/decision notifications
    """

    def __init__(self, supabase_client, dispatcher=None):
        self.supabase = supabase_client
        self.dispatcher = dispatcher

    def _notify(self, tutee_id: str, title: str, body: str) -> None:
        if self.dispatcher is None:
            return
        try:
            self.dispatcher.notify_tutee("booking", tutee_id, title, body)
        except Exception as e:
            logger.warning(f"⚠️ [BookingManager] Could not send booking notification: {e}")

    def list_requests(
        self,
        status: Optional[BookingStatus] = None,
        tutee_id: Optional[str] = None
    ) -> List[BookingRequest]:
        """Newest first, optionally filtered by status and/or tutee."""
        try:
            query = self.supabase.table('booking_requests').select('*')
            if status is not None:
                query = query.eq('status', BookingStatus(status).value)
            if tutee_id:
                query = query.eq('tutee_id', tutee_id)
            result = query.order('created_at', desc=True).execute()
            return [BookingRequest.from_row(row) for row in result.data or []]
        except Exception as e:
            logger.error(f"❌ [BookingManager] Error fetching booking requests: {e}")
            raise

    def get_request(self, request_id: str) -> Optional[BookingRequest]:
        result = self.supabase.table('booking_requests').select('*').eq('id', request_id).limit(1).execute()
        return BookingRequest.from_row(result.data[0]) if result.data else None

    def create_request(
        self,
        tutee_id: str,
        requested_date: str,
        requested_start_time: str,
        requested_end_time: str,
        tutee_notes: Optional[str] = None
    ) -> BookingRequest:
        start, end = normalize_time(requested_start_time), normalize_time(requested_end_time)
        if end <= start:
            raise ValueError("End time must be after start time")

        row = {
            "tutee_id": tutee_id,
            "requested_date": date.fromisoformat(requested_date).isoformat(),
            "requested_start_time": start,
            "requested_end_time": end,
            "tutee_notes": tutee_notes or None,
            "status": BookingStatus.PENDING.value,
        }
        try:
            result = self.supabase.table('booking_requests').insert(row).execute()
        except Exception as e:
            logger.error(f"❌ [BookingManager] Error creating booking request: {e}")
            raise

        request = BookingRequest.from_row(result.data[0])
        logger.info(f"📅 [BookingManager] {tutee_id} requested {request.requested_date} {start}-{end}")
        self._notify(
            ADMIN_SUBSCRIBER,
            "New Booking Request! 📅",
            f"A new session has been requested for {request.requested_date}.",
        )
        return request

    def update_request(self, request_id: str, **changes) -> Optional[BookingRequest]:
        """Partial update; a change to approved/rejected notifies the tutee."""
        update_data: Dict[str, Any] = {"updated_at": datetime.now(timezone.utc).isoformat()}
        if changes.get("status") is not None:
            update_data["status"] = BookingStatus(changes["status"]).value
        if changes.get("requested_date") is not None:
            update_data["requested_date"] = date.fromisoformat(changes["requested_date"]).isoformat()
        for key in ("requested_start_time", "requested_end_time"):
            if changes.get(key) is not None:
                update_data[key] = normalize_time(changes[key])
        for key in ("admin_notes", "tutee_notes"):
            if changes.get(key) is not None:
                update_data[key] = changes[key]

        try:
            result = self.supabase.table('booking_requests').update(update_data).eq('id', request_id).execute()
        except Exception as e:
            logger.error(f"❌ [BookingManager] Error updating booking request: {e}")
            raise
        if not result.data:
            return None

        request = BookingRequest.from_row(result.data[0])
        if update_data.get("status") in (BookingStatus.APPROVED.value, BookingStatus.REJECTED.value):
            approved = request.status == BookingStatus.APPROVED
            self._notify(
                request.tutee_id,
                "Request Approved! ✅" if approved else "Request Update ℹ️",
                f"Your booking for {request.requested_date} has been {request.status.value}.",
            )
        return request

    def approve(self, request_id: str, admin_notes: Optional[str] = None) -> Optional[BookingRequest]:
        return self.update_request(request_id, status=BookingStatus.APPROVED, admin_notes=admin_notes)

    def reject(self, request_id: str, admin_notes: Optional[str] = None) -> Optional[BookingRequest]:
        return self.update_request(request_id, status=BookingStatus.REJECTED, admin_notes=admin_notes)

    def delete_request(self, request_id: str) -> None:
        try:
            self.supabase.table('booking_requests').delete().eq('id', request_id).execute()
        except Exception as e:
            logger.error(f"❌ [BookingManager] Error deleting booking request: {e}")
            raise

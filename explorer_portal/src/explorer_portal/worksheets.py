"""Worksheet tracking per tutee (`worksheets` table)."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class WorksheetStatus(str, Enum):
    UPCOMING = "Upcoming"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"


@dataclass
class WorksheetEntry:
    id: str
    tutee_id: str
    worksheet_name: str
    student_name: str
    completed_date: str
    status: WorksheetStatus = WorksheetStatus.UPCOMING
    completion_percentage: int = 0
    notes: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "WorksheetEntry":
        return cls(
            id=row["id"],
            tutee_id=row["tutee_id"],
            worksheet_name=row["worksheet_name"],
            student_name=row.get("student_name") or "",
            completed_date=str(row.get("completed_date") or ""),
            status=WorksheetStatus(row.get("status") or WorksheetStatus.UPCOMING.value),
            completion_percentage=int(row.get("completion_percentage") or 0),
            notes=row.get("notes"),
        )


def _check_percentage(value: int) -> int:
    if not 0 <= value <= 100:
        raise ValueError("Completion percentage must be between 0 and 100")
    return value


class WorksheetManager:
    def __init__(self, supabase_client):
        self.supabase = supabase_client

    def list_worksheets(self, tutee_id: str) -> List[WorksheetEntry]:
        try:
            result = self.supabase.table('worksheets') \
                .select('*') \
                .eq('tutee_id', tutee_id) \
                .order('completed_date', desc=True) \
                .execute()
            return [WorksheetEntry.from_row(row) for row in result.data or []]
        except Exception as e:
            logger.error(f"❌ [WorksheetManager] Error fetching worksheets: {e}")
            raise

    def create_worksheet(
        self,
        tutee_id: str,
        worksheet_name: str,
        student_name: str,
        completed_date: str,
        status: WorksheetStatus = WorksheetStatus.UPCOMING,
        completion_percentage: int = 0,
        notes: Optional[str] = None
    ) -> WorksheetEntry:
        if not worksheet_name or not worksheet_name.strip():
            raise ValueError("Worksheet name is required")

        row = {
            "tutee_id": tutee_id,
            "worksheet_name": worksheet_name.strip(),
            "student_name": student_name,
            "completed_date": completed_date,
            "status": WorksheetStatus(status).value,
            "completion_percentage": _check_percentage(completion_percentage),
            "notes": notes,
        }
        try:
            result = self.supabase.table('worksheets').insert(row).execute()
            return WorksheetEntry.from_row(result.data[0])
        except Exception as e:
            logger.error(f"❌ [WorksheetManager] Error creating worksheet: {e}")
            raise

    def update_worksheet(self, worksheet_id: str, **changes) -> Optional[WorksheetEntry]:
        """Partial update; only the given fields change."""
        update_data: Dict[str, Any] = {"updated_at": datetime.now(timezone.utc).isoformat()}
        for key in ("worksheet_name", "student_name", "completed_date", "notes"):
            if changes.get(key) is not None:
                update_data[key] = changes[key]
        if changes.get("status") is not None:
            update_data["status"] = WorksheetStatus(changes["status"]).value
        if changes.get("completion_percentage") is not None:
            update_data["completion_percentage"] = _check_percentage(changes["completion_percentage"])

        try:
            result = self.supabase.table('worksheets').update(update_data).eq('id', worksheet_id).execute()
            return WorksheetEntry.from_row(result.data[0]) if result.data else None
        except Exception as e:
            logger.error(f"❌ [WorksheetManager] Error updating worksheet: {e}")
            raise

    def delete_worksheet(self, worksheet_id: str) -> None:
        try:
            self.supabase.table('worksheets').delete().eq('id', worksheet_id).execute()
        except Exception as e:
            logger.error(f"❌ [WorksheetManager] Error deleting worksheet: {e}")
            raise

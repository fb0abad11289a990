"""
Grid Progress Manager

Stores each user's exploration progress as one Firestore document
(collection `userGridProgress`, document id = user id). Cells are written
with field-path updates so concurrent edits to different cells don't clobber
each other.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple

from google.cloud.firestore_v1 import DELETE_FIELD
from google.cloud.firestore_v1.field_path import FieldPath

from explorer_portal.grid_data import GridData

logger = logging.getLogger(__name__)

PROGRESS_COLLECTION = "userGridProgress"


class CellStatus(str, Enum):
    EXPLORED = "explored"
    INACCESSIBLE = "inaccessible"


@dataclass
class CellProgress:
    """Exploration entry for a single cell."""
    status: CellStatus
    explored_date: str
    notes: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CellProgress":
        return cls(
            status=CellStatus(data["status"]),
            explored_date=data.get("exploredDate", ""),
            notes=data.get("notes") or "",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "exploredDate": self.explored_date,
            "notes": self.notes,
        }


@dataclass
class UserGridProgress:
    """A user's progress document."""
    user_id: str
    explored_cells: Dict[int, CellProgress] = field(default_factory=dict)
    custom_names: Dict[int, str] = field(default_factory=dict)
    last_updated: str = ""

    def status_of(self, cell_id: int) -> Optional[CellStatus]:
        entry = self.explored_cells.get(cell_id)
        return entry.status if entry else None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserGridProgress":
        explored = {}
        for key, value in (data.get("exploredCells") or {}).items():
            # Older documents store cleared cells as null instead of deleting the field
            if not value:
                continue
            explored[int(key)] = CellProgress.from_dict(value)

        custom_names = {
            int(key): value
            for key, value in (data.get("customNames") or {}).items()
            if value
        }

        return cls(
            user_id=data.get("userId", ""),
            explored_cells=explored,
            custom_names=custom_names,
            last_updated=data.get("lastUpdated", ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "userId": self.user_id,
            "exploredCells": {str(k): v.to_dict() for k, v in self.explored_cells.items()},
            "customNames": {str(k): v for k, v in self.custom_names.items()},
            "lastUpdated": self.last_updated,
        }


@dataclass
class RegionStats:
    total: int = 0
    explored: int = 0
    inaccessible: int = 0


@dataclass
class ExplorationStats:
    total_cells: int
    explored_cells: int
    inaccessible_cells: int
    completed_cells: int
    unexplored_cells: int
    progress_percentage: int
    region_stats: Dict[str, RegionStats]


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _field(*parts) -> str:
    """Build a Firestore field path; numeric cell ids need backtick quoting."""
    return FieldPath(*[str(p) for p in parts]).to_api_repr()


class GridProgressManager:
    """
    Reads and mutates per-user progress documents.

    Mutations return True/False instead of raising; failures are logged and
    surfaced to the caller as a generic error.
    """

    def __init__(self, firestore_client):
        """
        Args:
            firestore_client: google.cloud.firestore.Client (or compatible fake)
        """
        self.db = firestore_client

    def _doc(self, user_id: str):
        return self.db.collection(PROGRESS_COLLECTION).document(user_id)

    def _create(self, doc_ref, user_id: str) -> UserGridProgress:
        progress = UserGridProgress(user_id=user_id, last_updated=_now_iso())
        doc_ref.set(progress.to_dict())
        logger.info(f"🆕 [GridProgressManager] Created progress document for user {user_id[:20]}")
        return progress

    def get_user_progress(self, user_id: str) -> Optional[UserGridProgress]:
        """
        Fetch a user's progress, creating an empty document on first access.

        Returns:
            UserGridProgress, or None if the store could not be reached
        """
        try:
            doc_ref = self._doc(user_id)
            snapshot = doc_ref.get()

            if snapshot.exists:
                return UserGridProgress.from_dict(snapshot.to_dict() or {})
            return self._create(doc_ref, user_id)
        except Exception as e:
            logger.error(f"❌ [GridProgressManager] Error getting user grid progress: {e}")
            return None

    def _update(self, user_id: str, changes: Dict[Tuple[Any, ...], Any], action: str) -> bool:
        """
        Apply field-path writes, keyed by path components.

        A user whose first action is a write gets their document created here.
        """
        try:
            updates = {_field(*parts): value for parts, value in changes.items()}
            updates.setdefault("lastUpdated", _now_iso())

            doc_ref = self._doc(user_id)
            if not doc_ref.get().exists:
                self._create(doc_ref, user_id)
            doc_ref.update(updates)
            return True
        except Exception as e:
            logger.error(f"❌ [GridProgressManager] Error {action}: {e}")
            return False

    def _set_status(self, user_id: str, cell_id: int, status: CellStatus, notes: Optional[str]) -> bool:
        explored_date = _now_iso()
        entry = CellProgress(status=status, explored_date=explored_date, notes=notes or "")
        return self._update(
            user_id,
            {("exploredCells", cell_id): entry.to_dict(), ("lastUpdated",): explored_date},
            f"marking cell as {status.value}",
        )

    def mark_explored(self, user_id: str, cell_id: int, notes: Optional[str] = None) -> bool:
        return self._set_status(user_id, cell_id, CellStatus.EXPLORED, notes)

    def mark_inaccessible(self, user_id: str, cell_id: int, notes: Optional[str] = None) -> bool:
        return self._set_status(user_id, cell_id, CellStatus.INACCESSIBLE, notes)

    def mark_unexplored(self, user_id: str, cell_id: int) -> bool:
        """Remove the cell's entry entirely so it reads as unexplored."""
        return self._update(
            user_id,
            {("exploredCells", cell_id): DELETE_FIELD},
            "marking cell as unexplored",
        )

    def update_notes(self, user_id: str, cell_id: int, notes: str) -> bool:
        return self._update(
            user_id,
            {("exploredCells", cell_id, "notes"): notes},
            "updating cell notes",
        )

    def update_explored_date(self, user_id: str, cell_id: int, date: str) -> bool:
        return self._update(
            user_id,
            {("exploredCells", cell_id, "exploredDate"): date},
            "updating cell explored date",
        )

    def set_custom_name(self, user_id: str, cell_id: int, custom_name: str) -> bool:
        return self._update(
            user_id,
            {("customNames", cell_id): custom_name},
            "updating custom grid name",
        )

    def remove_custom_name(self, user_id: str, cell_id: int) -> bool:
        return self._update(
            user_id,
            {("customNames", cell_id): DELETE_FIELD},
            "removing custom grid name",
        )

    def subscribe(
        self,
        user_id: str,
        callback: Callable[[Optional[UserGridProgress]], None]
    ) -> Callable[[], None]:
        """
        Watch a user's progress document.

        The callback gets the latest progress, or None if the document is
        missing. Returns a function that cancels the subscription.
        """
        def on_snapshot(doc_snapshots, changes, read_time):
            for snapshot in doc_snapshots:
                if snapshot.exists:
                    callback(UserGridProgress.from_dict(snapshot.to_dict() or {}))
                else:
                    callback(None)

        watch = self._doc(user_id).on_snapshot(on_snapshot)
        return watch.unsubscribe


def exploration_stats(grid: GridData, progress: Optional[UserGridProgress]) -> ExplorationStats:
    """Summarise a user's progress over the grid, overall and per region."""
    total = len(grid.cells)
    explored = 0
    inaccessible = 0
    regions: Dict[str, RegionStats] = OrderedDict()

    for cell in grid.cells:
        status = progress.status_of(cell.id) if progress else None
        region = regions.setdefault(cell.region_name, RegionStats())
        region.total += 1
        if status == CellStatus.EXPLORED:
            explored += 1
            region.explored += 1
        elif status == CellStatus.INACCESSIBLE:
            inaccessible += 1
            region.inaccessible += 1

    completed = explored + inaccessible
    percentage = round(completed / total * 100) if total else 0

    return ExplorationStats(
        total_cells=total,
        explored_cells=explored,
        inaccessible_cells=inaccessible,
        completed_cells=completed,
        unexplored_cells=total - completed,
        progress_percentage=percentage,
        region_stats=dict(regions),
    )

"""
Tutee Manager

Tutoring groups ("tutees") and the students inside each group, stored in
the Supabase `tutees` and `tutee_students` tables.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

PIN_PATTERN = re.compile(r"[0-9]{4}")

DEFAULT_ICON = "BookOpen"
DEFAULT_PRIMARY = "pink"
DEFAULT_SECONDARY = "purple"
DEFAULT_GRADIENT = "from-pink-500 to-purple-600"


def validate_pin(pin: str) -> str:
    """Raise ValueError unless the PIN is exactly four digits."""
    if not isinstance(pin, str) or not PIN_PATTERN.fullmatch(pin):
        raise ValueError("PIN must be exactly 4 digits")
    return pin


@dataclass
class ColorScheme:
    primary: str = DEFAULT_PRIMARY
    secondary: str = DEFAULT_SECONDARY
    gradient: str = DEFAULT_GRADIENT


@dataclass
class Tutee:
    """A tutoring group with its own PIN, theme and icon."""
    id: str
    name: str
    pin: str
    color_scheme: ColorScheme = field(default_factory=ColorScheme)
    icon: str = DEFAULT_ICON
    description: Optional[str] = None

    def public_dict(self) -> Dict[str, Any]:
        """Everything except the PIN."""
        return {
            "id": self.id,
            "name": self.name,
            "icon": self.icon,
            "description": self.description,
            "color_scheme": {
                "primary": self.color_scheme.primary,
                "secondary": self.color_scheme.secondary,
                "gradient": self.color_scheme.gradient,
            },
        }


@dataclass
class TuteeStudent:
    id: str
    tutee_id: str
    student_name: str
    display_order: int = 0


def row_to_tutee(row: Dict[str, Any]) -> Tutee:
    return Tutee(
        id=row["id"],
        name=row["name"],
        pin=row["pin"],
        description=row.get("description") or None,
        icon=row.get("icon") or DEFAULT_ICON,
        color_scheme=ColorScheme(
            primary=row.get("color_primary") or DEFAULT_PRIMARY,
            secondary=row.get("color_secondary") or DEFAULT_SECONDARY,
            gradient=row.get("color_gradient") or DEFAULT_GRADIENT,
        ),
    )


def row_to_student(row: Dict[str, Any]) -> TuteeStudent:
    return TuteeStudent(
        id=row["id"],
        tutee_id=row["tutee_id"],
        student_name=row["student_name"],
        display_order=row.get("display_order") or 0,
    )


class TuteeManager:
    """
    CRUD over tutees and their students.

    Errors from Supabase are logged and re-raised; validation problems raise
    ValueError.
    """

    def __init__(self, supabase_client):
        self.supabase = supabase_client

    # ==================== Tutees ====================

    def list_tutees(self) -> List[Tutee]:
        try:
            result = self.supabase.table('tutees').select('*').order('name', desc=False).execute()
            return [row_to_tutee(row) for row in result.data or []]
        except Exception as e:
            logger.error(f"❌ [TuteeManager] Error fetching tutees: {e}")
            raise

    def get_tutee(self, tutee_id: str) -> Optional[Tutee]:
        try:
            result = self.supabase.table('tutees').select('*').eq('id', tutee_id).limit(1).execute()
            if not result.data:
                return None
            return row_to_tutee(result.data[0])
        except Exception as e:
            logger.error(f"❌ [TuteeManager] Error fetching tutee {tutee_id}: {e}")
            raise

    def create_tutee(
        self,
        tutee_id: str,
        name: str,
        pin: str,
        description: Optional[str] = None,
        icon: Optional[str] = None,
        color_primary: Optional[str] = None,
        color_secondary: Optional[str] = None,
        color_gradient: Optional[str] = None,
    ) -> Tutee:
        validate_pin(pin)
        if not tutee_id or not name or not name.strip():
            raise ValueError("Tutee id and name are required")

        row = {
            "id": tutee_id,
            "name": name.strip(),
            "pin": pin,
            "description": description,
            "icon": icon or DEFAULT_ICON,
            "color_primary": color_primary or DEFAULT_PRIMARY,
            "color_secondary": color_secondary or DEFAULT_SECONDARY,
            "color_gradient": color_gradient or DEFAULT_GRADIENT,
        }

        try:
            result = self.supabase.table('tutees').insert(row).execute()
            logger.info(f"✅ [TuteeManager] Created tutee {tutee_id}")
            return row_to_tutee(result.data[0])
        except Exception as e:
            logger.error(f"❌ [TuteeManager] Error creating tutee: {e}")
            raise

    def _update(self, tutee_id: str, update_data: Dict[str, Any], action: str) -> Optional[Tutee]:
        if not update_data:
            return self.get_tutee(tutee_id)
        try:
            result = self.supabase.table('tutees').update(update_data).eq('id', tutee_id).execute()
            if not result.data:
                return None
            return row_to_tutee(result.data[0])
        except Exception as e:
            logger.error(f"❌ [TuteeManager] Error updating tutee {action}: {e}")
            raise

    def update_colors(
        self,
        tutee_id: str,
        primary: Optional[str] = None,
        secondary: Optional[str] = None,
        gradient: Optional[str] = None,
    ) -> Optional[Tutee]:
        update_data = {}
        if primary is not None:
            update_data["color_primary"] = primary
        if secondary is not None:
            update_data["color_secondary"] = secondary
        if gradient is not None:
            update_data["color_gradient"] = gradient
        return self._update(tutee_id, update_data, "colors")

    def update_icon(self, tutee_id: str, icon: str) -> Optional[Tutee]:
        return self._update(tutee_id, {"icon": icon}, "icon")

    def update_info(
        self,
        tutee_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Optional[Tutee]:
        update_data = {}
        if name is not None:
            update_data["name"] = name
        if description is not None:
            update_data["description"] = description
        return self._update(tutee_id, update_data, "info")

    def update_pin(self, tutee_id: str, current_pin: str, new_pin: str) -> Optional[Tutee]:
        """Change a tutee's PIN after checking the current one."""
        tutee = self.get_tutee(tutee_id)
        if tutee is None:
            return None
        if tutee.pin != current_pin:
            raise ValueError("Current PIN is incorrect")
        validate_pin(new_pin)
        return self._update(tutee_id, {"pin": new_pin}, "PIN")

    def delete_tutee(self, tutee_id: str) -> None:
        try:
            self.supabase.table('tutees').delete().eq('id', tutee_id).execute()
            logger.info(f"🗑️ [TuteeManager] Deleted tutee {tutee_id}")
        except Exception as e:
            logger.error(f"❌ [TuteeManager] Error deleting tutee: {e}")
            raise

    # ==================== Students ====================

    def list_students(self, tutee_id: str) -> List[TuteeStudent]:
        try:
            result = self.supabase.table('tutee_students') \
                .select('*') \
                .eq('tutee_id', tutee_id) \
                .order('display_order', desc=False) \
                .execute()
            return [row_to_student(row) for row in result.data or []]
        except Exception as e:
            logger.error(f"❌ [TuteeManager] Error fetching students: {e}")
            raise

    def create_student(self, tutee_id: str, student_name: str) -> TuteeStudent:
        name = (student_name or "").strip().lower()
        if not name:
            raise ValueError("Student name is required")

        existing = self.list_students(tutee_id)
        next_order = max(s.display_order for s in existing) + 1 if existing else 0

        try:
            result = self.supabase.table('tutee_students').insert({
                "tutee_id": tutee_id,
                "student_name": name,
                "display_order": next_order,
            }).execute()
            return row_to_student(result.data[0])
        except Exception as e:
            logger.error(f"❌ [TuteeManager] Error adding student: {e}")
            raise

    def get_student(self, tutee_id: str, student_id: str) -> Optional[TuteeStudent]:
        """Fetch a student only if it belongs to `tutee_id`."""
        try:
            result = self.supabase.table('tutee_students') \
                .select('*') \
                .eq('id', student_id) \
                .eq('tutee_id', tutee_id) \
                .execute()
            return row_to_student(result.data[0]) if result.data else None
        except Exception as e:
            logger.error(f"❌ [TuteeManager] Error fetching student: {e}")
            raise

    def rename_student(self, tutee_id: str, student_id: str, student_name: str) -> Optional[TuteeStudent]:
        name = (student_name or "").strip().lower()
        if not name:
            raise ValueError("Student name is required")
        try:
            result = self.supabase.table('tutee_students') \
                .update({"student_name": name}) \
                .eq('id', student_id) \
                .eq('tutee_id', tutee_id) \
                .execute()
            return row_to_student(result.data[0]) if result.data else None
        except Exception as e:
            logger.error(f"❌ [TuteeManager] Error renaming student: {e}")
            raise

    def delete_student(self, tutee_id: str, student_id: str) -> bool:
        """Returns False when no student with that id belongs to the tutee."""
        try:
            result = self.supabase.table('tutee_students') \
                .delete() \
                .eq('id', student_id) \
                .eq('tutee_id', tutee_id) \
                .execute()
            return bool(result.data)
        except Exception as e:
            logger.error(f"❌ [TuteeManager] Error deleting student: {e}")
            raise

    def move_student(self, tutee_id: str, student_id: str, direction: str) -> List[TuteeStudent]:
        """
        Swap a student's display order with the neighbour above or below.

        Args:
            direction: "up" or "down"

        Returns:
            The reordered student list
        """
        if direction not in ("up", "down"):
            raise ValueError("Direction must be 'up' or 'down'")

        students = self.list_students(tutee_id)
        index = next((i for i, s in enumerate(students) if s.id == student_id), None)
        if index is None:
            raise ValueError("Student not found for this tutee")

        neighbour = index - 1 if direction == "up" else index + 1
        if neighbour < 0 or neighbour >= len(students):
            return students

        current, other = students[index], students[neighbour]
        try:
            self.supabase.table('tutee_students') \
                .update({"display_order": other.display_order}) \
                .eq('id', current.id) \
                .execute()
            self.supabase.table('tutee_students') \
                .update({"display_order": current.display_order}) \
                .eq('id', other.id) \
                .execute()
        except Exception as e:
            logger.error(f"❌ [TuteeManager] Error reordering students: {e}")
            raise

        return self.list_students(tutee_id)

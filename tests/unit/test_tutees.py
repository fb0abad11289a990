"""
Unit Tests for the Tutee Manager

Tests tutee CRUD, PIN rules and student ordering.
"""

import pytest
import sys
import os

# Add project root to path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
sys.path.insert(0, os.path.join(project_root, "explorer_portal", "src"))
sys.path.insert(0, os.path.join(project_root, "tests"))

from explorer_portal.tutees import TuteeManager, validate_pin
from fakes import FakeSupabase


class TestValidatePin:
    """Test suite for validate_pin."""

    @pytest.mark.parametrize("pin", ["0000", "1234", "9999"])
    def test_valid(self, pin):
        assert validate_pin(pin) == pin

    @pytest.mark.parametrize("pin", ["123", "12345", "12a4", "", " 123", None, "1234\n", "١٢٣٤"])
    def test_invalid(self, pin):
        with pytest.raises(ValueError):
            validate_pin(pin)


class TestTuteeManager:
    """Test suite for TuteeManager."""

    @pytest.fixture
    def db(self):
        return FakeSupabase()

    @pytest.fixture
    def manager(self, db):
        return TuteeManager(db)

    @pytest.fixture
    def tutee(self, manager):
        return manager.create_tutee("sec3", "Sec 3 Science", "1234", color_primary="blue")

    def test_create_then_fetch_round_trip(self, manager, tutee):
        """Test PIN and color scheme survive a create/fetch round trip."""
        fetched = manager.get_tutee("sec3")

        assert fetched.pin == "1234"
        assert fetched.color_scheme == tutee.color_scheme
        assert fetched.color_scheme.primary == "blue"
        assert fetched.color_scheme.secondary == "purple"

    def test_defaults_applied(self, manager):
        """Test icon and colors fall back to defaults."""
        created = manager.create_tutee("p5", "P5 Math", "0001")
        assert created.icon == "BookOpen"
        assert created.color_scheme.gradient == "from-pink-500 to-purple-600"

    def test_public_dict_hides_pin(self, tutee):
        """Test the public view never carries the PIN."""
        data = tutee.public_dict()
        assert "pin" not in data
        assert data["color_scheme"]["primary"] == "blue"

    def test_create_rejects_bad_pin(self, manager):
        """Test non-4-digit PINs are refused."""
        with pytest.raises(ValueError):
            manager.create_tutee("x", "X", "12")

    def test_get_missing(self, manager):
        assert manager.get_tutee("nope") is None

    def test_list_ordered_by_name(self, manager):
        """Test tutees come back alphabetically."""
        manager.create_tutee("b", "Bravo", "1111")
        manager.create_tutee("a", "Alpha", "2222")
        assert [t.name for t in manager.list_tutees()] == ["Alpha", "Bravo"]

    def test_partial_color_update(self, manager, tutee):
        """Test only provided color fields change."""
        updated = manager.update_colors("sec3", secondary="green")
        assert updated.color_scheme.primary == "blue"
        assert updated.color_scheme.secondary == "green"

    def test_update_info_and_icon(self, manager, tutee):
        """Test name/description and icon updates."""
        manager.update_info("sec3", description="Thursdays")
        updated = manager.update_icon("sec3", "Atom")
        assert updated.description == "Thursdays"
        assert updated.icon == "Atom"
        assert updated.name == "Sec 3 Science"

    def test_update_pin(self, manager, tutee):
        """Test PIN change with the correct current PIN."""
        updated = manager.update_pin("sec3", "1234", "4321")
        assert updated.pin == "4321"

    def test_update_pin_wrong_current(self, manager, tutee):
        """Test a wrong current PIN is rejected."""
        with pytest.raises(ValueError, match="Current PIN is incorrect"):
            manager.update_pin("sec3", "0000", "4321")

    def test_update_pin_invalid_new(self, manager, tutee):
        """Test the new PIN must be 4 digits."""
        with pytest.raises(ValueError):
            manager.update_pin("sec3", "1234", "12")
        assert manager.get_tutee("sec3").pin == "1234"

    def test_update_pin_missing_tutee(self, manager):
        assert manager.update_pin("ghost", "1234", "4321") is None

    def test_delete(self, manager, tutee):
        manager.delete_tutee("sec3")
        assert manager.get_tutee("sec3") is None

    def test_store_errors_reraised(self, db, manager):
        """Test Supabase errors propagate after logging."""
        db.failures["tutees"] = RuntimeError("boom")
        with pytest.raises(RuntimeError):
            manager.list_tutees()


class TestStudents:
    """Test suite for tutee students."""

    @pytest.fixture
    def manager(self):
        manager = TuteeManager(FakeSupabase())
        manager.create_tutee("sec3", "Sec 3", "1234")
        return manager

    def test_names_normalised_and_ordered(self, manager):
        """Test names are trimmed, lower-cased and appended in order."""
        first = manager.create_student("sec3", "  Alice ")
        second = manager.create_student("sec3", "BOB")

        assert first.student_name == "alice"
        assert first.display_order == 0
        assert second.display_order == 1
        assert [s.student_name for s in manager.list_students("sec3")] == ["alice", "bob"]

    def test_empty_name_rejected(self, manager):
        with pytest.raises(ValueError):
            manager.create_student("sec3", "   ")

    def test_rename(self, manager):
        student = manager.create_student("sec3", "alice")
        renamed = manager.rename_student("sec3", student.id, "Alicia")
        assert renamed.student_name == "alicia"

    def test_move_swaps_with_neighbour(self, manager):
        """Test moving down swaps display order with the next student."""
        a = manager.create_student("sec3", "a")
        manager.create_student("sec3", "b")
        manager.create_student("sec3", "c")

        reordered = manager.move_student("sec3", a.id, "down")

        assert [s.student_name for s in reordered] == ["b", "a", "c"]

    def test_move_at_edge_is_noop(self, manager):
        """Test moving the first student up changes nothing."""
        a = manager.create_student("sec3", "a")
        manager.create_student("sec3", "b")

        reordered = manager.move_student("sec3", a.id, "up")

        assert [s.student_name for s in reordered] == ["a", "b"]

    def test_move_invalid_direction(self, manager):
        a = manager.create_student("sec3", "a")
        with pytest.raises(ValueError):
            manager.move_student("sec3", a.id, "sideways")

    def test_delete_student(self, manager):
        a = manager.create_student("sec3", "a")
        assert manager.delete_student("sec3", a.id) is True
        assert manager.list_students("sec3") == []

    def test_other_tutees_student_is_untouched(self, manager):
        """Test rename/delete are scoped to the owning tutee."""
        a = manager.create_student("sec3", "alice")

        assert manager.get_student("p5", a.id) is None
        assert manager.rename_student("p5", a.id, "mallory") is None
        assert manager.delete_student("p5", a.id) is False

        assert [s.student_name for s in manager.list_students("sec3")] == ["alice"]

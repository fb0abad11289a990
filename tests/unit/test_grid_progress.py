"""
Unit Tests for Grid Progress

Tests the per-user Firestore progress document and exploration stats.
"""

import pytest
import sys
import os

# Add project root to path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
sys.path.insert(0, os.path.join(project_root, "explorer_portal", "src"))
sys.path.insert(0, os.path.join(project_root, "tests"))

from google.cloud.firestore_v1.field_path import FieldPath

from explorer_portal.grid_data import GridCell, GridData
from explorer_portal.grid_progress import (
    PROGRESS_COLLECTION,
    _field,
    CellProgress,
    CellStatus,
    GridProgressManager,
    UserGridProgress,
    exploration_stats,
)
from fakes import FakeFirestore, split_field_path

USER = "user-abc"


class TestGridProgressManager:
    """Test suite for GridProgressManager."""

    @pytest.fixture
    def db(self):
        return FakeFirestore()

    @pytest.fixture
    def manager(self, db):
        return GridProgressManager(db)

    def test_first_access_creates_document(self, manager, db):
        """Test an empty document is created lazily."""
        progress = manager.get_user_progress(USER)

        assert progress.user_id == USER
        assert progress.explored_cells == {}
        raw = db.raw(PROGRESS_COLLECTION, USER)
        assert raw["userId"] == USER
        assert raw["exploredCells"] == {}

    def test_mark_explored(self, manager):
        """Test marking a cell explored stores status, date and notes."""
        manager.get_user_progress(USER)

        assert manager.mark_explored(USER, 23, notes="Hawker centre") is True

        entry = manager.get_user_progress(USER).explored_cells[23]
        assert entry.status == CellStatus.EXPLORED
        assert entry.notes == "Hawker centre"
        assert entry.explored_date

    def test_mark_inaccessible_defaults_notes(self, manager):
        """Test notes default to an empty string."""
        manager.get_user_progress(USER)
        manager.mark_inaccessible(USER, 4)

        entry = manager.get_user_progress(USER).explored_cells[4]
        assert entry.status == CellStatus.INACCESSIBLE
        assert entry.notes == ""

    def test_explored_then_unexplored_leaves_no_entry(self, manager, db):
        """Test unexplored deletes the cell entry rather than nulling it."""
        manager.get_user_progress(USER)
        manager.mark_explored(USER, 23)

        assert manager.mark_unexplored(USER, 23) is True

        raw = db.raw(PROGRESS_COLLECTION, USER)
        assert "23" not in raw["exploredCells"]
        assert manager.get_user_progress(USER).status_of(23) is None

    def test_marking_one_cell_keeps_others(self, manager):
        """Test field-path writes don't clobber sibling cells."""
        manager.get_user_progress(USER)
        manager.mark_explored(USER, 1)
        manager.mark_inaccessible(USER, 2)
        manager.mark_unexplored(USER, 1)

        progress = manager.get_user_progress(USER)
        assert list(progress.explored_cells) == [2]

    def test_update_notes_and_date(self, manager):
        """Test nested writes update only the targeted field."""
        manager.get_user_progress(USER)
        manager.mark_explored(USER, 9, notes="old")

        manager.update_notes(USER, 9, "new notes")
        manager.update_explored_date(USER, 9, "2024-01-02T00:00:00+00:00")

        entry = manager.get_user_progress(USER).explored_cells[9]
        assert entry.notes == "new notes"
        assert entry.explored_date == "2024-01-02T00:00:00+00:00"
        assert entry.status == CellStatus.EXPLORED

    def test_custom_names(self, manager):
        """Test setting and removing a custom name."""
        manager.get_user_progress(USER)

        manager.set_custom_name(USER, 7, "Shopping")
        assert manager.get_user_progress(USER).custom_names == {7: "Shopping"}

        manager.remove_custom_name(USER, 7)
        assert manager.get_user_progress(USER).custom_names == {}

    def test_first_write_without_prior_read(self, manager, db):
        """Test a fresh user's first write creates the document."""
        assert db.raw(PROGRESS_COLLECTION, USER) is None

        assert manager.mark_explored(USER, 3, notes="Marina Bay") is True

        raw = db.raw(PROGRESS_COLLECTION, USER)
        assert raw["userId"] == USER
        assert raw["exploredCells"]["3"]["status"] == "explored"
        assert raw["exploredCells"]["3"]["notes"] == "Marina Bay"

    def test_first_custom_name_without_prior_read(self, manager):
        assert manager.set_custom_name(USER, 12, "Home") is True
        assert manager.get_user_progress(USER).custom_names == {12: "Home"}

    def test_mutation_bumps_last_updated(self, manager):
        """Test every write stamps lastUpdated."""
        first = manager.get_user_progress(USER).last_updated
        manager.update_notes(USER, 1, "x")
        assert manager.get_user_progress(USER).last_updated >= first

    def test_store_failure_returns_none_and_false(self):
        """Test store errors are swallowed into None/False."""
        manager = GridProgressManager(FakeFirestore(failure=RuntimeError("offline")))

        assert manager.get_user_progress(USER) is None
        assert manager.mark_explored(USER, 1) is False
        assert manager.mark_unexplored(USER, 1) is False

    def test_subscribe_receives_updates(self, manager):
        """Test the snapshot callback sees the latest document."""
        manager.get_user_progress(USER)
        seen = []

        unsubscribe = manager.subscribe(USER, seen.append)
        manager.mark_explored(USER, 5)
        unsubscribe()
        manager.mark_explored(USER, 6)

        assert seen[0].explored_cells == {}
        assert 5 in seen[-1].explored_cells
        assert 6 not in seen[-1].explored_cells

    def test_subscribe_missing_document(self, manager):
        """Test a missing document is reported as None."""
        seen = []
        manager.subscribe("nobody", seen.append)
        assert seen == [None]


class TestProgressDocument:
    """Test suite for the document (de)serialisation."""

    def test_null_entries_are_skipped(self):
        """Test cleared cells stored as null read as unexplored."""
        progress = UserGridProgress.from_dict({
            "userId": USER,
            "exploredCells": {
                "1": {"status": "explored", "exploredDate": "2024-01-01", "notes": None},
                "2": None,
            },
            "customNames": {"3": "", "4": "Park"},
        })

        assert list(progress.explored_cells) == [1]
        assert progress.explored_cells[1].notes == ""
        assert progress.custom_names == {4: "Park"}

    def test_to_dict_uses_string_keys(self):
        """Test cell ids become string keys in the document."""
        progress = UserGridProgress(
            user_id=USER,
            explored_cells={3: CellProgress(CellStatus.INACCESSIBLE, "2024-01-01")},
        )
        data = progress.to_dict()
        assert data["exploredCells"] == {
            "3": {"status": "inaccessible", "exploredDate": "2024-01-01", "notes": ""}
        }

    def test_numeric_cell_ids_are_backtick_quoted(self):
        """Test numeric cell ids are quoted in Firestore field paths."""
        assert _field("exploredCells", 23) == "exploredCells.`23`"
        assert _field("exploredCells", 23, "notes") == "exploredCells.`23`.notes"
        assert _field("lastUpdated") == "lastUpdated"

    def test_field_path_round_trip(self):
        """Test Firestore parses the rendered path back into its parts."""
        rendered = _field("customNames", 7)
        assert FieldPath(*split_field_path(rendered)) == FieldPath("customNames", "7")


class TestExplorationStats:
    """Test suite for exploration_stats."""

    @pytest.fixture
    def grid(self):
        cells = [
            GridCell(id=1, bounds=[], center=[], region_name="West"),
            GridCell(id=2, bounds=[], center=[], region_name="West"),
            GridCell(id=3, bounds=[], center=[], region_name="East"),
        ]
        return GridData(grid_size=0.1, cells=cells)

    def test_counts_and_percentage(self, grid):
        """Test totals, completed and rounded percentage."""
        progress = UserGridProgress(
            user_id=USER,
            explored_cells={
                1: CellProgress(CellStatus.EXPLORED, "d"),
                3: CellProgress(CellStatus.INACCESSIBLE, "d"),
            },
        )

        stats = exploration_stats(grid, progress)

        assert stats.total_cells == 3
        assert stats.explored_cells == 1
        assert stats.inaccessible_cells == 1
        assert stats.completed_cells == 2
        assert stats.unexplored_cells == 1
        assert stats.progress_percentage == 67
        assert stats.region_stats["West"].total == 2
        assert stats.region_stats["West"].explored == 1
        assert stats.region_stats["East"].inaccessible == 1

    def test_no_progress(self, grid):
        """Test a user without a document has zero progress."""
        stats = exploration_stats(grid, None)
        assert stats.completed_cells == 0
        assert stats.progress_percentage == 0

    def test_empty_grid(self):
        """Test an empty grid doesn't divide by zero."""
        stats = exploration_stats(GridData(grid_size=0.1, cells=[]), None)
        assert stats.progress_percentage == 0

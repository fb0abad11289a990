"""
Unit Tests for the Grid Dataset

Tests loading, enhancement defaults and id lookups.
"""

import json
import pytest
import sys
import os

# Add project root to path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
sys.path.insert(0, os.path.join(project_root, "explorer_portal", "src"))

from explorer_portal.grid_data import GridCell, GridData, load_grid_data


class TestGridData:
    """Test suite for the bundled grid and GridData."""

    @pytest.fixture
    def grid(self):
        """Load the bundled Singapore grid."""
        return load_grid_data()

    def test_bundled_grid_loads(self, grid):
        """Test the bundled export parses with camelCase keys."""
        assert grid.grid_size == 0.05
        assert len(grid.cells) == 16
        assert grid.metadata["rows"] == 4

    def test_missing_region_defaults_to_singapore(self, grid):
        """Test cells without a region get the default one."""
        cell = grid.get_cell(11)
        assert cell.region_name == "Singapore"
        assert grid.get_cell(3).region_name == "Central"

    def test_missing_display_name_defaults_to_grid_id(self, grid):
        """Test display names fall back to 'Grid {id}'."""
        assert grid.get_cell(7).display_name == "Grid 7"

    def test_landmarks_parsed(self, grid):
        """Test landmarks become Landmark objects."""
        names = [l.name for l in grid.get_cell(3).landmarks]
        assert "Marina Bay" in names
        assert grid.get_cell(4).landmarks == []

    def test_get_cell_unknown_id(self, grid):
        """Test unknown ids return None."""
        assert grid.get_cell(999) is None

    def test_duplicate_ids_rejected(self):
        """Test a dataset with repeated ids is refused."""
        cell = GridCell(id=1, bounds=[], center=[])
        with pytest.raises(ValueError, match="Duplicate"):
            GridData(grid_size=0.1, cells=[cell, cell])

    def test_load_from_custom_path(self, tmp_path):
        """Test an explicit path overrides the bundled file."""
        path = tmp_path / "grid.json"
        path.write_text(json.dumps({
            "gridSize": 0.2,
            "cells": [{"id": "5", "bounds": [[1, 2], [3, 4]], "center": [2, 3], "displayName": "Home"}],
        }))

        grid = load_grid_data(str(path))

        cell = grid.get_cell(5)
        assert cell.display_name == "Home"
        assert cell.bounds == [[1.0, 2.0], [3.0, 4.0]]
        assert grid.metadata == {}

    def test_to_dict_uses_export_keys(self, grid):
        """Test serialisation keeps the export's camelCase keys."""
        data = grid.to_dict()
        assert data["gridSize"] == 0.05
        assert data["cells"][0]["regionName"] == "West"
        assert data["cells"][0]["displayName"] == "Grid 1"

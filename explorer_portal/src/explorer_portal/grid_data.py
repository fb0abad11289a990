"""
Grid Dataset

Loads the static exploration grid exported from the mapping tool.
Cells are immutable at runtime; the dataset is read once and cached.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_GRID_PATH = Path(__file__).resolve().parent / "data" / "singapore_grid.json"
DEFAULT_REGION = "Singapore"


@dataclass(frozen=True)
class Landmark:
    """Named point of interest inside a grid cell."""
    name: str
    description: str = ""


@dataclass(frozen=True)
class GridCell:
    """One polygon of the exploration grid."""
    id: int
    bounds: List[List[float]]
    center: List[float]
    region_name: str = DEFAULT_REGION
    display_name: str = ""
    landmarks: List[Landmark] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GridCell":
        cell_id = int(data["id"])
        landmarks = [
            Landmark(name=item.get("name", ""), description=item.get("description", ""))
            for item in data.get("landmarks") or []
        ]
        return cls(
            id=cell_id,
            bounds=[list(map(float, point)) for point in data.get("bounds", [])],
            center=list(map(float, data.get("center", []))),
            region_name=data.get("regionName") or data.get("region_name") or DEFAULT_REGION,
            display_name=data.get("displayName") or data.get("display_name") or f"Grid {cell_id}",
            landmarks=landmarks,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "bounds": self.bounds,
            "center": self.center,
            "regionName": self.region_name,
            "displayName": self.display_name,
            "landmarks": [{"name": l.name, "description": l.description} for l in self.landmarks],
        }


@dataclass
class GridData:
    """The full grid plus export metadata."""
    grid_size: float
    cells: List[GridCell]
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        seen = set()
        for cell in self.cells:
            if cell.id in seen:
                raise ValueError(f"Duplicate grid cell id: {cell.id}")
            seen.add(cell.id)
        self._by_id = {cell.id: cell for cell in self.cells}

    def get_cell(self, cell_id: int) -> Optional[GridCell]:
        return self._by_id.get(cell_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "gridSize": self.grid_size,
            "metadata": self.metadata,
            "cells": [cell.to_dict() for cell in self.cells],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GridData":
        return cls(
            grid_size=float(data.get("gridSize", data.get("grid_size", 0.0))),
            cells=[GridCell.from_dict(item) for item in data.get("cells", [])],
            metadata=data.get("metadata") or {},
        )


def load_grid_data(path: Optional[str] = None) -> GridData:
    """
    Read the grid export from disk.

    Args:
        path: JSON file to load (defaults to the bundled Singapore grid)

    Returns:
        GridData with display names and regions filled in
    """
    grid_path = Path(path) if path else DEFAULT_GRID_PATH
    with open(grid_path, "r", encoding="utf-8") as fh:
        raw = json.load(fh)

    grid = GridData.from_dict(raw)
    logger.info(f"🗺️ [GridData] Loaded {len(grid.cells)} cells from {grid_path.name}")
    return grid


_grid_data: Optional[GridData] = None


def get_grid_data() -> GridData:
    """Get or load the cached grid dataset (GRID_DATA_PATH overrides the bundled file)."""
    global _grid_data

    if _grid_data is None:
        _grid_data = load_grid_data(os.getenv("GRID_DATA_PATH"))

    return _grid_data

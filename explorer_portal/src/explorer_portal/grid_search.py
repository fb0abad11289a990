"""
Grid Search

Parses the explorer's search box into predicates over grid cells.

Supported terms (comma-separated terms are OR'ed):
    =explored / =inaccessible / =unexplored   status equals
    !=explored ...                            status differs
    =notes / !=notes                          has / lacks notes
    23-42                                     id in inclusive range
    >10  >=10  <10  <=10                      id comparisons
    42  or  #42                               exact id
    anything else                             text match
"""

import re
from dataclasses import dataclass
from typing import List, Optional

from explorer_portal.grid_data import GridCell
from explorer_portal.grid_progress import UserGridProgress

STATUS_VALUES = ("explored", "inaccessible", "unexplored")

_RANGE_RE = re.compile(r"^(\d+)\s*-\s*(\d+)$")
_COMPARE_RE = re.compile(r"^(>=|<=|>|<)\s*(\d+)$")
_EXACT_RE = re.compile(r"^#?(\d+)$")
_STATUS_RE = re.compile(r"^(!=|=)\s*([a-z]+)$")


@dataclass
class SearchTerm:
    """One parsed alternative of a search query."""
    kind: str  # "status", "notes", "range", "compare", "exact", "text"
    value: str = ""
    negate: bool = False
    low: int = 0
    high: int = 0
    operator: str = ""

    def matches(self, cell: GridCell, progress: Optional[UserGridProgress]) -> bool:
        if self.kind == "status":
            status = progress.status_of(cell.id) if progress else None
            current = status.value if status else "unexplored"
            return (current == self.value) != self.negate

        if self.kind == "notes":
            has_notes = bool(_notes_for(cell, progress))
            return has_notes != self.negate

        if self.kind == "range":
            return self.low <= cell.id <= self.high

        if self.kind == "compare":
            return {
                ">": cell.id > self.low,
                ">=": cell.id >= self.low,
                "<": cell.id < self.low,
                "<=": cell.id <= self.low,
            }[self.operator]

        if self.kind == "exact":
            return cell.id == self.low

        return self.value in _searchable_text(cell, progress)


def _notes_for(cell: GridCell, progress: Optional[UserGridProgress]) -> str:
    if not progress:
        return ""
    entry = progress.explored_cells.get(cell.id)
    return entry.notes.strip() if entry else ""


def _searchable_text(cell: GridCell, progress: Optional[UserGridProgress]) -> str:
    parts = [cell.display_name, cell.region_name]
    if progress:
        parts.append(progress.custom_names.get(cell.id, ""))
        parts.append(_notes_for(cell, progress))
    for landmark in cell.landmarks:
        parts.append(landmark.name)
        parts.append(landmark.description)
    return " ".join(p for p in parts if p).lower()


def parse_term(raw: str) -> Optional[SearchTerm]:
    """Parse a single term; empty input yields None."""
    term = raw.strip().lower()
    if not term:
        return None

    status_match = _STATUS_RE.match(term)
    if status_match:
        op, word = status_match.groups()
        if word in STATUS_VALUES:
            return SearchTerm(kind="status", value=word, negate=(op == "!="))
        if word == "notes":
            return SearchTerm(kind="notes", negate=(op == "!="))
        # Unknown status: fall through to text search

    range_match = _RANGE_RE.match(term)
    if range_match:
        a, b = int(range_match.group(1)), int(range_match.group(2))
        return SearchTerm(kind="range", low=min(a, b), high=max(a, b))

    compare_match = _COMPARE_RE.match(term)
    if compare_match:
        return SearchTerm(kind="compare", operator=compare_match.group(1), low=int(compare_match.group(2)))

    exact_match = _EXACT_RE.match(term)
    if exact_match:
        return SearchTerm(kind="exact", low=int(exact_match.group(1)))

    return SearchTerm(kind="text", value=term)


@dataclass
class GridQuery:
    terms: List[SearchTerm]

    @classmethod
    def parse(cls, query: Optional[str]) -> "GridQuery":
        terms = [parse_term(part) for part in (query or "").split(",")]
        return cls(terms=[t for t in terms if t is not None])

    def matches(self, cell: GridCell, progress: Optional[UserGridProgress] = None) -> bool:
        if not self.terms:
            return True
        return any(term.matches(cell, progress) for term in self.terms)


def search_cells(
    cells: List[GridCell],
    query: Optional[str],
    progress: Optional[UserGridProgress] = None
) -> List[GridCell]:
    """
    Filter cells by a search query.

    Args:
        cells: Cells in dataset order
        query: Raw text from the search box
        progress: The user's progress (needed for status and notes terms)

    Returns:
        Matching cells, dataset order preserved
    """
    parsed = GridQuery.parse(query)
    return [cell for cell in cells if parsed.matches(cell, progress)]

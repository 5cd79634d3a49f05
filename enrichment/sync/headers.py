"""Header-row detection for freshly connected tabs."""

from __future__ import annotations

import re

_NUMBER = re.compile(r"^\d+\.?\d*$")
_DATE = re.compile(r"^\d{1,2}[/\-]\d{1,2}[/\-]\d{2,4}$")

SCAN_ROWS = 10


def guess_cell_type(value: str) -> str:
    trimmed = (value or "").strip()
    if not trimmed:
        return "empty"
    if _NUMBER.match(trimmed):
        return "number"
    if _DATE.match(trimmed):
        return "date"
    if "@" in trimmed:
        return "email"
    return "text"


def _is_header_like(cell: str) -> bool:
    trimmed = cell.strip()
    return bool(trimmed) and len(trimmed) <= 50 and not _NUMBER.match(trimmed)


def _is_data_like(cell: str) -> bool:
    return "@" in cell or "http" in cell or len(cell) > 100


def score_row(row: list[str], next_row: list[str] | None) -> int:
    score = 2 * sum(1 for cell in row if cell.strip())
    score += 3 * sum(1 for cell in row if _is_header_like(cell))
    score -= 5 * sum(1 for cell in row if _is_data_like(cell))

    if next_row is not None:
        types = [guess_cell_type(c) for c in row]
        next_types = [guess_cell_type(c) for c in next_row]
        diffs = sum(
            1 for i, t in enumerate(types)
            if i >= len(next_types) or next_types[i] != t
        )
        if diffs > len(types) / 2:
            score += 10
    return score


def detect_header_row(rows: list[list[str]]) -> int:
    """Best guess at the 0-based header row among the first ``SCAN_ROWS`` rows.

    Rows with many short text cells that are followed by a row of different
    cell types score highest; emails, URLs and long text count against a row.
    Ties keep the earliest row.
    """
    best_index = 0
    best_score = 0
    scanned = rows[:SCAN_ROWS]
    for i, row in enumerate(scanned):
        next_row = rows[i + 1] if i + 1 < len(rows) else None
        score = score_row(row, next_row)
        if score > best_score:
            best_score = score
            best_index = i
    return best_index

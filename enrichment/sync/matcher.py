"""Key column resolution and row matching."""

from __future__ import annotations

from typing import Any

from .errors import KeyColumnNotFound, MissingKeyValue, NoMatchingRow
from .rows import FetchedTab, SourceRow


def normalize_key(value: Any) -> str:
    """Keys compare trimmed and case-insensitive."""
    if value is None:
        return ""
    return str(value).strip().lower()


def resolve_key_column(tab: FetchedTab, source_column: str) -> int:
    """Return the 0-based index of the key column (exact header match)."""
    idx = tab.index_of(source_column)
    if idx is None:
        raise KeyColumnNotFound(source_column)
    return idx


def require_key_value(value: Any, key_field: str) -> str:
    """Return the usable key value of an instance or raise ``MissingKeyValue``."""
    if normalize_key(value) == "":
        raise MissingKeyValue(key_field)
    return str(value)


def find_matching_row(tab: FetchedTab, key_column: str, key_value: Any) -> SourceRow:
    """First row (top to bottom) whose key cell equals ``key_value``."""
    resolve_key_column(tab, key_column)
    wanted = normalize_key(key_value)
    if not wanted:
        raise MissingKeyValue(key_column)

    for row in tab.rows:
        if normalize_key(row[key_column]) == wanted:
            return row
    raise NoMatchingRow(str(key_value).strip())

"""Typed rows for fetched tab data.

Header positions are resolved once when a tab is ingested; after that every
row is addressable by header name without rescanning the header list.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ..connectors.base import TabData


@dataclass(frozen=True)
class SourceRow:
    number: int  # 1-based row number in the source (header row counted)
    values: tuple[str, ...]
    columns: dict[str, int] = field(repr=False, compare=False)

    def __getitem__(self, header: str) -> str:
        idx = self.columns[header]
        return self.values[idx] if idx < len(self.values) else ""

    def get(self, header: str, default: str = "") -> str:
        if header not in self.columns:
            return default
        return self[header]

    def capture(self) -> dict[str, str]:
        """Raw header -> cell snapshot for every named column."""
        return {header: self[header] for header in self.columns}


@dataclass(frozen=True)
class FetchedTab:
    headers: tuple[str, ...]
    columns: dict[str, int]
    rows: tuple[SourceRow, ...]

    def has_column(self, header: str) -> bool:
        return header in self.columns

    def index_of(self, header: str) -> int | None:
        return self.columns.get(header)


def ingest(data: TabData, header_row: int = 0) -> FetchedTab:
    """Build typed rows from connector output.

    Blank headers are not addressable; for duplicate headers the first
    occurrence wins, matching exact-match header lookup.
    """
    columns: dict[str, int] = {}
    for idx, header in enumerate(data.headers):
        if header and header not in columns:
            columns[header] = idx

    first_data_row = header_row + 2
    rows = tuple(
        SourceRow(
            number=first_data_row + i,
            values=tuple("" if v is None else str(v) for v in row),
            columns=columns,
        )
        for i, row in enumerate(data.rows)
    )
    return FetchedTab(headers=tuple(data.headers), columns=columns, rows=rows)

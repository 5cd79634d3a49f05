"""Authority-ranked field merging.

Policy: a value may replace the one already held for a field in the same run
only when its authority ranks at least as high. Equal ranks resolve
last-write-wins in declaration order, so a ``source_of_truth`` column is never
overwritten by a ``reference`` one regardless of which tab was declared first.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

AUTHORITY_RANK: dict[str, int] = {
    "derived": 0,
    "reference": 1,
    "source_of_truth": 2,
}


def authority_rank(authority: str | None) -> int:
    return AUTHORITY_RANK.get(authority or "", 0)


def outranks_or_equals(incoming: str | None, current: str | None) -> bool:
    """True when a write with ``incoming`` authority may replace ``current``."""
    return authority_rank(incoming) >= authority_rank(current)


@dataclass(frozen=True)
class FieldWrite:
    value: Any
    authority: str
    origin: str  # "source → tab → column"


@dataclass(frozen=True)
class RejectedWrite:
    field: str
    write: FieldWrite
    held_by: FieldWrite

    @property
    def message(self) -> str:
        return (
            f"'{self.field}' from {self.write.origin} ({self.write.authority}) ignored; "
            f"held by {self.held_by.origin} ({self.held_by.authority})"
        )


class FieldMerger:
    """Accumulates field values from one or more sources under the policy."""

    def __init__(self) -> None:
        self._writes: dict[str, FieldWrite] = {}
        self.rejected: list[RejectedWrite] = []

    def offer(self, field: str, value: Any, authority: str, origin: str) -> bool:
        write = FieldWrite(value=value, authority=authority, origin=origin)
        current = self._writes.get(field)
        if current is not None and not outranks_or_equals(authority, current.authority):
            self.rejected.append(RejectedWrite(field=field, write=write, held_by=current))
            return False
        self._writes[field] = write
        return True

    def writes(self) -> dict[str, FieldWrite]:
        return dict(self._writes)

    @property
    def values(self) -> dict[str, Any]:
        return {name: w.value for name, w in self._writes.items()}

    def __contains__(self, field: str) -> bool:
        return field in self._writes

    def __len__(self) -> int:
        return len(self._writes)

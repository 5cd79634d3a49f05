"""Raw row capture into ``entity.source_data`` for loss-minimizing sync."""

from __future__ import annotations

import copy
from typing import Any


def merge_source_data(
    existing: dict[str, Any] | None,
    connector_key: str,
    tab_name: str,
    captured: dict[str, str],
) -> dict[str, Any]:
    """Return a new tree with ``[connector_key][tab_name]`` replaced.

    Every other connector and tab is carried over untouched. A fresh object is
    returned so JSON column change tracking sees the assignment.
    """
    merged = copy.deepcopy(existing) if isinstance(existing, dict) else {}

    connector_tabs = merged.get(connector_key)
    if not isinstance(connector_tabs, dict):
        connector_tabs = {}
        merged[connector_key] = connector_tabs

    connector_tabs[tab_name] = dict(captured)
    return merged


def iter_captured_values(source_data: dict[str, Any] | None):
    """Yield ``(connector_key, tab_name, header, value)`` for every captured cell."""
    if not isinstance(source_data, dict):
        return
    for connector_key, tabs in source_data.items():
        if not isinstance(tabs, dict):
            continue
        for tab_name, cells in tabs.items():
            if not isinstance(cells, dict):
                continue
            for header, value in cells.items():
                yield connector_key, tab_name, header, value

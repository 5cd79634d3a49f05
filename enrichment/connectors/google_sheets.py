"""Google Sheets connector (Sheets API v4 values endpoint)."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

from .base import ConnectorMetadata, HTTPConnector, TabData, to_cells


class GoogleSheetsConnector(HTTPConnector):
    metadata = ConnectorMetadata(
        id="google_sheet",
        name="Google Sheets",
        capture_key="gsheets",
    )

    def validate_config(self, config: dict[str, Any]) -> bool | str:
        spreadsheet_id = config.get("spreadsheet_id")
        if not spreadsheet_id:
            return "Spreadsheet ID is required"
        if not isinstance(spreadsheet_id, str):
            return "Spreadsheet ID must be a string"
        if len(spreadsheet_id) < 10:
            return "Invalid spreadsheet ID format"
        return True

    async def _values(self, config: dict[str, Any], tab_name: str) -> list[list[Any]]:
        range_ = quote(f"'{tab_name}'", safe="")
        resp = await self._request(
            "GET",
            f"/spreadsheets/{config['spreadsheet_id']}/values/{range_}",
            params={"valueRenderOption": "FORMATTED_VALUE"},
        )
        values = resp.get("values", [])
        return values if isinstance(values, list) else []

    async def fetch(self, config: dict[str, Any], tab_name: str, header_row: int = 0) -> TabData:
        values = await self._values(config, tab_name)
        if len(values) <= header_row:
            return TabData()

        headers = to_cells(values[header_row], 0)
        width = len(headers)
        rows = [to_cells(row, width) for row in values[header_row + 1:]]
        return TabData(headers=headers, rows=rows)

    async def fetch_raw(self, config: dict[str, Any], tab_name: str, max_rows: int = 20) -> list[list[str]]:
        values = await self._values(config, tab_name)
        return [to_cells(row, 0) for row in values[:max_rows]]

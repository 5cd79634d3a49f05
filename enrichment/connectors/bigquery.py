"""BigQuery connector - each view/table in a dataset is a tab."""

from __future__ import annotations

import re
from typing import Any

from ..sync.errors import ConfigurationError, ConnectorError
from .base import ConnectorMetadata, HTTPConnector, TabData, to_cells

_IDENTIFIER = re.compile(r"^[A-Za-z0-9_\-]+$")


class BigQueryConnector(HTTPConnector):
    """Runs ``SELECT *`` against a view. The schema defines headers, so
    ``header_row`` is ignored."""

    metadata = ConnectorMetadata(
        id="bigquery",
        name="BigQuery",
        capture_key="bigquery",
    )

    def __init__(self, *, row_limit: int = 1000, **kwargs):
        super().__init__(**kwargs)
        self.row_limit = row_limit

    def validate_config(self, config: dict[str, Any]) -> bool | str:
        if not config.get("project_id"):
            return "Project ID is required"
        if not config.get("dataset_id"):
            return "Dataset ID is required"
        for key in ("project_id", "dataset_id"):
            if not _IDENTIFIER.match(str(config[key])):
                return f"Invalid {key.replace('_', ' ')}"
        return True

    async def fetch(self, config: dict[str, Any], tab_name: str, header_row: int = 0) -> TabData:
        if not _IDENTIFIER.match(tab_name):
            raise ConfigurationError(f"Invalid BigQuery view name: {tab_name!r}")

        project_id = config["project_id"]
        query = f"SELECT * FROM `{project_id}.{config['dataset_id']}.{tab_name}` LIMIT {int(self.row_limit)}"
        resp = await self._request(
            "POST",
            f"/projects/{project_id}/queries",
            json={"query": query, "useLegacySql": False, "timeoutMs": int(self.timeout * 1000)},
        )

        if resp.get("jobComplete") is False:
            raise ConnectorError(f"BigQuery query for '{tab_name}' did not complete in time")

        fields = resp.get("schema", {}).get("fields", [])
        headers = [str(f.get("name", "")) for f in fields if isinstance(f, dict)]
        rows = []
        for raw in resp.get("rows", []) or []:
            cells = [cell.get("v") if isinstance(cell, dict) else cell for cell in raw.get("f", [])]
            rows.append(to_cells(cells, len(headers)))
        return TabData(headers=headers, rows=rows)

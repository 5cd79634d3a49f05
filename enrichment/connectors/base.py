"""Connector contract shared by every external source type."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import httpx

from ..sync.errors import ConnectorAuthError, ConnectorError, ConnectorRateLimited


@dataclass
class TabData:
    headers: list[str] = field(default_factory=list)
    rows: list[list[str]] = field(default_factory=list)


@dataclass(frozen=True)
class ConnectorMetadata:
    id: str  # matches DataSource.type
    name: str
    capture_key: str  # top-level key under entity.source_data
    has_tabs: bool = True


class Connector(ABC):
    """Fetches tabular data for one named tab of a configured source.

    The engine never inspects ``config``; it is passed through as stored on
    the data source. Connectors do not retry: rate limits surface as
    ``ConnectorRateLimited`` and the caller records a per-tab failure.
    """

    metadata: ConnectorMetadata

    @abstractmethod
    def validate_config(self, config: dict[str, Any]) -> bool | str:
        """Return True when valid, otherwise an error message."""

    @abstractmethod
    async def fetch(self, config: dict[str, Any], tab_name: str, header_row: int = 0) -> TabData:
        """Return headers and data rows for ``tab_name``."""

    async def fetch_raw(self, config: dict[str, Any], tab_name: str, max_rows: int = 20) -> list[list[str]]:
        """Rows without any header assumption, for header-row detection."""
        data = await self.fetch(config, tab_name, 0)
        return [data.headers, *data.rows][:max_rows]


class HTTPConnector(Connector):
    """Base for connectors that talk JSON over HTTP."""

    def __init__(
        self,
        *,
        base_url: str,
        token: str | None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url
        self.token = token
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=self.timeout,
            transport=self._transport,
        )

    async def _request(
        self,
        method: str,
        path: str,
        params: dict | None = None,
        json: dict | None = None,
    ) -> dict[str, Any]:
        """Make a request, translating transport and status failures."""
        if not self.token:
            raise ConnectorAuthError(f"{self.metadata.name} credentials are not configured")

        try:
            async with self._client() as client:
                response = await client.request(method, path, params=params, json=json)
        except httpx.TransportError as e:
            raise ConnectorError(f"{self.metadata.name} request failed: {e}") from e

        if response.status_code in (401, 403):
            raise ConnectorAuthError(
                f"{self.metadata.name} rejected the credentials ({response.status_code})",
                response.status_code,
            )

        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            raise ConnectorRateLimited(
                f"{self.metadata.name} rate limit exceeded",
                float(retry_after) if retry_after and retry_after.isdigit() else None,
            )

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ConnectorError(
                f"{self.metadata.name} API error: {e.response.status_code}",
                e.response.status_code,
            ) from e

        return response.json() if response.content else {}


def to_cells(values: list[Any] | None, width: int) -> list[str]:
    """Stringify a raw row and pad it to ``width`` cells."""
    cells = ["" if v is None else str(v) for v in (values or [])]
    if len(cells) < width:
        cells.extend([""] * (width - len(cells)))
    return cells

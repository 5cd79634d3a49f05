"""Connector registry keyed by source type."""

from __future__ import annotations

from ..sync.errors import UnsupportedConnector
from .base import Connector, ConnectorMetadata


class ConnectorRegistry:
    """Maps ``DataSource.type`` to a connector instance."""

    def __init__(self, connectors: list[Connector] | None = None) -> None:
        self._connectors: dict[str, Connector] = {}
        for connector in connectors or []:
            self.register(connector)

    def register(self, connector: Connector) -> None:
        type_id = connector.metadata.id
        if type_id in self._connectors:
            raise ValueError(f"Connector '{type_id}' is already registered")
        self._connectors[type_id] = connector

    def get(self, type_id: str) -> Connector:
        connector = self._connectors.get(type_id)
        if connector is None:
            raise UnsupportedConnector(type_id)
        return connector

    def capture_key(self, type_id: str) -> str:
        """Top-level ``source_data`` key for a source type."""
        connector = self._connectors.get(type_id)
        return connector.metadata.capture_key if connector else type_id

    def all(self) -> list[ConnectorMetadata]:
        return [c.metadata for c in self._connectors.values()]

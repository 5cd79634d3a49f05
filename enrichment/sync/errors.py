"""Error taxonomy for the sync engine.

Everything except ``PersistenceError`` is non-fatal: callers collect these into
preview stats or the per-source report instead of letting them propagate.
"""

from __future__ import annotations


class SyncError(Exception):
    """Base exception for sync engine errors."""

    kind = "sync"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConfigurationError(SyncError):
    """The mapping configuration cannot be applied to this tab."""

    kind = "configuration"


class KeyMappingMissing(ConfigurationError):
    def __init__(self, tab_name: str):
        super().__init__(f"No key column defined for tab '{tab_name}'")


class KeyColumnNotFound(ConfigurationError):
    def __init__(self, source_column: str):
        self.source_column = source_column
        super().__init__(f"Key column '{source_column}' not found in source")


class UnsupportedConnector(ConfigurationError):
    def __init__(self, source_type: str):
        self.source_type = source_type
        super().__init__(f"No connector available for source type: {source_type}")


class UnknownTargetField(ConfigurationError):
    def __init__(self, entity_type: str, field: str):
        self.field = field
        super().__init__(f"'{field}' is not a canonical field of {entity_type}")


class MatchError(SyncError):
    """The entity instance could not be located in the fetched data."""

    kind = "match"


class NoMatchingRow(MatchError):
    def __init__(self, key_value: str):
        self.key_value = key_value
        super().__init__(f'Entity "{key_value}" not found in this source')


class MissingKeyValue(MatchError):
    def __init__(self, key_field: str):
        self.key_field = key_field
        super().__init__(f"Entity has no value for key field '{key_field}'")


class TransformError(SyncError):
    """A single cell could not be converted by its configured transform."""

    kind = "transform"

    def __init__(self, message: str, transform_type: str | None = None):
        self.transform_type = transform_type
        super().__init__(message)


class ConnectorError(SyncError):
    """Network, auth or rate-limit failure from the external source."""

    kind = "connector"

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class ConnectorAuthError(ConnectorError):
    pass


class ConnectorRateLimited(ConnectorError):
    def __init__(self, message: str, retry_after: float | None = None):
        self.retry_after = retry_after
        super().__init__(message, 429)


class PersistenceError(SyncError):
    """The final write failed; nothing from the run counts as synced."""

    kind = "persistence"

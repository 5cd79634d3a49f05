"""Enrichment models - re-exports all models and Base.metadata."""

from .base import Base, UUIDMixin, TimestampMixin, SourceDataMixin
from .source import DataSource
from .mapping import (
    TabMapping,
    ColumnMapping,
    TAB_STATUSES,
    COLUMN_CATEGORIES,
    CANONICAL_CATEGORIES,
    AUTHORITIES,
)
from .entity import Partner, Staff, Product
from .sync_run import SyncRun, FieldLineage

__all__ = [
    "Base",
    "UUIDMixin",
    "TimestampMixin",
    "SourceDataMixin",
    "DataSource",
    "TabMapping",
    "ColumnMapping",
    "TAB_STATUSES",
    "COLUMN_CATEGORIES",
    "CANONICAL_CATEGORIES",
    "AUTHORITIES",
    "Partner",
    "Staff",
    "Product",
    "SyncRun",
    "FieldLineage",
]

"""Mapping configuration service: sources, tab mappings and column mappings."""

from __future__ import annotations

import logging
import uuid
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..connectors.registry import ConnectorRegistry
from ..models.mapping import (
    AUTHORITIES,
    COLUMN_CATEGORIES,
    TAB_STATUSES,
    ColumnMapping,
    TabMapping,
)
from ..models.source import DataSource
from ..sync.headers import detect_header_row
from ..sync.transforms import is_valid_transform

logger = logging.getLogger(__name__)


class SourceNotFound(LookupError):
    def __init__(self, source_id: uuid.UUID):
        super().__init__(f"Data source {source_id} not found")
        self.source_id = source_id


class MappingValidationError(ValueError):
    """Rejected mapping configuration; the message is operator-facing."""


# --- Sources ---


async def create_source(
    db: AsyncSession,
    registry: ConnectorRegistry,
    *,
    name: str,
    type: str,
    connection_config: dict[str, Any] | None = None,
) -> DataSource:
    """Create a source after the connector has accepted its config."""
    connector = registry.get(type)
    config = connection_config or {}
    valid = connector.validate_config(config)
    if valid is not True:
        raise MappingValidationError(valid or "Invalid connection config")

    source = DataSource(name=name, type=type, connection_config=config)
    db.add(source)
    await db.commit()
    await db.refresh(source)
    return source


async def list_sources(db: AsyncSession) -> list[DataSource]:
    result = await db.execute(select(DataSource).order_by(DataSource.name))
    return list(result.scalars().all())


async def get_source(db: AsyncSession, source_id: uuid.UUID) -> DataSource | None:
    stmt = select(DataSource).where(DataSource.id == source_id)
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def require_source(db: AsyncSession, source_id: uuid.UUID) -> DataSource:
    source = await get_source(db, source_id)
    if source is None:
        raise SourceNotFound(source_id)
    return source


async def delete_source(db: AsyncSession, source_id: uuid.UUID) -> bool:
    """Delete a source with no tab mappings left. Returns False when missing."""
    source = await get_source(db, source_id)
    if not source:
        return False

    count = await db.scalar(
        select(func.count()).select_from(TabMapping).where(TabMapping.source_id == source_id)
    )
    if count:
        raise MappingValidationError(
            f"Source '{source.name}' still has {count} tab mapping(s); remove them first"
        )

    await db.delete(source)
    await db.commit()
    return True


# --- Tab mappings ---


async def list_tabs(db: AsyncSession, source_id: uuid.UUID) -> list[TabMapping]:
    stmt = (
        select(TabMapping)
        .options(selectinload(TabMapping.columns))
        .where(TabMapping.source_id == source_id)
        .order_by(TabMapping.position)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_tab(db: AsyncSession, tab_id: uuid.UUID) -> TabMapping | None:
    stmt = (
        select(TabMapping)
        .options(selectinload(TabMapping.columns), selectinload(TabMapping.source))
        .where(TabMapping.id == tab_id)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def create_tab(
    db: AsyncSession,
    source_id: uuid.UUID,
    *,
    tab_name: str,
    primary_entity: str,
    header_row: int = 0,
    status: str = "active",
) -> TabMapping:
    """Append a tab mapping.

    ``position`` is the global declaration order across every source, which
    is the order syncs merge tabs in.
    """
    await require_source(db, source_id)
    if status not in TAB_STATUSES:
        raise MappingValidationError(f"Invalid tab status '{status}'")

    last = await db.scalar(select(func.max(TabMapping.position)))
    tab = TabMapping(
        source_id=source_id,
        tab_name=tab_name,
        header_row=header_row,
        primary_entity=primary_entity,
        status=status,
        position=0 if last is None else last + 1,
    )
    db.add(tab)
    await db.commit()
    return await get_tab(db, tab.id)


def _check_columns(columns: list[dict[str, Any]]) -> None:
    keys = [c for c in columns if c.get("is_key")]
    if len(keys) > 1:
        raise MappingValidationError("Only one column can be the key")
    if keys and not keys[0].get("target_field"):
        raise MappingValidationError("The key column needs a target field")

    seen: set[str] = set()
    for column in columns:
        name = column["source_column"]
        if name in seen:
            raise MappingValidationError(f"Column '{name}' is mapped twice")
        seen.add(name)

        if column.get("category", "skip") not in COLUMN_CATEGORIES:
            raise MappingValidationError(f"Invalid category for '{name}'")
        if column.get("authority", "reference") not in AUTHORITIES:
            raise MappingValidationError(f"Invalid authority for '{name}'")
        if not is_valid_transform(column.get("transform_type")):
            raise MappingValidationError(
                f"Unknown transform '{column.get('transform_type')}' for '{name}'"
            )


async def replace_columns(
    db: AsyncSession, tab_id: uuid.UUID, columns: list[dict[str, Any]]
) -> TabMapping | None:
    """Swap the full column mapping set of a tab."""
    _check_columns(columns)
    tab = await get_tab(db, tab_id)
    if not tab:
        return None

    tab.columns.clear()
    # Old rows must be gone before the new ones hit the unique constraint.
    await db.flush()
    tab.columns.extend(ColumnMapping(**column) for column in columns)
    await db.commit()

    logger.info("Replaced columns for tab %s (%d mapped)", tab.tab_name, len(columns))
    return await get_tab(db, tab_id)


async def set_tab_status(db: AsyncSession, tab_id: uuid.UUID, status: str) -> TabMapping | None:
    if status not in TAB_STATUSES:
        raise MappingValidationError(f"Invalid tab status '{status}'")
    tab = await get_tab(db, tab_id)
    if not tab:
        return None
    tab.status = status
    await db.commit()
    return tab


async def confirm_header(
    db: AsyncSession,
    registry: ConnectorRegistry,
    tab_id: uuid.UUID,
    header_row: int | None = None,
) -> TabMapping | None:
    """Pin the header row, detecting it from raw rows when not given."""
    tab = await get_tab(db, tab_id)
    if not tab:
        return None

    if header_row is None:
        connector = registry.get(tab.source.type)
        raw = await connector.fetch_raw(tab.source.connection_config or {}, tab.tab_name)
        header_row = detect_header_row(raw)
        logger.info("Detected header row %d for tab %s", header_row, tab.tab_name)

    tab.header_row = header_row
    tab.header_confirmed = True
    await db.commit()
    return tab

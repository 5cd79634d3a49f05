"""Immutable mapping snapshots loaded once per sync run."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..models.mapping import CANONICAL_CATEGORIES, ColumnMapping, TabMapping
from .errors import KeyMappingMissing


@dataclass(frozen=True)
class SourceConfig:
    id: uuid.UUID
    name: str
    type: str
    connection_config: dict[str, Any]


@dataclass(frozen=True)
class ColumnConfig:
    source_column: str
    source_column_index: int
    category: str
    target_field: str | None
    authority: str
    is_key: bool = False
    transform_type: str | None = None
    transform_config: dict[str, Any] | None = None

    @property
    def is_canonical(self) -> bool:
        """Feeds a canonical field (key, timeline, computed and skip columns do not)."""
        return (
            not self.is_key
            and bool(self.target_field)
            and self.category in CANONICAL_CATEGORIES
        )

    def ref(self, source_name: str, tab_name: str) -> str:
        return f"{source_name} → {tab_name} → {self.source_column}"


@dataclass(frozen=True)
class TabConfig:
    id: uuid.UUID
    tab_name: str
    header_row: int
    primary_entity: str
    status: str
    position: int
    source: SourceConfig
    columns: tuple[ColumnConfig, ...]

    @property
    def key_column(self) -> ColumnConfig | None:
        for column in self.columns:
            if column.is_key and column.target_field:
                return column
        return None

    def require_key(self) -> ColumnConfig:
        key = self.key_column
        if key is None:
            raise KeyMappingMissing(self.tab_name)
        return key

    @property
    def canonical_columns(self) -> tuple[ColumnConfig, ...]:
        return tuple(c for c in self.columns if c.is_canonical)


def column_from_model(column: ColumnMapping) -> ColumnConfig:
    return ColumnConfig(
        source_column=column.source_column,
        source_column_index=column.source_column_index,
        category=column.category,
        target_field=column.target_field,
        authority=column.authority,
        is_key=column.is_key,
        transform_type=column.transform_type,
        transform_config=dict(column.transform_config) if column.transform_config else None,
    )


def tab_from_model(tab: TabMapping) -> TabConfig:
    source = tab.source
    return TabConfig(
        id=tab.id,
        tab_name=tab.tab_name,
        header_row=tab.header_row,
        primary_entity=tab.primary_entity,
        status=tab.status,
        position=tab.position,
        source=SourceConfig(
            id=source.id,
            name=source.name,
            type=source.type,
            connection_config=dict(source.connection_config or {}),
        ),
        columns=tuple(column_from_model(c) for c in tab.columns),
    )


def _tab_query():
    return (
        select(TabMapping)
        .options(selectinload(TabMapping.source), selectinload(TabMapping.columns))
        .order_by(TabMapping.position, TabMapping.created_at)
    )


async def load_active_tabs(db: AsyncSession, entity_type: str) -> list[TabConfig]:
    """Active tabs targeting ``entity_type`` in declaration order."""
    stmt = _tab_query().where(
        TabMapping.primary_entity == entity_type,
        TabMapping.status == "active",
    )
    result = await db.execute(stmt)
    return [tab_from_model(t) for t in result.scalars().all()]


async def load_source_tabs(
    db: AsyncSession,
    source_id: uuid.UUID,
    *,
    tab_ids: list[uuid.UUID] | None = None,
    active_only: bool = True,
) -> list[TabConfig]:
    stmt = _tab_query().where(TabMapping.source_id == source_id)
    if active_only:
        stmt = stmt.where(TabMapping.status == "active")
    if tab_ids:
        stmt = stmt.where(TabMapping.id.in_(tab_ids))
    result = await db.execute(stmt)
    return [tab_from_model(t) for t in result.scalars().all()]

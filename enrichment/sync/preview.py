"""Dry-run preview of what a sync would change.

Nothing in here writes entity or mapping rows. The row projection is shared
with the executor so a preview always shows exactly the fields a real sync
would write for the same row.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..connectors.base import Connector
from ..connectors.registry import ConnectorRegistry
from ..schemas.sync import EntityChange, SyncIssue, TabPreviewResult, TabStats
from ..services import entity_svc
from ..services.mapping_svc import require_source
from .authority import FieldMerger
from .cache import TTLCache
from .errors import ConnectorError, SyncError, UnknownTargetField
from .mappings import TabConfig, load_source_tabs
from .matcher import normalize_key, resolve_key_column
from .rows import FetchedTab, SourceRow, ingest
from .runs import finish_run, start_run
from .transforms import apply_transform

logger = logging.getLogger(__name__)


@dataclass
class RowProjection:
    """Canonical values one row contributes, plus per-column issues."""

    merger: FieldMerger = field(default_factory=FieldMerger)
    issues: list[SyncIssue] = field(default_factory=list)

    @property
    def fields(self) -> dict[str, Any]:
        return self.merger.values


def project_row(tab: TabConfig, row: SourceRow, allowed_fields) -> RowProjection:
    """Transform every canonical column of ``row``.

    Columns whose header is absent or whose target is not a field of the
    entity are skipped silently here; ``tab_issues`` reports them once per
    tab. Blank cells that transform to ``None`` contribute nothing.
    """
    projection = RowProjection()
    for column in tab.canonical_columns:
        if column.target_field not in allowed_fields or column.source_column not in row.columns:
            continue

        result = apply_transform(row[column.source_column], column.transform_type, column.transform_config)
        if not result.ok:
            projection.issues.append(SyncIssue(
                row=row.number,
                column=column.source_column,
                message=result.error.message,
            ))
            continue
        if result.value is None:
            continue

        projection.merger.offer(
            column.target_field,
            result.value,
            column.authority,
            column.ref(tab.source.name, tab.tab_name),
        )

    for rejected in projection.merger.rejected:
        projection.issues.append(SyncIssue(row=row.number, column=rejected.field, message=rejected.message))
    return projection


def tab_issues(tab: TabConfig, fetched: FetchedTab, allowed_fields) -> list[SyncIssue]:
    """Tab-level warnings for columns that can never contribute."""
    issues: list[SyncIssue] = []
    for column in tab.canonical_columns:
        if column.target_field not in allowed_fields:
            err = UnknownTargetField(tab.primary_entity, column.target_field)
            issues.append(SyncIssue(column=column.source_column, message=err.message))
        elif not fetched.has_column(column.source_column):
            issues.append(SyncIssue(
                column=column.source_column,
                message=f"Column '{column.source_column}' not found in source",
            ))
    return issues


async def fetch_tab(
    connector: Connector,
    tab: TabConfig,
    cache: TTLCache | None = None,
) -> FetchedTab:
    """Fetch and ingest a tab, reusing ``cache`` when given.

    Anything the connector raises that is not already a sync error is
    reported as a ``ConnectorError``.
    """
    async def load() -> FetchedTab:
        try:
            data = await connector.fetch(tab.source.connection_config, tab.tab_name, tab.header_row)
        except SyncError:
            raise
        except Exception as e:
            raise ConnectorError(f"Failed to fetch '{tab.tab_name}': {e}") from e
        return ingest(data, tab.header_row)

    if cache is None:
        return await load()
    return await cache.get_or_load((tab.source.id, tab.tab_name, tab.header_row), load)


def build_tab_preview(
    tab: TabConfig,
    fetched: FetchedTab,
    existing_index: dict[str, dict[str, Any]],
    allowed_fields,
    row_limit: int | None = None,
) -> TabPreviewResult:
    """Classify every data row as create, update or skip."""
    key = tab.require_key()
    resolve_key_column(fetched, key.source_column)

    stats = TabStats(errors=tab_issues(tab, fetched, allowed_fields))
    changes: list[EntityChange] = []
    rows = fetched.rows[:row_limit] if row_limit else fetched.rows

    for row in rows:
        stats.rows_processed += 1
        key_value = row[key.source_column].strip()
        if not key_value:
            stats.rows_skipped += 1
            changes.append(EntityChange(
                entity=tab.primary_entity,
                key_field=key.target_field,
                key_value="",
                type="skip",
                skip_reason="missing key value",
            ))
            continue

        projection = project_row(tab, row, allowed_fields)
        stats.errors.extend(projection.issues)
        fields = projection.fields
        existing = existing_index.get(normalize_key(key_value))

        if existing is None:
            stats.rows_created += 1
            changes.append(EntityChange(
                entity=tab.primary_entity,
                key_field=key.target_field,
                key_value=key_value,
                type="create",
                fields=fields,
            ))
            continue

        old = {name: existing.get(name) for name in fields}
        if any(old[name] != value for name, value in fields.items()):
            stats.rows_updated += 1
            changes.append(EntityChange(
                entity=tab.primary_entity,
                key_field=key.target_field,
                key_value=key_value,
                type="update",
                fields=fields,
                existing=old,
            ))
        else:
            stats.rows_skipped += 1
            changes.append(EntityChange(
                entity=tab.primary_entity,
                key_field=key.target_field,
                key_value=key_value,
                type="skip",
                existing=old,
                skip_reason="no changes",
            ))

    return TabPreviewResult(tab_id=tab.id, tab_name=tab.tab_name, changes=changes, stats=stats)


def _failed(tab: TabConfig, error: SyncError) -> TabPreviewResult:
    return TabPreviewResult(
        tab_id=tab.id,
        tab_name=tab.tab_name,
        stats=TabStats(errors=[SyncIssue(message=error.message, severity="error")]),
        error=error.message,
        error_kind=error.kind,
    )


async def preview_tabs(
    db: AsyncSession,
    tabs: list[TabConfig],
    registry: ConnectorRegistry,
    *,
    row_limit: int | None = None,
    cache: TTLCache | None = None,
) -> list[TabPreviewResult]:
    """Preview each tab in turn; one tab failing never stops the others."""
    results: list[TabPreviewResult] = []
    indexes: dict[tuple[str, str], dict[str, dict[str, Any]]] = {}

    for tab in tabs:
        try:
            allowed = entity_svc.canonical_fields(tab.primary_entity)
        except entity_svc.UnknownEntityType as e:
            results.append(TabPreviewResult(
                tab_id=tab.id,
                tab_name=tab.tab_name,
                stats=TabStats(errors=[SyncIssue(message=str(e), severity="error")]),
                error=str(e),
                error_kind="configuration",
            ))
            continue

        try:
            connector = registry.get(tab.source.type)
            key = tab.require_key()
            if key.target_field not in allowed:
                raise UnknownTargetField(tab.primary_entity, key.target_field)
            fetched = await fetch_tab(connector, tab, cache)

            index_key = (tab.primary_entity, key.target_field)
            if index_key not in indexes:
                indexes[index_key] = await entity_svc.key_index(db, *index_key)

            results.append(build_tab_preview(tab, fetched, indexes[index_key], allowed, row_limit))
        except SyncError as e:
            logger.warning("Preview of %s / %s failed: %s", tab.source.name, tab.tab_name, e.message)
            results.append(_failed(tab, e))

    return results


async def preview_source(
    db: AsyncSession,
    source_id: uuid.UUID,
    registry: ConnectorRegistry,
    *,
    tab_ids: list[uuid.UUID] | None = None,
    row_limit: int | None = None,
    triggered_by: str | None = None,
    cache: TTLCache | None = None,
) -> list[TabPreviewResult]:
    """Preview the active tabs of a source, or the explicitly listed ones.

    Records a ``preview`` sync run with the combined row stats.
    """
    await require_source(db, source_id)

    tabs = await load_source_tabs(db, source_id, tab_ids=tab_ids, active_only=not tab_ids)
    if row_limit is None and settings.preview_row_limit > 0:
        row_limit = settings.preview_row_limit
    if cache is None:
        cache = TTLCache(settings.preview_cache_ttl_seconds)

    run = await start_run(db, "preview", source_id=source_id, triggered_by=triggered_by)
    results = await preview_tabs(db, tabs, registry, row_limit=row_limit, cache=cache)

    all_failed = bool(results) and all(r.error for r in results)
    finish_run(
        run,
        "failed" if all_failed else "completed",
        stats=[r.stats for r in results],
        errors=[issue for r in results for issue in r.stats.errors],
    )
    await db.commit()
    return results

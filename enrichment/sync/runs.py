"""Sync run bookkeeping."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from ..models.sync_run import FieldLineage, SyncRun
from ..schemas.sync import SyncIssue, TabStats


def _now() -> datetime:
    return datetime.now(timezone.utc)


async def start_run(
    db: AsyncSession,
    kind: str,
    *,
    source_id: uuid.UUID | None = None,
    entity_type: str | None = None,
    entity_id: uuid.UUID | None = None,
    triggered_by: str | None = None,
) -> SyncRun:
    """Insert a ``running`` row and commit so it is visible while work runs."""
    run = SyncRun(
        kind=kind,
        status="running",
        source_id=source_id,
        entity_type=entity_type,
        entity_id=entity_id,
        started_at=_now(),
        rows_processed=0,
        rows_created=0,
        rows_updated=0,
        rows_skipped=0,
        triggered_by=triggered_by,
    )
    db.add(run)
    await db.commit()
    return run


def finish_run(
    run: SyncRun,
    status: str,
    *,
    stats: list[TabStats] | None = None,
    errors: list[SyncIssue | str] | None = None,
) -> None:
    """Close out ``run`` in memory; the caller commits."""
    run.status = status
    run.completed_at = _now()
    for tab_stats in stats or []:
        run.rows_processed += tab_stats.rows_processed
        run.rows_created += tab_stats.rows_created
        run.rows_updated += tab_stats.rows_updated
        run.rows_skipped += tab_stats.rows_skipped
    if errors:
        run.errors = [
            e.model_dump() if isinstance(e, SyncIssue) else {"message": e}
            for e in errors
        ]


def record_lineage(
    db: AsyncSession,
    *,
    run: SyncRun | None,
    entity_type: str,
    entity_id: uuid.UUID,
    field_name: str,
    source_type: str,
    source_id: uuid.UUID | None,
    source_ref: str,
    previous_value: Any,
    new_value: Any,
) -> FieldLineage:
    lineage = FieldLineage(
        entity_type=entity_type,
        entity_id=entity_id,
        field_name=field_name,
        source_type=source_type,
        source_id=source_id,
        source_ref=source_ref,
        previous_value=previous_value,
        new_value=new_value,
        sync_run_id=run.id if run else None,
    )
    db.add(lineage)
    return lineage

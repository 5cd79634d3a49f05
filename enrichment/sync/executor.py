"""Sync executor - applies every active tab mapping to one entity instance.

Tabs are processed one after another in declaration order because they all
feed the same merge accumulator. Per-tab failures (configuration, matching,
connector) are recorded in the report and never stop the remaining tabs;
only a failed final write aborts the sync as a whole.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..connectors.registry import ConnectorRegistry
from ..schemas.sync import EntitySyncReport, SourceSyncResult
from ..services import entity_svc
from .authority import FieldMerger
from .cache import TTLCache
from .derived import DERIVED_FIELD_HOOKS
from .errors import PersistenceError, SyncError, UnknownTargetField
from .locks import EntityLockRegistry
from .mappings import TabConfig, load_active_tabs
from .matcher import find_matching_row, require_key_value
from .preview import RowProjection, fetch_tab, project_row, tab_issues
from .raw_store import merge_source_data
from .rows import SourceRow
from .runs import finish_run, record_lineage, start_run

logger = logging.getLogger(__name__)

DerivedHook = Callable[[dict, dict, Any], dict]


@dataclass
class _TabOutcome:
    result: SourceSyncResult
    row: SourceRow | None = None
    projection: RowProjection | None = None


class SyncExecutor:
    """Runs entity syncs against one session.

    ``locks`` should be shared by every executor in the process so two syncs
    of the same instance never interleave. ``cache`` is an optional fetch
    cache, useful when many instances of one entity type are synced in a row.
    """

    def __init__(
        self,
        db: AsyncSession,
        registry: ConnectorRegistry,
        *,
        locks: EntityLockRegistry | None = None,
        derived_hooks: dict[str, DerivedHook] | None = None,
        cache: TTLCache | None = None,
    ):
        self.db = db
        self.registry = registry
        self.locks = locks or EntityLockRegistry()
        self.derived_hooks = DERIVED_FIELD_HOOKS if derived_hooks is None else derived_hooks
        self.cache = cache

    async def sync_entity(
        self,
        entity_type: str,
        entity_id: uuid.UUID,
        *,
        triggered_by: str | None = None,
    ) -> EntitySyncReport:
        entity_svc.model_for(entity_type)
        async with self.locks.hold(entity_type, entity_id):
            return await self._sync_locked(entity_type, entity_id, triggered_by)

    async def _sync_locked(
        self, entity_type: str, entity_id: uuid.UUID, triggered_by: str | None
    ) -> EntitySyncReport:
        if await entity_svc.get_entity(self.db, entity_type, entity_id) is None:
            raise entity_svc.EntityNotFound(entity_type, entity_id)

        tabs = await load_active_tabs(self.db, entity_type)
        if not tabs:
            return EntitySyncReport(
                entity_type=entity_type,
                entity_id=entity_id,
                synced=False,
                message=f"No active tab mappings for {entity_type}",
            )

        run = await start_run(
            self.db, "entity",
            entity_type=entity_type, entity_id=entity_id, triggered_by=triggered_by,
        )
        # Re-read under a row lock now that the run row is committed.
        entity = await entity_svc.get_entity(self.db, entity_type, entity_id, for_update=True)
        allowed = entity_svc.canonical_fields(entity_type)

        merger = FieldMerger()
        origins: dict[str, TabConfig] = {}
        source_data = entity.source_data or {}
        results: list[SourceSyncResult] = []
        by_tab: dict[uuid.UUID, SourceSyncResult] = {}

        for tab in tabs:
            outcome = await self._sync_tab(tab, entity, allowed)
            results.append(outcome.result)
            by_tab[tab.id] = outcome.result
            if not outcome.result.success:
                continue

            source_data = merge_source_data(
                source_data,
                self.registry.capture_key(tab.source.type),
                tab.tab_name,
                outcome.row.capture(),
            )
            rejected_before = len(merger.rejected)
            for field, write in outcome.projection.merger.writes().items():
                held = origins.get(field)
                if not merger.offer(field, write.value, write.authority, write.origin):
                    continue
                if held is not None and held.id != tab.id:
                    by_tab[held.id].warnings.append(
                        f"'{field}' overridden by {write.origin} ({write.authority})"
                    )
                origins[field] = tab
            outcome.result.warnings.extend(r.message for r in merger.rejected[rejected_before:])

        # Credit each field to the tab whose value survived the merge.
        for field, tab in origins.items():
            by_tab[tab.id].fields_updated.append(field)

        failures = [f"{r.source_name} / {r.tab_name}: {r.error}" for r in results if not r.success]
        succeeded = len(results) - len(failures)

        if not succeeded:
            finish_run(run, "failed", errors=failures)
            await self.db.commit()
            return EntitySyncReport(
                entity_type=entity_type,
                entity_id=entity_id,
                synced=False,
                message="No data sources could be synced",
                sources=results,
                sync_run_id=run.id,
            )

        try:
            changed = self._apply(entity_type, entity, merger, origins, source_data, run)
            finish_run(run, "completed", errors=failures)
            await self.db.commit()
        except SQLAlchemyError as e:
            logger.exception("Persisting sync of %s %s failed", entity_type, entity_id)
            await self._mark_failed(run, str(e))
            raise PersistenceError(f"Failed to save {entity_type} {entity_id}: {e}") from e

        if failures:
            message = f"Synced from {succeeded} of {len(results)} sources"
        else:
            message = f"Synced from {succeeded} source{'s' if succeeded != 1 else ''}"
        logger.info("%s %s: %s, %d field(s) changed", entity_type, entity_id, message, len(changed))

        return EntitySyncReport(
            entity_type=entity_type,
            entity_id=entity_id,
            synced=True,
            message=message,
            fields_updated=changed,
            sources=results,
            sync_run_id=run.id,
        )

    async def _sync_tab(self, tab: TabConfig, entity: Any, allowed) -> _TabOutcome:
        result = SourceSyncResult(
            source_name=tab.source.name,
            source_type=tab.source.type,
            tab_name=tab.tab_name,
            success=False,
        )
        try:
            connector = self.registry.get(tab.source.type)
            key = tab.require_key()
            if key.target_field not in allowed:
                raise UnknownTargetField(tab.primary_entity, key.target_field)
            key_value = require_key_value(getattr(entity, key.target_field, None), key.target_field)
            fetched = await fetch_tab(connector, tab, self.cache)
            row = find_matching_row(fetched, key.source_column, key_value)
        except SyncError as e:
            logger.warning(
                "Sync from %s / %s failed (%s): %s", tab.source.name, tab.tab_name, e.kind, e.message
            )
            result.error = e.message
            result.error_kind = e.kind
            return _TabOutcome(result)

        projection = project_row(tab, row, allowed)
        for issue in projection.issues:
            logger.debug("%s / %s row %d: %s", tab.source.name, tab.tab_name, issue.row, issue.message)
        result.warnings = [i.message for i in tab_issues(tab, fetched, allowed) + projection.issues]
        result.success = True
        return _TabOutcome(result, row, projection)

    def _apply(
        self,
        entity_type: str,
        entity: Any,
        merger: FieldMerger,
        origins: dict[str, TabConfig],
        source_data: dict,
        run,
    ) -> list[str]:
        """Write merged values onto ``entity``; returns fields that changed."""
        changed: list[str] = []
        for field, write in merger.writes().items():
            previous = getattr(entity, field)
            if previous == write.value:
                continue
            setattr(entity, field, write.value)
            changed.append(field)
            tab = origins[field]
            record_lineage(
                self.db,
                run=run,
                entity_type=entity_type,
                entity_id=entity.id,
                field_name=field,
                source_type=tab.source.type,
                source_id=tab.source.id,
                source_ref=write.origin,
                previous_value=previous,
                new_value=write.value,
            )

        entity.source_data = source_data

        hook = self.derived_hooks.get(entity_type)
        if hook is not None:
            for name, value in hook(source_data, merger.values, entity).items():
                setattr(entity, name, value)
        return changed

    async def _mark_failed(self, run, message: str) -> None:
        run_id = run.id
        await self.db.rollback()
        finish_run(run, "failed", errors=[message])
        try:
            await self.db.commit()
        except SQLAlchemyError:
            logger.exception("Could not mark sync run %s as failed", run_id)
            await self.db.rollback()


async def sync_all(
    session_factory: async_sessionmaker,
    registry: ConnectorRegistry,
    entity_type: str,
    *,
    locks: EntityLockRegistry | None = None,
    concurrency: int = 4,
    cache: TTLCache | None = None,
    triggered_by: str | None = None,
) -> list[EntitySyncReport]:
    """Sync every instance of ``entity_type``, several at a time.

    Each instance gets its own session; the shared lock registry keeps any
    one instance single-writer. A failure for one instance, including one
    deleted since the ids were listed, is reported in its place and does not
    stop the others.
    """
    locks = locks or EntityLockRegistry()
    async with session_factory() as db:
        entity_ids = await entity_svc.list_entity_ids(db, entity_type)

    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def one(entity_id: uuid.UUID) -> EntitySyncReport:
        async with semaphore, session_factory() as db:
            executor = SyncExecutor(db, registry, locks=locks, cache=cache)
            try:
                return await executor.sync_entity(entity_type, entity_id, triggered_by=triggered_by)
            except SyncError as e:
                message = e.message
            except entity_svc.EntityNotFound as e:
                message = str(e)
            except Exception as e:
                logger.exception("Sync of %s %s failed", entity_type, entity_id)
                message = f"Unexpected error: {e}"
            return EntitySyncReport(
                entity_type=entity_type,
                entity_id=entity_id,
                synced=False,
                message=message,
            )

    return list(await asyncio.gather(*(one(eid) for eid in entity_ids)))

"""Preview and sync endpoints."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from ..connectors.registry import ConnectorRegistry
from ..database import get_db
from ..deps import get_locks, get_registry
from ..schemas.sync import EntitySyncReport, PreviewRequest, TabPreviewResult
from ..services import entity_svc, mapping_svc
from ..sync.errors import PersistenceError
from ..sync.executor import SyncExecutor
from ..sync.locks import EntityLockRegistry
from ..sync.preview import preview_source

router = APIRouter(prefix="/api", tags=["sync"])


@router.post("/sources/{source_id}/preview", response_model=list[TabPreviewResult])
async def preview(
    source_id: uuid.UUID,
    data: PreviewRequest | None = None,
    db: AsyncSession = Depends(get_db),
    registry: ConnectorRegistry = Depends(get_registry),
):
    data = data or PreviewRequest()
    try:
        return await preview_source(
            db, source_id, registry,
            tab_ids=data.tab_ids,
            row_limit=data.row_limit,
            triggered_by="api",
        )
    except mapping_svc.SourceNotFound:
        raise HTTPException(status_code=404, detail="Source not found")


@router.post("/entities/{entity_type}/{entity_id}/sync", response_model=EntitySyncReport)
async def sync_entity(
    entity_type: str,
    entity_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    registry: ConnectorRegistry = Depends(get_registry),
    locks: EntityLockRegistry = Depends(get_locks),
):
    executor = SyncExecutor(db, registry, locks=locks)
    try:
        return await executor.sync_entity(entity_type, entity_id, triggered_by="api")
    except (entity_svc.UnknownEntityType, entity_svc.EntityNotFound) as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=e.message)

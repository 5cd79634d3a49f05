"""JSON API for sources, tab mappings and column mappings."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from ..connectors.registry import ConnectorRegistry
from ..database import get_db
from ..deps import get_registry
from ..schemas.mapping import (
    ColumnMappingIn,
    ConfirmHeader,
    SourceCreate,
    SourceResponse,
    TabMappingCreate,
    TabMappingResponse,
    TabStatusUpdate,
)
from ..services import mapping_svc
from ..sync.errors import ConfigurationError, ConnectorError

router = APIRouter(prefix="/api", tags=["mappings"])


@router.post("/sources", status_code=201)
async def create_source(
    data: SourceCreate,
    db: AsyncSession = Depends(get_db),
    registry: ConnectorRegistry = Depends(get_registry),
):
    try:
        source = await mapping_svc.create_source(
            db, registry,
            name=data.name,
            type=data.type,
            connection_config=data.connection_config,
        )
    except (ConfigurationError, mapping_svc.MappingValidationError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    return SourceResponse.model_validate(source)


@router.get("/sources")
async def list_sources(db: AsyncSession = Depends(get_db)):
    sources = await mapping_svc.list_sources(db)
    return [SourceResponse.model_validate(s) for s in sources]


@router.get("/sources/{source_id}")
async def get_source(source_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    source = await mapping_svc.get_source(db, source_id)
    if not source:
        raise HTTPException(status_code=404, detail="Source not found")
    tabs = await mapping_svc.list_tabs(db, source_id)
    return {
        **SourceResponse.model_validate(source).model_dump(mode="json"),
        "tabs": [TabMappingResponse.model_validate(t).model_dump(mode="json") for t in tabs],
    }


@router.delete("/sources/{source_id}")
async def delete_source(source_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    try:
        deleted = await mapping_svc.delete_source(db, source_id)
    except mapping_svc.MappingValidationError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"deleted": deleted}


@router.post("/sources/{source_id}/tabs", status_code=201)
async def create_tab(
    source_id: uuid.UUID,
    data: TabMappingCreate,
    db: AsyncSession = Depends(get_db),
):
    try:
        tab = await mapping_svc.create_tab(
            db, source_id,
            tab_name=data.tab_name,
            primary_entity=data.primary_entity,
            header_row=data.header_row,
            status=data.status,
        )
    except mapping_svc.SourceNotFound:
        raise HTTPException(status_code=404, detail="Source not found")
    return TabMappingResponse.model_validate(tab)


@router.put("/tabs/{tab_id}/columns")
async def replace_columns(
    tab_id: uuid.UUID,
    data: list[ColumnMappingIn],
    db: AsyncSession = Depends(get_db),
):
    try:
        tab = await mapping_svc.replace_columns(db, tab_id, [c.model_dump() for c in data])
    except mapping_svc.MappingValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not tab:
        raise HTTPException(status_code=404, detail="Tab mapping not found")
    return TabMappingResponse.model_validate(tab)


@router.patch("/tabs/{tab_id}/status")
async def set_tab_status(
    tab_id: uuid.UUID,
    data: TabStatusUpdate,
    db: AsyncSession = Depends(get_db),
):
    tab = await mapping_svc.set_tab_status(db, tab_id, data.status)
    if not tab:
        raise HTTPException(status_code=404, detail="Tab mapping not found")
    return {"id": str(tab.id), "status": tab.status}


@router.post("/tabs/{tab_id}/confirm-header")
async def confirm_header(
    tab_id: uuid.UUID,
    data: ConfirmHeader,
    db: AsyncSession = Depends(get_db),
    registry: ConnectorRegistry = Depends(get_registry),
):
    try:
        tab = await mapping_svc.confirm_header(db, registry, tab_id, data.header_row)
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except ConnectorError as e:
        raise HTTPException(status_code=502, detail=e.message)
    if not tab:
        raise HTTPException(status_code=404, detail="Tab mapping not found")
    return {"id": str(tab.id), "header_row": tab.header_row, "header_confirmed": tab.header_confirmed}

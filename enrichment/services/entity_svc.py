"""Entity lookup service for the canonical partner/staff/product tables."""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.entity import Partner, Product, Staff
from ..sync.matcher import normalize_key

ENTITY_MODELS: dict[str, type] = {
    "partners": Partner,
    "staff": Staff,
    "products": Product,
}


class UnknownEntityType(LookupError):
    def __init__(self, entity_type: str):
        super().__init__(f"Unknown entity type '{entity_type}'")
        self.entity_type = entity_type


class EntityNotFound(LookupError):
    def __init__(self, entity_type: str, entity_id: uuid.UUID):
        super().__init__(f"{entity_type} {entity_id} not found")
        self.entity_type = entity_type
        self.entity_id = entity_id


def model_for(entity_type: str) -> type:
    model = ENTITY_MODELS.get(entity_type)
    if model is None:
        raise UnknownEntityType(entity_type)
    return model


def canonical_fields(entity_type: str) -> frozenset[str]:
    return frozenset(model_for(entity_type).CANONICAL_FIELDS)


async def get_entity(
    db: AsyncSession,
    entity_type: str,
    entity_id: uuid.UUID,
    *,
    for_update: bool = False,
):
    model = model_for(entity_type)
    stmt = select(model).where(model.id == entity_id)
    if for_update:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    return (await db.execute(stmt)).scalar_one_or_none()


async def list_entity_ids(db: AsyncSession, entity_type: str) -> list[uuid.UUID]:
    model = model_for(entity_type)
    result = await db.execute(select(model.id).order_by(model.created_at))
    return list(result.scalars().all())


def snapshot(entity: Any, fields) -> dict[str, Any]:
    """Current canonical values of ``entity`` for ``fields``."""
    return {name: getattr(entity, name, None) for name in fields}


async def key_index(
    db: AsyncSession, entity_type: str, key_field: str
) -> dict[str, dict[str, Any]]:
    """Normalized key value -> canonical snapshot, for every instance.

    When two instances share a key the first one created wins, mirroring
    first-match row lookup.
    """
    model = model_for(entity_type)
    fields = model.CANONICAL_FIELDS
    result = await db.execute(select(model).order_by(model.created_at))

    index: dict[str, dict[str, Any]] = {}
    for entity in result.scalars().all():
        key = normalize_key(getattr(entity, key_field, None))
        if key and key not in index:
            index[key] = snapshot(entity, fields)
    return index

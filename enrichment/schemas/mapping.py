"""Mapping configuration schemas."""

from __future__ import annotations

import uuid
from typing import Any, Literal

from pydantic import BaseModel, Field

TabStatus = Literal["active", "reference", "hidden", "flagged"]
ColumnCategory = Literal[
    "partner_field", "staff_field", "product_field", "weekly_timeline", "computed", "skip"
]
Authority = Literal["source_of_truth", "reference", "derived"]
EntityType = Literal["partners", "staff", "products"]


class SourceCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    type: str
    connection_config: dict[str, Any] = {}


class SourceResponse(SourceCreate):
    id: uuid.UUID

    model_config = {"from_attributes": True}


class TabMappingCreate(BaseModel):
    tab_name: str = Field(min_length=1, max_length=255)
    header_row: int = Field(default=0, ge=0)
    primary_entity: EntityType
    status: TabStatus = "active"


class ColumnMappingIn(BaseModel):
    source_column: str
    source_column_index: int = Field(ge=0)
    category: ColumnCategory = "skip"
    target_field: str | None = None
    authority: Authority = "reference"
    is_key: bool = False
    transform_type: str | None = None
    transform_config: dict[str, Any] | None = None


class ColumnMappingResponse(ColumnMappingIn):
    id: uuid.UUID

    model_config = {"from_attributes": True}


class TabMappingResponse(TabMappingCreate):
    id: uuid.UUID
    source_id: uuid.UUID
    header_confirmed: bool
    position: int
    columns: list[ColumnMappingResponse] = []

    model_config = {"from_attributes": True}


class TabStatusUpdate(BaseModel):
    status: TabStatus


class ConfirmHeader(BaseModel):
    header_row: int | None = Field(default=None, ge=0)  # None = detect

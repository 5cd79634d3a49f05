"""Preview and sync report schemas - the stable output contracts."""

from __future__ import annotations

import uuid
from typing import Any, Literal

from pydantic import BaseModel, Field


class SyncIssue(BaseModel):
    row: int = 0  # 0 = tab-level
    column: str | None = None
    message: str
    severity: Literal["warning", "error"] = "warning"


class TabStats(BaseModel):
    rows_processed: int = 0
    rows_created: int = 0
    rows_updated: int = 0
    rows_skipped: int = 0
    errors: list[SyncIssue] = []


class EntityChange(BaseModel):
    entity: str
    key_field: str
    key_value: str
    type: Literal["create", "update", "skip"]
    fields: dict[str, Any] = {}
    existing: dict[str, Any] | None = None
    skip_reason: str | None = None


class TabPreviewResult(BaseModel):
    tab_id: uuid.UUID
    tab_name: str
    changes: list[EntityChange] = []
    stats: TabStats = Field(default_factory=TabStats)
    error: str | None = None
    error_kind: str | None = None


class PreviewRequest(BaseModel):
    tab_ids: list[uuid.UUID] | None = None
    row_limit: int | None = Field(default=None, gt=0)


class SourceSyncResult(BaseModel):
    source_name: str
    source_type: str
    tab_name: str
    success: bool
    fields_updated: list[str] = []
    error: str | None = None
    error_kind: str | None = None  # configuration, match, connector
    warnings: list[str] = []


class EntitySyncReport(BaseModel):
    entity_type: str
    entity_id: uuid.UUID
    synced: bool
    message: str
    fields_updated: list[str] = []
    sources: list[SourceSyncResult] = []
    sync_run_id: uuid.UUID | None = None

"""Sync run bookkeeping and per-field lineage."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, UUIDMixin, TimestampMixin


class SyncRun(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "sync_run"

    kind: Mapped[str] = mapped_column(String(20))  # preview, entity
    status: Mapped[str] = mapped_column(String(20), default="running")  # running/completed/failed
    source_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, default=None, index=True)
    entity_type: Mapped[str | None] = mapped_column(String(50), default=None)
    entity_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, default=None, index=True)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    rows_processed: Mapped[int] = mapped_column(Integer, default=0)
    rows_created: Mapped[int] = mapped_column(Integer, default=0)
    rows_updated: Mapped[int] = mapped_column(Integer, default=0)
    rows_skipped: Mapped[int] = mapped_column(Integer, default=0)
    errors: Mapped[list | None] = mapped_column(JSON, default=None)
    triggered_by: Mapped[str | None] = mapped_column(String(100), default=None)

    def __repr__(self) -> str:
        return f"<SyncRun {self.kind} {self.status}>"


class FieldLineage(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "field_lineage"

    entity_type: Mapped[str] = mapped_column(String(50), index=True)
    entity_id: Mapped[uuid.UUID] = mapped_column(Uuid, index=True)
    field_name: Mapped[str] = mapped_column(String(100))
    source_type: Mapped[str] = mapped_column(String(50))
    source_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, default=None)
    source_ref: Mapped[str] = mapped_column(Text)  # "source → tab → column"
    previous_value: Mapped[Any] = mapped_column(JSON, default=None)
    new_value: Mapped[Any] = mapped_column(JSON, default=None)
    sync_run_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("sync_run.id", ondelete="SET NULL"), default=None
    )

    def __repr__(self) -> str:
        return f"<FieldLineage {self.entity_type}.{self.field_name}>"

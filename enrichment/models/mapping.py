"""TabMapping and ColumnMapping models - the declarative sync configuration."""

from __future__ import annotations

import uuid

from sqlalchemy import JSON, Boolean, ForeignKey, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, UUIDMixin, TimestampMixin

# Only "active" tabs are synced; the rest are operator workflow states.
TAB_STATUSES = ("active", "reference", "hidden", "flagged")

COLUMN_CATEGORIES = (
    "partner_field",
    "staff_field",
    "product_field",
    "weekly_timeline",
    "computed",
    "skip",
)
CANONICAL_CATEGORIES = frozenset({"partner_field", "staff_field", "product_field"})

AUTHORITIES = ("source_of_truth", "reference", "derived")


class TabMapping(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "tab_mapping"
    __table_args__ = (UniqueConstraint("source_id", "tab_name", name="uq_tab_source_name"),)

    source_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("data_source.id", ondelete="RESTRICT"), index=True
    )
    tab_name: Mapped[str] = mapped_column(String(200))
    header_row: Mapped[int] = mapped_column(Integer, default=0)
    primary_entity: Mapped[str] = mapped_column(String(50), index=True)  # partners/staff/products
    status: Mapped[str] = mapped_column(String(20), default="active", index=True)
    header_confirmed: Mapped[bool] = mapped_column(Boolean, default=False)
    position: Mapped[int] = mapped_column(Integer, default=0)

    # Relationships
    source: Mapped["DataSource"] = relationship(back_populates="tab_mappings")  # noqa: F821
    columns: Mapped[list["ColumnMapping"]] = relationship(
        back_populates="tab_mapping", cascade="all, delete-orphan",
        order_by="ColumnMapping.source_column_index"
    )

    def __repr__(self) -> str:
        return f"<TabMapping {self.tab_name!r} -> {self.primary_entity}>"


class ColumnMapping(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "column_mapping"
    __table_args__ = (
        UniqueConstraint("tab_mapping_id", "source_column", name="uq_column_tab_source"),
    )

    tab_mapping_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tab_mapping.id", ondelete="CASCADE"), index=True
    )
    source_column: Mapped[str] = mapped_column(String(255))
    source_column_index: Mapped[int] = mapped_column(Integer, default=0)
    category: Mapped[str] = mapped_column(String(30), default="skip")
    target_field: Mapped[str | None] = mapped_column(String(100), default=None)
    authority: Mapped[str] = mapped_column(String(20), default="reference")
    is_key: Mapped[bool] = mapped_column(Boolean, default=False)
    transform_type: Mapped[str | None] = mapped_column(String(30), default=None)
    transform_config: Mapped[dict | None] = mapped_column(JSON, default=None)

    tab_mapping: Mapped["TabMapping"] = relationship(back_populates="columns")

    def __repr__(self) -> str:
        return f"<ColumnMapping {self.source_column!r} -> {self.target_field}>"

"""Data source model - one configured external system."""

from __future__ import annotations

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, UUIDMixin, TimestampMixin


class DataSource(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "data_source"

    name: Mapped[str] = mapped_column(String(200))
    type: Mapped[str] = mapped_column(String(50), index=True)  # google_sheet, bigquery, slack
    connection_config: Mapped[dict] = mapped_column(JSON, default=dict)

    tab_mappings: Mapped[list["TabMapping"]] = relationship(  # noqa: F821
        back_populates="source", order_by="TabMapping.position"
    )

    def __repr__(self) -> str:
        return f"<DataSource {self.name!r} ({self.type})>"

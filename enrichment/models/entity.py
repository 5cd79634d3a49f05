"""Canonical business entities: partners, staff and products."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, Float, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, UUIDMixin, TimestampMixin, SourceDataMixin


class Partner(UUIDMixin, TimestampMixin, SourceDataMixin, Base):
    __tablename__ = "partners"

    brand_name: Mapped[str] = mapped_column(String(200), index=True)
    partner_code: Mapped[str | None] = mapped_column(String(50), default=None, index=True)
    client_name: Mapped[str | None] = mapped_column(String(200), default=None)
    client_email: Mapped[str | None] = mapped_column(String(255), default=None)
    status: Mapped[str | None] = mapped_column(String(50), default=None)
    tier: Mapped[str | None] = mapped_column(String(50), default=None)
    pod_leader_name: Mapped[str | None] = mapped_column(String(200), default=None)
    brand_manager_name: Mapped[str | None] = mapped_column(String(200), default=None)
    onboarding_date: Mapped[str | None] = mapped_column(String(40), default=None)  # ISO
    monthly_fee: Mapped[float | None] = mapped_column(Float, default=None)
    notes: Mapped[str | None] = mapped_column(Text, default=None)
    metadata_json: Mapped[dict | None] = mapped_column(JSON, default=None)

    # Derived from the raw capture after each sync.
    computed_partner_type: Mapped[str | None] = mapped_column(String(30), default=None)
    computed_partner_type_source: Mapped[str | None] = mapped_column(String(30), default=None)
    staffing_partner_type: Mapped[str | None] = mapped_column(String(30), default=None)
    legacy_partner_type_raw: Mapped[str | None] = mapped_column(String(200), default=None)
    legacy_partner_type: Mapped[str | None] = mapped_column(String(30), default=None)
    partner_type_matches: Mapped[bool | None] = mapped_column(Boolean, default=None)
    partner_type_is_shared: Mapped[bool | None] = mapped_column(Boolean, default=None)
    partner_type_reason: Mapped[str | None] = mapped_column(Text, default=None)
    partner_type_computed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )

    CANONICAL_FIELDS = (
        "brand_name", "partner_code", "client_name", "client_email", "status", "tier",
        "pod_leader_name", "brand_manager_name", "onboarding_date", "monthly_fee",
        "notes", "metadata_json",
    )

    def __repr__(self) -> str:
        return f"<Partner {self.brand_name!r}>"


class Staff(UUIDMixin, TimestampMixin, SourceDataMixin, Base):
    __tablename__ = "staff"

    full_name: Mapped[str] = mapped_column(String(200))
    email: Mapped[str | None] = mapped_column(String(255), default=None, index=True)
    staff_code: Mapped[str | None] = mapped_column(String(50), default=None, index=True)
    role: Mapped[str | None] = mapped_column(String(100), default=None)
    department: Mapped[str | None] = mapped_column(String(100), default=None)
    status: Mapped[str | None] = mapped_column(String(50), default=None)
    slack_user_id: Mapped[str | None] = mapped_column(String(50), default=None)
    timezone: Mapped[str | None] = mapped_column(String(64), default=None)
    hire_date: Mapped[str | None] = mapped_column(String(40), default=None)
    max_clients: Mapped[float | None] = mapped_column(Float, default=None)
    is_active: Mapped[bool | None] = mapped_column(Boolean, default=None)

    CANONICAL_FIELDS = (
        "full_name", "email", "staff_code", "role", "department", "status",
        "slack_user_id", "timezone", "hire_date", "max_clients", "is_active",
    )

    def __repr__(self) -> str:
        return f"<Staff {self.full_name!r}>"


class Product(UUIDMixin, TimestampMixin, SourceDataMixin, Base):
    __tablename__ = "products"

    name: Mapped[str] = mapped_column(String(200))
    sku: Mapped[str | None] = mapped_column(String(100), default=None, index=True)
    asin: Mapped[str | None] = mapped_column(String(20), default=None, index=True)
    partner_code: Mapped[str | None] = mapped_column(String(50), default=None)
    category: Mapped[str | None] = mapped_column(String(100), default=None)
    status: Mapped[str | None] = mapped_column(String(50), default=None)
    price: Mapped[float | None] = mapped_column(Float, default=None)
    launch_date: Mapped[str | None] = mapped_column(String(40), default=None)

    CANONICAL_FIELDS = (
        "name", "sku", "asin", "partner_code", "category", "status", "price", "launch_date",
    )

    def __repr__(self) -> str:
        return f"<Product {self.name!r}>"

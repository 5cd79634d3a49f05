"""Health and readiness checks."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from ..connectors.registry import ConnectorRegistry
from ..config import settings
from ..database import get_db
from ..deps import get_registry

router = APIRouter()


@router.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    await db.execute(text("SELECT 1"))
    return {"status": "healthy", "service": "enrichment"}


@router.get("/ready")
async def readiness_check(
    db: AsyncSession = Depends(get_db),
    registry: ConnectorRegistry = Depends(get_registry),
):
    await db.execute(text("SELECT 1"))
    return {
        "status": "ready",
        "service": "enrichment",
        "connectors": [c.id for c in registry.all()],
        "credentials": {
            "google_sheet": settings.google_configured,
            "bigquery": settings.bigquery_configured,
            "slack": settings.slack_configured,
        },
    }

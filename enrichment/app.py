"""FastAPI application for the enrichment service."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from .config import settings
from .connectors import build_default_registry
from .sync.locks import EntityLockRegistry


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Auto-create tables for SQLite (local dev)
    if "sqlite" in settings.database_url:
        from .database import create_all
        await create_all()
    yield


app = FastAPI(
    title=settings.app_title,
    lifespan=lifespan,
    docs_url=None if settings.is_production else "/docs",
)

app.state.registry = build_default_registry(settings)
app.state.locks = EntityLockRegistry()

# Import and register routers
from .routers import health, mappings, sync  # noqa: E402

app.include_router(health.router)
app.include_router(mappings.router)
app.include_router(sync.router)

"""Async test fixtures for enrichment tests using SQLite."""

from __future__ import annotations

from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from enrichment.connectors.base import Connector, ConnectorMetadata, TabData
from enrichment.connectors.registry import ConnectorRegistry
from enrichment.database import get_db
from enrichment.deps import get_locks, get_registry
from enrichment.models import ColumnMapping, DataSource, Partner, TabMapping
from enrichment.models.base import Base
from enrichment.sync.locks import EntityLockRegistry


class FakeConnector(Connector):
    """In-memory connector; a tab mapped to an exception raises it on fetch."""

    def __init__(self, tabs: dict[str, TabData | Exception] | None = None, *,
                 type_id: str = "fake_sheet", capture_key: str = "fake"):
        self.metadata = ConnectorMetadata(id=type_id, name="Fake Sheet", capture_key=capture_key)
        self.tabs: dict[str, TabData | Exception] = tabs or {}
        self.calls: list[tuple[str, int]] = []

    def validate_config(self, config: dict[str, Any]) -> bool | str:
        if config.get("broken"):
            return "Config is broken"
        return True

    async def fetch(self, config: dict[str, Any], tab_name: str, header_row: int = 0) -> TabData:
        self.calls.append((tab_name, header_row))
        data = self.tabs.get(tab_name)
        if data is None:
            raise KeyError(tab_name)
        if isinstance(data, Exception):
            raise data
        return data


def column(source_column: str, target_field: str | None = None, **kwargs) -> dict[str, Any]:
    """Column mapping kwargs with partner-field defaults."""
    return {
        "source_column": source_column,
        "source_column_index": kwargs.pop("index", 0),
        "category": kwargs.pop("category", "partner_field" if target_field else "skip"),
        "target_field": target_field,
        "authority": kwargs.pop("authority", "reference"),
        "is_key": kwargs.pop("is_key", False),
        "transform_type": kwargs.pop("transform_type", None),
        "transform_config": kwargs.pop("transform_config", None),
    }


async def make_source(db: AsyncSession, name: str = "Master Sheet", type: str = "fake_sheet") -> DataSource:
    source = DataSource(name=name, type=type, connection_config={"spreadsheet_id": "abc"})
    db.add(source)
    await db.commit()
    return source


async def make_tab(
    db: AsyncSession,
    source: DataSource,
    tab_name: str,
    columns: list[dict[str, Any]],
    *,
    position: int = 0,
    primary_entity: str = "partners",
    status: str = "active",
    header_row: int = 0,
) -> TabMapping:
    tab = TabMapping(
        source_id=source.id,
        tab_name=tab_name,
        header_row=header_row,
        primary_entity=primary_entity,
        status=status,
        position=position,
    )
    tab.columns = [ColumnMapping(**c) for c in columns]
    db.add(tab)
    await db.commit()
    return tab


async def make_partner(db: AsyncSession, **fields) -> Partner:
    fields.setdefault("brand_name", "Acme Inc")
    partner = Partner(**fields)
    db.add(partner)
    await db.commit()
    return partner


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()


@pytest.fixture
def registry(connector: FakeConnector) -> ConnectorRegistry:
    return ConnectorRegistry([connector])


@pytest_asyncio.fixture
async def client(session_factory, registry):
    """HTTPX async test client against the enrichment app."""
    from enrichment.app import app

    locks = EntityLockRegistry()

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_registry] = lambda: registry
    app.dependency_overrides[get_locks] = lambda: locks

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()

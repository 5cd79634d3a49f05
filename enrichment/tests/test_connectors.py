"""Connector tests against mocked HTTP transports."""

from __future__ import annotations

import httpx
import pytest

from enrichment.config import EnrichmentSettings
from enrichment.connectors import build_default_registry
from enrichment.connectors.bigquery import BigQueryConnector
from enrichment.connectors.google_sheets import GoogleSheetsConnector
from enrichment.connectors.registry import ConnectorRegistry
from enrichment.connectors.slack import SlackConnector
from enrichment.sync.cache import TTLCache
from enrichment.sync.errors import (
    ConfigurationError,
    ConnectorAuthError,
    ConnectorError,
    ConnectorRateLimited,
    UnsupportedConnector,
)

SHEET_CONFIG = {"spreadsheet_id": "1AbCdEfGhIjKlMnOp"}


def sheets(handler, token: str | None = "tok") -> GoogleSheetsConnector:
    return GoogleSheetsConnector(
        base_url="https://sheets.test/v4",
        token=token,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_sheets_fetch_uses_header_row_and_pads_rows():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"values": [
            ["Partner Roster"],
            ["Brand Name", "Status", "Fee"],
            ["Acme Inc", "Active"],
            ["Globex", "Paused", "$10"],
        ]})

    data = await sheets(handler).fetch(SHEET_CONFIG, "Master List", header_row=1)

    assert data.headers == ["Brand Name", "Status", "Fee"]
    assert data.rows == [["Acme Inc", "Active", ""], ["Globex", "Paused", "$10"]]
    assert "Master List" in seen[0].url.path
    assert seen[0].headers["Authorization"] == "Bearer tok"


@pytest.mark.asyncio
async def test_sheets_header_row_past_end_is_empty():
    data = await sheets(lambda r: httpx.Response(200, json={"values": [["a"]]})).fetch(
        SHEET_CONFIG, "Tab", header_row=3
    )
    assert data.headers == [] and data.rows == []


@pytest.mark.asyncio
async def test_sheets_fetch_raw_keeps_every_row():
    rows = [["Title"], ["A", "B"], ["1", "2"]]
    raw = await sheets(lambda r: httpx.Response(200, json={"values": rows})).fetch_raw(SHEET_CONFIG, "Tab")
    assert raw == rows


def test_sheets_validate_config():
    connector = sheets(lambda r: httpx.Response(200))
    assert connector.validate_config(SHEET_CONFIG) is True
    assert connector.validate_config({}) == "Spreadsheet ID is required"
    assert connector.validate_config({"spreadsheet_id": "short"}) == "Invalid spreadsheet ID format"


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [401, 403])
async def test_auth_failures(status):
    with pytest.raises(ConnectorAuthError) as exc:
        await sheets(lambda r: httpx.Response(status)).fetch(SHEET_CONFIG, "Tab")
    assert exc.value.status_code == status
    assert exc.value.kind == "connector"


@pytest.mark.asyncio
async def test_rate_limit_carries_retry_after():
    handler = lambda r: httpx.Response(429, headers={"Retry-After": "30"})  # noqa: E731
    with pytest.raises(ConnectorRateLimited) as exc:
        await sheets(handler).fetch(SHEET_CONFIG, "Tab")
    assert exc.value.retry_after == 30.0


@pytest.mark.asyncio
async def test_server_error_and_transport_error():
    with pytest.raises(ConnectorError) as exc:
        await sheets(lambda r: httpx.Response(500)).fetch(SHEET_CONFIG, "Tab")
    assert exc.value.status_code == 500

    def boom(request):
        raise httpx.ConnectError("connection refused")

    with pytest.raises(ConnectorError):
        await sheets(boom).fetch(SHEET_CONFIG, "Tab")


@pytest.mark.asyncio
async def test_missing_token_is_auth_error():
    with pytest.raises(ConnectorAuthError):
        await sheets(lambda r: httpx.Response(200), token=None).fetch(SHEET_CONFIG, "Tab")


def bigquery(handler, **kwargs) -> BigQueryConnector:
    return BigQueryConnector(
        base_url="https://bq.test/v2",
        token="tok",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


@pytest.mark.asyncio
async def test_bigquery_schema_becomes_headers():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={
            "jobComplete": True,
            "schema": {"fields": [{"name": "brand_name"}, {"name": "spend"}]},
            "rows": [
                {"f": [{"v": "Acme Inc"}, {"v": "12.5"}]},
                {"f": [{"v": "Globex"}, {"v": None}]},
            ],
        })

    config = {"project_id": "proj", "dataset_id": "ads"}
    data = await bigquery(handler, row_limit=50).fetch(config, "pbi_sp_par_ads")

    assert data.headers == ["brand_name", "spend"]
    assert data.rows == [["Acme Inc", "12.5"], ["Globex", ""]]
    assert seen[0].url.path == "/v2/projects/proj/queries"
    body = seen[0].read().decode()
    assert "`proj.ads.pbi_sp_par_ads`" in body
    assert "LIMIT 50" in body


@pytest.mark.asyncio
async def test_bigquery_rejects_bad_view_and_incomplete_job():
    config = {"project_id": "proj", "dataset_id": "ads"}
    with pytest.raises(ConfigurationError):
        await bigquery(lambda r: httpx.Response(200, json={})).fetch(config, "x; DROP TABLE y")

    with pytest.raises(ConnectorError):
        await bigquery(lambda r: httpx.Response(200, json={"jobComplete": False})).fetch(config, "view")


def test_bigquery_validate_config():
    connector = bigquery(lambda r: httpx.Response(200))
    assert connector.validate_config({"project_id": "p", "dataset_id": "d"}) is True
    assert connector.validate_config({"project_id": "p"}) == "Dataset ID is required"
    assert connector.validate_config({"project_id": "p q", "dataset_id": "d"}) == "Invalid project id"


def slack(handler, **kwargs) -> SlackConnector:
    return SlackConnector(
        base_url="https://slack.test/api",
        token="xoxb",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


@pytest.mark.asyncio
async def test_slack_users_paginate_and_skip_bots():
    pages = {
        None: {"ok": True, "members": [
            {"id": "U1", "name": "sam", "profile": {"email": "sam@x.com", "display_name": "Sam"}},
            {"id": "B1", "name": "bot", "is_bot": True},
        ], "response_metadata": {"next_cursor": "c2"}},
        "c2": {"ok": True, "members": [
            {"id": "USLACKBOT", "name": "slackbot"},
            {"id": "U2", "name": "lee", "tz": "Europe/London"},
        ], "response_metadata": {"next_cursor": ""}},
    }
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        cursor = request.url.params.get("cursor")
        calls.append(cursor)
        return httpx.Response(200, json=pages[cursor])

    data = await slack(handler, page_size=2).fetch({}, "users")

    assert calls == [None, "c2"]
    assert data.headers[:5] == ["id", "name", "real_name", "display_name", "email"]
    assert [row[0] for row in data.rows] == ["U1", "U2"]
    assert data.rows[0][4] == "sam@x.com"

    with_bots = await slack(handler).fetch({"include_bots": True}, "users")
    assert len(with_bots.rows) == 4


@pytest.mark.asyncio
async def test_slack_directory_cache_avoids_refetch():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        return httpx.Response(200, json={"ok": True, "channels": [{"id": "C1", "name": "general"}]})

    connector = slack(handler, directory_cache=TTLCache(300))
    first = await connector.fetch({}, "channels")
    second = await connector.fetch({}, "channels")

    assert first.rows == second.rows
    assert len(calls) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error, exc_type",
    [
        ("invalid_auth", ConnectorAuthError),
        ("ratelimited", ConnectorRateLimited),
        ("channel_not_found", ConnectorError),
    ],
)
async def test_slack_api_errors(error, exc_type):
    handler = lambda r: httpx.Response(200, json={"ok": False, "error": error})  # noqa: E731
    with pytest.raises(exc_type):
        await slack(handler).fetch({}, "users")


@pytest.mark.asyncio
async def test_slack_unknown_tab():
    with pytest.raises(ConfigurationError):
        await slack(lambda r: httpx.Response(200)).fetch({}, "emoji")


def test_registry_lookup_and_capture_keys():
    registry = build_default_registry(EnrichmentSettings(_env_file=None))
    assert {m.id for m in registry.all()} == {"google_sheet", "bigquery", "slack"}
    assert registry.capture_key("google_sheet") == "gsheets"
    assert registry.capture_key("unknown") == "unknown"
    with pytest.raises(UnsupportedConnector):
        registry.get("airtable")

    with pytest.raises(ValueError):
        registry.register(registry.get("slack"))


def test_empty_registry():
    with pytest.raises(UnsupportedConnector):
        ConnectorRegistry().get("slack")

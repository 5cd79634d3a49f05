"""Tests for row ingestion and key matching."""

from __future__ import annotations

import pytest

from enrichment.connectors.base import TabData
from enrichment.sync.errors import KeyColumnNotFound, MissingKeyValue, NoMatchingRow
from enrichment.sync.matcher import (
    find_matching_row,
    normalize_key,
    require_key_value,
    resolve_key_column,
)
from enrichment.sync.rows import ingest


@pytest.fixture
def tab():
    return ingest(TabData(
        headers=["Brand Name", "Status", "", "Status", "Fee"],
        rows=[
            ["Globex", "Active", "x", "ignored", "100"],
            ["  acme inc ", "Paused", "y", "ignored"],
            ["Acme Inc", "Churned", "z", "ignored", "300"],
        ],
    ), header_row=2)


def test_ingest_addresses_rows_by_header(tab):
    row = tab.rows[0]
    assert row["Brand Name"] == "Globex"
    assert row["Fee"] == "100"
    # First duplicate header wins; blank headers are not addressable.
    assert row["Status"] == "Active"
    assert "" not in tab.columns
    assert row.capture() == {"Brand Name": "Globex", "Status": "Active", "Fee": "100"}


def test_short_rows_read_as_blank(tab):
    assert tab.rows[1]["Fee"] == ""
    assert tab.rows[1].get("Missing", "n/a") == "n/a"


def test_row_numbers_count_header_offset(tab):
    assert [r.number for r in tab.rows] == [4, 5, 6]


def test_resolve_key_column_exact_match(tab):
    assert resolve_key_column(tab, "Brand Name") == 0
    with pytest.raises(KeyColumnNotFound):
        resolve_key_column(tab, "brand name")


def test_match_is_case_and_whitespace_insensitive(tab):
    row = find_matching_row(tab, "Brand Name", "Acme Inc")
    # First match wins.
    assert row["Status"] == "Paused"


def test_no_match(tab):
    with pytest.raises(NoMatchingRow) as exc:
        find_matching_row(tab, "Brand Name", "Initech")
    assert "not found in this source" in exc.value.message


def test_missing_key_value():
    assert normalize_key("  MiXed ") == "mixed"
    assert normalize_key(None) == ""
    with pytest.raises(MissingKeyValue):
        require_key_value("   ", "brand_name")
    assert require_key_value("Acme", "brand_name") == "Acme"

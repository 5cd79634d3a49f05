"""Tests for authority-ranked merging."""

from __future__ import annotations

from enrichment.sync.authority import FieldMerger, authority_rank, outranks_or_equals


def test_rank_order():
    assert authority_rank("derived") < authority_rank("reference") < authority_rank("source_of_truth")
    assert authority_rank(None) == authority_rank("derived")


def test_comparator():
    assert outranks_or_equals("source_of_truth", "reference")
    assert outranks_or_equals("reference", "reference")
    assert not outranks_or_equals("reference", "source_of_truth")
    assert not outranks_or_equals("derived", "reference")


def test_higher_authority_declared_last_wins():
    merger = FieldMerger()
    assert merger.offer("status", "Active", "reference", "Sheet → X → Status")
    assert merger.offer("status", "Paused", "source_of_truth", "Sheet → Y → Status")
    assert merger.values == {"status": "Paused"}
    assert merger.rejected == []


def test_higher_authority_declared_first_is_kept():
    merger = FieldMerger()
    assert merger.offer("status", "Paused", "source_of_truth", "Sheet → Y → Status")
    assert not merger.offer("status", "Active", "reference", "Sheet → X → Status")
    assert merger.values == {"status": "Paused"}
    assert len(merger.rejected) == 1
    assert "ignored" in merger.rejected[0].message


def test_equal_rank_is_last_write_wins():
    merger = FieldMerger()
    merger.offer("tier", "Gold", "reference", "a")
    merger.offer("tier", "Silver", "reference", "b")
    assert merger.values["tier"] == "Silver"
    assert merger.writes()["tier"].origin == "b"
    assert "tier" in merger and len(merger) == 1

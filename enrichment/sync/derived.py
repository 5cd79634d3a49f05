"""Derived fields computed from the merged raw capture after a sync.

Partners get a computed partner type: the app-side type inferred from staffing
signals (pod leader, brand manager, conversion strategist), with the legacy
"Partner type" column kept alongside for comparison so operators can spot
drift between the two.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable

from .raw_store import iter_captured_values

PARTNER_TYPE_LABELS: dict[str, str] = {
    "ppc_basic": "PPC Basic",
    "sophie_ppc": "The Sophie PPC Partnership",
    "cc": "CC",
    "fam": "FAM",
    "pli": "PLI",
    "tiktok": "TTS",
}

# Placeholders operators type when nobody is assigned.
_UNASSIGNED = frozenset({"no", "na", "nna", "none", "null", "nill", "unassigned"})

_POD_LEADER_HEADERS = ("POD Leader", "Pod Leader", "Pod lead")
_BRAND_MANAGER_HEADERS = ("Brand Manager", "Brand manager")
_CONVERSION_HEADERS = ("Conversion Strategist", "Conversion strategist")
_PARTNER_TYPE_HEADERS = ("Partner type", "Partner Type")


def _normalize(text: str) -> str:
    return re.sub(r"[^a-z0-9]", "", text.lower())


def _first_meaningful(*values: str | None) -> str | None:
    for value in values:
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _has_assignment(value: str | None) -> bool:
    if not value:
        return False
    normalized = _normalize(value)
    return bool(normalized) and normalized not in _UNASSIGNED


def captured_value(source_data: dict | None, headers: tuple[str, ...]) -> str | None:
    """First non-blank raw value under any of ``headers`` across all tabs."""
    wanted = {_normalize(h) for h in headers}
    for _, _, header, value in iter_captured_values(source_data):
        if _normalize(header) in wanted and isinstance(value, str) and value.strip():
            return value.strip()
    return None


def map_legacy_partner_type(raw: str | None) -> str | None:
    if not raw:
        return None
    n = _normalize(raw)
    if "ppcpremium" in n or "sophieppc" in n or "partnership" in n:
        return "sophie_ppc"
    if "contentpremium" in n or "onlycontent" in n:
        return "cc"
    if n == "fam" or "fullaccountmanagement" in n:
        return "fam"
    if "t0" in n or "productincubator" in n:
        return "pli"
    if "ppcclient" in n or "ppcbasic" in n:
        return "ppc_basic"
    if "tts" in n or "tiktok" in n:
        return "tiktok"
    return None


@dataclass(frozen=True)
class StaffingSignal:
    partner_type: str | None
    is_shared: bool
    reason: str


def staffing_partner_type(
    source_data: dict | None,
    pod_leader_name: str | None,
    brand_manager_name: str | None,
) -> StaffingSignal:
    pod_leader = _first_meaningful(pod_leader_name, captured_value(source_data, _POD_LEADER_HEADERS))
    brand_manager = _first_meaningful(
        brand_manager_name, captured_value(source_data, _BRAND_MANAGER_HEADERS)
    )
    # No canonical field for this one yet, so it only comes from raw tab data.
    strategist = captured_value(source_data, _CONVERSION_HEADERS)

    has_pod = _has_assignment(pod_leader)
    has_bm = _has_assignment(brand_manager)
    has_cs = _has_assignment(strategist)

    if has_bm and has_pod:
        reason = (
            "Brand Manager + PPC Strategist + Conversion Strategist -> shared FAM + PPC support"
            if has_cs else "Brand Manager + PPC Strategist -> shared FAM + PPC Basic"
        )
        return StaffingSignal("fam", True, reason)
    if has_bm:
        reason = (
            "Brand Manager without PPC Strategist -> FAM owns PPC/CC"
            if has_cs else
            "Brand Manager without PPC Strategist/Conversion Strategist -> FAM handling PPC/CC under pod"
        )
        return StaffingSignal("fam", False, reason)
    if has_pod and has_cs:
        return StaffingSignal(
            "sophie_ppc", False, "PPC Strategist + Conversion Strategist -> The Sophie PPC Partnership"
        )
    if has_pod:
        return StaffingSignal("ppc_basic", False, "PPC Strategist present -> PPC Basic")
    return StaffingSignal(None, False, "No staffing-derived partner type signals")


def compute_partner_type_fields(
    *,
    source_data: dict | None,
    pod_leader_name: str | None = None,
    brand_manager_name: str | None = None,
    computed_at: datetime | None = None,
) -> dict[str, Any]:
    """Persisted partner-type columns for the merged raw capture."""
    legacy_raw = captured_value(source_data, _PARTNER_TYPE_HEADERS)
    legacy = map_legacy_partner_type(legacy_raw)
    staffing = staffing_partner_type(source_data, pod_leader_name, brand_manager_name)

    computed = staffing.partner_type or legacy
    if staffing.partner_type:
        computed_source = "staffing"
    elif legacy:
        computed_source = "legacy_partner_type"
    else:
        computed_source = "unknown"

    reason = staffing.reason
    if staffing.partner_type and legacy and staffing.partner_type != legacy:
        reason += f"; legacy Partner type maps to {PARTNER_TYPE_LABELS[legacy]}"
    elif not staffing.partner_type and legacy:
        reason = "No staffing signal; falling back to legacy Partner type"

    return {
        "computed_partner_type": computed,
        "computed_partner_type_source": computed_source,
        "staffing_partner_type": staffing.partner_type,
        "legacy_partner_type_raw": legacy_raw,
        "legacy_partner_type": legacy,
        "partner_type_matches": not (staffing.partner_type and legacy) or staffing.partner_type == legacy,
        "partner_type_is_shared": staffing.is_shared,
        "partner_type_reason": reason,
        "partner_type_computed_at": computed_at or datetime.now(timezone.utc),
    }


@dataclass(frozen=True)
class DerivedFieldHook:
    """Named canonical inputs plus the function computing extra fields."""

    inputs: tuple[str, ...]
    compute: Callable[..., dict[str, Any]]

    def __call__(self, source_data: dict, merged: dict[str, Any], entity: Any) -> dict[str, Any]:
        named: dict[str, Any] = {}
        for name in self.inputs:
            value = merged[name] if name in merged else getattr(entity, name, None)
            named[name] = value.strip() or None if isinstance(value, str) else None
        return self.compute(source_data=source_data, **named)


DERIVED_FIELD_HOOKS: dict[str, DerivedFieldHook] = {
    "partners": DerivedFieldHook(
        inputs=("pod_leader_name", "brand_manager_name"),
        compute=compute_partner_type_fields,
    ),
}

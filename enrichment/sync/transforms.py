"""Named value transforms applied to raw cell strings.

Every transform is pure: the same cell and config always yield the same value,
which keeps previews and real syncs in agreement. ``apply_transform`` never
raises; failures come back as ``TransformFailed`` so the caller can record a
warning and move on to the next column.
"""

from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Union

from .errors import TransformError

TRUTHY = frozenset({"true", "yes", "y", "1", "on", "active", "enabled"})
FALSY = frozenset({"false", "no", "n", "0", "off", "inactive", "disabled"})

_SLASH_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{2}|\d{4})$")
_CURRENCY_CHARS = re.compile(r"[$£€,\s]")
_TEXT_DATE_FORMATS = ("%b %d, %Y", "%B %d, %Y", "%d %b %Y", "%d %B %Y", "%Y/%m/%d")


@dataclass(frozen=True)
class TransformOk:
    value: Any

    ok = True


@dataclass(frozen=True)
class TransformFailed:
    error: TransformError

    ok = False


TransformResult = Union[TransformOk, TransformFailed]


def _flag(config: dict, key: str) -> bool:
    value = config.get(key, False)
    if not isinstance(value, bool):
        raise TransformError(f"'{key}' must be true or false, got {value!r}")
    return value


def _identity(value: str, config: dict) -> Any:
    return value


def _trim(value: str, config: dict) -> Any:
    return value.strip()


def _lowercase(value: str, config: dict) -> Any:
    return value.lower()


def _uppercase(value: str, config: dict) -> Any:
    return value.upper()


def _parse_date(text: str) -> datetime | None:
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        pass

    match = _SLASH_DATE.match(text)
    if match:
        month, day, year = match.groups()
        full_year = int(year) + 2000 if len(year) == 2 else int(year)
        try:
            return datetime(full_year, int(month), int(day))
        except ValueError:
            return None

    for fmt in _TEXT_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def _date(value: str, config: dict) -> Any:
    fmt = config.get("format")
    if fmt not in (None, "iso", "date_only"):
        raise TransformError(f"Unsupported date format option {fmt!r}")

    trimmed = value.strip()
    if not trimmed:
        return None

    parsed = _parse_date(trimmed)
    if parsed is None:
        raise TransformError(f"Could not parse date {trimmed!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    parsed = parsed.astimezone(timezone.utc)
    if fmt == "date_only":
        return parsed.date().isoformat()
    return parsed.isoformat()


def _to_float(cleaned: str, original: str) -> float:
    try:
        num = float(cleaned)
    except ValueError:
        raise TransformError(f"Not a number: {original!r}") from None
    if not math.isfinite(num):
        raise TransformError(f"Not a finite number: {original!r}")
    return num


def _currency(value: str, config: dict) -> Any:
    as_cents = _flag(config, "as_cents")
    trimmed = value.strip()
    if not trimmed:
        return None

    num = _to_float(_CURRENCY_CHARS.sub("", trimmed), trimmed)
    if as_cents:
        return round(num * 100)
    return num


def _number(value: str, config: dict) -> Any:
    integer = _flag(config, "integer")
    trimmed = value.strip()
    if not trimmed:
        return None

    num = _to_float(trimmed.replace(",", ""), trimmed)
    return int(num) if integer else num


def _boolean(value: str, config: dict) -> Any:
    default = config.get("default_value")
    if default is not None and not isinstance(default, bool):
        raise TransformError(f"'default_value' must be a boolean, got {default!r}")

    lowered = value.strip().lower()
    if lowered in TRUTHY:
        return True
    if lowered in FALSY:
        return False
    return default


def _json(value: str, config: dict) -> Any:
    trimmed = value.strip()
    if not trimmed:
        return None
    try:
        return json.loads(trimmed)
    except json.JSONDecodeError as e:
        raise TransformError(f"Invalid JSON: {e.msg}") from None


def _value_mapping(value: str, config: dict) -> Any:
    mappings = config.get("mappings", {})
    if not isinstance(mappings, dict):
        raise TransformError("'mappings' must be an object of source -> target values")
    default = config.get("default")

    trimmed = value.strip()
    if not trimmed:
        return default
    if trimmed in mappings:
        return mappings[trimmed]

    lowered = trimmed.lower()
    for key, mapped in mappings.items():
        if str(key).lower() == lowered:
            return mapped
    return default


TRANSFORMS: dict[str, Callable[[str, dict], Any]] = {
    "none": _identity,
    "trim": _trim,
    "lowercase": _lowercase,
    "uppercase": _uppercase,
    "date": _date,
    "currency": _currency,
    "number": _number,
    "boolean": _boolean,
    "json": _json,
    "value_mapping": _value_mapping,
}


def is_valid_transform(transform_type: str | None) -> bool:
    return transform_type is None or transform_type in TRANSFORMS


def apply_transform(
    raw_value: str | None,
    transform_type: str | None,
    transform_config: dict | None = None,
) -> TransformResult:
    """Convert one raw cell. Never raises."""
    name = transform_type or "none"
    fn = TRANSFORMS.get(name)
    if fn is None:
        return TransformFailed(TransformError(f"Unknown transform '{name}'", name))

    if transform_config is not None and not isinstance(transform_config, dict):
        return TransformFailed(TransformError("Transform config must be an object", name))

    try:
        return TransformOk(fn(raw_value or "", transform_config or {}))
    except TransformError as e:
        e.transform_type = name
        return TransformFailed(e)
    except (TypeError, ValueError, AttributeError) as e:
        return TransformFailed(TransformError(f"Transform failed: {e}", name))

# brewdash/tanks/sanitizer.py
from __future__ import annotations

import json
import re
from collections.abc import Mapping
from typing import Any, Dict

from .state import STATUS_VALUES, TankRecord


TANK_ID_RE = re.compile(r"^F\d+$", re.IGNORECASE | re.ASCII)
MAX_TANKS = 300

_FALSE_STRINGS = ("", "0", "false", "no", "off")


def safe_str(value: Any, default: str = "") -> str:
    if value is None:
        return default
    return str(value)


def safe_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_STRINGS
    return bool(value)


def is_tank_id(key: Any) -> bool:
    return isinstance(key, str) and TANK_ID_RE.fullmatch(key) is not None


def normalize_row(row: Any) -> TankRecord:
    r = row if isinstance(row, Mapping) else {}

    status = safe_str(r.get("status"), "auto").strip().lower()
    if status not in STATUS_VALUES:
        status = "auto"

    return TankRecord(
        show=safe_bool(r.get("show", False)),
        beer=safe_str(r.get("beer")),
        style=safe_str(r.get("style")),
        abv=safe_str(r.get("abv")),
        ibu=safe_str(r.get("ibu")),
        capacity=safe_str(r.get("capacity"), "150L"),
        temp=safe_str(r.get("temp")),
        start=safe_str(r.get("start")),
        end=safe_str(r.get("end")),
        status=status,  # type: ignore[arg-type]
        limited=safe_bool(r.get("limited", False)),
    )


def sanitize_records(obj: Any, max_tanks: int = MAX_TANKS) -> Dict[str, TankRecord]:
    """
    Untrusted mapping -> {canonical tank id: TankRecord}.

    Keys that are not tank ids are skipped, the rest are upper-cased.
    Stops after max_tanks accepted entries. Never raises.
    """
    if not isinstance(obj, Mapping):
        return {}

    out: Dict[str, TankRecord] = {}
    for key, row in obj.items():
        if len(out) >= max_tanks:
            break
        if not is_tank_id(key):
            continue
        out[key.upper()] = normalize_row(row)
    return out


def records_to_dict(records: Dict[str, TankRecord]) -> Dict[str, Dict[str, Any]]:
    return {tank_id: rec.to_dict() for tank_id, rec in records.items()}


def records_to_json(records: Dict[str, TankRecord]) -> str:
    return json.dumps(records_to_dict(records), ensure_ascii=False)

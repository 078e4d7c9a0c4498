# brewdash/tanks/view.py
from __future__ import annotations

import math
import re
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Tuple

from .phase import calc_progress, days_since, format_md
from .state import Phase, TankRecord


UNNAMED = "（未命名）"
PLACEHOLDER = "--"

BADGES: Dict[str, str] = {
    "fermenting": "发酵中",
    "cooling": "降温中",
    "ready": "即将开罐",
}

_TANK_NO_RE = re.compile(r"^F(\d+)$", re.IGNORECASE)
_DIGITS_RE = re.compile(r"\d+")


@dataclass
class TankView:
    id: str
    no: int
    limited: bool

    beer: str
    style: str
    abv: str
    ibu: str
    capacity: str

    temp: str
    temp_value: float

    start_md: str
    end_md: str

    progress: int                # 0..100
    day: Optional[int]
    dayText: str
    status: Phase
    badgeCN: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def tank_no(tank_id: str) -> int:
    m = _TANK_NO_RE.fullmatch(tank_id or "")
    if m:
        return int(m.group(1))
    n = _DIGITS_RE.search(str(tank_id or ""))
    return int(n.group(0)) if n else 0


def _or(value: str, placeholder: str) -> str:
    s = (value or "").strip()
    return s if s else placeholder


def format_abv(value: str) -> str:
    s = (value or "").strip()
    if not s:
        return PLACEHOLDER
    if "%" in s:
        return s
    try:
        n = float(s)
    except ValueError:
        return s
    if not math.isfinite(n):
        return s
    # 5 -> "5%", 5.50 -> "5.5%"
    return f"{n:g}%"


def visible_sorted(records: Dict[str, TankRecord]) -> List[Tuple[str, TankRecord]]:
    rows = [(tank_id, rec) for tank_id, rec in records.items() if rec.show is True]
    rows.sort(key=lambda item: tank_no(item[0]))
    return rows


def build_view(
    tank_id: str,
    rec: TankRecord,
    phase: Phase,
    temp_text: str,
    temp_value: float,
    now_ms: int,
) -> TankView:
    day = days_since(rec.start, now_ms)
    return TankView(
        id=tank_id,
        no=tank_no(tank_id),
        limited=rec.limited is True,
        beer=_or(rec.beer, UNNAMED),
        style=_or(rec.style, PLACEHOLDER),
        abv=format_abv(rec.abv),
        ibu=_or(rec.ibu, PLACEHOLDER),
        capacity=_or(rec.capacity, PLACEHOLDER),
        temp=temp_text,
        temp_value=temp_value,
        start_md=format_md(rec.start),
        end_md=format_md(rec.end),
        progress=calc_progress(rec.start, rec.end, now_ms),
        day=day,
        dayText="DAY --" if day is None else f"DAY {day}",
        status=phase,
        badgeCN=BADGES.get(phase, BADGES["fermenting"]),
    )

# brewdash/tanks/phase.py
from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Optional, Tuple

from .state import Phase, clamp


DAY_MS = 86_400_000
DEFAULT_COOLDOWN_MS = 10 * DAY_MS

OVERRIDES = ("fermenting", "cooling", "ready")


def parse_timestamp(text: Optional[str]) -> Optional[int]:
    """Date / datetime string -> epoch ms. Naive values are read as UTC."""
    if not text:
        return None
    s = str(text).strip().replace("/", "-")
    if not s:
        return None
    if s.endswith(("Z", "z")):
        s = s[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(s)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    try:
        return int(dt.timestamp() * 1000)
    except (OverflowError, ValueError, OSError):
        return None


def cooling_window(start_ms: Optional[int], end_ms: Optional[int], cooldown_ms: int = DEFAULT_COOLDOWN_MS) -> Optional[Tuple[int, int]]:
    """(cool_start, end) or None when there is no valid end date."""
    if end_ms is None:
        return None
    cool_start = end_ms - cooldown_ms
    if start_ms is not None:
        cool_start = max(cool_start, start_ms)
    # end before start: the window collapses onto end
    cool_start = min(cool_start, end_ms)
    return cool_start, end_ms


def resolve_phase(
    status: str,
    start: str,
    end: str,
    now_ms: int,
    cooldown_ms: int = DEFAULT_COOLDOWN_MS,
) -> Phase:
    st = (status or "auto").strip().lower()
    if st in OVERRIDES:
        return st  # type: ignore[return-value]

    window = cooling_window(parse_timestamp(start), parse_timestamp(end), cooldown_ms)
    if window is None:
        return "fermenting"

    cool_start, end_ms = window
    if now_ms > end_ms:
        return "ready"
    if now_ms >= cool_start:
        return "cooling"
    return "fermenting"


def calc_progress(start: str, end: str, now_ms: int) -> int:
    s = parse_timestamp(start)
    e = parse_timestamp(end)
    if s is None or e is None or e <= s:
        return 0
    p = (now_ms - s) / (e - s) * 100.0
    # round half up
    return int(math.floor(clamp(p, 0.0, 100.0) + 0.5))


def days_since(start: str, now_ms: int) -> Optional[int]:
    s = parse_timestamp(start)
    if s is None:
        return None
    ms = now_ms - s
    if ms < 0:
        return 0
    return ms // DAY_MS + 1


def format_md(text: str) -> str:
    ms = parse_timestamp(text)
    if ms is None:
        return "--/--"
    try:
        d = datetime.fromtimestamp(ms / 1000, tz=timezone.utc)
    except (OverflowError, ValueError, OSError):
        # parses, but falls outside the representable years once in UTC
        return "--/--"
    return f"{d.month:02d}/{d.day:02d}"

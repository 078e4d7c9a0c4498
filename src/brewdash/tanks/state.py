from __future__ import annotations

import json
import math
from dataclasses import asdict, dataclass
from typing import Any, Dict, Literal, Optional


Phase = Literal["fermenting", "cooling", "ready"]
StatusOverride = Literal["auto", "fermenting", "cooling", "ready"]

STATUS_VALUES = ("auto", "fermenting", "cooling", "ready")


# default clamp function
def clamp(x: float, lo: float, hi: float) -> float:
    return lo if x < lo else hi if x > hi else x


@dataclass
class TankRecord:
    show: bool = False
    beer: str = ""
    style: str = ""
    abv: str = ""
    ibu: str = ""
    capacity: str = "150L"
    temp: str = ""        # manual setpoint, may carry a unit suffix
    start: str = ""
    end: str = ""
    status: StatusOverride = "auto"
    limited: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class TemperatureState:
    setpoint: float
    final_temp: float
    current: float        # unrounded; round only for display
    updated_ms: int       # start of the last update bucket, epoch ms

    # inputs the targets were derived from (reset detection)
    seen_temp: str = ""
    seen_start: str = ""
    seen_end: str = ""

    def to_json(self) -> str:
        return json.dumps(asdict(self), separators=(",", ":"))

    @classmethod
    def from_json(cls, raw: Any) -> Optional["TemperatureState"]:
        """Parse a stored state; anything unreadable counts as missing."""
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8", errors="replace")
        try:
            obj = json.loads(raw)
        except (TypeError, ValueError):
            return None
        if not isinstance(obj, dict):
            return None
        try:
            state = cls(
                setpoint=float(obj["setpoint"]),
                final_temp=float(obj["final_temp"]),
                current=float(obj["current"]),
                updated_ms=int(obj["updated_ms"]),
                seen_temp=str(obj.get("seen_temp", "")),
                seen_start=str(obj.get("seen_start", "")),
                seen_end=str(obj.get("seen_end", "")),
            )
        except (KeyError, TypeError, ValueError):
            return None
        if not all(math.isfinite(v) for v in (state.setpoint, state.final_temp, state.current)):
            return None
        return state

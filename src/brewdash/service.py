# brewdash/service.py
from __future__ import annotations

import hmac
import logging
import time
from collections.abc import Mapping
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional

from .config import ServiceConfig
from .errors import AuthError, ValidationError
from .store import TankStore
from .tanks.engine import TemperatureEngine
from .tanks.phase import resolve_phase
from .tanks.sanitizer import records_to_dict, sanitize_records
from .tanks.state import TankRecord, TemperatureState
from .tanks.view import TankView, build_view, visible_sorted


logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


def extract_secret(headers: Mapping[str, str]) -> str:
    raw = (
        headers.get("x-admin-pass")
        or headers.get("x-admin-password")
        or headers.get("authorization")
        or ""
    )
    s = str(raw).strip()
    if s.lower().startswith("bearer "):
        s = s[7:]
    return s.strip()


def check_secret(cfg: ServiceConfig, supplied: Optional[str]) -> None:
    expected = cfg.require_admin_password()
    if not supplied or not hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8")):
        raise AuthError()


class DashboardService:
    """
    The four operations behind the HTTP routes.

    Holds no cross-request state of its own; records and temperature state
    both live in the store.
    """

    def __init__(
        self,
        store: TankStore,
        cfg: ServiceConfig | None = None,
        engine: TemperatureEngine | None = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.store = store
        self.cfg = cfg or store.cfg
        self.engine = engine or TemperatureEngine(self.cfg.engine)
        self.clock = clock

    # ======================================================
    # Auth
    # ======================================================
    def check_secret(self, supplied: Optional[str]) -> None:
        check_secret(self.cfg, supplied)

    # ======================================================
    # Public read
    # ======================================================
    def public_items(self, at_ms: Optional[int] = None) -> Dict[str, Any]:
        now = self.clock() if at_ms is None else at_ms
        rows = visible_sorted(self.store.load_records())

        states = self.store.load_temperature_states(tank_id for tank_id, _ in rows)
        changed: Dict[str, TemperatureState] = {}
        items: List[Dict[str, Any]] = []

        for tank_id, rec in rows:
            view = self._tank_view(tank_id, rec, states.get(tank_id), now, changed)
            items.append(view.to_dict())

        self.store.save_temperature_states(changed)
        return {"ok": True, "items": items, "server_time": now}

    def _tank_view(
        self,
        tank_id: str,
        rec: TankRecord,
        state: Optional[TemperatureState],
        now: int,
        changed: Dict[str, TemperatureState],
    ) -> TankView:
        phase = resolve_phase(rec.status, rec.start, rec.end, now, self.engine.cfg.cooldown_ms)
        try:
            new_state, dirty = self.engine.advance(tank_id, rec, phase, state, now)
            temp_text, temp_value = self.engine.reading(new_state)
            if dirty:
                changed[tank_id] = new_state
        except (ValueError, TypeError, ArithmeticError):
            logger.warning("temperature for %s failed; showing setpoint", tank_id, exc_info=True)
            temp_text, temp_value = self.engine.fallback_reading(tank_id, rec)
        try:
            return build_view(tank_id, rec, phase, temp_text, temp_value, now)
        except (ValueError, TypeError, ArithmeticError):
            logger.warning("view for %s failed; dropping its dates", tank_id, exc_info=True)
            return build_view(tank_id, replace(rec, start="", end=""), phase, temp_text, temp_value, now)

    # ======================================================
    # Admin
    # ======================================================
    def admin_records(self, secret: Optional[str]) -> Dict[str, Dict[str, Any]]:
        self.check_secret(secret)
        return records_to_dict(self.store.load_records())

    def save_records(self, secret: Optional[str], payload: Any) -> Dict[str, Any]:
        self.check_secret(secret)
        if not isinstance(payload, Mapping):
            raise ValidationError("Body must be a JSON object of tank id -> record")

        records = sanitize_records(payload, max_tanks=self.cfg.max_tanks)
        now = self.clock()

        self.store.save_records(records)
        self.store.replace_temperature_states(
            {tank_id: self.engine.reset_state(tank_id, rec, now) for tank_id, rec in records.items()}
        )

        dropped = len(payload) - len(records)
        logger.info("records saved: %d tanks (%d entries dropped), temperatures reset", len(records), dropped)
        return {"ok": True, "count": len(records)}

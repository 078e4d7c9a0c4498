# brewdash/tanks/engine.py
from __future__ import annotations

import hashlib
import logging
import math
import random
from dataclasses import dataclass
from typing import Optional, Tuple

from .phase import DAY_MS, cooling_window, parse_timestamp
from .state import Phase, TankRecord, TemperatureState, clamp


logger = logging.getLogger(__name__)

_UNIT_SUFFIXES = ("℃", "°C", "°c", "°")


@dataclass
class EngineConfig:
    # =========================
    # Fermentation setpoint band
    # =========================
    setpoint_min: float = 18.2
    setpoint_max: float = 19.9

    # =========================
    # Final (cold) band
    # =========================
    final_min: float = 4.0
    final_max: float = 5.0

    # grid for derived targets
    increment: float = 0.1

    # =========================
    # Cooldown
    # =========================
    cooldown_days: float = 10.0
    cool_rate_per_day: float = 2.0          # ceiling on the descent rate

    # =========================
    # Update cadence
    # =========================
    bucket_s: float = 60.0                  # one update per bucket per tank
    max_step_per_bucket: float = 0.1

    salt: str = "brew"

    @property
    def cooldown_ms(self) -> int:
        return int(self.cooldown_days * DAY_MS)

    @property
    def bucket_ms(self) -> int:
        return max(1, int(self.bucket_s * 1000))


# ======================================================
# Helpers
# ======================================================
def parse_temp_number(value) -> Optional[float]:
    if value is None:
        return None
    t = str(value).strip()
    for suffix in _UNIT_SUFFIXES:
        t = t.replace(suffix, "")
    t = t.strip()
    if not t:
        return None
    try:
        n = float(t)
    except ValueError:
        return None
    return n if math.isfinite(n) else None


def ease_cosine(t: float) -> float:
    """0 -> 0, 1 -> 1, flat at both ends."""
    t = clamp(t, 0.0, 1.0)
    return (1.0 - math.cos(math.pi * t)) / 2.0


def seeded_rng(salt: str, purpose: str, *parts: str) -> random.Random:
    key = "|".join((salt, purpose) + tuple(str(p) for p in parts))
    seed = int.from_bytes(hashlib.sha256(key.encode("utf-8")).digest()[:8], "big")
    return random.Random(seed)


def pick_on_grid(rng: random.Random, lo: float, hi: float, increment: float) -> float:
    steps = max(0, int(round((hi - lo) / increment)))
    idx = rng.randint(0, steps)
    return round(lo + idx * increment, 3)


def snap(value: float, increment: float) -> float:
    return round(round(value / increment) * increment, 3)


class TemperatureEngine:
    """
    Simulated tank temperature.

    - Targets (setpoint, final temp) are a pure function of tank id and dates
      unless the operator typed a setpoint.
    - current moves at most once per bucket and by a bounded step.
    - Phase is never stored; it is passed in on every call.
    """

    def __init__(self, cfg: EngineConfig | None = None):
        self.cfg = cfg or EngineConfig()

    # ======================================================
    # Targets
    # ======================================================
    def bucket_of(self, now_ms: int) -> int:
        return int(now_ms) // self.cfg.bucket_ms

    def bucket_start(self, now_ms: int) -> int:
        return self.bucket_of(now_ms) * self.cfg.bucket_ms

    def manual_setpoint(self, rec: TankRecord) -> Optional[float]:
        n = parse_temp_number(rec.temp)
        if n is None:
            return None
        cfg = self.cfg
        return clamp(snap(n, cfg.increment), cfg.setpoint_min, cfg.setpoint_max)

    def derive_targets(self, tank_id: str, rec: TankRecord) -> Tuple[float, float]:
        cfg = self.cfg

        setpoint = self.manual_setpoint(rec)
        if setpoint is None:
            rng = seeded_rng(cfg.salt, "setpoint", tank_id, rec.start.strip())
            setpoint = pick_on_grid(rng, cfg.setpoint_min, cfg.setpoint_max, cfg.increment)

        rng = seeded_rng(cfg.salt, "final", tank_id, rec.end.strip())
        final_temp = pick_on_grid(rng, cfg.final_min, cfg.final_max, cfg.increment)

        return setpoint, final_temp

    def window(self, rec: TankRecord) -> Optional[Tuple[int, int]]:
        return cooling_window(parse_timestamp(rec.start), parse_timestamp(rec.end), self.cfg.cooldown_ms)

    def target_for(self, phase: Phase, state: TemperatureState, window: Optional[Tuple[int, int]], now_ms: int) -> float:
        if phase == "fermenting":
            return state.setpoint
        if phase == "ready":
            return state.final_temp

        # cooling without dates (operator override): nothing to descend along
        if window is None:
            return state.setpoint

        cool_start, end_ms = window
        if end_ms > cool_start:
            t = clamp((now_ms - cool_start) / (end_ms - cool_start), 0.0, 1.0)
        else:
            t = 1.0
        return state.setpoint + (state.final_temp - state.setpoint) * ease_cosine(t)

    def step_limit(self, phase: Phase) -> float:
        cfg = self.cfg
        limit = abs(cfg.max_step_per_bucket)
        if phase == "cooling":
            per_bucket = abs(cfg.cool_rate_per_day) * cfg.bucket_s / 86400.0
            limit = min(limit, per_bucket)
        return limit

    # ======================================================
    # State lifecycle
    # ======================================================
    def _seen(self, rec: TankRecord) -> Tuple[str, str, str]:
        manual = self.manual_setpoint(rec)
        seen_temp = "" if manual is None else f"{manual:.1f}"
        return seen_temp, rec.start.strip(), rec.end.strip()

    def inputs_changed(self, state: TemperatureState, rec: TankRecord) -> bool:
        return (state.seen_temp, state.seen_start, state.seen_end) != self._seen(rec)

    def reset_state(self, tank_id: str, rec: TankRecord, now_ms: int) -> TemperatureState:
        setpoint, final_temp = self.derive_targets(tank_id, rec)
        seen_temp, seen_start, seen_end = self._seen(rec)
        return TemperatureState(
            setpoint=setpoint,
            final_temp=final_temp,
            current=setpoint,
            updated_ms=self.bucket_start(now_ms),
            seen_temp=seen_temp,
            seen_start=seen_start,
            seen_end=seen_end,
        )

    # ======================================================
    # MAIN ENTRY
    # ======================================================
    def advance(
        self,
        tank_id: str,
        rec: TankRecord,
        phase: Phase,
        state: Optional[TemperatureState],
        now_ms: int,
    ) -> Tuple[TemperatureState, bool]:
        """Returns (state, changed). changed=False means nothing to persist."""
        window = self.window(rec)

        if state is None:
            # first sighting: start on the curve for the current phase
            state = self.reset_state(tank_id, rec, now_ms)
            state.current = clamp(
                self.target_for(phase, state, window, now_ms),
                state.final_temp,
                state.setpoint,
            )
            return state, True

        if self.inputs_changed(state, rec):
            logger.info("temperature reset for %s (start/end/manual temp changed)", tank_id)
            return self.reset_state(tank_id, rec, now_ms), True

        bucket = self.bucket_of(now_ms)
        last = self.bucket_of(state.updated_ms)
        if last > bucket:
            # stamped ahead of the clock (skew): rebase, keep current
            state.updated_ms = self.bucket_start(now_ms)
            return state, True
        if last == bucket:
            return state, False

        elapsed = bucket - last
        target = self.target_for(phase, state, window, now_ms)
        limit = self.step_limit(phase)
        cur = state.current

        # buckets nobody observed: follow the target at full speed
        if elapsed > 1:
            cur = self._slew_to(cur, target, limit * (elapsed - 1))

        if phase == "cooling":
            step = clamp(self._draw_step(tank_id, bucket, target - cur, limit), -limit, limit)
            nxt = cur + step
        else:
            # fermenting holds the setpoint, ready locks onto the final temp
            nxt = self._slew_to(cur, target, limit)

        state.current = clamp(nxt, state.final_temp, state.setpoint)
        state.updated_ms = self.bucket_start(now_ms)
        return state, True

    def reading(self, state: TemperatureState) -> Tuple[str, float]:
        value = round(state.current, 1)
        return format_temp(value), value

    def fallback_reading(self, tank_id: str, rec: TankRecord) -> Tuple[str, float]:
        setpoint, _ = self.derive_targets(tank_id, rec)
        value = round(setpoint, 1)
        return format_temp(value), value

    # ======================================================
    # Step generation
    # ======================================================
    @staticmethod
    def _slew_to(current: float, target: float, max_step: float) -> float:
        delta = target - current
        if abs(delta) <= max_step:
            return target
        return current + (max_step if delta > 0 else -max_step)

    def _draw_step(self, tank_id: str, bucket: int, gap: float, limit: float) -> float:
        """
        Pick the bucket's step from a small pool, in units of `limit`.
        Far from target the pool leans fully toward it; near it the pool
        contains a small rebound away from it.
        """
        if limit <= 0.0:
            return 0.0

        rng = seeded_rng(self.cfg.salt, "step", tank_id, str(bucket))
        direction = 1.0 if gap > 0 else -1.0
        mag = abs(gap)

        if mag >= 4.0 * limit:
            pool = (1.0, 1.0, 0.75, 0.5)
        elif mag >= limit:
            pool = (1.0, 0.75, 0.5, 0.25, 0.0)
        else:
            close = mag / limit
            pool = (close, close, 0.0, -0.5)

        return direction * rng.choice(pool) * limit


def format_temp(value: float) -> str:
    return f"{value:.1f}℃"

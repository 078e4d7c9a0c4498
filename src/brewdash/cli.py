#!/usr/bin/env python3
"""
brewdash command line.

  brewdash serve --port 8000
  brewdash curve --tank F1 --start 2026-03-01 --end 2026-03-21 --out out/f1.csv --png out/f1.png

`curve` replays the temperature engine over a timeline without touching
redis, so an operator can preview what the board will show for a tank.
"""
from __future__ import annotations

import argparse
import logging
import os
from typing import List, Optional

import pandas as pd

from .config import ServiceConfig, load_env, setup_logging
from .tanks.engine import TemperatureEngine
from .tanks.phase import DAY_MS, parse_timestamp, resolve_phase
from .tanks.sanitizer import normalize_row
from .tanks.state import TemperatureState


logger = logging.getLogger("brewdash")


# ============================================================
# Curve replay
# ============================================================
def replay_curve(
    engine: TemperatureEngine,
    tank_id: str,
    start: str,
    end: str,
    temp: str = "",
    step_minutes: float = 60.0,
    tail_days: float = 2.0,
) -> pd.DataFrame:
    rec = normalize_row({"start": start, "end": end, "temp": temp, "show": True})
    start_ms = parse_timestamp(start)
    end_ms = parse_timestamp(end)
    if start_ms is None or end_ms is None or end_ms <= start_ms:
        raise ValueError("curve needs a valid start and an end after it")

    step_ms = max(engine.cfg.bucket_ms, int(step_minutes * 60_000))
    stop_ms = end_ms + int(tail_days * DAY_MS)

    rows = []
    state: Optional[TemperatureState] = None
    now = start_ms
    while now <= stop_ms:
        phase = resolve_phase(rec.status, rec.start, rec.end, now, engine.cfg.cooldown_ms)
        window = engine.window(rec)
        state, _ = engine.advance(tank_id, rec, phase, state, now)
        rows.append({
            "ts": pd.Timestamp(now, unit="ms", tz="UTC"),
            "phase": phase,
            "target": engine.target_for(phase, state, window, now),
            "current": state.current,
            "display": round(state.current, 1),
        })
        now += step_ms

    return pd.DataFrame(rows).set_index("ts")


def plot_curve(df: pd.DataFrame, tank_id: str, path: str) -> None:
    import matplotlib
    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    ensure_dir_for_file(path)
    fig, ax = plt.subplots(figsize=(10, 4))
    ax.plot(df.index, df["target"], label="target", linestyle="--")
    ax.plot(df.index, df["current"], label="current")
    ax.set_title(f"{tank_id} temperature")
    ax.set_ylabel("°C")
    ax.grid(True)
    ax.legend()
    fig.autofmt_xdate()
    fig.tight_layout()
    fig.savefig(path)
    plt.close(fig)


def ensure_dir_for_file(path: str) -> None:
    d = os.path.dirname(os.path.abspath(path))
    if d and not os.path.exists(d):
        os.makedirs(d, exist_ok=True)


# ============================================================
# Main
# ============================================================
def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="brewdash", description="Fermentation tank dashboard backend")
    sub = p.add_subparsers(dest="cmd", required=True)

    s = sub.add_parser("serve", help="Run the HTTP API")
    s.add_argument("--host", default="127.0.0.1", help="Bind host")
    s.add_argument("--port", default=8000, type=int, help="Bind port")
    s.add_argument("--reload", action="store_true", help="Reload on code changes")

    c = sub.add_parser("curve", help="Replay one tank's simulated temperature")
    c.add_argument("--tank", default="F1", help="Tank id (F<number>)")
    c.add_argument("--start", required=True, help="Start date, e.g. 2026-03-01")
    c.add_argument("--end", required=True, help="End date, e.g. 2026-03-21")
    c.add_argument("--temp", default="", help="Manual setpoint, e.g. 18.6")
    c.add_argument("--step-minutes", type=float, default=60.0, help="Sampling interval")
    c.add_argument("--tail-days", type=float, default=2.0, help="Days to keep replaying after end")
    c.add_argument("--out", default="", help="Write CSV here (stdout summary otherwise)")
    c.add_argument("--png", default="", help="Also plot to this PNG")

    return p.parse_args(argv)


def run_serve(args: argparse.Namespace, cfg: ServiceConfig) -> None:
    import uvicorn

    logger.info("[MAIN] serving on %s:%d bucket=%ss max_step=%s", args.host, args.port,
                cfg.engine.bucket_s, cfg.engine.max_step_per_bucket)
    uvicorn.run(
        "brewdash.api:build_default_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=cfg.log_level.lower(),
    )


def run_curve(args: argparse.Namespace, cfg: ServiceConfig) -> None:
    engine = TemperatureEngine(cfg.engine)
    tank_id = args.tank.upper()
    try:
        df = replay_curve(
            engine,
            tank_id,
            args.start,
            args.end,
            temp=args.temp,
            step_minutes=args.step_minutes,
            tail_days=args.tail_days,
        )
    except ValueError as exc:
        raise SystemExit(f"curve: {exc}") from None

    if args.out:
        ensure_dir_for_file(args.out)
        df.to_csv(args.out)
        logger.info("[CURVE] %d rows -> %s", len(df), os.path.abspath(args.out))
    else:
        summary = df.groupby("phase", sort=False)["display"].agg(["first", "last", "min", "max", "count"])
        print(summary.to_string())

    if args.png:
        plot_curve(df, tank_id, args.png)
        logger.info("[CURVE] plot -> %s", os.path.abspath(args.png))


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    load_env()
    cfg = ServiceConfig.from_env()
    setup_logging(cfg.log_level)

    if args.cmd == "serve":
        run_serve(args, cfg)
    elif args.cmd == "curve":
        run_curve(args, cfg)


if __name__ == "__main__":
    main()

# brewdash/config.py
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from .errors import ConfigurationError
from .tanks.engine import EngineConfig
from .tanks.sanitizer import MAX_TANKS


RECORDS_KEY = "brew_dash_records_v1"
TEMPS_KEY = "brew_dash_temps_v2"

LOG_FORMAT = "[%(asctime)s] %(message)s"
LOG_DATEFMT = "%H:%M:%S"


def load_env() -> None:
    """Load .env (cwd first, then repo root). Real environment always wins."""
    dotenv_path = _find_env_file()
    if dotenv_path:
        load_dotenv(dotenv_path=str(dotenv_path), override=False)
    else:
        load_dotenv(override=False)


def _find_env_file() -> Path | None:
    root = Path(__file__).resolve().parent.parent.parent
    for p in (Path.cwd() / ".env", root / ".env"):
        if p.exists() and p.is_file():
            return p
    return None


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
    )


def _num(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{key} must be a number, got {raw!r}") from None


@dataclass
class ServiceConfig:
    redis_url: Optional[str] = None
    admin_password: Optional[str] = None

    records_key: str = RECORDS_KEY
    temps_key: str = TEMPS_KEY
    temp_ttl_days: float = 30.0
    max_tanks: int = MAX_TANKS
    redis_timeout_s: float = 5.0

    log_level: str = "INFO"

    engine: EngineConfig = field(default_factory=EngineConfig)

    @property
    def temp_ttl_s(self) -> int:
        return max(1, int(self.temp_ttl_days * 86400))

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "ServiceConfig":
        env = os.environ if env is None else env

        engine = EngineConfig(
            bucket_s=_num(env, "BREWDASH_TEMP_BUCKET_S", 60.0),
            max_step_per_bucket=_num(env, "BREWDASH_MAX_STEP", 0.1),
            cool_rate_per_day=_num(env, "BREWDASH_COOL_RATE_PER_DAY", 2.0),
            cooldown_days=_num(env, "BREWDASH_COOLDOWN_DAYS", 10.0),
            salt=env.get("DISPLAY_SALT") or "brew",
        )
        if engine.bucket_s <= 0:
            raise ConfigurationError("BREWDASH_TEMP_BUCKET_S must be positive")
        if engine.max_step_per_bucket <= 0:
            raise ConfigurationError("BREWDASH_MAX_STEP must be positive")

        return cls(
            redis_url=(env.get("REDIS_URL") or "").strip() or None,
            admin_password=(env.get("ADMIN_WRITE_PASSWORD") or "").strip() or None,
            temp_ttl_days=_num(env, "BREWDASH_TEMP_TTL_DAYS", 30.0),
            max_tanks=int(_num(env, "BREWDASH_MAX_TANKS", float(MAX_TANKS))),
            log_level=env.get("BREWDASH_LOG_LEVEL") or "INFO",
            engine=engine,
        )

    def require_redis_url(self) -> str:
        if not self.redis_url:
            raise ConfigurationError("REDIS_URL is missing")
        return self.redis_url

    def require_admin_password(self) -> str:
        if not self.admin_password:
            raise ConfigurationError("ADMIN_WRITE_PASSWORD is missing")
        return self.admin_password

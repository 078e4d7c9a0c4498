# brewdash/store.py
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Iterable, Optional

import redis
from redis.exceptions import RedisError

from .config import ServiceConfig
from .errors import StorageError
from .tanks.sanitizer import records_to_json, sanitize_records
from .tanks.state import TankRecord, TemperatureState


logger = logging.getLogger(__name__)


def connect(cfg: ServiceConfig) -> redis.Redis:
    # from_url does not connect; the first command does
    return redis.Redis.from_url(
        cfg.require_redis_url(),
        decode_responses=True,
        socket_timeout=cfg.redis_timeout_s,
        socket_connect_timeout=cfg.redis_timeout_s,
    )


class TankStore:
    """
    Records live under one string key (JSON mapping), temperature state in
    one hash with a field per tank id. Every redis failure becomes a
    StorageError.
    """

    def __init__(self, client: Any, cfg: ServiceConfig):
        self.client = client
        self.cfg = cfg

    # ======================================================
    # Records
    # ======================================================
    def load_raw_records(self) -> Optional[str]:
        try:
            return self.client.get(self.cfg.records_key)
        except RedisError as exc:
            raise StorageError(f"record load failed: {exc}") from exc

    def load_records(self) -> Dict[str, TankRecord]:
        raw = self.load_raw_records()
        if raw is None:
            return {}
        try:
            obj = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("stored records under %s are not valid JSON; serving none", self.cfg.records_key)
            return {}
        return sanitize_records(obj, max_tanks=self.cfg.max_tanks)

    def save_records(self, records: Dict[str, TankRecord]) -> None:
        try:
            self.client.set(self.cfg.records_key, records_to_json(records))
        except RedisError as exc:
            raise StorageError(f"record save failed: {exc}") from exc

    # ======================================================
    # Temperature state
    # ======================================================
    def load_temperature_states(self, tank_ids: Iterable[str]) -> Dict[str, Optional[TemperatureState]]:
        ids = list(tank_ids)
        if not ids:
            return {}
        try:
            raw = self.client.hmget(self.cfg.temps_key, ids)
        except RedisError as exc:
            raise StorageError(f"temperature load failed: {exc}") from exc
        return {tank_id: TemperatureState.from_json(v) for tank_id, v in zip(ids, raw)}

    def save_temperature_states(self, states: Dict[str, TemperatureState]) -> None:
        if not states:
            return
        mapping = {tank_id: s.to_json() for tank_id, s in states.items()}
        try:
            pipe = self.client.pipeline(transaction=False)
            pipe.hset(self.cfg.temps_key, mapping=mapping)
            pipe.expire(self.cfg.temps_key, self.cfg.temp_ttl_s)
            pipe.execute()
        except RedisError as exc:
            raise StorageError(f"temperature save failed: {exc}") from exc

    def replace_temperature_states(self, states: Dict[str, TemperatureState]) -> None:
        """Drop every stored state (orphans included) and write `states`."""
        mapping = {tank_id: s.to_json() for tank_id, s in states.items()}
        try:
            pipe = self.client.pipeline(transaction=True)
            pipe.delete(self.cfg.temps_key)
            if mapping:
                pipe.hset(self.cfg.temps_key, mapping=mapping)
                pipe.expire(self.cfg.temps_key, self.cfg.temp_ttl_s)
            pipe.execute()
        except RedisError as exc:
            raise StorageError(f"temperature reset failed: {exc}") from exc

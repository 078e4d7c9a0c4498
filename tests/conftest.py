from typing import Any, Dict, List, Optional

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from brewdash.config import ServiceConfig
from brewdash.service import DashboardService
from brewdash.store import TankStore
from brewdash.tanks.engine import EngineConfig
from brewdash.tanks.phase import DAY_MS, parse_timestamp


SECRET = "s3cret"
T0 = parse_timestamp("2026-03-01")


class MemoryRedis:
    """The handful of redis commands TankStore issues, kept in dicts."""

    def __init__(self):
        self.strings: Dict[str, str] = {}
        self.hashes: Dict[str, Dict[str, str]] = {}
        self.ttls: Dict[str, int] = {}
        self.commands: List[str] = []

    def get(self, key: str) -> Optional[str]:
        self.commands.append("get")
        return self.strings.get(key)

    def set(self, key: str, value: str) -> bool:
        self.commands.append("set")
        self.strings[key] = value
        return True

    def hmget(self, key: str, fields: List[str]) -> List[Optional[str]]:
        self.commands.append("hmget")
        h = self.hashes.get(key, {})
        return [h.get(f) for f in fields]

    def hset(self, key: str, mapping: Dict[str, str]) -> int:
        self.commands.append("hset")
        self.hashes.setdefault(key, {}).update(mapping)
        return len(mapping)

    def expire(self, key: str, seconds: int) -> bool:
        self.commands.append("expire")
        self.ttls[key] = seconds
        return True

    def delete(self, key: str) -> int:
        self.commands.append("delete")
        found = int(key in self.strings or key in self.hashes)
        self.strings.pop(key, None)
        self.hashes.pop(key, None)
        self.ttls.pop(key, None)
        return found

    def pipeline(self, transaction: bool = True) -> "MemoryPipeline":
        return MemoryPipeline(self)


class MemoryPipeline:
    def __init__(self, client: MemoryRedis):
        self.client = client
        self.queued: List[Any] = []

    def __getattr__(self, name: str):
        def queue(*args, **kwargs):
            self.queued.append((name, args, kwargs))
            return self
        return queue

    def execute(self) -> List[Any]:
        return [getattr(self.client, name)(*args, **kwargs) for name, args, kwargs in self.queued]


class DownRedis:
    def __getattr__(self, name: str):
        def fail(*args, **kwargs):
            raise RedisConnectionError("connection refused")
        return fail


class Clock:
    def __init__(self, now_ms: int):
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> None:
        self.now_ms += ms


@pytest.fixture
def engine_cfg() -> EngineConfig:
    return EngineConfig(bucket_s=60.0, max_step_per_bucket=0.1, cool_rate_per_day=2.0, salt="test")


@pytest.fixture
def cfg(engine_cfg) -> ServiceConfig:
    return ServiceConfig(redis_url="redis://unused", admin_password=SECRET, engine=engine_cfg)


@pytest.fixture
def redis_client() -> MemoryRedis:
    return MemoryRedis()


@pytest.fixture
def store(redis_client, cfg) -> TankStore:
    return TankStore(redis_client, cfg)


@pytest.fixture
def clock() -> Clock:
    return Clock(T0 + 12 * DAY_MS)


@pytest.fixture
def service(store, cfg, clock) -> DashboardService:
    return DashboardService(store, cfg, clock=clock)

"""
Harvest report and status storage.

Reports go to Redis when REDIS_URL points at a reachable server. Otherwise,
or when a Redis call fails, they land in a process-local store with the
same TTL semantics so the API keeps answering.
"""
import json
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

import redis

from config import Config
from utils.logging_utils import get_logger

logger = get_logger(__name__)

_redis_client: Optional[redis.Redis] = None
_redis_available: Optional[bool] = None


def get_redis() -> Optional[redis.Redis]:
    global _redis_client, _redis_available

    if _redis_available is False:
        return None
    if _redis_client is not None:
        return _redis_client

    if not Config.REDIS_URL:
        logger.info("REDIS_URL not configured - keeping reports in memory")
        _redis_available = False
        return None

    try:
        client = redis.from_url(Config.REDIS_URL, decode_responses=True)
        client.ping()
    except redis.RedisError as e:
        logger.warning(f"Redis unreachable ({e}) - keeping reports in memory")
        _redis_available = False
        return None

    logger.info("Redis connected")
    _redis_client = client
    _redis_available = True
    return client


def is_redis_available() -> bool:
    return get_redis() is not None


def reset_redis():
    global _redis_client, _redis_available
    _redis_client = None
    _redis_available = None
    RedisCache.memory.clear()


class MemoryStore:
    def __init__(self):
        self._entries: Dict[str, Tuple[float, Any]] = {}

    def read(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires, value = entry
        if time.time() >= expires:
            del self._entries[key]
            return None
        return value

    def write(self, key: str, value: Any, ttl: int):
        self._entries[key] = (time.time() + ttl, value)

    def remove(self, key: str):
        self._entries.pop(key, None)

    def clear(self):
        self._entries.clear()


def _encode(key: str, value: Any) -> Optional[str]:
    try:
        return json.dumps(value)
    except (TypeError, ValueError) as e:
        logger.warning(f"Cannot serialize value for {key}: {e}")
        return None


class RedisCache:

    DEFAULT_TTL = {
        "report": Config.REDIS_REPORT_TTL_SECONDS,
        "status": Config.REDIS_STATUS_TTL_SECONDS,
    }

    memory = MemoryStore()

    @classmethod
    def _on_redis(cls, key: str, action: Callable[[redis.Redis], Any]) -> Tuple[bool, Any]:
        client = get_redis()
        if client is None:
            return False, None
        try:
            return True, action(client)
        except redis.RedisError as e:
            logger.debug(f"Redis error on {key}: {e}")
            return False, None

    @classmethod
    def get(cls, key: str) -> Optional[Any]:
        ok, raw = cls._on_redis(key, lambda client: client.get(key))
        if ok and raw:
            return json.loads(raw)
        return cls.memory.read(key)

    @classmethod
    def set(cls, key: str, value: Any, ttl: Optional[int] = None, category: str = "status") -> bool:
        ttl = cls.DEFAULT_TTL.get(category, 60) if ttl is None else ttl
        payload = _encode(key, value)
        if payload is None:
            return False

        ok, _ = cls._on_redis(key, lambda client: client.setex(key, ttl, payload))
        if not ok:
            cls.memory.write(key, value, ttl)
        return True

    @classmethod
    def delete(cls, key: str):
        cls._on_redis(key, lambda client: client.delete(key))
        cls.memory.remove(key)

    @classmethod
    def add_to_list(cls, key: str, value: Any, max_len: int, ttl: int) -> bool:
        payload = _encode(key, value)
        if payload is None:
            return False

        def push(client: redis.Redis):
            client.lpush(key, payload)
            client.ltrim(key, 0, max_len - 1)
            client.expire(key, ttl)

        ok, _ = cls._on_redis(key, push)
        if not ok:
            items = [value] + (cls.memory.read(key) or [])
            cls.memory.write(key, items[:max_len], ttl)
        return True

    @classmethod
    def get_list(cls, key: str, limit: int) -> List[Any]:
        ok, raw = cls._on_redis(key, lambda client: client.lrange(key, 0, limit - 1))
        if ok:
            return [json.loads(item) for item in raw]
        return (cls.memory.read(key) or [])[:limit]

    @classmethod
    def add_report(cls, strategy: str, report: Dict[str, Any]) -> bool:
        ttl = cls.DEFAULT_TTL["report"]
        stored = cls.add_to_list(f"reports:{strategy}", report, Config.MAX_STORED_REPORTS, ttl)
        cls.set(f"reports:{strategy}:latest", report, category="report")
        return stored

    @classmethod
    def get_reports(cls, strategy: str, limit: int = 50) -> List[Dict[str, Any]]:
        return cls.get_list(f"reports:{strategy}", limit)

    @classmethod
    def get_latest_report(cls, strategy: str) -> Optional[Dict[str, Any]]:
        return cls.get(f"reports:{strategy}:latest")

    @classmethod
    def set_status(cls, strategy: str, status: Dict[str, Any]) -> bool:
        return cls.set(f"status:{strategy}", status, category="status")

    @classmethod
    def get_status(cls, strategy: str) -> Optional[Dict[str, Any]]:
        return cls.get(f"status:{strategy}")

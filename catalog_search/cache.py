"""Caching helpers with Redis primary and in-memory fallback."""
from __future__ import annotations

import copy
import hashlib
import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

import redis

from .config import Settings, settings

logger = logging.getLogger(__name__)

KEY_PREFIX = "catalog_search:"


class CacheBackend(Protocol):
    def get(self, key: str) -> Optional[Dict[str, Any]]: ...

    def set(self, key: str, value: Dict[str, Any], ttl: int) -> None: ...


@dataclass
class RedisCache:
    client: redis.Redis

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        try:
            data = self.client.get(key)
        except redis.RedisError as exc:
            logger.warning("Redis get failed: %s", exc)
            return None
        if not data:
            return None
        try:
            return json.loads(data)
        except json.JSONDecodeError:
            return None

    def set(self, key: str, value: Dict[str, Any], ttl: int) -> None:
        try:
            self.client.setex(key, ttl, json.dumps(value, default=str))
        except redis.RedisError as exc:
            logger.warning("Redis set failed: %s", exc)


class InMemoryCache:
    def __init__(self, clock=time.monotonic) -> None:
        self._store: Dict[str, tuple[float, Dict[str, Any]]] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            value = self._store.get(key)
            if not value:
                return None
            expires_at, payload = value
            if expires_at <= self._clock():
                self._store.pop(key, None)
                return None
            return copy.deepcopy(payload)

    def set(self, key: str, value: Dict[str, Any], ttl: int) -> None:
        # Copies on both sides: callers never share a payload with the store.
        stored = copy.deepcopy(value)
        with self._lock:
            self._store[key] = (self._clock() + ttl, stored)


def cache_key(params: Dict[str, Any]) -> str:
    """Stable key for a validated request; ``user_id`` does not change results."""

    relevant = {key: value for key, value in params.items() if key != "user_id"}
    digest = hashlib.sha1(json.dumps(relevant, sort_keys=True).encode("utf-8")).hexdigest()
    return f"{KEY_PREFIX}{digest}"


def create_cache(config: Settings = settings) -> CacheBackend:
    try:
        client = redis.Redis(host=config.redis_host, port=config.redis_port, decode_responses=False)
        client.ping()
        logger.info("Using Redis cache at %s:%s", config.redis_host, config.redis_port)
        return RedisCache(client)
    except redis.RedisError:
        logger.warning("Redis not available, using in-memory cache")
        return InMemoryCache()

"""
Real Redis-backed cache for production when REDIS_URL is set.
Implements the same interface as jetset.database.redis (in-memory stub).
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

import redis

logger = logging.getLogger(__name__)


class RedisCache:
    """
    Redis-backed JSON cache for flight search and analytics responses.
    """

    def __init__(self, url: str, prefix: str = "jetset:") -> None:
        self._client = redis.from_url(url, decode_responses=True)
        self._prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def get_json(self, key: str) -> Optional[Any]:
        try:
            raw = self._client.get(self._key(key))
        except redis.RedisError as e:
            logger.warning("Cache read failed for %s: %s", key, e)
            return None
        if not raw:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            return None

    def set_json(self, key: str, value: Any, ttl: int = 300) -> None:
        payload = json.dumps(value, default=str)
        try:
            if ttl:
                self._client.setex(self._key(key), ttl, payload)
            else:
                self._client.set(self._key(key), payload)
        except redis.RedisError as e:
            logger.warning("Cache write failed for %s: %s", key, e)

    def delete(self, key: str) -> None:
        self._client.delete(self._key(key))

    def ping(self) -> bool:
        try:
            return self._client.ping()
        except Exception:
            return False

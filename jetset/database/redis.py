"""
Lightweight in-memory RedisCache replacement for local development.

Implements the JSON cache interface used by FlightService so the API can run
without a real Redis instance. Expiry is honoured lazily on read.
"""

from __future__ import annotations

import copy
import time
from typing import Any, Dict, Optional, Tuple


class RedisCache:
    def __init__(self) -> None:
        # key -> (expires_at monotonic seconds or None, value)
        self._store: Dict[str, Tuple[Optional[float], Any]] = {}

    def get_json(self, key: str) -> Optional[Any]:
        entry = self._store.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if expires_at is not None and time.monotonic() >= expires_at:
            self._store.pop(key, None)
            return None
        return copy.deepcopy(value)

    def set_json(self, key: str, value: Any, ttl: int = 300) -> None:
        expires_at = time.monotonic() + ttl if ttl else None
        self._store[key] = (expires_at, copy.deepcopy(value))

    def delete(self, key: str) -> None:
        self._store.pop(key, None)

    def ping(self) -> bool:
        """
        Health check calls this; always True so the API reports the cache as
        "connected" in local/dev mode.
        """
        return True

"""Best-effort response cache backed by Redis or an in-process store."""

from __future__ import annotations

import json
import logging
import time
from collections import OrderedDict
from collections.abc import Callable
from functools import lru_cache
from threading import Lock
from typing import Any, TypeVar

import redis

from inkwell.core.settings import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


def post_key(post_id: int) -> str:
    return f"post:{post_id}"


def post_list_key(filters: dict[str, Any]) -> str:
    """Build a deterministic key from list filters (keys sorted, ``None`` dropped)."""
    cleaned = {key: value for key, value in filters.items() if value is not None}
    return f"posts:{json.dumps(cleaned, sort_keys=True, separators=(',', ':'))}"


def user_key(user_id: int) -> str:
    return f"user:{user_id}"


def comments_key(post_id: int, page: int) -> str:
    return f"comments:{post_id}:{page}"


class _MemoryStore:
    """Bounded TTL store evicting the oldest entry when full."""

    def __init__(self, max_entries: int) -> None:
        self._max_entries = max(1, max_entries)
        self._data: OrderedDict[str, tuple[float, str]] = OrderedDict()
        self._lock = Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if expires_at <= time.monotonic():
                del self._data[key]
                return None
            return value

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        with self._lock:
            self._data.pop(key, None)
            while len(self._data) >= self._max_entries:
                self._data.popitem(last=False)
            self._data[key] = (time.monotonic() + ttl_seconds, value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def __len__(self) -> int:
        return len(self._data)


class CacheService:
    """JSON cache with manual, enumerated-key invalidation.

    Redis is used when a URL is configured. Any Redis failure is logged and the
    service switches to the in-process store for the rest of its life, so a
    cache outage never fails a request.
    """

    def __init__(
        self,
        redis_url: str | None = None,
        *,
        default_ttl: int | None = None,
        max_entries: int | None = None,
        invalidation_pages: int | None = None,
    ) -> None:
        self.default_ttl = default_ttl or settings.cache_ttl_seconds
        self.invalidation_pages = invalidation_pages or settings.cache_invalidation_pages
        self._memory = _MemoryStore(max_entries or settings.cache_max_entries)
        self._redis: redis.Redis | None = None
        if redis_url:
            self._redis = redis.from_url(redis_url)

    @property
    def backend(self) -> str:
        return "redis" if self._redis is not None else "memory"

    def _redis_failed(self, operation: str, exc: Exception) -> None:
        logger.warning("Redis %s failed, falling back to in-process cache: %s", operation, exc)
        self._redis = None

    def get(self, key: str) -> Any | None:
        """Return the cached value for ``key`` or ``None`` on a miss."""
        raw: str | bytes | None = None
        if self._redis is not None:
            try:
                raw = self._redis.get(key)
            except redis.RedisError as exc:
                self._redis_failed("get", exc)
        if self._redis is None:
            raw = self._memory.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        """Store a JSON-serialisable ``value`` for ``ttl`` seconds."""
        ttl = ttl or self.default_ttl
        payload = json.dumps(value, default=str)
        if self._redis is not None:
            try:
                self._redis.set(key, payload, ex=ttl)
                return
            except redis.RedisError as exc:
                self._redis_failed("set", exc)
        self._memory.set(key, payload, ttl)

    def delete(self, *keys: str) -> None:
        if not keys:
            return
        if self._redis is not None:
            try:
                self._redis.delete(*keys)
                return
            except redis.RedisError as exc:
                self._redis_failed("delete", exc)
        for key in keys:
            self._memory.delete(key)

    def reset(self) -> None:
        """Drop every cached entry."""
        if self._redis is not None:
            try:
                self._redis.flushdb()
                return
            except redis.RedisError as exc:
                self._redis_failed("reset", exc)
        self._memory.clear()

    def wrap(self, key: str, factory: Callable[[], T], ttl: int | None = None) -> T | Any:
        """Return the cached value for ``key``, computing and storing it on a miss."""
        cached = self.get(key)
        if cached is not None:
            return cached
        value = factory()
        self.set(key, value, ttl)
        return value

    # --- Invalidation -------------------------------------------------------------
    # Keys are enumerated for the first N pages instead of pattern-matched, so
    # entries for deeper pages only expire through their TTL.

    def invalidate_post_cache(self, post_id: int | None = None) -> None:
        keys = [
            post_list_key({"page": page, "limit": settings.posts_page_size})
            for page in range(1, self.invalidation_pages + 1)
        ]
        if post_id is not None:
            keys.append(post_key(post_id))
        self.delete(*keys)

    def invalidate_user_cache(self, user_id: int) -> None:
        self.delete(user_key(user_id))

    def invalidate_comment_cache(self, post_id: int) -> None:
        self.delete(*(comments_key(post_id, page) for page in range(1, self.invalidation_pages + 1)))


@lru_cache(maxsize=1)
def get_cache_service() -> CacheService:
    """Return the process-wide cache service."""
    return CacheService(settings.redis_url)

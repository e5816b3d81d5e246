# tests/test_cache.py
"""Cache keys, the in-process store and the Redis fallback."""

from __future__ import annotations

import pytest
import redis

from inkwell.core.settings import settings
from inkwell.services import cache as cache_module
from inkwell.services.cache import (
    CacheService,
    _MemoryStore,
    comments_key,
    post_key,
    post_list_key,
    user_key,
)


class BrokenRedis:
    """Stand-in client whose every call fails like an unreachable server."""

    def __getattr__(self, name: str):
        def fail(*args, **kwargs):
            raise redis.ConnectionError("connection refused")

        return fail


def test_key_builders() -> None:
    assert post_key(3) == "post:3"
    assert user_key(9) == "user:9"
    assert comments_key(3, 2) == "comments:3:2"


def test_list_key_is_order_independent_and_drops_none() -> None:
    first = post_list_key({"page": 1, "limit": 10, "category": None})
    second = post_list_key({"limit": 10, "page": 1})
    assert first == second == 'posts:{"limit":10,"page":1}'


def test_memory_store_expires_entries(monkeypatch: pytest.MonkeyPatch) -> None:
    now = [1000.0]
    monkeypatch.setattr(cache_module.time, "monotonic", lambda: now[0])
    store = _MemoryStore(max_entries=10)

    store.set("a", "1", ttl_seconds=5)
    assert store.get("a") == "1"
    now[0] += 5
    assert store.get("a") is None
    assert len(store) == 0


def test_memory_store_evicts_the_oldest_entry() -> None:
    store = _MemoryStore(max_entries=2)
    store.set("a", "1", 60)
    store.set("b", "2", 60)
    store.set("c", "3", 60)

    assert store.get("a") is None
    assert store.get("b") == "2"
    assert store.get("c") == "3"


def test_round_trips_json_values() -> None:
    cache = CacheService()
    cache.set("k", {"posts": [1, 2], "total": 2})
    assert cache.get("k") == {"posts": [1, 2], "total": 2}
    assert cache.backend == "memory"


def test_wrap_computes_once() -> None:
    cache = CacheService()
    calls = []

    def factory() -> list[int]:
        calls.append(1)
        return [1, 2, 3]

    assert cache.wrap("numbers", factory) == [1, 2, 3]
    assert cache.wrap("numbers", factory) == [1, 2, 3]
    assert len(calls) == 1


def test_invalidation_enumerates_list_pages() -> None:
    cache = CacheService(invalidation_pages=2)
    for page in (1, 2, 3):
        cache.set(post_list_key({"page": page, "limit": settings.posts_page_size}), [page])
    cache.set(post_key(5), {"id": 5})
    cache.set(comments_key(5, 1), [])

    cache.invalidate_post_cache(5)
    cache.invalidate_comment_cache(5)

    assert cache.get(post_list_key({"page": 1, "limit": settings.posts_page_size})) is None
    assert cache.get(post_list_key({"page": 2, "limit": settings.posts_page_size})) is None
    # Pages beyond the enumerated range only expire through their TTL.
    assert cache.get(post_list_key({"page": 3, "limit": settings.posts_page_size})) == [3]
    assert cache.get(post_key(5)) is None
    assert cache.get(comments_key(5, 1)) is None


def test_redis_failure_falls_back_to_memory() -> None:
    cache = CacheService()
    cache._redis = BrokenRedis()  # type: ignore[assignment]
    assert cache.backend == "redis"

    assert cache.get("missing") is None
    assert cache.backend == "memory"

    cache.set("k", "v")
    assert cache.get("k") == "v"

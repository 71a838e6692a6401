"""Tests for the LRU layout cache."""

from __future__ import annotations

from cardlayout.coordinator.cache import LayoutCache
from cardlayout.domain.types import DeviceTier
from cardlayout.services.layout import compute_layout


def _key(count: int, width: float = 1366, height: float = 768) -> tuple:
    return LayoutCache.make_key(count, width, height, DeviceTier.DESKTOP)


class TestLayoutCache:
    def test_miss_then_hit(self) -> None:
        cache = LayoutCache()
        result = compute_layout(3, 1366, 768)
        assert cache.get(_key(3)) is None
        cache.put(_key(3), result)
        assert cache.get(_key(3)) is result
        assert (cache.hits, cache.misses) == (1, 1)

    def test_key_normalises_numbers(self) -> None:
        assert _key(3, 1366, 768) == _key(3, 1366.0, 768.0)
        assert _key(3) != LayoutCache.make_key(3, 1366, 768, DeviceTier.TABLET)

    def test_evicts_least_recently_used(self) -> None:
        cache = LayoutCache(max_size=2)
        result = compute_layout(1, 1366, 768)
        cache.put(_key(1), result)
        cache.put(_key(2), result)
        cache.get(_key(1))
        cache.put(_key(3), result)
        assert _key(1) in cache
        assert _key(2) not in cache
        assert _key(3) in cache
        assert len(cache) == 2

    def test_clear(self) -> None:
        cache = LayoutCache()
        cache.put(_key(1), compute_layout(1, 1366, 768))
        cache.get(_key(1))
        cache.clear()
        assert len(cache) == 0
        assert cache.stats() == {"size": 0, "max_size": 100, "hits": 0, "misses": 0}

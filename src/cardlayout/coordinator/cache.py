"""Bounded LRU cache of computed layouts."""

from __future__ import annotations

from collections import OrderedDict

from cardlayout.domain.models import LayoutResult
from cardlayout.domain.types import DeviceTier

CacheKey = tuple[int, float, float, DeviceTier]


class LayoutCache:
    """Least-recently-used map from ``(card_count, width, height, tier)`` to a layout.

    Results are frozen, so cached instances are handed out as-is.
    """

    def __init__(self, max_size: int = 100) -> None:
        self._max_size = max(1, max_size)
        self._entries: OrderedDict[CacheKey, LayoutResult] = OrderedDict()
        self.hits = 0
        self.misses = 0

    @staticmethod
    def make_key(card_count: int, width: float, height: float, tier: DeviceTier) -> CacheKey:
        return (card_count, float(width), float(height), tier)

    def get(self, key: CacheKey) -> LayoutResult | None:
        result = self._entries.get(key)
        if result is None:
            self.misses += 1
            return None
        self._entries.move_to_end(key)
        self.hits += 1
        return result

    def put(self, key: CacheKey, result: LayoutResult) -> None:
        self._entries[key] = result
        self._entries.move_to_end(key)
        while len(self._entries) > self._max_size:
            self._entries.popitem(last=False)

    def clear(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def stats(self) -> dict[str, int]:
        return {
            "size": len(self._entries),
            "max_size": self._max_size,
            "hits": self.hits,
            "misses": self.misses,
        }

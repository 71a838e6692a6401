"""Resize coordination — debounce, cache, metrics, dimension sources."""

from cardlayout.coordinator.cache import LayoutCache
from cardlayout.coordinator.coordinator import ResizeCoordinator
from cardlayout.coordinator.metrics import CoordinatorMetrics, RunMetrics
from cardlayout.coordinator.scheduler import LoopScheduler, Scheduler
from cardlayout.coordinator.sources import DimensionSource, StaticDimensionSource

__all__ = [
    "CoordinatorMetrics",
    "DimensionSource",
    "LayoutCache",
    "LoopScheduler",
    "ResizeCoordinator",
    "RunMetrics",
    "Scheduler",
    "StaticDimensionSource",
]

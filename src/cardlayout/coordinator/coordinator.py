"""ResizeCoordinator — debounced recomputation of the layout on resize.

State machine::

    idle --notify_resize--> scheduled --timer/flush--> running --> idle
                               ^  |
                               +--+ notify_resize re-arms the timer

Last write wins: only the dimensions of the most recent event inside the
debounce window are computed. Events arriving while a run is in progress
are kept and scheduled once it finishes.

INVARIANT: no public method raises because of a failed layout run. A
failing run is logged, counted, and replaced with the last good result
(or a minimal layout when there is none).
"""

from __future__ import annotations

import random
import time
from collections import deque
from collections.abc import Callable
from typing import Any

import structlog

from cardlayout.config.models import CoordinatorConfig, EngineConfig
from cardlayout.coordinator.cache import LayoutCache
from cardlayout.coordinator.metrics import CoordinatorMetrics, MetricsRecorder, RunMetrics
from cardlayout.coordinator.scheduler import LoopScheduler, Scheduler, TimerHandle
from cardlayout.coordinator.sources import DimensionSource
from cardlayout.domain.models import LayoutResult
from cardlayout.domain.types import CoordinatorState
from cardlayout.engine.device import classify_device
from cardlayout.engine.spacing import sanitize_dimension
from cardlayout.plugins.manager import PluginManager
from cardlayout.services.layout import (
    check_layout,
    minimal_layout,
    normalize_card_count,
    run_pipeline,
)
from cardlayout.services.telemetry import stage_timings

log = structlog.get_logger(__name__)


class ResizeCoordinator:
    """Recompute the layout for a container, at most once per debounce window.

    Parameters:
        card_count: Number of cards to lay out.
        config: Coordinator section (debounce, history and cache bounds).
        engine_config: Engine section forwarded to ``run_pipeline``.
        scheduler: Timer provider; defaults to the running asyncio loop.
        source: Dimension source to attach immediately.
        plugin_manager: Receives ``post_layout``/``post_fallback``/``post_resize_run``.
        cache: Layout cache; a fresh one sized from *config* by default.
        rng: Rotation source forwarded to ``run_pipeline``.
        clock: Monotonic clock in seconds, used for run durations.
    """

    def __init__(
        self,
        card_count: int = 1,
        *,
        config: CoordinatorConfig | None = None,
        engine_config: EngineConfig | None = None,
        scheduler: Scheduler | None = None,
        source: DimensionSource | None = None,
        plugin_manager: PluginManager | None = None,
        cache: LayoutCache | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._config = config or CoordinatorConfig()
        self._engine_config = engine_config or EngineConfig()
        self._scheduler = scheduler or LoopScheduler()
        self._plugin_manager = plugin_manager
        self._cache = cache if cache is not None else LayoutCache(self._config.cache_size)
        self._rng = rng
        self._clock = clock

        self._card_count = normalize_card_count(card_count)
        self._state = CoordinatorState.IDLE
        self._handle: TimerHandle | None = None
        self._pending: tuple[float, float] | None = None
        self._dirty = False
        self._last_dims: tuple[float, float] | None = None
        self._current: LayoutResult | None = None
        self._last_good: LayoutResult | None = None
        self._history: deque[LayoutResult] = deque(maxlen=self._config.max_history)
        self._metrics = MetricsRecorder(
            self._config.max_history,
            performance_threshold_ms=self._config.performance_threshold_ms,
        )
        self._source: DimensionSource | None = None
        self._unsubscribe: Callable[[], None] | None = None

        if source is not None:
            self.attach(source)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> CoordinatorState:
        return self._state

    @property
    def card_count(self) -> int:
        return self._card_count

    @property
    def current(self) -> LayoutResult | None:
        """Most recent layout, or None before the first run."""
        return self._current

    @property
    def dimensions(self) -> tuple[float, float] | None:
        """Dimensions the current layout was computed for."""
        return self._last_dims

    @property
    def history(self) -> list[LayoutResult]:
        return list(self._history)

    @property
    def runs(self) -> list[RunMetrics]:
        return list(self._metrics.runs)

    @property
    def cache(self) -> LayoutCache:
        return self._cache

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def notify_resize(self, width: float, height: float) -> None:
        """Record new container dimensions and (re)arm the debounce timer."""
        dims = (width, height)
        if self._state is CoordinatorState.RUNNING:
            self._pending = dims
            return
        if (
            self._state is CoordinatorState.IDLE
            and not self._dirty
            and dims == self._last_dims
        ):
            log.debug("coordinator.resize_ignored", width=width, height=height)
            return
        self._pending = dims
        self._arm()

    def set_card_count(self, card_count: int) -> None:
        """Change the card count and schedule a recomputation."""
        count = normalize_card_count(card_count)
        if count == self._card_count:
            return
        self._card_count = count
        self._dirty = True
        if self._pending is None:
            self._pending = self._last_dims
        if self._pending is None or self._state is CoordinatorState.RUNNING:
            return
        self._arm()

    def flush(self) -> LayoutResult | None:
        """Run a pending recomputation now instead of waiting for the timer."""
        if self._state is CoordinatorState.RUNNING:
            return self._current
        self._cancel_timer()
        if self._pending is not None:
            self._run()
        return self._current

    def attach(self, source: DimensionSource) -> None:
        """Subscribe to *source* and schedule a run for its current size."""
        self.detach()
        self._source = source
        self._unsubscribe = source.subscribe(self.notify_resize)
        self.notify_resize(source.width, source.height)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
        self._unsubscribe = None
        self._source = None

    def get_metrics(self) -> CoordinatorMetrics:
        return self._metrics.snapshot(
            cache_hits=self._cache.hits,
            cache_misses=self._cache.misses,
        )

    def get_debug_snapshot(self) -> dict[str, Any]:
        """JSON-serialisable view of the coordinator for debug tooling."""
        return {
            "state": self._state.value,
            "card_count": self._card_count,
            "dimensions": list(self._last_dims) if self._last_dims else None,
            "current": self._current.model_dump(mode="json") if self._current else None,
            "validation": (
                check_layout(self._current, self._engine_config).model_dump(mode="json")
                if self._current
                else None
            ),
            "history": [r.model_dump(mode="json") for r in self._history],
            "runs": [r.model_dump(mode="json") for r in self._metrics.runs],
            "metrics": self.get_metrics().model_dump(mode="json"),
            "cache": self._cache.stats(),
        }

    def get_performance_report(self) -> dict[str, Any]:
        """Aggregate metrics, the ten most recent runs and tuning hints."""
        metrics = self.get_metrics()
        return {
            "summary": metrics.model_dump(mode="json"),
            "recent_runs": [r.model_dump(mode="json") for r in list(self._metrics.runs)[-10:]],
            "error_types": dict(metrics.error_types),
            "recommendations": self._metrics.recommendations(metrics),
        }

    def cleanup(self) -> None:
        """Trim layout and run history to the newest quarter of ``max_history``."""
        keep = self._metrics.keep_count()
        while len(self._history) > keep:
            self._history.popleft()
        self._metrics.trim()
        log.debug("coordinator.cleanup", kept=keep)

    def reset(self) -> None:
        """Cancel any pending run and clear history, metrics and cache."""
        self._cancel_timer()
        self._state = CoordinatorState.IDLE
        self._pending = None
        self._dirty = False
        self._last_dims = None
        self._current = None
        self._last_good = None
        self._history.clear()
        self._metrics.reset()
        self._cache.clear()

    def close(self) -> None:
        """Detach from the source and cancel any pending run."""
        self.detach()
        self._cancel_timer()
        self._pending = None
        self._state = CoordinatorState.IDLE

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _arm(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._metrics.record_debounce()
        self._handle = self._scheduler.call_later(self._config.debounce_seconds, self._on_timer)
        self._state = CoordinatorState.SCHEDULED

    def _cancel_timer(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _on_timer(self) -> None:
        self._handle = None
        if self._pending is not None:
            self._run()
        else:
            self._state = CoordinatorState.IDLE

    def _compute(self, width: float, height: float) -> tuple[LayoutResult, bool]:
        tier = classify_device(sanitize_dimension(width))
        key = LayoutCache.make_key(self._card_count, width, height, tier)
        cached = self._cache.get(key)
        if cached is not None:
            return cached, True
        result = run_pipeline(
            self._card_count,
            width,
            height,
            config=self._engine_config,
            rng=self._rng,
        )
        self._cache.put(key, result)
        return result, False

    def _run(self) -> None:
        if self._pending is None:
            self._state = CoordinatorState.IDLE
            return
        width, height = self._pending
        self._pending = None
        self._dirty = False
        self._state = CoordinatorState.RUNNING

        start = self._clock()
        error: str | None = None
        error_type: str | None = None
        cache_hit = False
        try:
            result, cache_hit = self._compute(width, height)
        except Exception as exc:
            error = str(exc) or exc.__class__.__name__
            error_type = exc.__class__.__name__
            log.error(
                "coordinator.run_failed",
                card_count=self._card_count,
                width=width,
                height=height,
                exc_info=True,
            )
            result = self._last_good or minimal_layout(self._card_count, width, height)
        duration_ms = (self._clock() - start) * 1000

        self._current = result
        self._last_dims = (width, height)
        if error is None:
            self._last_good = result
        else:
            # Same dimensions must recompute once the failure clears.
            self._dirty = True
        self._history.append(result)

        run = RunMetrics(
            run_id=self._metrics.next_run_id(),
            card_count=self._card_count,
            container_width=sanitize_dimension(width),
            container_height=sanitize_dimension(height),
            duration_ms=round(duration_ms, 3),
            cache_hit=cache_hit,
            is_fallback=result.is_fallback,
            error=error,
        )
        if self._config.enable_metrics:
            slow = self._metrics.record(run, error_type=error_type)
            if slow:
                log.warning(
                    "coordinator.slow_run",
                    duration_ms=run.duration_ms,
                    threshold_ms=self._config.performance_threshold_ms,
                    stages=stage_timings(result),
                )

        self._dispatch_hooks(result, run)

        self._state = CoordinatorState.IDLE
        if self._pending is not None:
            if self._pending == self._last_dims and not self._dirty:
                self._pending = None
            else:
                self._arm()

    def _dispatch_hooks(self, result: LayoutResult, run: RunMetrics) -> None:
        if self._plugin_manager is None:
            return
        pm = self._plugin_manager
        pm.dispatch(
            "post_layout",
            card_count=run.card_count,
            container_width=run.container_width,
            container_height=run.container_height,
            layout=result.model_dump(mode="json"),
        )
        if result.is_fallback or run.error is not None:
            pm.dispatch(
                "post_fallback",
                card_count=run.card_count,
                layout_info=result.layout_info.model_dump(mode="json"),
                reason=run.error or "layout exceeded the safe area",
            )
        pm.dispatch("post_resize_run", run=run.model_dump(mode="json"))

"""Per-run metrics and bounded run history for the resize coordinator."""

from __future__ import annotations

from collections import Counter, deque
from datetime import UTC, datetime

from pydantic import BaseModel, Field

# Share of max_history kept by cleanup().
CLEANUP_KEEP_FRACTION = 0.25


def now_iso() -> str:
    """Current UTC time as standard ISO 8601."""
    return datetime.now(UTC).isoformat()


class RunMetrics(BaseModel):
    """One coordinator recomputation."""

    model_config = {"frozen": True}

    run_id: int
    card_count: int
    container_width: float
    container_height: float
    duration_ms: float
    cache_hit: bool = False
    is_fallback: bool = False
    error: str | None = None
    timestamp: str = Field(default_factory=now_iso)

    @property
    def ok(self) -> bool:
        return self.error is None


class CoordinatorMetrics(BaseModel):
    """Aggregate counters across every run since the last reset."""

    model_config = {"frozen": True}

    run_count: int = 0
    total_duration_ms: float = 0.0
    average_duration_ms: float = 0.0
    debounce_hits: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    fallback_count: int = 0
    error_count: int = 0
    slow_runs: int = 0
    error_types: dict[str, int] = Field(default_factory=dict)


class MetricsRecorder:
    """Accumulates run metrics; the run history is bounded by *max_history*."""

    def __init__(self, max_history: int = 50, *, performance_threshold_ms: float = 100) -> None:
        self.max_history = max(1, max_history)
        self.performance_threshold_ms = performance_threshold_ms
        self.runs: deque[RunMetrics] = deque(maxlen=self.max_history)
        self._next_run_id = 1
        self._reset_counters()

    def _reset_counters(self) -> None:
        self.run_count = 0
        self.total_duration_ms = 0.0
        self.debounce_hits = 0
        self.fallback_count = 0
        self.slow_runs = 0
        self.error_types: Counter[str] = Counter()

    def next_run_id(self) -> int:
        run_id = self._next_run_id
        self._next_run_id += 1
        return run_id

    def record_debounce(self) -> None:
        self.debounce_hits += 1

    def record(self, run: RunMetrics, *, error_type: str | None = None) -> bool:
        """Add *run* to the history. Returns True when the run was slow."""
        self.runs.append(run)
        self.run_count += 1
        self.total_duration_ms += run.duration_ms
        if run.is_fallback:
            self.fallback_count += 1
        if error_type is not None:
            self.error_types[error_type] += 1
        slow = run.duration_ms > self.performance_threshold_ms
        if slow:
            self.slow_runs += 1
        return slow

    def keep_count(self) -> int:
        return int(self.max_history * CLEANUP_KEEP_FRACTION)

    def trim(self) -> None:
        """Keep only the newest quarter of ``max_history`` runs."""
        keep = self.keep_count()
        while len(self.runs) > keep:
            self.runs.popleft()

    def reset(self) -> None:
        self.runs.clear()
        self._next_run_id = 1
        self._reset_counters()

    def snapshot(self, *, cache_hits: int = 0, cache_misses: int = 0) -> CoordinatorMetrics:
        average = self.total_duration_ms / self.run_count if self.run_count else 0.0
        return CoordinatorMetrics(
            run_count=self.run_count,
            total_duration_ms=round(self.total_duration_ms, 3),
            average_duration_ms=round(average, 3),
            debounce_hits=self.debounce_hits,
            cache_hits=cache_hits,
            cache_misses=cache_misses,
            fallback_count=self.fallback_count,
            error_count=sum(self.error_types.values()),
            slow_runs=self.slow_runs,
            error_types=dict(self.error_types),
        )

    def recommendations(self, metrics: CoordinatorMetrics) -> list[str]:
        """Tuning hints derived from the aggregate counters."""
        hints: list[str] = []
        if metrics.average_duration_ms > self.performance_threshold_ms:
            hints.append(
                f"average run {metrics.average_duration_ms:.2f}ms exceeds "
                f"{self.performance_threshold_ms:.0f}ms; consider simplifying the layout"
            )
        if metrics.run_count and metrics.debounce_hits > metrics.run_count * 2:
            hints.append("debounce hits are high; consider a longer debounce delay")
        if metrics.run_count and metrics.error_count / metrics.run_count > 0.1:
            rate = metrics.error_count / metrics.run_count * 100
            hints.append(f"error rate {rate:.1f}% is high")
        return hints

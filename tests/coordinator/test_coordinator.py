"""Tests for the ResizeCoordinator: debounce, caching, metrics, hooks."""

from __future__ import annotations

import asyncio
import itertools
import json
from typing import Any

import pytest
from structlog.testing import capture_logs

from cardlayout.config.models import CoordinatorConfig
from cardlayout.coordinator.coordinator import ResizeCoordinator
from cardlayout.coordinator.sources import StaticDimensionSource
from cardlayout.domain.types import CoordinatorState, DeviceTier
from cardlayout.plugins.hookspecs import hookimpl
from cardlayout.plugins.manager import PluginManager
from cardlayout.services import layout as layout_service
from cardlayout.services.telemetry import enable_telemetry
from tests.conftest import ManualScheduler

DEBOUNCE = 0.15


def _make(scheduler: ManualScheduler, card_count: int = 9, **config: Any) -> ResizeCoordinator:
    return ResizeCoordinator(
        card_count,
        config=CoordinatorConfig(**{"debounce_ms": 150, **config}),
        scheduler=scheduler,
    )


class RecordingPlugin:
    def __init__(self) -> None:
        self.layouts: list[dict[str, Any]] = []
        self.fallbacks: list[dict[str, Any]] = []
        self.runs: list[dict[str, Any]] = []

    @hookimpl
    def post_layout(
        self,
        card_count: int,
        container_width: float,
        container_height: float,
        layout: dict[str, Any],
    ) -> None:
        self.layouts.append({"card_count": card_count, "width": container_width, **layout})

    @hookimpl
    def post_fallback(self, card_count: int, layout_info: dict[str, Any], reason: str) -> None:
        self.fallbacks.append({"card_count": card_count, "reason": reason})

    @hookimpl
    def post_resize_run(self, run: dict[str, Any]) -> None:
        self.runs.append(run)


class FailingPlugin:
    @hookimpl
    def post_layout(
        self,
        card_count: int,
        container_width: float,
        container_height: float,
        layout: dict[str, Any],
    ) -> None:
        raise RuntimeError("plugin exploded")


class TestDebounce:
    def test_last_write_wins(
        self, coordinator: ResizeCoordinator, scheduler: ManualScheduler
    ) -> None:
        coordinator.notify_resize(800, 600)
        scheduler.advance(0.1)
        coordinator.notify_resize(400, 600)
        scheduler.advance(0.1)
        assert coordinator.runs == []
        scheduler.advance(0.1)

        assert len(coordinator.runs) == 1
        assert coordinator.dimensions == (400, 600)
        assert coordinator.current is not None
        assert coordinator.current.device_tier is DeviceTier.MOBILE
        assert coordinator.get_metrics().debounce_hits == 1

    def test_state_transitions(
        self, coordinator: ResizeCoordinator, scheduler: ManualScheduler
    ) -> None:
        assert coordinator.state is CoordinatorState.IDLE
        coordinator.notify_resize(1366, 768)
        assert coordinator.state is CoordinatorState.SCHEDULED
        scheduler.advance(DEBOUNCE)
        assert coordinator.state is CoordinatorState.IDLE

    def test_no_run_before_window_elapses(
        self, coordinator: ResizeCoordinator, scheduler: ManualScheduler
    ) -> None:
        coordinator.notify_resize(1366, 768)
        scheduler.advance(DEBOUNCE - 0.01)
        assert coordinator.current is None

    def test_identical_resize_is_ignored(
        self, coordinator: ResizeCoordinator, scheduler: ManualScheduler
    ) -> None:
        coordinator.notify_resize(1366, 768)
        scheduler.advance(DEBOUNCE)
        first = coordinator.current

        coordinator.notify_resize(1366, 768)
        assert coordinator.state is CoordinatorState.IDLE
        assert scheduler.pending == []
        scheduler.advance(1)
        assert coordinator.current is first
        assert len(coordinator.runs) == 1

    def test_flush_runs_immediately(
        self, coordinator: ResizeCoordinator, scheduler: ManualScheduler
    ) -> None:
        coordinator.notify_resize(1366, 768)
        result = coordinator.flush()
        assert result is not None
        assert result.layout_info.rows == 2
        assert scheduler.pending == []
        assert coordinator.state is CoordinatorState.IDLE

    def test_flush_without_pending_returns_current(
        self, coordinator: ResizeCoordinator
    ) -> None:
        assert coordinator.flush() is None


class TestCardCount:
    def test_change_schedules_recompute(
        self, coordinator: ResizeCoordinator, scheduler: ManualScheduler
    ) -> None:
        coordinator.notify_resize(1366, 768)
        scheduler.advance(DEBOUNCE)
        coordinator.set_card_count(4)
        assert coordinator.state is CoordinatorState.SCHEDULED
        scheduler.advance(DEBOUNCE)
        assert coordinator.current is not None
        assert coordinator.current.card_count == 4

    def test_same_count_is_noop(
        self, coordinator: ResizeCoordinator, scheduler: ManualScheduler
    ) -> None:
        coordinator.notify_resize(1366, 768)
        scheduler.advance(DEBOUNCE)
        coordinator.set_card_count(9)
        assert coordinator.state is CoordinatorState.IDLE

    def test_without_dimensions_waits(self, coordinator: ResizeCoordinator) -> None:
        coordinator.set_card_count(3)
        assert coordinator.card_count == 3
        assert coordinator.state is CoordinatorState.IDLE

    def test_invalid_count_clamped(self, coordinator: ResizeCoordinator) -> None:
        coordinator.set_card_count(-2)
        assert coordinator.card_count == 1


class TestCache:
    def test_repeat_dimensions_hit_cache(
        self, coordinator: ResizeCoordinator, scheduler: ManualScheduler
    ) -> None:
        for dims in [(1366, 768), (800, 600), (1366, 768)]:
            coordinator.notify_resize(*dims)
            scheduler.advance(DEBOUNCE)
        runs = coordinator.runs
        assert [r.cache_hit for r in runs] == [False, False, True]
        assert coordinator.history[0] is coordinator.history[2]
        metrics = coordinator.get_metrics()
        assert (metrics.cache_hits, metrics.cache_misses) == (1, 2)


class TestHistory:
    def test_bounded_by_max_history(self, scheduler: ManualScheduler) -> None:
        coord = _make(scheduler, max_history=5)
        for width in range(800, 1600, 100):
            coord.notify_resize(width, 768)
            coord.flush()
        assert len(coord.history) == 5
        assert len(coord.runs) == 5
        assert coord.get_metrics().run_count == 8
        assert coord.runs[-1].container_width == 1500

    def test_cleanup_keeps_newest_quarter(self, scheduler: ManualScheduler) -> None:
        coord = _make(scheduler, max_history=8)
        for width in range(800, 1600, 100):
            coord.notify_resize(width, 768)
            coord.flush()
        coord.cleanup()
        assert [r.container_width for r in coord.runs] == [1400, 1500]
        assert len(coord.history) == 2

    def test_metrics_disabled(self, scheduler: ManualScheduler) -> None:
        coord = _make(scheduler, enable_metrics=False)
        coord.notify_resize(1366, 768)
        coord.flush()
        assert coord.current is not None
        assert coord.runs == []
        assert coord.get_metrics().run_count == 0

    def test_reset_clears_everything(
        self, coordinator: ResizeCoordinator, scheduler: ManualScheduler
    ) -> None:
        coordinator.notify_resize(1366, 768)
        scheduler.advance(DEBOUNCE)
        coordinator.notify_resize(800, 600)
        coordinator.reset()

        assert scheduler.pending == []
        assert coordinator.state is CoordinatorState.IDLE
        assert coordinator.current is None
        assert coordinator.history == []
        assert len(coordinator.cache) == 0
        assert coordinator.get_metrics().run_count == 0
        scheduler.advance(1)
        assert coordinator.current is None


class TestErrors:
    def test_failed_run_keeps_last_good(
        self,
        coordinator: ResizeCoordinator,
        scheduler: ManualScheduler,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        coordinator.notify_resize(1366, 768)
        scheduler.advance(DEBOUNCE)
        good = coordinator.current

        def boom(*args: object, **kwargs: object) -> None:
            raise RuntimeError("boom")

        monkeypatch.setattr(layout_service, "calculate_card_size", boom)
        with capture_logs() as logs:
            coordinator.notify_resize(1024, 700)
            scheduler.advance(DEBOUNCE)

        assert coordinator.current is good
        assert coordinator.runs[-1].error == "boom"
        metrics = coordinator.get_metrics()
        assert metrics.error_count == 1
        assert metrics.error_types == {"RuntimeError": 1}
        assert any(e["event"] == "coordinator.run_failed" for e in logs)

    def test_failed_run_is_not_cached(
        self,
        coordinator: ResizeCoordinator,
        scheduler: ManualScheduler,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        coordinator.notify_resize(1366, 768)
        scheduler.advance(DEBOUNCE)

        def boom(*args: object, **kwargs: object) -> None:
            raise RuntimeError("boom")

        with monkeypatch.context() as patch:
            patch.setattr(layout_service, "calculate_card_size", boom)
            coordinator.notify_resize(1280, 768)
            scheduler.advance(DEBOUNCE)
        assert len(coordinator.cache) == 1

        # Same size again after the stage recovers: recomputed, not ignored.
        coordinator.notify_resize(1280, 768)
        scheduler.advance(DEBOUNCE)
        result = coordinator.current
        assert result is not None
        assert not result.is_fallback
        assert coordinator.runs[-1].error is None
        assert coordinator.runs[-1].cache_hit is False
        assert coordinator.get_metrics().error_count == 1

    def test_run_without_pending_is_a_no_op(self, coordinator: ResizeCoordinator) -> None:
        coordinator._run()
        assert coordinator.state is CoordinatorState.IDLE
        assert coordinator.runs == []
        assert coordinator.current is None

    def test_failed_first_run_uses_minimal_layout(
        self,
        coordinator: ResizeCoordinator,
        scheduler: ManualScheduler,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        def boom(*args: object, **kwargs: object) -> None:
            raise RuntimeError("boom")

        monkeypatch.setattr(layout_service, "calculate_card_size", boom)
        coordinator.notify_resize(1366, 768)
        scheduler.advance(DEBOUNCE)

        result = coordinator.current
        assert result is not None
        assert result.is_fallback
        assert len(result.positions) == 9
        assert coordinator.state is CoordinatorState.IDLE

    def test_slow_run_logged(self, scheduler: ManualScheduler) -> None:
        coord = ResizeCoordinator(
            3,
            config=CoordinatorConfig(performance_threshold_ms=100),
            scheduler=scheduler,
            clock=itertools.count(0, 0.5).__next__,
        )
        with capture_logs() as logs:
            coord.notify_resize(1366, 768)
            coord.flush()
        assert coord.get_metrics().slow_runs == 1
        assert coord.runs[0].duration_ms == 500
        assert any(e["event"] == "coordinator.slow_run" for e in logs)

    def test_slow_run_reports_stage_timings(self, scheduler: ManualScheduler) -> None:
        enable_telemetry()
        coord = ResizeCoordinator(
            3,
            config=CoordinatorConfig(performance_threshold_ms=100),
            scheduler=scheduler,
            clock=itertools.count(0, 0.5).__next__,
        )
        with capture_logs() as logs:
            coord.notify_resize(1366, 768)
            coord.flush()
        slow = next(e for e in logs if e["event"] == "coordinator.slow_run")
        assert "solve" in slow["stages"]


class TestSources:
    def test_attach_schedules_initial_run(self, scheduler: ManualScheduler) -> None:
        source = StaticDimensionSource(1366, 768)
        coord = _make(scheduler)
        coord.attach(source)
        assert coord.state is CoordinatorState.SCHEDULED
        scheduler.advance(DEBOUNCE)
        assert coord.dimensions == (1366, 768)

    def test_source_resize_is_debounced(self, scheduler: ManualScheduler) -> None:
        source = StaticDimensionSource(1366, 768)
        coord = ResizeCoordinator(4, scheduler=scheduler, source=source)
        scheduler.advance(DEBOUNCE)
        source.set_size(800, 600)
        source.set_size(400, 600)
        scheduler.advance(DEBOUNCE)
        assert coord.dimensions == (400, 600)
        assert len(coord.runs) == 2

    def test_detach_unsubscribes(self, scheduler: ManualScheduler) -> None:
        source = StaticDimensionSource(1366, 768)
        coord = _make(scheduler)
        coord.attach(source)
        assert source.subscriber_count == 1
        coord.detach()
        assert source.subscriber_count == 0

    def test_close_cancels_pending(self, scheduler: ManualScheduler) -> None:
        source = StaticDimensionSource(1366, 768)
        coord = _make(scheduler)
        coord.attach(source)
        coord.close()
        scheduler.advance(1)
        assert coord.current is None
        assert source.subscriber_count == 0


class TestHooks:
    def test_hooks_receive_payloads(self, scheduler: ManualScheduler) -> None:
        pm = PluginManager()
        plugin = RecordingPlugin()
        pm.register_plugin(plugin)
        coord = ResizeCoordinator(5, scheduler=scheduler, plugin_manager=pm)

        coord.notify_resize(1366, 768)
        scheduler.advance(DEBOUNCE)
        coord.notify_resize(200, 300)
        scheduler.advance(DEBOUNCE)

        assert [entry["width"] for entry in plugin.layouts] == [1366, 200]
        assert plugin.layouts[0]["layout_info"]["rows"] == 2
        assert len(plugin.fallbacks) == 1
        assert [r["run_id"] for r in plugin.runs] == [1, 2]

    def test_failing_plugin_is_a_warning(self, scheduler: ManualScheduler) -> None:
        pm = PluginManager()
        pm.register_plugin(FailingPlugin())
        coord = ResizeCoordinator(5, scheduler=scheduler, plugin_manager=pm)
        coord.notify_resize(1366, 768)
        scheduler.advance(DEBOUNCE)
        assert coord.current is not None
        assert coord.runs[-1].error is None
        assert coord.state is CoordinatorState.IDLE

    def test_resize_during_run_is_rescheduled(self, scheduler: ManualScheduler) -> None:
        pm = PluginManager()
        coord = ResizeCoordinator(5, scheduler=scheduler, plugin_manager=pm)

        class Resizer:
            fired = False

            @hookimpl
            def post_resize_run(self, run: dict[str, Any]) -> None:
                if not self.fired:
                    self.fired = True
                    coord.notify_resize(800, 600)

        pm.register_plugin(Resizer())
        coord.notify_resize(1366, 768)
        scheduler.advance(DEBOUNCE)
        assert coord.dimensions == (1366, 768)
        assert coord.state is CoordinatorState.SCHEDULED

        scheduler.advance(DEBOUNCE)
        assert coord.dimensions == (800, 600)
        assert len(coord.runs) == 2


class TestDebugSnapshot:
    def test_json_serialisable(
        self, coordinator: ResizeCoordinator, scheduler: ManualScheduler
    ) -> None:
        coordinator.notify_resize(1366, 768)
        scheduler.advance(DEBOUNCE)
        snapshot = coordinator.get_debug_snapshot()
        encoded = json.loads(json.dumps(snapshot))
        assert encoded["state"] == "idle"
        assert encoded["card_count"] == 9
        assert encoded["dimensions"] == [1366, 768]
        assert len(encoded["history"]) == 1
        assert encoded["metrics"]["run_count"] == 1
        assert encoded["cache"]["size"] == 1
        assert encoded["validation"]["is_valid"] is True
        assert encoded["validation"]["out_of_bounds_indices"] == []

    def test_empty_snapshot(self, coordinator: ResizeCoordinator) -> None:
        snapshot = coordinator.get_debug_snapshot()
        assert snapshot["current"] is None
        assert snapshot["validation"] is None
        assert snapshot["history"] == []

    def test_performance_report(
        self, coordinator: ResizeCoordinator, scheduler: ManualScheduler
    ) -> None:
        coordinator.notify_resize(1366, 768)
        scheduler.advance(DEBOUNCE)
        report = coordinator.get_performance_report()
        assert report["summary"]["run_count"] == 1
        assert len(report["recent_runs"]) == 1
        assert isinstance(report["recommendations"], list)


class TestLoopScheduler:
    def test_default_scheduler_uses_event_loop(self) -> None:
        async def scenario() -> ResizeCoordinator:
            coord = ResizeCoordinator(
                6, config=CoordinatorConfig(debounce_ms=10), rng=None
            )
            coord.notify_resize(1024, 768)
            coord.notify_resize(1366, 768)
            await asyncio.sleep(0.05)
            return coord

        coord = asyncio.run(scenario())
        assert coord.dimensions == (1366, 768)
        assert len(coord.runs) == 1

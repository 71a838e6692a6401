"""Shared pytest fixtures and test helpers for cardlayout tests."""

from __future__ import annotations

import random
from collections.abc import Callable, Generator
from dataclasses import dataclass, field

import pytest

from cardlayout.config.models import CoordinatorConfig
from cardlayout.coordinator.coordinator import ResizeCoordinator
from cardlayout.domain.models import LayoutResult
from cardlayout.services.telemetry import _current_span, disable_telemetry


@dataclass
class ManualTimer:
    """Timer handle returned by :class:`ManualScheduler`."""

    due: float
    callback: Callable[[], None]
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class ManualScheduler:
    """Scheduler driven by the test: time only moves on ``advance()``."""

    now: float = 0.0
    timers: list[ManualTimer] = field(default_factory=list)

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(due=self.now + delay, callback=callback)
        self.timers.append(timer)
        return timer

    @property
    def pending(self) -> list[ManualTimer]:
        return [t for t in self.timers if not t.cancelled]

    def advance(self, seconds: float) -> None:
        """Move time forward and fire every timer that became due, in order."""
        target = self.now + seconds
        while True:
            due = [t for t in self.pending if t.due <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.due)
            self.now = timer.due
            timer.cancelled = True
            timer.callback()
        self.now = target


@pytest.fixture(autouse=True)
def _reset_telemetry_state() -> Generator[None]:
    """Telemetry is context-local; make sure no test leaks it into the next."""
    yield
    disable_telemetry()
    _current_span.set(None)


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def rng() -> random.Random:
    """Seeded rotation source for reproducible layouts."""
    return random.Random(1234)


@pytest.fixture
def coordinator(scheduler: ManualScheduler, rng: random.Random) -> ResizeCoordinator:
    """Coordinator with a 150 ms debounce on the manual scheduler."""
    return ResizeCoordinator(
        9,
        config=CoordinatorConfig(debounce_ms=150),
        scheduler=scheduler,
        rng=rng,
    )


# ---------------------------------------------------------------------------
# Shared test helpers
# ---------------------------------------------------------------------------


def assert_in_bounds(result: LayoutResult, *, tolerance: float = 0.5) -> None:
    """Every card rectangle lies inside the result's available space."""
    space = result.available_space
    assert space is not None
    half_w = space.width / 2 + tolerance
    half_h = space.height / 2 + tolerance
    for index, pos in enumerate(result.positions):
        assert pos.left >= -half_w, f"card {index} leaves the left edge"
        assert pos.right <= half_w, f"card {index} leaves the right edge"
        assert pos.top >= -half_h, f"card {index} leaves the top edge"
        assert pos.bottom <= half_h, f"card {index} leaves the bottom edge"


def assert_no_overlap(result: LayoutResult, *, tolerance: float = 0.5) -> None:
    """No two card rectangles overlap by more than *tolerance* on both axes."""
    positions = result.positions
    for i, a in enumerate(positions):
        for j in range(i + 1, len(positions)):
            b = positions[j]
            overlap_x = min(a.right, b.right) - max(a.left, b.left)
            overlap_y = min(a.bottom, b.bottom) - max(a.top, b.top)
            assert not (overlap_x > tolerance and overlap_y > tolerance), (
                f"cards {i} and {j} overlap"
            )

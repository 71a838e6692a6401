"""Layout service — runs the engine pipeline end to end.

INVARIANT: ``compute_layout`` always returns a usable LayoutResult with
exactly ``max(1, card_count)`` positions. Bad input is clamped, an
overflowing primary plan is replaced by the emergency layout, and any
unexpected error is replaced by a minimal single-row layout.
"""

from __future__ import annotations

import math
import random
from typing import Any

import structlog

from cardlayout.config.models import EngineConfig
from cardlayout.domain.models import (
    AvailableSpace,
    CardSize,
    LayoutInfo,
    LayoutResult,
    ReservedChrome,
    ValidationReport,
)
from cardlayout.domain.types import DeviceTier
from cardlayout.engine.device import classify_device
from cardlayout.engine.emergency import EMERGENCY_SPACING, emergency_spacing, solve_emergency
from cardlayout.engine.positions import generate_positions
from cardlayout.engine.solver import calculate_card_size, determine_grid_plan, grid_extent
from cardlayout.engine.spacing import calculate_available_space, get_spacing, sanitize_dimension
from cardlayout.engine.validator import validate, validate_cards
from cardlayout.errors import PositionCountMismatch
from cardlayout.services.telemetry import trace_span, traced

log = structlog.get_logger(__name__)


def normalize_card_count(value: Any) -> int:
    """Clamp a requested card count to a usable integer (at least 1)."""
    if isinstance(value, bool) or not isinstance(value, int | float):
        return 1
    if not math.isfinite(value):
        return 1
    return max(1, int(value))


@traced
def run_pipeline(
    card_count: int,
    container_width: float,
    container_height: float,
    *,
    chrome: ReservedChrome | None = None,
    rng: random.Random | None = None,
    config: EngineConfig | None = None,
) -> LayoutResult:
    """Classify, solve, position and validate; fall back when it overflows.

    Raises:
        PositionCountMismatch: if a stage lost cards (never expected).
    """
    config = config or EngineConfig()
    count = normalize_card_count(card_count)
    width = sanitize_dimension(container_width)

    with trace_span("classify"):
        tier = classify_device(width)
        spacing = get_spacing(tier)
    with trace_span("available_space"):
        space = calculate_available_space(
            width, container_height, chrome or config.chrome, tier=tier
        )
    with trace_span("solve") as span:
        plan = determine_grid_plan(count, space, spacing)
        card_size = calculate_card_size(plan.rows, plan.cards_per_row, space, spacing)
        if span:
            span.annotate("grid", f"{plan.rows}x{plan.cards_per_row}")
    with trace_span("positions"):
        positions = generate_positions(
            count,
            plan.rows,
            plan.cards_per_row,
            card_size,
            space,
            spacing,
            rotation_range=config.rotation_range,
            rng=rng,
        )
        total_width, total_height = grid_extent(plan.rows, plan.cards_per_row, card_size, spacing)

    result = LayoutResult(
        positions=positions,
        actual_card_size=card_size,
        layout_info=LayoutInfo(
            rows=plan.rows,
            cards_per_row=plan.cards_per_row,
            total_width=total_width,
            total_height=total_height,
        ),
        available_space=space,
        device_tier=tier,
    )

    with trace_span("validate"):
        report = validate(result, space)

    if not report.is_valid:
        with trace_span("emergency"):
            fallback = solve_emergency(count, space, tier=tier, rng=rng)
        log.warning(
            "layout.fallback",
            card_count=count,
            container=f"{width:.0f}x{sanitize_dimension(container_height):.0f}",
            before={
                "grid": f"{plan.rows}x{plan.cards_per_row}",
                "total": f"{total_width:.0f}x{total_height:.0f}",
                "overflow": {a.direction.value: round(a.amount, 1) for a in report.overflow_areas},
            },
            after={
                "grid": f"{fallback.layout_info.rows}x{fallback.layout_info.cards_per_row}",
                "total": (
                    f"{fallback.layout_info.total_width:.0f}x"
                    f"{fallback.layout_info.total_height:.0f}"
                ),
            },
        )
        result = fallback

    if len(result.positions) != count:
        msg = f"expected {count} positions, got {len(result.positions)}"
        raise PositionCountMismatch(msg, detail={"expected": count, "actual": len(result.positions)})
    return result


def minimal_layout(
    card_count: Any,
    container_width: Any,
    container_height: Any,
) -> LayoutResult:
    """Single-row layout built from plain arithmetic; the last resort.

    Cards share the row evenly inside 95% of the available space with
    the emergency gap and a 2:3 aspect capped by the available height.
    """
    count = normalize_card_count(card_count)
    width = sanitize_dimension(container_width)
    height = sanitize_dimension(container_height)
    space = AvailableSpace(
        width=max(1.0, width or 320.0),
        height=max(1.0, height or 200.0),
        center_x=(width or 320.0) / 2,
        center_y=(height or 200.0) / 2,
    )

    usable_width = space.safe_width - (count - 1) * EMERGENCY_SPACING
    card_width = max(1, math.floor(usable_width / count))
    card_height = max(1, math.floor(min(card_width * 1.5, space.safe_height)))
    total_width = count * card_width + (count - 1) * EMERGENCY_SPACING

    positions = generate_positions(
        count,
        1,
        count,
        CardSize(width=card_width, height=card_height),
        space,
        get_spacing(DeviceTier.DESKTOP).model_copy(
            update={"card_spacing": EMERGENCY_SPACING, "row_spacing": EMERGENCY_SPACING}
        ),
        rotation_range=0,
        is_fallback=True,
    )
    return LayoutResult(
        positions=positions,
        actual_card_size=CardSize(width=card_width, height=card_height),
        layout_info=LayoutInfo(
            rows=1,
            cards_per_row=count,
            total_width=total_width,
            total_height=card_height,
        ),
        available_space=space,
        device_tier=classify_device(width),
        is_fallback=True,
    )


def compute_layout(
    card_count: int,
    container_width: float,
    container_height: float,
    *,
    chrome: ReservedChrome | None = None,
    rng: random.Random | None = None,
    config: EngineConfig | None = None,
) -> LayoutResult:
    """Compute the card layout for a container; never raises.

    Args:
        card_count: Number of cards; values below 1 or non-numeric become 1.
        container_width: Raw container width in pixels.
        container_height: Raw container height in pixels.
        chrome: Space reserved for surrounding UI (defaults from *config*).
        rng: Source of the cosmetic rotation; pass a seeded Random for
            reproducible rotations.
        config: Engine section of the configuration.
    """
    try:
        return run_pipeline(
            card_count,
            container_width,
            container_height,
            chrome=chrome,
            rng=rng,
            config=config,
        )
    except Exception:
        log.error(
            "layout.failed",
            card_count=card_count,
            container_width=container_width,
            container_height=container_height,
            exc_info=True,
        )
        return minimal_layout(card_count, container_width, container_height)


def check_layout(result: LayoutResult, config: EngineConfig | None = None) -> ValidationReport:
    """Strict per-card check of a finished layout, for debug tooling.

    Uses the tolerances from *config* and the spacing the layout was
    solved with (emergency gaps for fallback layouts).
    """
    config = config or EngineConfig()
    space = result.available_space or AvailableSpace(
        width=max(1.0, result.layout_info.total_width),
        height=max(1.0, result.layout_info.total_height),
        center_x=0,
        center_y=0,
    )
    spacing = (
        emergency_spacing(result.device_tier)
        if result.is_fallback
        else get_spacing(result.device_tier)
    )
    return validate_cards(
        result,
        space,
        tolerance=config.overlap_tolerance,
        spacing=spacing,
        spacing_tolerance=config.spacing_tolerance,
    )

"""Emergency layout — relaxed constraints that trade card size for containment.

Runs only after the primary plan fails validation. It never raises and
never leaves the 95% safe area: if even the relaxed minimum card size
cannot fit, the grid is rebalanced for the safe area, cards and gaps are
shrunk below the minimum, and each position carries a ``validation_error``
explaining why.
"""

from __future__ import annotations

import math
import random

import structlog

from cardlayout.domain.models import (
    AvailableSpace,
    CardSize,
    LayoutInfo,
    LayoutResult,
    SpacingConfig,
)
from cardlayout.domain.types import DeviceTier
from cardlayout.engine.positions import generate_positions
from cardlayout.engine.spacing import get_spacing

log = structlog.get_logger(__name__)

EMERGENCY_MIN_WIDTH = 35
EMERGENCY_MIN_HEIGHT = 50
EMERGENCY_SPACING = 6
EMERGENCY_EDGE = 20
EMERGENCY_MAX_ROWS_PREFERRED = 2
MIN_ASPECT = 1.2
MAX_ASPECT = 2.0
SAFE_FRACTION = 0.95
MAX_RESCALE = 0.9
# Undersized layouts: card shape to aim for, and the most of a cell a gap may take.
UNDERSIZED_ASPECT = 1.5
MAX_GAP_SHARE = 0.15


def emergency_spacing(tier: DeviceTier, gap: float = EMERGENCY_SPACING) -> SpacingConfig:
    """Tier spacing with the tight emergency gaps."""
    return get_spacing(tier).model_copy(update={"row_spacing": gap, "card_spacing": gap})


def _emergency_grid(card_count: int, available_space: AvailableSpace) -> tuple[int, int]:
    max_cards_per_row = max(
        1,
        math.floor(
            (available_space.width - EMERGENCY_EDGE) / (EMERGENCY_MIN_WIDTH + EMERGENCY_SPACING)
        ),
    )
    max_rows = max(
        1,
        math.floor(
            (available_space.height - EMERGENCY_EDGE) / (EMERGENCY_MIN_HEIGHT + EMERGENCY_SPACING)
        ),
    )

    if card_count <= max_cards_per_row:
        return 1, card_count

    cards_per_row = min(
        max_cards_per_row,
        math.ceil(card_count / min(max_rows, EMERGENCY_MAX_ROWS_PREFERRED)),
    )
    rows = math.ceil(card_count / cards_per_row)
    if rows > max_rows:
        rows = max_rows
        cards_per_row = math.ceil(card_count / rows)
    return rows, cards_per_row


def _undersized_grid(card_count: int, safe_width: float, safe_height: float) -> tuple[int, int]:
    """Grid whose cells give the widest 2:3 card, ignoring every minimum."""

    def card_width(cards_per_row: int) -> float:
        rows = math.ceil(card_count / cards_per_row)
        return min(safe_width / cards_per_row, safe_height / rows / UNDERSIZED_ASPECT)

    rows = math.ceil(card_count / max(range(1, card_count + 1), key=card_width))
    return rows, math.ceil(card_count / rows)


def _px(value: float) -> float:
    # Whole pixels, except below one pixel where flooring would reach zero.
    return math.floor(value) if value >= 1 else value


def _extent(
    rows: int,
    cards_per_row: int,
    width: float,
    height: float,
    gap: float = EMERGENCY_SPACING,
) -> tuple[float, float]:
    return (
        cards_per_row * width + (cards_per_row - 1) * gap,
        rows * height + (rows - 1) * gap,
    )


def solve_emergency(
    card_count: int,
    available_space: AvailableSpace,
    *,
    tier: DeviceTier = DeviceTier.DESKTOP,
    rng: random.Random | None = None,
) -> LayoutResult:
    """Build a compact layout that fits *available_space*.

    Prefers a single row; otherwise keeps the row count as low as the
    relaxed limits allow. The card size is then fitted to the remaining
    space, its aspect held between 1.2 and 2.0, and scaled down again if
    the grid exceeds 95% of the space.
    """
    count = max(1, card_count)
    rows, cards_per_row = _emergency_grid(count, available_space)

    remaining_width = (
        available_space.width - (cards_per_row - 1) * EMERGENCY_SPACING - EMERGENCY_EDGE
    )
    remaining_height = available_space.height - (rows - 1) * EMERGENCY_SPACING - EMERGENCY_EDGE
    width: float = max(EMERGENCY_MIN_WIDTH, math.floor(remaining_width / cards_per_row))
    height: float = max(EMERGENCY_MIN_HEIGHT, math.floor(remaining_height / rows))

    aspect = height / width
    if aspect > MAX_ASPECT:
        height = math.floor(width * MAX_ASPECT)
    elif aspect < MIN_ASPECT:
        width = math.floor(height / MIN_ASPECT)

    safe_width = available_space.width * SAFE_FRACTION
    safe_height = available_space.height * SAFE_FRACTION
    total_width, total_height = _extent(rows, cards_per_row, width, height)
    if total_width > safe_width or total_height > safe_height:
        scale = min(safe_width / total_width, safe_height / total_height, MAX_RESCALE)
        width = max(EMERGENCY_MIN_WIDTH, math.floor(width * scale))
        height = max(EMERGENCY_MIN_HEIGHT, math.floor(height * scale))
        total_width, total_height = _extent(rows, cards_per_row, width, height)

    gap: float = EMERGENCY_SPACING
    validation_error: str | None = None
    if total_width > safe_width or total_height > safe_height:
        # Even the relaxed minimum does not fit: regrid for the safe area and
        # shrink cards and gaps below it until the grid is contained.
        rows, cards_per_row = _undersized_grid(count, safe_width, safe_height)
        gap = min(
            EMERGENCY_SPACING,
            safe_width / cards_per_row * MAX_GAP_SHARE,
            safe_height / rows * MAX_GAP_SHARE,
        )
        width = _px((safe_width - (cards_per_row - 1) * gap) / cards_per_row)
        height = _px((safe_height - (rows - 1) * gap) / rows)
        if height > width * MAX_ASPECT:
            height = _px(width * MAX_ASPECT)
        elif height < width * MIN_ASPECT:
            width = _px(height / MIN_ASPECT)
        total_width, total_height = _extent(rows, cards_per_row, width, height, gap)
        if width < EMERGENCY_MIN_WIDTH or height < EMERGENCY_MIN_HEIGHT:
            validation_error = (
                f"card size {width:g}x{height:g} below emergency minimum "
                f"{EMERGENCY_MIN_WIDTH}x{EMERGENCY_MIN_HEIGHT}"
            )

    card_size = CardSize(width=width, height=height)
    positions = generate_positions(
        count,
        rows,
        cards_per_row,
        card_size,
        available_space,
        emergency_spacing(tier, gap),
        rotation_range=0,
        rng=rng,
        is_fallback=True,
    )
    if validation_error is not None:
        positions = [p.model_copy(update={"validation_error": validation_error}) for p in positions]

    log.warning(
        "layout.emergency",
        card_count=count,
        layout=f"{rows}x{cards_per_row}",
        card_size=f"{width:g}x{height:g}",
        total_size=f"{total_width:.0f}x{total_height:.0f}",
        space=f"{available_space.width:.0f}x{available_space.height:.0f}",
        utilization=(
            f"{round(total_width / max(available_space.width, 1) * 100)}%x"
            f"{round(total_height / max(available_space.height, 1) * 100)}%"
        ),
        undersized=validation_error is not None,
    )

    return LayoutResult(
        positions=positions,
        actual_card_size=card_size,
        layout_info=LayoutInfo(
            rows=rows,
            cards_per_row=cards_per_row,
            total_width=total_width,
            total_height=total_height,
        ),
        available_space=available_space,
        device_tier=tier,
        is_fallback=True,
    )

"""Layout solver — grid plan and card size for a card count.

Counts 1-10 use a fixed table that favours at most two rows once the
vertical space allows it. Visual rhythm across neighbouring counts wins
over packing efficiency: nine cards always render as 5+4 to match the
eight and ten card layouts, even where a 3x3 grid would fit.
"""

from __future__ import annotations

import math

from cardlayout.domain.models import AvailableSpace, CardSize, GridPlan, SpacingConfig
from cardlayout.domain.types import DeviceTier
from cardlayout.engine.spacing import get_spacing

MIN_CARD_WIDTH = 60
MIN_CARD_HEIGHT = 90

# Width:height is 2:3.
CARD_ASPECT_RATIO = 1.5

# Final floors after sizing and after the safety re-scale.
SIZED_MIN_WIDTH = 50
SIZED_MIN_HEIGHT = 75
SCALED_MIN_WIDTH = 40
SCALED_MIN_HEIGHT = 60

# Extra slack kept free around the grid while sizing.
EDGE_ALLOWANCE = 20
MAX_RESCALE = 0.9

# (single-row cap, multi-row cap) as (width, height).
CARD_SIZE_CAPS: dict[DeviceTier, tuple[tuple[float, float], tuple[float, float]]] = {
    DeviceTier.MOBILE: ((80, 120), (70, 105)),
    DeviceTier.TABLET: ((90, 135), (80, 120)),
    DeviceTier.DESKTOP: ((100, 150), (85, 130)),
}


def grid_capacity(available_space: AvailableSpace, spacing: SpacingConfig) -> tuple[int, int]:
    """Return ``(max_cards_per_row, max_rows)`` at the minimum card size."""
    max_cards_per_row = math.floor(
        (available_space.width + spacing.card_spacing) / (MIN_CARD_WIDTH + spacing.card_spacing)
    )
    max_rows = math.floor(
        (available_space.height + spacing.row_spacing) / (MIN_CARD_HEIGHT + spacing.row_spacing)
    )
    return max_cards_per_row, max_rows


def determine_grid_plan(
    card_count: int,
    available_space: AvailableSpace,
    spacing: SpacingConfig | None = None,
) -> GridPlan:
    """Choose rows and cards per row for *card_count* cards."""
    spacing = spacing or get_spacing(DeviceTier.DESKTOP)
    count = max(1, card_count)
    max_cards_per_row, max_rows = grid_capacity(available_space, spacing)
    height = available_space.height
    two_rows_fit = max_rows >= 2

    if count <= 3:
        return GridPlan(rows=1, cards_per_row=count)
    if count == 4:
        if two_rows_fit and height >= 200:
            return GridPlan(rows=2, cards_per_row=2)
        return GridPlan(rows=1, cards_per_row=4)
    if count == 5:
        if two_rows_fit and height >= 220:
            return GridPlan(rows=2, cards_per_row=3)
        return GridPlan(rows=1, cards_per_row=5)
    if count == 6:
        if two_rows_fit and height >= 240:
            if max_cards_per_row >= 3:
                return GridPlan(rows=2, cards_per_row=3)
            return GridPlan(rows=3, cards_per_row=2)
        return GridPlan(rows=1, cards_per_row=6)
    if count in (7, 8):
        if two_rows_fit and height >= 240:
            return GridPlan(rows=2, cards_per_row=4)
        return GridPlan(rows=1, cards_per_row=count)
    if count == 9:
        return GridPlan(rows=2, cards_per_row=5)
    if count == 10:
        if two_rows_fit and height >= 240:
            return GridPlan(rows=2, cards_per_row=5)
        return GridPlan(rows=1, cards_per_row=10)

    cards_per_row = max(1, min(max_cards_per_row, math.ceil(math.sqrt(count))))
    rows = math.ceil(count / cards_per_row)
    if rows > max_rows:
        return GridPlan(rows=1, cards_per_row=count)
    return GridPlan(rows=rows, cards_per_row=cards_per_row)


def grid_extent(
    rows: int,
    cards_per_row: int,
    card_size: CardSize,
    spacing: SpacingConfig,
) -> tuple[float, float]:
    """Total ``(width, height)`` of a full grid including gaps."""
    total_width = cards_per_row * card_size.width + (cards_per_row - 1) * spacing.card_spacing
    total_height = rows * card_size.height + (rows - 1) * spacing.row_spacing
    return total_width, total_height


def calculate_card_size(
    rows: int,
    cards_per_row: int,
    available_space: AvailableSpace,
    spacing: SpacingConfig | None = None,
) -> CardSize:
    """Size one card so the whole grid fits *available_space*.

    The card keeps a 2:3 aspect ratio by shrinking whichever side is too
    long, stays under the tier cap (smaller for multi-row grids) and above
    50x75. If the grid still overflows, it is scaled down once more with a
    40x60 floor.
    """
    spacing = spacing or get_spacing(DeviceTier.DESKTOP)
    rows = max(1, rows)
    cards_per_row = max(1, cards_per_row)

    gaps_x = (cards_per_row - 1) * spacing.card_spacing
    gaps_y = (rows - 1) * spacing.row_spacing
    max_width = math.floor((available_space.width - gaps_x - EDGE_ALLOWANCE) / cards_per_row)
    max_height = math.floor((available_space.height - gaps_y - EDGE_ALLOWANCE) / rows)

    single_cap, multi_cap = CARD_SIZE_CAPS[spacing.tier]
    cap_width, cap_height = multi_cap if rows > 1 else single_cap

    width: float = min(max_width, cap_width)
    height: float = min(max_height, cap_height)

    if width * CARD_ASPECT_RATIO > height:
        width = math.floor(height / CARD_ASPECT_RATIO)
    else:
        height = math.floor(width * CARD_ASPECT_RATIO)

    width = max(SIZED_MIN_WIDTH, width)
    height = max(SIZED_MIN_HEIGHT, height)

    total_width, total_height = grid_extent(
        rows, cards_per_row, CardSize(width=width, height=height), spacing
    )
    if total_width > available_space.width or total_height > available_space.height:
        scale = min(
            available_space.width / total_width,
            available_space.height / total_height,
            MAX_RESCALE,
        )
        width = max(SCALED_MIN_WIDTH, math.floor(width * scale))
        height = max(SCALED_MIN_HEIGHT, math.floor(height * scale))

    return CardSize(width=width, height=height)

"""Position generator — turns a solved grid into card centers."""

from __future__ import annotations

import random

from cardlayout.domain.models import AvailableSpace, CardPosition, CardSize, SpacingConfig
from cardlayout.domain.types import DeviceTier
from cardlayout.engine.spacing import get_spacing

DEFAULT_ROTATION_RANGE = 2.0


def generate_positions(
    card_count: int,
    rows: int,
    cards_per_row: int,
    card_size: CardSize,
    available_space: AvailableSpace,
    spacing: SpacingConfig | None = None,
    *,
    rotation_range: float = DEFAULT_ROTATION_RANGE,
    rng: random.Random | None = None,
    is_fallback: bool = False,
) -> list[CardPosition]:
    """Lay cards out row-major around the available-space center.

    Coordinates are relative to ``available_space``'s center. A final row
    holding fewer than *cards_per_row* cards is centered on its own. Each
    card gets a cosmetic rotation in ``[-rotation_range, rotation_range]``
    degrees drawn from *rng*; coordinates and sizes never depend on it.

    Cards beyond ``rows * cards_per_row`` continue on extra rows, so the
    result always holds exactly ``card_count`` positions.
    """
    spacing = spacing or get_spacing(DeviceTier.DESKTOP)
    rng = rng or random.Random()
    cards_per_row = max(1, cards_per_row)
    rows = max(rows, -(-card_count // cards_per_row), 1)

    step_x = card_size.width + spacing.card_spacing
    step_y = card_size.height + spacing.row_spacing
    total_height = rows * card_size.height + (rows - 1) * spacing.row_spacing
    grid_top = -total_height / 2

    positions: list[CardPosition] = []
    for index in range(card_count):
        row, col = divmod(index, cards_per_row)
        cards_in_row = min(cards_per_row, card_count - row * cards_per_row)
        row_width = cards_in_row * card_size.width + (cards_in_row - 1) * spacing.card_spacing
        row_left = -row_width / 2

        rotation = 0.0
        if rotation_range > 0:
            rotation = rng.uniform(-rotation_range, rotation_range)

        positions.append(
            CardPosition(
                x=row_left + col * step_x + card_size.width / 2,
                y=grid_top + row * step_y + card_size.height / 2,
                rotation=rotation,
                card_width=card_size.width,
                card_height=card_size.height,
                is_fallback=is_fallback,
            )
        )
    return positions


def to_container_coordinates(
    position: CardPosition, available_space: AvailableSpace
) -> tuple[float, float]:
    """Translate a center-relative position into container coordinates."""
    return available_space.center_x + position.x, available_space.center_y + position.y

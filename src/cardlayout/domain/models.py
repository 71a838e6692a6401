"""Geometry records exchanged between pipeline stages.

Every record is a frozen pydantic model. A layout pass creates fresh
instances and never mutates them, so results can be cached and shared
with debug tooling as-is. ``model_dump(mode="json")`` produces the plain
records the presentation layer consumes.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from cardlayout.domain.types import DeviceTier, OverflowDirection

# Fraction of the available space a valid layout may occupy.
SAFETY_FACTOR = 0.95


class Margins(BaseModel):
    """Per-side pixel margins."""

    model_config = {"frozen": True}

    top: float
    bottom: float
    left: float
    right: float

    @property
    def horizontal(self) -> float:
        return self.left + self.right

    @property
    def vertical(self) -> float:
        return self.top + self.bottom


class SpacingConfig(BaseModel):
    """Card-area spacing for one device tier."""

    model_config = {"frozen": True}

    tier: DeviceTier
    container_margins: Margins
    row_spacing: float
    card_spacing: float
    min_card_area_height: float


class AvailableSpace(BaseModel):
    """Usable rectangle for cards after reserved chrome is subtracted.

    ``center_x``/``center_y`` are in container coordinates; card positions
    are expressed relative to this center.
    """

    model_config = {"frozen": True}

    width: float
    height: float
    center_x: float
    center_y: float

    @property
    def safe_width(self) -> float:
        return self.width * SAFETY_FACTOR

    @property
    def safe_height(self) -> float:
        return self.height * SAFETY_FACTOR


class GridPlan(BaseModel):
    """Row/column decomposition for a card count."""

    model_config = {"frozen": True}

    rows: int = Field(ge=1)
    cards_per_row: int = Field(ge=1)


class CardSize(BaseModel):
    """Uniform card size applied to every card in one pass."""

    model_config = {"frozen": True}

    width: float
    height: float


class CardPosition(BaseModel):
    """One card slot, centered at (x, y) relative to the available space."""

    model_config = {"frozen": True}

    x: float
    y: float
    rotation: float = 0.0
    card_width: float
    card_height: float
    is_fallback: bool = False
    validation_error: str | None = None

    @property
    def left(self) -> float:
        return self.x - self.card_width / 2

    @property
    def right(self) -> float:
        return self.x + self.card_width / 2

    @property
    def top(self) -> float:
        return self.y - self.card_height / 2

    @property
    def bottom(self) -> float:
        return self.y + self.card_height / 2


class LayoutInfo(BaseModel):
    """Grid shape and overall extent of a layout."""

    model_config = {"frozen": True}

    rows: int
    cards_per_row: int
    total_width: float
    total_height: float


class LayoutResult(BaseModel):
    """Complete output of one pipeline run.

    Attributes:
        positions: One entry per card, row-major.
        actual_card_size: Size shared by every card.
        layout_info: Grid shape and total extent.
        available_space: Space the layout was solved against.
        device_tier: Tier the spacing constants came from.
        is_fallback: Whether the emergency solver produced the layout.
        meta: Optional metadata (telemetry spans, timings).
    """

    model_config = {"frozen": True}

    positions: list[CardPosition]
    actual_card_size: CardSize
    layout_info: LayoutInfo
    available_space: AvailableSpace | None = None
    device_tier: DeviceTier = DeviceTier.DESKTOP
    is_fallback: bool = False
    meta: dict[str, Any] | None = None

    @property
    def card_count(self) -> int:
        return len(self.positions)


class OverflowArea(BaseModel):
    """Amount by which a layout exceeds the safe area on one axis."""

    model_config = {"frozen": True}

    direction: OverflowDirection
    amount: float


class ValidationReport(BaseModel):
    """Outcome of a boundary check; consumed within the same pass."""

    model_config = {"frozen": True}

    is_valid: bool
    overflow_areas: list[OverflowArea] = Field(default_factory=list)
    overlapping_pairs: list[tuple[int, int]] = Field(default_factory=list)
    out_of_bounds_indices: list[int] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class ReservedChrome(BaseModel):
    """Pixels reserved around the card area for surrounding UI.

    Defaults cover the game-info panel and status line above the cards
    and the action-button strip below them.
    """

    model_config = {"frozen": True}

    top: float = 260
    bottom: float = 60
    side: float = 30

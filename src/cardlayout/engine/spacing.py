"""Spacing policy — per-tier spacing table and available-space calculation.

The tables are read-only; every accessor returns the frozen model stored
here. Validation helpers compare the table (or measured spacing reported
by the presentation layer) against the documented per-tier minimums.
Their findings are diagnostics only and never block a layout.
"""

from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel, Field

from cardlayout.domain.models import AvailableSpace, Margins, ReservedChrome, SpacingConfig
from cardlayout.domain.types import DeviceTier
from cardlayout.engine.device import classify_device

# ---------------------------------------------------------------------------
# Static tables
# ---------------------------------------------------------------------------

SPACING_TABLE: dict[DeviceTier, SpacingConfig] = {
    DeviceTier.MOBILE: SpacingConfig(
        tier=DeviceTier.MOBILE,
        container_margins=Margins(top=30, bottom=16, left=16, right=16),
        row_spacing=12,
        card_spacing=12,
        min_card_area_height=160,
    ),
    DeviceTier.TABLET: SpacingConfig(
        tier=DeviceTier.TABLET,
        container_margins=Margins(top=32, bottom=20, left=24, right=24),
        row_spacing=16,
        card_spacing=14,
        min_card_area_height=180,
    ),
    DeviceTier.DESKTOP: SpacingConfig(
        tier=DeviceTier.DESKTOP,
        container_margins=Margins(top=36, bottom=24, left=32, right=32),
        row_spacing=20,
        card_spacing=16,
        min_card_area_height=200,
    ),
}

MIN_MARGIN: dict[DeviceTier, float] = {
    DeviceTier.MOBILE: 16,
    DeviceTier.TABLET: 24,
    DeviceTier.DESKTOP: 32,
}
MIN_ROW_SPACING: dict[DeviceTier, float] = {
    DeviceTier.MOBILE: 12,
    DeviceTier.TABLET: 14,
    DeviceTier.DESKTOP: 16,
}
MIN_CARD_SPACING: dict[DeviceTier, float] = {
    DeviceTier.MOBILE: 12,
    DeviceTier.TABLET: 14,
    DeviceTier.DESKTOP: 16,
}

# Heights of the UI elements surrounding the card area.
UI_ELEMENT_HEIGHTS: dict[str, float] = {
    "game_info": 120,
    "game_status": 40,
    "start_button": 80,
    "result_display": 100,
    "warnings": 60,
}

# Gap between each UI element and its neighbour, per tier.
UI_ELEMENT_SPACING: dict[DeviceTier, dict[str, float]] = {
    DeviceTier.MOBILE: {
        "game_info": 30,
        "game_status": 8,
        "start_button": 16,
        "warnings": 8,
        "result_display": 40,
        "card_area": 20,
    },
    DeviceTier.TABLET: {
        "game_info": 32,
        "game_status": 12,
        "start_button": 20,
        "warnings": 12,
        "result_display": 40,
        "card_area": 24,
    },
    DeviceTier.DESKTOP: {
        "game_info": 36,
        "game_status": 16,
        "start_button": 24,
        "warnings": 16,
        "result_display": 40,
        "card_area": 32,
    },
}

CONTAINER_PADDING: dict[DeviceTier, float] = {
    DeviceTier.MOBILE: 16,
    DeviceTier.TABLET: 24,
    DeviceTier.DESKTOP: 32,
}

MIN_AVAILABLE_WIDTH = 320
MIN_AVAILABLE_HEIGHT = 200
MAX_WIDTH_FRACTION = 0.9
MAX_HEIGHT_FRACTION = 0.5


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


def get_spacing(tier: DeviceTier) -> SpacingConfig:
    """Return the spacing table entry for *tier*."""
    return SPACING_TABLE[DeviceTier(tier)]


def sanitize_dimension(value: Any) -> float:
    """Coerce a container dimension to a finite, non-negative float.

    Anything that is not a finite positive number becomes ``0.0`` so the
    documented floors take over downstream.
    """
    if isinstance(value, bool) or not isinstance(value, int | float):
        return 0.0
    if not math.isfinite(value) or value < 0:
        return 0.0
    return float(value)


def reserved_chrome_for(
    tier: DeviceTier,
    *,
    has_game_info: bool = True,
    has_warnings: bool = False,
    has_start_button: bool = False,
    has_result_display: bool = False,
) -> ReservedChrome:
    """Derive the reserved chrome from the UI elements actually shown.

    Starts from the status line plus container padding and adds each
    visible element's height and its tier-specific gap.
    """
    gaps = UI_ELEMENT_SPACING[tier]
    padding = CONTAINER_PADDING[tier]

    top = UI_ELEMENT_HEIGHTS["game_status"] + padding
    bottom = padding

    if has_game_info:
        top += UI_ELEMENT_HEIGHTS["game_info"] + gaps["game_info"]
    if has_warnings:
        top += UI_ELEMENT_HEIGHTS["warnings"] + gaps["warnings"]
    if has_start_button:
        bottom += UI_ELEMENT_HEIGHTS["start_button"] + gaps["start_button"]
    if has_result_display:
        bottom += UI_ELEMENT_HEIGHTS["result_display"] + gaps["result_display"]

    top += gaps["card_area"] / 2
    bottom += gaps["card_area"] / 2

    return ReservedChrome(top=top, bottom=bottom, side=padding)


def calculate_available_space(
    container_width: float,
    container_height: float,
    reserved_chrome: ReservedChrome | None = None,
    *,
    tier: DeviceTier | None = None,
) -> AvailableSpace:
    """Subtract reserved chrome from the container and clamp the result.

    The card area keeps at least 320x200 and at most 90% of the container
    width and 50% of its height. The floors never exceed the container
    itself, so a very small container still bounds the cards.
    """
    chrome = reserved_chrome or ReservedChrome()
    cw = sanitize_dimension(container_width)
    ch = sanitize_dimension(container_height)
    spacing = get_spacing(tier if tier is not None else classify_device(cw))

    side = max(chrome.side, spacing.container_margins.left)
    raw_width = cw - side * 2
    raw_height = ch - chrome.top - chrome.bottom

    width = max(MIN_AVAILABLE_WIDTH, min(raw_width, cw * MAX_WIDTH_FRACTION))
    height = max(MIN_AVAILABLE_HEIGHT, min(raw_height, ch * MAX_HEIGHT_FRACTION))
    if cw > 0:
        width = min(width, cw)
    if ch > 0:
        height = min(height, ch)

    center_x = cw / 2 if cw > 0 else width / 2
    center_y = chrome.top + height / 2
    if ch > 0:
        center_y = max(height / 2, min(center_y, ch - height / 2))

    return AvailableSpace(width=width, height=height, center_x=center_x, center_y=center_y)


# ---------------------------------------------------------------------------
# Diagnostics
# ---------------------------------------------------------------------------


class SpacingCheck(BaseModel):
    """Result of checking a spacing config against the tier minimums."""

    model_config = {"frozen": True}

    is_valid: bool
    violations: dict[str, list[str]] = Field(default_factory=dict)
    recommendations: list[str] = Field(default_factory=list)
    fallback_required: bool = False


class MeasurementCheck(BaseModel):
    """Result of comparing measured spacing against the expected config."""

    model_config = {"frozen": True}

    is_valid: bool
    discrepancies: list[str] = Field(default_factory=list)
    max_deviation: float = 0.0


def validate_spacing_config(
    tier: DeviceTier,
    *,
    config: SpacingConfig | None = None,
    container_width: float | None = None,
    container_height: float | None = None,
) -> SpacingCheck:
    """Check *config* (default: the table entry) against the tier minimums."""
    spacing = config or get_spacing(tier)
    violations: dict[str, list[str]] = {}
    recommendations: list[str] = []

    min_margin = MIN_MARGIN[tier]
    margins = spacing.container_margins
    if margins.left < min_margin or margins.right < min_margin:
        violations.setdefault("container_margins", []).append(
            f"horizontal margins below {min_margin}px (left {margins.left}, right {margins.right})"
        )
    if margins.top < min_margin or margins.bottom < min_margin:
        violations.setdefault("container_margins", []).append(
            f"vertical margins below {min_margin}px (top {margins.top}, bottom {margins.bottom})"
        )
    if spacing.row_spacing < MIN_ROW_SPACING[tier]:
        violations.setdefault("row_spacing", []).append(
            f"row spacing {spacing.row_spacing}px below {MIN_ROW_SPACING[tier]}px"
        )
    if spacing.card_spacing < MIN_CARD_SPACING[tier]:
        violations.setdefault("card_spacing", []).append(
            f"card spacing {spacing.card_spacing}px below {MIN_CARD_SPACING[tier]}px"
        )

    fallback_required = False
    if container_width is not None and container_height is not None:
        usable_width = sanitize_dimension(container_width) - margins.horizontal
        usable_height = sanitize_dimension(container_height) - margins.vertical
        if min(usable_width, usable_height) < spacing.min_card_area_height:
            fallback_required = True
            recommendations.append("container too small for the card area; use fallback spacing")

    if violations:
        recommendations.append("increase the container size or use a more compact spacing config")

    return SpacingCheck(
        is_valid=not violations,
        violations=violations,
        recommendations=recommendations,
        fallback_required=fallback_required,
    )


def validate_spacing_measurements(
    measured_margins: Margins,
    expected: SpacingConfig,
    *,
    row_spacing: float | None = None,
    card_spacing: float | None = None,
    tolerance: float = 2,
) -> MeasurementCheck:
    """Compare spacing measured by the presentation layer with *expected*.

    Deviations beyond *tolerance* pixels are reported as discrepancies.
    """
    discrepancies: list[str] = []
    max_deviation = 0.0

    pairs: list[tuple[str, float, float]] = [
        ("top margin", measured_margins.top, expected.container_margins.top),
        ("bottom margin", measured_margins.bottom, expected.container_margins.bottom),
        ("left margin", measured_margins.left, expected.container_margins.left),
        ("right margin", measured_margins.right, expected.container_margins.right),
    ]
    if row_spacing is not None:
        pairs.append(("row spacing", row_spacing, expected.row_spacing))
    if card_spacing is not None:
        pairs.append(("card spacing", card_spacing, expected.card_spacing))

    for name, measured, wanted in pairs:
        deviation = abs(measured - wanted)
        max_deviation = max(max_deviation, deviation)
        if deviation > tolerance:
            discrepancies.append(
                f"{name}: expected {wanted}px, measured {measured}px (off by {deviation}px)"
            )

    return MeasurementCheck(
        is_valid=not discrepancies,
        discrepancies=discrepancies,
        max_deviation=max_deviation,
    )


_FALLBACK_MARGIN: dict[DeviceTier, float] = {
    DeviceTier.MOBILE: 12,
    DeviceTier.TABLET: 16,
    DeviceTier.DESKTOP: 20,
}
_FALLBACK_SPACING: dict[DeviceTier, float] = {
    DeviceTier.MOBILE: 8,
    DeviceTier.TABLET: 10,
    DeviceTier.DESKTOP: 12,
}
_FALLBACK_AREA_HEIGHT: dict[DeviceTier, float] = {
    DeviceTier.MOBILE: 120,
    DeviceTier.TABLET: 140,
    DeviceTier.DESKTOP: 160,
}


def create_fallback_spacing(
    tier: DeviceTier,
    *,
    container_width: float | None = None,
    container_height: float | None = None,
) -> SpacingConfig:
    """Conservative spacing for containers the table cannot serve.

    When the container size is known, side margins are capped at 15% of
    its width and vertical margins at 10% of its height.
    """
    margin = _FALLBACK_MARGIN[tier]
    top, bottom, side = margin * 1.5, margin, margin

    width = sanitize_dimension(container_width)
    height = sanitize_dimension(container_height)
    if width and height:
        side = min(side, width * 0.15)
        top = min(top, height * 0.1)
        bottom = min(bottom, height * 0.1)

    return SpacingConfig(
        tier=tier,
        container_margins=Margins(top=top, bottom=bottom, left=side, right=side),
        row_spacing=_FALLBACK_SPACING[tier],
        card_spacing=_FALLBACK_SPACING[tier],
        min_card_area_height=_FALLBACK_AREA_HEIGHT[tier],
    )

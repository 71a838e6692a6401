"""Boundary validator — containment, per-card bounds, overlap, spacing.

Two levels:

- ``validate()`` checks the aggregate grid extent against the available
  space minus a 5% safety margin. This is the hot-path check that
  decides whether the emergency solver runs.
- ``validate_cards()`` additionally checks every card rectangle against
  the available rectangle and every pair of cards for overlap. It is
  quadratic in the card count and meant for tests and debug tooling.
"""

from __future__ import annotations

import logging
from itertools import combinations

from cardlayout.domain.models import (
    AvailableSpace,
    CardPosition,
    LayoutResult,
    OverflowArea,
    SpacingConfig,
    ValidationReport,
)
from cardlayout.domain.types import OverflowDirection

logger = logging.getLogger(__name__)

DEFAULT_OVERLAP_TOLERANCE = 0.5
DEFAULT_SPACING_TOLERANCE = 2.0


def _overflow_areas(result: LayoutResult, available_space: AvailableSpace) -> list[OverflowArea]:
    info = result.layout_info
    areas: list[OverflowArea] = []
    if info.total_width > available_space.safe_width:
        areas.append(
            OverflowArea(
                direction=OverflowDirection.HORIZONTAL,
                amount=info.total_width - available_space.safe_width,
            )
        )
    if info.total_height > available_space.safe_height:
        areas.append(
            OverflowArea(
                direction=OverflowDirection.VERTICAL,
                amount=info.total_height - available_space.safe_height,
            )
        )
    return areas


def validate(result: LayoutResult, available_space: AvailableSpace) -> ValidationReport:
    """Check the grid extent against 95% of *available_space*."""
    areas = _overflow_areas(result, available_space)
    if areas:
        logger.debug(
            "Layout exceeds safe area: %.1fx%.1f required, %.1fx%.1f available",
            result.layout_info.total_width,
            result.layout_info.total_height,
            available_space.safe_width,
            available_space.safe_height,
        )
    return ValidationReport(is_valid=not areas, overflow_areas=areas)


def validate_layout(result: LayoutResult, available_space: AvailableSpace) -> bool:
    """Boolean form of :func:`validate` for debug tooling."""
    return validate(result, available_space).is_valid


def out_of_bounds(
    positions: list[CardPosition],
    available_space: AvailableSpace,
    *,
    tolerance: float = DEFAULT_OVERLAP_TOLERANCE,
) -> list[int]:
    """Indices of cards whose rectangle leaves the available rectangle."""
    half_w = available_space.width / 2 + tolerance
    half_h = available_space.height / 2 + tolerance
    return [
        index
        for index, pos in enumerate(positions)
        if pos.left < -half_w or pos.right > half_w or pos.top < -half_h or pos.bottom > half_h
    ]


def overlapping_pairs(
    positions: list[CardPosition],
    *,
    tolerance: float = DEFAULT_OVERLAP_TOLERANCE,
) -> list[tuple[int, int]]:
    """Pairs of cards whose rectangles overlap by more than *tolerance* on both axes."""
    pairs: list[tuple[int, int]] = []
    for (i, a), (j, b) in combinations(enumerate(positions), 2):
        overlap_x = min(a.right, b.right) - max(a.left, b.left)
        overlap_y = min(a.bottom, b.bottom) - max(a.top, b.top)
        if overlap_x > tolerance and overlap_y > tolerance:
            pairs.append((i, j))
    return pairs


def check_spacing_consistency(
    result: LayoutResult,
    spacing: SpacingConfig,
    *,
    card_spacing: float | None = None,
    row_spacing: float | None = None,
    tolerance: float = DEFAULT_SPACING_TOLERANCE,
) -> list[str]:
    """Compare the gaps actually present in *result* with the expected spacing.

    Horizontal gaps are measured between neighbours within a row, vertical
    gaps between consecutive rows. Mismatches are returned as warnings.
    """
    expected_x = spacing.card_spacing if card_spacing is None else card_spacing
    expected_y = spacing.row_spacing if row_spacing is None else row_spacing
    warnings: list[str] = []

    rows: list[list[CardPosition]] = []
    for pos in result.positions:
        if rows and abs(rows[-1][0].y - pos.y) < pos.card_height / 2:
            rows[-1].append(pos)
        else:
            rows.append([pos])

    for row_index, row in enumerate(rows):
        for left, right in zip(row, row[1:], strict=False):
            gap = right.left - left.right
            if abs(gap - expected_x) > tolerance:
                warnings.append(
                    f"row {row_index}: card gap {gap:.1f}px, expected {expected_x:.1f}px"
                )

    for row_index, (upper, lower) in enumerate(zip(rows, rows[1:], strict=False)):
        gap = lower[0].top - upper[0].bottom
        if abs(gap - expected_y) > tolerance:
            warnings.append(
                f"rows {row_index}-{row_index + 1}: "
                f"row gap {gap:.1f}px, expected {expected_y:.1f}px"
            )

    return warnings


def validate_cards(
    result: LayoutResult,
    available_space: AvailableSpace,
    *,
    tolerance: float = DEFAULT_OVERLAP_TOLERANCE,
    spacing: SpacingConfig | None = None,
    spacing_tolerance: float = DEFAULT_SPACING_TOLERANCE,
) -> ValidationReport:
    """Strict check: aggregate extent, per-card bounds and pairwise overlap.

    When *spacing* is given, gap mismatches are added as warnings; they
    never affect ``is_valid``.
    """
    areas = _overflow_areas(result, available_space)
    bounds = out_of_bounds(result.positions, available_space, tolerance=tolerance)
    pairs = overlapping_pairs(result.positions, tolerance=tolerance)
    warnings = (
        check_spacing_consistency(result, spacing, tolerance=spacing_tolerance)
        if spacing is not None
        else []
    )

    return ValidationReport(
        is_valid=not (areas or bounds or pairs),
        overflow_areas=areas,
        overlapping_pairs=pairs,
        out_of_bounds_indices=bounds,
        warnings=warnings,
    )

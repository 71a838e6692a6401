"""Device tier classification from container width."""

from __future__ import annotations

import math

from cardlayout.domain.types import DeviceTier

MOBILE_BREAKPOINT = 768
TABLET_BREAKPOINT = 1024


def classify_device(width: float | None) -> DeviceTier:
    """Map a container width to a device tier.

    Total over its input: missing, zero, negative or non-finite widths
    classify as desktop.
    """
    if width is None or not isinstance(width, int | float):
        return DeviceTier.DESKTOP
    if not math.isfinite(width) or width <= 0:
        return DeviceTier.DESKTOP
    if width < MOBILE_BREAKPOINT:
        return DeviceTier.MOBILE
    if width < TABLET_BREAKPOINT:
        return DeviceTier.TABLET
    return DeviceTier.DESKTOP

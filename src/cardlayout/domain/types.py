"""Classification enums for the layout engine."""

from __future__ import annotations

from enum import StrEnum


class DeviceTier(StrEnum):
    """Device-size classification driving spacing and sizing constants."""

    MOBILE = "mobile"
    TABLET = "tablet"
    DESKTOP = "desktop"


class OverflowDirection(StrEnum):
    """Axis on which a layout exceeds its safe area."""

    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


class CoordinatorState(StrEnum):
    """Lifecycle states of a ResizeCoordinator."""

    IDLE = "idle"
    SCHEDULED = "scheduled"
    RUNNING = "running"

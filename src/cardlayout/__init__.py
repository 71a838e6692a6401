"""cardlayout — adaptive card layout engine.

Arranges N cards inside a container of any size: a deterministic,
non-overlapping, in-bounds grid, an emergency layout when the primary plan
cannot fit, and a debounced coordinator that recomputes on resize.
"""

from cardlayout.coordinator import LayoutCache, ResizeCoordinator, StaticDimensionSource
from cardlayout.domain.models import (
    AvailableSpace,
    CardPosition,
    CardSize,
    LayoutInfo,
    LayoutResult,
    ReservedChrome,
    SpacingConfig,
    ValidationReport,
)
from cardlayout.domain.types import CoordinatorState, DeviceTier
from cardlayout.engine.validator import validate_layout
from cardlayout.errors import LayoutEngineError
from cardlayout.output.renderers import render_debug_snapshot
from cardlayout.services.layout import compute_layout

__version__ = "0.1.0"

__all__ = [
    "AvailableSpace",
    "CardPosition",
    "CardSize",
    "CoordinatorState",
    "DeviceTier",
    "LayoutCache",
    "LayoutEngineError",
    "LayoutInfo",
    "LayoutResult",
    "ReservedChrome",
    "ResizeCoordinator",
    "SpacingConfig",
    "StaticDimensionSource",
    "ValidationReport",
    "__version__",
    "compute_layout",
    "render_debug_snapshot",
    "validate_layout",
]

"""Exception types for cardlayout.

INVARIANT: these never escape ``compute_layout`` or a ResizeCoordinator.
They exist so the pipeline can signal impossible states to its own
boundary, which substitutes a usable layout.
"""

from __future__ import annotations

from typing import Any


class LayoutEngineError(Exception):
    """Base error raised inside the layout pipeline."""

    def __init__(self, message: str, *, detail: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.detail = detail or {}


class PositionCountMismatch(LayoutEngineError):
    """Generated positions do not cover every card."""

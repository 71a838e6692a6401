"""Pluggy hook specifications for layout lifecycle events.

Hooks are dispatched synchronously by the ResizeCoordinator after each
recomputation. Payloads are plain JSON-compatible dicts so plugins never
depend on the engine's model classes.
"""

from __future__ import annotations

from typing import Any

import pluggy

PROJECT_NAME = "cardlayout"

hookspec = pluggy.HookspecMarker(PROJECT_NAME)
hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class CardLayoutHookSpec:
    """Hook specifications for the cardlayout plugin system."""

    @hookspec
    def post_layout(
        self,
        card_count: int,
        container_width: float,
        container_height: float,
        layout: dict[str, Any],
    ) -> None:
        """Called after a layout is computed (primary or fallback)."""

    @hookspec
    def post_fallback(
        self,
        card_count: int,
        layout_info: dict[str, Any],
        reason: str,
    ) -> None:
        """Called when the emergency or minimal layout replaced the primary one."""

    @hookspec
    def post_resize_run(self, run: dict[str, Any]) -> None:
        """Called with the metrics of every coordinator run."""

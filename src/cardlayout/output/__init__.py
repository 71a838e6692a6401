"""Debug output — rich renderers for layouts and coordinator snapshots."""

from cardlayout.output.renderers import render_debug_snapshot, render_layout, render_validation

__all__ = ["render_debug_snapshot", "render_layout", "render_validation"]

"""Rich Console factory and theme for debug output.

Creates Console instances that render to a StringIO buffer, preserving
the ``render_*() -> str`` contract. In non-TTY environments (tests,
pipes) Rich automatically disables color codes.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

CARDLAYOUT_THEME = Theme(
    {
        "cl.ok": "bold green",
        "cl.error": "bold red",
        "cl.warning": "bold yellow",
        "cl.key": "dim",
        "cl.state": "bold cyan",
        "cl.fallback": "yellow",
        "cl.tier.mobile": "magenta",
        "cl.tier.tablet": "blue",
        "cl.tier.desktop": "green",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer.

    Args:
        no_color: Disable ANSI escape codes (used in tests).
        width: Override terminal width (useful for consistent test output).
    """
    return Console(
        file=StringIO(),
        theme=CARDLAYOUT_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_tier(tier: str) -> str:
    """Return the Rich style name for a device tier."""
    return f"cl.tier.{tier}" if tier in ("mobile", "tablet", "desktop") else ""

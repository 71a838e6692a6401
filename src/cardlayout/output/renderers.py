"""Rich renderers for layouts, validation reports and debug snapshots.

Each renderer writes to a Rich Console (backed by StringIO) and returns
the rendered text. Inputs are the plain dicts produced by
``model_dump(mode="json")`` or the models themselves.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from rich.markup import escape
from rich.table import Table
from rich.text import Text

from cardlayout.domain.models import LayoutResult, ValidationReport
from cardlayout.output.console import create_console, get_output, style_for_tier

if TYPE_CHECKING:
    from rich.console import Console


# ── Public API ────────────────────────────────────────────────────────


def render_layout(result: LayoutResult | dict[str, Any], *, verbose: bool = False) -> str:
    """Render one layout: grid summary, and per-card rows when *verbose*."""
    data = result.model_dump(mode="json") if isinstance(result, LayoutResult) else result
    console = create_console()
    _layout_summary(console, data)
    if verbose:
        console.print(_card_table(data.get("positions", [])))
        meta = data.get("meta") or {}
        if "telemetry" in meta:
            console.print(Text("  telemetry:", style="dim"))
            _render_telemetry_tree(console, meta["telemetry"], indent=4)
    return get_output(console).rstrip("\n")


def render_validation(report: ValidationReport) -> str:
    """Render a validation report as a status line plus its findings."""
    console = create_console()
    if report.is_valid and not report.warnings:
        console.print("[cl.ok]OK[/cl.ok]  layout fits the available space")
        return get_output(console).rstrip("\n")

    label = "[cl.ok]OK[/cl.ok]" if report.is_valid else "[cl.error]INVALID[/cl.error]"
    console.print(f"{label}  layout validation")
    for area in report.overflow_areas:
        console.print(f"  overflow {area.direction.value}: {area.amount:.1f}px")
    if report.out_of_bounds_indices:
        indices = ", ".join(str(i) for i in report.out_of_bounds_indices)
        console.print(f"  out of bounds: {indices}")
    for a, b in report.overlapping_pairs:
        console.print(f"  overlap: {a} <-> {b}")
    for warning in report.warnings:
        console.print(f"  [cl.warning]warning[/cl.warning]: {warning}")
    return get_output(console).rstrip("\n")


def render_debug_snapshot(snapshot: dict[str, Any], *, verbose: bool = False) -> str:
    """Render ``ResizeCoordinator.get_debug_snapshot()`` for debug tooling.

    Shows the coordinator state, aggregate metrics, cache counters, the
    current layout and a table of recent runs (all runs when *verbose*).
    """
    console = create_console()

    state = snapshot.get("state", "?")
    dims = snapshot.get("dimensions")
    dims_text = f"{dims[0]:.0f}x{dims[1]:.0f}" if dims else "-"
    header = Text("coordinator ", style="bold")
    header.append(str(state), style="cl.state")
    header.append(f"  cards={snapshot.get('card_count', '?')}  container={dims_text}")
    console.print(header)

    metrics = snapshot.get("metrics") or {}
    if metrics:
        _field(console, "runs", metrics.get("run_count", 0))
        _field(console, "avg_ms", f"{metrics.get('average_duration_ms', 0.0):.2f}")
        _field(console, "debounce_hits", metrics.get("debounce_hits", 0))
        _field(console, "fallbacks", metrics.get("fallback_count", 0))
        _field(console, "errors", metrics.get("error_count", 0))
        _field(console, "slow_runs", metrics.get("slow_runs", 0))

    cache = snapshot.get("cache") or {}
    if cache:
        _field(
            console,
            "cache",
            f"{cache.get('size', 0)}/{cache.get('max_size', 0)} "
            f"(hits={cache.get('hits', 0)}, misses={cache.get('misses', 0)})",
        )

    current = snapshot.get("current")
    if current:
        console.print()
        _layout_summary(console, current)

    validation = snapshot.get("validation")
    if validation:
        status = "OK" if validation.get("is_valid") else "INVALID"
        warnings = len(validation.get("warnings") or [])
        _field(console, "validation", f"{status} ({warnings} warnings)")

    runs = snapshot.get("runs") or []
    if runs:
        console.print()
        console.print(_run_table(runs if verbose else runs[-10:]))

    return get_output(console).rstrip("\n")


# ── Helpers ───────────────────────────────────────────────────────────


def _field(console: Console, key: str, value: Any) -> None:
    """Print a single indented key-value field."""
    line = Text(f"  {key}: ", style="cl.key")
    line.append(str(value))
    console.print(line)


def _layout_summary(console: Console, data: dict[str, Any]) -> None:
    info = data.get("layout_info") or {}
    size = data.get("actual_card_size") or {}
    tier = str(data.get("device_tier", ""))
    line = Text("layout ", style="bold")
    line.append(f"{info.get('rows', '?')}x{info.get('cards_per_row', '?')}")
    line.append("  ")
    line.append(tier, style=style_for_tier(tier))
    line.append(
        f"  card={size.get('width', 0):.0f}x{size.get('height', 0):.0f}"
        f"  total={info.get('total_width', 0):.0f}x{info.get('total_height', 0):.0f}"
    )
    if data.get("is_fallback"):
        line.append("  fallback", style="cl.fallback")
    console.print(line)


def _card_table(positions: list[dict[str, Any]]) -> Table:
    """Build a Rich Table with one row per card."""
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("#", justify="right")
    table.add_column("X", justify="right")
    table.add_column("Y", justify="right")
    table.add_column("Size", justify="right")
    table.add_column("Rot", justify="right")
    table.add_column("Note")
    for index, pos in enumerate(positions):
        note = pos.get("validation_error") or ("fallback" if pos.get("is_fallback") else "")
        table.add_row(
            str(index),
            f"{pos.get('x', 0):.1f}",
            f"{pos.get('y', 0):.1f}",
            f"{pos.get('card_width', 0):.0f}x{pos.get('card_height', 0):.0f}",
            f"{pos.get('rotation', 0):+.2f}",
            note,
        )
    return table


def _run_table(runs: list[dict[str, Any]]) -> Table:
    """Build a Rich Table of coordinator runs."""
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("Run", justify="right")
    table.add_column("Cards", justify="right")
    table.add_column("Container", justify="right")
    table.add_column("ms", justify="right")
    table.add_column("Cache")
    table.add_column("Status")
    for run in runs:
        if run.get("error"):
            status = f"[cl.error]error[/cl.error] {escape(str(run['error']))}"
        elif run.get("is_fallback"):
            status = "[cl.fallback]fallback[/cl.fallback]"
        else:
            status = "[cl.ok]ok[/cl.ok]"
        table.add_row(
            str(run.get("run_id", "")),
            str(run.get("card_count", "")),
            f"{run.get('container_width', 0):.0f}x{run.get('container_height', 0):.0f}",
            f"{run.get('duration_ms', 0.0):.2f}",
            "hit" if run.get("cache_hit") else "miss",
            status,
        )
    return table


def _render_telemetry_tree(
    console: Console,
    span_data: dict[str, Any],
    indent: int = 4,
) -> None:
    """Render a hierarchical span tree with color-coded timing."""
    prefix = " " * indent
    name = span_data.get("name", "?")
    duration = span_data.get("duration_ms", 0.0)

    if duration > 100:
        style = "bold red"
    elif duration > 16:
        style = "yellow"
    else:
        style = "dim"

    line = f"{prefix}[{style}]{duration:>8.2f}ms[/{style}]  {name}"
    annotations = span_data.get("annotations") or {}
    if annotations:
        line += "  (" + ", ".join(f"{k}={v}" for k, v in annotations.items()) + ")"
    console.print(line)

    for child in span_data.get("children", []):
        _render_telemetry_tree(console, child, indent=indent + 4)

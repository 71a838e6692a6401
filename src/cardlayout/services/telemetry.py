"""Pipeline telemetry — stage spans recorded into ``LayoutResult.meta``.

Disabled by default; the only cost then is one ContextVar read per stage.
When enabled, ``@traced`` opens a root span for a pipeline call, every
``trace_span`` inside it becomes a child stage, and the finished tree is
stored under ``meta["telemetry"]`` of the returned LayoutResult.
"""

from __future__ import annotations

import functools
import time
from collections.abc import Callable, Generator, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, ParamSpec, TypeVar

import structlog

from cardlayout.domain.models import LayoutResult

log = structlog.get_logger("cardlayout.telemetry")

TELEMETRY_KEY = "telemetry"

_telemetry_enabled: ContextVar[bool] = ContextVar("_telemetry_enabled", default=False)
_current_span: ContextVar[Span | None] = ContextVar("_current_span", default=None)


@dataclass
class Span:
    """One timed pipeline stage and the stages nested under it."""

    name: str
    parent: Span | None = None
    children: list[Span] = field(default_factory=list)
    start_time: float = field(default_factory=time.perf_counter)
    end_time: float | None = None
    annotations: dict[str, Any] = field(default_factory=dict)

    @property
    def duration_ms(self) -> float:
        if self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time) * 1000

    def end(self) -> None:
        self.end_time = time.perf_counter()

    def annotate(self, key: str, value: Any) -> None:
        self.annotations[key] = value

    def child(self, name: str) -> Span:
        span = Span(name=name, parent=self)
        self.children.append(span)
        return span

    def walk(self) -> Iterator[Span]:
        """Depth-first iteration over this span and its descendants."""
        yield self
        for c in self.children:
            yield from c.walk()

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name, "duration_ms": round(self.duration_ms, 2)}
        if self.annotations:
            data["annotations"] = dict(self.annotations)
        if self.children:
            data["children"] = [c.to_dict() for c in self.children]
        return data


@contextmanager
def _activate(span: Span) -> Generator[Span]:
    token = _current_span.set(span)
    try:
        yield span
    finally:
        span.end()
        _current_span.reset(token)


@contextmanager
def trace_span(name: str) -> Generator[Span | None]:
    """Time a pipeline stage under the active root span.

    Yields None when telemetry is off or no ``@traced`` call is active.
    """
    parent = _current_span.get() if _telemetry_enabled.get() else None
    if parent is None:
        yield None
        return
    with _activate(parent.child(name)) as span:
        yield span


_P = ParamSpec("_P")
_R = TypeVar("_R")


def traced(func: Callable[_P, _R]) -> Callable[_P, _R]:  # noqa: UP047
    """Record the stage tree of a pipeline call into its LayoutResult.

    Results of any other type are returned untouched.
    """

    @functools.wraps(func)
    def wrapper(*args: _P.args, **kwargs: _P.kwargs) -> _R:
        if not _telemetry_enabled.get():
            return func(*args, **kwargs)

        ok = False
        with _activate(Span(name=func.__qualname__)) as root:
            try:
                result = func(*args, **kwargs)
                ok = True
            finally:
                log.debug(
                    "span.complete",
                    span_name=root.name,
                    ok=ok,
                    stages=len(root.children),
                )

        if isinstance(result, LayoutResult):
            meta = {**(result.meta or {}), TELEMETRY_KEY: root.to_dict()}
            return result.model_copy(update={"meta": meta})  # type: ignore[return-value]
        return result

    return wrapper


def stage_timings(result: LayoutResult) -> dict[str, float]:
    """Flat ``{stage: duration_ms}`` view of the telemetry in *result*.

    Empty when the result was produced with telemetry disabled.
    """
    tree = (result.meta or {}).get(TELEMETRY_KEY)
    if not tree:
        return {}
    return {c["name"]: c["duration_ms"] for c in tree.get("children", [])}


def enable_telemetry() -> None:
    _telemetry_enabled.set(True)


def disable_telemetry() -> None:
    _telemetry_enabled.set(False)


def telemetry_enabled() -> bool:
    return _telemetry_enabled.get()


def get_current_span() -> Span | None:
    """The innermost active span, for ad-hoc annotation."""
    if not _telemetry_enabled.get():
        return None
    return _current_span.get()

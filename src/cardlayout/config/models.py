"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, cardlayout.toml only contains
overrides. An empty file (or none at all) yields a working engine.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from cardlayout.domain.models import ReservedChrome


class EngineConfig(BaseModel):
    """[engine] section."""

    model_config = {"frozen": True}

    chrome: ReservedChrome = Field(default_factory=ReservedChrome)
    rotation_range: float = Field(default=2.0, ge=0)
    overlap_tolerance: float = Field(default=0.5, ge=0)
    spacing_tolerance: float = Field(default=2.0, ge=0)


class CoordinatorConfig(BaseModel):
    """[coordinator] section."""

    model_config = {"frozen": True}

    debounce_ms: float = Field(default=150, ge=0)
    max_history: int = Field(default=50, ge=1)
    cache_size: int = Field(default=100, ge=1)
    performance_threshold_ms: float = 100
    enable_metrics: bool = True

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000


class LayoutConfig(BaseModel):
    """Root configuration composing all sections."""

    model_config = {"frozen": True}

    engine: EngineConfig = Field(default_factory=EngineConfig)
    coordinator: CoordinatorConfig = Field(default_factory=CoordinatorConfig)

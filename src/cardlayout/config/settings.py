"""Unified settings — env vars and TOML config in one object.

Priority chain (highest to lowest):
  1. Init kwargs  — values passed by the host application
  2. Env vars     — ``CARDLAYOUT_*`` prefix, ``__`` for nested sections
  3. TOML file    — ``cardlayout.toml`` discovered via walk-up
  4. Code defaults — baked into the section models

Uses Pydantic Settings v2 with a custom :class:`TomlSettingsSource`. The
file is ``$CARDLAYOUT_CONFIG`` when set, else the nearest ``cardlayout.toml``
in the start directory or one of its parents.
"""

from __future__ import annotations

import os
import threading
import tomllib
from pathlib import Path
from typing import IO, Any

from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from cardlayout.config.logging import configure_logging
from cardlayout.config.models import CoordinatorConfig, EngineConfig, LayoutConfig
from cardlayout.errors import LayoutEngineError


CONFIG_FILENAME = "cardlayout.toml"
CONFIG_ENV_VAR = "CARDLAYOUT_CONFIG"


def find_config(start: Path | None = None) -> Path | None:
    """Locate the config file for *start* (default: cwd).

    An explicit ``CARDLAYOUT_CONFIG`` that names no file means no config,
    not a fallback to discovery.
    """
    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        path = Path(explicit)
        return path if path.is_file() else None

    base = (start or Path.cwd()).resolve()
    for directory in (base, *base.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from a ``cardlayout.toml`` file."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path and toml_path.is_file():
            raw = toml_path.read_text(encoding="utf-8")
            try:
                self._data = tomllib.loads(raw)
            except tomllib.TOMLDecodeError as exc:
                msg = f"Invalid TOML in {toml_path}: {exc}"
                raise LayoutEngineError(msg, detail={"path": str(toml_path)}) from exc

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        """Return ``(value, field_name, value_is_complex)``."""
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        """Return the full TOML data dict for Pydantic to merge."""
        return self._data


# Thread-local storage for TOML path during construction.
_tls = threading.local()


class LayoutSettings(BaseSettings):
    """Unified settings for a host embedding the layout engine.

    Attributes:
        config_path: TOML file the settings were read from, if any.
        verbose: Enable DEBUG logging and telemetry spans.
        log_json: Render log lines as JSON.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "CARDLAYOUT_",
        "env_nested_delimiter": "__",
    }

    config_path: Path | None = None
    verbose: bool = False
    log_json: bool = False

    engine: EngineConfig = Field(default_factory=EngineConfig)
    coordinator: CoordinatorConfig = Field(default_factory=CoordinatorConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert TOML source between env vars and defaults."""
        toml_path = getattr(_tls, "toml_path", None)
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, toml_path),
        )

    @classmethod
    def load(
        cls,
        *,
        config_path: str | Path | None = None,
        start: Path | None = None,
        **overrides: Any,
    ) -> LayoutSettings:
        """Construct settings for a host application.

        Uses the explicit *config_path* when it names a file, otherwise
        discovers ``cardlayout.toml`` by walking up from *start*.
        *overrides* win over every other source.
        """
        toml_path: Path | None = None
        if config_path:
            p = Path(config_path)
            if p.is_file():
                toml_path = p
        else:
            toml_path = find_config(start)

        _tls.toml_path = toml_path
        try:
            return cls(config_path=toml_path, **overrides)
        finally:
            _tls.toml_path = None

    def to_layout_config(self) -> LayoutConfig:
        """Return the section models as a plain LayoutConfig."""
        return LayoutConfig(engine=self.engine, coordinator=self.coordinator)

    def apply(self, *, stream: IO[str] | None = None) -> None:
        """Configure logging and telemetry for the current context.

        ``verbose`` turns on DEBUG logging and records pipeline telemetry
        into every ``LayoutResult.meta``.
        """
        from cardlayout.services.telemetry import disable_telemetry, enable_telemetry

        configure_logging(verbose=self.verbose, log_json=self.log_json, stream=stream)
        if self.verbose:
            enable_telemetry()
        else:
            disable_telemetry()

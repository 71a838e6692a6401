"""Tests for PluginManager — registration, hook relay, safe dispatch."""

from __future__ import annotations

import logging
from typing import Any

import pytest

from cardlayout.plugins import PluginManager, hookimpl


class _RecordingPlugin:
    def __init__(self) -> None:
        self.runs: list[dict[str, Any]] = []

    @hookimpl
    def post_resize_run(self, run: dict[str, Any]) -> None:
        self.runs.append(run)


class _FailingPlugin:
    @hookimpl
    def post_resize_run(self, run: dict[str, Any]) -> None:
        raise RuntimeError("plugin exploded")


class TestPluginManager:
    def test_hook_relay_accessible(self) -> None:
        pm = PluginManager()
        assert hasattr(pm.hook, "post_layout")
        assert hasattr(pm.hook, "post_fallback")
        assert hasattr(pm.hook, "post_resize_run")

    def test_register_plugin(self) -> None:
        pm = PluginManager()
        pm.register_plugin(_RecordingPlugin(), name="recorder")
        assert "recorder" in pm.list_plugin_names()

    def test_register_plugin_default_name(self) -> None:
        pm = PluginManager()
        pm.register_plugin(_RecordingPlugin())
        assert "_RecordingPlugin" in pm.list_plugin_names()

    def test_unregister_plugin(self) -> None:
        pm = PluginManager()
        plugin = _RecordingPlugin()
        pm.register_plugin(plugin)
        pm.unregister(plugin)
        assert pm.get_plugins() == []

    def test_discover_without_entry_points(self) -> None:
        pm = PluginManager()
        assert pm.discover_and_load() == []
        assert pm.is_loaded


class TestDispatch:
    def test_dispatch_calls_plugins(self) -> None:
        pm = PluginManager()
        plugin = _RecordingPlugin()
        pm.register_plugin(plugin)
        assert pm.dispatch("post_resize_run", run={"run_id": 1})
        assert plugin.runs == [{"run_id": 1}]

    def test_failure_is_a_warning(self, caplog: pytest.LogCaptureFixture) -> None:
        pm = PluginManager()
        pm.register_plugin(_FailingPlugin())
        with caplog.at_level(logging.WARNING, logger="cardlayout.plugins.manager"):
            assert pm.dispatch("post_resize_run", run={"run_id": 1}) is False
        assert "post_resize_run" in caplog.text

    def test_unknown_hook_is_ignored(self) -> None:
        assert PluginManager().dispatch("post_nothing") is True

    def test_failure_does_not_skip_other_plugins(self) -> None:
        pm = PluginManager()
        recorder = _RecordingPlugin()
        pm.register_plugin(recorder, name="recorder")
        pm.register_plugin(_FailingPlugin(), name="failing")
        assert pm.dispatch("post_resize_run", run={"run_id": 2}) is False
        assert recorder.runs == [{"run_id": 2}]

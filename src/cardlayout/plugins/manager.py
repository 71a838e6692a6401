"""Plugin discovery, registration and hook dispatch.

Discovery: entry_points (pip-installed) via pluggy setuptools entrypoints
in the ``cardlayout.plugins`` group.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any

import pluggy

from cardlayout.plugins.hookspecs import PROJECT_NAME, CardLayoutHookSpec

ENTRY_POINT_GROUP = "cardlayout.plugins"

logger = logging.getLogger(__name__)


class PluginManager:
    """Manages plugin discovery, loading, and hook dispatch."""

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(CardLayoutHookSpec)
        self._loaded: bool = False

    def discover_and_load(self) -> list[str]:
        """Load plugins registered under the ``cardlayout.plugins`` entry point group.

        Returns a list of loaded plugin names.
        """
        self._pm.load_setuptools_entrypoints(ENTRY_POINT_GROUP)
        self._normalize_plugin_instances()
        self._loaded = True
        return self.list_plugin_names()

    def register_plugin(self, plugin: object, name: str | None = None) -> None:
        """Register a plugin instance directly."""
        resolved_name = name or plugin.__class__.__name__
        self._pm.register(plugin, name=resolved_name)
        logger.debug("Registered plugin: %s", resolved_name)

    def unregister(self, plugin: object) -> None:
        """Unregister a plugin instance."""
        self._pm.unregister(plugin)

    @property
    def is_loaded(self) -> bool:
        """Whether discover_and_load() has been called."""
        return self._loaded

    @property
    def hook(self) -> pluggy.HookRelay:
        """Access the hook relay for dispatching events."""
        return self._pm.hook

    def get_plugins(self) -> list[object]:
        """Return all registered plugins."""
        return list(self._pm.get_plugins())

    def list_plugin_names(self) -> list[str]:
        """Return names of all registered plugins."""
        return [self._pm.get_name(p) or p.__class__.__name__ for p in self._pm.get_plugins()]

    def dispatch(self, hook_name: str, **payload: Any) -> bool:
        """Call *hook_name* on every plugin, isolating failures.

        Each implementation runs on its own, in pluggy's call order, so one
        failing plugin is logged as a warning without starving the rest.
        Returns False when any implementation raised.
        """
        caller = getattr(self._pm.hook, hook_name, None)
        if caller is None:
            return True
        ok = True
        # get_hookimpls() is in registration order; pluggy calls LIFO.
        for impl in reversed(caller.get_hookimpls()):
            kwargs = {arg: payload[arg] for arg in impl.argnames if arg in payload}
            try:
                impl.function(**kwargs)
            except Exception:
                ok = False
                logger.warning(
                    "Hook %s failed in plugin %s",
                    hook_name,
                    impl.plugin_name,
                    exc_info=True,
                )
        return ok

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _normalize_plugin_instances(self) -> None:
        """Replace registered plugin classes with instantiated objects.

        Entry-point loading may register a plugin class directly. Hook dispatch
        against class objects leaves ``self`` unbound and fails at runtime.
        """
        for plugin in list(self._pm.get_plugins()):
            if not inspect.isclass(plugin):
                continue

            plugin_name = self._pm.get_name(plugin) or plugin.__name__
            self._pm.unregister(plugin)

            try:
                instance = plugin()
            except Exception:
                logger.warning(
                    "Failed to instantiate entry-point plugin %s",
                    plugin_name,
                    exc_info=True,
                )
                continue

            self._pm.register(instance, name=plugin_name)
            logger.debug("Instantiated entry-point plugin: %s", plugin_name)

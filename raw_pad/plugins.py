# Raw-Pad is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Plugin hooks for Raw-Pad.

A plugin is any `Plugin` subclass: it must provide a unique `name` and may
override `on_load`, `on_key_press` and `on_buffer_change`. The
`PluginManager` owns the registry and fans every notification out to all
plugins; a hook that raises is logged and does not stop the fan-out.
"""

import abc
import importlib
import logging
from typing import Dict, Iterator, List, Optional


class PluginError(RuntimeError):
    """Raised when a plugin module cannot be imported or instantiated."""


class Plugin(abc.ABC):
    """Base class for editor plugins."""

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Unique registry key."""

    def on_load(self) -> None:
        """Called once, right after the plugin is registered."""

    def on_key_press(self, key: int) -> None:
        """Called for every key handled in insert mode, before it is applied."""

    def on_buffer_change(self) -> None:
        """Called after each edit of the current buffer."""


class PluginManager:
    """Registry of named plugins with isolated notification fan-out."""

    def __init__(self) -> None:
        self._plugins: Dict[str, Plugin] = {}

    def __len__(self) -> int:
        return len(self._plugins)

    def __contains__(self, name: str) -> bool:
        return name in self._plugins

    def __iter__(self) -> Iterator[Plugin]:
        return iter(list(self._plugins.values()))

    def names(self) -> List[str]:
        return list(self._plugins)

    def get(self, name: str) -> Optional[Plugin]:
        return self._plugins.get(name)

    # ── loading ──────────────────────────────────────────
    def load_plugin(self, plugin: Plugin) -> bool:
        """
        Registers `plugin` under its name and calls its `on_load` hook.

        A plugin already registered under the same name is replaced. If
        `on_load` raises, the error is logged and the plugin is removed again.

        Returns:
            bool: True if the plugin is active after the call.
        """
        name = plugin.name
        if name in self._plugins:
            logging.info("[plugins] replacing plugin '%s'", name)
        self._plugins[name] = plugin
        try:
            plugin.on_load()
        except Exception:
            logging.exception("[plugins] '%s' failed in on_load; plugin not loaded", name)
            if self._plugins.get(name) is plugin:
                del self._plugins[name]
            return False
        logging.info("[plugins] loaded '%s'", name)
        return True

    def load_plugin_by_name(self, module_name: str) -> bool:
        """
        Imports `module_name` and loads the plugin returned by its
        ``create_plugin()`` factory.

        Raises:
            PluginError: If the module cannot be imported, has no factory, or
                the factory does not return a `Plugin`.
        """
        try:
            module = importlib.import_module(module_name)
        except Exception as exc:
            raise PluginError(f"Cannot import plugin module '{module_name}': {exc}") from exc

        factory = getattr(module, "create_plugin", None)
        if not callable(factory):
            raise PluginError(f"Plugin module '{module_name}' has no create_plugin()")
        try:
            plugin = factory()
        except Exception as exc:
            raise PluginError(f"create_plugin() in '{module_name}' failed: {exc}") from exc
        if not isinstance(plugin, Plugin):
            raise PluginError(f"create_plugin() in '{module_name}' returned {type(plugin).__name__}, not a Plugin")
        return self.load_plugin(plugin)

    def unload_plugin(self, name: str) -> bool:
        """Drops `name` from the registry. No hook is called."""
        removed = self._plugins.pop(name, None) is not None
        if removed:
            logging.info("[plugins] unloaded '%s'", name)
        return removed

    # ── fan-out ──────────────────────────────────────────
    def notify_key_press(self, key: int) -> None:
        for plugin in self:
            try:
                plugin.on_key_press(key)
            except Exception:
                logging.exception("[plugins] '%s' failed in on_key_press(%r)", plugin.name, key)

    def notify_buffer_change(self) -> None:
        for plugin in self:
            try:
                plugin.on_buffer_change()
            except Exception:
                logging.exception("[plugins] '%s' failed in on_buffer_change", plugin.name)

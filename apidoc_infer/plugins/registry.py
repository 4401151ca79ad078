"""Plugin Registry - Priority-ordered handler lists per capability."""

import logging
from typing import Dict, List, Optional, Tuple

from apidoc_infer.errors import PluginError

from .contracts import Capability, ErrorSchemaProvider, Plugin

logger = logging.getLogger(__name__)


class PluginRegistry:
    """
    Holds plugins and their capability registrations

    A plugin whose boot fails is dropped with a warning and a diagnostic;
    the remaining plugins are unaffected.

    Usage:
    ```python
    registry = PluginRegistry.with_defaults()
    registry.register(MyPlugin())
    for extractor in registry.get(Capability.RESPONSE):
        ...
    ```
    """

    def __init__(self):
        self._plugins: Dict[str, Plugin] = {}
        self._handlers: Dict[Capability, List[Tuple[int, int, Plugin]]] = {c: [] for c in Capability}
        self._sequence = 0
        self._suspended: List[Tuple[Plugin, List[Tuple[Capability, Tuple[int, int, Plugin]]]]] = []
        self.diagnostics: List[str] = []

    @classmethod
    def with_defaults(cls, **options) -> "PluginRegistry":
        """Registry preloaded with the built-in extractors"""
        from .builtin import default_plugins

        registry = cls()
        for plugin in default_plugins(**options):
            registry.register(plugin)
        return registry

    def register(self, plugin: Plugin) -> bool:
        """
        Boot a plugin

        Returns:
            True when the plugin booted, False when it was dropped
        """
        name = plugin.plugin_name
        try:
            plugin.boot(self)
        except Exception as e:
            self._remove_handlers(plugin)
            error = PluginError(name, f"failed to boot: {e}")
            logger.warning(str(error))
            self.diagnostics.append(str(error))
            return False
        self._plugins[name] = plugin
        logger.debug(f"Registered plugin '{name}' for {[c.value for c in self.capabilities_of(plugin)]}")
        return True

    def add(self, capability: Capability, handler: Plugin, priority: Optional[int] = None) -> None:
        """Register a handler for one capability"""
        self._sequence += 1
        entry = (priority if priority is not None else handler.priority, self._sequence, handler)
        self._handlers[capability].append(entry)
        # higher priority first, registration order breaks ties
        self._handlers[capability].sort(key=lambda item: (-item[0], item[1]))

    def get(self, capability: Capability) -> List[Plugin]:
        return [handler for _, _, handler in self._handlers[capability]]

    def unregister(self, plugin: Plugin, reason: str = "") -> None:
        """Remove a plugin from every capability for the rest of the run"""
        removed = [
            (capability, entry)
            for capability, entries in self._handlers.items()
            for entry in entries
            if entry[2] is plugin
        ]
        if removed:
            self._suspended.append((plugin, removed))
        self._remove_handlers(plugin)
        self._plugins.pop(plugin.plugin_name, None)
        if reason:
            error = PluginError(plugin.plugin_name, reason)
            logger.warning(f"{error}; unregistered for this run")
            self.diagnostics.append(str(error))

    def begin_run(self) -> None:
        """Restore plugins unregistered during the previous run"""
        for plugin, removed in self._suspended:
            for capability, entry in removed:
                self._handlers[capability].append(entry)
                self._handlers[capability].sort(key=lambda item: (-item[0], item[1]))
            self._plugins[plugin.plugin_name] = plugin
            logger.debug(f"Restored plugin '{plugin.plugin_name}'")
        self._suspended = []

    def plugins(self) -> List[Plugin]:
        return list(self._plugins.values())

    def capabilities_of(self, plugin: Plugin) -> List[Capability]:
        return [
            capability
            for capability, entries in self._handlers.items()
            if any(handler is plugin for _, _, handler in entries)
        ]

    def error_provider_for(self, exception_name: str) -> Optional[ErrorSchemaProvider]:
        for provider in self.get(Capability.ERROR_SCHEMA):
            if isinstance(provider, ErrorSchemaProvider) and provider.provides(exception_name):
                return provider
        return None

    def _remove_handlers(self, plugin: Plugin) -> None:
        for capability in self._handlers:
            self._handlers[capability] = [
                entry for entry in self._handlers[capability] if entry[2] is not plugin
            ]

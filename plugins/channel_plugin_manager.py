"""
Channel Plugin Manager

Binds channel names to channel plugins and dispatches incoming calls.
"""

from typing import Any, Dict, List, Optional
import logging

from platform_services import PlatformChannelError
from .channel_plugin_base import ChannelPlugin, MethodCall


class ChannelNotFoundError(PlatformChannelError):
    """No enabled plugin is bound to the requested channel"""
    pass


class ChannelConflictError(PlatformChannelError):
    """A channel name is already bound to a different plugin"""
    pass


class ChannelPluginManager:
    """Registry of channel plugins keyed by channel name"""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.plugins: Dict[str, ChannelPlugin] = {}
        self.channels: Dict[str, str] = {}
        self.logger = logger if logger else logging.getLogger("channel_plugin_manager")

        self.logger.debug("🔌 Channel plugin manager initialized")

    def register_plugin(self, plugin: ChannelPlugin) -> None:
        """Register a plugin under every channel name it answers"""
        channels = plugin.get_channels()
        for channel in channels:
            owner = self.channels.get(channel)
            if owner is not None and owner != plugin.name:
                raise ChannelConflictError(
                    f"Channel '{channel}' is already bound to plugin '{owner}'"
                )

        self.plugins[plugin.name] = plugin
        for channel in channels:
            self.channels[channel] = plugin.name
            self.logger.info(f"🔌 Registered channel '{channel}' -> {plugin.name}")

    def unregister_plugin(self, plugin_name: str) -> bool:
        """Remove a plugin and every channel bound to it"""
        if plugin_name not in self.plugins:
            return False

        del self.plugins[plugin_name]
        self.channels = {c: p for c, p in self.channels.items() if p != plugin_name}
        self.logger.info(f"🔌 Unregistered plugin: {plugin_name}")
        return True

    async def load_plugins(self, plugins: List[ChannelPlugin]) -> Dict[str, bool]:
        """Initialize and register plugins, returning success per plugin"""
        results = {}
        for plugin in plugins:
            if await plugin.initialize():
                self.register_plugin(plugin)
                results[plugin.name] = True
            else:
                self.logger.warning(f"⚠️ Plugin {plugin.name} failed to initialize")
                results[plugin.name] = False
        return results

    async def reload_plugins(self, plugins: List[ChannelPlugin]) -> Dict[str, bool]:
        """Replace all registrations with a new plugin set.

        The new bindings are validated before the old plugins are cleaned up,
        so a conflicting set leaves the current registrations untouched.
        """
        staged = ChannelPluginManager(logger=self.logger)
        results = await staged.load_plugins(plugins)

        old_plugins = list(self.plugins.values())
        self.plugins = staged.plugins
        self.channels = staged.channels

        for plugin in old_plugins:
            if plugin not in plugins:
                await plugin.cleanup()

        self.logger.info(f"🔄 Reloaded plugins: {', '.join(results) or 'none'}")
        return results

    def enable_plugin(self, plugin_name: str) -> bool:
        if plugin_name in self.plugins:
            self.plugins[plugin_name].enabled = True
            return True
        return False

    def disable_plugin(self, plugin_name: str) -> bool:
        if plugin_name in self.plugins:
            self.plugins[plugin_name].enabled = False
            return True
        return False

    def get_plugin_for_channel(self, channel: str) -> Optional[ChannelPlugin]:
        """Get the enabled plugin bound to a channel"""
        plugin_name = self.channels.get(channel)
        if plugin_name is None:
            return None
        plugin = self.plugins.get(plugin_name)
        if plugin is None or not plugin.enabled:
            return None
        return plugin

    def list_channels(self) -> List[str]:
        """List channel names with an enabled plugin"""
        return sorted(c for c in self.channels if self.get_plugin_for_channel(c))

    async def dispatch(self, call: MethodCall) -> Any:
        """Route a call to its channel plugin.

        Plugin errors propagate to the caller unchanged.
        """
        plugin = self.get_plugin_for_channel(call.channel)
        if plugin is None:
            raise ChannelNotFoundError(f"No plugin registered for channel '{call.channel}'")
        return await plugin.handle_call(call)

    def get_plugin_status(self) -> Dict[str, Any]:
        """Get status of all plugins"""
        return {
            "loaded": {name: plugin.get_info() for name, plugin in self.plugins.items()},
            "channels": dict(self.channels),
            "total_loaded": len(self.plugins),
        }

    async def cleanup(self):
        """Cleanup plugin manager"""
        for plugin in list(self.plugins.values()):
            try:
                await plugin.cleanup()
            except Exception as e:
                self.logger.error(f"❌ Error cleaning up {plugin.name}: {e}")

        self.plugins.clear()
        self.channels.clear()

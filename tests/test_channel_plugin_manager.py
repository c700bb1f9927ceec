"""
Tests for ChannelPluginManager
"""

import pytest
import logging
from typing import List

from platform_services import StaticOSVersionService
from plugins.channel_plugin_base import ChannelPlugin, MethodCall
from plugins.channel_plugin_manager import (
    ChannelPluginManager,
    ChannelNotFoundError,
    ChannelConflictError,
)
from plugins.platform_info_plugin import PlatformInfoResponder


class EchoPlugin(ChannelPlugin):
    """Returns the call arguments"""

    def __init__(self, name: str = "echo", channels: List[str] = None, init_ok: bool = True):
        super().__init__(name)
        self.channels = channels or ["echo"]
        self.init_ok = init_ok
        self.cleaned_up = False

    def get_channels(self) -> List[str]:
        return self.channels

    async def handle_call(self, call: MethodCall):
        return call.arguments

    async def initialize(self) -> bool:
        return self.init_ok

    async def cleanup(self):
        self.cleaned_up = True


class TestChannelPluginManager:
    """Test channel registration and dispatch"""

    def setup_method(self):
        self.logger = logging.getLogger('test')
        self.manager = ChannelPluginManager(logger=self.logger)
        self.responder = PlatformInfoResponder(
            StaticOSVersionService('iOS', '17.4'),
            channels=['jpeg12', 'libjpeg12'],
            logger=self.logger
        )

    def test_register_plugin_binds_all_channels(self):
        self.manager.register_plugin(self.responder)

        assert self.manager.list_channels() == ['jpeg12', 'libjpeg12']
        assert self.manager.channels['jpeg12'] == 'platform_info'

    def test_conflicting_channel_rejected(self):
        self.manager.register_plugin(self.responder)

        with pytest.raises(ChannelConflictError):
            self.manager.register_plugin(EchoPlugin(channels=['jpeg12']))

        assert 'echo' not in self.manager.plugins
        assert self.manager.channels['jpeg12'] == 'platform_info'

    def test_reregistering_same_plugin_is_allowed(self):
        self.manager.register_plugin(self.responder)
        self.manager.register_plugin(self.responder)

        assert self.manager.list_channels() == ['jpeg12', 'libjpeg12']

    def test_unregister_plugin(self):
        self.manager.register_plugin(self.responder)

        assert self.manager.unregister_plugin('platform_info') is True
        assert self.manager.list_channels() == []
        assert self.manager.unregister_plugin('platform_info') is False

    @pytest.mark.asyncio
    async def test_dispatch_routes_to_plugin(self):
        self.manager.register_plugin(self.responder)
        self.manager.register_plugin(EchoPlugin())

        assert await self.manager.dispatch(MethodCall(channel='jpeg12')) == "iOS 17.4"
        assert await self.manager.dispatch(MethodCall(channel='echo', arguments={'a': 1})) == {'a': 1}

    @pytest.mark.asyncio
    async def test_dispatch_unknown_channel(self):
        with pytest.raises(ChannelNotFoundError) as exc_info:
            await self.manager.dispatch(MethodCall(channel='camera'))

        assert 'camera' in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_disabled_plugin_is_not_found(self):
        self.manager.register_plugin(self.responder)
        self.manager.disable_plugin('platform_info')

        assert self.manager.list_channels() == []
        with pytest.raises(ChannelNotFoundError):
            await self.manager.dispatch(MethodCall(channel='jpeg12'))

        self.manager.enable_plugin('platform_info')
        assert await self.manager.dispatch(MethodCall(channel='jpeg12')) == "iOS 17.4"

    @pytest.mark.asyncio
    async def test_load_plugins_skips_failed_initialization(self):
        results = await self.manager.load_plugins([self.responder, EchoPlugin(init_ok=False)])

        assert results == {'platform_info': True, 'echo': False}
        assert 'echo' not in self.manager.plugins

    @pytest.mark.asyncio
    async def test_reload_plugins_swaps_channels(self):
        old_plugin = EchoPlugin(channels=['old'])
        await self.manager.load_plugins([old_plugin])

        new_responder = PlatformInfoResponder(
            StaticOSVersionService('iOS', '17.5'),
            channels=['platform_info'],
            logger=self.logger
        )
        await self.manager.reload_plugins([new_responder])

        assert self.manager.list_channels() == ['platform_info']
        assert old_plugin.cleaned_up is True
        assert await self.manager.dispatch(MethodCall(channel='platform_info')) == "iOS 17.5"

    @pytest.mark.asyncio
    async def test_reload_with_conflict_keeps_current_bindings(self):
        await self.manager.load_plugins([self.responder])

        conflicting = [EchoPlugin(name='a', channels=['x']), EchoPlugin(name='b', channels=['x'])]
        with pytest.raises(ChannelConflictError):
            await self.manager.reload_plugins(conflicting)

        assert self.manager.list_channels() == ['jpeg12', 'libjpeg12']

    @pytest.mark.asyncio
    async def test_cleanup(self):
        plugin = EchoPlugin()
        await self.manager.load_plugins([plugin])

        await self.manager.cleanup()

        assert plugin.cleaned_up is True
        assert self.manager.plugins == {}
        assert self.manager.channels == {}

    def test_get_plugin_status(self):
        self.manager.register_plugin(self.responder)

        status = self.manager.get_plugin_status()
        assert status['total_loaded'] == 1
        assert status['channels'] == {'jpeg12': 'platform_info', 'libjpeg12': 'platform_info'}

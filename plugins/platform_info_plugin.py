"""
Platform Info Plugin

Answers every call on its channels with "<PlatformName> <OSVersion>".
"""

from typing import List, Optional, Any
import logging

from platform_services import OSVersionService, PlatformQueryError
from .channel_plugin_base import ChannelPlugin, MethodCall

DEFAULT_SEPARATOR = " "


class PlatformInfoResponder(ChannelPlugin):
    """Stateless responder reporting the host platform name and version.

    One instance serves any number of channel names; the channel names are
    configuration, not subclasses.
    """

    def __init__(self,
                 version_service: OSVersionService,
                 channels: List[str],
                 platform_name: Optional[str] = None,
                 separator: str = DEFAULT_SEPARATOR,
                 allow_empty_version: bool = False,
                 logger: Optional[logging.Logger] = None):
        super().__init__("platform_info", logger)
        self.version_service = version_service
        self.channels = list(channels)
        self.platform_name = platform_name or None
        self.separator = separator
        self.allow_empty_version = allow_empty_version
        self.description = "Reports the host platform name and OS version"

    def get_channels(self) -> List[str]:
        return list(self.channels)

    def get_platform_version(self) -> str:
        """Read the host OS version and format it as a version string.

        Raises:
            PlatformQueryError: the host accessor failed, or returned an empty
                version while empty versions are not allowed.
        """
        try:
            os_version = self.version_service.get_os_version()
            platform_name = self.platform_name or self.version_service.get_platform_name()
        except PlatformQueryError:
            raise
        except Exception as e:
            self.logger.error(f"📱 PLATFORM: host accessor failed: {type(e).__name__}: {e}")
            raise PlatformQueryError(str(e)) from e

        if os_version is None:
            raise PlatformQueryError("Host environment returned no OS version")
        if not platform_name:
            raise PlatformQueryError("Host environment returned no platform name")
        if not str(os_version).strip() and not self.allow_empty_version:
            raise PlatformQueryError("Host environment returned an empty OS version")

        return f"{platform_name}{self.separator}{os_version}"

    async def handle_call(self, call: MethodCall) -> Any:
        # Method name and arguments are intentionally not inspected
        self.logger.debug(f"📱 PLATFORM: {call.channel}.{call.method} requested")
        return self.get_platform_version()

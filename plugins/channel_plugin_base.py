"""
Channel Plugin Base Classes

This module provides the request/response channel contract: a caller sends a
MethodCall on a named channel and the plugin bound to that channel answers
with a single value.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Dict, Any
from dataclasses import dataclass, field
import logging


@dataclass(frozen=True)
class MethodCall:
    """A single request on a named channel"""
    channel: str                          # Channel name the call was sent on
    method: str = "getPlatformVersion"    # Method name requested by the caller
    arguments: Any = None                 # Opaque request payload
    correlation_id: Optional[str] = field(default=None, compare=False)


class ChannelPlugin(ABC):
    """Plugin base class that answers calls on one or more channels"""

    def __init__(self, name: str, logger: Optional[logging.Logger] = None):
        self.name = name
        self.enabled = True
        self.version = "1.0.0"
        self.description = "A channel plugin"
        self.logger = logger or logging.getLogger(f"plugin.{name}")

    @abstractmethod
    def get_channels(self) -> List[str]:
        """Return list of channel names this plugin answers"""
        pass

    @abstractmethod
    async def handle_call(self, call: MethodCall) -> Any:
        """Handle a call and return the response value"""
        pass

    async def initialize(self) -> bool:
        """Initialize plugin. Return True if successful."""
        return True

    async def cleanup(self):
        """Cleanup when plugin is disabled/unloaded"""
        pass

    def can_handle(self, channel: str) -> bool:
        """Check if this plugin answers the channel"""
        return channel in self.get_channels()

    def get_info(self) -> Dict[str, Any]:
        """Return plugin information"""
        return {
            "name": self.name,
            "version": self.version,
            "description": self.description,
            "enabled": self.enabled,
            "channels": self.get_channels(),
        }

#!/usr/bin/env python3
"""
Platform Service Architecture for the Platform Channel Host

This module provides the host-environment services that channel plugins use
to learn about the machine they run on, without being tied to one operating
system.
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional, Any
import logging
import platform

OS_VERSION_SERVICE = "os_version"


class PlatformChannelError(Exception):
    """Base exception for platform channel operations"""
    pass


class PlatformQueryError(PlatformChannelError):
    """The host environment could not supply a platform identifier"""
    pass


class PlatformService(ABC):
    """Base class for platform-specific services"""

    def __init__(self, name: str, logger: Optional[logging.Logger] = None):
        self.name = name
        self.logger = logger or logging.getLogger(__name__)

    @abstractmethod
    def is_available(self) -> bool:
        """Check if service is available on current platform"""
        pass

    @abstractmethod
    def get_service_info(self) -> Dict[str, Any]:
        """Get service capabilities and metadata"""
        pass


class OSVersionService(PlatformService):
    """Read-only accessor for the host operating system name and version"""

    def __init__(self, logger: Optional[logging.Logger] = None):
        super().__init__(OS_VERSION_SERVICE, logger)

    @abstractmethod
    def get_platform_name(self) -> str:
        """Human-readable platform name, e.g. 'macOS' or 'Linux'"""
        pass

    @abstractmethod
    def get_os_version(self) -> str:
        """Current OS version identifier as reported by the host"""
        pass

    def is_available(self) -> bool:
        try:
            return bool(self.get_os_version())
        except Exception as e:
            self.logger.debug(f"🔧 OS VERSION: accessor unavailable: {e}")
            return False

    def get_service_info(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "provider": type(self).__name__,
            "read_only": True,
        }


class HostOSVersionService(OSVersionService):
    """OS version service backed by Python's platform module"""

    PLATFORM_NAMES = {
        "Darwin": "macOS",
        "Windows": "Windows",
        "Linux": "Linux",
    }

    def get_platform_name(self) -> str:
        system = platform.system()
        return self.PLATFORM_NAMES.get(system, system)

    def get_os_version(self) -> str:
        system = platform.system()
        if system == "Darwin":
            return platform.mac_ver()[0]
        if system == "Windows":
            return platform.version()
        return platform.release()

    def get_service_info(self) -> Dict[str, Any]:
        info = super().get_service_info()
        info["system"] = platform.system()
        return info


class StaticOSVersionService(OSVersionService):
    """OS version service returning fixed values (config overrides, tests)"""

    def __init__(self, platform_name: str, os_version: str, logger: Optional[logging.Logger] = None):
        super().__init__(logger)
        self.platform_name = platform_name
        self.os_version = os_version

    def get_platform_name(self) -> str:
        return self.platform_name

    def get_os_version(self) -> str:
        return self.os_version


class PlatformServiceRegistry:
    """Named host services shared by the responder and the health endpoint"""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.services: Dict[str, PlatformService] = {}
        self.logger = logger or logging.getLogger(__name__)

    def register_service(self, service: PlatformService):
        """Register a service under its own name, replacing any previous one"""
        replaced = service.name in self.services
        self.services[service.name] = service
        self.logger.info(f"🔧 SERVICES: {'Replaced' if replaced else 'Registered'} "
                         f"'{service.name}' ({type(service).__name__})")

    def get_service(self, service_name: str) -> Optional[PlatformService]:
        return self.services.get(service_name)

    def get_all_services_info(self) -> Dict[str, Dict[str, Any]]:
        """Service metadata plus a live availability check, keyed by name"""
        info = {}
        for name, service in self.services.items():
            entry = service.get_service_info()
            entry["available"] = service.is_available()
            info[name] = entry
        return info

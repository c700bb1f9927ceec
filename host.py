#!/usr/bin/env python3
"""
Platform Channel Host
Main orchestrator: wires configuration, platform services, channel plugins and transports
"""

import asyncio
import argparse
import logging
import logging.handlers
import signal
import sys
import yaml
from pathlib import Path
from typing import Dict, Any, List, Optional

from config_manager import ConfigManager, DEFAULT_RETENTION_DAYS
from config_watcher import ConfigFileWatcher
from http_gateway import HttpGateway
from message_handler import CallHandler, DEFAULT_METHOD
from platform_services import (
    PlatformChannelError,
    PlatformServiceRegistry,
    OSVersionService,
    HostOSVersionService,
    StaticOSVersionService,
    OS_VERSION_SERVICE,
)
from plugins.channel_plugin_base import MethodCall
from plugins.channel_plugin_manager import ChannelPluginManager
from plugins.platform_info_plugin import PlatformInfoResponder
from websocket_manager import ChannelWebSocketServer

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
CALL_LOG_FORMAT = '%(asctime)s - %(message)s'
CONSOLE_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


class DailyRotatingLogger:
    """Application logger plus a separate call logger, both rotated daily"""

    def __init__(self, app_logger_name: str, call_logger_name: str, config: Dict[str, Any]):
        self.config = config
        self.log_dir = Path(config.get('log_dir', 'logs'))
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.handlers: List[tuple] = []

        self.app_logger = logging.getLogger(app_logger_name)
        self.app_logger.setLevel(getattr(logging, config.get('log_level', 'INFO')))

        self.call_logger = logging.getLogger(call_logger_name)
        self.call_logger.setLevel(logging.INFO)

        self._setup_handlers()

    def _setup_handlers(self):
        """Setup daily rotating file handlers"""
        retention = self.config.get('retention_days', DEFAULT_RETENTION_DAYS)

        app_handler = logging.handlers.TimedRotatingFileHandler(
            filename=self.log_dir / "host.log",
            when='midnight',
            interval=1,
            backupCount=retention
        )
        app_handler.setFormatter(logging.Formatter(LOG_FORMAT))

        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))

        self._add_handler(self.app_logger, app_handler)
        self._add_handler(self.app_logger, console_handler)

        if self.config.get('call_log_separate', True):
            call_handler = logging.handlers.TimedRotatingFileHandler(
                filename=self.log_dir / "calls.log",
                when='midnight',
                interval=1,
                backupCount=retention
            )
            call_handler.setFormatter(logging.Formatter(CALL_LOG_FORMAT))
            self._add_handler(self.call_logger, call_handler)
            self.call_logger.propagate = False
        else:
            # Calls go to the application log instead
            self.call_logger = self.app_logger

    def _add_handler(self, logger: logging.Logger, handler: logging.Handler):
        logger.addHandler(handler)
        self.handlers.append((logger, handler))

    def set_level(self, level: str):
        self.app_logger.setLevel(getattr(logging, level))

    def close(self):
        """Detach and close every handler added by this manager"""
        for logger, handler in self.handlers:
            logger.removeHandler(handler)
            handler.close()
        self.handlers.clear()


class PlatformChannelHost:
    """Main host orchestrator using dependency injection"""

    def __init__(self, config_path: str = "config.yml", cli_args: Optional[argparse.Namespace] = None,
                 env_file: str = ".env"):
        self.config_path = config_path
        self.cli_args = cli_args

        # Load configuration
        self.config_manager = ConfigManager(config_path, env_file)
        self._apply_cli_overrides()

        # Setup logging
        self.logger_manager = DailyRotatingLogger(
            "PlatformChannelHost",
            "PlatformChannelCalls",
            self.config_manager.get_logging_config()
        )
        self.logger = self.logger_manager.app_logger
        self.call_logger = self.logger_manager.call_logger

        self._initialize_components()

        # Host state
        self.running = False
        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self._stop_event: Optional[asyncio.Event] = None

        self.logger.info("PlatformChannelHost initialized")

    def _apply_cli_overrides(self):
        """Command line flags win over the configuration file"""
        args = self.cli_args
        if not args:
            return

        config = self.config_manager.config
        if getattr(args, 'log_level', None):
            config['logging']['log_level'] = args.log_level
        if getattr(args, 'platform_name', None):
            config['responder']['platform_name'] = args.platform_name
        if getattr(args, 'websocket_port', None) is not None:
            config['server']['websocket_port'] = args.websocket_port
        if getattr(args, 'http_port', None) is not None:
            config['server']['http_port'] = args.http_port
        if getattr(args, 'no_websocket', False):
            config['server']['websocket_enabled'] = False
        if getattr(args, 'no_http', False):
            config['server']['http_enabled'] = False
        if getattr(args, 'no_watch', False):
            config['logging']['watch_config'] = False

    def _initialize_components(self):
        """Initialize all components with proper dependency injection"""
        self.service_registry = PlatformServiceRegistry(logger=self.logger)
        self.plugin_manager = ChannelPluginManager(logger=self.logger)
        self.call_handler = CallHandler(
            plugin_manager=self.plugin_manager,
            logger=self.logger,
            call_logger=self.call_logger
        )

        server_config = self.config_manager.get_server_config()
        self.websocket_server = None
        if server_config.get('websocket_enabled', True):
            self.websocket_server = ChannelWebSocketServer(
                call_handler=self.call_handler,
                logger=self.logger,
                host=server_config.get('websocket_host', '127.0.0.1'),
                port=server_config.get('websocket_port'),
            )

        self.http_gateway = None
        if server_config.get('http_enabled', True):
            self.http_gateway = HttpGateway(
                call_handler=self.call_handler,
                logger=self.logger,
                host=server_config.get('http_host', '127.0.0.1'),
                port=server_config.get('http_port'),
                service_registry=self.service_registry,
            )

        self.config_watcher = None
        if self.config_manager.get('logging.watch_config', True):
            self.config_watcher = ConfigFileWatcher(
                self.config_path, self.reload_config, logger=self.logger
            )

    def build_version_service(self) -> OSVersionService:
        """Host accessor, or a fixed one when responder.os_version is configured"""
        responder_config = self.config_manager.get_responder_config()
        os_version = responder_config.get('os_version')
        if os_version:
            host_service = HostOSVersionService(logger=self.logger)
            platform_name = responder_config.get('platform_name') or host_service.get_platform_name()
            return StaticOSVersionService(platform_name, os_version, logger=self.logger)
        return HostOSVersionService(logger=self.logger)

    def register_services(self):
        self.service_registry.register_service(self.build_version_service())

    def build_responder(self) -> PlatformInfoResponder:
        responder_config = self.config_manager.get_responder_config()
        return PlatformInfoResponder(
            version_service=self.service_registry.get_service(OS_VERSION_SERVICE),
            channels=self.config_manager.get_channels(),
            platform_name=responder_config.get('platform_name') or None,
            separator=responder_config.get('separator', ' '),
            allow_empty_version=responder_config.get('allow_empty_version', False),
            logger=self.logger,
        )

    async def initialize_plugins(self) -> Dict[str, bool]:
        self.register_services()
        results = await self.plugin_manager.load_plugins([self.build_responder()])
        self.logger.info(f"🔌 Channels ready: {', '.join(self.plugin_manager.list_channels())}")
        return results

    async def reload_config(self) -> bool:
        """Re-read configuration and rebind channels; transports keep running"""
        previous = self.config_manager.to_dict()
        previous_services = dict(self.service_registry.services)
        try:
            self.config_manager.reload()
            self._apply_cli_overrides()
            self.register_services()
            await self.plugin_manager.reload_plugins([self.build_responder()])
        except (PlatformChannelError, ValueError, OSError, yaml.YAMLError) as e:
            self.config_manager.config = previous
            self.service_registry.services = previous_services
            self.logger.error(f"🔄 CONFIG RELOAD FAILED, keeping previous configuration: {e}")
            return False

        self.logger_manager.set_level(self.config_manager.get('logging.log_level', 'INFO'))
        self.logger.info(f"🔄 Configuration reloaded, channels: {', '.join(self.plugin_manager.list_channels())}")
        return True

    async def query(self, channel: str, method: str = DEFAULT_METHOD, arguments: Any = None) -> Any:
        """Issue a single call in-process; errors propagate to the caller"""
        call = MethodCall(channel=channel, method=method, arguments=arguments)
        result = await self.plugin_manager.dispatch(call)
        self.call_logger.info(f"{channel}.{method} -> {result}")
        return result

    async def startup(self):
        """Load plugins and start transports without blocking"""
        self.loop = asyncio.get_running_loop()
        self._stop_event = asyncio.Event()

        await self.initialize_plugins()

        if self.websocket_server:
            await self.websocket_server.start()
        if self.http_gateway:
            await self.http_gateway.start()
        if self.config_watcher:
            self.config_watcher.start(self.loop)

        self.running = True
        self.logger.info("🚀 Platform channel host started")

    async def start(self):
        """Start the host and serve until stopped"""
        await self.startup()

        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

        await self._stop_event.wait()

    def request_stop(self):
        if self._stop_event:
            self._stop_event.set()

    def _signal_handler(self, signum, frame):
        self.logger.info(f"Received signal {signum}, shutting down...")
        self.running = False
        if self.loop:
            self.loop.call_soon_threadsafe(self.request_stop)

    async def stop(self):
        """Stop transports, plugins and logging"""
        self.running = False
        if self.config_watcher:
            self.config_watcher.stop()
        if self.http_gateway:
            await self.http_gateway.stop()
        if self.websocket_server:
            await self.websocket_server.stop()
        await self.plugin_manager.cleanup()
        self.logger.info("Platform channel host stopped")
        self.logger_manager.close()


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(description="Platform Channel Host")
    parser.add_argument(
        "-c", "--config",
        default="config.yml",
        help="Path to configuration file"
    )
    parser.add_argument(
        "--env-file",
        default=".env",
        help="Path to environment file"
    )
    parser.add_argument(
        "--log-level",
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help="Set logging level"
    )
    parser.add_argument(
        "--platform-name",
        help="Platform name literal to report instead of the detected one"
    )
    parser.add_argument(
        "--websocket-port",
        type=int,
        help="Port for the websocket channel server"
    )
    parser.add_argument(
        "--http-port",
        type=int,
        help="Port for the HTTP gateway"
    )
    parser.add_argument(
        "--no-websocket",
        action="store_true",
        help="Do not start the websocket channel server"
    )
    parser.add_argument(
        "--no-http",
        action="store_true",
        help="Do not start the HTTP gateway"
    )
    parser.add_argument(
        "--no-watch",
        action="store_true",
        help="Do not reload the configuration when the file changes"
    )
    parser.add_argument(
        "--query",
        metavar="CHANNEL",
        help="Send one call on CHANNEL, print the response and exit"
    )
    parser.add_argument(
        "--method",
        default=DEFAULT_METHOD,
        help="Method name for --query"
    )

    return parser.parse_args(argv)


async def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    args = parse_arguments(argv)

    if args.query:
        args.no_watch = True

    host = PlatformChannelHost(config_path=args.config, cli_args=args, env_file=args.env_file)

    if args.query:
        try:
            await host.initialize_plugins()
            print(await host.query(args.query, args.method))
            return 0
        except PlatformChannelError as e:
            print(f"{type(e).__name__}: {e}", file=sys.stderr)
            return 1
        finally:
            await host.stop()

    try:
        await host.start()
    except KeyboardInterrupt:
        print("\nReceived keyboard interrupt, shutting down...")
    except PlatformChannelError as e:
        host.logger.error(f"Host error: {e}")
        return 1
    finally:
        await host.stop()
    return 0


def run():
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()

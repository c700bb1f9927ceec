#!/usr/bin/env python3
"""
Configuration Manager for the Platform Channel Host
Handles YAML configuration loading with environment variable substitution
"""

import os
import yaml
import logging
import copy
from typing import Dict, Any, List
from dotenv import load_dotenv
import re

from platform_services import PlatformChannelError

logger = logging.getLogger(__name__)

# Constants
DEFAULT_RETENTION_DAYS = 30
DEFAULT_WEBSOCKET_PORT = 3030
DEFAULT_HTTP_PORT = 8080
LEGACY_CHANNELS = ['jpeg12', 'libjpeg12']

TRUE_STRINGS = {'true', 'yes', 'on', '1'}
FALSE_STRINGS = {'false', 'no', 'off', '0', ''}

DEFAULT_CONFIG = {
    'responder': {
        'platform_name': '',
        'separator': ' ',
        'allow_empty_version': False,
        'os_version': '',
    },
    'channels': list(LEGACY_CHANNELS),
    'server': {
        'websocket_enabled': True,
        'websocket_host': '127.0.0.1',
        'websocket_port': DEFAULT_WEBSOCKET_PORT,
        'http_enabled': True,
        'http_host': '127.0.0.1',
        'http_port': DEFAULT_HTTP_PORT,
    },
    'logging': {
        'log_level': 'INFO',
        'log_dir': 'logs',
        'retention_days': DEFAULT_RETENTION_DAYS,
        'call_log_separate': True,
        'watch_config': True,
    },
}


class ConfigurationError(PlatformChannelError, ValueError):
    """Configuration-related errors"""
    pass


class ConfigManager:
    """Manages host configuration from YAML files with environment variable substitution"""

    def __init__(self, config_path: str = "config.yml", env_file: str = ".env"):
        """
        Initialize configuration manager

        Args:
            config_path: Path to YAML configuration file
            env_file: Path to environment file
        """
        self.config_path = config_path
        self.env_file = env_file
        self.config: Dict[str, Any] = {}

        # Load environment variables first
        self._load_env_file()

        # Load and parse configuration
        self._load_config()

    def _load_env_file(self):
        """Load environment variables from .env file"""
        if os.path.exists(self.env_file):
            load_dotenv(self.env_file)
            logger.info(f"Loaded environment variables from {self.env_file}")
        else:
            logger.debug(f"Environment file {self.env_file} not found")

    def _substitute_env_vars(self, value: Any) -> Any:
        """
        Recursively substitute environment variables in configuration values
        Supports ${VAR_NAME} and ${VAR_NAME:-default_value} syntax
        """
        if isinstance(value, str):
            pattern = r'\$\{([^}]+)\}'

            def replace_var(match):
                var_expr = match.group(1)

                if ':-' in var_expr:
                    var_name, default_value = var_expr.split(':-', 1)
                    return os.getenv(var_name.strip(), default_value)
                else:
                    var_name = var_expr.strip()
                    env_value = os.getenv(var_name)
                    if env_value is None:
                        logger.warning(f"Environment variable {var_name} not found")
                        return match.group(0)  # Return original if not found
                    return env_value

            return re.sub(pattern, replace_var, value)

        elif isinstance(value, dict):
            return {k: self._substitute_env_vars(v) for k, v in value.items()}

        elif isinstance(value, list):
            return [self._substitute_env_vars(item) for item in value]

        else:
            return value

    def _load_config(self):
        """Load and parse YAML configuration file"""
        if not os.path.exists(self.config_path):
            logger.warning(f"Configuration file {self.config_path} not found")
            self._create_default_config()
            return

        try:
            with open(self.config_path, 'r') as file:
                raw_config = yaml.safe_load(file) or {}

            if not isinstance(raw_config, dict):
                raise ConfigurationError("Configuration root must be a mapping")

            self.config = self._substitute_env_vars(raw_config)
            self._validate_config()

            logger.info(f"Successfully loaded configuration from {self.config_path}")

        except yaml.YAMLError as e:
            logger.error(f"Error parsing YAML configuration: {e}")
            raise
        except Exception as e:
            logger.error(f"Error loading configuration: {e}")
            raise

    def _create_default_config(self):
        """Create a default configuration if none exists"""
        self.config = copy.deepcopy(DEFAULT_CONFIG)
        logger.warning("Using default configuration")

    def _validate_config(self):
        """Validate configuration structure and coerce scalar values"""
        required_sections = ['responder', 'channels', 'server', 'logging']

        for section in required_sections:
            if section not in self.config:
                logger.error(f"Missing required configuration section: {section}")
                raise ConfigurationError(f"Missing configuration section: {section}")

        for section in ('responder', 'server', 'logging'):
            if self.config[section] is None:
                self.config[section] = {}
            elif not isinstance(self.config[section], dict):
                raise ConfigurationError(f"Configuration section {section} must be a mapping")

        self.config['channels'] = self._validate_channels(self.config['channels'])

        responder = self.config['responder']
        responder['platform_name'] = str(responder.get('platform_name') or '')
        responder['os_version'] = str(responder.get('os_version') or '')
        separator = responder.get('separator', ' ')
        if not isinstance(separator, str):
            raise ConfigurationError("responder.separator must be a string")
        responder['separator'] = separator
        responder['allow_empty_version'] = _coerce_bool(
            responder.get('allow_empty_version', False), 'responder.allow_empty_version')
        self.config['responder'] = responder

        server = self.config['server']
        for key, default in (('websocket_port', DEFAULT_WEBSOCKET_PORT), ('http_port', DEFAULT_HTTP_PORT)):
            port = _coerce_int(server.get(key, default), f'server.{key}')
            if not 0 <= port <= 65535:
                raise ConfigurationError(f"server.{key} must be between 0 and 65535")
            server[key] = port
        for key in ('websocket_enabled', 'http_enabled'):
            server[key] = _coerce_bool(server.get(key, True), f'server.{key}')
        server.setdefault('websocket_host', '127.0.0.1')
        server.setdefault('http_host', '127.0.0.1')
        self.config['server'] = server

        logging_config = self.config['logging']
        logging_config['retention_days'] = _coerce_int(
            logging_config.get('retention_days', DEFAULT_RETENTION_DAYS), 'logging.retention_days')
        logging_config['log_level'] = str(logging_config.get('log_level', 'INFO')).upper()
        if logging_config['log_level'] not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
            raise ConfigurationError(f"Invalid log level: {logging_config['log_level']}")
        for key in ('call_log_separate', 'watch_config'):
            logging_config[key] = _coerce_bool(logging_config.get(key, True), f'logging.{key}')
        logging_config.setdefault('log_dir', 'logs')
        self.config['logging'] = logging_config

        logger.info("Configuration validation passed")

    def _validate_channels(self, channels: Any) -> List[str]:
        if isinstance(channels, str):
            channels = [channels]
        if not isinstance(channels, list) or not channels:
            logger.error("No channels configured")
            raise ConfigurationError("At least one channel must be configured")

        names = []
        for channel in channels:
            name = str(channel).strip() if channel is not None else ''
            if not name:
                raise ConfigurationError("Channel names must be non-empty")
            if name in names:
                raise ConfigurationError(f"Duplicate channel name: {name}")
            names.append(name)
        return names

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation

        Args:
            key_path: Dot-separated path to configuration value (e.g., 'server.http_port')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.config

        try:
            for key in keys:
                value = value[key]
            return value
        except (KeyError, TypeError):
            logger.debug(f"Configuration key not found: {key_path}")
            return default

    def get_responder_config(self) -> Dict[str, Any]:
        return self.config.get('responder', {})

    def get_channels(self) -> List[str]:
        return list(self.config.get('channels', []))

    def get_server_config(self) -> Dict[str, Any]:
        return self.config.get('server', {})

    def get_logging_config(self) -> Dict[str, Any]:
        return self.config.get('logging', {})

    def reload(self):
        """Reload configuration from file"""
        logger.info("Reloading configuration")
        self._load_env_file()
        self._load_config()

    def to_dict(self) -> Dict[str, Any]:
        """Return full configuration as dictionary"""
        return copy.deepcopy(self.config)


def _coerce_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUE_STRINGS:
        return True
    if text in FALSE_STRINGS:
        return False
    raise ConfigurationError(f"{key} must be a boolean, got {value!r}")


def _coerce_int(value: Any, key: str) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"{key} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{key} must be an integer, got {value!r}")

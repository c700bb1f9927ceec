"""
Pytest configuration and fixtures for Platform Channel Host tests
"""

import pytest
import tempfile
import os
import yaml
from pathlib import Path
from unittest.mock import patch


@pytest.fixture
def temp_config_dir():
    """Create a temporary directory for test configuration files"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def sample_config_dict():
    """Sample configuration dictionary with environment placeholders"""
    return {
        'responder': {
            'platform_name': '${PLATFORM_NAME:-}',
            'separator': ' ',
            'allow_empty_version': '${ALLOW_EMPTY_VERSION:-false}',
            'os_version': '${OS_VERSION:-}'
        },
        'channels': ['jpeg12', 'libjpeg12'],
        'server': {
            'websocket_enabled': '${WEBSOCKET_ENABLED:-true}',
            'websocket_host': '127.0.0.1',
            'websocket_port': '${WEBSOCKET_PORT:-3030}',
            'http_enabled': '${HTTP_ENABLED:-true}',
            'http_host': '127.0.0.1',
            'http_port': '${HTTP_PORT:-8080}'
        },
        'logging': {
            'log_level': '${LOG_LEVEL:-INFO}',
            'log_dir': 'logs',
            'retention_days': '${LOG_RETENTION_DAYS:-30}',
            'call_log_separate': True,
            'watch_config': False
        }
    }


@pytest.fixture
def sample_env_vars():
    """Sample environment variables for testing"""
    return {
        'PLATFORM_NAME': 'iOS',
        'OS_VERSION': '17.4',
        'ALLOW_EMPTY_VERSION': 'false',
        'WEBSOCKET_ENABLED': 'true',
        'WEBSOCKET_PORT': '4040',
        'HTTP_ENABLED': 'false',
        'HTTP_PORT': '9090',
        'LOG_LEVEL': 'DEBUG',
        'LOG_RETENTION_DAYS': '7'
    }


@pytest.fixture
def config_file(temp_config_dir, sample_config_dict):
    """Create a temporary config.yml file"""
    config_path = temp_config_dir / "config.yml"
    with open(config_path, 'w') as f:
        yaml.dump(sample_config_dict, f)
    return config_path


@pytest.fixture
def env_file(temp_config_dir, sample_env_vars):
    """Create a temporary .env file"""
    env_path = temp_config_dir / ".env"
    with open(env_path, 'w') as f:
        for key, value in sample_env_vars.items():
            f.write(f"{key}={value}\n")
    return env_path


@pytest.fixture
def minimal_config(temp_config_dir):
    """Minimal valid configuration with fixed platform values and free ports"""
    return {
        'responder': {
            'platform_name': 'iOS',
            'separator': ' ',
            'allow_empty_version': False,
            'os_version': '17.4'
        },
        'channels': ['jpeg12', 'libjpeg12'],
        'server': {
            'websocket_enabled': True,
            'websocket_host': '127.0.0.1',
            'websocket_port': 0,
            'http_enabled': False,
            'http_host': '127.0.0.1',
            'http_port': 0
        },
        'logging': {
            'log_level': 'DEBUG',
            'log_dir': str(temp_config_dir / 'logs'),
            'retention_days': 1,
            'call_log_separate': True,
            'watch_config': False
        }
    }


@pytest.fixture
def write_config(temp_config_dir):
    """Write a configuration dict to config.yml and return its path"""
    def _write(config):
        config_path = temp_config_dir / "config.yml"
        with open(config_path, 'w') as f:
            yaml.dump(config, f)
        return config_path
    return _write


@pytest.fixture
def mock_env_vars(sample_env_vars):
    """Mock environment variables for testing"""
    with patch.dict(os.environ, sample_env_vars, clear=False):
        yield sample_env_vars


@pytest.fixture
def clear_env_vars(sample_env_vars):
    """Clear all test environment variables"""
    original_values = {}
    for var in sample_env_vars:
        if var in os.environ:
            original_values[var] = os.environ.pop(var)

    yield

    for var in sample_env_vars:
        os.environ.pop(var, None)
    os.environ.update(original_values)

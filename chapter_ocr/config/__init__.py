"""
Config Module - Server configuration

Exports:
- ServerConfig: dataclass with defaults, file and environment overrides
- get_server_config: cached accessor
"""

from .config_manager import ServerConfig, get_server_config

__all__ = [
    'ServerConfig',
    'get_server_config'
]

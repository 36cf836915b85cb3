"""
Configuration helpers for ssrkit projects.
"""

from .models import DEFAULT_CONFIG_FILENAME, ConfigError, ProjectConfig, ServerConfig, load_config
from .settings import Settings, get_settings

__all__ = [
    "DEFAULT_CONFIG_FILENAME",
    "ConfigError",
    "ProjectConfig",
    "ServerConfig",
    "Settings",
    "get_settings",
    "load_config",
]

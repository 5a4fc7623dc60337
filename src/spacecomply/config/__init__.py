"""
Configuration management for SpaceComply.

This module handles loading, validating, and saving configuration settings.
"""

from spacecomply.config.settings import (
    ConfigurationError,
    Settings,
    load_config,
    save_config,
)

__all__ = [
    "Settings",
    "load_config",
    "save_config",
    "ConfigurationError",
]

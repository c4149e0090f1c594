"""Configuration parsing modules for gobuild."""

from .build_config import (
    Action,
    BuildConfig,
    ConfigError,
    Phase,
    Platform,
    Project,
    default_config,
)
from .loader import CONFIG_FILE_NAME, BuildConfigLoader, parse_build_xml

__all__ = [
    "Action",
    "BuildConfig",
    "BuildConfigLoader",
    "CONFIG_FILE_NAME",
    "ConfigError",
    "Phase",
    "Platform",
    "Project",
    "default_config",
    "parse_build_xml",
]

"""syncfilter Infrastructure Layer.

Services used by the rules system and the command line:
- ConfigManager: Hierarchical configuration (YAML files, environment)
- Logger: Structured logging system
"""

from .config_manager import ConfigError, ConfigManager, ConfigSource
from .logger import Logger, LogLevel, configure_logging, get_logger, verbosity_to_level

__all__ = [
    # Logger exports
    "Logger",
    "LogLevel",
    "get_logger",
    "configure_logging",
    "verbosity_to_level",
    # ConfigManager exports
    "ConfigSource",
    "ConfigError",
    "ConfigManager",
]

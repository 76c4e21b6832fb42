"""
syncfilter Core: Constants and Type Definitions

This module provides system-wide constants, error codes, protocol limits and
the built-in default ignore set.
"""
from enum import IntEnum
from typing import Tuple

# Version information
SYNCFILTER_VERSION = "1.0.0"

# Wire protocol versions
PROTOCOL_VERSION = 26  # Version spoken by this implementation
MIN_INCLUDE_PROTOCOL_VERSION = 19  # Oldest peer that understands "+ " rules


# Error codes double as process exit statuses
class ErrorCode(IntEnum):
    """Standardized error codes for syncfilter operations."""

    SUCCESS = 0  # Operation completed successfully
    INVALID_INPUT = 1  # Bad option, pattern or configuration
    PROTOCOL_ERROR = 2  # Malformed or truncated peer message
    UNSUPPORTED = 4  # Feature not supported by the peer
    FILE_IO = 11  # Rule file could not be read
    INTERNAL_ERROR = 12  # Bug in syncfilter
    OUT_OF_MEMORY = 22  # Allocation failure or buffer overflow


# Resource limits and defaults
class Limits:
    """System resource limits and default values."""

    # Longest rule file line or wire entry, in bytes (exclusive bound)
    MAX_PATH_LENGTH = 4096

    # Room needed after $HOME for "/.cvsignore"
    HOME_SUFFIX_RESERVE = 12

    # Line reader chunk size
    READ_CHUNK_SIZE = 8192

    # Compiled glob cache
    PATTERN_CACHE_SIZE = 256


# Polarity prefixes used in rule files, on the command line and on the wire
INCLUDE_PREFIX = "+ "
EXCLUDE_PREFIX = "- "

# Pattern that empties a rule list instead of being added to it
CLEAR_SENTINEL = "!"

# Added before sending when listing a single level
LIST_ONLY_PATTERN = "/*/*"

# Per-user ignore file and environment variable consulted by add_cvs_excludes
CVS_IGNORE_FILENAME = ".cvsignore"
CVS_IGNORE_ENV = "CVSIGNORE"

# Built-in default ignore set, order-significant.
# ", *" is carried unchanged; see DESIGN.md.
DEFAULT_IGNORE_PATTERNS: Tuple[str, ...] = (
    "RCS/",
    "SCCS/",
    "CVS/",
    ".svn/",
    "CVS.adm",
    "RCSLOG",
    "cvslog.*",
    "tags",
    "TAGS",
    ".make.state",
    ".nse_depinfo",
    "*~",
    "#*",
    ".#*",
    ", *",
    "*.old",
    "*.bak",
    "*.BAK",
    "*.orig",
    "*.rej",
    ".del-*",
    "*.a",
    "*.o",
    "*.obj",
    "*.so",
    "*.Z",
    "*.elc",
    "*.ln",
    "core",
)


# Configuration keys
class ConfigKey:
    """Configuration key constants (dot paths below the root key)."""

    ROOT = "syncfilter"

    FILTER = "filter"
    FILTER_NULLS = "filter.nulls"
    FILTER_CVS = "filter.cvs"
    FILTER_RULES = "filter.rules"
    FILTER_FILES = "filter.files"

    PROTOCOL = "protocol"
    PROTOCOL_VERSION = "protocol.version"

    LOGGING = "logging"
    LOGGING_LEVEL = "logging.level"
    LOGGING_FILE = "logging.file"


# Default configuration values
DEFAULT_CONFIG = {
    ConfigKey.ROOT: {
        ConfigKey.FILTER: {
            "nulls": False,
            "cvs": False,
            "rules": [],
            "files": [],
        },
        ConfigKey.PROTOCOL: {
            "version": PROTOCOL_VERSION,
        },
        ConfigKey.LOGGING: {
            "level": "WARNING",
            "file": None,
        },
    }
}

"""
syncfilter Core: Input Validators.

This module provides validation functions for configuration values, raw
patterns and negotiated protocol versions.
"""
from typing import Any, Dict, Union

from syncfilter.core.constants import ErrorCode, Limits

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ValidationError(Exception):
    """Base exception for validation errors."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.INVALID_INPUT):
        """Initialize ValidationError.

        Args:
            message: Error message
            error_code: Associated error code
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code


def validate_config(config: Dict[str, Any]) -> bool:
    """Validate the ``syncfilter`` configuration section.

    Args:
        config: Configuration dictionary (contents of the root key)

    Returns:
        True if valid

    Raises:
        ValidationError: If configuration is invalid
    """
    if not isinstance(config, dict):
        raise ValidationError("Configuration must be a dictionary")

    filter_config = config.get("filter", {})
    if not isinstance(filter_config, dict):
        raise ValidationError("Filter configuration must be a dictionary")

    for flag in ("nulls", "cvs"):
        if flag in filter_config and filter_config[flag] not in (True, False):
            raise ValidationError(f"filter.{flag} must be boolean: {filter_config[flag]}")

    for key in ("rules", "files"):
        values = filter_config.get(key, [])
        if values is None:
            continue
        if not isinstance(values, list):
            raise ValidationError(f"filter.{key} must be a list")
        for i, value in enumerate(values):
            try:
                validate_pattern(value)
            except ValidationError as e:
                raise ValidationError(f"Invalid filter.{key} entry at index {i}: {e}")

    protocol_config = config.get("protocol", {})
    if not isinstance(protocol_config, dict):
        raise ValidationError("Protocol configuration must be a dictionary")
    if "version" in protocol_config:
        validate_protocol_version(protocol_config["version"])

    logging_config = config.get("logging", {})
    if not isinstance(logging_config, dict):
        raise ValidationError("Logging configuration must be a dictionary")
    if logging_config.get("level") is not None:
        validate_log_level(logging_config["level"])

    return True


def validate_pattern(pattern: str) -> bool:
    """Validate a raw rule pattern before it is compiled.

    Args:
        pattern: Pattern to validate

    Returns:
        True if valid

    Raises:
        ValidationError: If pattern is invalid
    """
    if not isinstance(pattern, str):
        raise ValidationError(f"Pattern must be string, got {type(pattern)}")

    if not pattern:
        raise ValidationError("Pattern cannot be empty")

    if len(pattern) >= Limits.MAX_PATH_LENGTH:
        raise ValidationError(f"Pattern exceeds maximum length ({Limits.MAX_PATH_LENGTH})")

    if "\0" in pattern:
        raise ValidationError("Invalid pattern: contains null bytes")

    return True


def validate_protocol_version(version: Union[int, str]) -> int:
    """Validate a negotiated protocol version.

    Args:
        version: Version number (int or numeric string)

    Returns:
        The version as an int

    Raises:
        ValidationError: If version is not a positive integer
    """
    if isinstance(version, bool):
        raise ValidationError(f"Protocol version must be numeric, got {version!r}")

    try:
        number = int(version)
    except (ValueError, TypeError):
        raise ValidationError(f"Protocol version must be numeric, got {version!r}")

    if number < 1:
        raise ValidationError(f"Protocol version must be positive, got {number}")

    return number


def validate_log_level(level: str) -> bool:
    """Validate a log level name.

    Raises:
        ValidationError: If level is unknown
    """
    if not isinstance(level, str) or level.upper() not in LOG_LEVELS:
        raise ValidationError(f"Invalid log level: {level}. Must be one of {list(LOG_LEVELS)}")
    return True

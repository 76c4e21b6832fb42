#!/usr/bin/env python3
"""Structured logging for syncfilter.

This module wraps the standard logging package with:
- Log levels matching Python's logging module
- Structured context (key-value pairs appended to messages)
- Thread-local context stack
- Console and rotating file handlers
- Mapping from ``-v`` counts to log levels

Example:
    >>> logger = Logger("syncfilter.rules", level=LogLevel.DEBUG)
    >>> logger.debug("add rule", pattern="*.o", polarity="exclude")
    >>> with logger.add_context(session="peer-1"):
    ...     logger.info("sending rule list")
"""

import logging
import logging.handlers
import threading
from contextlib import contextmanager
from enum import IntEnum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union


class LogLevel(IntEnum):
    """Log levels matching Python's logging module."""

    DEBUG = logging.DEBUG  # 10
    INFO = logging.INFO  # 20
    WARNING = logging.WARNING  # 30
    ERROR = logging.ERROR  # 40
    CRITICAL = logging.CRITICAL  # 50


DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def verbosity_to_level(verbose: int) -> LogLevel:
    """Map a ``-v`` count to a log level.

    Args:
        verbose: Number of times ``-v`` was given

    Returns:
        WARNING for 0, INFO for 1, DEBUG for 2 or more
    """
    if verbose >= 2:
        return LogLevel.DEBUG
    if verbose == 1:
        return LogLevel.INFO
    return LogLevel.WARNING


class Logger:
    """Structured logger with context support.

    Messages carry key-value context which is rendered after the message text
    and also attached to the record as ``record.context``.
    """

    # Thread-local storage for context
    _context_stack = threading.local()

    def __init__(
        self,
        name: str = "syncfilter",
        level: Union[LogLevel, str] = LogLevel.WARNING,
        handlers: Optional[List[logging.Handler]] = None,
    ):
        """Initialize logger.

        Args:
            name: Logger name for identification
            level: Minimum log level to output
            handlers: Optional list of logging handlers
        """
        self.name = name
        self.logger = logging.getLogger(name)
        self.set_level(level)

        if handlers is None:
            handlers = [self._create_console_handler()]

        self.logger.handlers.clear()
        for handler in handlers:
            self.logger.addHandler(handler)

        # Prevent propagation to root logger
        self.logger.propagate = False

    def _create_console_handler(self) -> logging.StreamHandler:
        """Create default console handler (stderr) with formatting."""
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(DEFAULT_FORMAT, datefmt=DATE_FORMAT))
        return handler

    def create_file_handler(
        self,
        filename: Union[str, Path],
        max_bytes: int = 10 * 1024 * 1024,  # 10MB
        backup_count: int = 5,
    ) -> logging.handlers.RotatingFileHandler:
        """Create rotating file handler.

        Args:
            filename: Path to log file
            max_bytes: Maximum size before rotation
            backup_count: Number of backup files to keep

        Returns:
            Configured rotating file handler
        """
        handler = logging.handlers.RotatingFileHandler(
            filename, maxBytes=max_bytes, backupCount=backup_count
        )
        handler.setFormatter(logging.Formatter(DEFAULT_FORMAT, datefmt=DATE_FORMAT))
        return handler

    def add_handler(self, handler: logging.Handler) -> None:
        """Add a new output handler."""
        self.logger.addHandler(handler)

    def set_level(self, level: Union[LogLevel, str]) -> None:
        """Set the minimum log level.

        Args:
            level: New log level (LogLevel or string)
        """
        if isinstance(level, str):
            level = LogLevel[level.upper()]
        self.logger.setLevel(level)

    def get_level(self) -> LogLevel:
        """Get current log level."""
        return LogLevel(self.logger.level)

    def _get_context(self) -> Dict[str, Any]:
        """Merge all levels of the current thread-local context."""
        if not hasattr(self._context_stack, "stack"):
            self._context_stack.stack = [{}]

        context = {}
        for ctx in self._context_stack.stack:
            context.update(ctx)
        return context

    def _format_message(self, msg: str, context: Dict[str, Any]) -> str:
        """Format message with context."""
        if context:
            ctx_str = " ".join(f"{k}={v}" for k, v in context.items())
            return f"{msg} | {ctx_str}"
        return msg

    @contextmanager
    def add_context(self, **kwargs):
        """Context manager to add temporary context.

        Example:
            >>> with logger.add_context(source="rules.txt"):
            ...     logger.debug("loading rules")
        """
        if not hasattr(self._context_stack, "stack"):
            self._context_stack.stack = [{}]

        self._context_stack.stack.append(kwargs)
        try:
            yield
        finally:
            self._context_stack.stack.pop()

    def _log(self, level: LogLevel, msg: str, context: Dict[str, Any]) -> None:
        if not self.logger.isEnabledFor(level):
            return
        combined_context = self._get_context()
        combined_context.update(context)
        self.logger.log(
            level,
            self._format_message(msg, combined_context),
            extra={"context": combined_context},
        )

    def debug(self, msg: str, **context) -> None:
        """Log debug message."""
        self._log(LogLevel.DEBUG, msg, context)

    def info(self, msg: str, **context) -> None:
        """Log info message."""
        self._log(LogLevel.INFO, msg, context)

    def warning(self, msg: str, **context) -> None:
        """Log warning message."""
        self._log(LogLevel.WARNING, msg, context)

    def error(self, msg: str, **context) -> None:
        """Log error message."""
        self._log(LogLevel.ERROR, msg, context)


# Logger instances by name
_loggers: Dict[str, Logger] = {}
_default_level: Union[LogLevel, str] = LogLevel.WARNING


def get_logger(name: str = "syncfilter") -> Logger:
    """Get or create a logger instance.

    Args:
        name: Logger name

    Returns:
        Logger instance shared by all callers using the same name
    """
    logger = _loggers.get(name)
    if logger is None:
        logger = Logger(name=name, level=_default_level)
        _loggers[name] = logger
    return logger


def configure_logging(
    level: Union[LogLevel, str] = LogLevel.WARNING, log_file: Optional[str] = None
) -> Logger:
    """Configure the package root logger.

    Child loggers (``syncfilter.rules`` etc.) do not propagate, so their
    levels and handlers are updated too.

    Args:
        level: Minimum level for all syncfilter loggers
        log_file: Optional rotating log file

    Returns:
        The root ``syncfilter`` logger
    """
    global _default_level
    _default_level = level
    root = get_logger("syncfilter")
    file_handler = root.create_file_handler(log_file) if log_file else None

    for logger in _loggers.values():
        logger.set_level(level)
        if file_handler is not None:
            logger.add_handler(file_handler)

    return root

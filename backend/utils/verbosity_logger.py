"""
Flexible logging utility for the ANT Support backend.

Provides granular logging control with pipe-separated level configuration
("INFO|ERROR", "WARNING|ERROR|CRITICAL", ...) read from the config file.
"""

import logging
import re
from typing import Set

from backend.config.config import get_log_format, get_log_levels
from backend.utils.logging_formatter import UTCTimestampFormatter

# Matches control characters that can cause log injection (CWE-117)
_CONTROL_CHAR_RE = re.compile(r"[\r\n]")

_DEFAULT_LEVELS = {logging.INFO, logging.WARNING, logging.ERROR, logging.CRITICAL}


def sanitize_log(value) -> str:
    """Sanitize a value for safe logging by removing newline characters (CWE-117)."""
    return _CONTROL_CHAR_RE.sub("", str(value))


def parse_levels(level_config: str) -> Set[int]:
    """Turn "INFO|ERROR" into {logging.INFO, logging.ERROR}; unknown names are ignored."""
    enabled_levels = set()
    for level_name in level_config.split("|"):
        level_name = level_name.strip().upper()
        level = logging.getLevelName(level_name)
        if isinstance(level, int):
            enabled_levels.add(level)
    return enabled_levels


class FlexibleLogger:
    """
    Logger that only emits the levels listed in the ``logging.level`` setting.
    """

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)
        self.name = name
        self.enabled_levels = self._parse_enabled_levels()

        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(UTCTimestampFormatter(get_log_format()))
            self.logger.addHandler(handler)
            self.logger.setLevel(logging.DEBUG)
            self.logger.propagate = False

    def _parse_enabled_levels(self) -> Set[int]:
        try:
            return parse_levels(get_log_levels()) or set(_DEFAULT_LEVELS)
        except (KeyError, AttributeError, ValueError):
            return set(_DEFAULT_LEVELS)

    def is_enabled_for(self, level: int) -> bool:
        """Check if a message at ``level`` would be emitted."""
        return level in self.enabled_levels

    def debug(self, msg: str, *args, **kwargs):
        """Log debug message if verbosity allows."""
        if self.is_enabled_for(logging.DEBUG):
            self.logger.debug(msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs):
        """Log info message if verbosity allows."""
        if self.is_enabled_for(logging.INFO):
            self.logger.info(msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        """Log warning message if verbosity allows."""
        if self.is_enabled_for(logging.WARNING):
            self.logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        """Log error message if verbosity allows."""
        if self.is_enabled_for(logging.ERROR):
            self.logger.error(msg, *args, **kwargs)

    def critical(self, msg: str, *args, **kwargs):
        """Log critical message if verbosity allows."""
        if self.is_enabled_for(logging.CRITICAL):
            self.logger.critical(msg, *args, **kwargs)


def get_logger(name: str) -> FlexibleLogger:
    """Get a flexible logger instance with granular level control."""
    return FlexibleLogger(name)

"""
Logging configuration module for the ANT Support server.

This module provides functions to configure logging with UTC timestamp formatting
and proper file/console handlers.
"""

import logging
import os
import sys

from backend.config import config
from backend.utils.logging_formatter import UTCTimestampFormatter
from backend.utils.verbosity_logger import get_logger

logger = get_logger("backend.startup.logging")


def configure_logging():
    """Configure logging with UTC timestamp formatter and file/console handlers."""
    logger.info("=== CONFIGURING LOGGING ===")

    # logging.file wins; else ANT_SUPPORT_LOG_DIR (set by the service unit) or ./logs
    log_file = config.get_log_file()
    if not log_file:
        logs_dir = os.environ.get("ANT_SUPPORT_LOG_DIR") or "logs"
        log_file = os.path.join(logs_dir, "backend.log")
    logs_dir = os.path.dirname(log_file) or "."
    logger.info("Using log directory: %s", logs_dir)
    os.makedirs(logs_dir, exist_ok=True)

    handlers = [logging.StreamHandler()]

    try:
        handlers.append(logging.FileHandler(log_file, mode="a", encoding="utf-8"))
        logger.info("File handler created for %s", log_file)
    except PermissionError as e:
        logger.error("Permission denied for log file: %s", e)
        print(
            f"WARNING: Cannot write to {log_file} due to permissions. Logging to console only.",
            file=sys.stderr,
        )
    except OSError as e:
        logger.error("Failed to create file handler: %s", e)

    logging.basicConfig(level=logging.INFO, handlers=handlers, force=True)

    utc_formatter = UTCTimestampFormatter("%(levelname)s: %(name)s: %(message)s")
    for handler in logging.root.handlers:
        handler.setFormatter(utc_formatter)

    # SQLAlchemy echoes through its own logger; keep it quiet unless asked
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logger.info("Logging configuration complete with %d handlers", len(handlers))

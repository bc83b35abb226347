"""
CORS configuration module for the ANT Support server.

This module builds the list of allowed origins from the configuration file
and the CORS_ORIGINS environment variable.
"""

from typing import List

from backend.config import config
from backend.utils.verbosity_logger import get_logger

logger = get_logger("backend.startup.cors")


def get_cors_origins() -> List[str]:
    """Configured origins, de-duplicated with their order preserved."""
    logger.info("=== CORS ORIGINS GENERATION START ===")
    origins = []
    for origin in config.get_cors_origins():
        origin = origin.strip().rstrip("/")
        if origin and origin not in origins:
            origins.append(origin)
    logger.info("Final CORS origins: %s", origins)
    logger.info("=== CORS ORIGINS GENERATION COMPLETE ===")
    return origins

"""
Application lifecycle management module for the ANT Support server.

This module provides the FastAPI lifespan context manager.  Startup is
fail-fast: missing database settings or an unreachable database terminate the
process with exit status 1 instead of serving empty data.
"""

import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI

from backend.config import config
from backend.persistence.db import missing_database_settings
from backend.utils.verbosity_logger import get_logger

logger = get_logger("backend.startup.lifecycle")


def check_database(database) -> bool:
    """
    Validate the database settings and round-trip to the server.

    Returns True when the database is usable; logs the reason otherwise.
    """
    missing = missing_database_settings(config.get_database_config())
    if missing:
        logger.error("Missing required database settings: %s", ", ".join(missing))
        return False
    result = database.test_connection()
    if not result["success"]:
        logger.error("Database connection failed: %s", result.get("error"))
        return False
    return True


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):  # NOSONAR
    """
    Application lifespan manager to handle startup and shutdown events.
    """
    logger.info("=== FASTAPI LIFESPAN STARTUP BEGIN ===")
    database = fastapi_app.state.database

    if not check_database(database):
        if config.is_fail_fast():
            logger.critical("Fail-fast mode: refusing to start without a database")
            sys.exit(1)
        logger.warning("Starting without a working database connection")
    else:
        logger.info("Database ready (%s)", database.dialect)

    logger.info("=== FASTAPI LIFESPAN STARTUP COMPLETE ===")
    try:
        yield
    finally:
        logger.info("=== FASTAPI LIFESPAN SHUTDOWN BEGIN ===")
        database.dispose()
        logger.info("=== FASTAPI LIFESPAN SHUTDOWN COMPLETE ===")

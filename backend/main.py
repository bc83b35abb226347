"""
This module provides the main setup and entry point for the ANT Support server
process.  It reads and processes the ant-support.yaml configuration file,
constructs the Database, sets up the CORS configuration in the middleware,
includes all of the various routers for the system and then launches the
application.
"""

from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.config import config
from backend.persistence.db import Database
from backend.startup.cors_config import get_cors_origins
from backend.startup.exception_handlers import register_exception_handlers
from backend.startup.lifecycle import lifespan
from backend.startup.logging_config import configure_logging
from backend.startup.route_registration import (
    API_VERSION,
    register_app_routes,
    register_routes,
)
from backend.utils.verbosity_logger import get_logger

startup_logger = get_logger("backend.startup")


def create_app(database: Optional[Database] = None, lifespan_handler=lifespan) -> FastAPI:
    """
    Build the FastAPI application around ``database`` (constructed from the
    configuration when omitted).
    """
    startup_logger.info("=== CREATING FASTAPI APPLICATION ===")
    fastapi_app = FastAPI(
        title="ANT Support API",
        version=API_VERSION,
        lifespan=lifespan_handler,
    )
    fastapi_app.state.database = database or Database.from_config()

    origins = get_cors_origins()
    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )
    startup_logger.info("CORS middleware added for %d origins", len(origins))

    # Add exception handlers to ensure CORS headers are always present
    register_exception_handlers(fastapi_app, origins)

    register_routes(fastapi_app)
    register_app_routes(fastapi_app)
    return fastapi_app


def main():
    """Configure logging and run the server under uvicorn."""
    configure_logging()
    app_config = config.get_config()

    # Configure uvicorn logging to match our format
    log_config = uvicorn.config.LOGGING_CONFIG
    log_config["formatters"]["access"] = {
        "()": "backend.utils.logging_formatter.UTCTimestampFormatter",
        "fmt": "%(levelname)s: %(name)s: %(message)s",
    }
    log_config["formatters"]["default"] = {
        "()": "backend.utils.logging_formatter.UTCTimestampFormatter",
        "fmt": "%(levelname)s: %(name)s: %(message)s",
    }

    host = app_config["api"]["host"]
    port = app_config["api"]["port"]
    startup_logger.info("=== LAUNCHING UVICORN SERVER on %s:%s ===", host, port)
    uvicorn.run(create_app(), host=host, port=port, log_config=log_config)


if __name__ == "__main__":
    main()

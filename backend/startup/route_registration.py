"""
Route registration module for the ANT Support server.

This module provides functions to register the versioned catalog API routes
and the unversioned health check routes.
"""

import platform

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse

from backend.api import (
    devices,
    maintenance,
    problems,
    remotes,
    sessions,
    steps,
    tv_interfaces,
)
from backend.api.envelope import failure, success, timestamp
from backend.persistence.db import Database, get_database
from backend.utils.verbosity_logger import get_logger

logger = get_logger("backend.startup.routes")

API_PREFIX = "/api/v1"
API_VERSION = "1.0.0"


def register_routes(app: FastAPI):
    """
    Register all API routes with the FastAPI application.

    Args:
        app: The FastAPI application instance
    """
    logger.info("=== REGISTERING ROUTES ===")

    for name, router in (
        ("devices", devices.router),
        ("problems", problems.router),
        ("steps", steps.router),
        ("sessions", sessions.router),
        ("tv-interfaces", tv_interfaces.router),
        ("remotes", remotes.router),
        ("maintenance", maintenance.router),
        ("test", problems.test_router),
    ):
        app.include_router(router, prefix=API_PREFIX)
        logger.info("%s router added with %s prefix", name, API_PREFIX)

    logger.info("=== ROUTE REGISTRATION COMPLETE ===")


def register_app_routes(app: FastAPI):
    """
    Register basic application routes (root, health checks).

    Args:
        app: The FastAPI application instance
    """
    logger.info("=== REGISTERING APPLICATION ROUTES ===")

    @app.get("/")
    async def root():
        """Service banner with the API entry point."""
        return success({"name": "ANT Support API", "version": API_VERSION, "api": API_PREFIX})

    @app.get("/health")
    @app.head("/health")
    async def health_check():
        """
        Liveness check; does not touch the database.
        """
        logger.debug("Health check endpoint called")
        return {
            "success": True,
            "status": "healthy",
            "version": API_VERSION,
            "python": platform.python_version(),
            "timestamp": timestamp(),
        }

    @app.get("/health/db")
    async def database_health_check(database: Database = Depends(get_database)):
        """
        Database round trip; 503 when the database cannot be reached.
        """
        result = database.test_connection()
        if not result["success"]:
            return JSONResponse(
                status_code=503,
                content=failure(
                    "Database connection failed",
                    "DATABASE_ERROR",
                    status="unhealthy",
                    details=result.get("error"),
                ),
            )
        return success(
            {
                "status": "healthy",
                "dialect": database.dialect,
                "serverTime": result["serverTime"],
                "version": result["version"],
            }
        )

    logger.info("Health check routes (/health, /health/db) registered")
    logger.info("=== APPLICATION ROUTES REGISTRATION COMPLETE ===")

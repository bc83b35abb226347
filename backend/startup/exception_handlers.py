"""
Exception handlers module for the ANT Support server.

This module renders service errors, request validation failures, unknown
routes and unexpected exceptions as ``{success: false, error, errorType}``
envelopes and makes sure CORS headers are set on those error responses.
"""

from typing import Any, Dict, List

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from backend.api.envelope import failure
from backend.services.errors import CatalogError
from backend.utils.verbosity_logger import get_logger, sanitize_log

logger = get_logger("backend.startup.exceptions")

HTTP_ERROR_TYPES = {
    400: "VALIDATION_ERROR",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
}


def _with_cors(request: Request, response: JSONResponse, origins: list) -> JSONResponse:
    # Add CORS headers manually for error responses
    request_origin = request.headers.get("origin")
    if request_origin and request_origin in origins:
        response.headers["Access-Control-Allow-Origin"] = request_origin
        response.headers["Access-Control-Allow-Credentials"] = "true"
    return response


def validation_details(errors) -> List[Dict[str, Any]]:
    """Flatten pydantic errors to [{field, message, value}]."""
    details = []
    for error in errors:
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        details.append(
            {
                "field": ".".join(location),
                "message": error.get("msg", ""),
                "value": error.get("input"),
            }
        )
    return details


def register_exception_handlers(app: FastAPI, origins: list):
    """
    Register exception handlers for the FastAPI application.

    Args:
        app: The FastAPI application instance
        origins: List of allowed CORS origins
    """
    logger.info("=== REGISTERING EXCEPTION HANDLERS ===")

    @app.exception_handler(CatalogError)
    async def catalog_error_handler(request: Request, exc: CatalogError):
        """Render service errors with their own status and errorType."""
        log = logger.warning if exc.status_code < 500 else logger.error
        log(
            "%s on %s %s: %s",
            exc.error_type,
            request.method,
            sanitize_log(request.url.path),
            sanitize_log(exc.message),
        )
        response = JSONResponse(
            status_code=exc.status_code,
            content=failure(exc.message, exc.error_type, **exc.extra),
        )
        return _with_cors(request, response, origins)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        """Rejected request bodies and parameters become 400 VALIDATION_ERROR."""
        details = validation_details(exc.errors())
        logger.warning(
            "Validation failed on %s: %s", sanitize_log(request.url.path), sanitize_log(details)
        )
        response = JSONResponse(
            status_code=400,
            content=failure("Validation failed", "VALIDATION_ERROR", details=details),
        )
        return _with_cors(request, response, origins)

    @app.exception_handler(PydanticValidationError)
    async def model_validation_handler(request: Request, exc: PydanticValidationError):
        """Nested payloads validated inside a route (bulk update entries)."""
        details = validation_details(exc.errors())
        response = JSONResponse(
            status_code=400,
            content=failure("Validation failed", "VALIDATION_ERROR", details=details),
        )
        return _with_cors(request, response, origins)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Unknown routes and other HTTP errors raised by the framework."""
        logger.warning(
            "HTTP Exception occurred - Status: %s, Detail: %s, Path: %s",
            exc.status_code,
            sanitize_log(exc.detail),
            sanitize_log(request.url.path),
        )
        if exc.status_code == 404:
            message = f"Route {request.url.path} not found"
        else:
            message = str(exc.detail)
        response = JSONResponse(
            status_code=exc.status_code,
            content=failure(message, HTTP_ERROR_TYPES.get(exc.status_code, "HTTP_ERROR")),
            headers=getattr(exc, "headers", None),
        )
        return _with_cors(request, response, origins)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle any unhandled exceptions."""
        logger.error(
            "Unhandled Exception occurred - Path: %s, Exception: %s",
            sanitize_log(request.url.path),
            exc,
            exc_info=True,
        )
        response = JSONResponse(
            status_code=500,
            content=failure("Internal server error", "INTERNAL_ERROR"),
        )
        return _with_cors(request, response, origins)

    logger.info("=== EXCEPTION HANDLERS REGISTRATION COMPLETE ===")

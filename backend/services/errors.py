"""
Exception taxonomy for the catalog services.

Each error knows the HTTP status and the ``errorType`` tag it is rendered
with; the exception handlers in backend.startup.exception_handlers turn
them into ``{success: false, error, errorType, timestamp}`` envelopes.
"""

from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError


class CatalogError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = 500
    error_type = "INTERNAL_ERROR"

    def __init__(self, message: str, **extra: Any):
        super().__init__(message)
        self.message = message
        self.extra: Dict[str, Any] = {k: v for k, v in extra.items() if v is not None}


class ValidationError(CatalogError):
    """Rejected input, raised before the database is touched."""

    status_code = 400
    error_type = "VALIDATION_ERROR"


class NotFoundError(CatalogError):
    status_code = 404
    error_type = "NOT_FOUND"


class DuplicateError(CatalogError):
    """An active row with the same name already exists."""

    status_code = 409
    error_type = "DUPLICATE_ERROR"


class ConstraintError(CatalogError):
    """The operation would break a dependency (e.g. deleting a device with problems)."""

    status_code = 409
    error_type = "CONSTRAINT_ERROR"


class NotImplementedFeatureError(CatalogError):
    status_code = 501
    error_type = "NOT_IMPLEMENTED"


# SQLSTATE codes (PostgreSQL) for integrity violations
UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"


def is_unique_violation(exc: IntegrityError) -> bool:
    """True when the IntegrityError came from a unique index (PostgreSQL or SQLite)."""
    orig = getattr(exc, "orig", None)
    pgcode = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if pgcode:
        return pgcode == UNIQUE_VIOLATION
    return "UNIQUE constraint failed" in str(orig)


def translate_integrity_error(
    exc: IntegrityError, duplicate_message: str, constraint_message: Optional[str] = None
) -> CatalogError:
    """
    Map a database IntegrityError onto DuplicateError or ConstraintError.
    """
    if is_unique_violation(exc):
        return DuplicateError(
            duplicate_message,
            suggestion="Try using a different name or check for existing records",
        )
    return ConstraintError(
        constraint_message or "The operation violates a database constraint",
        details=str(getattr(exc, "orig", exc)),
    )

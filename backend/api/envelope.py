"""
JSON envelope helpers.  Every response body is
``{success, data, message, timestamp}`` (plus ``pagination`` for lists);
errors are ``{success: false, error, errorType, timestamp}``.
"""

import math
from datetime import datetime, timezone
from typing import Any, Dict, Optional


def timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a Z suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


def success(data: Any = None, message: Optional[str] = None, **extra: Any) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": True, "data": data}
    if message is not None:
        body["message"] = message
    body.update(extra)
    body["timestamp"] = timestamp()
    return body


def failure(error: str, error_type: str, **extra: Any) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": False, "error": error, "errorType": error_type}
    body.update(extra)
    body["timestamp"] = timestamp()
    return body


def pagination(page: int, limit: int, total: int) -> Dict[str, Any]:
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": total_pages,
        "hasNext": page < total_pages,
        "hasPrev": page > 1,
    }


def paginated(items, page: int, limit: int, total: int, **extra: Any) -> Dict[str, Any]:
    return success(items, pagination=pagination(page, limit, total), **extra)

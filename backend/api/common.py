"""
Request models and helpers shared by the catalog routers.
"""

from typing import Any, Dict, Iterable, List, Optional

from fastapi import Query
from pydantic import BaseModel, Field

from backend.api.envelope import paginated, success, timestamp
from backend.services.errors import ValidationError

SUPPORTED_EXPORT_FORMATS = ["json"]


class BulkUpdateItem(BaseModel):
    """One entry of a bulk update: the row id and the fields to change"""

    id: int
    data: Dict[str, Any]


class BulkUpdateRequest(BaseModel):
    """Schema for bulk updates"""

    updates: List[BulkUpdateItem] = Field(..., min_length=1)


class ListParams:
    """Pagination and sorting query parameters"""

    def __init__(
        self,
        page: int = Query(1, ge=1),
        limit: int = Query(20, ge=1),
        sort: Optional[str] = Query(None),
        order: Optional[str] = Query(None),
    ):
        self.page = page
        self.limit = limit
        self.sort = sort
        self.order = order


def serialize(rows: Iterable[Any]) -> List[Dict[str, Any]]:
    return [row.to_dict() for row in rows]


def list_response(service, filters: Dict[str, Any], params: ListParams, rows_hook=None):
    """Run find_all and wrap the page in the paginated envelope."""
    rows, total, limit = service.find_all(
        filters, page=params.page, limit=params.limit, sort=params.sort, order=params.order
    )
    items = rows_hook(rows) if rows_hook else serialize(rows)
    return paginated(items, params.page, limit, total)


def check_export_format(export_format: str):
    if export_format not in SUPPORTED_EXPORT_FORMATS:
        raise ValidationError(
            "Unsupported export format", supportedFormats=SUPPORTED_EXPORT_FORMATS
        )


def export_response(items: List[Dict[str, Any]], export_format: str = "json"):
    check_export_format(export_format)
    return success(
        items,
        meta={
            "exportedAt": timestamp(),
            "totalRecords": len(items),
            "format": export_format,
        },
    )


def delete_response(result, force: bool, label: str):
    data = result if isinstance(result, dict) else result.to_dict()
    message = f"{label} permanently deleted" if force else f"{label} archived"
    return success(data, message)


def bulk_response(rows, label_plural: str):
    return success(serialize(rows), f"Updated {label_plural}: {len(rows)}")

"""
Async client for the ANT Support API used by the admin panel.
"""

from admin_client.client import (
    ApiClient,
    ApiError,
    ApiTimeoutError,
    create_paginated_request,
    handle_api_error,
)
from admin_client.queries import CatalogQueries, QueryCache

__all__ = [
    "ApiClient",
    "ApiError",
    "ApiTimeoutError",
    "CatalogQueries",
    "QueryCache",
    "create_paginated_request",
    "handle_api_error",
]

"""
Per-resource wrappers over ApiClient, one method per API endpoint.
Every method returns the decoded JSON envelope.
"""

from typing import Any, Dict, List, Mapping, Optional

from admin_client.client import ApiClient, DEFAULT_PAGE_SIZE, create_paginated_request

API_PREFIX = "/api/v1"


class ResourceApi:
    """List/get/create/update/delete/restore shared by every catalog resource."""

    path = ""

    def __init__(self, client: ApiClient):
        self.client = client

    def url(self, suffix: str = "") -> str:
        return f"{API_PREFIX}{self.path}{suffix}"

    async def list(
        self,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        filters: Optional[Mapping[str, Any]] = None,
    ):
        return await self.client.get(
            self.url(), params=create_paginated_request(page, limit, filters)
        )

    async def get(self, pk: int, **params):
        return await self.client.get(self.url(f"/{pk}"), params=params)

    async def create(self, data: Dict[str, Any]):
        return await self.client.post(self.url(), data)

    async def update(self, pk: int, data: Dict[str, Any]):
        return await self.client.put(self.url(f"/{pk}"), data)

    async def delete(self, pk: int, force: bool = False):
        return await self.client.delete(self.url(f"/{pk}"), params={"force": force})

    async def restore(self, pk: int):
        return await self.client.post(self.url(f"/{pk}/restore"))

    async def stats(self, **params):
        return await self.client.get(self.url("/stats"), params=params)

    async def export(self, export_format: str = "json", **params):
        return await self.client.get(
            self.url("/export"), params={"format": export_format, **params}
        )


class CatalogResourceApi(ResourceApi):
    """Devices and problems: search, popular, reorder and bulk update too."""

    reorder_key = ""

    async def search(self, query: str, limit: int = 20, offset: int = 0):
        return await self.client.get(
            self.url("/search"), params={"q": query, "limit": limit, "offset": offset}
        )

    async def popular(self, limit: int = 10):
        return await self.client.get(self.url("/popular"), params={"limit": limit})

    async def can_delete(self, pk: int):
        return await self.client.get(self.url(f"/{pk}/can-delete"))

    async def reorder(self, ids: List[int], **extra):
        return await self.client.put(self.url("/reorder"), {self.reorder_key: ids, **extra})

    async def bulk_update(self, updates: List[Dict[str, Any]]):
        return await self.client.put(self.url("/bulk"), {"updates": updates})


class DevicesApi(CatalogResourceApi):
    path = "/devices"
    reorder_key = "deviceIds"


class ProblemsApi(CatalogResourceApi):
    path = "/problems"
    reorder_key = "problemIds"

    async def reorder_for_device(self, device_id: int, ids: List[int]):
        return await self.reorder(ids, device_id=device_id)

    async def create_test_problem(self, data: Dict[str, Any]):
        return await self.client.post(f"{API_PREFIX}/test/problems", data)


class StepsApi(ResourceApi):
    path = "/steps"

    async def search(self, query: str, limit: int = 20, offset: int = 0):
        return await self.client.get(
            self.url("/search"), params={"q": query, "limit": limit, "offset": offset}
        )

    async def by_problem(self, problem_id: int, is_active: Optional[bool] = True):
        return await self.client.get(
            self.url(f"/problem/{problem_id}"), params={"is_active": is_active}
        )

    async def validate(self, problem_id: int):
        return await self.client.get(self.url(f"/problem/{problem_id}/validate"))

    async def fix_numbering(self, problem_id: int):
        return await self.client.post(self.url(f"/problem/{problem_id}/fix-numbering"))

    async def reorder(self, problem_id: int, step_ids: List[int]):
        return await self.client.put(
            self.url("/reorder"), {"problem_id": problem_id, "stepIds": step_ids}
        )

    async def insert(self, problem_id: int, after_step_number: int, step_data: Dict[str, Any]):
        return await self.client.post(
            self.url("/insert"),
            {
                "problem_id": problem_id,
                "after_step_number": after_step_number,
                "step_data": step_data,
            },
        )

    async def duplicate(self, step_id: int, target_problem_id: Optional[int] = None):
        return await self.client.post(
            self.url(f"/{step_id}/duplicate"), {"target_problem_id": target_problem_id}
        )

    async def next(self, step_id: int):
        return await self.client.get(self.url(f"/{step_id}/next"))

    async def previous(self, step_id: int):
        return await self.client.get(self.url(f"/{step_id}/previous"))

    async def delete(self, pk: int, force: bool = False, reorder: bool = False):
        return await self.client.delete(
            self.url(f"/{pk}"), params={"force": force, "reorder": reorder}
        )

    async def bulk_update(self, updates: List[Dict[str, Any]]):
        return await self.client.put(self.url("/bulk"), {"updates": updates})


class SessionsApi(ResourceApi):
    path = "/sessions"

    async def active(self, limit: int = 50, offset: int = 0):
        return await self.client.get(
            self.url("/active"), params={"limit": limit, "offset": offset}
        )

    async def complete(self, pk: int, data: Dict[str, Any]):
        return await self.client.post(self.url(f"/{pk}/complete"), data)

    async def popular_problems(self, limit: int = 10, timeframe: int = 30):
        return await self.client.get(
            self.url("/popular-problems"), params={"limit": limit, "timeframe": timeframe}
        )

    async def analytics(self, period: str = "day", limit: int = 30):
        return await self.client.get(
            self.url("/analytics"), params={"period": period, "limit": limit}
        )

    async def cleanup(self, days_to_keep: Optional[int] = None):
        return await self.client.delete(
            self.url("/cleanup"), params={"days_to_keep": days_to_keep}
        )


class TVInterfacesApi(ResourceApi):
    path = "/tv-interfaces"

    async def by_device(self, device_id: int):
        return await self.client.get(self.url(f"/device/{device_id}"))

    async def toggle(self, pk: int):
        return await self.client.patch(self.url(f"/{pk}/toggle"))

    async def duplicate(self, pk: int, name: Optional[str] = None):
        return await self.client.post(self.url(f"/{pk}/duplicate"), {"name": name})

    async def export_one(self, pk: int):
        return await self.client.get(self.url(f"/{pk}/export"))

    async def marks(self, pk: int):
        return await self.client.get(self.url(f"/{pk}/marks"))

    async def get_mark(self, pk: int, mark_id: int):
        return await self.client.get(self.url(f"/{pk}/marks/{mark_id}"))

    async def create_mark(self, pk: int, data: Dict[str, Any]):
        return await self.client.post(self.url(f"/{pk}/marks"), data)

    async def update_mark(self, pk: int, mark_id: int, data: Dict[str, Any]):
        return await self.client.put(self.url(f"/{pk}/marks/{mark_id}"), data)

    async def delete_mark(self, pk: int, mark_id: int, force: bool = False):
        return await self.client.delete(
            self.url(f"/{pk}/marks/{mark_id}"), params={"force": force}
        )

    async def reorder_marks(self, pk: int, mark_ids: List[int]):
        return await self.client.put(self.url(f"/{pk}/marks/reorder"), {"markIds": mark_ids})


class MaintenanceApi:
    """Seed, test data, cleanup and database inspection endpoints."""

    def __init__(self, client: ApiClient):
        self.client = client

    async def seed(self):
        return await self.client.post(f"{API_PREFIX}/seed")

    async def test_data(self):
        return await self.client.post(f"{API_PREFIX}/test-data")

    async def reset_tv_interfaces(self):
        return await self.client.post(f"{API_PREFIX}/cleanup/tv-interfaces")

    async def clear_all(self):
        return await self.client.post(f"{API_PREFIX}/cleanup/clear-all")

    async def db_info(self):
        return await self.client.get(f"{API_PREFIX}/db-info")

    async def health(self):
        return await self.client.get("/health")

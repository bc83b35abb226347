"""
Query cache for the admin panel.

Reads go through ``QueryCache.fetch`` keyed by tuples built from the key
factories below; a cached value is served until its stale time passes or a
mutation invalidates a key prefix covering it.  ``CatalogQueries`` pairs
every read and write of the resource APIs with the keys it caches under and
the prefixes it invalidates.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Hashable, Mapping, Optional, Tuple

from admin_client.client import ApiClient
from admin_client.resources import (
    DevicesApi,
    MaintenanceApi,
    ProblemsApi,
    SessionsApi,
    StepsApi,
    TVInterfacesApi,
)
from backend.utils.verbosity_logger import get_logger

logger = get_logger("admin_client.queries")

QueryKey = Tuple[Hashable, ...]

# Stale times in seconds
LIST_STALE_TIME = 5 * 60
DETAIL_STALE_TIME = 2 * 60
SEARCH_STALE_TIME = 30
ACTIVE_STALE_TIME = 30
ANALYTICS_STALE_TIME = 10 * 60


def _frozen_value(value: Any) -> Hashable:
    if isinstance(value, (set, frozenset)):
        return tuple(sorted(value, key=repr))
    if isinstance(value, (list, tuple)):
        return tuple(value)
    return value


def freeze(filters: Optional[Mapping[str, Any]]) -> Tuple[Tuple[str, Any], ...]:
    """
    Hashable, key-order independent form of a filter mapping; None values
    are dropped and sequence values become tuples.
    """
    return tuple(
        sorted((k, _frozen_value(v)) for k, v in (filters or {}).items() if v is not None)
    )


class EntityKeys:
    """
    Key factory for one entity, e.g. ``("devices", "list", filters)``.
    Shorter keys are prefixes of longer ones, so invalidating ``lists()``
    covers every ``list(...)``.
    """

    def __init__(self, name: str):
        self.name = name

    def all(self) -> QueryKey:
        return (self.name,)

    def lists(self) -> QueryKey:
        return (self.name, "list")

    def list(self, filters: Optional[Mapping[str, Any]] = None) -> QueryKey:
        return self.lists() + (freeze(filters),)

    def details(self) -> QueryKey:
        return (self.name, "detail")

    def detail(self, pk: Any, *options: Hashable) -> QueryKey:
        return self.details() + (pk,) + options

    def stats(self) -> QueryKey:
        return (self.name, "stats")

    def search(self, query: str) -> QueryKey:
        return (self.name, "search", query)

    def child(self, *parts: Hashable) -> QueryKey:
        return (self.name,) + parts


device_keys = EntityKeys("devices")
problem_keys = EntityKeys("problems")
step_keys = EntityKeys("steps")
session_keys = EntityKeys("sessions")
tv_interface_keys = EntityKeys("tv-interfaces")


@dataclass
class CacheEntry:
    data: Any
    fetched_at: float
    stale_time: float
    invalidated: bool = False
    hits: int = field(default=0)

    def is_stale(self, now: float) -> bool:
        return self.invalidated or now - self.fetched_at >= self.stale_time


class QueryCache:
    """In-memory cache of query results keyed by tuples."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[QueryKey, CacheEntry] = {}

    def __len__(self):
        return len(self._entries)

    def __contains__(self, key: QueryKey):
        return key in self._entries

    def get(self, key: QueryKey) -> Any:
        entry = self._entries.get(key)
        return entry.data if entry else None

    def set(self, key: QueryKey, data: Any, stale_time: float = LIST_STALE_TIME):
        self._entries[key] = CacheEntry(data, self._clock(), stale_time)

    def is_stale(self, key: QueryKey) -> bool:
        entry = self._entries.get(key)
        return entry is None or entry.is_stale(self._clock())

    async def fetch(
        self,
        key: QueryKey,
        fetcher: Callable[[], Awaitable[Any]],
        stale_time: float = LIST_STALE_TIME,
    ) -> Any:
        """Return the cached value while fresh; otherwise await ``fetcher`` and cache it."""
        entry = self._entries.get(key)
        if entry is not None and not entry.is_stale(self._clock()):
            entry.hits += 1
            return entry.data
        data = await fetcher()
        self.set(key, data, stale_time)
        return data

    def _matching(self, prefix: QueryKey):
        return [key for key in self._entries if key[: len(prefix)] == prefix]

    def invalidate(self, prefix: QueryKey) -> int:
        """Mark every key starting with ``prefix`` stale; returns how many were marked."""
        keys = self._matching(prefix)
        for key in keys:
            self._entries[key].invalidated = True
        if keys:
            logger.debug("Invalidated %d queries under %s", len(keys), prefix)
        return len(keys)

    def remove(self, prefix: QueryKey) -> int:
        keys = self._matching(prefix)
        for key in keys:
            del self._entries[key]
        return len(keys)

    def clear(self):
        self._entries.clear()


class CatalogQueries:
    """Cached reads and invalidating writes over the catalog API."""

    def __init__(self, client: ApiClient, cache: Optional[QueryCache] = None):
        self.cache = cache if cache is not None else QueryCache()
        self.devices = DevicesApi(client)
        self.problems = ProblemsApi(client)
        self.steps = StepsApi(client)
        self.sessions = SessionsApi(client)
        self.tv_interfaces = TVInterfacesApi(client)
        self.maintenance = MaintenanceApi(client)

    # ---- devices ---------------------------------------------------------

    async def device_list(self, page: int = 1, limit: int = 20, **filters):
        key = device_keys.list({"page": page, "limit": limit, **filters})
        return await self.cache.fetch(key, lambda: self.devices.list(page, limit, filters))

    async def device(self, pk: int, include_stats: bool = False):
        return await self.cache.fetch(
            device_keys.detail(pk, include_stats),
            lambda: self.devices.get(pk, include_stats=include_stats),
            DETAIL_STALE_TIME,
        )

    async def create_device(self, data: Dict[str, Any]):
        result = await self.devices.create(data)
        self.cache.invalidate(device_keys.lists())
        self.cache.invalidate(device_keys.stats())
        return result

    async def update_device(self, pk: int, data: Dict[str, Any]):
        result = await self.devices.update(pk, data)
        self.cache.invalidate(device_keys.lists())
        self.cache.invalidate(device_keys.detail(pk))
        return result

    async def delete_device(self, pk: int, force: bool = False):
        result = await self.devices.delete(pk, force)
        self.cache.invalidate(device_keys.lists())
        self.cache.remove(device_keys.detail(pk))
        self.cache.invalidate(device_keys.stats())
        # problems of the device are archived or removed with it
        self.cache.invalidate(problem_keys.all())
        return result

    async def restore_device(self, pk: int):
        result = await self.devices.restore(pk)
        self.cache.invalidate(device_keys.lists())
        self.cache.invalidate(device_keys.detail(pk))
        return result

    async def reorder_devices(self, ids):
        result = await self.devices.reorder(ids)
        self.cache.invalidate(device_keys.lists())
        return result

    # ---- problems --------------------------------------------------------

    async def problem_list(self, page: int = 1, limit: int = 20, **filters):
        key = problem_keys.list({"page": page, "limit": limit, **filters})
        return await self.cache.fetch(key, lambda: self.problems.list(page, limit, filters))

    async def problem(self, pk: int, include_stats: bool = False):
        return await self.cache.fetch(
            problem_keys.detail(pk, include_stats),
            lambda: self.problems.get(pk, include_stats=include_stats),
            DETAIL_STALE_TIME,
        )

    async def create_problem(self, data: Dict[str, Any]):
        result = await self.problems.create(data)
        self.cache.invalidate(problem_keys.lists())
        self.cache.invalidate(problem_keys.stats())
        self.cache.invalidate(device_keys.lists())
        return result

    async def update_problem(self, pk: int, data: Dict[str, Any]):
        result = await self.problems.update(pk, data)
        self.cache.invalidate(problem_keys.lists())
        self.cache.invalidate(problem_keys.detail(pk))
        return result

    async def delete_problem(self, pk: int, force: bool = False):
        result = await self.problems.delete(pk, force)
        self.cache.invalidate(problem_keys.lists())
        self.cache.remove(problem_keys.detail(pk))
        self.cache.invalidate(step_keys.all())
        return result

    async def restore_problem(self, pk: int):
        result = await self.problems.restore(pk)
        self.cache.invalidate(problem_keys.lists())
        self.cache.invalidate(problem_keys.detail(pk))
        return result

    # ---- steps -----------------------------------------------------------

    def _invalidate_problem_steps(self, problem_id: Optional[int]):
        self.cache.invalidate(step_keys.lists())
        if problem_id is not None:
            self.cache.invalidate(step_keys.child("byProblem", problem_id))
            self.cache.invalidate(step_keys.child("validate", problem_id))

    async def steps_by_problem(self, problem_id: int, is_active: bool = True):
        return await self.cache.fetch(
            step_keys.child("byProblem", problem_id, is_active),
            lambda: self.steps.by_problem(problem_id, is_active),
        )

    async def validate_steps(self, problem_id: int):
        return await self.cache.fetch(
            step_keys.child("validate", problem_id),
            lambda: self.steps.validate(problem_id),
            DETAIL_STALE_TIME,
        )

    async def step(self, pk: int, include_stats: bool = False):
        return await self.cache.fetch(
            step_keys.detail(pk, include_stats),
            lambda: self.steps.get(pk, include_stats=include_stats),
            DETAIL_STALE_TIME,
        )

    async def search_steps(self, query: str, limit: int = 20, offset: int = 0):
        return await self.cache.fetch(
            step_keys.search(f"{query}-{limit}-{offset}"),
            lambda: self.steps.search(query, limit, offset),
            SEARCH_STALE_TIME,
        )

    async def create_step(self, data: Dict[str, Any]):
        result = await self.steps.create(data)
        self._invalidate_problem_steps(data.get("problem_id"))
        return result

    async def update_step(self, pk: int, data: Dict[str, Any]):
        result = await self.steps.update(pk, data)
        self.cache.invalidate(step_keys.detail(pk))
        self._invalidate_problem_steps(data.get("problem_id"))
        return result

    async def delete_step(self, pk: int, force: bool = False, reorder: bool = False):
        result = await self.steps.delete(pk, force, reorder)
        self.cache.remove(step_keys.detail(pk))
        # the owning problem is unknown here
        self.cache.invalidate(step_keys.all())
        return result

    async def reorder_steps(self, problem_id: int, step_ids):
        result = await self.steps.reorder(problem_id, step_ids)
        self._invalidate_problem_steps(problem_id)
        return result

    async def insert_step(self, problem_id: int, after_step_number: int, step_data):
        result = await self.steps.insert(problem_id, after_step_number, step_data)
        self._invalidate_problem_steps(problem_id)
        return result

    async def duplicate_step(self, pk: int, target_problem_id: Optional[int] = None):
        result = await self.steps.duplicate(pk, target_problem_id)
        self._invalidate_problem_steps(target_problem_id)
        return result

    async def fix_step_numbering(self, problem_id: int):
        result = await self.steps.fix_numbering(problem_id)
        self._invalidate_problem_steps(problem_id)
        return result

    # ---- sessions --------------------------------------------------------

    def _invalidate_sessions(self, pk: Optional[int] = None):
        self.cache.invalidate(session_keys.lists())
        self.cache.invalidate(session_keys.child("active"))
        self.cache.invalidate(session_keys.stats())
        if pk is not None:
            self.cache.invalidate(session_keys.detail(pk))

    async def session_list(self, page: int = 1, limit: int = 20, **filters):
        key = session_keys.list({"page": page, "limit": limit, **filters})
        return await self.cache.fetch(key, lambda: self.sessions.list(page, limit, filters))

    async def active_sessions(self, limit: int = 50, offset: int = 0):
        return await self.cache.fetch(
            session_keys.child("active", limit, offset),
            lambda: self.sessions.active(limit, offset),
            ACTIVE_STALE_TIME,
        )

    async def session_stats(self, **filters):
        return await self.cache.fetch(
            session_keys.stats() + (freeze(filters),),
            lambda: self.sessions.stats(**filters),
        )

    async def time_analytics(self, period: str = "day", limit: int = 30):
        return await self.cache.fetch(
            session_keys.child("analytics", period, limit),
            lambda: self.sessions.analytics(period, limit),
            ANALYTICS_STALE_TIME,
        )

    async def create_session(self, data: Dict[str, Any]):
        result = await self.sessions.create(data)
        self._invalidate_sessions()
        return result

    async def complete_session(self, pk: int, data: Dict[str, Any]):
        result = await self.sessions.complete(pk, data)
        self._invalidate_sessions(pk)
        # completion changes the problem's counters
        self.cache.invalidate(problem_keys.all())
        return result

    async def delete_session(self, pk: int, force: bool = False):
        result = await self.sessions.delete(pk, force)
        self._invalidate_sessions()
        self.cache.remove(session_keys.detail(pk))
        return result

    async def cleanup_sessions(self, days_to_keep: Optional[int] = None):
        result = await self.sessions.cleanup(days_to_keep)
        self.cache.invalidate(session_keys.all())
        return result

    # ---- tv interfaces ---------------------------------------------------

    async def tv_interfaces_for_device(self, device_id: int):
        return await self.cache.fetch(
            tv_interface_keys.child("device", device_id),
            lambda: self.tv_interfaces.by_device(device_id),
        )

    async def create_tv_interface(self, data: Dict[str, Any]):
        result = await self.tv_interfaces.create(data)
        self.cache.invalidate(tv_interface_keys.all())
        return result

    async def update_tv_interface(self, pk: int, data: Dict[str, Any]):
        result = await self.tv_interfaces.update(pk, data)
        self.cache.invalidate(tv_interface_keys.all())
        return result

    async def toggle_tv_interface(self, pk: int):
        result = await self.tv_interfaces.toggle(pk)
        self.cache.invalidate(tv_interface_keys.all())
        return result

    async def delete_tv_interface(self, pk: int, force: bool = False):
        result = await self.tv_interfaces.delete(pk, force)
        self.cache.remove(tv_interface_keys.detail(pk))
        self.cache.invalidate(tv_interface_keys.all())
        return result

    # ---- maintenance -----------------------------------------------------

    async def reset_tv_interfaces(self):
        result = await self.maintenance.reset_tv_interfaces()
        self.cache.invalidate(tv_interface_keys.all())
        return result

    async def clear_all(self):
        result = await self.maintenance.clear_all()
        self.cache.clear()
        return result

    async def seed(self):
        result = await self.maintenance.seed()
        self.cache.clear()
        return result

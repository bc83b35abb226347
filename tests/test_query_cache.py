"""
Tests for the admin panel query cache and the invalidation done by CatalogQueries
"""

import httpx
import pytest

from admin_client import ApiClient, CatalogQueries, QueryCache
from admin_client.queries import device_keys, freeze, problem_keys, step_keys


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return QueryCache(clock=clock)


def counting_fetcher(value):
    calls = []

    async def fetch():
        calls.append(value)
        return value

    return fetch, calls


class TestKeys:
    def test_freeze_is_order_independent(self):
        assert freeze({"b": 2, "a": 1, "c": None}) == (("a", 1), ("b", 2))

    def test_freeze_turns_sequences_into_tuples(self):
        frozen = freeze({"status": ["active", "maintenance"], "ids": {3, 1}})

        assert frozen == (("ids", (1, 3)), ("status", ("active", "maintenance")))
        assert hash(device_keys.list({"status": ["active"]})) is not None

    def test_list_keys_share_the_lists_prefix(self):
        key = device_keys.list({"page": 1})

        assert key[: len(device_keys.lists())] == device_keys.lists()
        assert device_keys.detail(4, True) == ("devices", "detail", 4, True)


class TestQueryCache:
    @pytest.mark.asyncio
    async def test_fresh_entries_are_served_from_cache(self, cache):
        fetch, calls = counting_fetcher("data")

        assert await cache.fetch(("k",), fetch, stale_time=60) == "data"
        assert await cache.fetch(("k",), fetch, stale_time=60) == "data"

        assert calls == ["data"]

    @pytest.mark.asyncio
    async def test_stale_entries_are_refetched(self, cache, clock):
        fetch, calls = counting_fetcher("data")
        await cache.fetch(("k",), fetch, stale_time=60)

        clock.now += 60

        assert cache.is_stale(("k",))
        await cache.fetch(("k",), fetch, stale_time=60)
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_invalidate_by_prefix(self, cache):
        cache.set(("devices", "list", ()), [1])
        cache.set(("devices", "detail", 1), {"id": 1})
        cache.set(("problems", "list", ()), [])

        marked = cache.invalidate(("devices", "list"))

        assert marked == 1
        assert cache.is_stale(("devices", "list", ()))
        assert not cache.is_stale(("devices", "detail", 1))
        assert not cache.is_stale(("problems", "list", ()))
        # invalidated data stays readable until refetched
        assert cache.get(("devices", "list", ())) == [1]

    def test_remove_and_clear(self, cache):
        cache.set(("devices", "detail", 1), {})
        cache.set(("devices", "detail", 2), {})

        assert cache.remove(("devices", "detail", 1)) == 1
        assert ("devices", "detail", 1) not in cache
        assert len(cache) == 1
        cache.clear()
        assert len(cache) == 0

    def test_missing_key_is_stale(self, cache):
        assert cache.is_stale(("nothing",))
        assert cache.get(("nothing",)) is None


def api_handler(request: httpx.Request):
    if request.method == "GET":
        return httpx.Response(200, json={"success": True, "data": [], "path": request.url.path})
    return httpx.Response(200, json={"success": True, "data": {"id": 1}})


@pytest.fixture
def queries(cache):
    client = ApiClient("http://api.test", transport=httpx.MockTransport(api_handler))
    return CatalogQueries(client, cache)


class TestCatalogQueries:
    @pytest.mark.asyncio
    async def test_device_list_is_cached_per_filters(self, queries, cache):
        await queries.device_list(page=1)
        await queries.device_list(page=1)
        await queries.device_list(page=2)

        assert len(cache) == 2

    @pytest.mark.asyncio
    async def test_list_filter_values(self, cache):
        """List filters are sent as repeated params and cached like any other filter"""
        seen = []

        def handler(request: httpx.Request):
            seen.append(request.url.params.get_list("status"))
            return httpx.Response(200, json={"success": True, "data": []})

        client = ApiClient("http://api.test", transport=httpx.MockTransport(handler))
        queries = CatalogQueries(client, cache)

        await queries.device_list(status=["active", "maintenance"])
        await queries.device_list(status=["active", "maintenance"])

        assert seen == [["active", "maintenance"]]
        assert len(cache) == 1

    @pytest.mark.asyncio
    async def test_create_device_invalidates_lists(self, queries, cache):
        await queries.device_list()
        await queries.device(1)

        await queries.create_device({"name": "OpenBox", "brand": "OpenBox", "model": "S4"})

        assert cache.is_stale(device_keys.list({"page": 1, "limit": 20}))
        assert not cache.is_stale(device_keys.detail(1, False))

    @pytest.mark.asyncio
    async def test_delete_device_drops_detail_and_problems(self, queries, cache):
        await queries.device(1)
        await queries.problem_list(device_id=1)

        await queries.delete_device(1)

        assert device_keys.detail(1, False) not in cache
        assert cache.is_stale(problem_keys.list({"page": 1, "limit": 20, "device_id": 1}))

    @pytest.mark.asyncio
    async def test_step_mutation_invalidates_problem_steps(self, queries, cache):
        await queries.steps_by_problem(7)
        await queries.validate_steps(7)
        await queries.steps_by_problem(8)

        await queries.insert_step(7, 1, {"title": "T", "instruction": "I"})

        assert cache.is_stale(step_keys.child("byProblem", 7, True))
        assert cache.is_stale(step_keys.child("validate", 7))
        assert not cache.is_stale(step_keys.child("byProblem", 8, True))

    @pytest.mark.asyncio
    async def test_complete_session_invalidates_problems(self, queries, cache):
        await queries.problem(3)
        await queries.active_sessions()

        await queries.complete_session(10, {"success": True})

        assert cache.is_stale(problem_keys.detail(3, False))
        assert cache.is_stale(("sessions", "active", 50, 0))

    @pytest.mark.asyncio
    async def test_seed_clears_everything(self, queries, cache):
        await queries.device_list()
        await queries.problem_list()

        await queries.seed()

        assert len(cache) == 0

"""
Tests for route registration
"""

from fastapi import FastAPI

from backend.startup.route_registration import (
    API_PREFIX,
    register_app_routes,
    register_routes,
)


def route_paths(app: FastAPI):
    return {route.path for route in app.routes}


class TestRegisterRoutes:
    def test_catalog_routes_are_versioned(self):
        app = FastAPI()

        register_routes(app)

        paths = route_paths(app)
        for resource in ("devices", "problems", "steps", "sessions", "tv-interfaces", "remotes"):
            assert f"{API_PREFIX}/{resource}" in paths
        assert f"{API_PREFIX}/seed" in paths
        assert f"{API_PREFIX}/test/problems" in paths
        assert f"{API_PREFIX}/cleanup/clear-all" in paths

    def test_static_routes_precede_id_routes(self):
        """/devices/stats must not be captured by /devices/{device_id}"""
        app = FastAPI()
        register_routes(app)
        ordered = [route.path for route in app.routes]

        assert ordered.index(f"{API_PREFIX}/devices/stats") < ordered.index(
            f"{API_PREFIX}/devices/{{device_id}}"
        )
        assert ordered.index(f"{API_PREFIX}/steps/reorder") < ordered.index(
            f"{API_PREFIX}/steps/{{step_id}}"
        )
        assert ordered.index(f"{API_PREFIX}/sessions/cleanup") < ordered.index(
            f"{API_PREFIX}/sessions/{{session_pk}}"
        )


class TestRegisterAppRoutes:
    def test_unversioned_routes(self):
        app = FastAPI()

        register_app_routes(app)

        assert {"/", "/health", "/health/db"} <= route_paths(app)

"""
Tests for the application factory, root banner and health endpoints
"""

from contextlib import asynccontextmanager
from unittest.mock import patch

from fastapi.testclient import TestClient

from backend.main import create_app
from backend.persistence.db import Database


@asynccontextmanager
async def no_lifespan(_app):
    yield


class TestRootEndpoints:
    def test_root_banner(self, client: TestClient):
        response = client.get("/")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"] == {"name": "ANT Support API", "version": "1.0.0", "api": "/api/v1"}

    def test_health(self, client: TestClient):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["version"] == "1.0.0"
        assert body["timestamp"].endswith("Z")

    def test_health_head(self, client: TestClient):
        response = client.head("/health")

        assert response.status_code == 200

    def test_database_health(self, client: TestClient):
        response = client.get("/health/db")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "healthy"
        assert data["dialect"] == "sqlite"
        assert data["version"].startswith("SQLite")

    def test_database_health_failure(self, app, client: TestClient):
        with patch.object(
            app.state.database,
            "test_connection",
            return_value={"success": False, "error": "connection refused"},
        ):
            response = client.get("/health/db")

        assert response.status_code == 503
        body = response.json()
        assert body["errorType"] == "DATABASE_ERROR"
        assert body["status"] == "unhealthy"
        assert body["details"] == "connection refused"


class TestCreateApp:
    def test_database_from_config(self, mock_config):
        """Without an explicit Database the factory builds one from the config"""
        app = create_app(lifespan_handler=no_lifespan)

        assert isinstance(app.state.database, Database)
        assert app.state.database.url == "sqlite:///ant_support_test.db"

    def test_cors_preflight(self, client: TestClient):
        response = client.options(
            "/api/v1/devices",
            headers={
                "Origin": "http://localhost:8080",
                "Access-Control-Request-Method": "POST",
            },
        )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "http://localhost:8080"

    def test_cors_rejects_unknown_origin(self, client: TestClient):
        response = client.get("/", headers={"Origin": "http://evil.example"})

        assert "access-control-allow-origin" not in response.headers

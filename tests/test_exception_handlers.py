"""
Tests for the error envelopes produced by the exception handlers
"""

from unittest.mock import patch

from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel

from backend.services.errors import ConstraintError, DuplicateError, NotImplementedFeatureError
from backend.startup.exception_handlers import (
    HTTP_ERROR_TYPES,
    register_exception_handlers,
    validation_details,
)

ORIGINS = ["http://localhost:8080"]


class Payload(BaseModel):
    count: int


def build_app() -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app, ORIGINS)

    @app.get("/duplicate")
    async def duplicate():
        raise DuplicateError("Device with this name already exists", suggestion="Rename it")

    @app.get("/constraint")
    async def constraint():
        raise ConstraintError("Device has 2 active problems", canForceDelete=True)

    @app.get("/stub")
    async def stub():
        raise NotImplementedFeatureError("Not yet")

    @app.post("/payload")
    async def payload(body: Payload):
        return {"count": body.count}

    @app.get("/nested")
    async def nested():
        Payload(count="many")

    @app.get("/boom")
    async def boom():
        raise RuntimeError("kaboom")

    @app.get("/only-get")
    async def only_get():
        return {}

    return app


class TestCatalogErrors:
    def test_duplicate_error(self):
        client = TestClient(build_app())

        response = client.get("/duplicate")

        assert response.status_code == 409
        body = response.json()
        assert body["success"] is False
        assert body["errorType"] == "DUPLICATE_ERROR"
        assert body["suggestion"] == "Rename it"
        assert body["timestamp"].endswith("Z")

    def test_extra_fields_are_passed_through(self):
        body = TestClient(build_app()).get("/constraint").json()

        assert body["errorType"] == "CONSTRAINT_ERROR"
        assert body["canForceDelete"] is True

    def test_not_implemented(self):
        response = TestClient(build_app()).get("/stub")

        assert response.status_code == 501
        assert response.json()["errorType"] == "NOT_IMPLEMENTED"


class TestValidationErrors:
    def test_request_validation(self):
        response = TestClient(build_app()).post("/payload", json={"count": "many"})

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Validation failed"
        assert body["errorType"] == "VALIDATION_ERROR"
        assert body["details"][0]["field"] == "count"
        assert body["details"][0]["value"] == "many"

    def test_model_validation_inside_route(self):
        response = TestClient(build_app()).get("/nested")

        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "count"

    def test_validation_details_strip_location_prefix(self):
        details = validation_details(
            [{"loc": ("body", "updates", 0, "data"), "msg": "Field required", "input": None}]
        )

        assert details == [{"field": "updates.0.data", "message": "Field required", "value": None}]


class TestHttpErrors:
    def test_unknown_route(self):
        response = TestClient(build_app()).get("/api/v1/nothing-here")

        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "Route /api/v1/nothing-here not found"
        assert body["errorType"] == "NOT_FOUND"

    def test_logged_path_has_no_newlines(self):
        with patch("backend.startup.exception_handlers.logger") as logger:
            TestClient(build_app()).get("/api/v1/forged%0AINFO%20line")

        logged_path = logger.warning.call_args.args[3]
        assert "\n" not in logged_path
        assert logged_path == "/api/v1/forgedINFO line"

    def test_method_not_allowed(self):
        response = TestClient(build_app()).delete("/only-get")

        assert response.status_code == 405
        assert response.json()["errorType"] == HTTP_ERROR_TYPES[405]

    def test_unhandled_exception(self):
        client = TestClient(build_app(), raise_server_exceptions=False)

        response = client.get("/boom")

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "Internal server error"
        assert body["errorType"] == "INTERNAL_ERROR"


class TestErrorCors:
    def test_allowed_origin_gets_cors_headers(self):
        response = TestClient(build_app()).get(
            "/duplicate", headers={"Origin": "http://localhost:8080"}
        )

        assert response.headers["access-control-allow-origin"] == "http://localhost:8080"
        assert response.headers["access-control-allow-credentials"] == "true"

    def test_other_origin_gets_none(self):
        response = TestClient(build_app()).get(
            "/duplicate", headers={"Origin": "http://evil.example"}
        )

        assert "access-control-allow-origin" not in response.headers

"""
Pytest configuration and shared fixtures for the ANT Support server tests.

Every test gets its own SQLite database file created from the SQLAlchemy
metadata, and an application built around it without the fail-fast lifespan.
"""

import itertools
from contextlib import asynccontextmanager
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from backend.main import create_app
from backend.persistence.db import Database
from backend.services.device_service import DeviceService
from backend.services.problem_service import ProblemService
from backend.services.session_service import SessionService
from backend.services.step_service import StepService
from backend.services.tv_interface_service import TVInterfaceService

TEST_CONFIG = {
    "api": {"host": "127.0.0.1", "port": 3100, "fail_fast": True},
    "database": {
        "url": None,
        "host": None,
        "port": 5432,
        "name": "ant_support_test.db",
        "user": "sqlite",
        "password": "",
        "ssl": False,
        "debug_sql": False,
        "pool": {"size": 2, "max_overflow": 0, "timeout": 5, "recycle": 1800},
    },
    "cors": {"origins": ["http://localhost:8080"]},
    "logging": {"level": "WARNING|ERROR|CRITICAL", "format": "%(message)s"},
    "sessions": {"retention_days": 90},
}


@asynccontextmanager
async def no_lifespan(_app):
    yield


@pytest.fixture(scope="function")
def mock_config():
    """Mock the configuration system to use test config."""
    with patch("backend.config.config.get_config", return_value=TEST_CONFIG):
        yield TEST_CONFIG


@pytest.fixture(scope="function")
def database(tmp_path):
    """Fresh SQLite database with every table created."""
    db = Database(f"sqlite:///{tmp_path / 'ant_support_test.db'}")
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture(scope="function")
def session(database):
    """ORM session on the test database."""
    with database.session() as db:
        yield db


@pytest.fixture(scope="function")
def app(database, mock_config):
    return create_app(database, lifespan_handler=no_lifespan)


@pytest.fixture(scope="function")
def client(app):
    """Create a test client with test database and mocked config."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_device(database):
    """Factory creating an active device and returning its id."""
    counter = itertools.count(1)

    def _make(**overrides):
        number = next(counter)
        data = {"name": f"Receiver {number}", "brand": "OpenBox", "model": f"S{number}"}
        data.update(overrides)
        with database.session() as db:
            return DeviceService(db).create(data).id

    return _make


@pytest.fixture
def make_problem(database):
    counter = itertools.count(1)

    def _make(device_id, **overrides):
        data = {"device_id": device_id, "title": f"Problem {next(counter)}"}
        data.update(overrides)
        with database.session() as db:
            return ProblemService(db).create(data).id

    return _make


@pytest.fixture
def make_step(database):
    counter = itertools.count(1)

    def _make(problem_id, **overrides):
        number = next(counter)
        data = {
            "problem_id": problem_id,
            "title": f"Step {number}",
            "instruction": f"Do thing {number}",
        }
        data.update(overrides)
        with database.session() as db:
            return StepService(db).create(data).id

    return _make


@pytest.fixture
def make_session(database):
    def _make(device_id, problem_id, **overrides):
        data = {"device_id": device_id, "problem_id": problem_id}
        data.update(overrides)
        with database.session() as db:
            return SessionService(db).create(data).id

    return _make


@pytest.fixture
def make_interface(database):
    counter = itertools.count(1)

    def _make(device_id, **overrides):
        data = {"device_id": device_id, "name": f"Menu {next(counter)}"}
        data.update(overrides)
        with database.session() as db:
            return TVInterfaceService(db).create(data).id

    return _make

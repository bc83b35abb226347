"""
Tests for the Database gateway and the connection settings helpers
"""

from unittest.mock import patch

import pytest
from sqlalchemy.exc import IntegrityError

from backend.persistence.db import Database, build_database_url, missing_database_settings
from backend.persistence.models import Device, Problem


class TestBuildDatabaseUrl:
    def test_url_wins(self):
        assert build_database_url({"url": "postgresql://u@h/db", "host": "other"}) == (
            "postgresql://u@h/db"
        )

    def test_legacy_postgres_scheme(self):
        assert build_database_url({"url": "postgres://u:p@h:5432/db"}) == (
            "postgresql://u:p@h:5432/db"
        )

    def test_sqlite_user(self):
        assert build_database_url({"user": "sqlite", "name": "dev.db", "host": "x"}) == (
            "sqlite:///dev.db"
        )

    def test_postgres_from_parts(self):
        url = build_database_url(
            {"host": "db", "port": 5433, "name": "ant", "user": "ant", "password": "s3cret"}
        )

        assert url == "postgresql://ant:s3cret@db:5433/ant"


class TestMissingSettings:
    def test_complete(self):
        assert missing_database_settings({"host": "db", "name": "ant", "user": "ant"}) == []

    def test_url_is_enough(self):
        assert missing_database_settings({"url": "postgresql://x"}) == []

    def test_reports_env_names(self):
        assert missing_database_settings({"host": None, "name": "ant", "user": ""}) == [
            "DB_HOST",
            "DB_USER",
        ]


class TestDatabase:
    def test_is_sqlite_without_connecting(self):
        database = Database("sqlite:///never-created.db")

        assert database.is_sqlite is True
        assert database._engine is None  # pylint: disable=protected-access

    def test_test_connection(self, database):
        result = database.test_connection()

        assert result["success"] is True
        assert result["version"].startswith("SQLite")

    def test_test_connection_failure_never_raises(self, tmp_path):
        database = Database(f"sqlite:///{tmp_path / 'missing' / 'nested' / 'x.db'}")

        result = database.test_connection()

        assert result["success"] is False
        assert result["error"]

    def test_transaction_commits(self, database):
        with database.transaction() as db:
            db.add(Device(name="A", brand="B", model="C"))

        assert database.row_counts(["devices"]) == {"devices": 1}

    def test_transaction_rolls_back(self, database):
        with pytest.raises(RuntimeError):
            with database.transaction() as db:
                db.add(Device(name="A", brand="B", model="C"))
                db.flush()
                raise RuntimeError("abort")

        assert database.row_counts(["devices"]) == {"devices": 0}

    def test_foreign_keys_enforced(self, database):
        with pytest.raises(IntegrityError):
            with database.transaction() as db:
                db.add(Problem(device_id=999, title="Orphan"))

    def test_active_name_index_is_partial(self, database):
        """Two rows may share a name as long as only one of them is active"""
        with database.transaction() as db:
            db.add(Device(name="Same", brand="B", model="C", is_active=False))
            db.add(Device(name="Same", brand="B", model="C"))

        with pytest.raises(IntegrityError):
            with database.transaction() as db:
                db.add(Device(name="Same", brand="B", model="D"))

    def test_query(self, database):
        rows = database.query("SELECT :value AS value", {"value": 7})

        assert rows == [{"value": 7}]

    def test_row_counts_marks_missing_tables(self, database):
        assert database.row_counts(["devices", "no_such_table"]) == {
            "devices": 0,
            "no_such_table": "N/A",
        }

    def test_table_names_and_stats(self, database):
        assert "diagnostic_steps" in database.table_names()
        stats = database.get_stats()
        assert stats["databaseSize"] is None
        assert {"tablename": "devices", "live_rows": 0} in stats["tables"]

    def test_debug_sql_logs_at_debug_level(self, tmp_path):
        database = Database(f"sqlite:///{tmp_path / 'debug.db'}", debug_sql=True)

        with patch("backend.persistence.db.logger") as logger:
            database.query("SELECT 1 AS one")

        messages = [call.args[0] for call in logger.debug.call_args_list]
        assert "SQL Query: %s" in messages
        assert any(m.startswith("Query completed") for m in messages)
        assert not any(
            call.args[0].startswith(("SQL Query", "Query completed"))
            for call in logger.info.call_args_list
        )

    def test_drop_all(self, database):
        database.drop_all()

        assert database.table_names() == []

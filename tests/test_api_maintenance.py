"""
Tests for the maintenance endpoints (seed, test data, cleanup, db-info) and
the remote control stubs
"""

from fastapi.testclient import TestClient


API = "/api/v1"


class TestSeed:
    def test_seed_creates_reference_catalog(self, client: TestClient):
        response = client.post(f"{API}/seed")

        assert response.status_code == 200
        assert response.json()["data"] == {"devices": 3, "problems": 9, "steps": 18}
        devices = client.get(f"{API}/devices").json()["data"]
        assert [d["name"] for d in devices] == ["OpenBox", "HDBox", "UCLAN"]

    def test_seed_is_idempotent(self, client: TestClient):
        client.post(f"{API}/seed")

        response = client.post(f"{API}/seed")

        assert response.json()["data"] == {"devices": 0, "problems": 0, "steps": 0}
        assert client.get(f"{API}/devices").json()["pagination"]["total"] == 3

    def test_seed_fills_in_missing_problems(self, client: TestClient, make_device):
        """An existing device with a reference name gets the missing problems only"""
        make_device(name="OpenBox")

        data = client.post(f"{API}/seed").json()["data"]

        assert data == {"devices": 2, "problems": 9, "steps": 18}

    def test_seeded_steps_are_contiguous(self, client: TestClient):
        client.post(f"{API}/seed")
        problem = client.get(
            f"{API}/problems/search", params={"q": "No signal"}
        ).json()["data"][0]

        validation = client.get(f"{API}/steps/problem/{problem['id']}/validate").json()

        assert validation["data"]["isValid"] is True
        assert validation["data"]["totalSteps"] == 3


class TestTestData:
    def test_requires_a_device(self, client: TestClient):
        response = client.post(f"{API}/test-data")

        assert response.status_code == 400
        assert response.json()["errorType"] == "VALIDATION_ERROR"

    def test_creates_problems_steps_and_sessions(self, client: TestClient, make_device):
        make_device()

        response = client.post(f"{API}/test-data")

        assert response.status_code == 200
        assert response.json()["data"] == {"problems": 3, "steps": 2, "sessions": 5}
        stats = client.get(f"{API}/sessions/stats").json()["data"]
        assert stats["total"] == 5
        assert stats["completed"] == 5


class TestCleanup:
    def test_reset_tv_interfaces(self, client: TestClient, make_device, make_interface):
        device_id = make_device()
        make_interface(device_id, name="Old menu")
        make_interface(device_id, name="Old settings")
        archived = make_device()
        client.delete(f"{API}/devices/{archived}")

        response = client.post(f"{API}/cleanup/tv-interfaces")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["deleted"] == 2
        assert data["created"] == 1
        assert data["interfaces"][0]["device_id"] == device_id
        remaining = client.get(f"{API}/tv-interfaces/device/{device_id}").json()["data"]
        assert [i["name"] for i in remaining] == ["Home screen"]

    def test_clear_all(self, client: TestClient):
        client.post(f"{API}/seed")

        response = client.post(f"{API}/cleanup/clear-all")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["isEmpty"] is True
        assert set(data["rowCounts"].values()) == {0}
        cleared = {entry["table"]: entry["deleted"] for entry in data["clearedTables"]}
        assert cleared["devices"] == 3
        assert cleared["diagnostic_steps"] == 18


class TestDatabaseInfo:
    def test_db_info(self, client: TestClient, make_device):
        make_device()

        data = client.get(f"{API}/db-info").json()["data"]

        assert data["dialect"] == "sqlite"
        assert "devices" in data["tables"]
        assert data["rowCounts"]["devices"] == 1
        assert data["isEmpty"] is False
        assert {
            "table_name": "problems",
            "column_name": "device_id",
            "foreign_table_name": "devices",
            "foreign_column_name": "id",
        }.items() <= next(
            fk
            for fk in data["foreignKeys"]
            if fk["table_name"] == "problems" and fk["column_name"] == "device_id"
        ).items()

    def test_db_stats(self, client: TestClient, make_device):
        make_device()

        data = client.get(f"{API}/db-info/stats").json()["data"]

        assert data["timestamp"].endswith("Z")
        assert data["databaseSize"] is None
        assert {"tablename": "devices", "live_rows": 1} in data["tables"]


class TestRemotes:
    """Remote management is a stub: reads are empty, writes are 501"""

    def test_list(self, client: TestClient):
        body = client.get(f"{API}/remotes").json()

        assert body["success"] is True
        assert body["data"] == []

    def test_get(self, client: TestClient):
        response = client.get(f"{API}/remotes/1")

        assert response.status_code == 404
        assert response.json()["error"] == "Remote not found"

    def test_writes_not_implemented(self, client: TestClient):
        for response in (
            client.post(f"{API}/remotes", json={"name": "RC"}),
            client.put(f"{API}/remotes/1", json={"name": "RC"}),
            client.delete(f"{API}/remotes/1"),
        ):
            assert response.status_code == 501
            assert response.json()["errorType"] == "NOT_IMPLEMENTED"

"""
Tests for the problem management API endpoints
"""

from fastapi.testclient import TestClient


API = "/api/v1"


class TestProblemCreate:
    """Creation rules tied to the parent device"""

    def test_create_problem(self, client: TestClient, make_device):
        device_id = make_device()

        response = client.post(
            f"{API}/problems",
            json={"device_id": device_id, "title": "No signal", "category": "critical"},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Problem created successfully"
        assert body["data"]["device_id"] == device_id
        assert body["data"]["category"] == "critical"
        assert body["data"]["status"] == "draft"
        assert body["data"]["tags"] == []
        assert body["data"]["order_index"] == 1

    def test_create_for_missing_device(self, client: TestClient):
        response = client.post(f"{API}/problems", json={"device_id": 999, "title": "Orphan"})

        assert response.status_code == 400
        assert response.json()["error"] == "The specified device was not found or is inactive"

    def test_create_for_archived_device(self, client: TestClient, make_device):
        device_id = make_device()
        client.delete(f"{API}/devices/{device_id}")

        response = client.post(f"{API}/problems", json={"device_id": device_id, "title": "Late"})

        assert response.status_code == 400
        assert response.json()["errorType"] == "VALIDATION_ERROR"

    def test_duplicate_title_for_same_device(self, client: TestClient, make_device, make_problem):
        device_id = make_device()
        make_problem(device_id, title="No signal")

        response = client.post(
            f"{API}/problems", json={"device_id": device_id, "title": "No signal"}
        )

        assert response.status_code == 409
        body = response.json()
        assert body["errorType"] == "DUPLICATE_ERROR"
        assert body["error"] == "A problem with this title already exists for this device"

    def test_same_title_on_other_device(self, client: TestClient, make_device, make_problem):
        """Titles only need to be unique within one device"""
        make_problem(make_device(), title="No signal")
        other = make_device()

        response = client.post(f"{API}/problems", json={"device_id": other, "title": "No signal"})

        assert response.status_code == 201

    def test_invalid_category(self, client: TestClient, make_device):
        response = client.post(
            f"{API}/problems",
            json={"device_id": make_device(), "title": "Bad", "category": "urgent"},
        )

        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "category"

    def test_priority_out_of_range(self, client: TestClient, make_device):
        response = client.post(
            f"{API}/problems", json={"device_id": make_device(), "title": "P", "priority": 9}
        )

        assert response.status_code == 400

    def test_order_index_per_device(self, client: TestClient, make_device, make_problem):
        first_device = make_device()
        second_device = make_device()
        make_problem(first_device)
        make_problem(first_device)

        problem_id = make_problem(second_device)

        body = client.get(f"{API}/problems/{problem_id}").json()
        assert body["data"]["order_index"] == 1


class TestProblemQueries:
    """Listing, search, stats and export"""

    def test_filter_by_device(self, client: TestClient, make_device, make_problem):
        device_id = make_device()
        make_problem(device_id)
        make_problem(make_device())

        body = client.get(f"{API}/problems", params={"device_id": device_id}).json()

        assert body["pagination"]["total"] == 1
        assert body["data"][0]["device_id"] == device_id

    def test_include_stats(self, client: TestClient, make_device, make_problem, make_step):
        problem_id = make_problem(make_device())
        make_step(problem_id)
        make_step(problem_id)

        body = client.get(f"{API}/problems", params={"include_stats": True}).json()

        assert body["data"][0]["steps_count"] == 2
        assert body["data"][0]["sessions_count"] == 0

    def test_search(self, client: TestClient, make_device, make_problem):
        device_id = make_device()
        make_problem(device_id, title="No signal", description="Black screen")
        make_problem(device_id, title="Remote broken")

        body = client.get(f"{API}/problems/search", params={"q": "black"}).json()

        assert [p["title"] for p in body["data"]] == ["No signal"]

    def test_popular_only_published(self, client: TestClient, make_device, make_problem):
        device_id = make_device()
        make_problem(device_id, title="Draft")
        published = make_problem(device_id, title="Published", status="published")

        body = client.get(f"{API}/problems/popular").json()

        assert [p["id"] for p in body["data"]] == [published]

    def test_stats(self, client: TestClient, make_device, make_problem):
        device_id = make_device()
        make_problem(device_id, category="critical", success_rate=80)
        make_problem(device_id, category="minor", success_rate=100)

        body = client.get(f"{API}/problems/stats").json()

        assert body["data"]["total"] == 2
        assert body["data"]["byCategory"] == {"critical": 1, "minor": 1}
        assert body["data"]["averageSuccessRate"] == 90
        assert body["data"]["totalCompletions"] == 0

    def test_export(self, client: TestClient, make_device, make_problem):
        make_problem(make_device())

        body = client.get(f"{API}/problems/export").json()

        assert body["meta"]["totalRecords"] == 1

    def test_get_missing(self, client: TestClient):
        response = client.get(f"{API}/problems/404")

        assert response.status_code == 404
        assert response.json()["error"] == "Problem not found"


class TestProblemMutations:
    """Update, delete, restore, reorder and bulk update"""

    def test_move_to_inactive_device(self, client: TestClient, make_device, make_problem):
        problem_id = make_problem(make_device())
        archived = make_device()
        client.delete(f"{API}/devices/{archived}")

        response = client.put(f"{API}/problems/{problem_id}", json={"device_id": archived})

        assert response.status_code == 400

    def test_soft_delete_blocked_by_steps(
        self, client: TestClient, make_device, make_problem, make_step
    ):
        problem_id = make_problem(make_device())
        make_step(problem_id)

        response = client.delete(f"{API}/problems/{problem_id}")

        assert response.status_code == 409
        assert response.json()["errorType"] == "CONSTRAINT_ERROR"

    def test_restore_requires_active_device(self, client: TestClient, make_device, make_problem):
        device_id = make_device()
        problem_id = make_problem(device_id)
        client.delete(f"{API}/problems/{problem_id}")
        client.delete(f"{API}/devices/{device_id}")

        response = client.post(f"{API}/problems/{problem_id}/restore")

        assert response.status_code == 400

    def test_reorder_within_device(self, client: TestClient, make_device, make_problem):
        device_id = make_device()
        first = make_problem(device_id)
        second = make_problem(device_id)
        other = make_problem(make_device())

        response = client.put(
            f"{API}/problems/reorder",
            json={"problemIds": [second, first], "device_id": device_id},
        )

        assert response.status_code == 200
        assert [p["id"] for p in response.json()["data"]] == [second, first]

        outside = client.put(
            f"{API}/problems/reorder",
            json={"problemIds": [other], "device_id": device_id},
        )
        assert outside.status_code == 400
        assert outside.json()["invalidIds"] == [other]

    def test_bulk_update(self, client: TestClient, make_device, make_problem):
        device_id = make_device()
        first = make_problem(device_id)
        second = make_problem(device_id)

        response = client.put(
            f"{API}/problems/bulk",
            json={
                "updates": [
                    {"id": first, "data": {"status": "published"}},
                    {"id": second, "data": {"status": "published"}},
                ]
            },
        )

        assert response.status_code == 200
        assert {p["status"] for p in response.json()["data"]} == {"published"}

    def test_bulk_update_invalid_value(self, client: TestClient, make_device, make_problem):
        problem_id = make_problem(make_device())

        response = client.put(
            f"{API}/problems/bulk",
            json={"updates": [{"id": problem_id, "data": {"difficulty": "impossible"}}]},
        )

        assert response.status_code == 400
        assert response.json()["errorType"] == "VALIDATION_ERROR"


class TestTestProblemEndpoint:
    """POST /test/problems creates problems from loose bodies"""

    def test_defaults_title(self, client: TestClient, make_device):
        response = client.post(f"{API}/test/problems", json={"device_id": make_device()})

        assert response.status_code == 201
        assert response.json()["data"]["title"] == "Test problem"

    def test_requires_active_device(self, client: TestClient):
        response = client.post(f"{API}/test/problems", json={"device_id": 12345})

        assert response.status_code == 400

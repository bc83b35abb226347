"""
Service-level tests: generic CRUD behaviour, the change log and seeding
"""

from datetime import datetime
from unittest.mock import patch

import pytest

from backend.persistence.models import ChangeLog
from backend.services.change_log_service import ChangeAction, ChangeLogService
from backend.services.crud import MAX_PAGE_SIZE
from backend.services.device_service import DeviceService
from backend.services.errors import (
    ConstraintError,
    DuplicateError,
    NotFoundError,
    ValidationError,
)
from backend.services.seed_service import SeedService
from backend.services.step_service import StepService


class TestCrudService:
    def test_unknown_fields_are_dropped(self, session):
        device = DeviceService(session).create(
            {"name": "A", "brand": "B", "model": "C", "password": "x", "id": 77}
        )

        assert device.id != 77
        assert not hasattr(device, "password")

    def test_duplicate_rolls_back_and_leaves_session_usable(self, session):
        service = DeviceService(session)
        service.create({"name": "A", "brand": "B", "model": "C"})

        with pytest.raises(DuplicateError) as exc_info:
            service.create({"name": "A", "brand": "B", "model": "D"})

        assert exc_info.value.extra["suggestion"]
        assert service.count() == 1

    def test_find_all_caps_limit(self, session):
        _rows, _total, limit = DeviceService(session).find_all(limit=10_000)

        assert limit == MAX_PAGE_SIZE

    def test_find_all_rejects_bad_order(self, session):
        with pytest.raises(ValidationError):
            DeviceService(session).find_all(order="sideways")

    def test_delete_with_dependents(self, session, make_device, make_problem):
        device_id = make_device()
        make_problem(device_id)

        with pytest.raises(ConstraintError) as exc_info:
            DeviceService(session).delete(device_id)

        assert exc_info.value.extra["canForceDelete"] is True

    def test_hard_delete_returns_snapshot(self, session, make_device):
        device_id = make_device(name="Gone")

        snapshot = DeviceService(session).delete(device_id, force=True)

        assert snapshot["name"] == "Gone"
        with pytest.raises(NotFoundError):
            DeviceService(session).get(device_id)

    def test_reorder_keeps_unlisted_rows_after_listed(self, session, make_device):
        first, second, third = make_device(), make_device(), make_device()

        ordered = DeviceService(session).reorder([third])

        assert [d.id for d in ordered] == [third, first, second]
        assert [d.order_index for d in ordered] == [1, 2, 3]


class TestStepService:
    def test_renumber_after_forced_delete(self, session, make_device, make_problem, make_step):
        problem_id = make_problem(make_device())
        first = make_step(problem_id)
        make_step(problem_id)
        make_step(problem_id)

        StepService(session).delete_step(first, force=True, reorder=True)

        numbers = [s.step_number for s in StepService(session).by_problem(problem_id)]
        assert numbers == [1, 2]

    def test_failed_renumber_keeps_the_step(self, session, make_device, make_problem, make_step):
        """Delete and renumbering share one transaction"""
        problem_id = make_problem(make_device())
        first = make_step(problem_id)
        make_step(problem_id)
        service = StepService(session)

        with patch.object(StepService, "_renumber", side_effect=RuntimeError("boom")):
            with pytest.raises(RuntimeError):
                service.delete_step(first, reorder=True)

        session.expire_all()
        assert service.get(first).is_active is True
        assert [s.step_number for s in service.by_problem(problem_id)] == [1, 2]

    def test_soft_delete_with_reorder(self, session, make_device, make_problem, make_step):
        problem_id = make_problem(make_device())
        make_step(problem_id)
        middle = make_step(problem_id)
        make_step(problem_id)

        StepService(session).delete_step(middle, reorder=True)

        numbers = [s.step_number for s in StepService(session).by_problem(problem_id)]
        assert numbers == [1, 2]

    def test_insert_rejects_negative_position(self, session, make_device, make_problem):
        problem_id = make_problem(make_device())

        with pytest.raises(ValidationError):
            StepService(session).insert(problem_id, -1, {"title": "T", "instruction": "I"})


class TestChangeLog:
    def test_mutations_are_recorded(self, session, make_device):
        device_id = make_device()
        service = DeviceService(session)
        service.update(device_id, {"description": "Changed"})
        service.delete(device_id)

        actions = [entry.action for entry in ChangeLogService(session).history("device", device_id)]

        assert actions == ["SOFT_DELETE", "UPDATE", "CREATE"]

    def test_failed_write_is_not_logged(self, session):
        service = DeviceService(session)
        service.create({"name": "A", "brand": "B", "model": "C"})

        with pytest.raises(DuplicateError):
            service.create({"name": "A", "brand": "B", "model": "C"})

        assert session.query(ChangeLog).count() == 1

    def test_record_serializes_changes(self, session):
        entry = ChangeLogService(session).record(
            "device", 1, ChangeAction.UPDATE, {"when": datetime(2025, 1, 2, 3, 4, 5)}
        )
        session.commit()

        assert entry.changes == {"when": "2025-01-02T03:04:05"}


class TestSeedService:
    def test_seed_twice(self, database):
        with database.transaction() as db:
            first = SeedService(db).seed()
        with database.transaction() as db:
            second = SeedService(db).seed()

        assert first == {"devices": 3, "problems": 9, "steps": 18}
        assert second == {"devices": 0, "problems": 0, "steps": 0}

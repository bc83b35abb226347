"""
Sample data for exercising the admin UI: a few problems for the first
active device, steps for the first of them and a batch of finished sessions.
"""

from datetime import timedelta
from typing import Dict

from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.persistence.db import utcnow
from backend.persistence.models import DiagnosticSession, DiagnosticStep, Device, Problem
from backend.services.errors import ValidationError
from backend.services.seed_service import REFERENCE_PROBLEMS
from backend.services.session_service import generate_session_id
from backend.utils.verbosity_logger import get_logger

logger = get_logger("backend.services.test_data_service")

SESSION_COUNT = 5


class TestDataService:
    """Writes through the caller's transaction; nothing is committed here."""

    __test__ = False  # not a pytest test class

    def __init__(self, db: Session):
        self.db = db

    def create(self) -> Dict[str, int]:
        device = self.db.execute(
            select(Device)
            .where(Device.is_active.is_(True))
            .order_by(Device.order_index.asc(), Device.id.asc())
            .limit(1)
        ).scalar_one_or_none()
        if device is None:
            raise ValidationError(
                "No active device to attach test data to",
                suggestion="Create a device or run the seed first",
            )

        created = {"problems": 0, "steps": 0, "sessions": 0}
        problems = []
        for data in REFERENCE_PROBLEMS:
            data = dict(data)
            steps = data.pop("steps")
            problem = self.db.execute(
                select(Problem).where(
                    Problem.device_id == device.id,
                    Problem.title == data["title"],
                    Problem.is_active.is_(True),
                )
            ).scalar_one_or_none()
            if problem is None:
                problem = Problem(device_id=device.id, **data)
                self.db.add(problem)
                self.db.flush()
                created["problems"] += 1
                if not problems:
                    for number, step in enumerate(steps[:2], start=1):
                        self.db.add(
                            DiagnosticStep(
                                problem_id=problem.id,
                                device_id=device.id,
                                step_number=number,
                                **step,
                            )
                        )
                        created["steps"] += 1
            problems.append(problem)

        now = utcnow()
        target = problems[0]
        for index in range(SESSION_COUNT):
            start = now - timedelta(hours=3 * index + 1)
            duration = 60 + 45 * index
            self.db.add(
                DiagnosticSession(
                    session_id=generate_session_id(),
                    device_id=device.id,
                    problem_id=target.id,
                    start_time=start,
                    end_time=start + timedelta(seconds=duration),
                    total_steps=2,
                    completed_steps=2 if index % 3 else 1,
                    success=index % 4 != 3,
                    duration=duration,
                    user_agent="Mozilla/5.0 (Test Browser)",
                    ip_address=f"192.168.1.{10 + index}",
                )
            )
            created["sessions"] += 1
        self.db.flush()
        logger.info("Test data created for device %s: %s", device.id, created)
        return created

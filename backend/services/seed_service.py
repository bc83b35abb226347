"""
Reference catalog seeding.

Seeding is idempotent: devices are matched by name and problems by
(device, title) among active rows, so running it twice creates nothing new.
"""

from typing import Any, Dict, List

from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.persistence.models import DiagnosticStep, Device, Problem
from backend.services.change_log_service import ChangeAction, ChangeLogService
from backend.utils.verbosity_logger import get_logger

logger = get_logger("backend.services.seed_service")

REFERENCE_DEVICES: List[Dict[str, Any]] = [
    {
        "name": "OpenBox",
        "brand": "OpenBox",
        "model": "S4 Pro+",
        "description": "Satellite receiver with HD support",
        "color": "from-blue-500 to-blue-600",
    },
    {
        "name": "HDBox",
        "brand": "HDBox",
        "model": "FS-9200 PVR",
        "description": "Digital satellite receiver with recording",
        "color": "from-green-500 to-green-600",
    },
    {
        "name": "UCLAN",
        "brand": "UCLAN",
        "model": "Denys H.265",
        "description": "Combined receiver with H.265 decoding",
        "color": "from-purple-500 to-purple-600",
    },
]

REFERENCE_PROBLEMS: List[Dict[str, Any]] = [
    {
        "title": "No signal",
        "description": 'The TV shows "No signal" or a black screen',
        "category": "critical",
        "icon": "Monitor",
        "color": "from-red-500 to-red-600",
        "tags": ["signal", "screen", "black screen"],
        "priority": 5,
        "estimated_time": 10,
        "difficulty": "beginner",
        "success_rate": 95,
        "status": "published",
        "steps": [
            {
                "title": "Check the cable connections",
                "description": "Make sure every cable is connected properly",
                "instruction": "Check the HDMI or AV cable between the receiver and the TV "
                "and make sure it is seated firmly in both sockets.",
                "estimated_time": 60,
                "hint": "Try unplugging the cable and plugging it back in",
                "success_text": "The cables are connected properly",
            },
            {
                "title": "Check the receiver power",
                "description": "Make sure the receiver is switched on",
                "instruction": "Check that the power indicator on the receiver is lit. If it "
                "is not, check the power adapter connection.",
                "estimated_time": 30,
                "hint": "The indicator is usually on the front panel",
                "success_text": "The receiver is powered",
            },
            {
                "title": "Select the right TV input",
                "description": "The TV must show the input the receiver is connected to",
                "instruction": "Press SOURCE or INPUT on the TV remote and pick the HDMI or AV "
                "input the receiver is plugged into.",
                "estimated_time": 45,
            },
        ],
    },
    {
        "title": "Remote not responding",
        "description": "The remote control does not react to button presses",
        "category": "moderate",
        "icon": "Radio",
        "color": "from-orange-500 to-orange-600",
        "tags": ["remote", "batteries", "control"],
        "priority": 3,
        "estimated_time": 5,
        "difficulty": "beginner",
        "success_rate": 90,
        "status": "published",
        "steps": [
            {
                "title": "Replace the batteries",
                "description": "Weak batteries are the most common cause",
                "instruction": "Open the battery compartment and insert two fresh AAA batteries "
                "observing the polarity.",
                "estimated_time": 60,
            },
            {
                "title": "Point the remote at the receiver",
                "description": "The IR sensor needs a clear line of sight",
                "instruction": "Remove anything between the remote and the front panel of the "
                "receiver and try again from closer than three metres.",
                "estimated_time": 30,
            },
        ],
    },
    {
        "title": "No sound",
        "description": "The picture is fine but there is no sound on any channel",
        "category": "moderate",
        "icon": "VolumeX",
        "color": "from-blue-500 to-blue-600",
        "tags": ["sound", "audio", "mute"],
        "priority": 4,
        "estimated_time": 8,
        "difficulty": "beginner",
        "success_rate": 85,
        "status": "published",
        "steps": [
            {
                "title": "Check mute and volume",
                "description": "Both the TV and the receiver have their own volume",
                "instruction": "Press MUTE on the receiver remote, then raise the volume on both "
                "the receiver and the TV.",
                "estimated_time": 30,
            },
        ],
    },
]


class SeedService:
    """Creates the reference devices, problems and steps when they are missing."""

    def __init__(self, db: Session):
        self.db = db
        self.change_log = ChangeLogService(db)

    def _device(self, data: Dict[str, Any], order_index: int, created: Dict[str, int]) -> Device:
        device = self.db.execute(
            select(Device).where(Device.name == data["name"], Device.is_active.is_(True))
        ).scalar_one_or_none()
        if device is None:
            device = Device(order_index=order_index, **data)
            self.db.add(device)
            self.db.flush()
            self.change_log.record("device", device.id, ChangeAction.CREATE, {"seed": True})
            created["devices"] += 1
        return device

    def _problem(self, device: Device, data: Dict[str, Any], order_index: int, created) -> None:
        data = dict(data)
        steps = data.pop("steps")
        problem = self.db.execute(
            select(Problem).where(
                Problem.device_id == device.id,
                Problem.title == data["title"],
                Problem.is_active.is_(True),
            )
        ).scalar_one_or_none()
        if problem is not None:
            return
        problem = Problem(device_id=device.id, order_index=order_index, **data)
        self.db.add(problem)
        self.db.flush()
        self.change_log.record("problem", problem.id, ChangeAction.CREATE, {"seed": True})
        created["problems"] += 1
        for number, step in enumerate(steps, start=1):
            self.db.add(
                DiagnosticStep(
                    problem_id=problem.id, device_id=device.id, step_number=number, **step
                )
            )
            created["steps"] += 1

    def seed(self) -> Dict[str, int]:
        """Run inside the caller's transaction; returns the number of rows created."""
        created = {"devices": 0, "problems": 0, "steps": 0}
        for device_index, device_data in enumerate(REFERENCE_DEVICES, start=1):
            device = self._device(device_data, device_index, created)
            for problem_index, problem_data in enumerate(REFERENCE_PROBLEMS, start=1):
                self._problem(device, problem_data, problem_index, created)
        self.db.flush()
        logger.info(
            "Seed created %d devices, %d problems, %d steps",
            created["devices"],
            created["problems"],
            created["steps"],
        )
        return created

"""
Problem catalog service.  A problem belongs to one active device; its title
is unique among that device's active problems.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import func, select

from backend.persistence.models import DiagnosticSession, DiagnosticStep, Device, Problem
from backend.services.crud import CrudService
from backend.services.errors import ValidationError


def require_active_device(db, device_id: Optional[int]) -> Device:
    """Raise ValidationError unless device_id names an active device."""
    if device_id is None:
        raise ValidationError("device_id is required")
    device = db.get(Device, device_id)
    if device is None or not device.is_active:
        raise ValidationError("The specified device was not found or is inactive")
    return device


class ProblemService(CrudService):
    model = Problem
    entity_type = "problem"
    label = "Problem"
    search_fields = ("title", "description")
    sortable_fields = (
        "id",
        "title",
        "category",
        "priority",
        "difficulty",
        "status",
        "order_index",
        "success_rate",
        "completed_count",
        "created_at",
        "updated_at",
    )
    default_sort = "order_index"
    filter_fields = ("device_id", "category", "status", "difficulty")
    order_field = "order_index"

    @property
    def duplicate_message(self) -> str:
        return "A problem with this title already exists for this device"

    def validate_references(self, values: Dict[str, Any], existing=None):
        if existing is None or "device_id" in values:
            require_active_device(self.db, values.get("device_id"))
        elif not values:
            # restore
            require_active_device(self.db, existing.device_id)

    def prepare_create(self, values: Dict[str, Any]) -> Dict[str, Any]:
        if values.get("order_index") is None:
            current = self.db.execute(
                select(func.coalesce(func.max(Problem.order_index), 0)).where(
                    Problem.device_id == values["device_id"], Problem.is_active.is_(True)
                )
            ).scalar_one()
            values["order_index"] = current + 1
        return values

    def dependents(self, entity) -> Dict[str, int]:
        steps = self.db.execute(
            select(func.count(DiagnosticStep.id)).where(
                DiagnosticStep.problem_id == entity.id, DiagnosticStep.is_active.is_(True)
            )
        ).scalar_one()
        return {"steps": steps}

    def reorder_scope(self, scope):
        if scope and scope.get("device_id") is not None:
            return [Problem.device_id == scope["device_id"]]
        return []

    def with_stats(self, problems) -> List[Dict[str, Any]]:
        ids = [problem.id for problem in problems]
        steps = {}
        sessions = {}
        if ids:
            steps = dict(
                self.db.execute(
                    select(DiagnosticStep.problem_id, func.count(DiagnosticStep.id))
                    .where(DiagnosticStep.problem_id.in_(ids), DiagnosticStep.is_active.is_(True))
                    .group_by(DiagnosticStep.problem_id)
                ).all()
            )
            sessions = dict(
                self.db.execute(
                    select(DiagnosticSession.problem_id, func.count(DiagnosticSession.id))
                    .where(DiagnosticSession.problem_id.in_(ids))
                    .group_by(DiagnosticSession.problem_id)
                ).all()
            )
        return [
            {
                **problem.to_dict(),
                "steps_count": steps.get(problem.id, 0),
                "sessions_count": sessions.get(problem.id, 0),
            }
            for problem in problems
        ]

    def popular(self, limit: int = 10) -> List[Problem]:
        limit = max(1, min(limit, 20))
        return list(
            self.db.execute(
                select(Problem)
                .where(Problem.is_active.is_(True), Problem.status == "published")
                .order_by(
                    Problem.completed_count.desc(),
                    Problem.priority.desc(),
                    Problem.id.asc(),
                )
                .limit(limit)
            )
            .scalars()
            .all()
        )

    def stats(self) -> Dict[str, Any]:
        active = Problem.is_active.is_(True)
        total = self.db.execute(select(func.count(Problem.id))).scalar_one()
        active_count = self.db.execute(select(func.count(Problem.id)).where(active)).scalar_one()

        def grouped(column):
            return dict(
                self.db.execute(
                    select(column, func.count(Problem.id)).where(active).group_by(column)
                ).all()
            )

        average = self.db.execute(select(func.avg(Problem.success_rate)).where(active)).scalar()
        return {
            "total": total,
            "active": active_count,
            "byCategory": grouped(Problem.category),
            "byStatus": grouped(Problem.status),
            "byDifficulty": grouped(Problem.difficulty),
            "averageSuccessRate": round(float(average), 2) if average is not None else 0,
            "totalCompletions": self.db.execute(
                select(func.coalesce(func.sum(Problem.completed_count), 0)).where(active)
            ).scalar_one(),
        }

    def create_unchecked(self, data: Dict[str, Any]) -> Problem:
        """Create from a raw body with the parent-device check only; used by the test endpoint."""
        data = dict(data)
        data.setdefault("title", "Test problem")
        return self.create(data)

"""
Diagnostic step service.

Steps are numbered 1..n within their problem.  Inserting, duplicating,
reordering and deleting with ``reorder`` all leave the numbering contiguous;
fix_numbering() repairs numbering written by older imports.
"""

from collections import Counter
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select, update

from backend.persistence.db import utcnow
from backend.persistence.models import DiagnosticStep, Problem
from backend.services.change_log_service import ChangeAction
from backend.services.crud import CrudService
from backend.services.errors import NotFoundError, ValidationError
from backend.utils.verbosity_logger import get_logger

logger = get_logger("backend.services.step_service")

_COPY_EXCLUDED = ("id", "created_at", "updated_at", "problem_id", "device_id", "step_number")


class StepService(CrudService):
    model = DiagnosticStep
    entity_type = "diagnostic_step"
    label = "Step"
    search_fields = ("title", "description", "instruction")
    sortable_fields = (
        "id",
        "step_number",
        "title",
        "estimated_time",
        "created_at",
        "updated_at",
    )
    default_sort = "step_number"
    filter_fields = ("problem_id", "device_id", "remote_id", "tv_interface_id")
    order_field = "step_number"
    _renumber_on_delete = False

    def _active_problem(self, problem_id: Optional[int]) -> Problem:
        if problem_id is None:
            raise ValidationError("problem_id is required")
        problem = self.db.get(Problem, problem_id)
        if problem is None or not problem.is_active:
            raise ValidationError("The specified problem was not found or is inactive")
        return problem

    def validate_references(self, values: Dict[str, Any], existing=None):
        if existing is not None and "problem_id" not in values:
            if not values:
                self._active_problem(existing.problem_id)
            elif "device_id" in values:
                problem = self.db.get(Problem, existing.problem_id)
                if values["device_id"] != problem.device_id:
                    raise ValidationError("device_id does not match the problem's device")
            return
        problem = self._active_problem(values.get("problem_id"))
        device_id = values.get("device_id")
        if device_id is not None and device_id != problem.device_id:
            raise ValidationError("device_id does not match the problem's device")
        values["device_id"] = problem.device_id

    def _last_number(self, problem_id: int) -> int:
        return self.db.execute(
            select(func.coalesce(func.max(DiagnosticStep.step_number), 0)).where(
                DiagnosticStep.problem_id == problem_id, DiagnosticStep.is_active.is_(True)
            )
        ).scalar_one()

    def prepare_create(self, values: Dict[str, Any]) -> Dict[str, Any]:
        if values.get("step_number") is None:
            values["step_number"] = self._last_number(values["problem_id"]) + 1
        return values

    def by_problem(self, problem_id: int, is_active: Optional[bool] = True) -> List[DiagnosticStep]:
        stmt = select(DiagnosticStep).where(DiagnosticStep.problem_id == problem_id)
        if is_active is not None:
            stmt = stmt.where(DiagnosticStep.is_active == is_active)
        stmt = stmt.order_by(DiagnosticStep.step_number.asc(), DiagnosticStep.id.asc())
        return list(self.db.execute(stmt).scalars().all())

    def reorder_scope(self, scope):
        if not scope or scope.get("problem_id") is None:
            raise ValidationError("problem_id is required to reorder steps")
        return [DiagnosticStep.problem_id == scope["problem_id"]]

    def insert(self, problem_id: int, after_step_number: int, data: Dict[str, Any]) -> DiagnosticStep:
        """Insert a step after ``after_step_number`` (0 inserts at the front)."""
        if after_step_number < 0:
            raise ValidationError("after_step_number must be >= 0")
        values = self._values({**data, "problem_id": problem_id})
        self.validate_references(values)
        values["step_number"] = min(after_step_number, self._last_number(problem_id)) + 1
        with self._writing():
            self.db.execute(
                update(DiagnosticStep)
                .where(
                    DiagnosticStep.problem_id == problem_id,
                    DiagnosticStep.is_active.is_(True),
                    DiagnosticStep.step_number >= values["step_number"],
                )
                .values(step_number=DiagnosticStep.step_number + 1, updated_at=utcnow())
                .execution_options(synchronize_session="fetch")
            )
            step = DiagnosticStep(**values)
            self.db.add(step)
            self.db.flush()
            self.change_log.record(
                self.entity_type,
                step.id,
                ChangeAction.CREATE,
                {"afterStepNumber": after_step_number, **data},
            )
        self.db.refresh(step)
        return step

    def duplicate(self, step_id: int, target_problem_id: Optional[int] = None) -> DiagnosticStep:
        """Copy a step to the end of its own problem or of ``target_problem_id``."""
        source = self.get(step_id)
        problem = self._active_problem(target_problem_id or source.problem_id)
        values = {
            key: value
            for key, value in source.to_dict().items()
            if key not in _COPY_EXCLUDED and key != "is_active"
        }
        values = self._values(values)
        values.update(
            problem_id=problem.id,
            device_id=problem.device_id,
            step_number=self._last_number(problem.id) + 1,
        )
        with self._writing():
            step = DiagnosticStep(**values)
            self.db.add(step)
            self.db.flush()
            self.change_log.record(
                self.entity_type, step.id, ChangeAction.CREATE, {"duplicatedFrom": source.id}
            )
        self.db.refresh(step)
        return step

    def _renumber(self, problem_id: int) -> List[DiagnosticStep]:
        steps = self.by_problem(problem_id)
        for number, step in enumerate(steps, start=1):
            if step.step_number != number:
                step.step_number = number
                step.updated_at = utcnow()
        return steps

    def fix_numbering(self, problem_id: int) -> List[DiagnosticStep]:
        self._active_problem(problem_id)
        with self._writing():
            steps = self._renumber(problem_id)
            self.db.flush()
            self.change_log.record(
                "problem", problem_id, ChangeAction.REORDER, {"fixNumbering": True}
            )
        logger.info("Renumbered %d steps of problem %s", len(steps), problem_id)
        return steps

    def delete_step(self, step_id: int, force: bool = False, reorder: bool = False):
        """Delete (soft unless ``force``), optionally renumbering the remaining steps."""
        self._renumber_on_delete = reorder
        try:
            return self.delete(step_id, force=force)
        finally:
            self._renumber_on_delete = False

    def after_soft_delete(self, entity):
        if self._renumber_on_delete:
            self.db.flush()
            self._renumber(entity.problem_id)

    def after_hard_delete(self, snapshot: Dict[str, Any]):
        if self._renumber_on_delete:
            self._renumber(snapshot["problem_id"])

    def _neighbour(self, step_id: int, forward: bool) -> DiagnosticStep:
        step = self.get(step_id)
        stmt = select(DiagnosticStep).where(
            DiagnosticStep.problem_id == step.problem_id, DiagnosticStep.is_active.is_(True)
        )
        if forward:
            stmt = stmt.where(DiagnosticStep.step_number > step.step_number).order_by(
                DiagnosticStep.step_number.asc()
            )
        else:
            stmt = stmt.where(DiagnosticStep.step_number < step.step_number).order_by(
                DiagnosticStep.step_number.desc()
            )
        found = self.db.execute(stmt.limit(1)).scalars().first()
        if found is None:
            raise NotFoundError("This is the last step" if forward else "This is the first step")
        return found

    def next_step(self, step_id: int) -> DiagnosticStep:
        return self._neighbour(step_id, forward=True)

    def previous_step(self, step_id: int) -> DiagnosticStep:
        return self._neighbour(step_id, forward=False)

    def validate_order(self, problem_id: int) -> Dict[str, Any]:
        numbers = [step.step_number for step in self.by_problem(problem_id)]
        occurrences = Counter(numbers)
        duplicates = sorted(n for n, count in occurrences.items() if count > 1)
        gaps = [n for n in range(1, max(numbers, default=0) + 1) if n not in occurrences]
        return {
            "problemId": problem_id,
            "isValid": sorted(numbers) == list(range(1, len(numbers) + 1)),
            "totalSteps": len(numbers),
            "stepNumbers": numbers,
            "gaps": gaps,
            "duplicates": duplicates,
        }

    def position(self, step: DiagnosticStep) -> Dict[str, Any]:
        steps = self.by_problem(step.problem_id)
        ids = [s.id for s in steps]
        index = ids.index(step.id) if step.id in ids else None
        return {
            "totalSteps": len(steps),
            "position": index + 1 if index is not None else None,
            "isFirst": index == 0,
            "isLast": index is not None and index == len(steps) - 1,
        }

    def stats(self) -> Dict[str, Any]:
        active = DiagnosticStep.is_active.is_(True)
        total = self.db.execute(select(func.count(DiagnosticStep.id))).scalar_one()
        active_count = self.db.execute(
            select(func.count(DiagnosticStep.id)).where(active)
        ).scalar_one()
        average = self.db.execute(
            select(func.avg(DiagnosticStep.estimated_time)).where(active)
        ).scalar()
        with_interface = self.db.execute(
            select(func.count(DiagnosticStep.id)).where(
                active, DiagnosticStep.tv_interface_id.is_not(None)
            )
        ).scalar_one()
        return {
            "total": total,
            "active": active_count,
            "averageEstimatedTime": round(float(average), 2) if average is not None else 0,
            "withTvInterface": with_interface,
        }

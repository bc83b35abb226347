"""
Diagnostic session service: start, track and complete troubleshooting
sessions and report on them.
"""

import uuid
from datetime import timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import case, delete, func, select

from backend.persistence.db import utcnow
from backend.persistence.models import DiagnosticSession, DiagnosticStep, Problem
from backend.services.change_log_service import ChangeAction
from backend.services.crud import CrudService
from backend.services.errors import ValidationError
from backend.services.problem_service import require_active_device
from backend.utils.verbosity_logger import get_logger

logger = get_logger("backend.services.session_service")


def generate_session_id() -> str:
    return uuid.uuid4().hex


class SessionService(CrudService):
    model = DiagnosticSession
    entity_type = "diagnostic_session"
    label = "Session"
    search_fields = ("session_id", "user_agent", "ip_address")
    sortable_fields = (
        "id",
        "start_time",
        "end_time",
        "duration",
        "completed_steps",
        "created_at",
        "updated_at",
    )
    default_sort = "start_time"
    default_order = "desc"
    filter_fields = ("device_id", "problem_id", "success")

    @property
    def duplicate_message(self) -> str:
        return "A session with this session_id already exists"

    def validate_references(self, values: Dict[str, Any], existing=None):
        if existing is not None and not {"device_id", "problem_id"} & values.keys():
            return
        device_id = values.get("device_id", getattr(existing, "device_id", None))
        problem_id = values.get("problem_id", getattr(existing, "problem_id", None))
        require_active_device(self.db, device_id)
        problem = self.db.get(Problem, problem_id) if problem_id is not None else None
        if problem is None or not problem.is_active:
            raise ValidationError("The specified problem was not found or is inactive")
        if problem.device_id != device_id:
            raise ValidationError("The problem does not belong to the specified device")

    def prepare_create(self, values: Dict[str, Any]) -> Dict[str, Any]:
        if not values.get("session_id"):
            values["session_id"] = generate_session_id()
        if values.get("total_steps") is None:
            values["total_steps"] = self.db.execute(
                select(func.count(DiagnosticStep.id)).where(
                    DiagnosticStep.problem_id == values["problem_id"],
                    DiagnosticStep.is_active.is_(True),
                )
            ).scalar_one()
        return values

    def _time_filters(self, stmt, filters: Optional[Dict[str, Any]]):
        filters = filters or {}
        if filters.get("date_from") is not None:
            stmt = stmt.where(DiagnosticSession.start_time >= filters["date_from"])
        if filters.get("date_to") is not None:
            stmt = stmt.where(DiagnosticSession.start_time <= filters["date_to"])
        return stmt

    def _apply_filters(self, stmt, filters):
        filters = dict(filters or {})
        date_filters = {k: filters.pop(k, None) for k in ("date_from", "date_to")}
        stmt = super()._apply_filters(stmt, filters)
        return self._time_filters(stmt, date_filters)

    def active(self, limit: int = 50, offset: int = 0) -> List[DiagnosticSession]:
        """Sessions that were started and not completed yet."""
        return list(
            self.db.execute(
                select(DiagnosticSession)
                .where(
                    DiagnosticSession.is_active.is_(True),
                    DiagnosticSession.end_time.is_(None),
                )
                .order_by(DiagnosticSession.start_time.desc(), DiagnosticSession.id.desc())
                .limit(limit)
                .offset(offset)
            )
            .scalars()
            .all()
        )

    def complete(
        self,
        session_pk: int,
        success: bool,
        completed_steps: Optional[int] = None,
        feedback: Optional[Dict[str, Any]] = None,
    ) -> DiagnosticSession:
        """
        Close a session.  On success the problem's completed_count is bumped
        and its success_rate recomputed from its completed sessions.
        """
        session = self.get(session_pk)
        if session.end_time is not None:
            raise ValidationError("Session is already completed")
        now = utcnow()
        with self._writing():
            session.end_time = now
            session.duration = max(0, int((now - session.start_time).total_seconds()))
            session.success = success
            if completed_steps is not None:
                session.completed_steps = completed_steps
            elif success:
                session.completed_steps = session.total_steps
            if feedback is not None:
                session.feedback = feedback
            session.updated_at = now
            self.db.flush()

            problem = self.db.get(Problem, session.problem_id)
            if problem is not None:
                if success:
                    problem.completed_count = (problem.completed_count or 0) + 1
                finished, succeeded = self.db.execute(
                    select(
                        func.count(DiagnosticSession.id),
                        func.coalesce(
                            func.sum(case((DiagnosticSession.success.is_(True), 1), else_=0)), 0
                        ),
                    ).where(
                        DiagnosticSession.problem_id == problem.id,
                        DiagnosticSession.end_time.is_not(None),
                    )
                ).one()
                if finished:
                    problem.success_rate = round(succeeded * 100.0 / finished, 2)
            self.change_log.record(
                self.entity_type,
                session.id,
                ChangeAction.UPDATE,
                {"completed": True, "success": success},
            )
        self.db.refresh(session)
        return session

    def stats(self, filters: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        filters = filters or {}
        succeeded = func.coalesce(
            func.sum(case((DiagnosticSession.success.is_(True), 1), else_=0)), 0
        )
        completed = func.count(DiagnosticSession.end_time)
        stmt = select(
            func.count(DiagnosticSession.id),
            completed,
            succeeded,
            func.avg(DiagnosticSession.duration),
        ).where(DiagnosticSession.is_active.is_(True))
        for key in ("device_id", "problem_id"):
            if filters.get(key) is not None:
                stmt = stmt.where(getattr(DiagnosticSession, key) == filters[key])
        stmt = self._time_filters(stmt, filters)
        total, finished, successful, avg_duration = self.db.execute(stmt).one()
        return {
            "total": total,
            "completed": finished,
            "active": total - finished,
            "successful": successful,
            "failed": finished - successful,
            "successRate": round(successful * 100.0 / finished, 2) if finished else 0,
            "averageDuration": round(float(avg_duration), 2) if avg_duration is not None else 0,
        }

    def popular_problems(self, limit: int = 10, timeframe: int = 30) -> List[Dict[str, Any]]:
        """Problems with the most sessions started in the last ``timeframe`` days."""
        since = utcnow() - timedelta(days=timeframe)
        sessions = func.count(DiagnosticSession.id).label("sessions_count")
        successes = func.coalesce(
            func.sum(case((DiagnosticSession.success.is_(True), 1), else_=0)), 0
        ).label("success_count")
        rows = self.db.execute(
            select(Problem, sessions, successes)
            .join(DiagnosticSession, DiagnosticSession.problem_id == Problem.id)
            .where(Problem.is_active.is_(True), DiagnosticSession.start_time >= since)
            .group_by(Problem.id)
            .order_by(sessions.desc(), Problem.id.asc())
            .limit(max(1, min(limit, 50)))
        ).all()
        return [
            {**problem.to_dict(), "sessions_count": count, "success_count": succeeded}
            for problem, count, succeeded in rows
        ]

    def time_analytics(self, period: str = "day", limit: int = 30) -> List[Dict[str, Any]]:
        if period != "day":
            raise ValidationError("Unsupported period", supportedPeriods=["day"])
        since = utcnow() - timedelta(days=limit)
        day = func.date(DiagnosticSession.start_time).label("day")
        rows = self.db.execute(
            select(
                day,
                func.count(DiagnosticSession.id),
                func.coalesce(
                    func.sum(case((DiagnosticSession.success.is_(True), 1), else_=0)), 0
                ),
                func.avg(DiagnosticSession.duration),
            )
            .where(DiagnosticSession.start_time >= since)
            .group_by(day)
            .order_by(day.asc())
        ).all()
        return [
            {
                "date": str(date),
                "sessions": total,
                "successful": succeeded,
                "averageDuration": round(float(avg), 2) if avg is not None else 0,
            }
            for date, total, succeeded, avg in rows
        ]

    def cleanup(self, days_to_keep: int = 90) -> int:
        """Permanently delete sessions started more than ``days_to_keep`` days ago."""
        if days_to_keep < 1:
            raise ValidationError("days_to_keep must be at least 1")
        cutoff = utcnow() - timedelta(days=days_to_keep)
        with self._writing():
            result = self.db.execute(
                delete(DiagnosticSession)
                .where(DiagnosticSession.start_time < cutoff)
                .execution_options(synchronize_session=False)
            )
            removed = result.rowcount or 0
            self.change_log.record(
                self.entity_type, None, ChangeAction.DELETE, {"cleanupDays": days_to_keep, "removed": removed}
            )
        logger.info("Removed %d sessions older than %d days", removed, days_to_keep)
        return removed

    def export_filtered(self, filters: Optional[Dict[str, Any]] = None) -> List[DiagnosticSession]:
        stmt = self._apply_filters(select(DiagnosticSession), filters).order_by(
            DiagnosticSession.start_time.desc(), DiagnosticSession.id.desc()
        )
        return list(self.db.execute(stmt).scalars().all())

"""
Device catalog service.
"""

from typing import Any, Dict, List

from sqlalchemy import func, select

from backend.persistence.models import DiagnosticSession, Device, Problem, TVInterface
from backend.services.crud import CrudService


class DeviceService(CrudService):
    model = Device
    entity_type = "device"
    label = "Device"
    search_fields = ("name", "brand", "model", "description")
    sortable_fields = (
        "id",
        "name",
        "brand",
        "model",
        "status",
        "order_index",
        "created_at",
        "updated_at",
    )
    default_sort = "order_index"
    filter_fields = ("status",)
    order_field = "order_index"

    def prepare_create(self, values: Dict[str, Any]) -> Dict[str, Any]:
        if values.get("order_index") is None:
            current = self.db.execute(
                select(func.coalesce(func.max(Device.order_index), 0)).where(
                    Device.is_active.is_(True)
                )
            ).scalar_one()
            values["order_index"] = current + 1
        return values

    def dependents(self, entity) -> Dict[str, int]:
        problems = self.db.execute(
            select(func.count(Problem.id)).where(
                Problem.device_id == entity.id, Problem.is_active.is_(True)
            )
        ).scalar_one()
        return {"problems": problems}

    def problem_counts(self, device_ids: List[int]) -> Dict[int, Dict[str, int]]:
        """Active problem and TV interface counts per device."""
        counts = {device_id: {"problems_count": 0, "tv_interfaces_count": 0} for device_id in device_ids}
        if not device_ids:
            return counts
        for device_id, total in self.db.execute(
            select(Problem.device_id, func.count(Problem.id))
            .where(Problem.device_id.in_(device_ids), Problem.is_active.is_(True))
            .group_by(Problem.device_id)
        ):
            counts[device_id]["problems_count"] = total
        for device_id, total in self.db.execute(
            select(TVInterface.device_id, func.count(TVInterface.id))
            .where(TVInterface.device_id.in_(device_ids), TVInterface.is_active.is_(True))
            .group_by(TVInterface.device_id)
        ):
            counts[device_id]["tv_interfaces_count"] = total
        return counts

    def with_stats(self, devices) -> List[Dict[str, Any]]:
        counts = self.problem_counts([device.id for device in devices])
        return [{**device.to_dict(), **counts[device.id]} for device in devices]

    def popular(self, limit: int = 10) -> List[Dict[str, Any]]:
        """Active devices ranked by number of diagnostic sessions."""
        limit = max(1, min(limit, 20))
        sessions = func.count(DiagnosticSession.id).label("sessions_count")
        rows = self.db.execute(
            select(Device, sessions)
            .outerjoin(DiagnosticSession, DiagnosticSession.device_id == Device.id)
            .where(Device.is_active.is_(True))
            .group_by(Device.id)
            .order_by(sessions.desc(), Device.order_index.asc(), Device.id.asc())
            .limit(limit)
        ).all()
        return [{**device.to_dict(), "sessions_count": count} for device, count in rows]

    def stats(self) -> Dict[str, Any]:
        total = self.db.execute(select(func.count(Device.id))).scalar_one()
        active = self.db.execute(
            select(func.count(Device.id)).where(Device.is_active.is_(True))
        ).scalar_one()
        by_status = dict(
            self.db.execute(
                select(Device.status, func.count(Device.id))
                .where(Device.is_active.is_(True))
                .group_by(Device.status)
            ).all()
        )
        with_problems = self.db.execute(
            select(func.count(func.distinct(Problem.device_id))).where(
                Problem.is_active.is_(True)
            )
        ).scalar_one()
        return {
            "total": total,
            "active": active,
            "inactive": total - active,
            "byStatus": by_status,
            "withProblems": with_problems,
        }

    def get_with_stats(self, device_id: int) -> Dict[str, Any]:
        device = self.get(device_id)
        return self.with_stats([device])[0]

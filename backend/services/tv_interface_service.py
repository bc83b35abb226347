"""
TV interface and interface mark services.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import func, select

from backend.persistence.db import utcnow
from backend.persistence.models import DiagnosticStep, TVInterface, TVInterfaceMark
from backend.services.change_log_service import ChangeAction
from backend.services.crud import CrudService
from backend.services.errors import NotFoundError, ValidationError
from backend.services.problem_service import require_active_device


class TVInterfaceService(CrudService):
    model = TVInterface
    entity_type = "tv_interface"
    label = "TV interface"
    search_fields = ("name", "description")
    sortable_fields = ("id", "name", "type", "created_at", "updated_at")
    default_sort = "name"
    filter_fields = ("device_id", "type")

    @property
    def duplicate_message(self) -> str:
        return "A TV interface with this name already exists for this device"

    def validate_references(self, values: Dict[str, Any], existing=None):
        if existing is None or "device_id" in values:
            require_active_device(self.db, values.get("device_id"))
        elif not values:
            require_active_device(self.db, existing.device_id)

    def dependents(self, entity) -> Dict[str, int]:
        steps = self.db.execute(
            select(func.count(DiagnosticStep.id)).where(
                DiagnosticStep.tv_interface_id == entity.id, DiagnosticStep.is_active.is_(True)
            )
        ).scalar_one()
        return {"steps": steps}

    def after_soft_delete(self, entity):
        for mark in entity.marks:
            mark.is_active = False

    def by_device(self, device_id: int, include_inactive: bool = False) -> List[TVInterface]:
        stmt = select(TVInterface).where(TVInterface.device_id == device_id)
        if not include_inactive:
            stmt = stmt.where(TVInterface.is_active.is_(True))
        return list(
            self.db.execute(stmt.order_by(TVInterface.name.asc(), TVInterface.id.asc()))
            .scalars()
            .all()
        )

    def toggle(self, interface_id: int) -> TVInterface:
        """Flip is_active; re-activating can collide with a newer interface's name."""
        interface = self.get(interface_id)
        if not interface.is_active:
            require_active_device(self.db, interface.device_id)
        with self._writing():
            interface.is_active = not interface.is_active
            interface.updated_at = utcnow()
            self.db.flush()
            self.change_log.record(
                self.entity_type,
                interface.id,
                ChangeAction.RESTORE if interface.is_active else ChangeAction.SOFT_DELETE,
            )
        self.db.refresh(interface)
        return interface

    def duplicate(self, interface_id: int, name: Optional[str] = None) -> TVInterface:
        """Copy an interface and its active marks; default name is "<name> (copy)"."""
        source = self.get(interface_id)
        new_name = (name or "").strip() or f"{source.name} (copy)"
        with self._writing():
            copy = TVInterface(
                device_id=source.device_id,
                name=new_name,
                description=source.description,
                type=source.type,
                screenshot_url=source.screenshot_url,
                screenshot_data=source.screenshot_data,
                clickable_areas=list(source.clickable_areas or []),
                highlight_areas=list(source.highlight_areas or []),
            )
            self.db.add(copy)
            self.db.flush()
            for mark in source.marks:
                if not mark.is_active:
                    continue
                self.db.add(
                    TVInterfaceMark(
                        tv_interface_id=copy.id,
                        step_id=mark.step_id,
                        name=mark.name,
                        description=mark.description,
                        mark_type=mark.mark_type,
                        shape=mark.shape,
                        position=dict(mark.position or {}),
                        size=dict(mark.size) if mark.size else None,
                        color=mark.color,
                        display_order=mark.display_order,
                    )
                )
            self.db.flush()
            self.change_log.record(
                self.entity_type, copy.id, ChangeAction.CREATE, {"duplicatedFrom": source.id}
            )
        self.db.refresh(copy)
        return copy

    def stats(self) -> Dict[str, Any]:
        total = self.db.execute(select(func.count(TVInterface.id))).scalar_one()
        active = self.db.execute(
            select(func.count(TVInterface.id)).where(TVInterface.is_active.is_(True))
        ).scalar_one()
        by_type = dict(
            self.db.execute(
                select(TVInterface.type, func.count(TVInterface.id))
                .where(TVInterface.is_active.is_(True))
                .group_by(TVInterface.type)
            ).all()
        )
        by_device = dict(
            self.db.execute(
                select(TVInterface.device_id, func.count(TVInterface.id))
                .where(TVInterface.is_active.is_(True))
                .group_by(TVInterface.device_id)
            ).all()
        )
        return {
            "total": total,
            "active": active,
            "inactive": total - active,
            "byType": by_type,
            "byDevice": {str(device_id): count for device_id, count in by_device.items()},
        }

    def export_one(self, interface_id: int) -> Dict[str, Any]:
        interface = self.get(interface_id)
        return {
            **interface.to_dict(),
            "marks": [mark.to_dict() for mark in interface.marks if mark.is_active],
        }


class TVInterfaceMarkService(CrudService):
    model = TVInterfaceMark
    entity_type = "tv_interface_mark"
    label = "Mark"
    search_fields = ("name", "description")
    sortable_fields = ("id", "name", "display_order", "created_at")
    default_sort = "display_order"
    filter_fields = ("tv_interface_id", "step_id", "mark_type")
    order_field = "display_order"

    def validate_references(self, values: Dict[str, Any], existing=None):
        if existing is None or "tv_interface_id" in values or not values:
            interface_id = values.get("tv_interface_id", getattr(existing, "tv_interface_id", None))
            interface = self.db.get(TVInterface, interface_id) if interface_id is not None else None
            if interface is None or not interface.is_active:
                raise NotFoundError("TV interface not found")
        if values.get("step_id") is not None and self.db.get(DiagnosticStep, values["step_id"]) is None:
            raise ValidationError("The specified step was not found")

    def prepare_create(self, values: Dict[str, Any]) -> Dict[str, Any]:
        if values.get("display_order") is None:
            current = self.db.execute(
                select(func.coalesce(func.max(TVInterfaceMark.display_order), 0)).where(
                    TVInterfaceMark.tv_interface_id == values["tv_interface_id"],
                    TVInterfaceMark.is_active.is_(True),
                )
            ).scalar_one()
            values["display_order"] = current + 1
        return values

    def for_interface(self, interface_id: int) -> List[TVInterfaceMark]:
        return list(
            self.db.execute(
                select(TVInterfaceMark)
                .where(
                    TVInterfaceMark.tv_interface_id == interface_id,
                    TVInterfaceMark.is_active.is_(True),
                )
                .order_by(TVInterfaceMark.display_order.asc(), TVInterfaceMark.id.asc())
            )
            .scalars()
            .all()
        )

    def get_in(self, interface_id: int, mark_id: int) -> TVInterfaceMark:
        mark = self.get(mark_id)
        if mark.tv_interface_id != interface_id:
            raise NotFoundError(self.not_found_message)
        return mark

    def reorder_scope(self, scope):
        if not scope or scope.get("tv_interface_id") is None:
            raise ValidationError("tv_interface_id is required to reorder marks")
        return [TVInterfaceMark.tv_interface_id == scope["tv_interface_id"]]

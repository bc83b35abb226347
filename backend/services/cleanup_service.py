"""
Destructive maintenance operations used from the admin dashboard.
"""

from typing import Any, Dict, List

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from backend.persistence.db import CATALOG_TABLES, Database
from backend.persistence.models import (
    ChangeLog,
    DiagnosticSession,
    DiagnosticStep,
    Device,
    Problem,
    Remote,
    SiteSetting,
    TVInterface,
    TVInterfaceMark,
    User,
)
from backend.services.change_log_service import ChangeAction, ChangeLogService
from backend.utils.verbosity_logger import get_logger

logger = get_logger("backend.services.cleanup_service")

# Children before parents
CLEAR_ORDER = [
    DiagnosticSession,
    TVInterfaceMark,
    DiagnosticStep,
    Problem,
    TVInterface,
    Remote,
    Device,
    User,
    SiteSetting,
    ChangeLog,
]


class CleanupService:
    def __init__(self, db: Session):
        self.db = db

    def reset_tv_interfaces(self) -> Dict[str, Any]:
        """
        Remove every TV interface (and its marks) and give each active device a
        single default home screen interface.  Runs in the caller's transaction.
        """
        removed_marks = self.db.execute(
            delete(TVInterfaceMark).execution_options(synchronize_session=False)
        ).rowcount
        removed = self.db.execute(
            delete(TVInterface).execution_options(synchronize_session=False)
        ).rowcount
        devices = (
            self.db.execute(
                select(Device)
                .where(Device.is_active.is_(True))
                .order_by(Device.order_index.asc(), Device.id.asc())
            )
            .scalars()
            .all()
        )
        created: List[Dict[str, Any]] = []
        for device in devices:
            interface = TVInterface(
                device_id=device.id,
                name="Home screen",
                description=f"Default home screen for {device.name}",
                type="home",
                clickable_areas=[],
                highlight_areas=[],
            )
            self.db.add(interface)
            self.db.flush()
            created.append({"id": interface.id, "device_id": device.id, "name": interface.name})
        ChangeLogService(self.db).record(
            "tv_interface",
            None,
            ChangeAction.DELETE,
            {"removed": removed, "created": len(created)},
        )
        logger.info("Replaced %d TV interfaces with %d defaults", removed, len(created))
        return {
            "deleted": removed,
            "deletedMarks": removed_marks,
            "created": len(created),
            "interfaces": created,
        }

    def clear_all(self, database: Database) -> Dict[str, Any]:
        """Delete every row of every catalog table, children first."""
        cleared = []
        for model in CLEAR_ORDER:
            count = self.db.execute(
                delete(model).execution_options(synchronize_session=False)
            ).rowcount
            cleared.append({"table": model.__tablename__, "deleted": count})
            logger.info("Table %s cleared (%d rows)", model.__tablename__, count)
        self.db.commit()
        row_counts = database.row_counts(CATALOG_TABLES)
        return {
            "clearedTables": cleared,
            "rowCounts": row_counts,
            "isEmpty": all(count in (0, "N/A") for count in row_counts.values()),
        }

"""
Change log service.

Every catalog mutation appends a change_logs row in the same transaction as
the mutation itself, so the log never records a write that was rolled back.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from fastapi.encoders import jsonable_encoder
from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.persistence.models import ChangeLog


class ChangeAction(str, Enum):
    """Enumeration of change log actions"""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    SOFT_DELETE = "SOFT_DELETE"
    RESTORE = "RESTORE"
    REORDER = "REORDER"
    BULK_UPDATE = "BULK_UPDATE"


class ChangeLogService:
    """
    Service for writing and reading change log entries.
    """

    def __init__(self, db: Session):
        self.db = db

    def record(
        self,
        entity_type: str,
        entity_id: Optional[int],
        action: ChangeAction,
        changes: Optional[Dict[str, Any]] = None,
    ) -> ChangeLog:
        """
        Stage a change log entry on the current session; the caller commits.

        Args:
            entity_type: Table-level name of the entity ("device", "problem", ...)
            entity_id: Primary key of the affected row, None for bulk actions
            action: What happened
            changes: JSON-serializable detail (new values, id lists, ...)
        """
        entry = ChangeLog(
            entity_type=entity_type,
            entity_id=entity_id,
            action=action.value,
            changes=jsonable_encoder(changes) if changes is not None else None,
        )
        self.db.add(entry)
        return entry

    def history(
        self, entity_type: Optional[str] = None, entity_id: Optional[int] = None, limit: int = 50
    ) -> List[ChangeLog]:
        """Most recent entries first."""
        stmt = select(ChangeLog)
        if entity_type:
            stmt = stmt.where(ChangeLog.entity_type == entity_type)
        if entity_id is not None:
            stmt = stmt.where(ChangeLog.entity_id == entity_id)
        stmt = stmt.order_by(ChangeLog.created_at.desc(), ChangeLog.id.desc()).limit(limit)
        return list(self.db.execute(stmt).scalars().all())

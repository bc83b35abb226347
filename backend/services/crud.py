"""
Generic CRUD service shared by the catalog entities.

Subclasses declare the model, the searchable/sortable columns, the column
that carries display order and how dependents block a soft delete.  All
writes go through _writing(), which commits once and turns database
IntegrityErrors into DuplicateError/ConstraintError.
"""

from contextlib import contextmanager
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backend.persistence.db import utcnow
from backend.services.change_log_service import ChangeAction, ChangeLogService
from backend.services.errors import (
    ConstraintError,
    NotFoundError,
    ValidationError,
    translate_integrity_error,
)
from backend.utils.verbosity_logger import get_logger

logger = get_logger("backend.services.crud")

MAX_PAGE_SIZE = 100


class CrudService:
    """
    List/get/create/update/delete/restore/bulk/reorder for one model.
    """

    model = None
    entity_type = "entity"
    label = "Entity"
    search_fields: Sequence[str] = ("name",)
    sortable_fields: Sequence[str] = ("id", "created_at", "updated_at")
    default_sort = "id"
    default_order = "asc"
    filter_fields: Sequence[str] = ()
    order_field: Optional[str] = None

    def __init__(self, db: Session):
        self.db = db
        self.change_log = ChangeLogService(db)

    # ---- messages -----------------------------------------------------

    @property
    def not_found_message(self) -> str:
        return f"{self.label} not found"

    @property
    def duplicate_message(self) -> str:
        return f"{self.label} with this name already exists"

    # ---- write helper -------------------------------------------------

    @contextmanager
    def _writing(self):
        """Commit on success; roll back and translate integrity errors on failure."""
        try:
            yield
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise translate_integrity_error(exc, self.duplicate_message) from exc
        except Exception:
            self.db.rollback()
            raise

    def _values(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Map API field names onto mapped attributes, dropping unknown keys."""
        values = {}
        for key, value in data.items():
            attr = self.model.attribute_name(key)
            if attr and attr not in ("id", "created_at", "updated_at"):
                values[attr] = value
        return values

    # ---- queries ------------------------------------------------------

    def _apply_filters(self, stmt, filters: Dict[str, Any]):
        filters = dict(filters or {})
        include_inactive = filters.pop("include_inactive", False)
        if "is_active" in filters and filters["is_active"] is not None:
            stmt = stmt.where(self.model.is_active == filters.pop("is_active"))
        else:
            filters.pop("is_active", None)
            if not include_inactive:
                stmt = stmt.where(self.model.is_active.is_(True))

        term = filters.pop("search", None)
        if term:
            pattern = f"%{term.strip()}%"
            stmt = stmt.where(
                or_(*[self.model.column_for(f).ilike(pattern) for f in self.search_fields])
            )

        for key, value in filters.items():
            if value is None or key not in self.filter_fields:
                continue
            stmt = stmt.where(self.model.column_for(key) == value)
        return stmt

    def _order_by(self, sort: Optional[str], order: Optional[str]):
        sort = sort or self.default_sort
        if sort not in self.sortable_fields:
            raise ValidationError(
                f"Invalid sort field '{sort}'",
                allowed=list(self.sortable_fields),
            )
        direction = (order or self.default_order).lower()
        if direction not in ("asc", "desc"):
            raise ValidationError("Sort order must be 'asc' or 'desc'")
        column = self.model.column_for(sort)
        return [column.asc() if direction == "asc" else column.desc(), self.model.id.asc()]

    def find_all(
        self,
        filters: Optional[Dict[str, Any]] = None,
        page: int = 1,
        limit: int = 20,
        sort: Optional[str] = None,
        order: Optional[str] = None,
    ) -> Tuple[List[Any], int, int]:
        """Return (rows, total, effective_limit) for one page."""
        if page < 1:
            raise ValidationError("page must be >= 1")
        limit = max(1, min(int(limit), MAX_PAGE_SIZE))
        stmt = self._apply_filters(select(self.model), filters)
        total = self.db.execute(
            select(func.count()).select_from(stmt.subquery())
        ).scalar_one()
        rows = (
            self.db.execute(
                stmt.order_by(*self._order_by(sort, order))
                .limit(limit)
                .offset((page - 1) * limit)
            )
            .scalars()
            .all()
        )
        return list(rows), total, limit

    def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        stmt = self._apply_filters(select(self.model), filters)
        return self.db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()

    def find_by_id(self, entity_id: int):
        return self.db.get(self.model, entity_id)

    def get(self, entity_id: int):
        entity = self.find_by_id(entity_id)
        if entity is None:
            raise NotFoundError(self.not_found_message)
        return entity

    def search(self, term: str, limit: int = 20, offset: int = 0) -> List[Any]:
        if not term or len(term.strip()) < 2:
            raise ValidationError("Search query must be at least 2 characters long")
        stmt = self._apply_filters(select(self.model), {"search": term})
        stmt = stmt.order_by(*self._order_by(None, None)).limit(limit).offset(offset)
        return list(self.db.execute(stmt).scalars().all())

    def export(self) -> List[Any]:
        stmt = self._apply_filters(select(self.model), {}).order_by(
            *self._order_by(None, None)
        )
        return list(self.db.execute(stmt).scalars().all())

    # ---- writes -------------------------------------------------------

    def validate_references(self, values: Dict[str, Any], existing=None):
        """Hook: raise ValidationError when referenced parents are missing or inactive."""

    def prepare_create(self, values: Dict[str, Any]) -> Dict[str, Any]:
        """Hook: fill derived values before insert."""
        return values

    def create(self, data: Dict[str, Any]):
        values = self._values(data)
        self.validate_references(values)
        values = self.prepare_create(values)
        with self._writing():
            entity = self.model(**values)
            self.db.add(entity)
            self.db.flush()
            self.change_log.record(self.entity_type, entity.id, ChangeAction.CREATE, data)
        self.db.refresh(entity)
        logger.info("%s %s created", self.label, entity.id)
        return entity

    def update(self, entity_id: int, data: Dict[str, Any]):
        entity = self.get(entity_id)
        values = self._values(data)
        if not values:
            raise ValidationError("No fields to update")
        self.validate_references(values, existing=entity)
        with self._writing():
            self._assign(entity, values)
            self.db.flush()
            self.change_log.record(self.entity_type, entity.id, ChangeAction.UPDATE, data)
        self.db.refresh(entity)
        return entity

    def _assign(self, entity, values: Dict[str, Any]):
        for attr, value in values.items():
            setattr(entity, attr, value)
        entity.updated_at = utcnow()

    def dependents(self, entity) -> Dict[str, int]:
        """Hook: active dependent row counts that block a soft delete."""
        return {}

    def can_delete(self, entity_id: int) -> Dict[str, Any]:
        entity = self.get(entity_id)
        blocking = {name: count for name, count in self.dependents(entity).items() if count}
        if not blocking:
            return {"canDelete": True}
        described = ", ".join(f"{count} active {name}" for name, count in blocking.items())
        return {
            "canDelete": False,
            "reason": f"{self.label} has {described}",
            "suggestion": f"Archive or reassign the {', '.join(blocking)} first, "
            "or delete with force=true",
            "dependents": blocking,
        }

    def delete(self, entity_id: int, force: bool = False):
        """
        Soft delete unless ``force``; a soft delete is refused while active
        dependents exist.  Returns the row as it was before a hard delete.
        """
        entity = self.get(entity_id)
        if not force:
            check = self.can_delete(entity_id)
            if not check["canDelete"]:
                raise ConstraintError(
                    check["reason"],
                    suggestion=check["suggestion"],
                    canForceDelete=True,
                )
            return self.soft_delete(entity)
        return self.hard_delete(entity)

    def soft_delete(self, entity):
        with self._writing():
            entity.is_active = False
            entity.updated_at = utcnow()
            self.after_soft_delete(entity)
            self.change_log.record(self.entity_type, entity.id, ChangeAction.SOFT_DELETE)
        self.db.refresh(entity)
        logger.info("%s %s archived", self.label, entity.id)
        return entity

    def after_soft_delete(self, entity):
        """Hook run inside the soft-delete transaction."""

    def hard_delete(self, entity):
        snapshot = entity.to_dict()
        with self._writing():
            self.db.delete(entity)
            self.db.flush()
            self.after_hard_delete(snapshot)
            self.change_log.record(self.entity_type, snapshot["id"], ChangeAction.DELETE)
        logger.info("%s %s deleted permanently", self.label, snapshot["id"])
        return snapshot

    def after_hard_delete(self, snapshot: Dict[str, Any]):
        """Hook run inside the hard-delete transaction."""

    def restore(self, entity_id: int):
        entity = self.find_by_id(entity_id)
        if entity is None or entity.is_active:
            raise NotFoundError(f"{self.label} not found or already active")
        self.validate_references({}, existing=entity)
        with self._writing():
            entity.is_active = True
            entity.updated_at = utcnow()
            self.db.flush()
            self.change_log.record(self.entity_type, entity.id, ChangeAction.RESTORE)
        self.db.refresh(entity)
        return entity

    def bulk_update(self, updates: Iterable[Tuple[int, Dict[str, Any]]]) -> List[Any]:
        """Apply every (id, data) pair in one transaction; any failure rolls back all."""
        updates = list(updates)
        entities = []
        with self._writing():
            for entity_id, data in updates:
                entity = self.get(entity_id)
                values = self._values(data)
                self.validate_references(values, existing=entity)
                self._assign(entity, values)
                entities.append(entity)
            self.db.flush()
            self.change_log.record(
                self.entity_type,
                None,
                ChangeAction.BULK_UPDATE,
                {"ids": [entity_id for entity_id, _ in updates]},
            )
        for entity in entities:
            self.db.refresh(entity)
        return entities

    def reorder_scope(self, scope: Optional[Dict[str, Any]]):
        """Hook: extra WHERE clauses restricting which rows a reorder may touch."""
        return []

    def reorder(self, ids: Sequence[int], scope: Optional[Dict[str, Any]] = None) -> List[Any]:
        """
        Set the order column to 1..n following ``ids``.  Active rows in scope
        that are not listed keep their relative order after the listed ones.
        """
        if not self.order_field:
            raise ValidationError(f"{self.label} records cannot be reordered")
        if not ids:
            raise ValidationError("An array of IDs is required")
        if len(set(ids)) != len(ids):
            raise ValidationError("Duplicate IDs in reorder request")

        order_column = self.model.column_for(self.order_field)
        conditions = [self.model.is_active.is_(True), *self.reorder_scope(scope)]
        rows = (
            self.db.execute(
                select(self.model)
                .where(and_(*conditions))
                .order_by(order_column.asc(), self.model.id.asc())
            )
            .scalars()
            .all()
        )
        by_id = {row.id: row for row in rows}
        missing = [entity_id for entity_id in ids if entity_id not in by_id]
        if missing:
            raise ValidationError(
                f"{self.label} IDs not found in scope: {missing}", invalidIds=missing
            )

        listed = set(ids)
        ordered = [by_id[entity_id] for entity_id in ids] + [
            row for row in rows if row.id not in listed
        ]
        with self._writing():
            for position, row in enumerate(ordered, start=1):
                setattr(row, self.order_field, position)
                row.updated_at = utcnow()
            self.db.flush()
            self.change_log.record(
                self.entity_type, None, ChangeAction.REORDER, {"ids": list(ids), "scope": scope}
            )
        return ordered

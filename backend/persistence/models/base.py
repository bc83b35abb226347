"""
Shared column mixins and serialization for the catalog models.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Boolean, Column, DateTime, inspect

from backend.persistence.db import utcnow


class TimestampMixin:
    """created_at / updated_at maintained by SQLAlchemy."""

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class SoftDeleteMixin:
    """Rows are archived by clearing is_active instead of being removed."""

    is_active = Column(Boolean, default=True, nullable=False, index=True)


def _serialize(value):
    if isinstance(value, datetime):
        return value.isoformat() + "Z" if value.tzinfo is None else value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    return value


class SerializerMixin:
    """to_dict() keyed by database column name (``metadata`` rather than ``extra_metadata``)."""

    def to_dict(self) -> dict:
        mapper = inspect(self).mapper
        return {
            attr.columns[0].name: _serialize(getattr(self, attr.key))
            for attr in mapper.column_attrs
        }

    @classmethod
    def column_for(cls, name: str):
        """Map a column name from the API to the mapped attribute, or None."""
        for attr in inspect(cls).column_attrs:
            if attr.columns[0].name == name or attr.key == name:
                return getattr(cls, attr.key)
        return None

    @classmethod
    def attribute_name(cls, name: str):
        for attr in inspect(cls).column_attrs:
            if attr.columns[0].name == name or attr.key == name:
                return attr.key
        return None

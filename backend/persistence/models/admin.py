"""
Administrative models: admin users, site settings and the change log written
on every catalog mutation.
"""

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text

from backend.persistence.db import Base, utcnow
from backend.persistence.models.base import (
    SerializerMixin,
    SoftDeleteMixin,
    TimestampMixin,
)


class User(SerializerMixin, SoftDeleteMixin, TimestampMixin, Base):
    """Admin panel user."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(100), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=True)
    role = Column(String(20), nullable=False, default="editor")
    last_login = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}', role='{self.role}')>"


class SiteSetting(SerializerMixin, TimestampMixin, Base):
    """Key/value site configuration editable from the admin panel."""

    __tablename__ = "site_settings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    key = Column(String(100), unique=True, nullable=False, index=True)
    value = Column(JSON, nullable=True)
    description = Column(Text, nullable=True)

    def __repr__(self):
        return f"<SiteSetting(key='{self.key}')>"


class ChangeLog(SerializerMixin, Base):
    """
    Append-only record of catalog mutations.
    """

    __tablename__ = "change_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    entity_type = Column(String(50), nullable=False, index=True)
    entity_id = Column(Integer, nullable=True, index=True)
    action = Column(String(20), nullable=False)
    changes = Column(JSON, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)

    def __repr__(self):
        return (
            f"<ChangeLog(entity_type='{self.entity_type}', entity_id={self.entity_id}, "
            f"action='{self.action}')>"
        )

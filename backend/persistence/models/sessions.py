"""
Diagnostic session model: one user's walk through a problem's steps.
"""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
)

from backend.persistence.db import Base, utcnow
from backend.persistence.models.base import (
    SerializerMixin,
    SoftDeleteMixin,
    TimestampMixin,
)


class DiagnosticSession(SerializerMixin, SoftDeleteMixin, TimestampMixin, Base):
    """
    This class holds the object mapping for the diagnostic_sessions table.
    success stays NULL until the session is completed.
    """

    __tablename__ = "diagnostic_sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String(64), unique=True, nullable=False, index=True)
    device_id = Column(
        Integer, ForeignKey("devices.id", ondelete="CASCADE"), nullable=False, index=True
    )
    problem_id = Column(
        Integer, ForeignKey("problems.id", ondelete="CASCADE"), nullable=False, index=True
    )
    start_time = Column(DateTime, nullable=False, default=utcnow)
    end_time = Column(DateTime, nullable=True)
    total_steps = Column(Integer, nullable=False, default=0)
    completed_steps = Column(Integer, nullable=False, default=0)
    success = Column(Boolean, nullable=True)
    duration = Column(Integer, nullable=True)
    user_agent = Column(String(500), nullable=True)
    ip_address = Column(String(45), nullable=True)
    feedback = Column(JSON, nullable=True)

    def __repr__(self):
        return f"<DiagnosticSession(id={self.id}, session_id='{self.session_id}')>"

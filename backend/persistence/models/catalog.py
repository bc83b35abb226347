"""
Catalog models: devices, the problems reported against them and the ordered
diagnostic steps that resolve each problem.
"""

from sqlalchemy import (
    JSON,
    Column,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import relationship

from backend.persistence.db import Base
from backend.persistence.models.base import (
    SerializerMixin,
    SoftDeleteMixin,
    TimestampMixin,
)

DEVICE_STATUSES = ("active", "inactive", "maintenance")
PROBLEM_CATEGORIES = ("critical", "moderate", "minor", "other")
PROBLEM_STATUSES = ("draft", "published", "archived")
DIFFICULTIES = ("beginner", "intermediate", "advanced")


class Device(SerializerMixin, SoftDeleteMixin, TimestampMixin, Base):
    """
    A set-top box or TV model users can pick when troubleshooting.
    Active device names are unique.
    """

    __tablename__ = "devices"
    __table_args__ = (
        Index(
            "uq_devices_active_name",
            "name",
            unique=True,
            postgresql_where=text("is_active = true"),
            sqlite_where=text("is_active = 1"),
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    brand = Column(String(255), nullable=False)
    model = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    image_url = Column(String(500), nullable=True)
    logo_url = Column(String(500), nullable=True)
    color = Column(String(100), nullable=False, default="from-gray-500 to-gray-600")
    order_index = Column(Integer, nullable=False, default=0, index=True)
    status = Column(String(20), nullable=False, default="active")
    extra_metadata = Column("metadata", JSON, nullable=True)

    problems = relationship(
        "Problem", back_populates="device", cascade="all, delete-orphan", passive_deletes=True
    )

    def __repr__(self):
        return f"<Device(id={self.id}, name='{self.name}', is_active={self.is_active})>"


class Problem(SerializerMixin, SoftDeleteMixin, TimestampMixin, Base):
    """
    A symptom reported for a device ("No signal", "Remote not responding").
    Titles are unique per device among active problems.
    """

    __tablename__ = "problems"
    __table_args__ = (
        Index(
            "uq_problems_active_device_title",
            "device_id",
            "title",
            unique=True,
            postgresql_where=text("is_active = true"),
            sqlite_where=text("is_active = 1"),
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    device_id = Column(
        Integer, ForeignKey("devices.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(20), nullable=False, default="other")
    icon = Column(String(100), nullable=False, default="HelpCircle")
    color = Column(String(100), nullable=False, default="from-blue-500 to-blue-600")
    tags = Column(JSON, nullable=False, default=list)
    priority = Column(Integer, nullable=False, default=1)
    estimated_time = Column(Integer, nullable=False, default=5)
    difficulty = Column(String(20), nullable=False, default="beginner")
    success_rate = Column(Float, nullable=False, default=100)
    completed_count = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default="draft")
    order_index = Column(Integer, nullable=False, default=0)
    extra_metadata = Column("metadata", JSON, nullable=True)

    device = relationship("Device", back_populates="problems")
    steps = relationship(
        "DiagnosticStep",
        back_populates="problem",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="DiagnosticStep.step_number",
    )

    def __repr__(self):
        return f"<Problem(id={self.id}, device_id={self.device_id}, title='{self.title}')>"


class DiagnosticStep(SerializerMixin, SoftDeleteMixin, TimestampMixin, Base):
    """
    One instruction in a problem's troubleshooting sequence.  step_number
    runs 1..n within a problem.
    """

    __tablename__ = "diagnostic_steps"

    id = Column(Integer, primary_key=True, autoincrement=True)
    problem_id = Column(
        Integer, ForeignKey("problems.id", ondelete="CASCADE"), nullable=False, index=True
    )
    device_id = Column(
        Integer, ForeignKey("devices.id", ondelete="CASCADE"), nullable=False, index=True
    )
    step_number = Column(Integer, nullable=False)
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    instruction = Column(Text, nullable=False)
    estimated_time = Column(Integer, nullable=False, default=60)
    hint = Column(Text, nullable=True)
    success_text = Column(Text, nullable=True)
    warning_text = Column(Text, nullable=True)
    remote_id = Column(
        Integer, ForeignKey("remotes.id", ondelete="SET NULL"), nullable=True
    )
    tv_interface_id = Column(
        Integer, ForeignKey("tv_interfaces.id", ondelete="SET NULL"), nullable=True
    )
    extra_metadata = Column("metadata", JSON, nullable=True)

    problem = relationship("Problem", back_populates="steps")

    def __repr__(self):
        return (
            f"<DiagnosticStep(id={self.id}, problem_id={self.problem_id}, "
            f"step_number={self.step_number})>"
        )

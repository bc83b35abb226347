"""
TV interface screenshots, the marks drawn on them and the remote controls
steps can refer to.
"""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
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

INTERFACE_TYPES = (
    "home",
    "settings",
    "channels",
    "apps",
    "guide",
    "no-signal",
    "error",
    "custom",
)
MARK_TYPES = ("point", "zone", "area")


class TVInterface(SerializerMixin, SoftDeleteMixin, TimestampMixin, Base):
    """
    A screenshot of a device's on-screen menu with clickable and highlighted
    regions.  Names are unique per device among active interfaces.
    """

    __tablename__ = "tv_interfaces"
    __table_args__ = (
        Index(
            "uq_tv_interfaces_active_device_name",
            "device_id",
            "name",
            unique=True,
            postgresql_where=text("is_active = true"),
            sqlite_where=text("is_active = 1"),
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    device_id = Column(
        Integer, ForeignKey("devices.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    type = Column(String(20), nullable=False, default="custom")
    screenshot_url = Column(String(500), nullable=True)
    screenshot_data = Column(Text, nullable=True)
    clickable_areas = Column(JSON, nullable=False, default=list)
    highlight_areas = Column(JSON, nullable=False, default=list)

    marks = relationship(
        "TVInterfaceMark",
        back_populates="tv_interface",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="TVInterfaceMark.display_order",
    )

    def __repr__(self):
        return f"<TVInterface(id={self.id}, device_id={self.device_id}, name='{self.name}')>"


class TVInterfaceMark(SerializerMixin, SoftDeleteMixin, TimestampMixin, Base):
    """A point, zone or area highlighted on a TV interface for a step."""

    __tablename__ = "tv_interface_marks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tv_interface_id = Column(
        Integer,
        ForeignKey("tv_interfaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    step_id = Column(
        Integer, ForeignKey("diagnostic_steps.id", ondelete="SET NULL"), nullable=True
    )
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    mark_type = Column(String(20), nullable=False, default="point")
    shape = Column(String(20), nullable=False, default="circle")
    position = Column(JSON, nullable=False, default=dict)
    size = Column(JSON, nullable=True)
    color = Column(String(50), nullable=False, default="#ff0000")
    display_order = Column(Integer, nullable=False, default=0)

    tv_interface = relationship("TVInterface", back_populates="marks")

    def __repr__(self):
        return f"<TVInterfaceMark(id={self.id}, tv_interface_id={self.tv_interface_id})>"


class Remote(SerializerMixin, SoftDeleteMixin, TimestampMixin, Base):
    """Remote control layout; the API surface for remotes is still a stub."""

    __tablename__ = "remotes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    device_id = Column(
        Integer, ForeignKey("devices.id", ondelete="SET NULL"), nullable=True, index=True
    )
    name = Column(String(255), nullable=False)
    manufacturer = Column(String(255), nullable=True)
    model = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    layout = Column(String(50), nullable=False, default="standard")
    buttons = Column(JSON, nullable=False, default=list)
    is_default = Column(Boolean, nullable=False, default=False)

    def __repr__(self):
        return f"<Remote(id={self.id}, name='{self.name}')>"

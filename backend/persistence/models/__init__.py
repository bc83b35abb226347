"""
Models package for the ANT Support persistence layer.

All models are re-exported here so callers can import from
``backend.persistence.models`` directly.
"""

from .admin import ChangeLog, SiteSetting, User
from .catalog import (
    DEVICE_STATUSES,
    DIFFICULTIES,
    PROBLEM_CATEGORIES,
    PROBLEM_STATUSES,
    Device,
    DiagnosticStep,
    Problem,
)
from .interfaces import INTERFACE_TYPES, MARK_TYPES, Remote, TVInterface, TVInterfaceMark
from .sessions import DiagnosticSession

__all__ = [
    # Catalog models
    "Device",
    "Problem",
    "DiagnosticStep",
    # Sessions
    "DiagnosticSession",
    # TV interfaces and remotes
    "TVInterface",
    "TVInterfaceMark",
    "Remote",
    # Administrative models
    "User",
    "SiteSetting",
    "ChangeLog",
    # Allowed values
    "DEVICE_STATUSES",
    "PROBLEM_CATEGORIES",
    "PROBLEM_STATUSES",
    "DIFFICULTIES",
    "INTERFACE_TYPES",
    "MARK_TYPES",
]

"""Service lifecycle helpers."""
from __future__ import annotations

from .runner import ServiceRunner
from .supervisor import SessionSupervisor, SupervisorOptions

__all__ = [
    "ServiceRunner",
    "SessionSupervisor",
    "SupervisorOptions",
]

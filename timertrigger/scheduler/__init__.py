"""Adaptive polling scheduler."""
from __future__ import annotations

from .delay import next_delay
from .modes import Execution, ModeCursor, resolve_execution
from .session import SchedulerSession, SessionState, SessionStats
from .suspension import SessionDeadline, SuspensionDetector, detect_missed_time

__all__ = [
    "Execution",
    "ModeCursor",
    "SchedulerSession",
    "SessionDeadline",
    "SessionState",
    "SessionStats",
    "SuspensionDetector",
    "detect_missed_time",
    "next_delay",
    "resolve_execution",
]

"""HTTP health API exposing the scheduler session status."""
from __future__ import annotations

from .health import HealthMonitor, HealthStatus, health_status_to_dict
from .server import HealthApiServer

__all__ = ["HealthApiServer", "HealthMonitor", "HealthStatus", "health_status_to_dict"]

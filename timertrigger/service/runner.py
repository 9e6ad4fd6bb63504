"""Service integration helpers binding the supervisor and the health API."""
from __future__ import annotations

from typing import Optional, Tuple

from ..api.health import HealthMonitor
from ..api.server import HealthApiServer
from .supervisor import SessionSupervisor


class ServiceRunner:
    """Convenience wrapper running a supervised session with an optional health API."""

    def __init__(
        self,
        supervisor: SessionSupervisor,
        health_api_host: Optional[str] = None,
        health_api_port: int = 0,
    ) -> None:
        self.supervisor = supervisor
        self.health = HealthMonitor(supervisor.session)
        self._api_server: Optional[HealthApiServer] = None

        if health_api_port > 0:
            host = health_api_host or '127.0.0.1'
            self._api_server = HealthApiServer(self.health, host=host, port=health_api_port)

    @property
    def health_api_address(self) -> Optional[Tuple[str, int]]:
        if self._api_server:
            return self._api_server.address
        return None

    def run(self) -> bool:
        if self._api_server:
            self._api_server.start()
        try:
            return self.supervisor.run()
        finally:
            if self._api_server:
                self._api_server.stop()

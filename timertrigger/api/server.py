"""Health/status API server for the scheduler session."""
from __future__ import annotations

import json
import threading
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Optional, Tuple
from urllib.parse import urlparse

from .health import HealthMonitor, health_status_to_dict


def _handler_factory(monitor: HealthMonitor):
    class HealthHandler(BaseHTTPRequestHandler):  # type: ignore[misc]
        """Minimal handler that exposes the /health JSON endpoint."""

        protocol_version = "HTTP/1.1"

        def end_headers(self):  # noqa: D401
            """Send standard headers plus CORS allowances."""
            self.send_header('Access-Control-Allow-Origin', '*')
            self.send_header('Access-Control-Allow-Methods', 'GET, OPTIONS')
            self.send_header('Access-Control-Allow-Headers', 'Content-Type')
            super().end_headers()

        def do_OPTIONS(self):  # pylint: disable=invalid-name
            self.send_response(HTTPStatus.NO_CONTENT)
            self.send_header('Content-Length', '0')
            self.end_headers()

        def do_GET(self):  # pylint: disable=invalid-name
            path = urlparse(self.path).path.rstrip('/')
            if path != '/health':
                self.send_error(HTTPStatus.NOT_FOUND, 'Endpoint not found')
                return
            status = monitor.snapshot()
            body = json.dumps(health_status_to_dict(status), ensure_ascii=False).encode('utf-8')
            self.send_response(HTTPStatus.OK)
            self.send_header('Content-Type', 'application/json; charset=utf-8')
            self.send_header('Content-Length', str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def log_message(self, format, *args):  # noqa: A003 - silence default logging
            return

    return HealthHandler


class HealthApiServer:
    """Threaded HTTP server that publishes the scheduler health snapshot."""

    def __init__(
        self,
        monitor: HealthMonitor,
        host: str = '127.0.0.1',
        port: int = 0,
    ) -> None:
        handler = _handler_factory(monitor)
        self._server = ThreadingHTTPServer((host, port), handler)
        self._server.daemon_threads = True
        self._thread: Optional[threading.Thread] = None

    @property
    def address(self) -> Tuple[str, int]:
        return self._server.server_address[:2]  # type: ignore[return-value]

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._thread = threading.Thread(target=self._server.serve_forever, name='health-api', daemon=True)
        self._thread.start()

    def stop(self) -> None:
        if self._thread and self._thread.is_alive():
            self._server.shutdown()
            self._thread.join(timeout=2.0)
        self._server.server_close()

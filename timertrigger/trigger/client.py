"""Blocking HTTP GET client used by each scheduler tick."""
from __future__ import annotations

import http.client
from dataclasses import dataclass
from typing import Iterable, Protocol
from urllib.parse import urlsplit

from ..constants import RESPONSE_SNIPPET_LIMIT, TRIGGER_PATH


@dataclass(frozen=True, slots=True)
class TriggerResponse:
    """Status and decoded body returned by the device."""

    status: int
    body: str

    @property
    def snippet(self) -> str:
        if len(self.body) > RESPONSE_SNIPPET_LIMIT:
            return self.body[:RESPONSE_SNIPPET_LIMIT] + '...'
        return self.body


class TriggerClient(Protocol):
    """Anything able to issue one trigger request."""

    def send(self, url: str) -> TriggerResponse:  # pragma: no cover - protocol signature
        ...


def build_trigger_url(
    base_url: str,
    *,
    device_id: int,
    device_port: int,
    epc_list: Iterable[str],
    duration_sec: int,
    qvalue: int,
    rfmode: int,
) -> str:
    """Return the ``/tempsense/start`` URL for one tick."""

    base = base_url.rstrip('/')
    epcs = ','.join(epc_list)
    return (
        f"{base}{TRIGGER_PATH}?deviceId={device_id}&devicePort={device_port}"
        f"&epcList={epcs}&duration={duration_sec}&qValue={qvalue}&rfMode={rfmode}"
    )


class HttpTriggerClient:
    """Issue GET requests with separate connect and request timeouts.

    Any non-2xx status is returned as data. Transport failures propagate as
    ``OSError`` (timeouts included) or ``http.client.HTTPException``.
    """

    def __init__(self, connect_timeout_s: float = 5.0, request_timeout_s: float = 30.0) -> None:
        if connect_timeout_s <= 0:
            raise ValueError('connect_timeout_s must be positive')
        if request_timeout_s <= 0:
            raise ValueError('request_timeout_s must be positive')
        self._connect_timeout_s = connect_timeout_s
        self._request_timeout_s = request_timeout_s

    @property
    def connect_timeout_s(self) -> float:
        return self._connect_timeout_s

    @property
    def request_timeout_s(self) -> float:
        return self._request_timeout_s

    def _connection(self, scheme: str, host: str, port) -> http.client.HTTPConnection:
        if scheme == 'https':
            return http.client.HTTPSConnection(host, port, timeout=self._connect_timeout_s)
        return http.client.HTTPConnection(host, port, timeout=self._connect_timeout_s)

    def send(self, url: str) -> TriggerResponse:
        parsed = urlsplit(url)
        if parsed.scheme not in {'http', 'https'}:
            raise ValueError(f"Unsupported URL scheme: {parsed.scheme or '<none>'}")
        if not parsed.hostname:
            raise ValueError(f"URL has no host: {url}")
        target = parsed.path or '/'
        if parsed.query:
            target = f"{target}?{parsed.query}"

        connection = self._connection(parsed.scheme, parsed.hostname, parsed.port)
        try:
            connection.connect()
            if connection.sock is not None:
                connection.sock.settimeout(self._request_timeout_s)
            connection.request('GET', target, headers={'Accept': '*/*'})
            response = connection.getresponse()
            raw = response.read()
            charset = response.headers.get_content_charset() or 'utf-8'
            status = response.status
        finally:
            connection.close()
        try:
            body = raw.decode(charset, errors='replace')
        except LookupError:
            body = raw.decode('utf-8', errors='replace')
        return TriggerResponse(status=status, body=body)

"""Health/status primitives for the scheduler session."""
from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from ..scheduler.session import SchedulerSession


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()


def _from_epoch(value: Optional[float]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromtimestamp(value)


def health_status_to_dict(status: "HealthStatus") -> Dict[str, Any]:
    """Serialise a HealthStatus dataclass to basic Python types."""

    payload = asdict(status)
    payload['started_at'] = _isoformat(status.started_at)
    payload['end_time'] = _isoformat(status.end_time)
    payload['last_tick_at'] = _isoformat(status.last_tick_at)
    return payload


@dataclass(slots=True)
class HealthStatus:
    """Snapshot of the scheduler session health."""

    state: str
    mode: int
    ticks: int
    failures: int
    extensions: int
    extended_s: float
    started_at: Optional[datetime]
    end_time: Optional[datetime]
    last_tick_at: Optional[datetime]
    last_status: Optional[int] = None
    last_error: Optional[str] = None
    last_elapsed_ms: Optional[int] = None


class HealthMonitor:
    """Retrieve status snapshots for the health API."""

    def __init__(self, session: SchedulerSession) -> None:
        self._session = session

    @property
    def session(self) -> SchedulerSession:
        return self._session

    def snapshot(self) -> HealthStatus:
        session = self._session
        stats = session.stats
        return HealthStatus(
            state=session.state.value,
            mode=session.config.mode,
            ticks=stats.ticks,
            failures=stats.failures,
            extensions=stats.extensions,
            extended_s=stats.extended_s,
            started_at=_from_epoch(session.start_time),
            end_time=_from_epoch(session.end_time),
            last_tick_at=stats.last_tick_at,
            last_status=stats.last_status,
            last_error=stats.last_error,
            last_elapsed_ms=stats.last_elapsed_ms,
        )

"""Session supervisor: owns the bounded wait for a scheduler session."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from ..scheduler.session import SchedulerSession

logger = logging.getLogger(__name__)

FORCED_SHUTDOWN = 'Scheduler did not shut down in time, forcing shutdown.'


@dataclass(slots=True)
class SupervisorOptions:
    """Configuration options for the session supervisor."""

    poll_interval_s: float = 1.0

    def __post_init__(self) -> None:
        if self.poll_interval_s <= 0:
            raise ValueError('poll_interval_s must be positive')


class SessionSupervisor:
    """Run a :class:`SchedulerSession` and wait for it within ``end_time + shutdown_wait``."""

    def __init__(
        self,
        session: SchedulerSession,
        options: Optional[SupervisorOptions] = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._session = session
        self._options = options or SupervisorOptions()
        self._clock = clock

    @property
    def session(self) -> SchedulerSession:
        return self._session

    def _latest_shutdown(self) -> float:
        end_time = self._session.end_time
        assert end_time is not None
        return end_time + self._session.config.shutdown_wait_s

    def run(self) -> bool:
        """Start the session and block until it stops.

        Returns ``True`` when the session quiesced in time and ``False`` when
        it had to be forced. A programming error that killed the tick loop is
        re-raised here.

        A poll that returns much later than its timeout means the host was
        suspended. Forcing is then held off until the session has had one
        scheduled delay plus the grace period to tick and extend its end time.
        """

        session = self._session
        session.start()
        resume_floor = 0.0
        while True:
            latest = max(self._latest_shutdown(), resume_floor)
            polled_at = self._clock()
            timeout = min(max(latest - polled_at, 0.0), self._options.poll_interval_s)
            try:
                finished = session.wait_stopped(timeout)
            except KeyboardInterrupt:
                session.request_stop('Interrupted, shutting down scheduler.')
                continue
            if finished:
                break
            now = self._clock()
            if now - polled_at > timeout + session.slack_s:
                resume_floor = now + session.expected_gap_s + session.config.shutdown_wait_s
                logger.info(
                    "Supervisor resumed after %ds, waiting for the scheduler to catch up.",
                    int(now - polled_at),
                )
                continue
            if now > max(self._latest_shutdown(), resume_floor):
                logger.error(FORCED_SHUTDOWN)
                session.force_stop()
                return False
        if session.failure is not None:
            raise session.failure
        return not session.forced

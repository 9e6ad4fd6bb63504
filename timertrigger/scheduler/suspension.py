"""Host suspension detection and the shared session deadline."""
from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from ..constants import SLEEP_DETECTION_SLACK_S

logger = logging.getLogger(__name__)


class SessionDeadline:
    """Lock-guarded end time, expected tick gap and shutdown timer handle.

    Shared between the scheduling thread, which extends it, and the owning
    thread, which reads it to bound its wait.
    """

    def __init__(self, end_time: float, expected_gap_s: float = 0.0) -> None:
        self._lock = threading.Lock()
        self._end_time = end_time
        self._expected_gap_s = expected_gap_s
        self._timer: Optional[threading.Timer] = None

    @property
    def end_time(self) -> float:
        with self._lock:
            return self._end_time

    @property
    def expected_gap_s(self) -> float:
        with self._lock:
            return self._expected_gap_s

    @expected_gap_s.setter
    def expected_gap_s(self, value: float) -> None:
        with self._lock:
            self._expected_gap_s = value

    @property
    def timer(self) -> Optional[threading.Timer]:
        with self._lock:
            return self._timer

    def extend(self, seconds: float) -> float:
        """Push the end time back by *seconds* and return the new end time."""

        if seconds < 0:
            raise ValueError('end time can only be extended')
        with self._lock:
            self._end_time += seconds
            return self._end_time

    def swap_timer(self, timer: Optional[threading.Timer]) -> Optional[threading.Timer]:
        """Install *timer* and return the handle it replaced."""

        with self._lock:
            previous, self._timer = self._timer, timer
            return previous


def detect_missed_time(gap_s: float, expected_gap_s: float, slack_s: float = SLEEP_DETECTION_SLACK_S) -> float:
    """Return the seconds lost to suspension, or ``0.0`` for an ordinary gap."""

    if gap_s <= expected_gap_s + slack_s:
        return 0.0
    return max(gap_s - expected_gap_s, 0.0)


class SuspensionDetector:
    """Extend the session when a tick arrives much later than scheduled."""

    def __init__(
        self,
        deadline: SessionDeadline,
        rearm: Callable[[float], None],
        slack_s: float = SLEEP_DETECTION_SLACK_S,
    ) -> None:
        self._deadline = deadline
        self._rearm = rearm
        self._slack_s = slack_s

    def inspect(self, gap_s: float) -> float:
        """Check the gap since the previous tick; return the extension applied."""

        missed = detect_missed_time(gap_s, self._deadline.expected_gap_s, self._slack_s)
        if missed <= 0:
            return 0.0
        new_end = self._deadline.extend(missed)
        self._rearm(new_end)
        logger.info(
            "Detected sleep gap %ds, extending end time by %ds.",
            int(gap_s),
            int(missed),
        )
        return missed

"""Scheduler session: the self-rescheduling tick loop and its state machine."""
from __future__ import annotations

import enum
import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from ..config import TriggerConfig
from ..constants import SLEEP_DETECTION_SLACK_S
from ..trigger.client import HttpTriggerClient, TriggerClient, build_trigger_url
from .delay import next_delay
from .modes import Execution, ModeCursor, resolve_execution
from .suspension import SessionDeadline, SuspensionDetector

logger = logging.getLogger(__name__)

END_TIME_REACHED = 'Reached end time, shutting down scheduler.'
RUN_FOR_REACHED = 'Run-for reached, shutting down scheduler.'


class SessionState(str, enum.Enum):
    IDLE = 'idle'
    RUNNING = 'running'
    COMPLETING = 'completing'
    STOPPED = 'stopped'


@dataclass(slots=True)
class SessionStats:
    ticks: int = 0
    failures: int = 0
    extensions: int = 0
    extended_s: float = 0.0
    last_tick_at: Optional[datetime] = None
    last_status: Optional[int] = None
    last_error: Optional[str] = None
    last_elapsed_ms: Optional[int] = None


class SchedulerSession:
    """Drive ticks on a dedicated thread from start until the (extendable) end time.

    ``idle -> running`` happens once in :meth:`start`. The post-tick end-time
    check and the backup shutdown timer both move the session to
    ``completing`` through :meth:`request_stop`, which only acts once. The
    session is ``stopped`` when the scheduling thread has drained, or when the
    owner gives up waiting and calls :meth:`force_stop`.
    """

    def __init__(
        self,
        config: TriggerConfig,
        client: Optional[TriggerClient] = None,
        *,
        clock: Callable[[], float] = time.time,
        slack_s: float = SLEEP_DETECTION_SLACK_S,
    ) -> None:
        self._config = config
        self._client = client or HttpTriggerClient(
            connect_timeout_s=config.connect_timeout_sec,
            request_timeout_s=config.request_timeout_sec,
        )
        self._clock = clock
        self._slack_s = slack_s
        self._state = SessionState.IDLE
        self._state_lock = threading.Lock()
        self._wake = threading.Event()
        self._stopped = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._deadline: Optional[SessionDeadline] = None
        self._detector: Optional[SuspensionDetector] = None
        self._cursor = ModeCursor()
        self._tick_index = 0
        self._last_run_at: Optional[float] = None
        self._start_time: Optional[float] = None
        self._stats = SessionStats()
        self._failure: Optional[Exception] = None
        self._forced = False

    @property
    def config(self) -> TriggerConfig:
        return self._config

    @property
    def state(self) -> SessionState:
        with self._state_lock:
            return self._state

    @property
    def stats(self) -> SessionStats:
        return self._stats

    @property
    def start_time(self) -> Optional[float]:
        return self._start_time

    @property
    def end_time(self) -> Optional[float]:
        if self._deadline is None:
            return None
        return self._deadline.end_time

    @property
    def failure(self) -> Optional[Exception]:
        """Exception that terminated the tick loop, if any."""

        return self._failure

    @property
    def forced(self) -> bool:
        return self._forced

    @property
    def slack_s(self) -> float:
        return self._slack_s

    @property
    def expected_gap_s(self) -> float:
        """Delay scheduled before the next tick, ``0.0`` before the first one."""

        if self._deadline is None:
            return 0.0
        return self._deadline.expected_gap_s

    def start(self) -> None:
        with self._state_lock:
            if self._state is not SessionState.IDLE:
                raise RuntimeError('scheduler session can only be started once')
            self._state = SessionState.RUNNING
        config = self._config
        self._start_time = self._clock()
        self._deadline = SessionDeadline(self._start_time + config.run_for_s)
        self._detector = SuspensionDetector(self._deadline, self._replace_shutdown_timer, self._slack_s)
        logger.info(
            "Scheduler started: mode=%d interval=%dmin runFor=%s endTime=%s",
            config.mode,
            config.interval_min,
            config.run_for,
            datetime.fromtimestamp(self._deadline.end_time).isoformat(timespec='seconds'),
        )
        self._replace_shutdown_timer(self._deadline.end_time)
        self._thread = threading.Thread(target=self._run, name='trigger-scheduler', daemon=True)
        self._thread.start()

    def request_stop(self, reason: Optional[str] = None) -> bool:
        """Move a running session to ``completing``; later calls are no-ops."""

        with self._state_lock:
            if self._state is not SessionState.RUNNING:
                return False
            self._state = SessionState.COMPLETING
        if reason:
            logger.info(reason)
        self._wake.set()
        return True

    def force_stop(self) -> None:
        """Abandon the scheduling thread and mark the session stopped.

        The thread cannot be interrupted mid-request; it is a daemon and exits
        once its in-flight call returns, without starting another tick.
        """

        with self._state_lock:
            if self._state is SessionState.STOPPED:
                return
            self._state = SessionState.STOPPED
            self._forced = True
        self._wake.set()
        self._cancel_shutdown_timer()
        self._stopped.set()

    def wait_stopped(self, timeout: Optional[float] = None) -> bool:
        return self._stopped.wait(timeout)

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the scheduling thread itself to exit."""

        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def _replace_shutdown_timer(self, end_time: float) -> None:
        assert self._deadline is not None
        delay = max(end_time - self._clock(), 0.0)
        timer = threading.Timer(delay, lambda: self._on_shutdown_timer(timer))
        timer.name = 'trigger-shutdown'
        timer.daemon = True
        previous = self._deadline.swap_timer(timer)
        if previous is not None:
            previous.cancel()
        timer.start()

    def _cancel_shutdown_timer(self) -> None:
        if self._deadline is None:
            return
        previous = self._deadline.swap_timer(None)
        if previous is not None:
            previous.cancel()

    def _on_shutdown_timer(self, timer: threading.Timer) -> None:
        assert self._deadline is not None
        if self._deadline.timer is not timer:
            return  # replaced after an extension
        self.request_stop(RUN_FOR_REACHED)

    def _run(self) -> None:
        assert self._deadline is not None
        config = self._config
        delay_s = 0.0
        try:
            while not self._wake.wait(delay_s):
                if self.state is not SessionState.RUNNING:
                    break
                execution = self._tick()
                if self._clock() > self._deadline.end_time:
                    self.request_stop(END_TIME_REACHED)
                    break
                delay_s = next_delay(config.mode, execution.end_of_group, config.interval_s, config.intra_group_s)
                self._deadline.expected_gap_s = delay_s
        except Exception as exc:  # pylint: disable=broad-except
            self._failure = exc
            logger.exception("Scheduler loop aborted: %s", exc)
        finally:
            self._cancel_shutdown_timer()
            with self._state_lock:
                self._state = SessionState.STOPPED
            self._stopped.set()

    def _tick(self) -> Execution:
        assert self._detector is not None
        config = self._config
        now = self._clock()
        if self._last_run_at is not None:
            missed = self._detector.inspect(now - self._last_run_at)
            if missed > 0:
                self._stats.extensions += 1
                self._stats.extended_s += missed
        self._last_run_at = now

        execution = resolve_execution(config, self._cursor, self._tick_index)
        self._tick_index += 1
        epcs = execution.epc_csv
        url = build_trigger_url(
            config.base_url,
            device_id=config.device_id,
            device_port=execution.device_port,
            epc_list=execution.epc_list,
            duration_sec=config.duration_sec,
            qvalue=config.qvalue,
            rfmode=config.rfmode,
        )
        started = time.perf_counter()
        try:
            response = self._client.send(url)
        except Exception as exc:  # pylint: disable=broad-except
            elapsed_ms = int((time.perf_counter() - started) * 1000)
            message = str(exc) or type(exc).__name__
            self._stats.failures += 1
            self._stats.last_status = None
            self._stats.last_error = message
            logger.error(
                "mode=%d interval=%dmin devicePort=%d epcList=%s url=%s error=%s elapsedMs=%d",
                config.mode,
                config.interval_min,
                execution.device_port,
                epcs,
                url,
                message,
                elapsed_ms,
            )
        else:
            elapsed_ms = int((time.perf_counter() - started) * 1000)
            self._stats.last_status = response.status
            self._stats.last_error = None
            logger.info(
                "mode=%d interval=%dmin devicePort=%d epcList=%s url=%s status=%d elapsedMs=%d response=%s",
                config.mode,
                config.interval_min,
                execution.device_port,
                epcs,
                url,
                response.status,
                elapsed_ms,
                response.snippet,
            )
        self._stats.ticks += 1
        self._stats.last_tick_at = datetime.now()
        self._stats.last_elapsed_ms = elapsed_ms
        return execution

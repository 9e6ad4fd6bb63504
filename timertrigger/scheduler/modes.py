"""Mode resolution: which device port and EPCs the next tick sends."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from ..config import TriggerConfig, UnsupportedModeError
from ..constants import MODE_ALL_EPCS, MODE_ROUND_ROBIN, MODE_SCHEDULE_STEPS, MODE_SINGLE_EPC


@dataclass(slots=True)
class ModeCursor:
    """Iteration position carried from one tick to the next.

    Only :func:`resolve_execution` reads or advances it.
    """

    round_robin_index: int = 0
    step_index: int = 0
    tag_index: int = 0


@dataclass(frozen=True, slots=True)
class Execution:
    """Work item for a single tick."""

    device_port: int
    epc_list: Tuple[str, ...]
    end_of_group: bool

    def __post_init__(self) -> None:
        object.__setattr__(self, 'epc_list', tuple(self.epc_list))
        if not self.epc_list:
            raise ValueError('an execution must carry at least one EPC')

    @property
    def epc_csv(self) -> str:
        return ','.join(self.epc_list)


def single_epc(config: TriggerConfig) -> str:
    if config.single_epc and config.single_epc.strip():
        return config.single_epc.strip()
    return config.epc_list[config.single_epc_index]


def _next_round_robin(config: TriggerConfig, cursor: ModeCursor) -> Execution:
    count = len(config.epc_list)
    index = cursor.round_robin_index % count
    cursor.round_robin_index = (index + 1) % count
    return Execution(
        device_port=config.device_port,
        epc_list=(config.epc_list[index],),
        end_of_group=cursor.round_robin_index == 0,
    )


def _next_schedule_step(config: TriggerConfig, cursor: ModeCursor) -> Execution:
    steps = config.schedule_steps
    step = steps[cursor.step_index % len(steps)]
    epc = step.epc_list[cursor.tag_index]
    cursor.tag_index += 1
    end_of_group = cursor.tag_index >= len(step.epc_list)
    if end_of_group:
        cursor.tag_index = 0
        cursor.step_index = (cursor.step_index + 1) % len(steps)
    return Execution(device_port=step.device_port, epc_list=(epc,), end_of_group=end_of_group)


def resolve_execution(config: TriggerConfig, cursor: ModeCursor, tick_index: int) -> Execution:
    """Return the execution for tick *tick_index*, advancing *cursor* at most once.

    Modes 1 and 3 ignore the cursor. Mode 2 rotates through ``epc_list`` and
    mode 4 walks every EPC of every schedule step in order; both flag the last
    EPC of a pass with ``end_of_group``. *tick_index* only labels the error for
    an unsupported mode; the sequence is driven entirely by *cursor*.
    """

    if config.mode == MODE_SINGLE_EPC:
        return Execution(device_port=config.device_port, epc_list=(single_epc(config),), end_of_group=True)
    if config.mode == MODE_ROUND_ROBIN:
        return _next_round_robin(config, cursor)
    if config.mode == MODE_ALL_EPCS:
        return Execution(device_port=config.device_port, epc_list=config.epc_list, end_of_group=True)
    if config.mode == MODE_SCHEDULE_STEPS:
        return _next_schedule_step(config, cursor)
    raise UnsupportedModeError(f"Unsupported mode: {config.mode} (tick {tick_index})")

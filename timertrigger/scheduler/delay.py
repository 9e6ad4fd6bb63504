"""Delay policy between consecutive ticks."""
from __future__ import annotations

from ..config import UnsupportedModeError
from ..constants import GROUPED_MODES, SUPPORTED_MODES


def next_delay(mode: int, end_of_group: bool, interval_s: float, intra_group_s: float) -> float:
    """Seconds to wait after the tick that just finished.

    Grouped modes (2 and 4) move through a group at *intra_group_s* and pause
    for the full *interval_s* once the group is complete. Every other mode
    ticks at *interval_s*.
    """

    if mode not in SUPPORTED_MODES:
        raise UnsupportedModeError(f"Unsupported mode: {mode}")
    if mode in GROUPED_MODES and not end_of_group:
        return intra_group_s
    return interval_s

"""Parse short textual durations such as ``30s`` or ``2h``."""
from __future__ import annotations

from datetime import timedelta

_UNITS = {
    's': 'seconds',
    'm': 'minutes',
    'h': 'hours',
    'd': 'days',
}


def parse_duration(value: str) -> timedelta:
    """Return *value* (``<amount><unit>``, unit one of s/m/h/d) as a timedelta."""

    if value is None or not str(value).strip():
        raise ValueError("Duration value is required")
    text = str(value).strip().lower()
    if len(text) < 2:
        raise ValueError(f"Invalid duration: {value}")
    unit = text[-1]
    digits = text[:-1]
    # plain ASCII digits only: no sign, underscores or inner spaces
    if not (digits.isascii() and digits.isdigit()):
        raise ValueError(f"Invalid duration: {value}")
    amount = int(digits)
    if amount <= 0:
        raise ValueError(f"Duration must be positive: {value}")
    try:
        keyword = _UNITS[unit]
    except KeyError:
        raise ValueError(f"Invalid duration unit: {value}") from None
    return timedelta(**{keyword: amount})

"""Shared constants used across the timer trigger service."""
from __future__ import annotations

MODE_SINGLE_EPC = 1
MODE_ROUND_ROBIN = 2
MODE_ALL_EPCS = 3
MODE_SCHEDULE_STEPS = 4

SUPPORTED_MODES = (MODE_SINGLE_EPC, MODE_ROUND_ROBIN, MODE_ALL_EPCS, MODE_SCHEDULE_STEPS)
GROUPED_MODES = (MODE_ROUND_ROBIN, MODE_SCHEDULE_STEPS)

TRIGGER_PATH = "/tempsense/start"

SLEEP_DETECTION_SLACK_S = 30.0  # scheduling jitter tolerated before a gap counts as suspension
RESPONSE_SNIPPET_LIMIT = 200

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

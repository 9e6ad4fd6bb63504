from __future__ import annotations

import logging

import pytest

from timertrigger.config import TriggerConfig
from timertrigger.logsink import PACKAGE_LOGGER


@pytest.fixture(autouse=True)
def _reset_package_logger():
    logger = logging.getLogger(PACKAGE_LOGGER)
    yield
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def make_config():
    """Build a TriggerConfig whose timings are in seconds instead of minutes.

    Threaded tests cannot wait whole minutes, so the derived timings are
    overwritten after construction.
    """

    def _make(*, interval_s=0.05, run_for_s=0.3, shutdown_wait_s=2.0, epc_interval_s=None, **overrides):
        values = {
            'mode': 3,
            'interval_min': 1,
            'run_for': '1h',
            'base_url': 'http://device',
            'epc_list': ('EPC-A',),
        }
        values.update(overrides)
        config = TriggerConfig(**values)
        object.__setattr__(config, 'interval_s', interval_s)
        object.__setattr__(config, 'run_for_s', run_for_s)
        object.__setattr__(config, 'shutdown_wait_s', shutdown_wait_s)
        if epc_interval_s is not None:
            object.__setattr__(config, 'epc_interval_s', epc_interval_s)
        return config

    return _make

"""Console and daily file logging for scheduler runs."""
from __future__ import annotations

import logging
import os
import sys
from datetime import date
from pathlib import Path
from typing import Callable, Optional, Union

from .constants import LOG_DATE_FORMAT, LOG_FORMAT

PACKAGE_LOGGER = 'timertrigger'


class DailyFileHandler(logging.FileHandler):
    """Append records to ``<log_dir>/<YYYY-MM-DD>.txt``, switching files at midnight."""

    def __init__(
        self,
        log_dir: Union[str, Path],
        encoding: str = 'utf-8',
        today: Callable[[], date] = date.today,
    ) -> None:
        self._log_dir = Path(log_dir)
        self._today = today
        self._current_date = today()
        super().__init__(self._path_for(self._current_date), encoding=encoding, delay=True)

    @property
    def current_path(self) -> Path:
        return Path(self.baseFilename)

    def _path_for(self, day: date) -> Path:
        return self._log_dir / f"{day:%Y-%m-%d}.txt"

    def _open(self):
        self._log_dir.mkdir(parents=True, exist_ok=True)
        return super()._open()

    def emit(self, record: logging.LogRecord) -> None:
        day = self._today()
        if day != self._current_date:
            # Handler.handle() holds the handler lock while emit() runs.
            if self.stream is not None:
                self.stream.close()
                self.stream = None  # type: ignore[assignment]
            self._current_date = day
            self.baseFilename = os.path.abspath(self._path_for(day))
        super().emit(record)


def build_formatter() -> logging.Formatter:
    return logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)


def configure_logging(
    log_dir: Union[str, Path],
    level: int = logging.INFO,
    console: bool = True,
    stream: Optional[object] = None,
) -> logging.Logger:
    """Route the package logger to stdout and a daily file under *log_dir*."""

    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    formatter = build_formatter()
    if console:
        console_handler = logging.StreamHandler(stream or sys.stdout)  # type: ignore[arg-type]
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)
    file_handler = DailyFileHandler(log_dir)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)
    logger.setLevel(level)
    logger.propagate = False
    return logger

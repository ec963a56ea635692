from __future__ import annotations

import logging
import sys
from typing import Iterable

LOGGER_NAME = "aidon"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _default_logger_name() -> logging.Logger:
    return logging.getLogger(LOGGER_NAME)


class ConsoleLog:
    """Configure console logging for the service."""

    def __init__(self, level: str = "INFO", quiet: bool = False, debug_modules: Iterable[str] | None = None):
        self.level = level.upper()
        self.quiet = quiet
        self.debug_modules = list(debug_modules or [])

    def setup(self) -> logging.Logger:
        # Root logger handles all levels; handlers control visibility.
        root = logging.getLogger()
        root.handlers.clear()
        root.setLevel(logging.DEBUG)

        if not self.quiet:
            handler = logging.StreamHandler(sys.stdout)
            handler.setLevel(getattr(logging, self.level, logging.INFO))
            handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
            root.addHandler(handler)

        # paho and urllib3 are chatty at DEBUG; only opt in explicitly.
        for name in ("paho", "urllib3"):
            if name not in self.debug_modules:
                logging.getLogger(name).setLevel(logging.INFO)

        for name in self.debug_modules:
            logging.getLogger(name).setLevel(logging.DEBUG)

        return _default_logger_name()


def get_logger(name: str) -> logging.Logger:
    """Child of the service logger; obeys the global logging setup."""
    if name == LOGGER_NAME or name.startswith(LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")

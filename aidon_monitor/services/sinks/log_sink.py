# aidon_monitor/services/sinks/log_sink.py

from __future__ import annotations

import json
import logging

from aidon_monitor.models.errors import HanError
from aidon_monitor.models.reading import Reading


class LogSink:
    """Writes readings and errors to the log."""

    name = "log"
    enabled = True

    def __init__(self, log, label: str = "Meter data", log_readings: bool = True):
        self.log = log
        self.label = label
        # Readings drop to DEBUG when another sink already forwards them.
        self.reading_level = logging.INFO if log_readings else logging.DEBUG

    def handle_reading(self, reading: Reading) -> None:
        self.log.log(self.reading_level, "%s: %s", self.label, json.dumps(reading.to_payload()))

    def handle_error(self, error: HanError) -> None:
        self.log.error("Meter error [%s]: %s", error.kind, error.message)

    def close(self) -> None:
        pass

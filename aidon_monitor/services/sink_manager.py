# aidon_monitor/services/sink_manager.py

from __future__ import annotations

from typing import Iterable, List

from aidon_monitor.models.errors import HanError
from aidon_monitor.models.reading import Reading


class SinkManager:
    """Fans readings and errors out to every enabled sink."""

    def __init__(self, sinks: Iterable, log):
        self.log = log
        self.sinks: List = [s for s in sinks if getattr(s, "enabled", True)]
        self.readings = 0
        self.errors = 0

    # ------------------------------------------------------------------
    def handle_reading(self, reading: Reading) -> None:
        self.readings += 1
        for sink in self.sinks:
            try:
                sink.handle_reading(reading)
            except Exception as exc:
                self.log.warning("Sink %s failed to handle reading: %s", sink.name, exc)

    def handle_error(self, error: HanError) -> None:
        self.errors += 1
        for sink in self.sinks:
            try:
                sink.handle_error(error)
            except Exception as exc:
                self.log.warning("Sink %s failed to handle %s: %s", sink.name, error.kind, exc)

    # ------------------------------------------------------------------
    def close(self) -> None:
        for sink in self.sinks:
            try:
                sink.close()
            except Exception as exc:
                self.log.warning("Sink %s failed to close: %s", sink.name, exc)

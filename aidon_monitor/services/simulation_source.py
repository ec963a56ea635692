# aidon_monitor/services/simulation_source.py

from __future__ import annotations

import logging
from typing import Optional

from aidon_monitor.services.byte_source import DataCallback, FaultCallback
from aidon_monitor.services.scheduler import Scheduler, TimerHandle

DEFAULT_SIMULATION_INTERVAL_MS = 10000

# Captured Aidon 7534 frame (705 bytes) with its transmitted CRC.
SAMPLE_FRAME_LINES = (
    "/ADN9 7534",
    "",
    "0-0:1.0.0(221229172240W)",
    "1-0:1.8.0(00006405.403*kWh)",
    "1-0:2.8.0(00003209.076*kWh)",
    "1-0:3.8.0(00000030.274*kVArh)",
    "1-0:4.8.0(00001005.451*kVArh)",
    "1-0:1.7.0(0002.655*kW)",
    "1-0:2.7.0(0000.000*kW)",
    "1-0:3.7.0(0000.000*kVAr)",
    "1-0:4.7.0(0000.696*kVAr)",
    "1-0:21.7.0(0000.202*kW)",
    "1-0:22.7.0(0000.000*kW)",
    "1-0:41.7.0(0000.661*kW)",
    "1-0:42.7.0(0000.000*kW)",
    "1-0:61.7.0(0001.802*kW)",
    "1-0:62.7.0(0000.000*kW)",
    "1-0:23.7.0(0000.068*kVAr)",
    "1-0:24.7.0(0000.000*kVAr)",
    "1-0:43.7.0(0000.000*kVAr)",
    "1-0:44.7.0(0000.253*kVAr)",
    "1-0:63.7.0(0000.000*kVAr)",
    "1-0:64.7.0(0000.492*kVAr)",
    "1-0:32.7.0(233.7*V)",
    "1-0:52.7.0(233.1*V)",
    "1-0:72.7.0(233.1*V)",
    "1-0:31.7.0(000.9*A)",
    "1-0:51.7.0(003.0*A)",
    "1-0:71.7.0(007.9*A)",
    "!538C",
    "",
)
SAMPLE_FRAME = "\r\n".join(SAMPLE_FRAME_LINES).encode("ascii")


class SimulationByteSource:
    """
    Stand-in for the HAN port: emits one canned frame per interval.

    Frames go through the same data callback the serial source uses, so the
    pipeline cannot tell the two apart.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        *,
        interval_ms: int = DEFAULT_SIMULATION_INTERVAL_MS,
        frame: bytes = SAMPLE_FRAME,
        log: Optional[logging.Logger] = None,
    ):
        self.scheduler = scheduler
        self.interval_ms = interval_ms
        self.frame = bytes(frame)
        self.log = log or logging.getLogger(__name__)
        self.frames_sent = 0
        self._handle: Optional[TimerHandle] = None
        self._open = False
        self._on_data: Optional[DataCallback] = None
        self._on_fault: Optional[FaultCallback] = None

    def attach(self, on_data: DataCallback, on_fault: FaultCallback) -> None:
        self._on_data = on_data
        self._on_fault = on_fault

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self) -> None:
        if self._open:
            return
        self._open = True
        self.log.info("Simulation started: one frame every %d ms", self.interval_ms)
        self._schedule()

    def close(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if self._open:
            self._open = False
            self.log.info("Simulation stopped")

    # ------------------------------------------------------------------
    def _schedule(self) -> None:
        self._handle = self.scheduler.call_later(self.interval_ms / 1000.0, self._emit)

    def _emit(self) -> None:
        self._handle = None
        if not self._open:
            return
        self.frames_sent += 1
        self.log.debug("[SIM-HAN] emitting frame #%d (%d bytes)", self.frames_sent, len(self.frame))
        if self._on_data:
            self._on_data(self.frame)
        self._schedule()

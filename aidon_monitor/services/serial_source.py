# aidon_monitor/services/serial_source.py

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

import serial

from aidon_monitor.config import SerialConfig
from aidon_monitor.models.errors import OpenFailure, SourceFault
from aidon_monitor.services.byte_source import DataCallback, FaultCallback


class SerialByteSource:
    """HAN port reader: a background thread hands raw chunks to the pipeline."""

    def __init__(
        self,
        cfg: SerialConfig,
        log: Optional[logging.Logger] = None,
        serial_factory: Callable[..., serial.Serial] = serial.Serial,
    ):
        self.cfg = cfg
        self.log = log or logging.getLogger(__name__)
        self._factory = serial_factory
        self._port: Optional[serial.Serial] = None
        self._thread: Optional[threading.Thread] = None
        self._stop: Optional[threading.Event] = None
        self._on_data: Optional[DataCallback] = None
        self._on_fault: Optional[FaultCallback] = None

    # ------------------------------------------------------------------
    def attach(self, on_data: DataCallback, on_fault: FaultCallback) -> None:
        self._on_data = on_data
        self._on_fault = on_fault

    @property
    def is_open(self) -> bool:
        return self._port is not None and self._stop is not None and not self._stop.is_set()

    def open(self) -> None:
        if self.is_open:
            return
        self.log.info("Init serial port")
        try:
            port = self._factory(
                port=self.cfg.device,
                baudrate=self.cfg.baud_rate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                timeout=self.cfg.read_timeout,
            )
        except (serial.SerialException, OSError, ValueError) as exc:
            raise OpenFailure(f"Cannot open {self.cfg.device}: {exc}") from exc

        # One stop flag per reader thread; a stale reader only sees its own.
        stop = threading.Event()
        self._port = port
        self._stop = stop
        self._thread = threading.Thread(
            target=self._read_loop,
            args=(port, stop),
            name=f"serial-reader:{self.cfg.device}",
            daemon=True,
        )
        self._thread.start()
        self.log.info("Serial port opened on %s@%s", self.cfg.device, self.cfg.baud_rate)

    def close(self) -> None:
        stop, self._stop = self._stop, None
        if stop is not None:
            stop.set()
        port, self._port = self._port, None
        thread, self._thread = self._thread, None
        if port is None:
            return
        try:
            port.close()
        except (serial.SerialException, OSError) as exc:
            self.log.warning("Serial port close failed: %s", exc)
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self.cfg.read_timeout + 1.0)
        self.log.info("Serial port closed")

    # ------------------------------------------------------------------
    def _read_loop(self, port: serial.Serial, stop: threading.Event) -> None:
        while not stop.is_set():
            try:
                chunk = port.read(port.in_waiting or 1)
            except (serial.SerialException, OSError, TypeError) as exc:
                if stop.is_set():
                    break
                stop.set()
                self.log.debug("Serial port error: %s", exc)
                if self._on_fault:
                    self._on_fault(SourceFault(f"Serial port error: {exc}", link_closed=True))
                break
            if chunk and self._on_data and not stop.is_set():
                self._on_data(bytes(chunk))

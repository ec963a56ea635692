# aidon_monitor/services/pipeline.py
"""
HAN pipeline wiring.

    byte source -> FrameAssembler -> CrcValidator -> FieldDecoder -> sink
                        |                 |               |
                        +------- errors --+---------------+--> sink

The Watchdog is kicked by every chunk and every decoded frame, and owns the
close/reopen cycle of the byte source. All of it runs on the scheduler
thread; the byte source only posts into it.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from aidon_monitor.config import TimingConfig
from aidon_monitor.models.errors import ChecksumMismatch, DecodeFailure, HanError, SourceFault
from aidon_monitor.models.profile import DeviceProfile
from aidon_monitor.models.reading import Reading
from aidon_monitor.services.crc_validator import CrcValidator
from aidon_monitor.services.field_decoder import DEFAULT_METER_TIMEZONE, FieldDecoder
from aidon_monitor.services.frame_assembler import FrameAssembler
from aidon_monitor.services.scheduler import Scheduler
from aidon_monitor.services.watchdog import Watchdog


class HanPipeline:
    def __init__(
        self,
        profile: DeviceProfile,
        source,
        sink,
        scheduler: Scheduler,
        *,
        timing: Optional[TimingConfig] = None,
        meter_timezone: str = DEFAULT_METER_TIMEZONE,
        max_buffer_bytes: Optional[int] = None,
        on_link_down: Optional[Callable[[], None]] = None,
        log: Optional[logging.Logger] = None,
    ):
        timing = timing or TimingConfig()
        self.profile = profile
        self.source = source
        self.sink = sink
        self.scheduler = scheduler
        self.log = log or logging.getLogger(__name__)

        self.validator = CrcValidator(profile, self.log)
        self.decoder = FieldDecoder(profile, meter_timezone, self.log)
        self.assembler = FrameAssembler(
            profile,
            scheduler,
            self._handle_frame,
            self._report,
            timeout_ms=timing.frame_timeout_ms,
            max_buffer_bytes=max_buffer_bytes,
            log=self.log,
        )
        self.watchdog = Watchdog(
            source,
            scheduler,
            self._report,
            timeout_ms=timing.watchdog_timeout_ms,
            on_link_down=on_link_down,
            log=self.log,
        )

    # ------------------------------------------------------------------
    def start(self) -> bool:
        self.source.attach(self._on_source_data, self._on_source_fault)
        self.log.info("HAN pipeline starting (profile %s)", self.profile.name)
        return self.watchdog.start()

    def shutdown(self) -> None:
        self.log.info("HAN pipeline shutting down")
        self.watchdog.shutdown()
        self.assembler.reset()

    def ingest(self, chunk: bytes) -> None:
        self.watchdog.kick()
        self.assembler.ingest(chunk)

    def process_frame(self, frame: bytes) -> Reading:
        """Validate and decode one complete frame; raises on failure."""
        self.validator.validate(frame)
        return self.decoder.decode(frame)

    # ------------------------------------------------------------------
    def _on_source_data(self, chunk: bytes) -> None:
        self.scheduler.post(self.ingest, bytes(chunk))

    def _on_source_fault(self, fault: SourceFault) -> None:
        self.scheduler.post(self.watchdog.fault, fault)

    def _handle_frame(self, frame: bytes) -> None:
        try:
            reading = self.process_frame(frame)
        except ChecksumMismatch as exc:
            # Data did arrive, so the link is alive.
            self.watchdog.kick()
            self._report(exc)
            return
        except DecodeFailure as exc:
            self.log.debug("Parse error: %s", exc.message)
            self._report(exc)
            return

        self.watchdog.kick()
        self.sink.handle_reading(reading)

    def _report(self, error: HanError) -> None:
        self.sink.handle_error(error)

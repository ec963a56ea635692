# aidon_monitor/services/frame_assembler.py

from __future__ import annotations

import logging
from typing import Callable, Optional

from aidon_monitor.models.errors import FrameTimeout, HanError
from aidon_monitor.models.profile import DeviceProfile
from aidon_monitor.services.scheduler import Alarm, Scheduler

DEFAULT_FRAME_TIMEOUT_MS = 2000


class FrameAssembler:
    """
    Accumulates raw chunks until a complete frame of the profile is present.

    The per-assembly alarm is armed by the first chunk after the buffer was
    last cleared. If it fires before a frame is extracted the partial data is
    discarded and reported as ``FrameTimeout``.
    """

    def __init__(
        self,
        profile: DeviceProfile,
        scheduler: Scheduler,
        on_frame: Callable[[bytes], None],
        on_error: Callable[[HanError], None],
        *,
        timeout_ms: int = DEFAULT_FRAME_TIMEOUT_MS,
        max_buffer_bytes: Optional[int] = None,
        log: Optional[logging.Logger] = None,
    ):
        self.profile = profile
        self.on_frame = on_frame
        self.on_error = on_error
        self.timeout_ms = timeout_ms
        self.max_buffer_bytes = max_buffer_bytes or profile.frame_length * 4
        self.log = log or logging.getLogger(__name__)
        self.buffer = bytearray()
        self._alarm = Alarm(scheduler, timeout_ms / 1000.0, self._timed_out)

    # ------------------------------------------------------------------
    @property
    def assembling(self) -> bool:
        return self._alarm.armed

    def ingest(self, chunk: bytes) -> None:
        if not chunk:
            return
        self.buffer.extend(chunk)
        if not self._alarm.armed:
            self._alarm.arm()

        while True:
            frame = self._extract()
            if frame is None:
                break
            self.on_frame(frame)

        if len(self.buffer) > self.max_buffer_bytes:
            self._trim()

    def reset(self) -> None:
        self._alarm.cancel()
        self.buffer = bytearray()

    # ------------------------------------------------------------------
    def _find_frame_start(self) -> Optional[int]:
        marker = self.profile.header_marker
        identifier = self.profile.identifier
        pos = self.buffer.find(marker)
        while pos != -1:
            window = self.buffer[pos:pos + len(identifier)]
            if len(window) < len(identifier):
                return None
            if window == identifier:
                return pos
            self.log.debug("Header at offset %d is not %r; skipping", pos, identifier)
            pos = self.buffer.find(marker, pos + 1)
        return None

    def _carry_over(self, rest: bytearray) -> bytearray:
        """Keep trailing bytes only if they can start the next frame."""
        marker = self.profile.header_marker
        pos = rest.find(marker)
        if pos != -1:
            return rest[pos:]
        for size in range(min(len(marker) - 1, len(rest)), 0, -1):
            if marker.startswith(bytes(rest[-size:])):
                return rest[-size:]
        return bytearray()

    def _extract(self) -> Optional[bytes]:
        start = self._find_frame_start()
        if start is None:
            return None
        end = start + self.profile.frame_length
        if len(self.buffer) < end:
            return None

        frame = bytes(self.buffer[start:end])
        self._alarm.cancel()
        self.buffer = self._carry_over(self.buffer[end:])
        if self.buffer:
            self._alarm.arm()
        return frame

    def _trim(self) -> None:
        marker = self.profile.header_marker
        drop = self._find_frame_start()
        if drop is None:
            last = self.buffer.rfind(marker)
            if last != -1 and len(self.buffer) - last < len(self.profile.identifier):
                drop = last
            else:
                drop = len(self.buffer) - (len(marker) - 1)
        if drop <= 0:
            return
        self.log.debug("Discarding %d leading bytes that cannot start a frame", drop)
        del self.buffer[:drop]

    def _timed_out(self) -> None:
        discarded = bytes(self.buffer)
        self.buffer = bytearray()
        text = discarded.decode("ascii", errors="replace")
        self.log.debug("Frame timeout after %d ms, %d bytes discarded", self.timeout_ms, len(discarded))
        self.on_error(FrameTimeout(f"Timeout, buffer: {text}", detail=discarded))

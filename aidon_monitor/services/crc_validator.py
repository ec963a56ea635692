# aidon_monitor/services/crc_validator.py

from __future__ import annotations

import logging

import crcmod

from aidon_monitor.models.errors import ChecksumMismatch
from aidon_monitor.models.profile import DeviceProfile

# CRC-16/ARC: poly 0x8005 reflected, init 0x0000, no final xor.
_crc16_arc = crcmod.mkCrcFun(
    0x18005,
    initCrc=0x0000,
    rev=True,
    xorOut=0x0000,
)


def crc16(data: bytes) -> int:
    return _crc16_arc(bytes(data))


def format_crc(value: int, digits: int = 4) -> str:
    return f"{value:0{digits}X}"


class CrcValidator:
    """Checks the CRC-16 trailer of a frame candidate."""

    def __init__(self, profile: DeviceProfile, log: logging.Logger | None = None):
        self.profile = profile
        self.log = log or logging.getLogger(__name__)

    def checksum_range(self, frame: bytes) -> tuple[int, int]:
        """Return (start, end) of the header-through-trailer span, end exclusive."""
        start = frame.find(self.profile.header_marker)
        if start == -1:
            raise ChecksumMismatch("CRC check failed: header marker missing", detail=bytes(frame))
        trailer = frame.find(self.profile.trailer_marker, start)
        if trailer == -1:
            raise ChecksumMismatch("CRC check failed: trailer marker missing", detail=bytes(frame))
        return start, trailer + len(self.profile.trailer_marker)

    def compute(self, frame: bytes) -> str:
        start, end = self.checksum_range(frame)
        return format_crc(crc16(frame[start:end]), self.profile.checksum_digits)

    def validate(self, frame: bytes) -> None:
        """Raise ChecksumMismatch unless the transmitted CRC matches."""
        start, end = self.checksum_range(frame)
        digits = self.profile.checksum_digits
        received = bytes(frame[end:end + digits]).decode("ascii", errors="replace")
        calculated = format_crc(crc16(frame[start:end]), digits)

        if received != calculated:
            self.log.debug("CRC Error: Read %s, Calc %s", received, calculated)
            raise ChecksumMismatch(
                f"CRC check failed (read {received!r}, calculated {calculated})",
                received=received,
                calculated=calculated,
                detail=bytes(frame),
            )

# aidon_monitor/services/field_decoder.py

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from aidon_monitor.models.errors import DecodeFailure
from aidon_monitor.models.profile import DeviceProfile, TagSpec
from aidon_monitor.models.reading import Reading

DEFAULT_METER_TIMEZONE = "Europe/Helsinki"

WINTER_FLAG = b"W"
SUMMER_FLAG = b"S"
DST_SHIFT = timedelta(hours=1)

_NUMBER = re.compile(rb"[+-]?\d+(?:\.\d+)?")


class FieldDecoder:
    """
    Decodes a validated frame into a Reading using the profile's tag table.

    Every value is located by the first occurrence of ``<tag>(`` and read
    from the fixed-width window that follows. A missing tag or a window that
    is not a plain decimal fails the whole frame.
    """

    def __init__(self, profile: DeviceProfile, meter_timezone: str = DEFAULT_METER_TIMEZONE, log=None):
        self.profile = profile
        self.log = log or logging.getLogger(__name__)
        try:
            self.zone = ZoneInfo(meter_timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown meter timezone '{meter_timezone}'") from exc

    # ------------------------------------------------------------------
    def _value_start(self, frame: bytes, spec: TagSpec) -> int:
        needle = spec.tag + self.profile.opening_delimiter
        idx = frame.find(needle)
        if idx == -1:
            raise DecodeFailure(f"Tag {spec.tag.decode('ascii')} ({spec.field}) not found in frame")
        return idx + len(needle)

    def _decode_decimal(self, frame: bytes, spec: TagSpec) -> float:
        start = self._value_start(frame, spec)
        window = bytes(frame[start:start + spec.width])
        if not _NUMBER.fullmatch(window):
            raise DecodeFailure(
                f"Value for {spec.field} is not a number: {window.decode('ascii', errors='replace')!r}"
            )
        return float(window.decode("ascii"))

    def _utc_offset(self, local: datetime, flag: bytes) -> timedelta:
        wall = local.replace(tzinfo=self.zone)
        standard = wall.utcoffset() - (wall.dst() or timedelta(0))
        if flag == SUMMER_FLAG:
            return standard + DST_SHIFT
        return standard

    def decode_timestamp(self, frame: bytes) -> tuple[str, datetime]:
        spec = self.profile.timestamp_tag
        if spec is None:
            raise DecodeFailure(f"Profile {self.profile.name} defines no timestamp tag")

        start = self._value_start(frame, spec)
        digits = bytes(frame[start:start + spec.width])
        flag = bytes(frame[start + spec.width:start + spec.width + 1])
        text = digits.decode("ascii", errors="replace")

        if len(digits) != spec.width or not digits.isdigit():
            raise DecodeFailure(f"Meter timestamp is not {spec.width} digits: {text!r}")
        if flag not in (WINTER_FLAG, SUMMER_FLAG):
            raise DecodeFailure(f"Unknown DST flag {flag.decode('ascii', errors='replace')!r} after timestamp {text}")

        try:
            local = datetime(
                2000 + int(text[0:2]),
                int(text[2:4]),
                int(text[4:6]),
                int(text[6:8]),
                int(text[8:10]),
                int(text[10:12]),
            )
        except ValueError as exc:
            raise DecodeFailure(f"Meter timestamp {text} is not a valid date/time: {exc}") from exc

        instant = (local - self._utc_offset(local, flag)).replace(tzinfo=timezone.utc)
        return text, instant

    # ------------------------------------------------------------------
    def decode(self, frame: bytes) -> Reading:
        meter_datetime, instant = self.decode_timestamp(frame)

        values: dict[str, float] = {}
        for spec in self.profile.measurement_tags:
            values[spec.field] = self._decode_decimal(frame, spec)

        reading = Reading(
            profile=self.profile.name,
            meter_datetime=meter_datetime,
            timestamp=instant,
            values=values,
            payload_keys={spec.field: spec.key for spec in self.profile.measurement_tags},
        )
        self.log.debug("Parsed data: %s", reading.as_dict())
        return reading

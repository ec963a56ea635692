# aidon_monitor/models/profile.py
"""Frame layout tables for supported meter profiles.

A profile is pure data: the header/identifier the assembler looks for, the
fixed frame length, and the tag table the decoder walks. Supporting another
meter means adding another ``DeviceProfile`` here.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

DECIMAL = "decimal"
TIMESTAMP = "timestamp"


@dataclass(frozen=True)
class TagSpec:
    field: str
    tag: bytes
    width: int              # characters in the value window after "("
    kind: str = DECIMAL
    payload_key: str | None = None

    @property
    def key(self) -> str:
        return self.payload_key or self.field


@dataclass(frozen=True)
class DeviceProfile:
    name: str
    identifier: bytes       # header marker + device id, e.g. b"/ADN9 7534"
    header_marker: bytes
    frame_length: int
    tags: tuple[TagSpec, ...]
    trailer_marker: bytes = b"!"
    checksum_digits: int = 4
    opening_delimiter: bytes = b"("

    @property
    def timestamp_tag(self) -> TagSpec | None:
        for spec in self.tags:
            if spec.kind == TIMESTAMP:
                return spec
        return None

    @property
    def measurement_tags(self) -> tuple[TagSpec, ...]:
        return tuple(spec for spec in self.tags if spec.kind == DECIMAL)

    def with_overrides(self, *, identifier: bytes | None = None, frame_length: int | None = None) -> "DeviceProfile":
        changes = {}
        if identifier is not None:
            changes["identifier"] = identifier
        if frame_length is not None:
            changes["frame_length"] = frame_length
        return replace(self, **changes) if changes else self


def _d(field: str, obis: str, width: int, payload_key: str) -> TagSpec:
    return TagSpec(field=field, tag=obis.encode("ascii"), width=width, payload_key=payload_key)


AIDON_7534_TAGS: tuple[TagSpec, ...] = (
    TagSpec(field="meter_datetime", tag=b"0-0:1.0.0", width=12, kind=TIMESTAMP, payload_key="meterDateTime"),
    # Cumulative energy registers
    _d("cumulative_active_energy_in", "1-0:1.8.0", 12, "cumulativeActiveEnergyIn"),
    _d("cumulative_active_energy_out", "1-0:2.8.0", 12, "cumulativeActiveEnergyOut"),
    _d("cumulative_reactive_energy_in", "1-0:3.8.0", 12, "cumulativeReactiveEnergyIn"),
    _d("cumulative_reactive_energy_out", "1-0:4.8.0", 12, "cumulativeReactiveEnergyOut"),
    # Total instantaneous power
    _d("active_power_in", "1-0:1.7.0", 8, "activePowerIn"),
    _d("active_power_out", "1-0:2.7.0", 8, "activePowerOut"),
    _d("reactive_power_in", "1-0:3.7.0", 8, "reactivePowerIn"),
    _d("reactive_power_out", "1-0:4.7.0", 8, "reactivePowerOut"),
    # Per-phase active power
    _d("l1_active_power_in", "1-0:21.7.0", 8, "l1activePowerIn"),
    _d("l1_active_power_out", "1-0:22.7.0", 8, "l1activePowerOut"),
    _d("l2_active_power_in", "1-0:41.7.0", 8, "l2activePowerIn"),
    _d("l2_active_power_out", "1-0:42.7.0", 8, "l2activePowerOut"),
    _d("l3_active_power_in", "1-0:61.7.0", 8, "l3activePowerIn"),
    _d("l3_active_power_out", "1-0:62.7.0", 8, "l3activePowerOut"),
    # Per-phase reactive power
    _d("l1_reactive_power_in", "1-0:23.7.0", 8, "l1reactivePowerIn"),
    _d("l1_reactive_power_out", "1-0:24.7.0", 8, "l1reactivePowerOut"),
    _d("l2_reactive_power_in", "1-0:43.7.0", 8, "l2reactivePowerIn"),
    _d("l2_reactive_power_out", "1-0:44.7.0", 8, "l2reactivePowerOut"),
    _d("l3_reactive_power_in", "1-0:63.7.0", 8, "l3reactivePowerIn"),
    _d("l3_reactive_power_out", "1-0:64.7.0", 8, "l3reactivePowerOut"),
    # RMS voltage / current
    _d("l1_rms_voltage", "1-0:32.7.0", 5, "l1RmsVoltage"),
    _d("l2_rms_voltage", "1-0:52.7.0", 5, "l2RmsVoltage"),
    _d("l3_rms_voltage", "1-0:72.7.0", 5, "l3RmsVoltage"),
    _d("l1_rms_current", "1-0:31.7.0", 5, "l1RmsCurrent"),
    _d("l2_rms_current", "1-0:51.7.0", 5, "l2RmsCurrent"),
    _d("l3_rms_current", "1-0:71.7.0", 5, "l3RmsCurrent"),
)

AIDON_7534 = DeviceProfile(
    name="aidon-7534",
    identifier=b"/ADN9 7534",
    header_marker=b"/ADN9",
    frame_length=705,
    tags=AIDON_7534_TAGS,
)

PROFILES: dict[str, DeviceProfile] = {
    AIDON_7534.name: AIDON_7534,
}


def get_profile(name: str) -> DeviceProfile:
    try:
        return PROFILES[name]
    except KeyError:
        known = ", ".join(sorted(PROFILES))
        raise ValueError(f"Unknown meter profile '{name}' (known: {known})") from None

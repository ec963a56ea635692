# aidon_monitor/services/output_formatter.py

from __future__ import annotations

import json
from typing import Optional, TextIO

from aidon_monitor.models.profile import DECIMAL, DeviceProfile
from aidon_monitor.models.reading import Reading

# Units as they appear on the wire, keyed by OBIS measurement type.
_UNITS = {
    b".8.0": "kWh",
    b".7.0": "kW",
}


def _unit_for(tag: bytes, field: str) -> str:
    if "voltage" in field:
        return "V"
    if "current" in field:
        return "A"
    for suffix, unit in _UNITS.items():
        if tag.endswith(suffix):
            return unit.replace("W", "VAr") if "reactive" in field else unit
    return ""


def emit_json(reading: Reading, out: Optional[TextIO] = None) -> None:
    print(json.dumps(reading.to_payload(), indent=2), file=out)


def emit_human(reading: Reading, profile: DeviceProfile, out: Optional[TextIO] = None) -> None:
    print(f"Profile:     {reading.profile}", file=out)
    print(f"Meter clock: {reading.meter_datetime}", file=out)
    print(f"Timestamp:   {reading.timestamp.isoformat()}", file=out)
    print("", file=out)
    width = max((len(spec.field) for spec in profile.tags), default=0)
    for spec in profile.tags:
        if spec.kind != DECIMAL or spec.field not in reading.values:
            continue
        unit = _unit_for(spec.tag, spec.field)
        value = reading.values[spec.field]
        print(f"  {spec.field:<{width}}  {value:>12.3f} {unit}", file=out)

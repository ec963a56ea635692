# aidon_monitor/models/reading.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Mapping


@dataclass(frozen=True)
class Reading:
    profile: str
    meter_datetime: str             # raw YYMMDDHHMMSS from the meter clock
    timestamp: datetime             # meter clock as an aware UTC instant
    values: Mapping[str, float]
    payload_keys: Mapping[str, str] = field(default_factory=dict, compare=False, repr=False)

    def __post_init__(self):
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))
        object.__setattr__(self, "payload_keys", MappingProxyType(dict(self.payload_keys)))

    def __getitem__(self, name: str) -> float:
        return self.values[name]

    def as_dict(self) -> dict[str, Any]:
        return {
            "profile": self.profile,
            "meter_datetime": self.meter_datetime,
            "timestamp": self.timestamp.isoformat(),
            **dict(self.values),
        }

    def to_payload(self) -> dict[str, Any]:
        """Broker payload using the meter's published key names."""
        payload: dict[str, Any] = {
            "meterDateTime": self.meter_datetime,
            "timestamp": self.timestamp.isoformat(),
        }
        for name, value in self.values.items():
            payload[self.payload_keys.get(name, name)] = value
        return payload

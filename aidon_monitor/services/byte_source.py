# aidon_monitor/services/byte_source.py

from __future__ import annotations

from typing import Callable, Protocol

from aidon_monitor.models.errors import SourceFault

DataCallback = Callable[[bytes], None]
FaultCallback = Callable[[SourceFault], None]


class ByteSource(Protocol):
    """
    What the pipeline needs from a meter link.

    ``open()`` raises ``OpenFailure``; ``close()`` must be idempotent. Data
    and faults are delivered through the callbacks given to ``attach()``,
    possibly from another thread.
    """

    def attach(self, on_data: DataCallback, on_fault: FaultCallback) -> None: ...

    def open(self) -> None: ...

    def close(self) -> None: ...

    @property
    def is_open(self) -> bool: ...

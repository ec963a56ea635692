# aidon_monitor/services/watchdog.py

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Optional

from aidon_monitor.models.errors import HanError, LinkTimeout, OpenFailure, SourceFault
from aidon_monitor.services.scheduler import Alarm, Scheduler

DEFAULT_WATCHDOG_TIMEOUT_MS = 11000


class LinkState(Enum):
    IDLE = "idle"
    OPENING = "opening"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    CLOSED = "closed"


class Watchdog:
    """
    Inter-frame watchdog and link recovery state machine.

    IDLE -> OPENING -> CONNECTED, reset on any activity. Expiry while
    connected reports ``LinkTimeout`` and closes then reopens the source.
    A failed open is reported once; nothing retries it automatically. The
    owner learns the link is down through ``on_link_down``.
    """

    def __init__(
        self,
        source,
        scheduler: Scheduler,
        on_error: Callable[[HanError], None],
        *,
        timeout_ms: int = DEFAULT_WATCHDOG_TIMEOUT_MS,
        on_link_down: Optional[Callable[[], None]] = None,
        log: Optional[logging.Logger] = None,
    ):
        self.source = source
        self.on_error = on_error
        self.on_link_down = on_link_down
        self.timeout_ms = timeout_ms
        self.log = log or logging.getLogger(__name__)
        self.state = LinkState.IDLE
        self.reconnects = 0
        self._alarm = Alarm(scheduler, timeout_ms / 1000.0, self._expired)

    # ------------------------------------------------------------------
    @property
    def armed(self) -> bool:
        return self._alarm.armed

    def start(self) -> bool:
        if self.state in (LinkState.OPENING, LinkState.CONNECTED):
            return self.state is LinkState.CONNECTED
        return self._open()

    def kick(self) -> None:
        """Record activity; pushes the deadline out by a full timeout."""
        if self.state is LinkState.CONNECTED:
            self._alarm.reset()

    def fault(self, error: SourceFault) -> None:
        self.log.debug("Byte source error: %s", error.message)
        self.on_error(error)
        if error.link_closed and self.state is LinkState.CONNECTED:
            self.reconnect()

    def reconnect(self) -> None:
        self.state = LinkState.RECONNECTING
        self.reconnects += 1
        self._alarm.cancel()
        self.log.info("Re-initialising byte source (reconnect #%d)", self.reconnects)
        self.source.close()
        self._open()

    def shutdown(self) -> None:
        self._alarm.cancel()
        self.state = LinkState.CLOSED
        self.source.close()

    # ------------------------------------------------------------------
    def _open(self) -> bool:
        self.state = LinkState.OPENING
        try:
            self.source.open()
        except OpenFailure as exc:
            self.state = LinkState.IDLE
            self.log.debug("Byte source open failed: %s", exc.message)
            self.on_error(exc)
            if self.on_link_down:
                self.on_link_down()
            return False
        self.state = LinkState.CONNECTED
        self._alarm.reset()
        return True

    def _expired(self) -> None:
        if self.state is not LinkState.CONNECTED:
            return
        self.log.info("No data received for %d ms - re-init byte source.", self.timeout_ms)
        self.on_error(LinkTimeout(f"No data received for {self.timeout_ms} ms"))
        self.reconnect()

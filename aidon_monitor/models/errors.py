# aidon_monitor/models/errors.py

from __future__ import annotations


class HanError(Exception):
    """Base class for every error the pipeline reports to its sinks."""

    kind = "HanError"

    def __init__(self, message: str, *, detail: bytes | None = None):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def as_dict(self) -> dict[str, str]:
        return {"kind": self.kind, "message": self.message}


class OpenFailure(HanError):
    kind = "OpenFailure"


class FrameTimeout(HanError):
    kind = "FrameTimeout"


class ChecksumMismatch(HanError):
    kind = "ChecksumMismatch"

    def __init__(self, message: str, *, received: str | None = None, calculated: str | None = None, detail: bytes | None = None):
        super().__init__(message, detail=detail)
        self.received = received
        self.calculated = calculated


class DecodeFailure(HanError):
    kind = "DecodeFailure"


class SourceFault(HanError):
    kind = "SourceFault"

    def __init__(self, message: str, *, link_closed: bool = False):
        super().__init__(message)
        self.link_closed = link_closed


class LinkTimeout(HanError):
    kind = "LinkTimeout"

"""Error taxonomy for one OCR round trip."""

from __future__ import annotations

from enum import Enum
from typing import Any


class LensError(Exception):
    """Base class for every error raised by lensocr."""


class EncodeError(LensError):
    pass


class DimensionMismatch(EncodeError):
    def __init__(self, declared: tuple[int, int], actual: tuple[int, int] | None = None):
        self.declared = declared
        self.actual = actual
        if actual is None:
            msg = f"declared image size must be positive, got {declared[0]}x{declared[1]}"
        else:
            msg = f"declared image size {declared[0]}x{declared[1]} does not match actual {actual[0]}x{actual[1]}"
        super().__init__(msg)


class TransportErrorKind(str, Enum):
    NETWORK = "network"
    TIMEOUT = "timeout"
    HTTP_STATUS = "http_status"


class TransportError(LensError):
    def __init__(self, kind: TransportErrorKind, message: str = "", status_code: int | None = None):
        self.kind = kind
        self.status_code = status_code
        if not message:
            message = f"HTTP {status_code}" if status_code is not None else kind.value
        super().__init__(message)


class DecodeError(LensError):
    pass


class UnrecognizedShape(DecodeError):
    """The response tree does not match any known service revision."""

    def __init__(self, reason: str, snapshot: Any = None):
        self.reason = reason
        self.snapshot = snapshot
        super().__init__(reason)


class ProtocolErrorKind(str, Enum):
    RATE_LIMITED = "rate_limited"
    SESSION_EXPIRED = "session_expired"
    DECODE = "decode"
    TRANSPORT = "transport"
    ENCODE = "encode"


class ServiceRejection(DecodeError):
    """The service answered, but with a rate-limit or session rejection marker."""

    def __init__(self, kind: ProtocolErrorKind, detail: str = ""):
        self.kind = kind
        super().__init__(detail or kind.value)


class ProtocolError(LensError):
    """The single failure type surfaced by ``LensClient.submit``."""

    def __init__(self, kind: ProtocolErrorKind, cause: Exception | None = None, attempts: int = 1):
        self.kind = kind
        self.cause = cause
        self.attempts = attempts
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"{kind.value}{detail}")

    @classmethod
    def from_exception(cls, exc: LensError, attempts: int = 1) -> "ProtocolError":
        if isinstance(exc, ProtocolError):
            return exc
        if isinstance(exc, ServiceRejection):
            return cls(exc.kind, exc, attempts)
        if isinstance(exc, EncodeError):
            return cls(ProtocolErrorKind.ENCODE, exc, attempts)
        if isinstance(exc, TransportError):
            if exc.status_code == 429:
                return cls(ProtocolErrorKind.RATE_LIMITED, exc, attempts)
            if exc.status_code in (401, 403):
                return cls(ProtocolErrorKind.SESSION_EXPIRED, exc, attempts)
            return cls(ProtocolErrorKind.TRANSPORT, exc, attempts)
        return cls(ProtocolErrorKind.DECODE, exc, attempts)

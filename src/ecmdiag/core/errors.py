"""Exceptions raised while talking to an ECM and decoding its data."""

from enum import Enum


class EcmError(Exception):
    """Base exception for ecmdiag.

    ``request`` names the request that was in flight, when there was one.
    """

    request: str | None = None

    def __str__(self) -> str:
        message = super().__str__()
        if self.request:
            return f"{message} [{self.request}]"
        return message


class FrameErrorKind(str, Enum):
    """Why a frame was rejected."""

    INVALID_HEADER = "invalid_header"
    TRUNCATED = "truncated"
    CHECKSUM = "checksum"


class FrameError(EcmError):
    """Raised when received bytes do not form a valid PDU.

    The connection stays usable; the caller decides whether to repeat the request.
    """

    kind: FrameErrorKind

    def __init__(self, message: str, *, data: bytes | None = None) -> None:
        self.data = data
        super().__init__(message)


class InvalidHeaderError(FrameError):
    """Start, end-of-header or start-of-text marker is not where it must be."""

    kind = FrameErrorKind.INVALID_HEADER


class TruncatedFrameError(FrameError):
    """Declared length needs more bytes than were supplied."""

    kind = FrameErrorKind.TRUNCATED


class ChecksumError(FrameError):
    """Trailing checksum does not match the frame contents."""

    kind = FrameErrorKind.CHECKSUM


class TransportError(EcmError):
    """Raised when the byte stream fails (closed, end of stream, device fault).

    Fatal for the current connection: disconnect and reconnect.
    """

    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        self.cause = cause
        super().__init__(message)


class TransportTimeoutError(TransportError):
    """Raised when too few bytes arrive before the timeout budget runs out."""

    def __init__(self, message: str, *, received: int, expected: int) -> None:
        self.received = received
        self.expected = expected
        super().__init__(message)


class NotAcknowledgedError(EcmError):
    """Raised when the module answers a request without ACK."""

    def __init__(self, error_indicator: int | None, *, request: str | None = None, message: str | None = None) -> None:
        self.error_indicator = error_indicator
        self.request = request
        if message is None:
            indicator = "none" if error_indicator is None else f"0x{error_indicator:02X}"
            message = f"Request not acknowledged by ECM (error indicator {indicator})"
        super().__init__(message)


class TestFailedError(NotAcknowledgedError):
    """Raised when the module refuses to run an actuator test."""

    __test__ = False


class PreconditionError(EcmError):
    """Raised when an operation needs a connection or an identified module."""

    pass


class UnknownPageError(EcmError, LookupError):
    """Raised when the module's EEPROM layout has no page with the requested number."""

    def __init__(self, message: str, *, page: int) -> None:
        self.page = page
        super().__init__(message)


class DecodeError(EcmError):
    """Raised when a variable cannot be decoded from the given buffer."""

    def __init__(self, message: str, *, name: str | None = None, offset: int | None = None) -> None:
        self.name = name
        self.offset = offset
        super().__init__(message)

"""Core application functionality."""

from ecmdiag.core.config import Settings, setup_logging
from ecmdiag.core.errors import (
    ChecksumError,
    DecodeError,
    EcmError,
    FrameError,
    FrameErrorKind,
    InvalidHeaderError,
    NotAcknowledgedError,
    PreconditionError,
    TestFailedError,
    TransportError,
    TransportTimeoutError,
    TruncatedFrameError,
    UnknownPageError,
)

__all__ = [
    "ChecksumError",
    "DecodeError",
    "EcmError",
    "FrameError",
    "FrameErrorKind",
    "InvalidHeaderError",
    "NotAcknowledgedError",
    "PreconditionError",
    "Settings",
    "TestFailedError",
    "TransportError",
    "TransportTimeoutError",
    "TruncatedFrameError",
    "UnknownPageError",
    "setup_logging",
]

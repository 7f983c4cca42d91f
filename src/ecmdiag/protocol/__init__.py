"""DDFI protocol implementation."""

from ecmdiag.protocol.codec import decode_value, type_size
from ecmdiag.protocol.constants import ACK, EOH, EOT, SOH, SOT, Command, DataType, TestFunction
from ecmdiag.protocol.frames import (
    Pdu,
    calculate_checksum,
    check_header,
    command_request,
    page_request,
    runtime_data_request,
    state_request,
    version_request,
)

# PduTransport imported lazily to avoid circular import with serial.reader
# (serial.reader -> protocol.constants -> protocol.__init__ -> transport -> serial.reader)


def __getattr__(name: str):
    if name == "PduTransport":
        from ecmdiag.protocol.transport import PduTransport

        return PduTransport
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "ACK",
    "Command",
    "DataType",
    "EOH",
    "EOT",
    "Pdu",
    "PduTransport",
    "SOH",
    "SOT",
    "TestFunction",
    "calculate_checksum",
    "check_header",
    "command_request",
    "decode_value",
    "page_request",
    "runtime_data_request",
    "state_request",
    "type_size",
    "version_request",
]

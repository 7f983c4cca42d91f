"""PDU construction and parsing for the DDFI protocol."""

from functools import reduce

from ecmdiag.core.errors import ChecksumError, InvalidHeaderError, TruncatedFrameError
from ecmdiag.protocol.constants import (
    ACK,
    CLIENT_ID,
    ECM_ID,
    EOH,
    EOT,
    FRAME_OVERHEAD,
    HEADER_LEN,
    MAX_PAYLOAD_LEN,
    SOH,
    SOT,
    Command,
    TestFunction,
)


def calculate_checksum(data: bytes) -> int:
    """XOR of all bytes (callers pass everything after SOH)."""
    return reduce(lambda acc, b: acc ^ b, data, 0)


def check_header(header: bytes) -> int:
    """
    Validate the fixed 6-byte header window and return the declared payload length.

    Raises:
        InvalidHeaderError: If SOH, EOH or SOT is not at offset 0, 4 or 5
        TruncatedFrameError: If fewer than 6 bytes are given
    """
    if len(header) < HEADER_LEN:
        raise TruncatedFrameError(f"Header needs {HEADER_LEN} bytes, got {len(header)}", data=bytes(header))
    if header[0] != SOH or header[4] != EOH or header[5] != SOT:
        raise InvalidHeaderError(f"Invalid header received: {bytes(header[:HEADER_LEN]).hex()}", data=bytes(header))
    return header[3]


class Pdu:
    """
    Represents a single DDFI protocol data unit.

    Frame structure:
    [SOH][SENDER][RECIPIENT][LEN][EOH][SOT][PAYLOAD...][CHECKSUM]

    Requests carry ``<command...> EOT`` as payload, responses carry
    ``<status> <data...> EOT`` where status is ACK or the module's error indicator.

    Attributes:
        sender: Sender id (0x00 for this client, 0x42 for the ECM)
        recipient: Recipient id
        payload: Everything between SOT and the checksum
    """

    def __init__(self, payload: bytes = b"", sender: int = CLIENT_ID, recipient: int = ECM_ID):
        if len(payload) > MAX_PAYLOAD_LEN:
            raise ValueError(f"Payload too long: {len(payload)} bytes (max {MAX_PAYLOAD_LEN})")
        self.sender = sender
        self.recipient = recipient
        self.payload = bytes(payload)

    def to_bytes(self) -> bytes:
        """
        Convert PDU to bytes for transmission.

        Returns:
            Complete frame as bytes

        Example:
            >>> version_request().to_bytes().hex()
            '01004202ff025603e8'
        """
        frame = bytearray([SOH, self.sender, self.recipient, len(self.payload), EOH, SOT])
        frame.extend(self.payload)
        frame.append(calculate_checksum(frame[1:]))
        return bytes(frame)

    @classmethod
    def from_bytes(cls, data: bytes) -> "Pdu":
        """
        Parse a PDU from received bytes.

        Bytes after the declared frame end are ignored.

        Args:
            data: Raw frame bytes

        Returns:
            Parsed Pdu

        Raises:
            InvalidHeaderError: If a marker is missing
            TruncatedFrameError: If the declared length exceeds the supplied bytes
            ChecksumError: If the checksum does not match
        """
        length = check_header(data)
        frame_len = length + FRAME_OVERHEAD
        if len(data) < frame_len:
            raise TruncatedFrameError(
                f"Frame declares {length} payload bytes but only {len(data)}/{frame_len} bytes supplied",
                data=bytes(data),
            )

        frame = bytes(data[:frame_len])
        expected = calculate_checksum(frame[1:-1])
        if frame[-1] != expected:
            raise ChecksumError(
                f"Checksum mismatch: got 0x{frame[-1]:02X}, expected 0x{expected:02X}",
                data=frame,
            )

        return cls(payload=frame[HEADER_LEN:-1], sender=frame[1], recipient=frame[2])

    @property
    def is_ack(self) -> bool:
        """Whether the status byte of a response is ACK."""
        return bool(self.payload) and self.payload[0] == ACK

    @property
    def error_indicator(self) -> int | None:
        """Status byte of a response (ACK when acknowledged), None for an empty payload."""
        return self.payload[0] if self.payload else None

    @property
    def data(self) -> bytes:
        """Response data without the status byte and trailing EOT."""
        body = self.payload[1:]
        if body and body[-1] == EOT:
            body = body[:-1]
        return body

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Pdu):
            return NotImplemented
        return (self.sender, self.recipient, self.payload) == (other.sender, other.recipient, other.payload)

    def __hash__(self) -> int:
        return hash((self.sender, self.recipient, self.payload))

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"Pdu(src=0x{self.sender:02X}, dst=0x{self.recipient:02X}, payload={self.payload.hex()})"


# ============================================================================
# Request builders
# ============================================================================


def _request(*body: int) -> Pdu:
    return Pdu(payload=bytes([*body, EOT]))


def version_request() -> Pdu:
    """Ask the module for its version string."""
    return _request(Command.GET_VERSION)


def state_request() -> Pdu:
    """Ask the module whether it is busy."""
    return _request(Command.GET_STATE)


def runtime_data_request() -> Pdu:
    """Ask the module for a realtime data snapshot."""
    return _request(Command.GET_RUNTIME_DATA)


def page_request(page: int, offset: int, length: int) -> Pdu:
    """
    Build an EEPROM read request.

    Args:
        page: Page number
        offset: Byte offset within the page numbering space (0-255)
        length: Number of bytes to transfer

    Raises:
        ValueError: If a field does not fit in one byte
    """
    for name, value in (("page", page), ("offset", offset), ("length", length)):
        if not 0 <= value <= 0xFF:
            raise ValueError(f"{name} out of range: {value}")
    return _request(Command.GET, offset, page, length)


def command_request(function: TestFunction) -> Pdu:
    """Ask the module to run an actuator test or maintenance function."""
    return _request(Command.COMMAND, function)


def describe_request(pdu: Pdu) -> str:
    """Human readable description of a request, used in error messages and logs."""
    if not pdu.payload:
        return "empty request"
    command = pdu.payload[0]
    if command == Command.GET and len(pdu.payload) >= 4:
        offset, page, length = pdu.payload[1:4]
        return f"read page {page} offset 0x{offset:02X} length {length}"
    if command == Command.COMMAND and len(pdu.payload) >= 2:
        try:
            return f"run test {TestFunction(pdu.payload[1]).name}"
        except ValueError:
            return f"run test 0x{pdu.payload[1]:02X}"
    try:
        return Command(command).name.lower().replace("_", " ")
    except ValueError:
        return f"command 0x{command:02X}"

"""Unit tests for PDU construction and parsing."""

import pytest

from ecmdiag.core.errors import ChecksumError, FrameErrorKind, InvalidHeaderError, TruncatedFrameError
from ecmdiag.protocol.constants import ACK, EOH, EOT, SOH, SOT, Command, TestFunction
from ecmdiag.protocol.frames import (
    Pdu,
    calculate_checksum,
    check_header,
    command_request,
    describe_request,
    page_request,
    runtime_data_request,
    state_request,
    version_request,
)


class TestPduConstruction:
    """Tests for PDU construction (to_bytes)."""

    def test_version_request_bytes(self):
        """Version request matches the well-known wire bytes."""
        assert version_request().to_bytes() == bytes.fromhex("01004202ff025603e8")

    def test_frame_markers(self):
        """SOH, EOH and SOT sit at offsets 0, 4 and 5."""
        frame = Pdu(payload=b"\x10\x20").to_bytes()

        assert frame[0] == SOH
        assert frame[4] == EOH
        assert frame[5] == SOT

    def test_length_byte(self):
        """Byte 3 holds the payload length."""
        frame = Pdu(payload=b"\x01\x02\x03\x04\x05").to_bytes()

        assert frame[3] == 5
        assert len(frame) == 5 + 7

    def test_empty_payload(self):
        """Empty payload gives the minimum frame."""
        frame = Pdu(payload=b"").to_bytes()

        assert len(frame) == 7
        assert frame[3] == 0

    def test_checksum_is_xor_after_soh(self):
        """Trailing byte is the XOR of everything between SOH and itself."""
        frame = Pdu(payload=b"\xaa\x55\x0f").to_bytes()

        assert frame[-1] == calculate_checksum(frame[1:-1])

    def test_payload_too_long(self):
        """Payloads over 255 bytes cannot be framed."""
        with pytest.raises(ValueError, match="too long"):
            Pdu(payload=bytes(256))


class TestPduParsing:
    """Tests for PDU parsing (from_bytes)."""

    def test_parse_response(self):
        """A response exposes ACK, indicator and data."""
        frame = Pdu(payload=bytes([ACK]) + b"abc" + bytes([EOT]), sender=0x42, recipient=0x00).to_bytes()

        pdu = Pdu.from_bytes(frame)

        assert pdu.sender == 0x42
        assert pdu.recipient == 0x00
        assert pdu.is_ack is True
        assert pdu.error_indicator == ACK
        assert pdu.data == b"abc"

    def test_parse_refusal(self):
        """A status byte other than ACK is the error indicator."""
        frame = Pdu(payload=b"\x05\x03").to_bytes()

        pdu = Pdu.from_bytes(frame)

        assert pdu.is_ack is False
        assert pdu.error_indicator == 0x05
        assert pdu.data == b""

    def test_empty_payload_is_not_ack(self):
        pdu = Pdu.from_bytes(Pdu(payload=b"").to_bytes())

        assert pdu.is_ack is False
        assert pdu.error_indicator is None

    @pytest.mark.parametrize("position", [0, 4, 5])
    def test_wrong_marker(self, position):
        """A wrong marker at 0, 4 or 5 is an invalid header."""
        frame = bytearray(Pdu(payload=b"\x06\x01\x03").to_bytes())
        frame[position] ^= 0x80

        with pytest.raises(InvalidHeaderError) as exc_info:
            Pdu.from_bytes(bytes(frame))

        assert exc_info.value.kind == FrameErrorKind.INVALID_HEADER

    @pytest.mark.parametrize("positions", [(0, 4), (0, 5), (4, 5), (0, 4, 5)])
    def test_several_wrong_markers(self, positions):
        """Any combination of wrong markers is rejected."""
        frame = bytearray(Pdu(payload=b"\x06").to_bytes())
        for position in positions:
            frame[position] = 0x7E

        with pytest.raises(InvalidHeaderError):
            Pdu.from_bytes(bytes(frame))

    def test_truncated(self):
        """Declared length beyond the supplied bytes is truncated."""
        frame = Pdu(payload=bytes(20)).to_bytes()

        with pytest.raises(TruncatedFrameError) as exc_info:
            Pdu.from_bytes(frame[:-3])

        assert exc_info.value.kind == FrameErrorKind.TRUNCATED

    def test_short_header_is_truncated(self):
        with pytest.raises(TruncatedFrameError):
            Pdu.from_bytes(b"\x01\x00\x42")

    def test_bad_checksum(self):
        frame = bytearray(Pdu(payload=b"\x06\x03").to_bytes())
        frame[-1] ^= 0xFF

        with pytest.raises(ChecksumError):
            Pdu.from_bytes(bytes(frame))

    def test_trailing_bytes_ignored(self):
        """Bytes after the declared frame are not part of the PDU."""
        original = Pdu(payload=b"\x06\x11\x03")

        parsed = Pdu.from_bytes(original.to_bytes() + b"\xde\xad")

        assert parsed == original

    def test_check_header_returns_length(self):
        assert check_header(Pdu(payload=bytes(9)).to_bytes()[:6]) == 9


class TestPduRoundTrip:
    """Encoding then parsing gives the same PDU."""

    @pytest.mark.parametrize("length", range(256))
    def test_roundtrip(self, length):
        original = Pdu(payload=bytes((i * 7) & 0xFF for i in range(length)), sender=0x42, recipient=0x00)

        assert Pdu.from_bytes(original.to_bytes()) == original


class TestRequestBuilders:
    """Tests for request payloads."""

    def test_page_request(self):
        pdu = page_request(page=3, offset=0x20, length=16)

        assert pdu.payload == bytes([Command.GET, 0x20, 3, 16, EOT])

    def test_page_request_out_of_range(self):
        with pytest.raises(ValueError, match="offset"):
            page_request(page=1, offset=256, length=1)

    def test_simple_requests(self):
        assert runtime_data_request().payload == bytes([Command.GET_RUNTIME_DATA, EOT])
        assert state_request().payload == bytes([Command.GET_STATE, EOT])

    def test_command_request(self):
        assert command_request(TestFunction.FUEL_PUMP).payload == bytes([Command.COMMAND, 0x23, EOT])

    def test_describe(self):
        assert describe_request(page_request(2, 0x10, 16)) == "read page 2 offset 0x10 length 16"
        assert describe_request(command_request(TestFunction.FAN)) == "run test FAN"
        assert describe_request(version_request()) == "get version"

    def test_repr(self):
        assert repr(version_request()) == "Pdu(src=0x00, dst=0x42, payload=5603)"

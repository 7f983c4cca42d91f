"""Request/response exchange over a byte stream."""

import logging
import threading

from ecmdiag.core.errors import EcmError, NotAcknowledgedError
from ecmdiag.protocol.constants import FRAME_OVERHEAD, HEADER_LEN, MAX_PAYLOAD_LEN, REQUEST_TIMEOUT
from ecmdiag.protocol.frames import Pdu, check_header, describe_request
from ecmdiag.serial.connection import ByteStream
from ecmdiag.serial.reader import ByteReader

logger = logging.getLogger(__name__)


class PduTransport:
    """Sends one PDU and receives the response to it.

    The protocol has no request ids, so exactly one request may be in flight:
    the whole send/receive exchange runs under a lock.
    """

    def __init__(self, stream: ByteStream, reader: ByteReader | None = None, timeout: float = REQUEST_TIMEOUT):
        """
        Initialize transport.

        Args:
            stream: Stream requests are written to
            reader: Reader for responses (defaults to a ByteReader on stream)
            timeout: Budget for each of the two receive stages in seconds
        """
        self.stream = stream
        self.reader = reader if reader is not None else ByteReader(stream)
        self.timeout = timeout
        self._lock = threading.Lock()
        self._buffer = bytearray(MAX_PAYLOAD_LEN + FRAME_OVERHEAD)
        self._stats = {
            "requests": 0,
            "responses": 0,
            "not_acknowledged": 0,
            "failures": 0,
        }

    @property
    def stats(self) -> dict:
        """Get transport statistics."""
        return self._stats.copy()

    def request(self, pdu: Pdu) -> Pdu:
        """
        Send a request and return the acknowledged response.

        Args:
            pdu: Request to send

        Returns:
            Response PDU

        Raises:
            NotAcknowledgedError: If the module refused the request
            FrameError: If the response is malformed
            TransportError: On timeout or stream failure
        """
        description = describe_request(pdu)
        with self._lock:
            self._stats["requests"] += 1
            try:
                frame = pdu.to_bytes()
                logger.debug("Sending %s (hex: %s)", description, frame.hex())
                # Unread input can only be a stale reply
                self.stream.reset_input_buffer()
                self.stream.write(frame)
                response = self._receive()
            except EcmError as e:
                self._stats["failures"] += 1
                logger.debug("Request '%s' failed: %s", description, e)
                e.request = description
                raise
            self._stats["responses"] += 1

        if not response.is_ack:
            self._stats["not_acknowledged"] += 1
            logger.warning("ECM refused '%s' (error indicator %s)", description, response.error_indicator)
            raise NotAcknowledgedError(response.error_indicator, request=description)
        return response

    def _receive(self) -> Pdu:
        buffer = self._buffer
        self.reader.read_exact(buffer, 0, HEADER_LEN, self.timeout)
        length = check_header(buffer[:HEADER_LEN])
        self.reader.read_exact(buffer, HEADER_LEN, length + 1, self.timeout)
        frame = bytes(buffer[: length + FRAME_OVERHEAD])
        logger.debug("Received %s", frame.hex())
        return Pdu.from_bytes(frame)

"""Timeout-bounded byte reader for slow, chunk-delivering links."""

import logging
import time
from collections.abc import Callable

from ecmdiag.core.errors import TransportError, TransportTimeoutError
from ecmdiag.protocol.constants import POLL_INTERVAL
from ecmdiag.serial.connection import ByteStream

logger = logging.getLogger(__name__)


class ByteReader:
    """Reads an exact number of bytes from a stream within a timeout budget.

    Whenever bytes are waiting, all of them (up to what is still needed) are
    drained in one go. When nothing is waiting the reader sleeps one poll
    interval and charges it against the budget.
    """

    def __init__(
        self,
        stream: ByteStream,
        poll_interval: float = POLL_INTERVAL,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize byte reader.

        Args:
            stream: Stream to read from
            poll_interval: Sleep step in seconds while no bytes are waiting
            sleep: Sleep function (replaceable in tests)
        """
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        self.stream = stream
        self.poll_interval = poll_interval
        self._sleep = sleep
        self._stats = {
            "bytes_read": 0,
            "timeouts": 0,
        }

    @property
    def stats(self) -> dict:
        """Get reader statistics."""
        return self._stats.copy()

    def read_exact(self, buffer: bytearray, offset: int, count: int, timeout: float) -> int:
        """
        Read exactly ``count`` bytes into ``buffer[offset:offset + count]``.

        Args:
            buffer: Destination buffer (must be large enough)
            offset: Write position in buffer
            count: Number of bytes required
            timeout: Budget in seconds

        Returns:
            count

        Raises:
            TransportTimeoutError: If the budget runs out first; bytes received so
                far are left in the buffer
            TransportError: On end of stream or a stream fault
        """
        if offset + count > len(buffer):
            raise ValueError(f"Buffer too small: need {offset + count} bytes, have {len(buffer)}")

        received = 0
        ticks = round(timeout / self.poll_interval)
        while received < count and ticks > 0:
            available = self.stream.in_waiting
            if available <= 0:
                self._sleep(self.poll_interval)
                ticks -= 1
                continue

            while received < count and available > 0:
                wanted = min(count - received, available)
                chunk = self.stream.read(wanted)
                if not chunk:
                    msg = f"EOF while reading {wanted}/{count} bytes at offset {offset + received}"
                    logger.error(msg)
                    raise TransportError(msg)
                chunk = chunk[:wanted]
                buffer[offset + received : offset + received + len(chunk)] = chunk
                received += len(chunk)
                self._stats["bytes_read"] += len(chunk)
                available = self.stream.in_waiting

        if received != count:
            self._stats["timeouts"] += 1
            logger.debug("Timeout after %d of %d bytes", received, count)
            raise TransportTimeoutError(
                f"Timeout reading {count} bytes, got {received}",
                received=received,
                expected=count,
            )
        return received

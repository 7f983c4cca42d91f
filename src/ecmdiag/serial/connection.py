"""Serial port connection management using direct pyserial.

The ECM is reached through a serial device, usually an RFCOMM port bound to
the Bluetooth adapter (``rfcomm bind``) or a USB-serial cable. Discovery and
pairing happen outside this package.
"""

import logging
from typing import Protocol

import serial
from serial import SerialException

from ecmdiag.core.errors import TransportError

logger = logging.getLogger(__name__)


class ByteStream(Protocol):
    """Bidirectional byte stream the reader and transport work on.

    Mirrors the subset of ``serial.Serial`` that is used.
    """

    @property
    def in_waiting(self) -> int: ...

    def read(self, size: int = 1) -> bytes: ...

    def write(self, data: bytes) -> int | None: ...

    def reset_input_buffer(self) -> None: ...


class SerialConnection:
    """Owns the serial port the ECM is attached to."""

    def __init__(
        self,
        port: str,
        baudrate: int = 9600,
        timeout: float = 0.0,
    ):
        """
        Initialize serial connection manager.

        Args:
            port: Serial port path (e.g., '/dev/rfcomm0')
            baudrate: Communication speed (default: 9600)
            timeout: pyserial read timeout in seconds (0 = non-blocking, the
                reader does its own polling)
        """
        self.port = port
        self.baudrate = baudrate
        self.timeout = timeout

        self._serial: serial.Serial | None = None

    @property
    def connected(self) -> bool:
        """Check if currently connected."""
        return self._serial is not None and self._serial.is_open

    def open(self) -> None:
        """
        Open serial port connection.

        Raises:
            TransportError: If the port cannot be opened
        """
        if self.connected:
            logger.debug("Already connected to %s", self.port)
            return

        logger.info("Connecting to serial port %s at %d baud", self.port, self.baudrate)
        try:
            port = serial.Serial()
            port.port = self.port
            port.baudrate = self.baudrate
            port.timeout = self.timeout
            port.open()
        except (OSError, SerialException) as e:
            logger.error("Failed to connect to %s: %s", self.port, e)
            raise TransportError(f"Unable to open {self.port}: {e}", cause=e) from e

        self._serial = port
        logger.info("Successfully connected to %s", self.port)

    def close(self) -> None:
        """Close serial port connection."""
        if self._serial is None:
            return

        logger.info("Disconnecting from %s", self.port)
        try:
            if self._serial.is_open:
                self._serial.close()
        except (OSError, SerialException) as e:
            logger.error("Error closing serial port: %s", e)
        finally:
            self._serial = None

    def _port(self) -> serial.Serial:
        if self._serial is None or not self._serial.is_open:
            raise TransportError(f"Not connected to {self.port}")
        return self._serial

    @property
    def in_waiting(self) -> int:
        """Number of bytes waiting in the OS receive buffer."""
        try:
            return self._port().in_waiting
        except (OSError, SerialException) as e:
            raise TransportError(f"Serial status error on {self.port}: {e}", cause=e) from e

    def read(self, size: int = 1) -> bytes:
        """Read up to ``size`` bytes without waiting past the port timeout."""
        try:
            return self._port().read(size)
        except (OSError, SerialException) as e:
            logger.error("Read error: %s", e)
            raise TransportError(f"Serial read error on {self.port}: {e}", cause=e) from e

    def write(self, data: bytes) -> int | None:
        """Write all bytes and wait until they are transmitted."""
        port = self._port()
        try:
            written = port.write(data)
            port.flush()
            return written
        except (OSError, SerialException) as e:
            logger.error("Write error: %s", e)
            raise TransportError(f"Serial write error on {self.port}: {e}", cause=e) from e

    def reset_input_buffer(self) -> None:
        """Discard unread input, e.g. a late reply to a request that timed out."""
        port = self._port()
        try:
            port.reset_input_buffer()
        except (OSError, SerialException) as e:
            raise TransportError(f"Serial flush error on {self.port}: {e}", cause=e) from e

    def __enter__(self) -> "SerialConnection":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

"""Serial communication layer."""

from ecmdiag.serial.connection import ByteStream, SerialConnection
from ecmdiag.serial.reader import ByteReader

__all__ = ["ByteReader", "ByteStream", "SerialConnection"]

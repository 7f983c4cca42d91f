"""Data type decoding for DDFI variables."""

import struct

from ecmdiag.protocol.constants import TYPE_SIZES, DataType

_STRUCT_FORMATS = {
    DataType.UINT8: ">B",
    DataType.INT8: ">b",
    DataType.UINT16: ">H",
    DataType.INT16: ">h",
    DataType.UINT32: ">I",
    DataType.INT32: ">i",
}


def type_size(type_code: DataType, size: int | None = None) -> int:
    """
    Number of bytes a value of the given type occupies.

    Strings have no fixed size and need an explicit one.

    Raises:
        ValueError: If a string has no size
    """
    if type_code == DataType.STRING:
        if not size:
            raise ValueError("String values need an explicit size")
        return size
    return TYPE_SIZES[type_code]


def decode_value(data: bytes, type_code: DataType, bit: int | None = None) -> int | bool | str:
    """
    Decode bytes to a Python value according to type code.

    Numeric types use big-endian byte order.

    Args:
        data: Bytes to decode (the variable's window)
        type_code: Storage type
        bit: Bit number (0 = LSB) for BIT values

    Returns:
        Decoded Python value

    Raises:
        ValueError: If data is too short or the type is unsupported

    Example:
        >>> decode_value(b'\\x01\\x2c', DataType.UINT16)
        300
        >>> decode_value(b'\\x08', DataType.BIT, bit=3)
        True
    """
    if type_code == DataType.STRING:
        text = bytes(data)
        null_pos = text.find(b"\x00")
        if null_pos != -1:
            text = text[:null_pos]
        return text.decode("ascii", errors="replace").strip()

    if type_code == DataType.BIT:
        if len(data) < 1:
            raise ValueError("Insufficient data for bit")
        if bit is None or not 0 <= bit <= 7:
            raise ValueError(f"Invalid bit number: {bit}")
        return bool(data[0] & (1 << bit))

    fmt = _STRUCT_FORMATS.get(type_code)
    if fmt is None:
        raise ValueError(f"Unsupported type code: {type_code}")

    size = TYPE_SIZES[type_code]
    if len(data) < size:
        raise ValueError(f"Insufficient data for {type_code.value}")
    return struct.unpack(fmt, bytes(data[:size]))[0]

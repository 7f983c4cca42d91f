"""Protocol constants for DDFI ECM communication."""

from enum import Enum, IntEnum

# ============================================================================
# Frame Structure
# ============================================================================

SOH = 0x01  # Start of header
EOH = 0xFF  # End of header
SOT = 0x02  # Start of text
EOT = 0x03  # End of text
ACK = 0x06

HEADER_LEN = 6  # SOH + sender + recipient + length + EOH + SOT
FRAME_OVERHEAD = 7  # header + trailing checksum
MAX_PAYLOAD_LEN = 255

# ============================================================================
# Addresses
# ============================================================================

CLIENT_ID = 0x00
ECM_ID = 0x42

# ============================================================================
# Command Codes
# ============================================================================


class Command(IntEnum):
    """Request command codes (first payload byte)."""

    GET = 0x52
    GET_VERSION = 0x56
    GET_RUNTIME_DATA = 0x43
    GET_STATE = 0x53
    COMMAND = 0x57


class TestFunction(IntEnum):
    """Actuator tests and maintenance functions the module can run."""

    __test__ = False

    FRONT_COIL = 0x20
    REAR_COIL = 0x21
    TACHOMETER = 0x22
    FUEL_PUMP = 0x23
    FRONT_INJECTOR = 0x24
    REAR_INJECTOR = 0x25
    TPS_RESET = 0x26
    FAN = 0x27
    EXHAUST_VALVE = 0x28
    CLEAR_CODES = 0x29


# ============================================================================
# Transfer Settings
# ============================================================================

MAX_TRANSFER = 16  # Largest EEPROM chunk per request
PAGE0_TRANSFER = 1  # Page 0 is read byte by byte
PAGE0_END = 0xFF  # Page 0 occupies the top of its address space

REQUEST_TIMEOUT = 1.0  # Response budget (seconds)
POLL_INTERVAL = 0.01  # Reader sleep step when no bytes are waiting (seconds)

# ============================================================================
# Data Types
# ============================================================================


class DataType(str, Enum):
    """Storage types of ECM variables (multi-byte values are big-endian)."""

    UINT8 = "u8"
    INT8 = "s8"
    UINT16 = "u16"
    INT16 = "s16"
    UINT32 = "u32"
    INT32 = "s32"
    BIT = "bit"
    STRING = "string"


TYPE_SIZES = {
    DataType.UINT8: 1,
    DataType.INT8: 1,
    DataType.UINT16: 2,
    DataType.INT16: 2,
    DataType.UINT32: 4,
    DataType.INT32: 4,
    DataType.BIT: 1,
}

NUMERIC_TYPES = frozenset(
    {
        DataType.UINT8,
        DataType.INT8,
        DataType.UINT16,
        DataType.INT16,
        DataType.UINT32,
        DataType.INT32,
    }
)

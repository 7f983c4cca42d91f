"""ECM session: connection state, identification and data access.

Orchestrates the transport, the EEPROM image, realtime data and the
dictionary for one connected module.
"""

import logging
from datetime import date, timedelta
from enum import Enum
from typing import Protocol

from ecmdiag.core.errors import (
    NotAcknowledgedError,
    PreconditionError,
    TestFailedError,
    TruncatedFrameError,
    UnknownPageError,
)
from ecmdiag.core.models import ErrorType, Fault
from ecmdiag.ecm.bitsets import FIELD_PREFIXES, DiagnosticPages, decode_errors
from ecmdiag.ecm.dictionary import Dictionary
from ecmdiag.ecm.eeprom import Eeprom, Page, read_page
from ecmdiag.ecm.identity import ModuleIdentity
from ecmdiag.ecm.variables import Variable
from ecmdiag.protocol.constants import MAX_TRANSFER, POLL_INTERVAL, REQUEST_TIMEOUT, TestFunction
from ecmdiag.protocol.frames import command_request, runtime_data_request, state_request, version_request
from ecmdiag.protocol.transport import PduTransport
from ecmdiag.serial.connection import ByteStream
from ecmdiag.serial.reader import ByteReader

logger = logging.getLogger(__name__)

UNKNOWN = "N/A"

# Well-known EEPROM variables
KMFG_SERIAL = "KMFG_Serial"
KMFG_YEAR = "KMFG_Year"
KMFG_DAY = "KMFG_Day"


class Connection(ByteStream, Protocol):
    """Byte stream that can be opened and closed (e.g. SerialConnection)."""

    def open(self) -> None: ...

    def close(self) -> None: ...


class SessionState(str, Enum):
    """Lifecycle of a session."""

    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    IDENTIFIED = "identified"


class EcmSession:
    """Diagnostic session with one ECM.

    One session per connection. All calls are synchronous and may raise the
    errors from :mod:`ecmdiag.core.errors`; requests from several threads are
    serialized by the transport.
    """

    def __init__(
        self,
        connection: Connection,
        dictionary: Dictionary,
        request_timeout: float = REQUEST_TIMEOUT,
        poll_interval: float = POLL_INTERVAL,
        transfer_chunk: int = MAX_TRANSFER,
    ):
        """
        Initialize session.

        Args:
            connection: Stream to the module, opened by connect()
            dictionary: Variable and bitset definitions
            request_timeout: Response budget per receive stage in seconds
            poll_interval: Reader sleep step in seconds
            transfer_chunk: Bytes per EEPROM read request (max 16)
        """
        self.connection = connection
        self.dictionary = dictionary
        self.request_timeout = request_timeout
        self.poll_interval = poll_interval
        self.transfer_chunk = transfer_chunk

        self._transport: PduTransport | None = None
        self._state = SessionState.DISCONNECTED
        self._version: str | None = None
        self._identity: ModuleIdentity | None = None
        self._eeprom: Eeprom | None = None
        self._rt_data: bytes | None = None

    # -- state ----------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state != SessionState.DISCONNECTED

    @property
    def version(self) -> str | None:
        """Version string from the last get_version() call."""
        return self._version

    @property
    def identity(self) -> ModuleIdentity | None:
        return self._identity

    @property
    def eeprom(self) -> Eeprom | None:
        return self._eeprom

    @property
    def realtime_data(self) -> bytes | None:
        """Latest realtime snapshot (complete response frame), None before the first read."""
        return self._rt_data

    @property
    def transport(self) -> PduTransport:
        if self._transport is None:
            raise PreconditionError("Not connected to an ECM")
        return self._transport

    def _require_identified(self) -> ModuleIdentity:
        if self._identity is None or self._eeprom is None:
            if self._state == SessionState.DISCONNECTED:
                raise PreconditionError("Not connected to an ECM")
            raise PreconditionError("ECM type not identified yet, call get_version() first")
        return self._identity

    # -- connection -------------------------------------------------------------

    def connect(self) -> None:
        """
        Open the connection.

        Raises:
            TransportError: If the stream cannot be opened
        """
        if self.is_connected:
            logger.debug("Session already connected")
            return
        self.connection.open()
        reader = ByteReader(self.connection, poll_interval=self.poll_interval)
        self._transport = PduTransport(self.connection, reader, timeout=self.request_timeout)
        self._state = SessionState.CONNECTED
        logger.info("Session connected")

    def disconnect(self) -> None:
        """Close the connection and forget the module. Safe to call repeatedly."""
        try:
            if self._state != SessionState.DISCONNECTED:
                self.connection.close()
        finally:
            self._transport = None
            self._version = None
            self._identity = None
            self._eeprom = None
            self._rt_data = None
            if self._state != SessionState.DISCONNECTED:
                logger.info("Session disconnected")
            self._state = SessionState.DISCONNECTED

    def __enter__(self) -> "EcmSession":
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.disconnect()

    # -- requests ---------------------------------------------------------------

    def get_version(self) -> str:
        """
        Read the module version and bind the matching dictionary.

        Returns:
            Full version string (e.g. "BUEIB310 12-11-03")
        """
        response = self.transport.request(version_request())
        version = response.data.decode("ascii", errors="replace")
        logger.info("EEPROM Version: %s", version)
        self._version = version

        module_type = self.dictionary.module_type(version)
        if module_type is None:
            logger.warning("Unknown ECM version %r, EEPROM and realtime decoding unavailable", version)
            self._identity = None
            self._eeprom = None
            self._state = SessionState.CONNECTED
            return version

        identity = ModuleIdentity(id=version, type=module_type)
        if identity != self._identity:
            self._identity = identity
            self._eeprom = Eeprom(module_type)
        self._state = SessionState.IDENTIFIED
        logger.info("Identified %s (%s)", identity.id, identity.type.value)
        return version

    def get_current_state(self) -> int:
        """
        Return 0 if the ECM is idle, any other value if it is busy.

        Raises:
            TruncatedFrameError: If the acknowledged response has no state byte
        """
        response = self.transport.request(state_request())
        data = response.data
        if not data:
            raise TruncatedFrameError("State response carries no state byte", data=response.payload)
        return data[0]

    def is_busy(self) -> bool:
        return self.get_current_state() != 0

    def run_test(self, function: TestFunction) -> None:
        """
        Run an actuator test or maintenance function.

        Raises:
            TestFailedError: If the module refused to run it
        """
        logger.info("Running test %s", function.name)
        try:
            self.transport.request(command_request(function))
        except NotAcknowledgedError as e:
            indicator = "none" if e.error_indicator is None else f"0x{e.error_indicator:02X}"
            raise TestFailedError(
                e.error_indicator,
                request=e.request,
                message=f"Test {function.name} failed (error indicator {indicator})",
            ) from e

    def read_eeprom_page(self, page: Page | int) -> Page:
        """
        Read one EEPROM page into the session's image.

        Args:
            page: Page object or page number

        Returns:
            The page that was read

        Raises:
            UnknownPageError: If the layout has no page with that number
        """
        self._require_identified()
        eeprom = self._eeprom
        if isinstance(page, int):
            try:
                page = eeprom.page(page)
            except KeyError as e:
                raise UnknownPageError(e.args[0], page=page) from None
        read_page(self.transport, eeprom, page, self.transfer_chunk)
        return page

    def read_eeprom(self) -> Eeprom:
        """Read every page of the layout."""
        self._require_identified()
        for page in self._eeprom.pages:
            self.read_eeprom_page(page)
        return self._eeprom

    def read_rt_data(self) -> bytes:
        """
        Request realtime data from the ECM.

        The previous snapshot is replaced, never modified.

        Returns:
            The response frame holding the realtime data
        """
        response = self.transport.request(runtime_data_request())
        data = response.to_bytes()
        self._rt_data = data
        return data

    # -- decoding ---------------------------------------------------------------

    def get_errors(self, error_type: ErrorType) -> list[Fault]:
        """
        Decode the set diagnostic flags of the given type.

        Realtime data is read first if none has been read yet.
        """
        identity = self._require_identified()
        data = self._rt_data
        if data is None:
            data = self.read_rt_data()
        pages = DiagnosticPages(self.dictionary, identity.id, FIELD_PREFIXES[error_type])
        return decode_errors(pages, data, error_type)

    def scalar_variable_names(self) -> list[str]:
        identity = self._require_identified()
        return self.dictionary.scalar_variable_names(identity.id)

    def get_realtime_value(self, name: str) -> Variable | None:
        """
        Look up a realtime variable, refreshed from the latest snapshot if there is one.

        Returns:
            Variable, or None if the dictionary does not know the name
        """
        identity = self._require_identified()
        var = self.dictionary.variable(identity.id, name)
        data = self._rt_data
        if var is not None and data is not None:
            var.refresh_value(data)
        return var

    def get_eeprom_value(self, name: str) -> Variable | None:
        """
        Look up an EEPROM variable, refreshed from the EEPROM image.

        Returns:
            Variable, or None if the dictionary does not know the name
        """
        identity = self._require_identified()
        var = self.dictionary.eeprom_variable(identity.id, name)
        if var is not None:
            var.refresh_value(self._eeprom.data)
        return var

    def get_formatted_eeprom_value(self, name: str, default: str | None = None) -> str | None:
        """Display value of an EEPROM variable, or default when unknown or empty."""
        var = self.get_eeprom_value(name)
        if var is None or not var.formatted_value:
            return default
        return var.formatted_value

    @property
    def serial_number(self) -> str:
        if self._identity is None:
            return UNKNOWN
        return self.get_formatted_eeprom_value(KMFG_SERIAL, UNKNOWN)

    @property
    def manufacturing_date(self) -> date | None:
        """Date from the year (since 2000) and zero-based day-of-year EEPROM fields."""
        if self._identity is None:
            return None
        year = self.get_eeprom_value(KMFG_YEAR)
        day = self.get_eeprom_value(KMFG_DAY)
        if year is None or day is None:
            return None
        try:
            return date(int(year.raw_value) + 2000, 1, 1) + timedelta(days=int(day.raw_value))
        except (TypeError, ValueError) as e:
            logger.warning("Invalid manufacturing date fields: %s", e)
            return None

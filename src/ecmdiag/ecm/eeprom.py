"""Paged in-memory image of the module's EEPROM and the page read algorithm."""

import logging
from dataclasses import dataclass

from ecmdiag.core.errors import TruncatedFrameError
from ecmdiag.core.models import ModuleType
from ecmdiag.protocol.constants import MAX_TRANSFER, PAGE0_END, PAGE0_TRANSFER
from ecmdiag.protocol.frames import page_request
from ecmdiag.protocol.transport import PduTransport

logger = logging.getLogger(__name__)

# Page number and length, in backing-buffer order.
PAGE_LAYOUTS: dict[ModuleType, tuple[tuple[int, int], ...]] = {
    ModuleType.DDFI1: ((1, 256), (2, 256), (0, 4)),
    ModuleType.DDFI2: ((1, 256), (2, 256), (3, 256), (4, 256), (5, 176), (0, 6)),
    ModuleType.DDFI3: ((1, 256), (2, 256), (3, 256), (4, 256), (5, 256), (6, 256), (7, 160), (0, 6)),
}


@dataclass(frozen=True)
class Page:
    """Index range of one page inside the EEPROM backing buffer."""

    number: int
    start: int
    length: int

    @property
    def end(self) -> int:
        return self.start + self.length

    def offsets(self, chunk: int = MAX_TRANSFER) -> list[tuple[int, int, int]]:
        """
        Transfers needed to read this page.

        Returns:
            List of (local offset, module offset, length) tuples

        Page 0 sits at the top of its address space and is transferred one byte
        per request; every other page is read in chunks starting at offset 0.
        """
        transfers = []
        i = 0
        while i < self.length:
            if self.number == 0:
                dtr = PAGE0_TRANSFER
                offset = PAGE0_END - self.length + i + 1
            else:
                dtr = min(self.length - i, chunk)
                offset = i
            transfers.append((i, offset, dtr))
            i += dtr
        return transfers


class Eeprom:
    """EEPROM image: one flat byte buffer split into pages.

    Pages only hold index ranges into the buffer owned by this object.
    """

    def __init__(self, module_type: ModuleType, layout: tuple[tuple[int, int], ...] | None = None):
        """
        Initialize an empty image.

        Args:
            module_type: Module generation, selects the page layout
            layout: Override of (page number, length) pairs
        """
        self.module_type = module_type
        self.pages: list[Page] = []
        start = 0
        for number, length in layout if layout is not None else PAGE_LAYOUTS[module_type]:
            self.pages.append(Page(number=number, start=start, length=length))
            start += length
        self._buffer = bytearray(start)
        self._read_pages: set[int] = set()

    def __len__(self) -> int:
        return len(self._buffer)

    @property
    def data(self) -> bytes:
        """Snapshot of the whole image."""
        return bytes(self._buffer)

    def page(self, number: int) -> Page:
        """Look up a page by number."""
        for page in self.pages:
            if page.number == number:
                return page
        raise KeyError(f"No page {number} in {self.module_type.value} layout")

    def page_data(self, page: Page) -> bytes:
        return bytes(self._buffer[page.start : page.end])

    def store_page(self, page: Page, data: bytes) -> None:
        """Replace the contents of a page."""
        if len(data) != page.length:
            raise ValueError(f"Page {page.number} needs {page.length} bytes, got {len(data)}")
        self._buffer[page.start : page.end] = data
        self._read_pages.add(page.number)

    def is_read(self, page: Page) -> bool:
        """Whether the page has been read completely since the image was created."""
        return page.number in self._read_pages

    @property
    def complete(self) -> bool:
        return all(self.is_read(p) for p in self.pages)

    def __repr__(self) -> str:
        return f"Eeprom(type={self.module_type.value}, size={len(self)}, pages={len(self.pages)})"


def read_page(transport: PduTransport, eeprom: Eeprom, page: Page, chunk: int = MAX_TRANSFER) -> None:
    """
    Read one page from the module into the EEPROM image.

    The page is committed to the image only after every transfer succeeded;
    a failed read leaves the previous contents untouched and must be repeated
    as a whole.

    Args:
        transport: Transport to the module
        eeprom: Image the page belongs to
        page: Page to read
        chunk: Maximum bytes per request (ignored for page 0)

    Raises:
        EcmError: Whatever the transport raised for the failing transfer
    """
    if not 1 <= chunk <= MAX_TRANSFER:
        raise ValueError(f"chunk must be between 1 and {MAX_TRANSFER}, got {chunk}")

    data = bytearray(page.length)
    for i, offset, dtr in page.offsets(chunk):
        logger.debug(
            "Reading %d bytes from page %d at offset %d to local buffer at offset %d",
            dtr,
            page.number,
            offset,
            page.start + i,
        )
        response = transport.request(page_request(page.number, offset, dtr))
        chunk_data = response.data
        if len(chunk_data) < dtr:
            raise TruncatedFrameError(
                f"Page {page.number} offset 0x{offset:02X}: expected {dtr} data bytes, got {len(chunk_data)}",
                data=response.payload,
            )
        data[i : i + dtr] = chunk_data[:dtr]

    eeprom.store_page(page, bytes(data))
    logger.info("Read page %d (%d bytes)", page.number, page.length)

"""Diagnostic bitfields in the realtime buffer."""

import itertools
import logging
from collections.abc import Iterator
from typing import TYPE_CHECKING

from ecmdiag.core.models import BitDef, BitSetDef, ErrorType, Fault

if TYPE_CHECKING:
    from ecmdiag.ecm.dictionary import Dictionary

logger = logging.getLogger(__name__)

FIELD_PREFIXES = {
    ErrorType.CURRENT: "CDiag",
    ErrorType.HISTORIC: "HDiag",
}


class Bit:
    """A single diagnostic flag."""

    def __init__(self, definition: BitDef):
        self.definition = definition

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def code(self) -> int:
        return self.definition.code

    @property
    def remark(self) -> str:
        return self.definition.remark

    def is_set(self, data: bytes) -> bool:
        """Test the flag; flags beyond the end of data count as clear."""
        offset = self.definition.offset
        if offset >= len(data):
            return False
        return bool(data[offset] & (1 << self.definition.bit))

    def __repr__(self) -> str:
        return f"Bit(name={self.name!r}, code={self.code}, offset={self.definition.offset}, bit={self.definition.bit})"


class BitSet:
    """Ordered collection of flags belonging to one diagnostic field."""

    def __init__(self, definition: BitSetDef):
        self.name = definition.name
        self.bits = [Bit(b) for b in definition.bits]

    def __iter__(self) -> Iterator[Bit]:
        return iter(self.bits)

    def __len__(self) -> int:
        return len(self.bits)

    def set_bits(self, data: bytes) -> list[Bit]:
        return [bit for bit in self.bits if bit.is_set(data)]

    def __repr__(self) -> str:
        return f"BitSet(name={self.name!r}, bits={len(self.bits)})"


class DiagnosticPages:
    """Numbered bitsets ``<prefix>0, <prefix>1, ...`` up to the first missing one.

    Iterating asks the dictionary again each time, so the sequence can be
    walked any number of times.
    """

    def __init__(self, dictionary: "Dictionary", module_id: str, prefix: str):
        self._dictionary = dictionary
        self._module_id = module_id
        self.prefix = prefix

    def __iter__(self) -> Iterator[BitSet]:
        for index in itertools.count():
            bitset = self._dictionary.bitset(self._module_id, f"{self.prefix}{index}")
            if bitset is None:
                return
            yield bitset


def decode_errors(pages: DiagnosticPages, data: bytes, error_type: ErrorType) -> list[Fault]:
    """
    Collect one Fault per set flag.

    Faults come out in page order, then in bit definition order within a page.
    """
    faults = []
    for bitset in pages:
        for bit in bitset.set_bits(data):
            fault = Fault(code=bit.code, type=error_type, description=bit.remark)
            logger.debug("Error read: %s", fault)
            faults.append(fault)
    return faults

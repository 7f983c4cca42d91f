"""Typed, scaled ECM variables."""

import logging

from ecmdiag.core.errors import DecodeError
from ecmdiag.core.models import VariableDef, VariableSource
from ecmdiag.protocol.codec import decode_value, type_size
from ecmdiag.protocol.constants import NUMERIC_TYPES, DataType

logger = logging.getLogger(__name__)


class Variable:
    """A variable definition plus the value last decoded from a buffer.

    The definition fixes where the value lives (EEPROM image or realtime
    buffer), how it is stored and how it is scaled and displayed. Calling
    :meth:`refresh_value` decodes it from a buffer and caches the result until
    the next refresh.
    """

    def __init__(self, definition: VariableDef):
        self.definition = definition
        self._raw: int | float | bool | str | None = None
        self._formatted: str = ""

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def source(self) -> VariableSource:
        return self.definition.source

    @property
    def offset(self) -> int:
        return self.definition.offset

    @property
    def size(self) -> int:
        return type_size(self.definition.type, self.definition.size)

    @property
    def unit(self) -> str:
        return self.definition.unit

    @property
    def low(self) -> float | None:
        return self.definition.low

    @property
    def high(self) -> float | None:
        return self.definition.high

    @property
    def is_scalar(self) -> bool:
        """Numeric values without symbol table (usable as gauge/data channel)."""
        return self.definition.type in NUMERIC_TYPES and not self.definition.symbols

    @property
    def raw_value(self) -> int | float | bool | str | None:
        """Scaled value from the last refresh, None before the first one."""
        return self._raw

    @property
    def formatted_value(self) -> str:
        """Display value from the last refresh, empty before the first one."""
        return self._formatted

    def refresh_value(self, data: bytes) -> "Variable":
        """
        Decode the variable from a buffer.

        Args:
            data: EEPROM image or realtime buffer, depending on the source

        Returns:
            self, for chaining

        Raises:
            DecodeError: If the variable's window lies outside data
        """
        defn = self.definition
        end = defn.offset + self.size
        if end > len(data):
            raise DecodeError(
                f"{defn.name}: bytes {defn.offset}..{end - 1} outside {defn.source.value} buffer of {len(data)} bytes",
                name=defn.name,
                offset=defn.offset,
            )

        try:
            value = decode_value(data[defn.offset : end], defn.type, defn.bit)
        except ValueError as e:
            raise DecodeError(f"{defn.name}: {e}", name=defn.name, offset=defn.offset) from e

        if defn.type in NUMERIC_TYPES:
            self._raw = self._scale(value)
            self._formatted = self._format_number(value, self._raw)
        elif defn.type == DataType.BIT:
            self._raw = value
            self._formatted = self._symbol(int(value)) or ("On" if value else "Off")
        else:
            self._raw = value
            self._formatted = value
        return self

    def _scale(self, value: int) -> int | float:
        defn = self.definition
        if defn.scale == 1.0 and defn.translate == 0.0:
            return value
        return value * defn.scale + defn.translate

    def _symbol(self, value: int) -> str | None:
        symbols = self.definition.symbols
        if symbols:
            return symbols.get(value)
        return None

    def _format_number(self, stored: int, value: int | float) -> str:
        label = self._symbol(stored)
        if label is not None:
            return label

        fmt = self.definition.format
        try:
            if fmt:
                text = format(value, fmt)
            elif isinstance(value, float):
                text = f"{value:.2f}"
            else:
                text = str(value)
        except ValueError:
            logger.warning("Invalid format %r for %s", fmt, self.name)
            text = str(value)

        if self.unit:
            return f"{text} {self.unit}"
        return text

    def __repr__(self) -> str:
        return f"Variable(name={self.name!r}, source={self.source.value}, offset={self.offset}, value={self._raw!r})"

"""Data models for ecmdiag."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ecmdiag.protocol.constants import DataType


class ModuleType(str, Enum):
    """ECM hardware generations; each has its own EEPROM layout."""

    DDFI1 = "DDFI-1"
    DDFI2 = "DDFI-2"
    DDFI3 = "DDFI-3"


class VariableSource(str, Enum):
    """Buffer a variable is decoded from."""

    EEPROM = "eeprom"
    RUNTIME = "runtime"


class ErrorType(str, Enum):
    """Diagnostic code category."""

    CURRENT = "current"
    HISTORIC = "historic"


# ============================================================================
# Dictionary definitions
# ============================================================================


class VariableDef(BaseModel):
    """Definition of a single ECM variable."""

    name: str = Field(..., min_length=1, description="Variable name")
    source: VariableSource = Field(..., description="Buffer the variable lives in")
    offset: int = Field(..., ge=0, description="Byte offset in the source buffer")
    type: DataType = Field(..., description="Storage type")
    size: int | None = Field(None, ge=1, description="Byte size (strings only)")
    bit: int | None = Field(None, ge=0, le=7, description="Bit number for bit variables")
    scale: float = Field(1.0, description="Multiplier applied to the stored value")
    translate: float = Field(0.0, description="Added after scaling")
    format: str | None = Field(None, description="Format spec for the display value, e.g. '.1f'")
    unit: str = Field("", description="Unit suffix for the display value")
    low: float | None = Field(None, description="Lower gauge bound")
    high: float | None = Field(None, description="Upper gauge bound")
    symbols: dict[int, str] | None = Field(None, description="Display labels for raw values")
    remark: str = Field("", description="Free text description")

    @model_validator(mode="after")
    def check_type_fields(self) -> "VariableDef":
        """Bit variables need a bit number, strings need a size."""
        if self.type == DataType.BIT and self.bit is None:
            raise ValueError(f"Variable {self.name} is a bit but has no bit number")
        if self.type == DataType.STRING and self.size is None:
            raise ValueError(f"Variable {self.name} is a string but has no size")
        if self.low is not None and self.high is not None and self.high < self.low:
            raise ValueError("high must be >= low")
        return self


class BitDef(BaseModel):
    """One diagnostic flag in the realtime buffer."""

    name: str = Field(..., min_length=1)
    offset: int = Field(..., ge=0, description="Byte offset in the realtime buffer")
    bit: int = Field(..., ge=0, le=7, description="Bit number, 0 = LSB")
    code: int = Field(..., ge=0, description="Diagnostic trouble code")
    remark: str = Field("", description="Description shown for the code")


class BitSetDef(BaseModel):
    """Ordered group of diagnostic flags, e.g. CDiag0."""

    name: str = Field(..., min_length=1)
    bits: list[BitDef] = Field(default_factory=list)


class ModuleDictionary(BaseModel):
    """Variables and bitsets of one ECM firmware version."""

    id: str = Field(..., min_length=1, description="Version string reported by the module")
    type: ModuleType
    variables: list[VariableDef] = Field(default_factory=list)
    bitsets: list[BitSetDef] = Field(default_factory=list)

    @field_validator("variables")
    @classmethod
    def unique_variables(cls, v: list[VariableDef]) -> list[VariableDef]:
        """Names must be unique per source."""
        seen = set()
        for var in v:
            key = (var.source, var.name)
            if key in seen:
                raise ValueError(f"Duplicate {var.source.value} variable: {var.name}")
            seen.add(key)
        return v


class DictionaryDocument(BaseModel):
    """Top level of a dictionary JSON file."""

    modules: list[ModuleDictionary] = Field(default_factory=list)


# ============================================================================
# Decoded results
# ============================================================================


class Fault(BaseModel):
    """A diagnostic code found set in the realtime data."""

    code: int = Field(..., description="Diagnostic trouble code")
    type: ErrorType = Field(..., description="Current or historic")
    description: str = Field("", description="Remark from the dictionary")

    model_config = ConfigDict(
        json_schema_extra={"example": {"code": 12, "type": "current", "description": "Front O2 sensor"}}
    )


# ============================================================================
# API Response Models
# ============================================================================


class VersionResponse(BaseModel):
    """Response model for GET /api/version."""

    version: str = Field(..., description="Version string reported by the module")
    module_type: ModuleType | None = Field(None, description="Resolved module generation")
    identified: bool = Field(..., description="Whether a dictionary exists for this version")


class StateResponse(BaseModel):
    """Response model for GET /api/state."""

    state: int = Field(..., description="Raw state byte")
    busy: bool = Field(..., description="Whether the module is busy")


class PageResponse(BaseModel):
    """Response model for POST /api/eeprom/pages/{number}."""

    number: int
    start: int
    length: int
    data: str = Field(..., description="Page contents as hex")


class VariableResponse(BaseModel):
    """Response model for a decoded variable."""

    name: str
    value: Any = Field(None, description="Scaled raw value")
    formatted: str = Field("", description="Display value")
    unit: str = ""
    low: float | None = None
    high: float | None = None


class RealtimeResponse(BaseModel):
    """Response model for POST /api/realtime."""

    timestamp: datetime = Field(default_factory=datetime.now)
    values: dict[str, VariableResponse] = Field(default_factory=dict)


class ErrorsResponse(BaseModel):
    """Response model for GET /api/errors."""

    errors: list[Fault] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str = Field(..., description="Health status (healthy/degraded/unhealthy)")
    state: str = Field(..., description="Session state")
    module_id: str | None = Field(None, description="Identified module version")

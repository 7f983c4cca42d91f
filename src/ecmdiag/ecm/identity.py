"""Module identity: which firmware the session is talking to."""

from dataclasses import dataclass

from ecmdiag.core.models import ModuleType


@dataclass(frozen=True)
class ModuleIdentity:
    """Resolved once per connection from the version string.

    Attributes:
        id: Version string exactly as reported (e.g. "BUEIB310 12-11-03")
        type: Hardware generation, selects the EEPROM layout
    """

    id: str
    type: ModuleType

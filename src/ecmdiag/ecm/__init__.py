"""ECM data model and session."""

from ecmdiag.ecm.bitsets import Bit, BitSet, DiagnosticPages, decode_errors
from ecmdiag.ecm.dictionary import Dictionary, JsonDictionary
from ecmdiag.ecm.eeprom import PAGE_LAYOUTS, Eeprom, Page, read_page
from ecmdiag.ecm.identity import ModuleIdentity
from ecmdiag.ecm.session import EcmSession, SessionState
from ecmdiag.ecm.variables import Variable

__all__ = [
    "Bit",
    "BitSet",
    "DiagnosticPages",
    "Dictionary",
    "EcmSession",
    "Eeprom",
    "JsonDictionary",
    "ModuleIdentity",
    "PAGE_LAYOUTS",
    "Page",
    "SessionState",
    "Variable",
    "decode_errors",
    "read_page",
]

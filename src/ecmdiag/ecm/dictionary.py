"""Variable and bitset dictionary keyed by module version."""

import logging
from importlib import resources
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from ecmdiag.core.models import BitSetDef, DictionaryDocument, ModuleDictionary, ModuleType, VariableDef, VariableSource
from ecmdiag.ecm.bitsets import BitSet
from ecmdiag.ecm.variables import Variable

logger = logging.getLogger(__name__)

DEFAULT_RESOURCE = "ddfi2.json"


class Dictionary(Protocol):
    """Lookup service for the definitions that apply to a module version.

    Every lookup returns a new object or None when the name is unknown.
    """

    def module_type(self, module_id: str) -> ModuleType | None: ...

    def scalar_variable_names(self, module_id: str) -> list[str]: ...

    def variable(self, module_id: str, name: str) -> Variable | None: ...

    def eeprom_variable(self, module_id: str, name: str) -> Variable | None: ...

    def bitset(self, module_id: str, field_name: str) -> BitSet | None: ...


class _ModuleEntry:
    def __init__(self, module: ModuleDictionary):
        self.module = module
        self.variables: dict[VariableSource, dict[str, VariableDef]] = {source: {} for source in VariableSource}
        for var in module.variables:
            self.variables[var.source][var.name] = var
        self.bitsets: dict[str, BitSetDef] = {b.name: b for b in module.bitsets}


class JsonDictionary:
    """In-memory dictionary loaded from a JSON document.

    Document layout::

        {"modules": [{"id": "BUEIB310 12-11-03", "type": "DDFI-2",
                      "variables": [...], "bitsets": [...]}]}
    """

    def __init__(self, document: DictionaryDocument):
        self._modules: dict[str, _ModuleEntry] = {}
        for module in document.modules:
            if module.id in self._modules:
                raise ValueError(f"Duplicate module in dictionary: {module.id}")
            self._modules[module.id] = _ModuleEntry(module)
        logger.debug("Dictionary loaded: %d modules", len(self._modules))

    @classmethod
    def from_json(cls, text: str | bytes) -> "JsonDictionary":
        """
        Build a dictionary from JSON text.

        Raises:
            ValueError: If the document does not validate
        """
        try:
            document = DictionaryDocument.model_validate_json(text)
        except ValidationError as e:
            raise ValueError(f"Invalid dictionary: {e}") from e
        return cls(document)

    @classmethod
    def from_path(cls, path: str | Path) -> "JsonDictionary":
        """Load a dictionary file."""
        path = Path(path)
        logger.info("Loading dictionary from %s", path)
        return cls.from_json(path.read_bytes())

    @classmethod
    def load_default(cls) -> "JsonDictionary":
        """Load the dictionary shipped with the package."""
        try:
            text = resources.files("ecmdiag.data").joinpath(DEFAULT_RESOURCE).read_bytes()
        except FileNotFoundError:
            raise FileNotFoundError(f"Dictionary resource not found: ecmdiag/data/{DEFAULT_RESOURCE}") from None
        return cls.from_json(text)

    def __len__(self) -> int:
        return len(self._modules)

    def __contains__(self, module_id: object) -> bool:
        return module_id in self._modules

    @property
    def module_ids(self) -> list[str]:
        return list(self._modules)

    def module_type(self, module_id: str) -> ModuleType | None:
        entry = self._modules.get(module_id)
        return entry.module.type if entry else None

    def scalar_variable_names(self, module_id: str) -> list[str]:
        """Names of numeric realtime variables, in definition order."""
        entry = self._modules.get(module_id)
        if entry is None:
            return []
        return [
            name
            for name, defn in entry.variables[VariableSource.RUNTIME].items()
            if Variable(defn).is_scalar
        ]

    def _variable(self, module_id: str, name: str, source: VariableSource) -> Variable | None:
        entry = self._modules.get(module_id)
        if entry is None:
            return None
        defn = entry.variables[source].get(name)
        return Variable(defn) if defn is not None else None

    def variable(self, module_id: str, name: str) -> Variable | None:
        """Realtime variable by name."""
        return self._variable(module_id, name, VariableSource.RUNTIME)

    def eeprom_variable(self, module_id: str, name: str) -> Variable | None:
        return self._variable(module_id, name, VariableSource.EEPROM)

    def bitset(self, module_id: str, field_name: str) -> BitSet | None:
        entry = self._modules.get(module_id)
        if entry is None:
            return None
        defn = entry.bitsets.get(field_name)
        return BitSet(defn) if defn is not None else None

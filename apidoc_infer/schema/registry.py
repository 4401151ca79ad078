"""
Schema Registry - Owns named component schemas and deduplicates them.

Features:
- Structural dedup (fingerprint -> component name)
- Name collision suffixing (Name, Name1, Name2, ...)
- Inline passthrough for primitive-only shapes
- Name reservation for recursive types
- Security scheme collection
"""

import logging
import re
from typing import Any, Callable, Dict, Optional, Set, Union

from .fingerprint import Fingerprinter
from .models import Components, PRIMITIVE_TYPES, Reference, SchemaObject

logger = logging.getLogger(__name__)


class SchemaRegistry:
    """
    Registers component schemas and returns references to them

    One instance per generation run; not safe for concurrent mutation.

    Usage:
    ```python
    registry = SchemaRegistry()
    ref = registry.register("User", user_schema)
    same = registry.register("Account", user_schema)  # same shape -> same ref
    assert ref == same
    ```
    """

    def __init__(self, fingerprinter: Optional[Fingerprinter] = None):
        self.fingerprinter = fingerprinter or Fingerprinter()
        self._schemas: Dict[str, SchemaObject] = {}
        self._fingerprints: Dict[str, str] = {}  # fingerprint -> name
        self._reserved: Set[str] = set()
        self._security_schemes: Dict[str, Dict[str, Any]] = {}

    def register(self, name: str, schema: SchemaObject) -> Reference:
        """
        Register a schema under a name, reusing structurally identical components

        Args:
            name: Preferred component name
            schema: Canonical body (stored as given)

        Returns:
            Reference to the component holding this shape
        """
        if schema.ref is not None:
            return schema.ref

        fingerprint = self.fingerprinter.fingerprint(schema)
        existing = self._fingerprints.get(fingerprint)
        if existing is not None:
            logger.debug(f"Schema '{name}' deduplicated to '{existing}'")
            return Reference(existing)

        base = self.sanitize_name(name)
        candidate = base
        counter = 1
        while self._is_taken(candidate):
            candidate = f"{base}{counter}"
            counter += 1

        self._store(candidate, schema, fingerprint)
        return Reference(candidate)

    def register_if_complex(self, name: str, schema: SchemaObject) -> SchemaObject:
        """Register complex shapes and return a reference schema; primitives stay inline"""
        if self.is_simple(schema):
            return schema
        return SchemaObject.from_ref(self.register(name, schema))

    def reserve(self, name: str) -> str:
        """Claim a free component name ahead of its body (recursive types)"""
        base = self.sanitize_name(name)
        candidate = base
        counter = 1
        while self._is_taken(candidate):
            candidate = f"{base}{counter}"
            counter += 1
        self._reserved.add(candidate)
        return candidate

    def release(self, name: str) -> None:
        """Drop a reservation that was never filled"""
        self._reserved.discard(name)

    def register_as(self, name: str, schema: SchemaObject) -> Reference:
        """Store a body under an exact (usually reserved) name"""
        fingerprint = self.fingerprinter.fingerprint(schema)
        self._reserved.discard(name)
        self._store(name, schema, fingerprint)
        return Reference(name)

    def resolve(self, reference: Union[Reference, str]) -> Optional[SchemaObject]:
        """Return the component body behind a reference, if registered"""
        if isinstance(reference, str):
            reference = Reference.from_string(reference)
        return self._schemas.get(reference.name)

    def has_schema(self, name: str) -> bool:
        return name in self._schemas

    def get_schemas(self) -> Dict[str, SchemaObject]:
        return dict(self._schemas)

    def map_schemas(self, transform: Callable[[SchemaObject], SchemaObject]) -> None:
        """Rewrite every component body with a cosmetic-only transform (e.g. examples)"""
        for name, schema in list(self._schemas.items()):
            self._schemas[name] = transform(schema)

    def add_security_scheme(self, name: str, scheme: Dict[str, Any]) -> None:
        self._security_schemes[name] = dict(scheme)

    def get_security_schemes(self) -> Dict[str, Dict[str, Any]]:
        return dict(self._security_schemes)

    def components(self) -> Components:
        return Components(schemas=self.get_schemas(), security_schemes=self.get_security_schemes())

    def reset(self) -> None:
        """Forget everything; called between independent generation runs"""
        self._schemas.clear()
        self._fingerprints.clear()
        self._reserved.clear()
        self._security_schemes.clear()

    def __len__(self) -> int:
        return len(self._schemas)

    @staticmethod
    def is_simple(schema: SchemaObject) -> bool:
        """References, primitives and property-less objects are not worth a component"""
        if schema.ref is not None:
            return True
        if schema.properties or schema.items is not None or schema.is_composition:
            return False
        if schema.additional_properties is not None:
            return False
        # property-less objects stay inline as generic placeholders
        return schema.type is None or schema.type in PRIMITIVE_TYPES or schema.type == "object"

    @staticmethod
    def sanitize_name(name: str) -> str:
        """Component names are restricted to [A-Za-z0-9._-]"""
        cleaned = re.sub(r"[^A-Za-z0-9._-]", "", name.replace("\\", ".").split("[", 1)[0])
        return cleaned or "Schema"

    def _is_taken(self, name: str) -> bool:
        return name in self._schemas or name in self._reserved

    def _store(self, name: str, schema: SchemaObject, fingerprint: str) -> None:
        self._schemas[name] = schema
        self._fingerprints.setdefault(fingerprint, name)

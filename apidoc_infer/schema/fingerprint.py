"""
Structural fingerprinting of schemas.

Two schemas that differ only in cosmetic fields (description, example,
default, title) share a fingerprint; any structural difference changes it.
"""

import hashlib
import json
from typing import Any, Dict, List, Optional

from .models import SchemaObject


class Fingerprinter:
    """Computes structural hashes used by the schema registry for dedup"""

    BOUND_FIELDS = (
        "min_length",
        "max_length",
        "minimum",
        "maximum",
        "min_items",
        "max_items",
    )

    def fingerprint(self, schema: SchemaObject) -> str:
        """
        Hash the structural content of a schema

        Args:
            schema: Schema to hash

        Returns:
            md5 hex digest of the canonical JSON form
        """
        canonical = json.dumps(self.normalize(schema), sort_keys=True, separators=(",", ":"), default=str)
        return hashlib.md5(canonical.encode("utf-8")).hexdigest()

    def normalize(self, schema: Optional[SchemaObject]) -> Dict[str, Any]:
        """Reduce a schema to its structural fields in canonical order"""
        if schema is None:
            return {}
        if schema.ref is not None:
            return {"$ref": schema.ref.ref}

        data: Dict[str, Any] = {}
        if schema.type is not None:
            data["type"] = schema.type
        if schema.format is not None:
            data["format"] = schema.format
        if schema.nullable:
            data["nullable"] = True
        if schema.enum is not None:
            data["enum"] = self._sorted_values(schema.enum)
        if schema.pattern is not None:
            data["pattern"] = schema.pattern
        for name in self.BOUND_FIELDS:
            value = getattr(schema, name)
            if value is not None:
                data[name] = value
        if schema.properties:
            data["properties"] = {
                name: self.normalize(schema.properties[name]) for name in sorted(schema.properties)
            }
        if schema.required:
            data["required"] = sorted(set(schema.required))
        if schema.items is not None:
            data["items"] = self.normalize(schema.items)
        if schema.additional_properties is not None:
            data["additional_properties"] = self.normalize(schema.additional_properties)
        for name, branches in schema.compositions().items():
            data[name] = [self.normalize(branch) for branch in branches]
        return data

    @staticmethod
    def _sorted_values(values: List[Any]) -> List[Any]:
        # mixed literal types cannot be compared directly
        return sorted(values, key=lambda v: (type(v).__name__, json.dumps(v, sort_keys=True, default=str)))

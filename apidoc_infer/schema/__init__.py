"""
Schema Module - Schema data model and the component registry.

Supports:
- SchemaObject / Reference / Components data model (OpenAPI 3.0 and 3.1 output)
- Structural fingerprints (cosmetic fields excluded)
- Component registration with fingerprint deduplication and name suffixing
"""

from .models import Components, Reference, SchemaObject, SchemaType
from .fingerprint import Fingerprinter
from .registry import SchemaRegistry

__all__ = [
    "Components",
    "Reference",
    "SchemaObject",
    "SchemaType",
    "Fingerprinter",
    "SchemaRegistry",
]

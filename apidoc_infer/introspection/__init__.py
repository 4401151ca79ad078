"""
Source Introspection Module - Reads application source without importing it.

Supports:
- Parse caching keyed by (path, mtime) with TTL
- Type declaration index (dataclasses, models, TypedDicts, enums, plain classes)
- Handler lookup by `file.py:Qualified.name` or `package.module:function`
- Documentation annotations from decorators and manifest entries
"""

from .ast_cache import AstCache
from .source_index import FieldDeclaration, SourceIndex, TypeDeclaration, TypeKind
from .annotations import Annotation, AnnotationReader

__all__ = [
    "AstCache",
    "FieldDeclaration",
    "SourceIndex",
    "TypeDeclaration",
    "TypeKind",
    "Annotation",
    "AnnotationReader",
]

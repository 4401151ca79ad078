"""
Class Schema Resolver - Turns project type declarations into component schemas.

Supports:
- Constructor parameters first, then declared public fields (inherited included)
- Enums, date/time, UUID and opaque containers short-circuited
- Self and mutual recursion through reserved component names
- Field metadata: defaults, descriptions, examples, numeric and length bounds
- Per-run cache, reset between generation runs
"""

import ast
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Set

from apidoc_infer.introspection.ast_helpers import dotted_name, short_name
from apidoc_infer.introspection.source_index import (
    FieldDeclaration,
    SourceIndex,
    TypeDeclaration,
    TypeKind,
)
from apidoc_infer.mapper.type_mapper import TypeMapper

from .models import Reference, SchemaObject, SchemaType
from .registry import SchemaRegistry

logger = logging.getLogger(__name__)

OPTIONAL_MARKERS = {"Optional", "NotRequired"}


@dataclass
class ResolutionContext:
    """Transient state of one generation run"""
    in_progress: Dict[str, str] = field(default_factory=dict)  # qualname -> reserved name
    cache: Dict[str, Optional[SchemaObject]] = field(default_factory=dict)
    recursive: Set[str] = field(default_factory=set)

    def reset(self) -> None:
        self.in_progress.clear()
        self.cache.clear()
        self.recursive.clear()


class ClassSchemaResolver:
    """
    Resolves type names to schemas, registering complex ones as components

    Usage:
    ```python
    registry = SchemaRegistry()
    resolver = ClassSchemaResolver(SourceIndex(Path("./app")), registry)
    schema = resolver.resolve("UserPayload")  # usually a $ref schema
    body = registry.resolve(schema.ref)
    ```
    """

    def __init__(
        self,
        source_index: SourceIndex,
        registry: SchemaRegistry,
        type_mapper: Optional[TypeMapper] = None,
    ):
        self.source_index = source_index
        self.registry = registry
        self.type_mapper = type_mapper or TypeMapper()
        self.type_mapper.resolver = self
        self.context = ResolutionContext()

    def resolve(self, type_name: str) -> Optional[SchemaObject]:
        """
        Resolve a type name to a schema

        Args:
            type_name: Simple or dotted class name

        Returns:
            A reference schema for registered components, an inline schema
            for enums and well-known types, or None when not resolvable
        """
        name = (type_name or "").strip().strip("'\"")
        if not name:
            return None

        well_known = self.type_mapper.map_well_known(name)
        if well_known is not None:
            return well_known

        decl = self.source_index.find_type(name)
        if decl is None:
            logger.debug(f"Type '{name}' not found in source index")
            return None

        key = decl.qualname
        if key in self.context.cache:
            cached = self.context.cache[key]
            return cached.copy() if cached is not None else None

        if key in self.context.in_progress:
            # re-entry: describe once, reference thereafter
            self.context.recursive.add(key)
            return SchemaObject.from_ref(Reference(self.context.in_progress[key]))

        if self.source_index.is_enum(decl):
            schema = self.type_mapper.map_enum(decl)
            self.context.cache[key] = schema
            return schema.copy()

        reserved = self.registry.reserve(decl.name)
        self.context.in_progress[key] = reserved
        try:
            body = self._build_object_schema(decl)
        except (AttributeError, TypeError, ValueError, RecursionError) as e:
            logger.debug(f"Failed to resolve '{key}': {e}")
            body = None
        finally:
            del self.context.in_progress[key]

        if body is None:
            self.registry.release(reserved)
            self.context.cache[key] = None
            return None

        if key in self.context.recursive:
            result = SchemaObject.from_ref(self.registry.register_as(reserved, body))
        else:
            self.registry.release(reserved)
            result = self.registry.register_if_complex(decl.name, body)

        self.context.cache[key] = result
        return result.copy()

    def reset(self) -> None:
        """Clear in-progress markers and the per-run cache"""
        self.context.reset()

    def _build_object_schema(self, decl: TypeDeclaration) -> SchemaObject:
        members = decl.init_params or self.source_index.collect_fields(decl)

        schema = SchemaObject(type=SchemaType.OBJECT.value, description=decl.description)
        for member in members:
            name = member.alias or member.name
            prop = self.member_schema(member)
            schema.properties[name] = prop
            if self._is_required(member, prop, decl):
                schema.required.append(name)
        return schema

    def member_schema(self, member: FieldDeclaration) -> SchemaObject:
        if member.annotation is not None:
            prop = self.type_mapper.map_annotation(member.annotation)
        elif member.has_default and member.default is not None:
            prop = self.type_mapper.map_type_name(type(member.default).__name__)
        else:
            prop = SchemaObject()

        if prop.ref is not None:
            return prop

        if member.has_default and member.default is not None and isinstance(
            member.default, (str, int, float, bool)
        ):
            prop.default = member.default
        if member.description:
            prop.description = member.description
        if member.example is not None:
            prop.example = member.example
        for attr, value in member.constraints.items():
            if prop.type == SchemaType.ARRAY.value and attr in ("min_length", "max_length"):
                attr = attr.replace("length", "items")
            setattr(prop, attr, value)
        return prop

    @staticmethod
    def _is_required(member: FieldDeclaration, prop: SchemaObject, decl: TypeDeclaration) -> bool:
        marker = ClassSchemaResolver._annotation_marker(member.annotation)
        if marker == "Required":
            return True
        if marker in OPTIONAL_MARKERS:
            return False
        if decl.kind == TypeKind.TYPED_DICT and not decl.total:
            return False
        if member.has_default:
            return False
        return not prop.nullable

    @staticmethod
    def _annotation_marker(annotation: Optional[ast.expr]) -> Optional[str]:
        """Outermost Optional/Required/NotRequired wrapper, through Annotated"""
        while isinstance(annotation, ast.Subscript):
            head = short_name(dotted_name(annotation.value))
            if head in ("Required", "NotRequired", "Optional"):
                return head
            if head != "Annotated":
                return None
            inner = annotation.slice
            annotation = inner.elts[0] if isinstance(inner, ast.Tuple) else inner
        return None

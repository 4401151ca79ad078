"""Per-operation analysis context handed to every extractor."""

import ast
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Optional

from apidoc_infer.capture.repository import CapturedResponse, CapturedResponseRepository
from apidoc_infer.introspection.annotations import Annotation, decorator_names
from apidoc_infer.introspection.ast_helpers import FunctionNode, dotted_name, handler_parameters
from apidoc_infer.introspection.source_index import SourceIndex, TypeDeclaration
from apidoc_infer.mapper.type_mapper import TypeMapper
from apidoc_infer.mapper.validation_rules import ValidationRuleMapper
from apidoc_infer.schema.class_resolver import ClassSchemaResolver
from apidoc_infer.schema.models import SchemaObject

from .entry_points import EntryPoint

if TYPE_CHECKING:
    from apidoc_infer.plugins.registry import PluginRegistry

BODY_METHODS = {"POST", "PUT", "PATCH"}
QUERY_METHODS = {"GET", "HEAD", "DELETE"}


@dataclass
class AnalysisContext:
    """
    Everything an extractor may look at for one (entry point, method)

    `handler` and `module` are None when the handler source could not be
    found or parsed; extractors then fall back to what they can do without it.
    """
    entry_point: EntryPoint
    method: str
    source_index: SourceIndex
    resolver: ClassSchemaResolver
    rule_mapper: ValidationRuleMapper
    handler: Optional[FunctionNode] = None
    module: Optional[ast.Module] = None
    annotations: List[Annotation] = field(default_factory=list)
    plugins: Optional["PluginRegistry"] = None
    captures: Optional[CapturedResponseRepository] = None

    @property
    def type_mapper(self) -> TypeMapper:
        return self.resolver.type_mapper

    @property
    def path(self) -> str:
        return self.entry_point.openapi_path

    @property
    def path_parameters(self) -> List[str]:
        return self.entry_point.path_parameters

    @property
    def has_handler(self) -> bool:
        return self.handler is not None

    @property
    def is_body_method(self) -> bool:
        return self.method.upper() in BODY_METHODS

    @property
    def is_query_method(self) -> bool:
        return self.method.upper() in QUERY_METHODS

    @property
    def middleware(self) -> List[str]:
        """Route middleware plus handler decorator names"""
        return list(self.entry_point.middleware) + decorator_names(self.handler)

    @property
    def operation_name(self) -> str:
        """PascalCase base name used for component hints (`create_user` -> `CreateUser`)"""
        if self.handler is not None:
            raw = self.handler.name
        else:
            raw = f"{self.method.lower()} {self.entry_point.openapi_path}"
        words = [w for w in re.split(r"[^A-Za-z0-9]+", raw) if w]
        return "".join(w[:1].upper() + w[1:] for w in words) or "Operation"

    def annotations_of(self, kind: str) -> List[Annotation]:
        return [a for a in self.annotations if a.kind == kind]

    def captured_responses(self) -> Dict[int, CapturedResponse]:
        if self.captures is None:
            return {}
        return self.captures.get_captures(self.method, self.entry_point.openapi_path)

    def resolve_type(self, name: str) -> Optional[SchemaObject]:
        return self.resolver.resolve(name)

    def map_annotation(self, node: Optional[ast.AST]) -> SchemaObject:
        return self.type_mapper.map_annotation(node)

    def find_type(self, annotation: Optional[ast.AST]) -> Optional[TypeDeclaration]:
        """Project class named by an annotation (through Optional/Annotated), if any"""
        while isinstance(annotation, ast.Subscript):
            head = dotted_name(annotation.value) or ""
            if head.rsplit(".", 1)[-1] not in ("Optional", "Annotated"):
                break
            inner = annotation.slice
            annotation = inner.elts[0] if isinstance(inner, ast.Tuple) else inner
        if isinstance(annotation, ast.Constant) and isinstance(annotation.value, str):
            return self.source_index.find_type(annotation.value)
        name = dotted_name(annotation)
        if name is None or self.type_mapper.map_well_known(name) is not None:
            return None
        return self.source_index.find_type(name)

    def handler_parameters(self) -> List[ast.arg]:
        if self.handler is None:
            return []
        return handler_parameters(self.handler)

    def matches_middleware(self, names: set, prefixes: tuple = ()) -> bool:
        """True when a middleware/decorator equals one of `names` or starts with a prefix"""
        for entry in self.middleware:
            lowered = entry.lower()
            short = lowered.rsplit(".", 1)[-1]
            if lowered in names or short in names:
                return True
            if prefixes and (lowered.startswith(prefixes) or short.startswith(prefixes)):
                return True
        return False

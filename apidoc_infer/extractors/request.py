"""
Request Extractors - Request body candidates for an operation.

Extractors (priority order):
- RequestBodyAnnotationExtractor: `@request_body(...)` / `@body_parameter(...)`
- ValidatedInputExtractor: handler parameter (or instantiated class) declaring `rules`
- InlineValidationExtractor: `validate({...})` / `Validator.make(data, {...})` calls
- TypedBodyExtractor: handler parameter typed with a project class
- CapturedRequestExtractor: request bodies recorded at runtime

Validation rules on GET/HEAD/DELETE describe query parameters instead of a body.
"""

import ast
import logging
from abc import abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from apidoc_infer.analysis.context import AnalysisContext
from apidoc_infer.analysis.results import ParameterResult, Provenance, SchemaResult
from apidoc_infer.introspection.ast_helpers import iter_own_nodes, keyword, literal_dict
from apidoc_infer.introspection.source_index import TypeDeclaration
from apidoc_infer.plugins.contracts import Plugin, QueryParameterExtractor, RequestBodyExtractor
from apidoc_infer.schema.models import SchemaObject, SchemaType

from .support import callee, schema_from_values

logger = logging.getLogger(__name__)

JSON = "application/json"
MULTIPART = "multipart/form-data"

# handler parameters that are framework plumbing, never payloads
INFRASTRUCTURE_PARAMETERS = {
    "request", "req", "response", "db", "session", "background_tasks",
    "current_user", "user", "settings", "args", "kwargs",
}


class RequestBodyAnnotationExtractor(Plugin, RequestBodyExtractor):
    """Explicit request body annotations"""

    name = "request-body-annotation"
    priority = 100
    provenance = Provenance.ANNOTATION

    def extract_request_body(self, context: AnalysisContext) -> Optional[SchemaResult]:
        bodies = context.annotations_of("request_body")
        if bodies:
            values = bodies[0].values
            example = values.get("example")
            return SchemaResult(
                schema=schema_from_values(context, values),
                description=values.get("description") or "",
                content_type=values.get("content_type") or JSON,
                required=bool(values.get("required", True)),
                examples={"default": example} if example is not None else {},
                provenance=self.provenance,
                source=self.name,
                schema_name=values.get("data_class") if isinstance(values.get("data_class"), str) else None,
            )

        parameters = context.annotations_of("body_parameter")
        if not parameters:
            return None
        schema = SchemaObject(type=SchemaType.OBJECT.value)
        for annotation in parameters:
            name = annotation.get("name")
            if not name:
                continue
            prop = schema_from_values(context, annotation.values)
            prop.description = annotation.get("description") or None
            if annotation.get("example") is not None:
                prop.example = annotation.get("example")
            schema.properties[name] = prop
            if annotation.get("required", False):
                schema.required.append(name)
        return SchemaResult(schema=schema, provenance=self.provenance, source=self.name)


class _RulesExtractor(Plugin, RequestBodyExtractor, QueryParameterExtractor):
    """Shared behaviour for extractors working from validation rule sets"""

    @abstractmethod
    def find_rules(self, context: AnalysisContext) -> Optional[Tuple[Dict[str, Any], Optional[str], Optional[str]]]:
        """Return (rules, schema name hint, description)"""

    def extract_request_body(self, context: AnalysisContext) -> Optional[SchemaResult]:
        if not context.is_body_method:
            return None
        found = self.find_rules(context)
        if found is None:
            return None
        rules, hint, description = found
        mapper = context.rule_mapper
        return SchemaResult(
            schema=mapper.map_all_rules(rules),
            description=description or "",
            content_type=MULTIPART if mapper.has_file_upload(rules) else JSON,
            provenance=self.provenance,
            source=self.name,
            schema_name=hint,
        )

    def extract_query_parameters(self, context: AnalysisContext) -> List[ParameterResult]:
        if context.is_body_method:
            return []
        found = self.find_rules(context)
        if found is None:
            return []
        rules, _, _ = found
        mapper = context.rule_mapper
        parameters = []
        for field_name, field_rules in rules.items():
            if "." in field_name:
                continue
            parameters.append(
                ParameterResult(
                    name=field_name,
                    schema=mapper.map_rules(field_rules),
                    required=mapper.is_required(field_rules),
                    provenance=self.provenance,
                    source=self.name,
                )
            )
        return parameters


class ValidatedInputExtractor(_RulesExtractor):
    """Handler parameter typed with (or handler instantiating) a class that declares `rules`"""

    name = "validated-input"
    priority = 90

    def find_rules(self, context: AnalysisContext) -> Optional[Tuple[Dict[str, Any], Optional[str], Optional[str]]]:
        decl = self.find_declaration(context)
        if decl is None or not decl.rules:
            return None
        return decl.rules, decl.name, decl.description

    @staticmethod
    def find_declaration(context: AnalysisContext) -> Optional[TypeDeclaration]:
        for param in context.handler_parameters():
            decl = context.find_type(param.annotation)
            if decl is not None and decl.has_rules:
                return decl
        if context.handler is None:
            return None
        for node in iter_own_nodes(context.handler):
            if isinstance(node, ast.Call):
                name = callee(node)
                if name and name[:1].isupper():
                    decl = context.source_index.find_type(name)
                    if decl is not None and decl.has_rules:
                        return decl
        return None


class InlineValidationExtractor(_RulesExtractor):
    """Rule dictionaries passed straight to a validate call"""

    name = "inline-validation"
    priority = 80

    VALIDATE_CALLS = {"validate", "make", "validate_request", "validated"}

    def find_rules(self, context: AnalysisContext) -> Optional[Tuple[Dict[str, Any], Optional[str], Optional[str]]]:
        rules = self.find_inline_rules(context)
        if rules is None:
            return None
        return rules, f"{context.operation_name}Request", None

    def find_inline_rules(self, context: AnalysisContext) -> Optional[Dict[str, Any]]:
        if context.handler is None:
            return None
        for node in iter_own_nodes(context.handler):
            if not isinstance(node, ast.Call) or callee(node) not in self.VALIDATE_CALLS:
                continue
            candidates = [keyword(node, "rules")] + list(node.args)
            for candidate in candidates:
                rules = literal_dict(candidate)
                if rules and all(isinstance(v, (str, list)) for v in rules.values()):
                    return rules
        return None


class TypedBodyExtractor(Plugin, RequestBodyExtractor):
    """Body described by the project class a handler parameter is typed with"""

    name = "typed-body"
    priority = 70

    def extract_request_body(self, context: AnalysisContext) -> Optional[SchemaResult]:
        if not context.is_body_method:
            return None
        for param in context.handler_parameters():
            if param.arg in INFRASTRUCTURE_PARAMETERS or param.arg in context.path_parameters:
                continue
            decl = context.find_type(param.annotation)
            if decl is None or decl.has_rules or context.source_index.is_enum(decl):
                continue
            schema = context.map_annotation(param.annotation)
            logger.debug(f"{context.method} {context.path}: body typed by parameter '{param.arg}' ({decl.qualname})")
            return SchemaResult(
                schema=schema,
                description=decl.description or "",
                provenance=self.provenance,
                source=self.name,
                schema_name=decl.name,
            )
        return None


class CapturedRequestExtractor(Plugin, RequestBodyExtractor):
    """Request bodies recorded by the runtime capture store"""

    name = "captured-request"
    priority = 10
    provenance = Provenance.CAPTURE

    def extract_request_body(self, context: AnalysisContext) -> Optional[SchemaResult]:
        captures = context.captured_responses()
        ordered = sorted(captures.values(), key=lambda c: (not 200 <= c.status_code < 300, c.status_code))
        for capture in ordered:
            request = capture.request
            if request is None or request.body_schema is None:
                continue
            return SchemaResult(
                schema=request.body_schema,
                examples={"captured": request.body} if request.body is not None else {},
                provenance=self.provenance,
                source=self.name,
            )
        return None

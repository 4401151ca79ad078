"""
Query Extractors - Query parameter candidates for an operation.

Extractors (priority order):
- QueryParameterAnnotationExtractor: `@query_parameter(...)`
- RequestArgsExtractor: `request.args.get(...)`, `request.query_params.get(...)`, `request.GET.get(...)`
- HandlerSignatureQueryExtractor: scalar handler parameters on GET/HEAD/DELETE
- DocstringQueryParameterExtractor: documented `Args:` / `:param x:` entries on GET/HEAD
- PaginationExtractor: `.paginate(...)` / `.cursor_paginate(...)` calls
- CapturedQueryExtractor: query strings recorded at runtime
"""

import ast
import logging
import re
from typing import Dict, List, Optional, Tuple

from apidoc_infer.analysis.context import AnalysisContext
from apidoc_infer.analysis.results import ParameterResult, Provenance
from apidoc_infer.introspection.ast_helpers import (
    MISSING,
    dotted_name,
    iter_own_nodes,
    keyword,
    literal,
    parameter_defaults,
    parse_annotation_string,
    short_name,
)
from apidoc_infer.introspection.source_index import FieldDeclaration, SourceIndex
from apidoc_infer.plugins.contracts import Plugin, QueryParameterExtractor
from apidoc_infer.schema.models import PRIMITIVE_TYPES, SchemaObject, SchemaType

from .request import INFRASTRUCTURE_PARAMETERS
from .support import TYPE_NAME_ALIASES, callee, keyword_int, schema_for_value, schema_from_values

logger = logging.getLogger(__name__)

# attribute names holding the parsed query string
QUERY_CONTAINERS = {"args", "query_params", "GET", "query", "values"}

DOCSTRING_QUERY_METHODS = {"GET", "HEAD"}
DOCSTRING_SECTIONS = {"args", "arguments", "parameters", "params", "query parameters"}
GOOGLE_ARGUMENT = re.compile(r"^(\w+)\s*(?:\(([^)]*)\))?\s*:\s*(.*)$")
REST_PARAM = re.compile(r"^:param\s+(?:([^:]+?)\s+)?(\w+)\s*:\s*(.*)$")
REST_TYPE = re.compile(r"^:type\s+(\w+)\s*:\s*(.*)$")

PAGINATION_CALLS = {"paginate", "simple_paginate", "paginate_query"}
CURSOR_PAGINATION_CALLS = {"cursor_paginate"}
DEFAULT_PER_PAGE = 15


def _container_name(node: ast.expr) -> Optional[str]:
    """`request.args` -> "args" when the attribute is a query container"""
    name = short_name(dotted_name(node))
    return name if name in QUERY_CONTAINERS else None


class QueryParameterAnnotationExtractor(Plugin, QueryParameterExtractor):
    """Explicit query parameter annotations"""

    name = "query-parameter-annotation"
    priority = 100
    provenance = Provenance.ANNOTATION

    def extract_query_parameters(self, context: AnalysisContext) -> List[ParameterResult]:
        parameters = []
        for annotation in context.annotations_of("query_parameter"):
            name = annotation.get("name")
            if not name:
                continue
            parameters.append(
                ParameterResult(
                    name=name,
                    schema=schema_from_values(context, annotation.values),
                    required=bool(annotation.get("required", False)),
                    description=annotation.get("description") or "",
                    example=annotation.get("example"),
                    provenance=self.provenance,
                    source=self.name,
                )
            )
        return parameters


class RequestArgsExtractor(Plugin, QueryParameterExtractor):
    """
    Query parameters read from the request object inside the handler

    `request.args.get("page", 1, type=int)` -> optional integer with default 1,
    `request.args["q"]` -> required string, `request.args.getlist("tag")` -> string array.
    """

    name = "request-args"
    priority = 80

    def extract_query_parameters(self, context: AnalysisContext) -> List[ParameterResult]:
        if context.handler is None:
            return []
        found: Dict[str, ParameterResult] = {}
        for node in iter_own_nodes(context.handler):
            parameter = None
            if isinstance(node, ast.Call) and isinstance(node.func, ast.Attribute):
                parameter = self._from_call(node)
            elif isinstance(node, ast.Subscript) and _container_name(node.value):
                key = literal(node.slice)
                if isinstance(key, str):
                    parameter = self._parameter(key, SchemaObject(type=SchemaType.STRING.value), required=True)
            if parameter is not None and parameter.name not in found:
                found[parameter.name] = parameter
        return list(found.values())

    def _from_call(self, call: ast.Call) -> Optional[ParameterResult]:
        method = call.func.attr
        if method not in ("get", "getlist", "get_list") or not _container_name(call.func.value):
            return None
        key = literal(call.args[0]) if call.args else MISSING
        if not isinstance(key, str):
            return None

        kind = self._type_keyword(call)
        if method in ("getlist", "get_list"):
            return self._parameter(key, SchemaObject(type=SchemaType.ARRAY.value, items=SchemaObject(type=kind or "string")))

        default_node = call.args[1] if len(call.args) > 1 else keyword(call, "default")
        default = literal(default_node)
        if kind is None:
            kind = schema_for_value(default).type if default not in (MISSING, None) else SchemaType.STRING.value
        schema = SchemaObject(type=kind)
        if default is not MISSING and default is not None and type(default).__name__ in TYPE_NAME_ALIASES:
            schema.default = default
        return self._parameter(key, schema)

    @staticmethod
    def _type_keyword(call: ast.Call) -> Optional[str]:
        """`type=int` on a Werkzeug MultiDict lookup"""
        name = dotted_name(keyword(call, "type"))
        if name is None:
            return None
        return TYPE_NAME_ALIASES.get(short_name(name), SchemaType.STRING.value)

    def _parameter(self, name: str, schema: SchemaObject, required: bool = False) -> ParameterResult:
        return ParameterResult(name=name, schema=schema, required=required, provenance=self.provenance, source=self.name)


class HandlerSignatureQueryExtractor(Plugin, QueryParameterExtractor):
    """Scalar handler parameters outside the path template (FastAPI style)"""

    name = "handler-signature"
    priority = 70

    def extract_query_parameters(self, context: AnalysisContext) -> List[ParameterResult]:
        if context.handler is None or not context.is_query_method:
            return []

        defaults = parameter_defaults(context.handler)
        parameters = []
        for param in context.handler_parameters():
            if param.arg in INFRASTRUCTURE_PARAMETERS or param.arg in context.path_parameters:
                continue
            default = defaults.get(param.arg)
            is_query_call = default is not None and callee(default) == "Query"
            if param.annotation is None and not is_query_call:
                continue
            if default is not None and callee(default) in ("Depends", "Security", "Body", "Header", "Cookie", "Path"):
                continue

            member = FieldDeclaration(name=param.arg, annotation=param.annotation)
            if default is not None:
                SourceIndex.apply_default(member, default)
            schema = context.resolver.member_schema(member)
            if not self._is_scalar(schema):
                logger.debug(f"{context.path}: skipping non-scalar parameter '{param.arg}'")
                continue

            parameters.append(
                ParameterResult(
                    name=member.alias or member.name,
                    schema=schema,
                    required=not member.has_default and not schema.nullable,
                    description=member.description or "",
                    example=member.example,
                    provenance=self.provenance,
                    source=self.name,
                )
            )
        return parameters

    @staticmethod
    def _is_scalar(schema: SchemaObject) -> bool:
        if schema.is_ref or schema.properties:
            return False
        if schema.type in PRIMITIVE_TYPES:
            return True
        return schema.is_array and schema.items is not None and schema.items.type in PRIMITIVE_TYPES


class DocstringQueryParameterExtractor(Plugin, QueryParameterExtractor):
    """
    Query parameters documented in the handler docstring

    Reads Google style `Args:` sections and reST `:param name:` / `:type name:`
    fields. Entries naming a handler parameter or a path parameter are skipped;
    the rest can only come from the query string and are documented as optional.
    """

    name = "docstring-query"
    priority = 65

    def extract_query_parameters(self, context: AnalysisContext) -> List[ParameterResult]:
        if context.handler is None or context.method.upper() not in DOCSTRING_QUERY_METHODS:
            return []
        doc = ast.get_docstring(context.handler)
        if not doc:
            return []

        own = {param.arg for param in context.handler_parameters()}
        parameters = []
        for name, (type_text, description) in self.documented_parameters(doc).items():
            if name in own or name in context.path_parameters:
                continue
            parameters.append(
                ParameterResult(
                    name=name,
                    schema=self._schema(context, type_text),
                    description=description,
                    provenance=self.provenance,
                    source=self.name,
                )
            )
        return parameters

    @staticmethod
    def documented_parameters(doc: str) -> Dict[str, Tuple[Optional[str], str]]:
        """`{name: (type text, description)}` from a cleaned docstring"""
        found: Dict[str, Tuple[Optional[str], str]] = {}
        rest_types: Dict[str, str] = {}
        in_section = False
        entry_indent: Optional[int] = None
        current: Optional[str] = None

        for line in doc.splitlines():
            stripped = line.strip()
            if not stripped:
                current = None
                continue
            indent = len(line) - len(line.lstrip())

            if indent == 0:
                current = None
                rest_param = REST_PARAM.match(stripped)
                rest_type = REST_TYPE.match(stripped)
                if rest_param:
                    type_text, name, description = rest_param.groups()
                    found[name] = (type_text, description.strip())
                    current = name
                elif rest_type:
                    rest_types[rest_type.group(1)] = rest_type.group(2).strip()
                in_section = stripped.endswith(":") and stripped[:-1].strip().lower() in DOCSTRING_SECTIONS
                entry_indent = None
                continue

            argument = GOOGLE_ARGUMENT.match(stripped) if in_section else None
            if argument and (entry_indent is None or indent <= entry_indent):
                entry_indent = indent
                name, type_text, description = argument.groups()
                found[name] = (type_text, description.strip())
                current = name
            elif current is not None:
                type_text, description = found[current]
                found[current] = (type_text, f"{description} {stripped}".strip())

        for name, type_text in rest_types.items():
            if name in found and not found[name][0]:
                found[name] = (type_text, found[name][1])
        return found

    @staticmethod
    def _schema(context: AnalysisContext, type_text: Optional[str]) -> SchemaObject:
        """`int, optional` -> integer; free-form or missing types fall back to string"""
        text = re.sub(r",?\s*optional$", "", (type_text or "").strip()).strip()
        node = parse_annotation_string(text) if text else None
        if not isinstance(node, (ast.Name, ast.Attribute, ast.Subscript, ast.BinOp)):
            return SchemaObject(type=SchemaType.STRING.value)
        return context.map_annotation(node)


class PaginationExtractor(Plugin, QueryParameterExtractor):
    """Page / cursor parameters implied by paginator calls"""

    name = "pagination"
    priority = 60

    def extract_query_parameters(self, context: AnalysisContext) -> List[ParameterResult]:
        if context.handler is None:
            return []
        for node in iter_own_nodes(context.handler):
            if not isinstance(node, ast.Call):
                continue
            name = callee(node)
            if name in PAGINATION_CALLS or name in CURSOR_PAGINATION_CALLS:
                per_page = keyword_int(node, "per_page", "page_size", "limit")
                if per_page is None and node.args:
                    value = literal(node.args[0])
                    per_page = value if isinstance(value, int) and not isinstance(value, bool) else None
                logger.debug(f"{context.method} {context.path}: paginated by {name}()")
                return self._parameters(name in CURSOR_PAGINATION_CALLS, per_page or DEFAULT_PER_PAGE)
        return []

    def _parameters(self, cursor: bool, per_page: int) -> List[ParameterResult]:
        if cursor:
            first = ParameterResult(
                name="cursor",
                schema=SchemaObject(type=SchemaType.STRING.value),
                description="Cursor for the next page",
                provenance=self.provenance,
                source=self.name,
            )
        else:
            first = ParameterResult(
                name="page",
                schema=SchemaObject(type=SchemaType.INTEGER.value, minimum=1, default=1),
                description="Page number",
                provenance=self.provenance,
                source=self.name,
            )
        size = ParameterResult(
            name="per_page",
            schema=SchemaObject(type=SchemaType.INTEGER.value, minimum=1, default=per_page),
            description="Items per page",
            provenance=self.provenance,
            source=self.name,
        )
        return [first, size]


class CapturedQueryExtractor(Plugin, QueryParameterExtractor):
    """Query parameters recorded by the runtime capture store"""

    name = "captured-query"
    priority = 10
    provenance = Provenance.CAPTURE

    def extract_query_parameters(self, context: AnalysisContext) -> List[ParameterResult]:
        found: Dict[str, ParameterResult] = {}
        for capture in context.captured_responses().values():
            request = capture.request
            if request is None:
                continue
            properties = request.query_schema.properties if request.query_schema is not None else {}
            names = list(properties) + [n for n in request.query_parameters if n not in properties]
            for name in names:
                if name in found:
                    continue
                value = request.query_parameters.get(name)
                schema = properties.get(name) or schema_for_value(value, with_example=False)
                found[name] = ParameterResult(
                    name=name,
                    schema=schema,
                    example=value,
                    provenance=self.provenance,
                    source=self.name,
                )
        return list(found.values())

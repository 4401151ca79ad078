"""
Response Extractors - Success response candidates for an operation.

Extractors (priority order):
- ResponseAnnotationExtractor: `@response_body`, `@data_response`, `@response_header`
- ReturnTypeExtractor: return annotation, else returned expressions
  (DTO constructors, dict/list displays, jsonify/JSONResponse wrappers, `(body, status)` tuples)
- CapturedResponseExtractor: responses recorded at runtime
"""

import ast
import logging
from typing import Dict, List, Optional, Tuple

from apidoc_infer.analysis.context import AnalysisContext
from apidoc_infer.analysis.results import Provenance, ResponseResult, describe_status
from apidoc_infer.introspection.ast_helpers import (
    MISSING,
    call_name,
    dotted_name,
    iter_returns,
    keyword,
    literal,
    short_name,
)
from apidoc_infer.plugins.contracts import Plugin, ResponseExtractor
from apidoc_infer.schema.models import SchemaObject, SchemaType

from .support import keyword_int, schema_for_value, schema_from_values, status_constant, status_value

logger = logging.getLogger(__name__)

# wrappers whose first argument (or `content=`) is the payload
RESPONSE_WRAPPERS = {
    "jsonify": ("content", "status"),
    "JSONResponse": ("content", "status_code"),
    "ORJSONResponse": ("content", "status_code"),
    "UJSONResponse": ("content", "status_code"),
    "JsonResponse": ("data", "status"),
    "Response": ("data", "status"),
    "make_response": ("response", "status"),
}

# annotations that say nothing about the payload shape
OPAQUE_RETURN_TYPES = {
    "Response", "JSONResponse", "JsonResponse", "HttpResponse", "ORJSONResponse",
    "UJSONResponse", "StreamingResponse", "FileResponse", "RedirectResponse",
    "HTMLResponse", "PlainTextResponse", "Any", "ResponseReturnValue", "tuple", "Tuple",
}

SCALAR_CALLS = {
    "str": SchemaType.STRING.value,
    "int": SchemaType.INTEGER.value,
    "len": SchemaType.INTEGER.value,
    "float": SchemaType.NUMBER.value,
    "bool": SchemaType.BOOLEAN.value,
    "isoformat": SchemaType.STRING.value,
}


class ResponseAnnotationExtractor(Plugin, ResponseExtractor):
    """Explicit response annotations"""

    name = "response-annotation"
    priority = 100
    provenance = Provenance.ANNOTATION

    def extract_responses(self, context: AnalysisContext) -> List[ResponseResult]:
        results: List[ResponseResult] = []
        headers = self._headers(context)

        for annotation in context.annotations_of("response_body"):
            status = status_value(annotation.get("status_code"))
            results.append(self._result(context, status, annotation.values, "data_class", headers.get(status, {})))
        for annotation in context.annotations_of("data_response"):
            status = status_value(annotation.get("status"))
            merged = dict(headers.get(status, {}))
            for name, value in (annotation.get("headers") or {}).items():
                merged[name] = SchemaObject(type=SchemaType.STRING.value, description=str(value))
            results.append(self._result(context, status, annotation.values, "resource", merged))
        return results

    def _result(self, context: AnalysisContext, status: int, values: Dict, class_key: str, headers: Dict) -> ResponseResult:
        example = values.get("example")
        has_shape = any(key in values for key in ("schema", class_key, "type"))
        hint = values.get(class_key) if isinstance(values.get(class_key), str) else None
        if has_shape:
            schema = schema_from_values(context, values, class_key)
        elif example is not None:
            schema = schema_for_value(example)
        else:
            schema = None
        return ResponseResult(
            status_code=status,
            schema=schema,
            description=values.get("description") or describe_status(status),
            content_type=values.get("content_type") or "application/json",
            headers=headers,
            examples={"default": example} if example is not None else {},
            provenance=self.provenance,
            source=self.name,
            schema_name=hint,
        )

    @staticmethod
    def _headers(context: AnalysisContext) -> Dict[int, Dict[str, SchemaObject]]:
        """Header annotations grouped by status; status-less headers apply to all annotated statuses"""
        statuses = [status_value(a.get("status_code")) for a in context.annotations_of("response_body")]
        statuses += [status_value(a.get("status")) for a in context.annotations_of("data_response")]
        grouped: Dict[int, Dict[str, SchemaObject]] = {status: {} for status in statuses}
        for annotation in context.annotations_of("response_header"):
            name = annotation.get("name")
            if not name:
                continue
            kind = annotation.get("type") or SchemaType.STRING.value
            schema = SchemaObject(
                type=kind,
                format=annotation.get("format"),
                example=annotation.get("example"),
                description=annotation.get("description"),
            )
            targets = [annotation.get("status_code")] if annotation.get("status_code") else list(grouped)
            for status in targets:
                grouped.setdefault(status_value(status), {})[name] = schema
        return grouped


class ReturnTypeExtractor(Plugin, ResponseExtractor):
    """Success response inferred from the handler's return annotation or return statements"""

    name = "return-type"
    priority = 80

    def extract_responses(self, context: AnalysisContext) -> List[ResponseResult]:
        handler = context.handler
        if handler is None:
            return []

        default_status = self._declared_status(handler) or 200
        hint = f"{context.operation_name}Response"

        returns = handler.returns
        if isinstance(returns, ast.Constant) and returns.value is None:
            return [self._response(204, None, None)]
        if returns is not None and short_name(dotted_name(self._unwrap(returns))) not in OPAQUE_RETURN_TYPES:
            schema = context.map_annotation(returns)
            logger.debug(f"{context.method} {context.path}: response from return annotation")
            return [self._response(default_status, schema, hint)]

        by_status: Dict[int, SchemaObject] = {}
        for statement in iter_returns(handler):
            if statement.value is None:
                continue
            body, status = self._unwrap_return(statement.value)
            status = status or default_status
            if status in by_status:
                continue
            if body is None or (isinstance(body, ast.Constant) and body.value is None):
                by_status[status] = None
                continue
            by_status[status] = self.infer_expression(context, body)

        return [self._response(status, schema, hint if status < 300 else None) for status, schema in by_status.items()]

    def _response(self, status: int, schema: Optional[SchemaObject], hint: Optional[str]) -> ResponseResult:
        return ResponseResult(
            status_code=status,
            schema=schema,
            description=describe_status(status),
            provenance=self.provenance,
            source=self.name,
            schema_name=hint,
        )

    @staticmethod
    def _unwrap(annotation: ast.expr) -> ast.expr:
        """Strip Optional/Annotated so opaque response types are recognized"""
        if isinstance(annotation, ast.Subscript) and short_name(dotted_name(annotation.value)) in ("Optional", "Annotated"):
            inner = annotation.slice
            return inner.elts[0] if isinstance(inner, ast.Tuple) else inner
        return annotation

    @staticmethod
    def _declared_status(handler: ast.AST) -> Optional[int]:
        """`status_code=201` on a route decorator"""
        for decorator in getattr(handler, "decorator_list", []):
            if isinstance(decorator, ast.Call):
                status = keyword_int(decorator, "status_code", "status")
                if status is not None:
                    return status
        return None

    def _unwrap_return(self, value: ast.expr) -> Tuple[Optional[ast.expr], Optional[int]]:
        """Split `return body, 201` and response wrapper calls into (payload, status)"""
        if isinstance(value, ast.Tuple) and len(value.elts) >= 2:
            status = status_constant(value.elts[1])
            body, inner_status = self._unwrap_return(value.elts[0])
            return body, status or inner_status

        if isinstance(value, ast.Call):
            wrapper = short_name(call_name(value))
            if wrapper in RESPONSE_WRAPPERS:
                content_kw, status_kw = RESPONSE_WRAPPERS[wrapper]
                body = value.args[0] if value.args else keyword(value, content_kw)
                status = keyword_int(value, status_kw, "status_code", "status")
                if status is None and len(value.args) >= 2:
                    status = status_constant(value.args[1])
                if wrapper == "jsonify" and body is None and value.keywords:
                    body = ast.Dict(
                        keys=[ast.Constant(kw.arg) for kw in value.keywords if kw.arg],
                        values=[kw.value for kw in value.keywords if kw.arg],
                    )
                return body, status
        return value, None

    def infer_expression(self, context: AnalysisContext, node: ast.expr) -> SchemaObject:
        """
        Best-effort schema of a returned expression

        Literals become typed examples, project-class constructors resolve
        through the class resolver, anything opaque is an unconstrained schema.
        """
        value = literal(node)
        if value is not MISSING:
            return schema_for_value(value)

        if isinstance(node, ast.Dict):
            schema = SchemaObject(type=SchemaType.OBJECT.value)
            for key, item in zip(node.keys, node.values):
                key_value = literal(key)
                if isinstance(key_value, str):
                    schema.properties[key_value] = self.infer_expression(context, item)
            return schema

        if isinstance(node, (ast.List, ast.Set, ast.Tuple)):
            items = self.infer_expression(context, node.elts[0]) if node.elts else SchemaObject()
            return SchemaObject(type=SchemaType.ARRAY.value, items=items)

        if isinstance(node, (ast.ListComp, ast.SetComp, ast.GeneratorExp)):
            return SchemaObject(type=SchemaType.ARRAY.value, items=self.infer_expression(context, node.elt))

        if isinstance(node, ast.DictComp):
            return SchemaObject(type=SchemaType.OBJECT.value)

        if isinstance(node, ast.JoinedStr):
            return SchemaObject(type=SchemaType.STRING.value)

        if isinstance(node, ast.Compare) or (isinstance(node, ast.UnaryOp) and isinstance(node.op, ast.Not)):
            return SchemaObject(type=SchemaType.BOOLEAN.value)

        if isinstance(node, ast.Call):
            name = call_name(node) or ""
            simple = short_name(name)
            if simple in SCALAR_CALLS:
                return SchemaObject(type=SCALAR_CALLS[simple])
            if simple in ("dict", "OrderedDict") and node.keywords:
                return self.infer_expression(
                    context,
                    ast.Dict(
                        keys=[ast.Constant(kw.arg) for kw in node.keywords if kw.arg],
                        values=[kw.value for kw in node.keywords if kw.arg],
                    ),
                )
            if simple in ("list", "sorted", "tuple") and node.args:
                inner = self.infer_expression(context, node.args[0])
                return inner if inner.is_array else SchemaObject(type=SchemaType.ARRAY.value)
            if simple in ("model_validate", "from_orm", "parse_obj", "model_construct"):
                owner = name.rsplit(".", 1)[0] if "." in name else ""
                resolved = context.resolve_type(owner) if owner else None
                return resolved or SchemaObject.generic_object()
            if simple[:1].isupper():
                resolved = context.resolve_type(name)
                if resolved is not None:
                    return resolved

        return SchemaObject()


class CapturedResponseExtractor(Plugin, ResponseExtractor):
    """Responses recorded by the runtime capture store"""

    name = "captured-response"
    priority = 10
    provenance = Provenance.CAPTURE

    def extract_responses(self, context: AnalysisContext) -> List[ResponseResult]:
        results = []
        for status, capture in context.captured_responses().items():
            results.append(
                ResponseResult(
                    status_code=status,
                    schema=capture.schema,
                    description=describe_status(status),
                    examples={"captured": capture.example} if capture.example is not None else {},
                    provenance=self.provenance,
                    source=self.name,
                )
            )
        return results

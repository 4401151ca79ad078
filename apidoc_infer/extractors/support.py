"""Shared helpers for extractor plugins."""

import ast
import logging
from http import HTTPStatus
from typing import Any, Dict, Optional

from apidoc_infer.analysis.context import AnalysisContext
from apidoc_infer.introspection.ast_helpers import call_name, dotted_name, literal, short_name
from apidoc_infer.schema.models import SchemaObject, SchemaType

logger = logging.getLogger(__name__)

PYTHON_VALUE_TYPES = (
    (bool, SchemaType.BOOLEAN.value),
    (int, SchemaType.INTEGER.value),
    (float, SchemaType.NUMBER.value),
    (str, SchemaType.STRING.value),
    (list, SchemaType.ARRAY.value),
    (tuple, SchemaType.ARRAY.value),
    (dict, SchemaType.OBJECT.value),
)

TYPE_NAME_ALIASES = {
    "int": "integer",
    "float": "number",
    "bool": "boolean",
    "str": "string",
    "list": "array",
    "dict": "object",
}


def schema_for_value(value: Any, with_example: bool = True) -> SchemaObject:
    """Schema describing a literal Python value"""
    if value is None:
        return SchemaObject(nullable=True)
    if isinstance(value, dict):
        return SchemaObject(
            type=SchemaType.OBJECT.value,
            properties={str(k): schema_for_value(v, with_example) for k, v in value.items()},
        )
    if isinstance(value, (list, tuple)):
        items = schema_for_value(value[0], with_example) if value else SchemaObject(type=SchemaType.STRING.value)
        return SchemaObject(type=SchemaType.ARRAY.value, items=items)
    for python_type, kind in PYTHON_VALUE_TYPES:
        if isinstance(value, python_type):
            return SchemaObject(type=kind, example=value if with_example else None)
    return SchemaObject()


def schema_from_values(context: AnalysisContext, values: Dict[str, Any], class_key: str = "data_class") -> SchemaObject:
    """
    Build a schema from annotation arguments

    Precedence: an explicit `schema` dictionary, then a class reference
    (`data_class` / `resource`), then `type` / `format` / `enum`.
    """
    raw_schema = values.get("schema")
    if isinstance(raw_schema, dict):
        schema = SchemaObject.from_dict(raw_schema)
    elif isinstance(values.get(class_key), str):
        schema = context.resolve_type(values[class_key]) or SchemaObject.generic_object()
    else:
        kind = str(values.get("type") or "string")
        schema = SchemaObject(type=TYPE_NAME_ALIASES.get(kind, kind), format=values.get("format"))
        if isinstance(values.get("enum"), (list, tuple)):
            schema.enum = list(values["enum"])

    if values.get("is_collection"):
        schema = SchemaObject(type=SchemaType.ARRAY.value, items=schema)
    return schema


def keyword_int(call: ast.Call, *names: str) -> Optional[int]:
    for kw in call.keywords:
        if kw.arg in names:
            value = literal(kw.value)
            if isinstance(value, int) and not isinstance(value, bool):
                return value
            status = status_constant(kw.value)
            if status is not None:
                return status
    return None


def status_constant(node: Optional[ast.AST]) -> Optional[int]:
    """Integer status from a literal or a `status.HTTP_201_CREATED` style constant"""
    value = literal(node)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    name = short_name(dotted_name(node))
    if name in HTTPStatus.__members__:
        return HTTPStatus[name].value
    for part in name.split("_"):
        if part.isdigit() and len(part) == 3:
            return int(part)
    return None


def status_value(value: Any, default: int = 200) -> int:
    """Integer status from an annotation argument kept as a literal or a dotted constant name"""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        if value.strip().isdigit():
            return int(value)
        name = short_name(value)
        if name in HTTPStatus.__members__:
            return HTTPStatus[name].value
        for part in name.split("_"):
            if part.isdigit() and len(part) == 3:
                return int(part)
    if value is not None:
        logger.debug(f"Unrecognised status {value!r}, using {default}")
    return default


def callee(node: ast.AST) -> str:
    return short_name(call_name(node))


def has_dependency(context: AnalysisContext, hints: tuple) -> bool:
    """True when a handler default is `Depends(fn)` / `Security(fn)` with `fn` matching a hint"""
    if context.handler is None:
        return False
    args = context.handler.args
    for default in list(args.defaults) + [d for d in args.kw_defaults if d is not None]:
        if not isinstance(default, ast.Call) or callee(default) not in ("Depends", "Security") or not default.args:
            continue
        dependency = short_name(dotted_name(default.args[0])).lower()
        if any(hint in dependency for hint in hints):
            return True
    return False

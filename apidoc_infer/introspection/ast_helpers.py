"""Small helpers for reading Python syntax trees without executing them."""

import ast
from typing import Any, Dict, Iterator, List, Optional, Union

FunctionNode = Union[ast.FunctionDef, ast.AsyncFunctionDef]

MISSING = object()


def dotted_name(node: Optional[ast.AST]) -> Optional[str]:
    """`a.b.c` for Name/Attribute chains, None for anything else"""
    parts: List[str] = []
    while isinstance(node, ast.Attribute):
        parts.append(node.attr)
        node = node.value
    if isinstance(node, ast.Name):
        parts.append(node.id)
        return ".".join(reversed(parts))
    return None


def short_name(name: Optional[str]) -> str:
    return (name or "").rsplit(".", 1)[-1]


def call_name(node: ast.AST) -> Optional[str]:
    """Dotted name of the callee when `node` is a call"""
    if isinstance(node, ast.Call):
        return dotted_name(node.func)
    return None


def literal(node: Optional[ast.AST], default: Any = MISSING) -> Any:
    """literal_eval that returns `default` instead of raising"""
    if node is None:
        return default
    try:
        return ast.literal_eval(node)
    except (ValueError, TypeError, SyntaxError, MemoryError, RecursionError):
        return default


def value_or_name(node: Optional[ast.AST]) -> Any:
    """Literal value, else dotted name (class references), else MISSING"""
    value = literal(node)
    if value is not MISSING:
        return value
    name = dotted_name(node)
    if name is not None:
        return name
    return MISSING


def keyword(call: ast.Call, name: str) -> Optional[ast.expr]:
    for kw in call.keywords:
        if kw.arg == name:
            return kw.value
    return None


def call_arguments(call: ast.Call, positional: List[str]) -> Dict[str, Any]:
    """Map a call's literal arguments onto parameter names"""
    values: Dict[str, Any] = {}
    for name, arg in zip(positional, call.args):
        value = value_or_name(arg)
        if value is not MISSING:
            values[name] = value
    for kw in call.keywords:
        if kw.arg is None:
            continue
        value = value_or_name(kw.value)
        if value is not MISSING:
            values[kw.arg] = value
    return values


def literal_dict(node: Optional[ast.AST]) -> Optional[Dict[str, Any]]:
    """
    Evaluate a dict display key by key, keeping the literal parts

    Values that are lists keep their literal elements only, so
    `{"a": ["required", Rule.unique()]}` becomes `{"a": ["required"]}`.
    """
    if not isinstance(node, ast.Dict):
        return None
    result: Dict[str, Any] = {}
    for key_node, value_node in zip(node.keys, node.values):
        key = literal(key_node)
        if not isinstance(key, str):
            continue
        value = literal(value_node)
        if value is MISSING and isinstance(value_node, (ast.List, ast.Tuple)):
            value = [v for v in (literal(e) for e in value_node.elts) if v is not MISSING]
        if value is not MISSING:
            result[key] = value
    return result


def iter_calls(node: ast.AST) -> Iterator[ast.Call]:
    for child in ast.walk(node):
        if isinstance(child, ast.Call):
            yield child


def iter_own_nodes(func: FunctionNode) -> Iterator[ast.AST]:
    """Walk a function body without descending into nested functions or classes"""
    stack: List[ast.AST] = list(reversed(func.body))
    while stack:
        node = stack.pop()
        yield node
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef, ast.Lambda)):
            continue
        stack.extend(reversed(list(ast.iter_child_nodes(node))))


def iter_returns(func: FunctionNode) -> Iterator[ast.Return]:
    for node in iter_own_nodes(func):
        if isinstance(node, ast.Return):
            yield node


def iter_raises(func: FunctionNode) -> Iterator[ast.Raise]:
    for node in iter_own_nodes(func):
        if isinstance(node, ast.Raise):
            yield node


def parse_annotation_string(text: str) -> Optional[ast.expr]:
    """Parse a forward reference such as `"List[Node]"`"""
    try:
        return ast.parse(text.strip(), mode="eval").body
    except SyntaxError:
        return None


def docstring_summary(node: ast.AST) -> Optional[str]:
    """First paragraph of a docstring, collapsed to one line"""
    if not isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef, ast.Module)):
        return None
    doc = ast.get_docstring(node)
    if not doc:
        return None
    return " ".join(doc.strip().split("\n\n", 1)[0].split())


def handler_parameters(func: FunctionNode) -> List[ast.arg]:
    """Positional and keyword parameters minus self/cls"""
    args = func.args
    params = list(args.posonlyargs) + list(args.args) + list(args.kwonlyargs)
    return [p for p in params if p.arg not in ("self", "cls")]


def parameter_defaults(func: FunctionNode) -> Dict[str, ast.expr]:
    args = func.args
    positional = list(args.posonlyargs) + list(args.args)
    defaults: Dict[str, ast.expr] = {}
    for param, default in zip(positional[len(positional) - len(args.defaults):], args.defaults):
        defaults[param.arg] = default
    for param, default in zip(args.kwonlyargs, args.kw_defaults):
        if default is not None:
            defaults[param.arg] = default
    return defaults

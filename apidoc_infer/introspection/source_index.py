"""
Source Index - Finds type declarations and handlers in a project's source tree.

Supports:
- dataclasses, attrs classes, pydantic-style models, TypedDicts, Enums, plain classes
- Explicit `__init__` parameters (constructible members)
- Field metadata from `Field(...)` / `field(...)` calls (defaults, description, bounds)
- Validated-input classes declaring a `rules` dictionary
- Exclusion glob patterns
"""

import ast
import logging
from dataclasses import dataclass, field
from enum import Enum
from fnmatch import fnmatch
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple

from .ast_cache import AstCache
from .ast_helpers import (
    FunctionNode,
    MISSING,
    call_name,
    docstring_summary,
    dotted_name,
    keyword,
    literal,
    literal_dict,
    short_name,
)

logger = logging.getLogger(__name__)

ENUM_BASES = {"Enum", "IntEnum", "StrEnum", "Flag", "IntFlag"}
TYPED_DICT_BASES = {"TypedDict"}
MODEL_BASES = {"BaseModel", "Struct", "SQLModel", "Schema"}
DATACLASS_DECORATORS = {"dataclass", "define", "frozen", "mutable", "s", "attrs", "dataclass_json"}
FIELD_CALLS = {"Field", "field", "ib", "attrib", "Query", "Body"}
CONSTRAINT_KEYWORDS = {
    "ge": "minimum",
    "gt": "minimum",
    "le": "maximum",
    "lt": "maximum",
    "min_length": "min_length",
    "max_length": "max_length",
    "min_items": "min_items",
    "max_items": "max_items",
    "pattern": "pattern",
    "regex": "pattern",
}

DEFAULT_EXCLUDES = [
    ".venv/*",
    "venv/*",
    "*/.venv/*",
    "*/site-packages/*",
    "*/__pycache__/*",
    ".git/*",
    "node_modules/*",
]


class TypeKind(str, Enum):
    """How a class declares its fields"""
    DATACLASS = "dataclass"
    MODEL = "model"
    TYPED_DICT = "typed_dict"
    ENUM = "enum"
    CLASS = "class"


@dataclass
class FieldDeclaration:
    """One member of a type: class-level annotation or constructor parameter"""
    name: str
    annotation: Optional[ast.expr] = None
    has_default: bool = False
    default: Any = None
    description: Optional[str] = None
    example: Any = None
    alias: Optional[str] = None
    constraints: Dict[str, Any] = field(default_factory=dict)


@dataclass
class TypeDeclaration:
    """A class found in the indexed source"""
    name: str
    module: str
    path: Path
    node: ast.ClassDef
    kind: TypeKind
    bases: List[str] = field(default_factory=list)
    fields: List[FieldDeclaration] = field(default_factory=list)
    init_params: List[FieldDeclaration] = field(default_factory=list)
    enum_members: List[Tuple[str, Any]] = field(default_factory=list)
    rules: Optional[Dict[str, Any]] = None
    total: bool = True
    description: Optional[str] = None

    @property
    def qualname(self) -> str:
        return f"{self.module}.{self.name}" if self.module else self.name

    @property
    def is_enum(self) -> bool:
        return self.kind == TypeKind.ENUM

    @property
    def has_rules(self) -> bool:
        return self.rules is not None


class SourceIndex:
    """
    Indexes class declarations of a project without importing it

    Usage:
    ```python
    index = SourceIndex(Path("./myapp"), exclude_patterns=["migrations/*"])
    decl = index.find_type("CreateUserPayload")
    if decl:
        print([f.name for f in index.collect_fields(decl)])
    ```
    """

    def __init__(
        self,
        root: Path,
        exclude_patterns: Optional[List[str]] = None,
        ast_cache: Optional[AstCache] = None,
    ):
        """
        Initialize source index

        Args:
            root: Project root; module names are derived relative to it
            exclude_patterns: Glob patterns (relative POSIX paths) to skip
            ast_cache: Shared parse cache
        """
        self.root = Path(root)
        self.exclude_patterns = list(DEFAULT_EXCLUDES) + list(exclude_patterns or [])
        self.ast_cache = ast_cache or AstCache()
        self._by_qualname: Dict[str, TypeDeclaration] = {}
        self._by_name: Dict[str, List[TypeDeclaration]] = {}
        self._scanned = False

    def scan(self) -> int:
        """Parse every non-excluded .py file under root; returns the number of types found"""
        self._by_qualname.clear()
        self._by_name.clear()
        for path in sorted(self.root.rglob("*.py")):
            if self.is_excluded(path):
                continue
            tree = self.ast_cache.parse(path)
            if tree is None:
                continue
            module = self.module_name(path)
            for node in ast.walk(tree):
                if isinstance(node, ast.ClassDef):
                    self._add(self._declare(node, module, path))
        self._scanned = True
        logger.info(f"Indexed {len(self._by_qualname)} types under {self.root}")
        return len(self._by_qualname)

    def is_excluded(self, path: Path) -> bool:
        try:
            relative = path.relative_to(self.root).as_posix()
        except ValueError:
            relative = path.as_posix()
        return any(fnmatch(relative, pattern) for pattern in self.exclude_patterns)

    def module_name(self, path: Path) -> str:
        try:
            relative = path.relative_to(self.root)
        except ValueError:
            relative = Path(path.name)
        parts = list(relative.with_suffix("").parts)
        if parts and parts[-1] == "__init__":
            parts.pop()
        return ".".join(parts)

    def find_type(self, name: str) -> Optional[TypeDeclaration]:
        """
        Look a class up by simple or dotted name

        Args:
            name: `User`, `app.models.User` or `"User"` (generic arguments ignored)

        Returns:
            The declaration, or None when the project does not declare it
        """
        if not self._scanned:
            self.scan()
        name = name.strip().strip("'\"").split("[", 1)[0]
        if not name:
            return None
        if name in self._by_qualname:
            return self._by_qualname[name]
        candidates = self._by_name.get(short_name(name), [])
        if not candidates:
            return None
        if len(candidates) > 1:
            for decl in candidates:
                if decl.qualname.endswith(name):
                    return decl
            logger.debug(f"Ambiguous type name '{name}', using {candidates[0].qualname}")
        return candidates[0]

    def types(self) -> List[TypeDeclaration]:
        if not self._scanned:
            self.scan()
        return list(self._by_qualname.values())

    def is_enum(self, decl: TypeDeclaration) -> bool:
        return decl.is_enum or any(b.is_enum for b in self.base_declarations(decl))

    def base_declarations(self, decl: TypeDeclaration) -> List[TypeDeclaration]:
        """Indexed ancestors, nearest first"""
        result: List[TypeDeclaration] = []
        seen: Set[str] = {decl.qualname}
        pending = list(decl.bases)
        while pending:
            base = self.find_type(pending.pop(0))
            if base is None or base.qualname in seen:
                continue
            seen.add(base.qualname)
            result.append(base)
            pending.extend(base.bases)
        return result

    def collect_fields(self, decl: TypeDeclaration) -> List[FieldDeclaration]:
        """Declared public fields including inherited ones (subclass wins on name clashes)"""
        merged: Dict[str, FieldDeclaration] = {}
        for ancestor in reversed(self.base_declarations(decl)):
            for member in ancestor.fields:
                merged[member.name] = member
        for member in decl.fields:
            merged[member.name] = member
        return list(merged.values())

    def handler_location(self, handler: str) -> Optional[Tuple[Path, str]]:
        """
        Split a handler reference into (file, qualified name)

        Accepts `path/to/views.py:Class.method` and `package.module:function`.
        """
        if ":" not in handler:
            return None
        target, qualname = handler.rsplit(":", 1)
        if target.endswith(".py"):
            path = self.root / target
        else:
            path = self.root / Path(*target.split(".")).with_suffix(".py")
            if not path.exists():
                package_init = self.root / Path(*target.split(".")) / "__init__.py"
                if package_init.exists():
                    path = package_init
        return path, qualname

    def find_handler(self, handler: str) -> Tuple[Optional[ast.Module], Optional[FunctionNode]]:
        """Parse the handler's file and return (module tree, function node)"""
        location = self.handler_location(handler)
        if location is None:
            logger.debug(f"Unrecognized handler reference '{handler}'")
            return None, None
        path, qualname = location
        tree = self.ast_cache.parse(path)
        if tree is None:
            return None, None
        return tree, self.find_function(tree, qualname)

    @staticmethod
    def find_function(tree: ast.Module, qualname: str) -> Optional[FunctionNode]:
        scope: List[ast.stmt] = tree.body
        parts = qualname.split(".")
        for index, part in enumerate(parts):
            last = index == len(parts) - 1
            match = None
            for node in scope:
                if last and isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)) and node.name == part:
                    match = node
                elif not last and isinstance(node, ast.ClassDef) and node.name == part:
                    match = node
            if match is None:
                return None
            if last:
                return match
            scope = match.body
        return None

    def _add(self, decl: TypeDeclaration) -> None:
        self._by_qualname.setdefault(decl.qualname, decl)
        self._by_name.setdefault(decl.name, []).append(decl)

    def _declare(self, node: ast.ClassDef, module: str, path: Path) -> TypeDeclaration:
        bases = [name for name in (dotted_name(b) for b in node.bases) if name]
        base_names = {short_name(b) for b in bases}
        decorators = {short_name(dotted_name(d.func if isinstance(d, ast.Call) else d)) for d in node.decorator_list}

        if base_names & ENUM_BASES:
            kind = TypeKind.ENUM
        elif base_names & TYPED_DICT_BASES:
            kind = TypeKind.TYPED_DICT
        elif base_names & MODEL_BASES:
            kind = TypeKind.MODEL
        elif decorators & DATACLASS_DECORATORS:
            kind = TypeKind.DATACLASS
        else:
            kind = TypeKind.CLASS

        decl = TypeDeclaration(
            name=node.name,
            module=module,
            path=path,
            node=node,
            kind=kind,
            bases=bases,
            description=docstring_summary(node),
        )

        for kw in node.keywords:
            if kw.arg == "total" and literal(kw.value) is False:
                decl.total = False

        if kind == TypeKind.ENUM:
            decl.enum_members = self._enum_members(node, "StrEnum" in base_names)
            return decl

        for stmt in node.body:
            if isinstance(stmt, ast.AnnAssign) and isinstance(stmt.target, ast.Name):
                member = self._annotated_field(stmt)
                if member is not None:
                    decl.fields.append(member)
            elif isinstance(stmt, ast.FunctionDef) and stmt.name == "__init__":
                decl.init_params = self._init_params(stmt)

        decl.rules = self._rules(node)
        return decl

    @staticmethod
    def _enum_members(node: ast.ClassDef, lowercase_auto: bool) -> List[Tuple[str, Any]]:
        members: List[Tuple[str, Any]] = []
        counter = 0
        for stmt in node.body:
            if not isinstance(stmt, ast.Assign) or len(stmt.targets) != 1:
                continue
            target = stmt.targets[0]
            if not isinstance(target, ast.Name) or target.id.startswith("_"):
                continue
            if short_name(call_name(stmt.value)) == "auto":
                counter += 1
                members.append((target.id, target.id.lower() if lowercase_auto else counter))
                continue
            value = literal(stmt.value)
            if value is MISSING:
                continue
            if isinstance(value, tuple) and value:
                value = value[0]
            if isinstance(value, int) and not isinstance(value, bool):
                counter = value
            members.append((target.id, value))
        return members

    def _annotated_field(self, stmt: ast.AnnAssign) -> Optional[FieldDeclaration]:
        name = stmt.target.id
        if name.startswith("_"):
            return None
        annotation = stmt.annotation
        head = annotation.value if isinstance(annotation, ast.Subscript) else annotation
        if short_name(dotted_name(head)) == "ClassVar":
            return None
        member = FieldDeclaration(name=name, annotation=annotation)
        if stmt.value is not None:
            self.apply_default(member, stmt.value)
        return member

    def _init_params(self, func: ast.FunctionDef) -> List[FieldDeclaration]:
        args = func.args
        positional = list(args.posonlyargs) + list(args.args)
        defaults = dict(zip([a.arg for a in positional[len(positional) - len(args.defaults):]], args.defaults))
        defaults.update({a.arg: d for a, d in zip(args.kwonlyargs, args.kw_defaults) if d is not None})

        params: List[FieldDeclaration] = []
        for arg in positional + list(args.kwonlyargs):
            if arg.arg in ("self", "cls") or arg.arg.startswith("_"):
                continue
            member = FieldDeclaration(name=arg.arg, annotation=arg.annotation)
            if arg.arg in defaults:
                self.apply_default(member, defaults[arg.arg])
            params.append(member)
        return params

    @staticmethod
    def apply_default(member: FieldDeclaration, value: ast.expr) -> None:
        """Record a default value, unwrapping `Field(...)` / `Query(...)` style calls"""
        callee = short_name(call_name(value))
        if callee not in FIELD_CALLS:
            member.has_default = True
            default = literal(value)
            member.default = None if default is MISSING else default
            return

        call = value
        first = call.args[0] if call.args else keyword(call, "default")
        first_value = literal(first)
        if first is not None and not (isinstance(first, ast.Constant) and first.value is Ellipsis):
            member.has_default = True
            member.default = None if first_value is MISSING else first_value
        if keyword(call, "default_factory") is not None or keyword(call, "factory") is not None:
            member.has_default = True

        description = literal(keyword(call, "description"))
        if isinstance(description, str):
            member.description = description
        example = literal(keyword(call, "example"))
        if example is MISSING:
            examples = literal(keyword(call, "examples"))
            example = examples[0] if isinstance(examples, list) and examples else MISSING
        if example is not MISSING:
            member.example = example
        alias = literal(keyword(call, "alias"))
        if isinstance(alias, str):
            member.alias = alias
        for kw, target in CONSTRAINT_KEYWORDS.items():
            constraint = literal(keyword(call, kw))
            if constraint is not MISSING and constraint is not None:
                member.constraints[target] = constraint

    @staticmethod
    def _rules(node: ast.ClassDef) -> Optional[Dict[str, Any]]:
        for stmt in node.body:
            if isinstance(stmt, ast.Assign) and any(
                isinstance(t, ast.Name) and t.id == "rules" for t in stmt.targets
            ):
                return literal_dict(stmt.value)
            if isinstance(stmt, ast.AnnAssign) and isinstance(stmt.target, ast.Name) and stmt.target.id == "rules":
                return literal_dict(stmt.value)
            if isinstance(stmt, ast.FunctionDef) and stmt.name == "rules":
                for inner in ast.walk(stmt):
                    if isinstance(inner, ast.Return):
                        found = literal_dict(inner.value)
                        if found is not None:
                            return found
        return None

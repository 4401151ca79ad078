"""
Type Mapper - Maps Python annotations to schema fragments.

Supports:
- Builtins and typing aliases (str, int, List[X], Dict[str, X], Optional[X], X | None, ...)
- Well-known library types (datetime, UUID, Decimal, pydantic EmailStr/HttpUrl, ipaddress)
- Literal[...] enums, Annotated[X, ...] unwrapping, Intersection[A, B] compositions
- Forward references written as strings
- Delegation of project classes to the class schema resolver
"""

import ast
import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from apidoc_infer.introspection.ast_helpers import dotted_name, parse_annotation_string, short_name
from apidoc_infer.introspection.source_index import TypeDeclaration
from apidoc_infer.schema.models import SchemaObject, SchemaType

if TYPE_CHECKING:
    from apidoc_infer.schema.class_resolver import ClassSchemaResolver

logger = logging.getLogger(__name__)


class TypeMapper:
    """
    Stateless mapping from annotation syntax to schemas

    Project classes are handed to the resolver when one is attached;
    without a resolver they map to a generic object.
    """

    PRIMITIVE_TYPES: Dict[str, Tuple[str, Optional[str]]] = {
        "str": ("string", None),
        "int": ("integer", None),
        "float": ("number", "double"),
        "bool": ("boolean", None),
        "bytes": ("string", "binary"),
        "bytearray": ("string", "binary"),
        "Decimal": ("number", None),
        "complex": ("string", None),
        "StrictStr": ("string", None),
        "StrictInt": ("integer", None),
        "StrictFloat": ("number", "double"),
        "StrictBool": ("boolean", None),
        "PositiveInt": ("integer", None),
        "NonNegativeInt": ("integer", None),
        "PositiveFloat": ("number", "double"),
    }

    FORMAT_TYPES: Dict[str, Tuple[str, str]] = {
        "datetime": ("string", "date-time"),
        "AwareDatetime": ("string", "date-time"),
        "NaiveDatetime": ("string", "date-time"),
        "Carbon": ("string", "date-time"),
        "date": ("string", "date"),
        "time": ("string", "time"),
        "timedelta": ("string", "duration"),
        "UUID": ("string", "uuid"),
        "UUID1": ("string", "uuid"),
        "UUID4": ("string", "uuid"),
        "EmailStr": ("string", "email"),
        "NameEmail": ("string", "email"),
        "HttpUrl": ("string", "uri"),
        "AnyUrl": ("string", "uri"),
        "AnyHttpUrl": ("string", "uri"),
        "IPv4Address": ("string", "ipv4"),
        "IPv6Address": ("string", "ipv6"),
        "SecretStr": ("string", "password"),
        "Json": ("string", "json"),
        "UploadFile": ("string", "binary"),
        "FileStorage": ("string", "binary"),
    }

    ARRAY_TYPES = {
        "list", "List", "set", "Set", "frozenset", "FrozenSet", "tuple", "Tuple",
        "Sequence", "MutableSequence", "Iterable", "Iterator", "Collection",
        "AbstractSet", "MutableSet", "deque", "Deque", "Generator", "AsyncIterator",
        "AsyncIterable", "conlist",
    }

    MAPPING_TYPES = {
        "dict", "Dict", "Mapping", "MutableMapping", "DefaultDict", "defaultdict",
        "OrderedDict", "Counter",
    }

    ANY_TYPES = {"Any", "object", "JsonValue"}
    UNWRAP_TYPES = {"ClassVar", "Final", "Required", "NotRequired", "ReadOnly", "Awaitable", "Coroutine"}
    UNION_TYPES = {"Union", "Optional"}
    INTERSECTION_TYPES = {"Intersection"}

    # Opaque generic containers (ORM querysets, paginators, collections)
    OPAQUE_CONTAINER_SUFFIXES = ("Collection", "QuerySet", "Paginator", "ResultSet")

    def __init__(self, resolver: Optional["ClassSchemaResolver"] = None):
        self.resolver = resolver

    def map_annotation(self, node: Optional[ast.AST]) -> SchemaObject:
        """
        Map an annotation expression to a schema

        Args:
            node: Annotation AST (or None when the member is unannotated)

        Returns:
            A fresh SchemaObject; never raises
        """
        if node is None:
            return SchemaObject()

        if isinstance(node, ast.Constant):
            if node.value is None:
                return SchemaObject(type=SchemaType.NULL.value)
            if isinstance(node.value, str):
                parsed = parse_annotation_string(node.value)
                return self.map_annotation(parsed) if parsed is not None else SchemaObject()
            return SchemaObject()

        if isinstance(node, ast.BinOp) and isinstance(node.op, ast.BitOr):
            return self._union(self._flatten_bitor(node))

        if isinstance(node, ast.Subscript):
            return self._map_subscript(node)

        name = dotted_name(node)
        if name is None:
            return SchemaObject()
        return self.map_type_name(name)

    def map_type_name(self, name: str) -> SchemaObject:
        """Map a bare (unparameterized) type name"""
        well_known = self.map_well_known(name)
        if well_known is not None:
            return well_known

        simple = short_name(name)
        if simple in self.ARRAY_TYPES:
            return SchemaObject(type=SchemaType.ARRAY.value, items=SchemaObject(type=SchemaType.STRING.value))
        if simple in self.MAPPING_TYPES:
            return SchemaObject(type=SchemaType.OBJECT.value)
        if simple in self.ANY_TYPES:
            return SchemaObject()
        if simple == "None" or simple == "NoneType":
            return SchemaObject(type=SchemaType.NULL.value)

        if self.resolver is not None:
            resolved = self.resolver.resolve(name)
            if resolved is not None:
                return resolved
        logger.debug(f"Unresolvable type '{name}', using generic object")
        return SchemaObject.generic_object()

    def map_well_known(self, name: str) -> Optional[SchemaObject]:
        """Primitives, formatted strings and opaque containers; None for anything else"""
        simple = short_name(name)
        if simple in self.PRIMITIVE_TYPES:
            kind, fmt = self.PRIMITIVE_TYPES[simple]
            return SchemaObject(type=kind, format=fmt)
        if simple in self.FORMAT_TYPES:
            kind, fmt = self.FORMAT_TYPES[simple]
            return SchemaObject(type=kind, format=fmt)
        if simple.endswith(self.OPAQUE_CONTAINER_SUFFIXES) and simple not in self.ARRAY_TYPES:
            return SchemaObject(type=SchemaType.ARRAY.value, items=SchemaObject(type=SchemaType.OBJECT.value))
        return None

    def map_enum(self, decl: TypeDeclaration) -> SchemaObject:
        """Enum declaration -> string or integer schema listing the member values"""
        values = [value for _, value in decl.enum_members]
        return self.enum_schema(values, description=decl.description)

    @staticmethod
    def enum_schema(values: List[Any], description: Optional[str] = None) -> SchemaObject:
        non_null = [v for v in values if v is not None]
        if non_null and all(isinstance(v, bool) for v in non_null):
            kind = SchemaType.BOOLEAN.value
        elif non_null and all(isinstance(v, int) and not isinstance(v, bool) for v in non_null):
            kind = SchemaType.INTEGER.value
        elif non_null and all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in non_null):
            kind = SchemaType.NUMBER.value
        else:
            kind = SchemaType.STRING.value
            non_null = [v if isinstance(v, str) else str(v) for v in non_null]
        return SchemaObject(
            type=kind,
            enum=non_null,
            nullable=len(non_null) < len(values),
            description=description,
        )

    def _map_subscript(self, node: ast.Subscript) -> SchemaObject:
        head = short_name(dotted_name(node.value))
        args = self._subscript_args(node)

        if head in self.UNION_TYPES:
            branches = list(args)
            if head == "Optional":
                branches.append(ast.Constant(value=None))
            return self._union(branches)

        if head in self.INTERSECTION_TYPES:
            return SchemaObject(all_of=[self.map_annotation(arg) for arg in args])

        if head == "Annotated":
            return self.map_annotation(args[0]) if args else SchemaObject()

        if head in self.UNWRAP_TYPES:
            return self.map_annotation(args[0]) if args else SchemaObject()

        if head == "Literal":
            values = [arg.value for arg in args if isinstance(arg, ast.Constant)]
            return self.enum_schema(values)

        if head in self.ARRAY_TYPES:
            members = [arg for arg in args if not (isinstance(arg, ast.Constant) and arg.value is Ellipsis)]
            if not members:
                items = SchemaObject(type=SchemaType.STRING.value)
            elif len(members) == 1 or head not in ("tuple", "Tuple"):
                items = self.map_annotation(members[0])
            else:
                items = self._distinct_branches([self.map_annotation(m) for m in members])
            return SchemaObject(type=SchemaType.ARRAY.value, items=items)

        if head in self.MAPPING_TYPES:
            schema = SchemaObject(type=SchemaType.OBJECT.value)
            if len(args) == 2:
                value_schema = self.map_annotation(args[1])
                if not value_schema.is_empty():
                    schema.additional_properties = value_schema
            return schema

        if head in ("Type", "type"):
            return SchemaObject(type=SchemaType.STRING.value)

        # User generics such as Page[Item] map through their base name
        return self.map_type_name(dotted_name(node.value) or head)

    @staticmethod
    def _subscript_args(node: ast.Subscript) -> List[ast.expr]:
        inner = node.slice
        if isinstance(inner, ast.Tuple):
            return list(inner.elts)
        return [inner]

    def _flatten_bitor(self, node: ast.AST) -> List[ast.expr]:
        if isinstance(node, ast.BinOp) and isinstance(node.op, ast.BitOr):
            return self._flatten_bitor(node.left) + self._flatten_bitor(node.right)
        return [node]

    def _union(self, branches: List[ast.expr]) -> SchemaObject:
        nullable = False
        schemas: List[SchemaObject] = []
        for branch in branches:
            schema = self.map_annotation(branch)
            if schema.type == SchemaType.NULL.value and not schema.nullable:
                nullable = True
                continue
            if schema.one_of and not schema.type and not schema.all_of:
                # nested unions flatten
                nullable = nullable or schema.nullable
                schemas.extend(schema.one_of)
                continue
            schemas.append(schema)

        if not schemas:
            return SchemaObject(type=SchemaType.NULL.value)
        if len(schemas) == 1:
            return self._nullable(schemas[0]) if nullable else schemas[0]
        return SchemaObject(one_of=schemas, nullable=nullable)

    @staticmethod
    def _nullable(schema: SchemaObject) -> SchemaObject:
        if schema.ref is not None:
            # references carry no siblings; wrap to attach nullability
            return SchemaObject(all_of=[schema], nullable=True)
        schema.nullable = True
        return schema

    @staticmethod
    def _distinct_branches(schemas: List[SchemaObject]) -> SchemaObject:
        distinct: List[SchemaObject] = []
        for schema in schemas:
            if schema not in distinct:
                distinct.append(schema)
        if len(distinct) == 1:
            return distinct[0]
        return SchemaObject(one_of=distinct)

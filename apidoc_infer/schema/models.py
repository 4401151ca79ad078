"""
Schema Models - Structural schema tree, references and components.

Supports:
- OpenAPI 3.0 (`nullable: true`) and 3.1 (`type: [t, "null"]`) serialization
- Reference indirection through `#/components/schemas/<Name>`
- Round trip from plain dictionaries (captured schemas, annotation payloads)
"""

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

REF_PREFIX = "#/components/schemas/"


class SchemaType(str, Enum):
    """Schema kinds"""
    STRING = "string"
    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"
    OBJECT = "object"
    ARRAY = "array"
    NULL = "null"


PRIMITIVE_TYPES = {
    SchemaType.STRING.value,
    SchemaType.INTEGER.value,
    SchemaType.NUMBER.value,
    SchemaType.BOOLEAN.value,
    SchemaType.NULL.value,
}
NUMERIC_TYPES = {SchemaType.INTEGER.value, SchemaType.NUMBER.value}


@dataclass(frozen=True)
class Reference:
    """Pointer to a named component schema"""
    name: str

    @property
    def ref(self) -> str:
        return f"{REF_PREFIX}{self.name}"

    @classmethod
    def from_string(cls, ref: str) -> "Reference":
        """Build from a `#/components/schemas/Name` string (or a bare name)"""
        if ref.startswith(REF_PREFIX):
            return cls(ref[len(REF_PREFIX):])
        return cls(ref.rsplit("/", 1)[-1])

    def to_dict(self) -> Dict[str, Any]:
        return {"$ref": self.ref}


@dataclass
class SchemaObject:
    """
    Recursive structural description of a value.

    A schema whose `ref` is set carries no other structural field; build
    those through `SchemaObject.from_ref`.

    Usage:
    ```python
    user = SchemaObject(
        type="object",
        properties={"email": SchemaObject(type="string", format="email")},
        required=["email"],
    )
    print(user.to_dict())
    ```
    """
    type: Optional[str] = None
    format: Optional[str] = None
    nullable: bool = False
    properties: Dict[str, "SchemaObject"] = field(default_factory=dict)
    required: List[str] = field(default_factory=list)
    items: Optional["SchemaObject"] = None
    additional_properties: Optional["SchemaObject"] = None
    enum: Optional[List[Any]] = None
    pattern: Optional[str] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    min_items: Optional[int] = None
    max_items: Optional[int] = None
    default: Any = None
    example: Any = None
    description: Optional[str] = None
    title: Optional[str] = None
    deprecated: bool = False
    read_only: bool = False
    write_only: bool = False
    one_of: Optional[List["SchemaObject"]] = None
    all_of: Optional[List["SchemaObject"]] = None
    any_of: Optional[List["SchemaObject"]] = None
    ref: Optional[Reference] = None

    @classmethod
    def from_ref(cls, reference: Reference) -> "SchemaObject":
        return cls(ref=reference)

    @classmethod
    def generic_object(cls, description: Optional[str] = None) -> "SchemaObject":
        """Placeholder for shapes that could not be resolved"""
        return cls(type=SchemaType.OBJECT.value, description=description)

    @property
    def is_ref(self) -> bool:
        return self.ref is not None

    @property
    def is_composition(self) -> bool:
        return bool(self.one_of or self.all_of or self.any_of)

    @property
    def is_object(self) -> bool:
        return self.type == SchemaType.OBJECT.value or bool(self.properties)

    @property
    def is_array(self) -> bool:
        return self.type == SchemaType.ARRAY.value

    def is_empty(self) -> bool:
        """True for the unconstrained schema `{}`"""
        return self == SchemaObject()

    def compositions(self) -> Dict[str, List["SchemaObject"]]:
        """Non-empty composition branches keyed by attribute name"""
        result = {}
        for name in ("one_of", "all_of", "any_of"):
            branches = getattr(self, name)
            if branches:
                result[name] = branches
        return result

    def copy(self) -> "SchemaObject":
        return copy.deepcopy(self)

    def add_description(self, text: str) -> None:
        """Append text to the existing description"""
        if not text:
            return
        self.description = f"{self.description}; {text}" if self.description else text

    def to_dict(self, openapi_version: str = "3.0.3") -> Dict[str, Any]:
        """
        Convert to an OpenAPI schema dictionary

        Args:
            openapi_version: Target version; "3.1.x" encodes nullability in `type`

        Returns:
            Plain dictionary ready for JSON serialization
        """
        if self.ref is not None:
            return self.ref.to_dict()

        is_31 = openapi_version.startswith("3.1")
        data: Dict[str, Any] = {}

        if self.type is not None:
            if self.nullable and is_31 and self.type != SchemaType.NULL.value:
                data["type"] = [self.type, SchemaType.NULL.value]
            else:
                data["type"] = self.type
        if self.nullable and not is_31:
            data["nullable"] = True
        if self.format is not None:
            data["format"] = self.format
        if self.title is not None:
            data["title"] = self.title
        if self.description:
            data["description"] = self.description
        if self.enum is not None:
            data["enum"] = list(self.enum)
        if self.pattern is not None:
            data["pattern"] = self.pattern

        for attr, key in (
            ("min_length", "minLength"),
            ("max_length", "maxLength"),
            ("minimum", "minimum"),
            ("maximum", "maximum"),
            ("min_items", "minItems"),
            ("max_items", "maxItems"),
            ("default", "default"),
            ("example", "example"),
        ):
            value = getattr(self, attr)
            if value is not None:
                data[key] = value

        if self.deprecated:
            data["deprecated"] = True
        if self.read_only:
            data["readOnly"] = True
        if self.write_only:
            data["writeOnly"] = True

        if self.properties:
            data["properties"] = {
                name: prop.to_dict(openapi_version) for name, prop in self.properties.items()
            }
        if self.required:
            data["required"] = list(self.required)
        if self.items is not None:
            data["items"] = self.items.to_dict(openapi_version)
        elif self.type == SchemaType.ARRAY.value:
            data["items"] = {}
        if self.additional_properties is not None:
            data["additionalProperties"] = self.additional_properties.to_dict(openapi_version)

        for attr, key in (("one_of", "oneOf"), ("all_of", "allOf"), ("any_of", "anyOf")):
            branches = getattr(self, attr)
            if branches:
                data[key] = [branch.to_dict(openapi_version) for branch in branches]

        # 3.1 has no nullable keyword for type-less compositions
        if is_31 and self.nullable and self.type is None:
            return {"anyOf": [data, {"type": SchemaType.NULL.value}]}

        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SchemaObject":
        """Build a schema from an OpenAPI schema dictionary (3.0 or 3.1)"""
        if not isinstance(data, dict):
            return cls()
        if "$ref" in data:
            return cls.from_ref(Reference.from_string(str(data["$ref"])))

        schema = cls()
        raw_type = data.get("type")
        if isinstance(raw_type, list):
            types = [t for t in raw_type if t != SchemaType.NULL.value]
            schema.nullable = len(types) < len(raw_type)
            schema.type = types[0] if types else SchemaType.NULL.value
        else:
            schema.type = raw_type
        schema.nullable = schema.nullable or bool(data.get("nullable", False))

        simple = {
            "format": "format",
            "enum": "enum",
            "pattern": "pattern",
            "minLength": "min_length",
            "maxLength": "max_length",
            "minimum": "minimum",
            "maximum": "maximum",
            "minItems": "min_items",
            "maxItems": "max_items",
            "default": "default",
            "example": "example",
            "description": "description",
            "title": "title",
            "deprecated": "deprecated",
            "readOnly": "read_only",
            "writeOnly": "write_only",
        }
        for key, attr in simple.items():
            if key in data:
                setattr(schema, attr, data[key])

        properties = data.get("properties") or {}
        schema.properties = {name: cls.from_dict(prop) for name, prop in properties.items()}
        schema.required = [name for name in data.get("required") or [] if isinstance(name, str)]
        if isinstance(data.get("items"), dict):
            schema.items = cls.from_dict(data["items"])
        if isinstance(data.get("additionalProperties"), dict):
            schema.additional_properties = cls.from_dict(data["additionalProperties"])
        for key, attr in (("oneOf", "one_of"), ("allOf", "all_of"), ("anyOf", "any_of")):
            if isinstance(data.get(key), list):
                setattr(schema, attr, [cls.from_dict(branch) for branch in data[key]])
        return schema


@dataclass
class Components:
    """Named component schemas and security schemes of a document"""
    schemas: Dict[str, SchemaObject] = field(default_factory=dict)
    security_schemes: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def to_dict(self, openapi_version: str = "3.0.3") -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.schemas:
            data["schemas"] = {
                name: self.schemas[name].to_dict(openapi_version) for name in sorted(self.schemas)
            }
        if self.security_schemes:
            data["securitySchemes"] = {
                name: dict(self.security_schemes[name]) for name in sorted(self.security_schemes)
            }
        return data

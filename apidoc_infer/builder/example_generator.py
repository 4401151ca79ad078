"""
Example Generator - Fills schema leaves with plausible example values.

Leaf cascade (first hit wins):
1. first enum value
2. declared default
3. canned value for the format (email, uuid, date-time, ...)
4. field-name heuristic (email, *_id, price, is_*, ...)
5. midpoint of numeric bounds
6. fallback per type
"""

from dataclasses import replace
from typing import Any, Dict, List, Optional, Tuple

from apidoc_infer.schema.models import SchemaObject, SchemaType


class ExampleGenerator:
    """
    Pure, idempotent example filler

    Returns the same object when nothing changed, and never overwrites
    an existing example.

    Usage:
    ```python
    generator = ExampleGenerator()
    filled = generator.generate(schema)
    assert generator.generate(filled) == filled
    ```
    """

    FORMAT_EXAMPLES: Dict[str, Any] = {
        "email": "user@example.com",
        "uuid": "550e8400-e29b-41d4-a716-446655440000",
        "date": "2025-01-15",
        "date-time": "2025-01-15T10:30:00Z",
        "time": "10:30:00",
        "duration": "P1D",
        "uri": "https://example.com",
        "url": "https://example.com",
        "ipv4": "192.168.1.1",
        "ipv6": "2001:0db8:85a3:0000:0000:8a2e:0370:7334",
        "json": "{}",
        "password": "********",
        "ulid": "01ARZ3NDEKTSV4RRFFQ69G5FAV",
    }

    # (match mode, token, example); evaluated in order against the lowercased field name
    NAME_EXAMPLES: List[Tuple[str, str, Any]] = [
        ("exact", "id", 1),
        ("suffix", "_id", 1),
        ("contains", "email", "user@example.com"),
        ("contains", "password", "secret123"),
        ("contains", "token", "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9"),
        ("contains", "phone", "+1-555-0100"),
        ("contains", "url", "https://example.com"),
        ("contains", "link", "https://example.com"),
        ("contains", "href", "https://example.com"),
        ("contains", "avatar", "https://example.com/image.jpg"),
        ("contains", "image", "https://example.com/image.jpg"),
        ("contains", "photo", "https://example.com/image.jpg"),
        ("contains", "slug", "example-slug"),
        ("contains", "color", "#3366FF"),
        ("suffix", "_at", "2025-01-15T10:30:00Z"),
        ("contains", "datetime", "2025-01-15T10:30:00Z"),
        ("contains", "timestamp", "2025-01-15T10:30:00Z"),
        ("contains", "date", "2025-01-15"),
        ("contains", "address", "123 Main St"),
        ("contains", "city", "New York"),
        ("contains", "country", "US"),
        ("contains", "zip", "10001"),
        ("contains", "postal", "10001"),
        ("contains", "currency", "USD"),
        ("contains", "amount", 99.99),
        ("contains", "price", 99.99),
        ("contains", "cost", 99.99),
        ("contains", "total", 99.99),
        ("exact", "lat", 40.7128),
        ("exact", "latitude", 40.7128),
        ("exact", "lng", -74.006),
        ("exact", "lon", -74.006),
        ("exact", "longitude", -74.006),
        ("exact", "age", 25),
        ("exact", "per_page", 15),
        ("exact", "limit", 15),
        ("exact", "page", 1),
        ("contains", "count", 1),
        ("contains", "quantity", 1),
        ("prefix", "is_", True),
        ("prefix", "has_", True),
        ("prefix", "can_", True),
        ("exact", "active", True),
        ("exact", "enabled", True),
        ("exact", "status", "active"),
        ("exact", "type", "default"),
        ("exact", "sort", "asc"),
        ("exact", "order", "asc"),
        ("contains", "title", "Example Title"),
        ("exact", "username", "johndoe"),
        ("contains", "name", "John Doe"),
        ("contains", "description", "A sample description"),
        ("exact", "message", "Operation completed successfully."),
    ]

    TYPE_FALLBACKS: Dict[str, Any] = {
        SchemaType.STRING.value: "string",
        SchemaType.INTEGER.value: 1,
        SchemaType.NUMBER.value: 0.0,
        SchemaType.BOOLEAN.value: True,
    }

    def generate(self, schema: SchemaObject, field_name: Optional[str] = None) -> SchemaObject:
        """
        Return a schema whose leaves carry examples

        Args:
            schema: Schema tree (not modified)
            field_name: Property name hint for the name heuristics

        Returns:
            New tree where something changed, otherwise `schema` itself
        """
        if schema.ref is not None:
            return schema

        changes: Dict[str, Any] = {}

        for attr, branches in schema.compositions().items():
            generated = [self.generate(branch, field_name) for branch in branches]
            if any(new is not old for new, old in zip(generated, branches)):
                changes[attr] = generated

        if schema.properties:
            properties = {name: self.generate(prop, name) for name, prop in schema.properties.items()}
            if any(properties[name] is not prop for name, prop in schema.properties.items()):
                changes["properties"] = properties

        if schema.is_array:
            items = schema.items
            if items is not None:
                generated_items = self.generate(items, field_name)
                if generated_items is not items:
                    changes["items"] = generated_items
                if schema.example is None and generated_items.example is not None:
                    changes["example"] = [generated_items.example]
            return replace(schema, **changes) if changes else schema

        if schema.is_object or schema.is_composition or schema.example is not None:
            return replace(schema, **changes) if changes else schema

        value = self.example_for(schema, field_name)
        if value is not None:
            changes["example"] = value
        return replace(schema, **changes) if changes else schema

    def example_for(self, schema: SchemaObject, field_name: Optional[str] = None) -> Any:
        """Run the leaf cascade; None when nothing applies"""
        if schema.enum:
            return schema.enum[0]
        if schema.default is not None:
            return schema.default
        if schema.format in self.FORMAT_EXAMPLES and schema.type in (None, SchemaType.STRING.value):
            return self.FORMAT_EXAMPLES[schema.format]
        if field_name:
            by_name = self._coerce(self._name_example(field_name), schema.type)
            if by_name is not None:
                return by_name
        bounded = self._bounded_example(schema)
        if bounded is not None:
            return bounded
        return self.TYPE_FALLBACKS.get(schema.type)

    def _name_example(self, field_name: str) -> Any:
        name = field_name.lower()
        for mode, token, value in self.NAME_EXAMPLES:
            if mode == "exact" and name == token:
                return value
            if mode == "suffix" and name.endswith(token):
                return value
            if mode == "prefix" and name.startswith(token):
                return value
            if mode == "contains" and token in name:
                return value
        return None

    @staticmethod
    def _coerce(value: Any, kind: Optional[str]) -> Any:
        """Adapt a heuristic value to the schema type, or reject it"""
        if value is None:
            return None
        if kind == SchemaType.BOOLEAN.value:
            return value if isinstance(value, bool) else None
        if isinstance(value, bool):
            return None
        if kind == SchemaType.INTEGER.value:
            return value if isinstance(value, int) else None
        if kind == SchemaType.NUMBER.value:
            return value if isinstance(value, (int, float)) else None
        if kind == SchemaType.STRING.value:
            return value if isinstance(value, str) else str(value)
        if kind is None:
            return value
        return None

    @staticmethod
    def _bounded_example(schema: SchemaObject) -> Any:
        if schema.type not in (SchemaType.INTEGER.value, SchemaType.NUMBER.value):
            return None
        low, high = schema.minimum, schema.maximum
        if low is not None and high is not None:
            if schema.type == SchemaType.INTEGER.value:
                return int((low + high) // 2)
            return (low + high) / 2
        if low is not None:
            return int(low) if schema.type == SchemaType.INTEGER.value else low
        if high is not None:
            return int(high) if schema.type == SchemaType.INTEGER.value else high
        return None

"""Folds captured payloads into schema leaves as examples."""

from typing import Any

from apidoc_infer.schema.models import SchemaObject, SchemaType

LEAF_TYPES = {
    SchemaType.STRING.value: (str,),
    SchemaType.INTEGER.value: (int,),
    SchemaType.NUMBER.value: (int, float),
    SchemaType.BOOLEAN.value: (bool,),
}


class ExampleMerger:
    """
    Copies values from a captured payload onto matching schema leaves

    Only leaves without an example and whose type accepts the value are
    touched; references and compositions are left as they are.

    Usage:
    ```python
    merged = ExampleMerger().merge(schema, {"id": 7, "email": "a@b.co"})
    merged.properties["id"].example  # 7
    ```
    """

    def merge(self, schema: SchemaObject, payload: Any) -> SchemaObject:
        if schema is None or payload is None:
            return schema
        return self._merge(schema.copy(), payload)

    def _merge(self, schema: SchemaObject, payload: Any) -> SchemaObject:
        if schema.is_ref or schema.is_composition:
            return schema

        if schema.is_object and isinstance(payload, dict):
            for name, prop in schema.properties.items():
                if name in payload:
                    schema.properties[name] = self._merge(prop, payload[name])
            return schema

        if schema.is_array and isinstance(payload, list):
            if schema.items is not None and payload:
                schema.items = self._merge(schema.items, payload[0])
            return schema

        if schema.example is None and self.accepts(schema, payload):
            schema.example = payload
        return schema

    @staticmethod
    def accepts(schema: SchemaObject, value: Any) -> bool:
        """True when `value` is a valid instance of a leaf schema"""
        expected = LEAF_TYPES.get(schema.type)
        if expected is None:
            return False
        if isinstance(value, bool) and schema.type != SchemaType.BOOLEAN.value:
            return False
        if not isinstance(value, expected):
            return False
        return not schema.enum or value in schema.enum

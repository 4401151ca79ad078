"""
Unit tests for the schema package

Tests:
- SchemaObject: OpenAPI 3.0 / 3.1 serialization, dictionary parsing
- Fingerprinter: cosmetic fields ignored, structure hashed
- SchemaRegistry: dedup, name suffixing, reservations, inline passthrough
"""

import pytest

from apidoc_infer.schema.fingerprint import Fingerprinter
from apidoc_infer.schema.models import Components, Reference, SchemaObject
from apidoc_infer.schema.registry import SchemaRegistry


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def user_schema():
    """Object schema with a required email"""
    return SchemaObject(
        type="object",
        properties={
            "id": SchemaObject(type="integer"),
            "email": SchemaObject(type="string", format="email"),
        },
        required=["id", "email"],
    )


# ============================================================================
# TEST: SchemaObject
# ============================================================================


class TestSchemaObject:
    """Tests for SchemaObject serialization"""

    def test_nullable_30(self):
        """Test 3.0 output uses the nullable keyword"""
        schema = SchemaObject(type="string", nullable=True)

        assert schema.to_dict("3.0.3") == {"type": "string", "nullable": True}

    def test_nullable_31(self):
        """Test 3.1 output encodes nullability in the type list"""
        schema = SchemaObject(type="string", nullable=True)

        assert schema.to_dict("3.1.0") == {"type": ["string", "null"]}

    def test_nullable_composition_31(self):
        """Test type-less nullable schemas wrap in anyOf for 3.1"""
        schema = SchemaObject(all_of=[SchemaObject.from_ref(Reference("User"))], nullable=True)

        data = schema.to_dict("3.1.0")

        assert data == {
            "anyOf": [
                {"allOf": [{"$ref": "#/components/schemas/User"}]},
                {"type": "null"},
            ]
        }

    def test_reference_has_no_siblings(self):
        """Test a reference serializes to $ref only"""
        schema = SchemaObject.from_ref(Reference("User"))
        schema.description = "ignored"

        assert schema.to_dict() == {"$ref": "#/components/schemas/User"}

    def test_array_without_items(self):
        """Test arrays always carry an items schema"""
        assert SchemaObject(type="array").to_dict() == {"type": "array", "items": {}}

    def test_camel_case_keys(self, user_schema):
        """Test constraint names serialize in camelCase"""
        user_schema.properties["email"].max_length = 255
        user_schema.properties["email"].read_only = True

        data = user_schema.to_dict()

        assert data["properties"]["email"]["maxLength"] == 255
        assert data["properties"]["email"]["readOnly"] is True
        assert data["required"] == ["id", "email"]

    def test_from_dict_31_type_list(self):
        """Test parsing a 3.1 type list"""
        schema = SchemaObject.from_dict({"type": ["integer", "null"], "minimum": 1})

        assert schema.type == "integer"
        assert schema.nullable is True
        assert schema.minimum == 1

    def test_from_dict_nested(self):
        """Test parsing nested properties, items and references"""
        schema = SchemaObject.from_dict({
            "type": "object",
            "properties": {
                "tags": {"type": "array", "items": {"type": "string"}},
                "owner": {"$ref": "#/components/schemas/User"},
            },
            "required": ["tags"],
        })

        assert schema.properties["tags"].items.type == "string"
        assert schema.properties["owner"].ref == Reference("User")
        assert schema.required == ["tags"]

    def test_is_empty(self):
        """Test the unconstrained schema"""
        assert SchemaObject().is_empty()
        assert not SchemaObject(type="string").is_empty()

    def test_add_description(self):
        """Test descriptions are appended"""
        schema = SchemaObject(description="First")
        schema.add_description("second")

        assert schema.description == "First; second"

    def test_components_sorted(self, user_schema):
        """Test component names are emitted in sorted order"""
        components = Components(
            schemas={"Zeta": user_schema, "Alpha": SchemaObject(type="object")},
            security_schemes={"bearerAuth": {"type": "http", "scheme": "bearer"}},
        )

        data = components.to_dict()

        assert list(data["schemas"]) == ["Alpha", "Zeta"]
        assert data["securitySchemes"]["bearerAuth"]["scheme"] == "bearer"


# ============================================================================
# TEST: Fingerprinter
# ============================================================================


class TestFingerprinter:
    """Tests for structural fingerprints"""

    def test_cosmetic_fields_ignored(self, user_schema):
        """Test descriptions and examples do not change the fingerprint"""
        fingerprinter = Fingerprinter()
        decorated = user_schema.copy()
        decorated.description = "A user"
        decorated.properties["email"].example = "a@b.co"

        assert fingerprinter.fingerprint(user_schema) == fingerprinter.fingerprint(decorated)

    def test_order_insensitive(self):
        """Test enum and required order do not matter"""
        fingerprinter = Fingerprinter()
        a = SchemaObject(type="string", enum=["a", "b"])
        b = SchemaObject(type="string", enum=["b", "a"])

        assert fingerprinter.fingerprint(a) == fingerprinter.fingerprint(b)

    def test_structure_changes_fingerprint(self, user_schema):
        """Test a changed property type changes the fingerprint"""
        fingerprinter = Fingerprinter()
        changed = user_schema.copy()
        changed.properties["id"].type = "string"

        assert fingerprinter.fingerprint(user_schema) != fingerprinter.fingerprint(changed)

    def test_stable(self, user_schema):
        """Test fingerprints are deterministic"""
        assert Fingerprinter().fingerprint(user_schema) == Fingerprinter().fingerprint(user_schema.copy())


# ============================================================================
# TEST: SchemaRegistry
# ============================================================================


class TestSchemaRegistry:
    """Tests for component registration"""

    def test_register_returns_reference(self, user_schema):
        """Test registration stores the body under the requested name"""
        registry = SchemaRegistry()

        ref = registry.register("User", user_schema)

        assert ref == Reference("User")
        assert registry.resolve(ref) is user_schema
        assert registry.resolve("#/components/schemas/User") is user_schema

    def test_structural_dedup(self, user_schema):
        """Test identical shapes share one component"""
        registry = SchemaRegistry()
        first = registry.register("User", user_schema)
        copy = user_schema.copy()
        copy.description = "Account"

        second = registry.register("Account", copy)

        assert second == first
        assert len(registry) == 1

    def test_name_collision_suffix(self, user_schema):
        """Test different shapes under one name get suffixed"""
        registry = SchemaRegistry()
        registry.register("User", user_schema)
        other = SchemaObject(type="object", properties={"name": SchemaObject(type="string")})
        third = SchemaObject(type="object", properties={"age": SchemaObject(type="integer")})

        assert registry.register("User", other) == Reference("User1")
        assert registry.register("User", third) == Reference("User2")

    def test_register_if_complex_keeps_primitives_inline(self):
        """Test primitives and property-less objects stay inline"""
        registry = SchemaRegistry()
        primitive = SchemaObject(type="string", format="email")
        generic = SchemaObject(type="object")

        assert registry.register_if_complex("Email", primitive) is primitive
        assert registry.register_if_complex("Anything", generic) is generic
        assert len(registry) == 0

    def test_register_if_complex_registers_objects(self, user_schema):
        """Test objects with properties become references"""
        registry = SchemaRegistry()

        result = registry.register_if_complex("User", user_schema)

        assert result.is_ref
        assert result.ref.name == "User"

    def test_reserve_and_register_as(self, user_schema):
        """Test reserved names block other registrations until filled"""
        registry = SchemaRegistry()
        reserved = registry.reserve("Node")
        other = registry.register("Node", user_schema)

        registry.register_as(reserved, SchemaObject(type="object", properties={"v": SchemaObject(type="integer")}))

        assert reserved == "Node"
        assert other == Reference("Node1")
        assert registry.has_schema("Node")

    def test_release(self):
        """Test a released reservation frees the name"""
        registry = SchemaRegistry()
        registry.release(registry.reserve("Node"))

        assert registry.reserve("Node") == "Node"

    def test_sanitize_name(self):
        """Test component names are restricted to safe characters"""
        assert SchemaRegistry.sanitize_name("Page[Item]") == "Page"
        assert SchemaRegistry.sanitize_name("app\\Models\\User") == "app.Models.User"
        assert SchemaRegistry.sanitize_name("!!!") == "Schema"

    def test_map_schemas(self, user_schema):
        """Test bodies can be rewritten in place"""
        registry = SchemaRegistry()
        registry.register("User", user_schema)

        registry.map_schemas(lambda schema: SchemaObject(type="object", description="rewritten"))

        assert registry.get_schemas()["User"].description == "rewritten"

    def test_reset(self, user_schema):
        """Test reset forgets components and security schemes"""
        registry = SchemaRegistry()
        registry.register("User", user_schema)
        registry.add_security_scheme("bearerAuth", {"type": "http"})

        registry.reset()

        assert len(registry) == 0
        assert registry.get_security_schemes() == {}

"""
End-to-end tests for DocumentBuilder and OperationBuilder over the sample project

Tests:
- Paths, parameters, responses, security and tags of built operations
- Deduplicated components with generated examples
- Excluded and handler-less entry points
- Unique operation ids
- Capture merge policies
- OpenAPI 3.1 output
"""

import pytest

from apidoc_infer.analysis.entry_points import EntryPoint
from apidoc_infer.builder.document_builder import DocumentBuilder
from apidoc_infer.capture.repository import CapturedResponseRepository
from apidoc_infer.merge.result_merger import ResultMerger
from apidoc_infer.plugins.contracts import Plugin, ResponseExtractor
from apidoc_infer.plugins.registry import PluginRegistry
from apidoc_infer.schema.models import Reference, SchemaObject


class FlakyResponse(Plugin, ResponseExtractor):
    """Raises on its first call only"""

    name = "flaky"
    priority = 90

    def __init__(self):
        self.calls = 0

    def extract_responses(self, context):
        self.calls += 1
        if self.calls == 1:
            raise ValueError("first call")
        return []


def get_user_entry(path: str = "/users/{user_id}") -> EntryPoint:
    return EntryPoint(path=path, methods=["GET"], handler="app/views.py:get_user")


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def entry_points():
    return [
        get_user_entry(),
        EntryPoint(path="/users", methods=["POST"], handler="app/views.py:create_user"),
        EntryPoint(path="/hidden", methods=["GET"], handler="app/views.py:hidden"),
        EntryPoint(path="/ping", methods=["GET"], handler="app/views.py:ping"),
    ]


@pytest.fixture
def builder(source_index):
    return DocumentBuilder(source_index, title="Sample API", version="2.0.0")


@pytest.fixture
def document(builder, entry_points):
    return builder.build(entry_points)


@pytest.fixture
def captures(tmp_path):
    """Runtime capture for GET /users/{user_id} with a different shape"""
    repository = CapturedResponseRepository(tmp_path / "captures")
    repository.save_capture(
        "GET",
        "/users/{user_id}",
        200,
        {"type": "object", "properties": {"nickname": {"type": "string"}}},
        {"nickname": "neo"},
    )
    return repository


# ============================================================================
# TEST: Operations
# ============================================================================


class TestOperations:
    """Tests for the operations of a built document"""

    def test_info(self, document):
        data = document.to_dict()

        assert data["openapi"] == "3.0.3"
        assert data["info"] == {"title": "Sample API", "version": "2.0.0"}

    def test_get_user_parameters(self, document):
        """Test the path parameter is typed from the handler, query from the signature"""
        operation = document.get_operation("/users/{user_id}", "GET")

        parameters = [p.to_dict() for p in operation.parameters]

        assert [(p["name"], p["in"]) for p in parameters] == [("user_id", "path"), ("include", "query")]
        assert parameters[0]["schema"]["type"] == "integer"
        assert parameters[0]["required"] is True
        assert parameters[1]["required"] is False

    def test_get_user_responses(self, document):
        """Test success, authentication and not-found responses"""
        data = document.get_operation("/users/{user_id}", "get").to_dict()

        assert list(data["responses"]) == ["200", "401", "404"]
        assert data["responses"]["200"]["content"]["application/json"]["schema"] == {
            "$ref": "#/components/schemas/UserOut"
        }
        assert data["responses"]["404"]["content"]["application/json"]["schema"] == {
            "$ref": "#/components/schemas/ErrorResponse"
        }

    def test_get_user_metadata(self, document):
        """Test operation id, tags, summary and security"""
        data = document.get_operation("/users/{user_id}", "get").to_dict()

        assert data["operationId"] == "get_user"
        assert data["tags"] == ["Users"]
        assert data["summary"] == "Fetch one user."
        assert data["security"] == [{"bearerAuth": []}]

    def test_create_user(self, document):
        """Test typed request body and validation error response"""
        data = document.get_operation("/users", "post").to_dict()

        body = data["requestBody"]["content"]["application/json"]["schema"]
        assert body == {"$ref": "#/components/schemas/CreateUserPayload"}
        assert list(data["responses"]) == ["201", "422"]
        assert "security" not in data

    def test_excluded_entry_point(self, document):
        assert document.get_operation("/hidden", "get") is None

    def test_missing_handler(self, document):
        """Test a handler-less route still gets an operation and a diagnostic"""
        operation = document.get_operation("/ping", "get")

        assert operation.operation_id == "getPing"
        assert list(operation.responses) == [200]
        assert any("Handler source not found" in message for message in document.diagnostics)

    def test_unique_operation_ids(self, builder):
        """Test a handler mounted twice gets suffixed ids"""
        document = builder.build([get_user_entry(), get_user_entry("/members/{user_id}")])

        ids = [op.operation_id for op in document.operations()]

        assert ids == ["get_user", "get_user_1"]

    def test_failed_plugin_restored_on_rebuild(self, source_index):
        """Test a plugin dropped in one build runs again in the next"""
        plugins = PluginRegistry.with_defaults()
        flaky = FlakyResponse()
        plugins.register(flaky)
        builder = DocumentBuilder(source_index, plugins=plugins)

        first = builder.build([get_user_entry(), get_user_entry("/members/{user_id}")])
        second = builder.build([get_user_entry()])

        assert flaky.calls == 2
        assert "Plugin 'flaky': raised ValueError: first call" in first.diagnostics
        assert not any("flaky" in message for message in second.diagnostics)
        assert "flaky" in {p.plugin_name for p in plugins.plugins()}

    def test_converter_path_parameters(self, builder):
        """Test `<int:id>` converters type the path parameter"""
        document = builder.build([
            EntryPoint(path="/posts/<int:post_id>", methods=["GET"], handler="app/views.py:list_posts"),
        ])

        operation = document.get_operation("/posts/{post_id}", "get")

        names = [p.name for p in operation.parameters]
        assert names == ["post_id", "page", "per_page"]
        assert operation.parameters[0].schema.type == "integer"


# ============================================================================
# TEST: Components
# ============================================================================


class TestComponents:
    """Tests for the components section"""

    def test_component_names(self, document):
        schemas = document.to_dict()["components"]["schemas"]

        assert {"UserOut", "Address", "CreateUserPayload", "ErrorResponse", "ValidationErrorResponse"} <= set(schemas)

    def test_error_schema_shared(self, document):
        """Test 401 and 404 share one error component"""
        responses = document.get_operation("/users/{user_id}", "get").responses

        assert responses[401].schema.ref == responses[404].schema.ref == Reference("ErrorResponse")

    def test_component_examples(self, document):
        """Test examples are generated on registered components"""
        user = document.to_dict()["components"]["schemas"]["UserOut"]

        assert user["properties"]["plan"]["example"] == "mini"
        assert user["properties"]["email"]["example"] == "user@example.com"

    def test_security_schemes(self, document):
        schemes = document.to_dict()["components"]["securitySchemes"]

        assert schemes["bearerAuth"]["scheme"] == "bearer"

    def test_rebuild_resets_registry(self, builder, entry_points):
        """Test a second build does not accumulate suffixed components"""
        builder.build(entry_points)
        document = builder.build(entry_points)

        assert "UserOut1" not in document.components.schemas

    def test_fold_array_items(self, builder):
        """Test arrays stay inline and fold their items"""
        item = SchemaObject(type="object", properties={"id": SchemaObject(type="integer")})

        folded = builder.operation_builder.fold(SchemaObject(type="array", items=item), "Tags")

        assert folded.is_array
        assert folded.items.ref == Reference("TagsItem")
        assert builder.registry.has_schema("TagsItem")

    def test_fold_simple_schema_inline(self, builder):
        folded = builder.operation_builder.fold(SchemaObject(type="string"), "Name")

        assert folded.type == "string"
        assert not builder.registry.has_schema("Name")


# ============================================================================
# TEST: Captures and output dialects
# ============================================================================


class TestCapturesAndDialects:
    """Tests for capture merging and OpenAPI 3.1 output"""

    def test_static_first_keeps_return_type(self, source_index, captures):
        """Test static_first keeps the static shape and adds captured examples"""
        builder = DocumentBuilder(source_index, captures=captures)

        response = builder.build([get_user_entry()]).get_operation("/users/{user_id}", "get").responses[200]

        assert response.schema.ref == Reference("UserOut")
        assert response.examples == {"captured": {"nickname": "neo"}}

    def test_captured_first_uses_capture(self, source_index, captures):
        """Test captured_first documents the observed shape as its own component"""
        builder = DocumentBuilder(source_index, captures=captures, merger=ResultMerger(policy="captured_first"))

        document = builder.build([get_user_entry()])

        response = document.get_operation("/users/{user_id}", "get").responses[200]
        assert response.schema.ref == Reference("GetUserResponse")
        assert list(document.components.schemas["GetUserResponse"].properties) == ["nickname"]

    def test_openapi_31(self, source_index):
        """Test nullable types render as type arrays in 3.1"""
        builder = DocumentBuilder(source_index, openapi_version="3.1.0")

        data = builder.build([get_user_entry()]).to_dict()

        include = data["paths"]["/users/{user_id}"]["get"]["parameters"][1]
        assert data["openapi"] == "3.1.0"
        assert include["schema"]["type"] == ["string", "null"]
        assert "nullable" not in include["schema"]

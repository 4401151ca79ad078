"""
Unit tests for the plugins package

Tests:
- PluginRegistry: priorities, boot failures, unregistering, error providers
- AnalysisPipeline: first-wins request bodies, collected responses, transform fold,
  failing extractors dropped for the rest of the run
- Security detectors and operation transformers
"""

from unittest.mock import Mock

import pytest

from apidoc_infer.analysis.results import Operation, Provenance, ResponseResult, SchemaResult
from apidoc_infer.extractors.error_responses import HttpExceptionProvider
from apidoc_infer.plugins.contracts import (
    Capability,
    OperationTransformer,
    Plugin,
    RequestBodyExtractor,
    ResponseExtractor,
)
from apidoc_infer.plugins.pipeline import AnalysisPipeline
from apidoc_infer.plugins.registry import PluginRegistry
from apidoc_infer.plugins.security import ApiKeyAuthPlugin, BearerAuthPlugin
from apidoc_infer.plugins.transformers import SummaryTransformer, TagTransformer
from apidoc_infer.schema.models import SchemaObject


class StaticResponse(Plugin, ResponseExtractor):
    """Returns a fixed response"""

    def __init__(self, name: str, priority: int, status: int = 200):
        self.name = name
        self.priority = priority
        self.status = status

    def extract_responses(self, context):
        return [ResponseResult(status_code=self.status, source=self.name)]


class FailingResponse(Plugin, ResponseExtractor):
    name = "failing"
    priority = 90

    def __init__(self):
        self.calls = 0

    def extract_responses(self, context):
        self.calls += 1
        raise ValueError("boom")


class FixedBody(Plugin, RequestBodyExtractor):
    def __init__(self, name: str, priority: int, schema, provenance=Provenance.STATIC):
        self.name = name
        self.priority = priority
        self.schema = schema
        self.provenance = provenance
        self.calls = 0

    def extract_request_body(self, context):
        self.calls += 1
        if self.schema is None:
            return None
        return SchemaResult(schema=self.schema, provenance=self.provenance, source=self.name)


class BrokenBoot(Plugin, ResponseExtractor):
    name = "broken"

    def boot(self, registry):
        super().boot(registry)
        raise RuntimeError("missing dependency")

    def extract_responses(self, context):
        return []


class AppendTag(Plugin, OperationTransformer):
    def __init__(self, tag: str, priority: int):
        self.name = f"tag-{tag}"
        self.tag = tag
        self.priority = priority

    def transform(self, operation, context):
        operation.tags = operation.tags + [self.tag]
        return operation


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def registry():
    return PluginRegistry()


@pytest.fixture
def context():
    """Extractors under test ignore the context"""
    return Mock()


# ============================================================================
# TEST: PluginRegistry
# ============================================================================


class TestPluginRegistry:
    """Tests for plugin registration"""

    def test_priority_order(self, registry):
        """Test higher priority first, registration order on ties"""
        low = StaticResponse("low", 10)
        high = StaticResponse("high", 90)
        tie = StaticResponse("tie", 90)
        for plugin in (low, high, tie):
            registry.register(plugin)

        assert registry.get(Capability.RESPONSE) == [high, tie, low]

    def test_capabilities(self, registry):
        """Test a plugin is registered for each interface it implements"""
        provider = HttpExceptionProvider()
        registry.register(provider)

        assert provider.capabilities() == [Capability.ERROR_SCHEMA]
        assert registry.capabilities_of(provider) == [Capability.ERROR_SCHEMA]

    def test_boot_failure_dropped(self, registry):
        """Test a plugin failing to boot is removed and reported"""
        healthy = StaticResponse("healthy", 50)
        registry.register(healthy)

        assert registry.register(BrokenBoot()) is False
        assert registry.get(Capability.RESPONSE) == [healthy]
        assert [p.plugin_name for p in registry.plugins()] == ["healthy"]
        assert "Plugin 'broken': failed to boot: missing dependency" in registry.diagnostics

    def test_unregister(self, registry):
        plugin = StaticResponse("one", 50)
        registry.register(plugin)

        registry.unregister(plugin, "no longer needed")

        assert registry.get(Capability.RESPONSE) == []
        assert registry.diagnostics == ["Plugin 'one': no longer needed"]

    def test_begin_run_restores_unregistered(self, registry):
        """Test plugins dropped during one run are back for the next, in priority order"""
        high = StaticResponse("high", 90)
        low = StaticResponse("low", 10)
        registry.register(low)
        registry.register(high)
        registry.unregister(high, "raised ValueError: boom")

        registry.begin_run()

        assert registry.get(Capability.RESPONSE) == [high, low]
        assert {p.plugin_name for p in registry.plugins()} == {"high", "low"}

    def test_begin_run_keeps_boot_failures_out(self, registry):
        registry.register(BrokenBoot())

        registry.begin_run()

        assert registry.get(Capability.RESPONSE) == []

    def test_error_provider_lookup(self):
        """Test exception names resolve through the default provider"""
        registry = PluginRegistry.with_defaults()

        provider = registry.error_provider_for("NotFound")

        assert isinstance(provider, HttpExceptionProvider)
        assert registry.error_provider_for("KeyError") is None

    def test_defaults_without_captures(self):
        """Test capture extractors are optional"""
        names = {p.plugin_name for p in PluginRegistry.with_defaults(with_captures=False).plugins()}

        assert "return-type" in names
        assert "captured-response" not in names

    def test_plugin_name_defaults_to_class(self):
        class Anonymous(Plugin, ResponseExtractor):
            def extract_responses(self, context):
                return []

        assert Anonymous().plugin_name == "Anonymous"


# ============================================================================
# TEST: AnalysisPipeline
# ============================================================================


class TestAnalysisPipeline:
    """Tests for capability dispatch"""

    def test_request_body_first_wins(self, registry, context):
        """Test the first non-empty static body stops lower static extractors"""
        empty = FixedBody("empty", 95, None)
        first = FixedBody("first", 90, SchemaObject(type="object"))
        second = FixedBody("second", 80, SchemaObject(type="string"))
        for plugin in (empty, first, second):
            registry.register(plugin)

        found = AnalysisPipeline(registry).extract_request_bodies(context)

        assert [r.source for r in found[Provenance.STATIC]] == ["first"]
        assert empty.calls == 1
        assert second.calls == 0

    def test_request_body_per_tier(self, registry, context):
        """Test each provenance tier gets its own winner"""
        annotated = FixedBody("annotated", 100, SchemaObject(type="object"), Provenance.ANNOTATION)
        static = FixedBody("static", 90, SchemaObject(type="object"))
        captured = FixedBody("captured", 10, SchemaObject(type="object"), Provenance.CAPTURE)
        for plugin in (annotated, static, captured):
            registry.register(plugin)

        found = AnalysisPipeline(registry).extract_request_bodies(context)

        assert set(found) == {Provenance.ANNOTATION, Provenance.STATIC, Provenance.CAPTURE}

    def test_responses_collected(self, registry, context):
        """Test every response extractor contributes"""
        registry.register(StaticResponse("a", 50, 200))
        registry.register(StaticResponse("b", 40, 404))

        found = AnalysisPipeline(registry).extract_responses(context)

        assert [r.status_code for r in found[Provenance.STATIC]] == [200, 404]

    def test_failing_extractor_unregistered(self, registry, context):
        """Test a raising extractor yields nothing and is skipped afterwards"""
        failing = FailingResponse()
        registry.register(failing)
        registry.register(StaticResponse("ok", 50))
        pipeline = AnalysisPipeline(registry)

        first = pipeline.extract_responses(context)
        second = pipeline.extract_responses(context)

        assert [r.source for r in first[Provenance.STATIC]] == ["ok"]
        assert [r.source for r in second[Provenance.STATIC]] == ["ok"]
        assert failing.calls == 1
        assert registry.diagnostics == ["Plugin 'failing': raised ValueError: boom"]

    def test_transform_fold(self, registry, context):
        """Test transformers run in priority order on the previous output"""
        registry.register(AppendTag("second", 10))
        registry.register(AppendTag("first", 20))

        operation = AnalysisPipeline(registry).transform(Operation(method="get", path="/"), context)

        assert operation.tags == ["first", "second"]

    def test_security_first_wins(self, registry, make_context):
        """Test the API key detector outranks bearer detection"""
        registry.register(BearerAuthPlugin())
        registry.register(ApiKeyAuthPlugin())
        ctx = make_context("app/views.py:search", middleware=["auth", "api_key"])

        requirement = AnalysisPipeline(registry).detect_security(ctx)

        assert requirement.scheme_name == "apiKeyAuth"


# ============================================================================
# TEST: Security
# ============================================================================


class TestSecurity:
    """Tests for security scheme detection"""

    def test_bearer_with_scopes(self, make_context):
        """Test ability middleware becomes scopes"""
        ctx = make_context("app/views.py:search", middleware=["auth:sanctum", "ability:posts.write,posts.read"])

        requirement = BearerAuthPlugin().detect_security(ctx)

        assert requirement.to_dict() == {"bearerAuth": ["posts.write", "posts.read"]}
        assert requirement.scheme == {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"}

    def test_bearer_from_dependency(self, make_context):
        """Test Depends(get_current_user) implies bearer authentication"""
        ctx = make_context("app/views.py:get_user", path="/users/{user_id}")

        assert BearerAuthPlugin().detect_security(ctx).scheme_name == "bearerAuth"

    def test_api_key_header(self, make_context):
        """Test the configured API key header"""
        ctx = make_context("app/views.py:search", middleware=["auth:api_key"])

        requirement = ApiKeyAuthPlugin(header_name="X-Token").detect_security(ctx)

        assert requirement.scheme == {"type": "apiKey", "in": "header", "name": "X-Token"}

    def test_public_route(self, make_context):
        ctx = make_context("app/views.py:search")

        assert BearerAuthPlugin().detect_security(ctx) is None
        assert ApiKeyAuthPlugin().detect_security(ctx) is None


# ============================================================================
# TEST: Transformers
# ============================================================================


class TestTransformers:
    """Tests for summary and tag transformers"""

    def test_docstring_summary(self, make_context):
        """Test docstring paragraphs become summary and description"""
        ctx = make_context("app/views.py:get_user", path="/users/{user_id}")

        operation = SummaryTransformer().transform(Operation(method="get", path=ctx.path), ctx)

        assert operation.summary == "Fetch one user."
        assert operation.description == "Returns the public representation."
        assert operation.operation_id == "get_user"

    def test_annotation_summary(self, make_context):
        """Test a summary annotation beats the docstring"""
        ctx = make_context("app/views.py:list_users")

        operation = SummaryTransformer().transform(Operation(method="get", path="/"), ctx)

        assert operation.summary == "List users"

    def test_handlerless_operation_id(self, make_context):
        """Test operation ids derive from method and path without a handler"""
        ctx = make_context("app/views.py:missing", path="/health-check")

        operation = SummaryTransformer().transform(Operation(method="get", path=ctx.path), ctx)

        assert operation.operation_id == "getHealthCheck"

    def test_deprecated_middleware(self, make_context):
        ctx = make_context("app/views.py:search", middleware=["deprecated"])

        assert SummaryTransformer().transform(Operation(method="get", path="/"), ctx).deprecated is True

    @pytest.mark.parametrize("path,expected", [
        ("/api/v1/users/{id}", ["Users"]),
        ("/user-profiles", ["User Profiles"]),
        ("/{tenant}/orders", ["Orders"]),
        ("/api", []),
    ])
    def test_path_tags(self, path, expected):
        """Test tags from the first meaningful path segment"""
        assert TagTransformer.path_tags(path) == expected

    def test_tag_annotation(self, make_context):
        ctx = make_context("app/views.py:list_users", path="/users")

        assert TagTransformer().transform(Operation(method="get", path="/users"), ctx).tags == ["Accounts"]

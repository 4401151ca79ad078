"""
Unit tests for the merge package

Tests:
- ResultMerger: policies, annotation override, gap filling, fill depth, placeholder
- ExampleMerger: captured payload values folded into schema leaves
"""

from dataclasses import replace

import pytest

from apidoc_infer.analysis.results import ParameterResult, Provenance, ResponseResult, SchemaResult
from apidoc_infer.merge.example_merger import ExampleMerger
from apidoc_infer.merge.result_merger import MergePolicy, ResultMerger
from apidoc_infer.schema.models import SchemaObject


def object_schema(**properties) -> SchemaObject:
    return SchemaObject(
        type="object",
        properties={name: SchemaObject(type=kind) for name, kind in properties.items()},
        required=list(properties),
    )


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def static_result():
    """Shape A from static analysis"""
    return ResponseResult(
        status_code=200,
        schema=object_schema(id="integer", email="string"),
        provenance=Provenance.STATIC,
        source="return-type",
    )


@pytest.fixture
def captured_result():
    """Shape B observed at runtime"""
    return ResponseResult(
        status_code=200,
        schema=object_schema(id="integer", nickname="string"),
        description="Captured",
        examples={"captured": {"id": 7, "nickname": "neo"}},
        provenance=Provenance.CAPTURE,
        source="captured-response",
    )


@pytest.fixture
def annotated_result():
    return ResponseResult(
        status_code=200,
        schema=object_schema(token="string"),
        description="Annotated",
        provenance=Provenance.ANNOTATION,
        source="response-annotation",
    )


# ============================================================================
# TEST: Response merge
# ============================================================================


class TestResponseMerge:
    """Tests for merge_responses"""

    def test_static_first(self, static_result, captured_result):
        """Test static_first keeps shape A"""
        merger = ResultMerger(policy=MergePolicy.STATIC_FIRST)

        merged = merger.merge({Provenance.STATIC: [static_result], Provenance.CAPTURE: [captured_result]})

        assert merged[200].schema == static_result.schema

    def test_captured_first(self, static_result, captured_result):
        """Test captured_first keeps shape B"""
        merger = ResultMerger(policy="captured_first")

        merged = merger.merge({Provenance.STATIC: [static_result], Provenance.CAPTURE: [captured_result]})

        assert merged[200].schema == captured_result.schema

    def test_annotation_returned_unchanged(self, static_result, captured_result, annotated_result):
        """Test an annotated status ignores both lower tiers regardless of policy"""
        for policy in MergePolicy:
            merged = ResultMerger(policy=policy).merge({
                Provenance.ANNOTATION: [annotated_result],
                Provenance.STATIC: [static_result],
                Provenance.CAPTURE: [captured_result],
            })

            assert merged[200] is annotated_result

    def test_loser_fills_gaps(self, static_result, captured_result):
        """Test the losing tier contributes description and examples"""
        merged = ResultMerger().merge({Provenance.STATIC: [static_result], Provenance.CAPTURE: [captured_result]})

        assert merged[200].description == "Captured"
        assert merged[200].examples == {"captured": {"id": 7, "nickname": "neo"}}
        assert merged[200].source == "return-type"

    def test_examples_unioned(self, static_result, captured_result):
        """Test examples from both tiers are kept, the winner's on key clashes"""
        static = replace(static_result, examples={"default": {"a": 1}, "captured": {"id": 1}})
        captured = replace(captured_result, examples={"captured": {"id": 7}, "second": {"id": 8}})

        merged = ResultMerger().merge({Provenance.STATIC: [static], Provenance.CAPTURE: [captured]})

        assert merged[200].examples == {"captured": {"id": 1}, "second": {"id": 8}, "default": {"a": 1}}

    def test_missing_schema_filled(self, captured_result):
        """Test a schema-less winner takes the loser's schema"""
        bare = ResponseResult(status_code=200, provenance=Provenance.STATIC)

        merged = ResultMerger().merge({Provenance.STATIC: [bare], Provenance.CAPTURE: [captured_result]})

        assert merged[200].schema == captured_result.schema

    def test_fill_depth_zero(self, static_result, captured_result):
        """Test properties are not merged by default"""
        merged = ResultMerger().merge({Provenance.STATIC: [static_result], Provenance.CAPTURE: [captured_result]})

        assert list(merged[200].schema.properties) == ["id", "email"]

    def test_fill_depth_adds_optional_properties(self, static_result, captured_result):
        """Test fill_depth adds loser-only properties without requiring them"""
        merged = ResultMerger(fill_depth=1).merge({
            Provenance.STATIC: [static_result],
            Provenance.CAPTURE: [captured_result],
        })

        schema = merged[200].schema
        assert list(schema.properties) == ["id", "email", "nickname"]
        assert schema.required == ["id", "email"]
        assert list(static_result.schema.properties) == ["id", "email"]

    def test_fill_depth_nested(self):
        """Test depth limits how far nested objects are filled"""
        target = SchemaObject(type="object", properties={"profile": object_schema(name="string")})
        source = SchemaObject(type="object", properties={"profile": object_schema(name="string", bio="string")})
        merger = ResultMerger()

        assert merger.fill_schema(target, source, 1) is target
        filled = merger.fill_schema(target, source, 2)
        assert list(filled.properties["profile"].properties) == ["name", "bio"]

    def test_fill_through_arrays(self):
        """Test arrays do not consume depth"""
        target = SchemaObject(type="array", items=object_schema(id="integer"))
        source = SchemaObject(type="array", items=object_schema(id="integer", slug="string"))

        filled = ResultMerger().fill_schema(target, source, 1)

        assert list(filled.items.properties) == ["id", "slug"]

    def test_placeholder_when_no_success(self):
        """Test a generic 200 is synthesized when no 2xx result exists"""
        not_found = ResponseResult(status_code=404, schema=object_schema(message="string"))

        merged = ResultMerger().merge({Provenance.STATIC: [not_found]})

        assert list(merged) == [200, 404]
        assert merged[200].schema.type == "object"
        assert merged[200].source == "default"

    def test_placeholder_when_empty(self):
        """Test an operation without any results still documents 200"""
        merged = ResultMerger().merge({})

        assert merged[200].description == "Successful response"

    def test_same_tier_first_wins(self, static_result):
        """Test within a tier the higher-priority result wins and later ones fill gaps"""
        later = ResponseResult(
            status_code=200,
            schema=object_schema(other="string"),
            description="From later extractor",
            provenance=Provenance.STATIC,
        )

        merged = ResultMerger().merge({Provenance.STATIC: [static_result, later]})

        assert merged[200].schema == static_result.schema
        assert merged[200].description == "From later extractor"

    def test_headers_merged(self, static_result):
        """Test loser-only headers are added"""
        captured = ResponseResult(
            status_code=200,
            headers={"X-Request-Id": SchemaObject(type="string")},
            provenance=Provenance.CAPTURE,
        )

        merged = ResultMerger().merge({Provenance.STATIC: [static_result], Provenance.CAPTURE: [captured]})

        assert list(merged[200].headers) == ["X-Request-Id"]

    def test_inline_captured_examples(self, static_result, captured_result):
        """Test captured payload values become leaf examples when enabled"""
        merged = ResultMerger(inline_captured_examples=True).merge({
            Provenance.STATIC: [static_result],
            Provenance.CAPTURE: [captured_result],
        })

        assert merged[200].schema.properties["id"].example == 7
        assert merged[200].schema.properties["email"].example is None

    def test_sorted_by_status(self, static_result):
        """Test output is ordered by status code"""
        error = ResponseResult(status_code=422, provenance=Provenance.STATIC)
        created = ResponseResult(status_code=201, provenance=Provenance.STATIC)

        merged = ResultMerger().merge({Provenance.STATIC: [error, static_result, created]})

        assert list(merged) == [200, 201, 422]


# ============================================================================
# TEST: Request body and query parameter merge
# ============================================================================


class TestRequestMerge:
    """Tests for merge_request_bodies and merge_query_parameters"""

    def test_annotation_body_wins(self):
        """Test an annotated body replaces every other tier"""
        annotated = SchemaResult(schema=object_schema(a="string"), provenance=Provenance.ANNOTATION)
        static = SchemaResult(schema=object_schema(b="string"), description="static")

        assert ResultMerger().merge_request_bodies({
            Provenance.ANNOTATION: [annotated],
            Provenance.STATIC: [static],
        }) is annotated

    def test_body_policy(self):
        """Test the policy chooses between static and captured bodies"""
        static = SchemaResult(schema=object_schema(b="string"))
        captured = SchemaResult(
            schema=object_schema(c="string"),
            examples={"captured": {"c": "x"}},
            provenance=Provenance.CAPTURE,
        )
        candidates = {Provenance.STATIC: [static], Provenance.CAPTURE: [captured]}

        static_first = ResultMerger().merge_request_bodies(candidates)
        captured_first = ResultMerger(policy="captured_first").merge_request_bodies(candidates)

        assert static_first.schema == static.schema
        assert static_first.examples == {"captured": {"c": "x"}}
        assert captured_first.schema == captured.schema

    def test_no_body(self):
        """Test None when no tier produced a body"""
        assert ResultMerger().merge_request_bodies({}) is None

    def test_query_parameters_by_name(self):
        """Test parameters merge per name with annotations overriding"""
        candidates = {
            Provenance.ANNOTATION: [ParameterResult(name="q", description="Search text", provenance=Provenance.ANNOTATION)],
            Provenance.STATIC: [
                ParameterResult(name="q", schema=SchemaObject(type="string"), required=True),
                ParameterResult(name="page", schema=SchemaObject(type="integer")),
            ],
            Provenance.CAPTURE: [
                ParameterResult(name="page", example=3, provenance=Provenance.CAPTURE),
                ParameterResult(name="sort", example="asc", provenance=Provenance.CAPTURE),
            ],
        }

        merged = {p.name: p for p in ResultMerger().merge_query_parameters(candidates)}

        assert list(merged) == ["q", "page", "sort"]
        assert merged["q"].description == "Search text"
        assert merged["q"].required is False
        assert merged["page"].schema.type == "integer"
        assert merged["page"].example == 3


# ============================================================================
# TEST: ExampleMerger
# ============================================================================


class TestExampleMerger:
    """Tests for folding captured payloads into schemas"""

    def test_merge_nested(self):
        """Test values land on matching leaves through objects and arrays"""
        schema = SchemaObject(
            type="object",
            properties={
                "id": SchemaObject(type="integer"),
                "tags": SchemaObject(type="array", items=SchemaObject(type="string")),
            },
        )

        merged = ExampleMerger().merge(schema, {"id": 7, "tags": ["a", "b"]})

        assert merged.properties["id"].example == 7
        assert merged.properties["tags"].items.example == "a"
        assert schema.properties["id"].example is None

    def test_type_mismatch_ignored(self):
        """Test values that do not fit the leaf type are dropped"""
        schema = SchemaObject(type="object", properties={"count": SchemaObject(type="integer")})

        merged = ExampleMerger().merge(schema, {"count": "seven"})

        assert merged.properties["count"].example is None

    def test_existing_example_kept(self):
        """Test declared examples are not replaced"""
        schema = SchemaObject(type="string", example="declared")

        assert ExampleMerger().merge(schema, "captured").example == "declared"

    @pytest.mark.parametrize("schema,value,expected", [
        (SchemaObject(type="integer"), True, False),
        (SchemaObject(type="boolean"), True, True),
        (SchemaObject(type="number"), 3, True),
        (SchemaObject(type="string", enum=["a"]), "b", False),
        (SchemaObject(type="object"), {}, False),
    ])
    def test_accepts(self, schema, value, expected):
        """Test leaf compatibility rules"""
        assert ExampleMerger.accepts(schema, value) is expected

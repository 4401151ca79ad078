"""
Operation Builder - Assembles one operation from merged extractor results.

Steps:
1. path parameters (annotations, converters, handler annotations)
2. query parameters, request body and responses through the pipeline + merger
3. schemas folded into the registry under per-operation hints
4. security requirement and scheme registration
5. transformer fold (summary, tags, ...)
"""

import logging
from dataclasses import replace
from typing import Dict, List, Optional

from apidoc_infer.analysis.context import AnalysisContext
from apidoc_infer.analysis.entry_points import CONVERTER_TYPES
from apidoc_infer.analysis.results import Operation, ParameterResult, Provenance, ResponseResult, SchemaResult
from apidoc_infer.extractors.support import schema_from_values
from apidoc_infer.merge.result_merger import ResultMerger
from apidoc_infer.plugins.pipeline import AnalysisPipeline
from apidoc_infer.schema.models import PRIMITIVE_TYPES, SchemaObject, SchemaType
from apidoc_infer.schema.registry import SchemaRegistry

from .example_generator import ExampleGenerator

logger = logging.getLogger(__name__)


class OperationBuilder:
    """
    Builds the `Operation` for one (entry point, method)

    Usage:
    ```python
    builder = OperationBuilder(pipeline, merger, registry, ExampleGenerator())
    operation = builder.build(context)
    ```
    """

    def __init__(
        self,
        pipeline: AnalysisPipeline,
        merger: ResultMerger,
        registry: SchemaRegistry,
        example_generator: Optional[ExampleGenerator] = None,
    ):
        self.pipeline = pipeline
        self.merger = merger
        self.registry = registry
        self.example_generator = example_generator or ExampleGenerator()

    def build(self, context: AnalysisContext) -> Operation:
        hint = context.operation_name

        parameters = self.path_parameters(context)
        path_names = {p.name for p in parameters}
        for parameter in self.merger.merge_query_parameters(self.pipeline.extract_query_parameters(context)):
            if parameter.location == "path" or parameter.name in path_names:
                continue
            parameters.append(replace(parameter, schema=self._inline(parameter.schema, parameter.name)))

        request_body = self.merger.merge_request_bodies(self.pipeline.extract_request_bodies(context))
        if request_body is not None:
            request_body = self._fold_body(request_body, f"{hint}Request")

        responses: Dict[int, ResponseResult] = {}
        for status, response in self.merger.merge(self.pipeline.extract_responses(context)).items():
            responses[status] = self._fold_response(response, hint)
        logger.debug(
            f"{context.method} {context.path}: {len(parameters)} parameters, "
            f"body={request_body is not None}, responses={sorted(responses)}"
        )

        operation = Operation(
            method=context.method.lower(),
            path=context.path,
            parameters=parameters,
            request_body=request_body,
            responses=responses,
        )

        security = self.pipeline.detect_security(context)
        if security is not None:
            self.registry.add_security_scheme(security.scheme_name, security.scheme)
            operation.security = [security]

        return self.pipeline.transform(operation, context)

    def path_parameters(self, context: AnalysisContext) -> List[ParameterResult]:
        """One required parameter per `{name}` in the path template"""
        annotated = {a.get("name"): a for a in context.annotations_of("path_parameter") if a.get("name")}
        converters = context.entry_point.path_parameter_converters()
        handler_params = {p.arg: p for p in context.handler_parameters()}

        parameters = []
        for name in context.path_parameters:
            description = ""
            example = None
            provenance = Provenance.STATIC
            if name in annotated:
                annotation = annotated[name]
                schema = schema_from_values(context, annotation.values)
                description = annotation.get("description") or ""
                example = annotation.get("example")
                provenance = Provenance.ANNOTATION
            elif name in converters and converters[name] in CONVERTER_TYPES:
                kind, fmt = CONVERTER_TYPES[converters[name]]
                schema = SchemaObject(type=kind, format=fmt)
            elif name in handler_params and handler_params[name].annotation is not None:
                schema = context.map_annotation(handler_params[name].annotation)
                if schema.type not in PRIMITIVE_TYPES or schema.is_ref:
                    schema = SchemaObject(type=SchemaType.STRING.value)
                schema.nullable = False
            else:
                schema = SchemaObject(type=SchemaType.STRING.value)

            parameters.append(
                ParameterResult(
                    name=name,
                    location="path",
                    schema=schema,
                    required=True,
                    description=description,
                    example=example,
                    provenance=provenance,
                    source="path",
                )
            )
        return parameters

    def fold(self, schema: Optional[SchemaObject], name: str) -> Optional[SchemaObject]:
        """
        Fold an inline schema into the registry

        Complex shapes become references to (possibly shared) components;
        simple ones stay inline with generated examples. Arrays stay inline
        and fold their item shape instead.
        """
        if schema is None or schema.is_ref:
            return schema
        if schema.is_array and schema.items is not None:
            result = schema.copy()
            result.items = self.fold(schema.items, f"{name}Item")
            return self.example_generator.generate(result)
        folded = self.registry.register_if_complex(name, schema)
        if folded.is_ref:
            return folded
        return self.example_generator.generate(folded)

    def _inline(self, schema: Optional[SchemaObject], field_name: str) -> Optional[SchemaObject]:
        if schema is None or schema.is_ref:
            return schema
        return self.example_generator.generate(schema, field_name)

    def _fold_body(self, body: SchemaResult, default_name: str) -> SchemaResult:
        return replace(body, schema=self.fold(body.schema, body.schema_name or default_name))

    def _fold_response(self, response: ResponseResult, hint: str) -> ResponseResult:
        if response.schema_name:
            name = response.schema_name
        elif 200 <= response.status_code < 300:
            name = f"{hint}Response"
        else:
            name = f"{hint}Response{response.status_code}"
        headers = {key: self._inline(header, key) for key, header in response.headers.items()}
        return replace(response, schema=self.fold(response.schema, name), headers=headers)

"""
Document Builder - Orchestrates a full inference run over a list of entry points.

Integrates:
- SourceIndex / ClassSchemaResolver: project types -> components
- AnnotationReader: decorator and manifest annotations
- AnalysisPipeline + ResultMerger: per-operation candidates and their merge
- OperationBuilder: folding, security, transformers
- ExampleGenerator: examples for registered components
"""

import logging
from typing import Any, Dict, List, Optional

from apidoc_infer.analysis.context import AnalysisContext
from apidoc_infer.analysis.entry_points import EntryPoint
from apidoc_infer.analysis.results import ApiDocument, Operation
from apidoc_infer.capture.repository import CapturedResponseRepository
from apidoc_infer.introspection.annotations import AnnotationReader
from apidoc_infer.introspection.source_index import SourceIndex
from apidoc_infer.mapper.type_mapper import TypeMapper
from apidoc_infer.mapper.validation_rules import ValidationRuleMapper
from apidoc_infer.merge.result_merger import ResultMerger
from apidoc_infer.plugins.pipeline import AnalysisPipeline
from apidoc_infer.plugins.registry import PluginRegistry
from apidoc_infer.schema.class_resolver import ClassSchemaResolver
from apidoc_infer.schema.registry import SchemaRegistry

from .example_generator import ExampleGenerator
from .operation_builder import OperationBuilder

logger = logging.getLogger(__name__)


class DocumentBuilder:
    """
    Builds an `ApiDocument` from entry points without importing application code

    Usage:
    ```python
    index = SourceIndex(Path("./myapp"))
    builder = DocumentBuilder(index, plugins=PluginRegistry.with_defaults())
    document = builder.build([
        EntryPoint(path="/users/{user_id}", methods=["GET"], handler="app/views.py:get_user"),
    ])
    document.to_dict()
    ```
    """

    def __init__(
        self,
        source_index: SourceIndex,
        registry: Optional[SchemaRegistry] = None,
        plugins: Optional[PluginRegistry] = None,
        merger: Optional[ResultMerger] = None,
        example_generator: Optional[ExampleGenerator] = None,
        captures: Optional[CapturedResponseRepository] = None,
        title: str = "API",
        version: str = "1.0.0",
        openapi_version: str = "3.0.3",
        rule_overrides: Optional[Dict[str, Dict[str, Any]]] = None,
    ):
        """
        Initialize document builder

        Args:
            source_index: Index over the application's source files
            registry: Component registry (a fresh one by default)
            plugins: Plugin registry (built-in plugins by default)
            merger: Three-tier result merger (static_first by default)
            example_generator: Example generator for inline schemas and components
            captures: Runtime capture store, if any
            title: Document title
            version: Document version
            openapi_version: "3.0.x" or "3.1.x" output dialect
            rule_overrides: Extra validation rule -> {type, format, pattern} mappings
        """
        self.source_index = source_index
        self.registry = registry or SchemaRegistry()
        self.plugins = plugins or PluginRegistry.with_defaults()
        self.merger = merger or ResultMerger()
        self.example_generator = example_generator or ExampleGenerator()
        self.captures = captures
        self.title = title
        self.version = version
        self.openapi_version = openapi_version

        self.resolver = ClassSchemaResolver(source_index, self.registry, TypeMapper())
        self.rule_mapper = ValidationRuleMapper(rule_overrides)
        self.annotation_reader = AnnotationReader()
        self.pipeline = AnalysisPipeline(self.plugins)
        self.operation_builder = OperationBuilder(self.pipeline, self.merger, self.registry, self.example_generator)

    def build(self, entry_points: List[EntryPoint]) -> ApiDocument:
        """
        Analyze every (entry point, method) pair

        Args:
            entry_points: Operations to document

        Returns:
            Document with paths, deduplicated components and diagnostics
        """
        self.registry.reset()
        self.resolver.reset()
        self.plugins.begin_run()
        diagnostics_before = len(self.plugins.diagnostics)

        document = ApiDocument(title=self.title, version=self.version, openapi_version=self.openapi_version)
        used_ids: Dict[str, int] = {}
        skipped = 0

        for entry_point in entry_points:
            module, handler = self.source_index.find_handler(entry_point.handler)
            if handler is None:
                message = f"Handler source not found for '{entry_point.identifier}' ({entry_point.handler})"
                logger.debug(message)
                document.diagnostics.append(message)
            annotations = self.annotation_reader.read(handler, entry_point.annotations)
            if any(a.kind == "exclude_from_docs" for a in annotations):
                skipped += 1
                continue

            for method in entry_point.methods:
                context = AnalysisContext(
                    entry_point=entry_point,
                    method=method,
                    source_index=self.source_index,
                    resolver=self.resolver,
                    rule_mapper=self.rule_mapper,
                    handler=handler,
                    module=module,
                    annotations=annotations,
                    plugins=self.plugins,
                    captures=self.captures,
                )
                operation = self.operation_builder.build(context)
                document.add_operation(self._unique_operation_id(operation, used_ids))

        self.registry.map_schemas(self.example_generator.generate)
        document.components = self.registry.components()
        document.diagnostics.extend(self.plugins.diagnostics[diagnostics_before:])

        logger.info(
            f"Documented {len(document.operations())} operations "
            f"({skipped} excluded), {len(self.registry)} components"
        )
        return document

    @staticmethod
    def _unique_operation_id(operation: Operation, used_ids: Dict[str, int]) -> Operation:
        """Suffix repeated ids (`show`, `show_1`, ...) so every operationId is unique"""
        if not operation.operation_id:
            return operation
        base = operation.operation_id
        count = used_ids.get(base, 0)
        used_ids[base] = count + 1
        if count:
            operation.operation_id = f"{base}_{count}"
            used_ids.setdefault(operation.operation_id, 1)
        return operation

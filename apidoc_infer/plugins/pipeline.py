"""
Analysis Pipeline - Runs registered extractors for one operation.

Semantics per capability:
- request body: first non-empty result wins within each provenance tier
- security: first non-empty result wins
- responses, query parameters: every result is collected
- transform: fold, each transformer consuming the previous output

An extractor raising during a run is unregistered for the rest of the run.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from apidoc_infer.analysis.context import AnalysisContext
from apidoc_infer.analysis.results import (
    Operation,
    ParameterResult,
    Provenance,
    ResponseResult,
    SchemaResult,
    SecurityRequirement,
)

from .contracts import Capability, Plugin
from .registry import PluginRegistry

logger = logging.getLogger(__name__)


class AnalysisPipeline:
    """Dispatches an analysis context through the plugin registry"""

    def __init__(self, registry: PluginRegistry):
        self.registry = registry

    def extract_request_bodies(self, context: AnalysisContext) -> Dict[Provenance, List[SchemaResult]]:
        """First non-empty request body per provenance tier"""
        found: Dict[Provenance, List[SchemaResult]] = {}
        for extractor in self.registry.get(Capability.REQUEST_BODY):
            if extractor.provenance in found:
                continue
            result = self._run(extractor, lambda: extractor.extract_request_body(context))
            if result is not None:
                found[result.provenance] = [result]
        return found

    def extract_responses(self, context: AnalysisContext) -> Dict[Provenance, List[ResponseResult]]:
        collected: Dict[Provenance, List[ResponseResult]] = {}
        for extractor in self.registry.get(Capability.RESPONSE):
            for result in self._run(extractor, lambda: extractor.extract_responses(context)) or []:
                collected.setdefault(result.provenance, []).append(result)
        return collected

    def extract_query_parameters(self, context: AnalysisContext) -> Dict[Provenance, List[ParameterResult]]:
        collected: Dict[Provenance, List[ParameterResult]] = {}
        for extractor in self.registry.get(Capability.QUERY_PARAMETERS):
            for result in self._run(extractor, lambda: extractor.extract_query_parameters(context)) or []:
                collected.setdefault(result.provenance, []).append(result)
        return collected

    def detect_security(self, context: AnalysisContext) -> Optional[SecurityRequirement]:
        for detector in self.registry.get(Capability.SECURITY):
            result = self._run(detector, lambda: detector.detect_security(context))
            if result is not None:
                return result
        return None

    def transform(self, operation: Operation, context: AnalysisContext) -> Operation:
        for transformer in self.registry.get(Capability.TRANSFORM):
            current = operation
            result = self._run(transformer, lambda: transformer.transform(current, context))
            if result is not None:
                operation = result
        return operation

    def _run(self, plugin: Plugin, call: Callable[[], Any]) -> Any:
        try:
            return call()
        except Exception as e:
            logger.debug(f"{plugin.plugin_name} failed", exc_info=True)
            self.registry.unregister(plugin, f"raised {type(e).__name__}: {e}")
            return None

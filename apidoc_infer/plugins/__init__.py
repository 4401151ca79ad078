"""
Plugin Module - Capability contracts, registry and the analysis pipeline.

Built-in plugins are loaded through `PluginRegistry.with_defaults()`.
"""

from .contracts import (
    Capability,
    ErrorSchemaProvider,
    OperationTransformer,
    Plugin,
    QueryParameterExtractor,
    RequestBodyExtractor,
    ResponseExtractor,
    SecuritySchemeDetector,
)
from .registry import PluginRegistry
from .pipeline import AnalysisPipeline

__all__ = [
    "Capability",
    "ErrorSchemaProvider",
    "OperationTransformer",
    "Plugin",
    "QueryParameterExtractor",
    "RequestBodyExtractor",
    "ResponseExtractor",
    "SecuritySchemeDetector",
    "PluginRegistry",
    "AnalysisPipeline",
]

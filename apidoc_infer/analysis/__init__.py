"""
Analysis Module - Entry points, per-operation context and candidate results.
"""

from .entry_points import EntryPoint
from .results import (
    ApiDocument,
    Operation,
    ParameterResult,
    Provenance,
    ResponseResult,
    SchemaResult,
    SecurityRequirement,
)
from .context import AnalysisContext

__all__ = [
    "EntryPoint",
    "ApiDocument",
    "Operation",
    "ParameterResult",
    "Provenance",
    "ResponseResult",
    "SchemaResult",
    "SecurityRequirement",
    "AnalysisContext",
]

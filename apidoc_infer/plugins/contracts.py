"""
Plugin Contracts - Capability interfaces implemented by extractor plugins.

A plugin is an object deriving from `Plugin` plus one or more capability
interfaces. Booting registers it for each capability it implements at its
declared priority (higher runs first).
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from apidoc_infer.analysis.context import AnalysisContext
from apidoc_infer.analysis.results import (
    Operation,
    ParameterResult,
    Provenance,
    ResponseResult,
    SchemaResult,
    SecurityRequirement,
)

if TYPE_CHECKING:
    from .registry import PluginRegistry


class Capability(str, Enum):
    """Extraction facets handled by the pipeline"""
    REQUEST_BODY = "request_body"
    RESPONSE = "response"
    QUERY_PARAMETERS = "query_parameters"
    SECURITY = "security"
    TRANSFORM = "transform"
    ERROR_SCHEMA = "error_schema"


class RequestBodyExtractor(ABC):
    @abstractmethod
    def extract_request_body(self, context: AnalysisContext) -> Optional[SchemaResult]:
        """Return a request body candidate, or None when this extractor has nothing"""


class ResponseExtractor(ABC):
    @abstractmethod
    def extract_responses(self, context: AnalysisContext) -> List[ResponseResult]:
        """Return response candidates (any number of status codes)"""


class QueryParameterExtractor(ABC):
    @abstractmethod
    def extract_query_parameters(self, context: AnalysisContext) -> List[ParameterResult]:
        """Return query parameter candidates"""


class SecuritySchemeDetector(ABC):
    @abstractmethod
    def detect_security(self, context: AnalysisContext) -> Optional[SecurityRequirement]:
        """Return the security requirement guarding the operation, if recognized"""


class OperationTransformer(ABC):
    @abstractmethod
    def transform(self, operation: Operation, context: AnalysisContext) -> Operation:
        """Return the (possibly modified) operation"""


class ErrorSchemaProvider(ABC):
    @abstractmethod
    def provides(self, exception_name: str) -> bool:
        """True when this provider knows how an exception renders"""

    @abstractmethod
    def error_response(self, exception_name: str, status_code: Optional[int] = None) -> Optional[ResponseResult]:
        """Response rendered for a raised exception"""


CAPABILITY_INTERFACES = (
    (Capability.REQUEST_BODY, RequestBodyExtractor),
    (Capability.RESPONSE, ResponseExtractor),
    (Capability.QUERY_PARAMETERS, QueryParameterExtractor),
    (Capability.SECURITY, SecuritySchemeDetector),
    (Capability.TRANSFORM, OperationTransformer),
    (Capability.ERROR_SCHEMA, ErrorSchemaProvider),
)


class Plugin:
    """
    Base class for pipeline plugins

    Usage:
    ```python
    class TenantHeaderPlugin(Plugin, QueryParameterExtractor):
        name = "tenant-header"
        priority = 40

        def extract_query_parameters(self, context):
            return [ParameterResult(name="X-Tenant", location="header", required=True)]

    registry.register(TenantHeaderPlugin())
    ```
    """

    name: str = ""
    priority: int = 50
    provenance: Provenance = Provenance.STATIC

    @property
    def plugin_name(self) -> str:
        return self.name or type(self).__name__

    def capabilities(self) -> List[Capability]:
        return [capability for capability, interface in CAPABILITY_INTERFACES if isinstance(self, interface)]

    def boot(self, registry: "PluginRegistry") -> None:
        """Register for every implemented capability; override to customize"""
        for capability in self.capabilities():
            registry.add(capability, self, self.priority)

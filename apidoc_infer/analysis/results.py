"""
Analysis Results - Candidate results produced by extractors and the assembled document.

Candidate results are frozen: each is produced by exactly one extractor
call and derived copies are made with `dataclasses.replace`.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from apidoc_infer.schema.models import Components, SchemaObject

STATUS_DESCRIPTIONS = {
    200: "Successful response",
    201: "Created",
    202: "Accepted",
    204: "No content",
    400: "Bad request",
    401: "Unauthenticated",
    403: "Forbidden",
    404: "Not found",
    405: "Method not allowed",
    409: "Conflict",
    422: "Validation error",
    429: "Too many requests",
    500: "Server error",
}


def describe_status(status_code: int) -> str:
    return STATUS_DESCRIPTIONS.get(status_code, f"HTTP {status_code}")


class Provenance(str, Enum):
    """Origin tier of a candidate result"""
    ANNOTATION = "annotation"
    STATIC = "static"
    CAPTURE = "capture"


@dataclass(frozen=True)
class SchemaResult:
    """Request body candidate"""
    schema: Optional[SchemaObject]
    description: str = ""
    content_type: str = "application/json"
    required: bool = True
    examples: Dict[str, Any] = field(default_factory=dict)
    provenance: Provenance = Provenance.STATIC
    source: str = ""
    schema_name: Optional[str] = None

    def to_dict(self, openapi_version: str = "3.0.3") -> Dict[str, Any]:
        media: Dict[str, Any] = {}
        if self.schema is not None:
            media["schema"] = self.schema.to_dict(openapi_version)
        if self.examples:
            media["examples"] = {name: {"value": value} for name, value in self.examples.items()}
        data: Dict[str, Any] = {"required": self.required, "content": {self.content_type: media}}
        if self.description:
            data["description"] = self.description
        return data


@dataclass(frozen=True)
class ResponseResult:
    """Response candidate for one status code"""
    status_code: int
    schema: Optional[SchemaObject] = None
    description: str = ""
    content_type: str = "application/json"
    headers: Dict[str, SchemaObject] = field(default_factory=dict)
    examples: Dict[str, Any] = field(default_factory=dict)
    provenance: Provenance = Provenance.STATIC
    source: str = ""
    schema_name: Optional[str] = None

    def to_dict(self, openapi_version: str = "3.0.3") -> Dict[str, Any]:
        data: Dict[str, Any] = {"description": self.description or describe_status(self.status_code)}
        if self.headers:
            data["headers"] = {}
            for name, header in self.headers.items():
                body = header.copy()
                description = body.description
                body.description = None
                entry: Dict[str, Any] = {"schema": body.to_dict(openapi_version)}
                if description:
                    entry["description"] = description
                data["headers"][name] = entry
        if self.schema is not None:
            media: Dict[str, Any] = {"schema": self.schema.to_dict(openapi_version)}
            if self.examples:
                media["examples"] = {name: {"value": value} for name, value in self.examples.items()}
            data["content"] = {self.content_type: media}
        return data


@dataclass(frozen=True)
class ParameterResult:
    """Path, query or header parameter candidate"""
    name: str
    location: str = "query"
    schema: Optional[SchemaObject] = None
    required: bool = False
    description: str = ""
    example: Any = None
    provenance: Provenance = Provenance.STATIC
    source: str = ""

    def to_dict(self, openapi_version: str = "3.0.3") -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "in": self.location,
            "required": True if self.location == "path" else self.required,
            "schema": (self.schema or SchemaObject(type="string")).to_dict(openapi_version),
        }
        if self.description:
            data["description"] = self.description
        if self.example is not None:
            data["example"] = self.example
        return data


@dataclass(frozen=True)
class SecurityRequirement:
    """Security scheme detected for an operation"""
    scheme_name: str
    scheme: Dict[str, Any] = field(default_factory=dict)
    scopes: List[str] = field(default_factory=list)
    source: str = ""

    def to_dict(self) -> Dict[str, List[str]]:
        return {self.scheme_name: list(self.scopes)}


@dataclass
class Operation:
    """Final description of one method on one path"""
    method: str
    path: str
    operation_id: str = ""
    summary: Optional[str] = None
    description: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    parameters: List[ParameterResult] = field(default_factory=list)
    request_body: Optional[SchemaResult] = None
    responses: Dict[int, ResponseResult] = field(default_factory=dict)
    security: List[SecurityRequirement] = field(default_factory=list)
    deprecated: bool = False

    def to_dict(self, openapi_version: str = "3.0.3") -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.operation_id:
            data["operationId"] = self.operation_id
        if self.summary:
            data["summary"] = self.summary
        if self.description:
            data["description"] = self.description
        if self.tags:
            data["tags"] = list(self.tags)
        if self.parameters:
            data["parameters"] = [p.to_dict(openapi_version) for p in self.parameters]
        if self.request_body is not None:
            data["requestBody"] = self.request_body.to_dict(openapi_version)
        data["responses"] = {
            str(status): response.to_dict(openapi_version)
            for status, response in sorted(self.responses.items())
        }
        if self.security:
            data["security"] = [requirement.to_dict() for requirement in self.security]
        if self.deprecated:
            data["deprecated"] = True
        return data


@dataclass
class ApiDocument:
    """In-memory document: paths, deduplicated components, security schemes"""
    title: str = "API"
    version: str = "1.0.0"
    openapi_version: str = "3.0.3"
    paths: Dict[str, Dict[str, Operation]] = field(default_factory=dict)
    components: Components = field(default_factory=Components)
    diagnostics: List[str] = field(default_factory=list)

    def add_operation(self, operation: Operation) -> None:
        self.paths.setdefault(operation.path, {})[operation.method.lower()] = operation

    def get_operation(self, path: str, method: str) -> Optional[Operation]:
        return self.paths.get(path, {}).get(method.lower())

    def operations(self) -> List[Operation]:
        return [op for methods in self.paths.values() for op in methods.values()]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to an OpenAPI document dictionary"""
        data: Dict[str, Any] = {
            "openapi": self.openapi_version,
            "info": {"title": self.title, "version": self.version},
            "paths": {
                path: {method: op.to_dict(self.openapi_version) for method, op in methods.items()}
                for path, methods in sorted(self.paths.items())
            },
        }
        components = self.components.to_dict(self.openapi_version)
        if components:
            data["components"] = components
        return data

"""Built-in plugin set registered by `PluginRegistry.with_defaults()`."""

from typing import List

from apidoc_infer.extractors.error_responses import (
    AuthenticationErrorExtractor,
    AuthorizationErrorExtractor,
    ExceptionResponseExtractor,
    HttpExceptionProvider,
    NotFoundErrorExtractor,
    ThrottleErrorExtractor,
    ValidationErrorExtractor,
)
from apidoc_infer.extractors.query import (
    CapturedQueryExtractor,
    DocstringQueryParameterExtractor,
    HandlerSignatureQueryExtractor,
    PaginationExtractor,
    QueryParameterAnnotationExtractor,
    RequestArgsExtractor,
)
from apidoc_infer.extractors.request import (
    CapturedRequestExtractor,
    InlineValidationExtractor,
    RequestBodyAnnotationExtractor,
    TypedBodyExtractor,
    ValidatedInputExtractor,
)
from apidoc_infer.extractors.response import (
    CapturedResponseExtractor,
    ResponseAnnotationExtractor,
    ReturnTypeExtractor,
)

from .contracts import Plugin
from .security import ApiKeyAuthPlugin, BearerAuthPlugin
from .transformers import SummaryTransformer, TagTransformer


def default_plugins(api_key_header: str = "X-API-KEY", bearer_format: str = "JWT", with_captures: bool = True) -> List[Plugin]:
    """
    Fresh instances of every built-in plugin

    Args:
        api_key_header: Header name documented for API key authentication
        bearer_format: `bearerFormat` documented for bearer authentication
        with_captures: Include the extractors reading the runtime capture store
    """
    plugins: List[Plugin] = [
        RequestBodyAnnotationExtractor(),
        ValidatedInputExtractor(),
        InlineValidationExtractor(),
        TypedBodyExtractor(),
        ResponseAnnotationExtractor(),
        ReturnTypeExtractor(),
        AuthenticationErrorExtractor(),
        AuthorizationErrorExtractor(),
        NotFoundErrorExtractor(),
        ValidationErrorExtractor(),
        ThrottleErrorExtractor(),
        ExceptionResponseExtractor(),
        HttpExceptionProvider(),
        QueryParameterAnnotationExtractor(),
        RequestArgsExtractor(),
        HandlerSignatureQueryExtractor(),
        DocstringQueryParameterExtractor(),
        PaginationExtractor(),
        ApiKeyAuthPlugin(header_name=api_key_header),
        BearerAuthPlugin(bearer_format=bearer_format),
        SummaryTransformer(),
        TagTransformer(),
    ]
    if with_captures:
        plugins += [CapturedRequestExtractor(), CapturedResponseExtractor(), CapturedQueryExtractor()]
    return plugins

"""
Error Response Extractors - Error status codes implied by route guards and handler code.

Supports:
- 401 for authentication middleware / decorators
- 403 for authorization middleware (`can:`, permission and role guards)
- 404 for routes binding path parameters
- 422 for validated input (rule sets, typed bodies)
- 429 for throttled routes, with rate-limit headers
- raised exceptions and `abort(...)` calls resolved through error schema providers
"""

import ast
import logging
from abc import abstractmethod
from typing import Dict, List, Optional

from apidoc_infer.analysis.context import AnalysisContext
from apidoc_infer.analysis.results import ResponseResult, describe_status
from apidoc_infer.introspection.ast_helpers import call_name, dotted_name, iter_own_nodes, iter_raises, short_name
from apidoc_infer.plugins.contracts import ErrorSchemaProvider, Plugin, ResponseExtractor
from apidoc_infer.schema.models import SchemaObject, SchemaType

from .request import InlineValidationExtractor, ValidatedInputExtractor
from .support import callee, has_dependency, keyword_int, status_constant

logger = logging.getLogger(__name__)

ERROR_SCHEMA_NAME = "ErrorResponse"
VALIDATION_SCHEMA_NAME = "ValidationErrorResponse"

AUTH_MIDDLEWARE = {
    "auth", "login_required", "jwt_required", "token_required", "authenticated",
    "isauthenticated", "requires_auth", "auth_required", "fresh_jwt_required",
}
AUTH_PREFIXES = ("auth:", "auth.", "jwt_required")
# FastAPI style `user = Depends(get_current_user)`
AUTH_DEPENDENCIES = ("current_user", "auth", "token")

AUTHORIZATION_MIDDLEWARE = {
    "admin", "permission_required", "roles_required", "roles_accepted", "role_required",
    "staff_member_required", "user_passes_test", "superuser_required", "isadminuser",
}
AUTHORIZATION_PREFIXES = ("can:", "permission:", "role:", "roles:", "ability:", "abilities:")

THROTTLE_MIDDLEWARE = {"throttle", "limit", "ratelimit", "rate_limit", "limiter"}
THROTTLE_PREFIXES = ("throttle:", "limiter.", "ratelimit", "rate_limit")

ABORT_CALLS = {"abort"}


def error_schema() -> SchemaObject:
    """`{"message": "..."}` body rendered for error statuses"""
    message = SchemaObject(type=SchemaType.STRING.value, example="An error occurred.")
    return SchemaObject(type=SchemaType.OBJECT.value, properties={"message": message}, required=["message"])


def validation_error_schema() -> SchemaObject:
    """Error body plus per-field message lists"""
    schema = error_schema()
    schema.properties["message"].example = "The given data was invalid."
    schema.properties["errors"] = SchemaObject(
        type=SchemaType.OBJECT.value,
        additional_properties=SchemaObject(
            type=SchemaType.ARRAY.value,
            items=SchemaObject(type=SchemaType.STRING.value),
        ),
    )
    schema.required.append("errors")
    return schema


class ErrorResponseExtractor(Plugin, ResponseExtractor):
    """
    Base for extractors emitting one error status when a route condition holds

    Usage:
    ```python
    class MaintenanceExtractor(ErrorResponseExtractor):
        name = "maintenance"
        status_code = 503

        def applies(self, context):
            return context.matches_middleware({"maintenance"})
    ```
    """

    status_code: int = 500
    schema_name: str = ERROR_SCHEMA_NAME

    @abstractmethod
    def applies(self, context: AnalysisContext) -> bool:
        """True when the route can answer with `status_code`"""

    def schema(self) -> SchemaObject:
        return error_schema()

    def headers(self) -> Dict[str, SchemaObject]:
        return {}

    def extract_responses(self, context: AnalysisContext) -> List[ResponseResult]:
        if not self.applies(context):
            return []
        return [
            ResponseResult(
                status_code=self.status_code,
                schema=self.schema(),
                description=describe_status(self.status_code),
                headers=self.headers(),
                provenance=self.provenance,
                source=self.name,
                schema_name=self.schema_name,
            )
        ]


class AuthenticationErrorExtractor(ErrorResponseExtractor):
    name = "authentication-error"
    priority = 60
    status_code = 401

    def applies(self, context: AnalysisContext) -> bool:
        return context.matches_middleware(AUTH_MIDDLEWARE, AUTH_PREFIXES) or has_dependency(context, AUTH_DEPENDENCIES)


class AuthorizationErrorExtractor(ErrorResponseExtractor):
    name = "authorization-error"
    priority = 60
    status_code = 403

    def applies(self, context: AnalysisContext) -> bool:
        return context.matches_middleware(AUTHORIZATION_MIDDLEWARE, AUTHORIZATION_PREFIXES)


class NotFoundErrorExtractor(ErrorResponseExtractor):
    """Routes resolving a record from a path parameter can miss"""

    name = "not-found-error"
    priority = 58
    status_code = 404

    def applies(self, context: AnalysisContext) -> bool:
        return bool(context.path_parameters)


class ValidationErrorExtractor(ErrorResponseExtractor):
    name = "validation-error"
    priority = 58
    status_code = 422
    schema_name = VALIDATION_SCHEMA_NAME

    def schema(self) -> SchemaObject:
        return validation_error_schema()

    def applies(self, context: AnalysisContext) -> bool:
        if ValidatedInputExtractor.find_declaration(context) is not None:
            return True
        if InlineValidationExtractor().find_inline_rules(context) is not None:
            return True
        if not context.is_body_method:
            return False
        for param in context.handler_parameters():
            decl = context.find_type(param.annotation)
            if decl is not None and not context.source_index.is_enum(decl):
                return True
        return False


class ThrottleErrorExtractor(ErrorResponseExtractor):
    name = "throttle-error"
    priority = 56
    status_code = 429

    def applies(self, context: AnalysisContext) -> bool:
        return context.matches_middleware(THROTTLE_MIDDLEWARE, THROTTLE_PREFIXES)

    def headers(self) -> Dict[str, SchemaObject]:
        return {
            "Retry-After": SchemaObject(type=SchemaType.INTEGER.value, description="Seconds until the limit resets"),
            "X-RateLimit-Limit": SchemaObject(type=SchemaType.INTEGER.value, description="Requests allowed per window"),
            "X-RateLimit-Remaining": SchemaObject(type=SchemaType.INTEGER.value, description="Requests left in the window"),
        }


class ExceptionResponseExtractor(Plugin, ResponseExtractor):
    """Error responses for exceptions raised (or `abort()`s called) in the handler body"""

    name = "raised-exception"
    priority = 55

    def extract_responses(self, context: AnalysisContext) -> List[ResponseResult]:
        if context.handler is None or context.plugins is None:
            return []

        found: Dict[int, ResponseResult] = {}
        for raised in iter_raises(context.handler):
            result = self._from_raise(context, raised.exc)
            if result is not None:
                found.setdefault(result.status_code, result)

        for node in iter_own_nodes(context.handler):
            if isinstance(node, ast.Call) and callee(node) in ABORT_CALLS and node.args:
                status = status_constant(node.args[0])
                if status is None or status < 400:
                    continue
                provider = context.plugins.error_provider_for("abort")
                result = provider.error_response("abort", status) if provider else None
                if result is not None:
                    found.setdefault(status, result)

        return list(found.values())

    def _from_raise(self, context: AnalysisContext, exc: Optional[ast.expr]) -> Optional[ResponseResult]:
        if exc is None:
            return None
        name = short_name(call_name(exc) if isinstance(exc, ast.Call) else dotted_name(exc))
        if not name:
            return None
        provider = context.plugins.error_provider_for(name)
        if provider is None:
            logger.debug(f"{context.method} {context.path}: no error provider for '{name}'")
            return None
        status = None
        if isinstance(exc, ast.Call):
            status = keyword_int(exc, "status_code", "code", "status")
            if status is None and exc.args:
                status = status_constant(exc.args[0])
        return provider.error_response(name, status)


class HttpExceptionProvider(Plugin, ErrorSchemaProvider):
    """Maps common framework exception names to their status codes"""

    name = "http-exceptions"
    priority = 50

    EXCEPTION_STATUSES = {
        "BadRequest": 400,
        "ValidationError": 422,
        "RequestValidationError": 422,
        "Unauthorized": 401,
        "NotAuthenticated": 401,
        "AuthenticationFailed": 401,
        "AuthenticationError": 401,
        "Forbidden": 403,
        "PermissionDenied": 403,
        "AuthorizationError": 403,
        "NotFound": 404,
        "Http404": 404,
        "ObjectDoesNotExist": 404,
        "DoesNotExist": 404,
        "NoResultFound": 404,
        "ModelNotFound": 404,
        "MethodNotAllowed": 405,
        "Conflict": 409,
        "IntegrityError": 409,
        "UnprocessableEntity": 422,
        "TooManyRequests": 429,
        "Throttled": 429,
    }

    # generic exceptions whose status comes from the raise site
    GENERIC_EXCEPTIONS = {"HTTPException", "HttpException", "APIException", "HTTPError", "abort"}

    def provides(self, exception_name: str) -> bool:
        return exception_name in self.EXCEPTION_STATUSES or exception_name in self.GENERIC_EXCEPTIONS

    def error_response(self, exception_name: str, status_code: Optional[int] = None) -> Optional[ResponseResult]:
        status = status_code or self.EXCEPTION_STATUSES.get(exception_name)
        if status is None:
            return None
        validation = status == 422
        return ResponseResult(
            status_code=status,
            schema=validation_error_schema() if validation else error_schema(),
            description=describe_status(status),
            provenance=self.provenance,
            source=self.name,
            schema_name=VALIDATION_SCHEMA_NAME if validation else ERROR_SCHEMA_NAME,
        )

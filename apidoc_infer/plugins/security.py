"""
Security Plugins - Security scheme detection from route guards.

Supports:
- API keys (`api_key_required`, `auth:api_key`, `X-API-KEY` header guards)
- Bearer tokens (`auth`, `login_required`, `jwt_required`, `auth:sanctum`, `Depends(get_current_user)`)
"""

from typing import List, Optional

from apidoc_infer.analysis.context import AnalysisContext
from apidoc_infer.analysis.results import SecurityRequirement
from apidoc_infer.extractors.support import has_dependency

from .contracts import Plugin, SecuritySchemeDetector

SCOPE_PREFIXES = ("scope:", "scopes:", "ability:", "abilities:")


class ApiKeyAuthPlugin(Plugin, SecuritySchemeDetector):
    """API key passed in a request header"""

    name = "api-key-auth"
    priority = 55

    SCHEME_NAME = "apiKeyAuth"
    MIDDLEWARE = {"api_key", "api_key_required", "require_api_key", "apikey", "auth:api_key", "auth.apikey"}

    def __init__(self, header_name: str = "X-API-KEY"):
        self.header_name = header_name

    def detect_security(self, context: AnalysisContext) -> Optional[SecurityRequirement]:
        if not context.matches_middleware(self.MIDDLEWARE):
            return None
        return SecurityRequirement(
            scheme_name=self.SCHEME_NAME,
            scheme={"type": "apiKey", "in": "header", "name": self.header_name},
            source=self.name,
        )


class BearerAuthPlugin(Plugin, SecuritySchemeDetector):
    """
    Bearer token authentication

    Scopes come from `scope:` / `ability:` style middleware entries, e.g.
    `["auth:sanctum", "ability:posts.write"]` -> `{"bearerAuth": ["posts.write"]}`.
    """

    name = "bearer-auth"
    priority = 50

    SCHEME_NAME = "bearerAuth"
    MIDDLEWARE = {
        "auth", "login_required", "jwt_required", "token_required", "auth_required",
        "requires_auth", "authenticated", "isauthenticated", "fresh_jwt_required",
    }
    PREFIXES = ("auth:", "auth.", "jwt_required")
    DEPENDENCY_HINTS = ("current_user", "auth", "token")

    def __init__(self, bearer_format: str = "JWT"):
        self.bearer_format = bearer_format

    def detect_security(self, context: AnalysisContext) -> Optional[SecurityRequirement]:
        if not (context.matches_middleware(self.MIDDLEWARE, self.PREFIXES) or has_dependency(context, self.DEPENDENCY_HINTS)):
            return None
        return SecurityRequirement(
            scheme_name=self.SCHEME_NAME,
            scheme={"type": "http", "scheme": "bearer", "bearerFormat": self.bearer_format},
            scopes=self._scopes(context.middleware),
            source=self.name,
        )

    @staticmethod
    def _scopes(middleware: List[str]) -> List[str]:
        scopes: List[str] = []
        for entry in middleware:
            for prefix in SCOPE_PREFIXES:
                if entry.lower().startswith(prefix):
                    scopes.extend(s.strip() for s in entry[len(prefix):].split(",") if s.strip())
        return scopes

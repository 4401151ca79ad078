"""Entry points: one externally reachable operation (methods + path + handler)."""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# `{id}` (OpenAPI / FastAPI) and `<int:id>` / `<id>` (Flask / Werkzeug)
PATH_PARAM_PATTERN = re.compile(r"\{([^}:]+)(?::[^}]*)?\}|<(?:([^:>]+):)?([^>]+)>")

CONVERTER_TYPES = {
    "int": ("integer", None),
    "float": ("number", None),
    "uuid": ("string", "uuid"),
    "path": ("string", None),
    "string": ("string", None),
    "str": ("string", None),
}


@dataclass
class EntryPoint:
    """
    Route-like operation to document

    Usage:
    ```python
    ep = EntryPoint(path="/users/<int:user_id>", methods=["GET"], handler="app/views.py:get_user")
    ep.openapi_path        # "/users/{user_id}"
    ep.path_parameters     # ["user_id"]
    ```
    """
    path: str
    handler: str
    methods: List[str] = field(default_factory=lambda: ["GET"])
    name: Optional[str] = None
    middleware: List[str] = field(default_factory=list)
    annotations: List[Dict[str, Any]] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    summary: Optional[str] = None
    deprecated: bool = False

    def __post_init__(self):
        self.methods = [m.upper() for m in self.methods if m.upper() != "OPTIONS"]

    @property
    def identifier(self) -> str:
        return self.name or f"{'|'.join(self.methods)} {self.path}"

    @property
    def openapi_path(self) -> str:
        def _replace(match: "re.Match") -> str:
            return "{" + (match.group(1) or match.group(3)) + "}"

        path = PATH_PARAM_PATTERN.sub(_replace, self.path)
        return path if path.startswith("/") else f"/{path}"

    @property
    def path_parameters(self) -> List[str]:
        return [m.group(1) or m.group(3) for m in PATH_PARAM_PATTERN.finditer(self.path)]

    def path_parameter_converters(self) -> Dict[str, str]:
        """Parameter name -> converter for `<int:id>` style parameters"""
        converters = {}
        for match in PATH_PARAM_PATTERN.finditer(self.path):
            if match.group(2):
                converters[match.group(3)] = match.group(2)
        return converters

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EntryPoint":
        methods = data.get("methods") or [data.get("method", "GET")]
        if isinstance(methods, str):
            methods = [methods]
        return cls(
            path=data["path"],
            handler=data["handler"],
            methods=list(methods),
            name=data.get("name"),
            middleware=list(data.get("middleware") or []),
            annotations=list(data.get("annotations") or []),
            tags=list(data.get("tags") or []),
            summary=data.get("summary"),
            deprecated=bool(data.get("deprecated", False)),
        )

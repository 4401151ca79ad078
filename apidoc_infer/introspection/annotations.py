"""
Annotation Reader - Collects declarative documentation annotations for a handler.

Annotations come from two places:
- decorators on the handler (`@response_body(200, data_class=UserOut)`)
- the `annotations` list of a manifest entry (`{"annotation": "query_parameter", "name": "q"}`)
"""

import ast
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .ast_helpers import FunctionNode, call_arguments, dotted_name, short_name

logger = logging.getLogger(__name__)

ANNOTATION_PARAMETERS: Dict[str, List[str]] = {
    "request_body": ["description", "content_type", "required", "data_class", "example"],
    "body_parameter": ["name", "type", "description", "required", "example", "format"],
    "response_body": ["status_code", "description", "content_type", "data_class", "example", "is_collection"],
    "response_header": ["name", "description", "type", "format", "example", "required"],
    "data_response": ["status", "description", "resource", "headers"],
    "query_parameter": ["name", "description", "type", "format", "required", "example", "enum"],
    "path_parameter": ["name", "description", "type", "format", "example"],
    "summary": ["text"],
    "description": ["text"],
    "tag": ["name"],
    "exclude_from_docs": [],
}


@dataclass
class Annotation:
    """One declarative annotation with its literal arguments"""
    kind: str
    values: Dict[str, Any] = field(default_factory=dict)
    origin: str = "decorator"

    def get(self, key: str, default: Any = None) -> Any:
        return self.values.get(key, default)


def snake_case(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def decorator_names(func: Optional[FunctionNode]) -> List[str]:
    """Dotted names of every decorator (calls included) on a handler"""
    if func is None:
        return []
    names = []
    for decorator in func.decorator_list:
        target = decorator.func if isinstance(decorator, ast.Call) else decorator
        name = dotted_name(target)
        if name:
            names.append(name)
    return names


class AnnotationReader:
    """Reads annotations from handler decorators and manifest entries"""

    def read(self, func: Optional[FunctionNode], manifest_annotations: Optional[List[Dict[str, Any]]] = None) -> List[Annotation]:
        """
        Collect annotations

        Args:
            func: Handler function node (None when the handler could not be parsed)
            manifest_annotations: Raw annotation dictionaries from the manifest

        Returns:
            Annotations in declaration order, decorators first
        """
        annotations: List[Annotation] = []
        if func is not None:
            for decorator in func.decorator_list:
                annotation = self._from_decorator(decorator)
                if annotation is not None:
                    annotations.append(annotation)
        for raw in manifest_annotations or []:
            annotation = self._from_dict(raw)
            if annotation is not None:
                annotations.append(annotation)
        return annotations

    @staticmethod
    def _from_decorator(decorator: ast.expr) -> Optional[Annotation]:
        if isinstance(decorator, ast.Call):
            kind = short_name(dotted_name(decorator.func))
            if kind not in ANNOTATION_PARAMETERS:
                return None
            return Annotation(kind=kind, values=call_arguments(decorator, ANNOTATION_PARAMETERS[kind]))
        kind = short_name(dotted_name(decorator))
        if kind in ANNOTATION_PARAMETERS:
            return Annotation(kind=kind)
        return None

    @staticmethod
    def _from_dict(raw: Dict[str, Any]) -> Optional[Annotation]:
        if not isinstance(raw, dict) or "annotation" not in raw:
            logger.debug(f"Ignoring manifest annotation without a kind: {raw!r}")
            return None
        kind = snake_case(str(raw["annotation"]))
        if kind not in ANNOTATION_PARAMETERS:
            logger.debug(f"Unknown annotation type '{kind}'")
            return None
        values = {snake_case(k): v for k, v in raw.items() if k != "annotation"}
        return Annotation(kind=kind, values=values, origin="manifest")

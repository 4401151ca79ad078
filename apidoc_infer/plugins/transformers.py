"""
Operation Transformers - Final touches applied to every assembled operation.

Supports:
- summary / description from annotations, the manifest or the handler docstring
- operation ids from handler names
- tags from annotations, the manifest or the first meaningful path segment
"""

import ast
import re
from dataclasses import replace
from typing import List, Optional, Tuple

from apidoc_infer.analysis.context import AnalysisContext
from apidoc_infer.analysis.results import Operation

from .contracts import OperationTransformer, Plugin

VERSION_SEGMENT = re.compile(r"^v\d+(\.\d+)?$")
SKIPPED_SEGMENTS = {"api", "apis", "rest"}


class SummaryTransformer(Plugin, OperationTransformer):
    """Summary, description, operation id and deprecation flag"""

    name = "summary"
    priority = 50

    def transform(self, operation: Operation, context: AnalysisContext) -> Operation:
        doc_summary, doc_description = self._docstring(context)

        summaries = context.annotations_of("summary")
        descriptions = context.annotations_of("description")
        summary = (
            operation.summary
            or (summaries[0].get("text") if summaries else None)
            or context.entry_point.summary
            or doc_summary
        )
        description = (
            operation.description
            or (descriptions[0].get("text") if descriptions else None)
            or doc_description
        )
        deprecated = (
            operation.deprecated
            or context.entry_point.deprecated
            or any(name.rsplit(".", 1)[-1] == "deprecated" for name in context.middleware)
        )
        return replace(
            operation,
            summary=summary,
            description=description,
            operation_id=operation.operation_id or self.operation_id(context),
            deprecated=deprecated,
        )

    @staticmethod
    def operation_id(context: AnalysisContext) -> str:
        """`list_users` for handlers, `getUsersId` style for handler-less routes"""
        if context.entry_point.name:
            return context.entry_point.name
        if context.handler is not None:
            return context.handler.name
        name = context.operation_name
        return name[:1].lower() + name[1:]

    @staticmethod
    def _docstring(context: AnalysisContext) -> Tuple[Optional[str], Optional[str]]:
        if context.handler is None:
            return None, None
        doc = ast.get_docstring(context.handler)
        if not doc:
            return None, None
        parts = doc.strip().split("\n\n", 1)
        summary = " ".join(parts[0].split())
        description = parts[1].strip() if len(parts) > 1 else None
        return summary, description


class TagTransformer(Plugin, OperationTransformer):
    """Groups operations by resource"""

    name = "tags"
    priority = 40

    def transform(self, operation: Operation, context: AnalysisContext) -> Operation:
        if operation.tags:
            return operation
        tags = [a.get("name") for a in context.annotations_of("tag") if a.get("name")]
        tags = tags or list(context.entry_point.tags) or self.path_tags(context.path)
        return replace(operation, tags=tags)

    @staticmethod
    def path_tags(path: str) -> List[str]:
        """First segment that is not a prefix, version or parameter: `/api/v1/users/{id}` -> ["Users"]"""
        for segment in path.strip("/").split("/"):
            if not segment or segment.startswith("{") or segment.lower() in SKIPPED_SEGMENTS:
                continue
            if VERSION_SEGMENT.match(segment.lower()):
                continue
            words = re.split(r"[-_]", segment)
            return [" ".join(w[:1].upper() + w[1:] for w in words if w)]
        return []

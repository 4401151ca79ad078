"""
Result Merger - Combines candidate results from the three provenance tiers.

Supports:
- annotation results overriding everything else (per status, per parameter name, whole request body)
- `static_first` / `captured_first` policies choosing the authoritative tier
- gap filling from the losing tier (schema, description, examples, headers,
  and optionally missing object properties up to `fill_depth`)
- a default `200` placeholder when no success response was found
"""

import logging
from dataclasses import replace
from enum import Enum
from typing import Dict, List, Optional, Tuple, TypeVar, Union

from apidoc_infer.analysis.results import ParameterResult, Provenance, ResponseResult, SchemaResult
from apidoc_infer.schema.models import SchemaObject

from .example_merger import ExampleMerger

logger = logging.getLogger(__name__)

T = TypeVar("T", SchemaResult, ResponseResult, ParameterResult)

DEFAULT_SUCCESS_DESCRIPTION = "Successful response"


class MergePolicy(str, Enum):
    """Which of the static and captured tiers is authoritative"""
    STATIC_FIRST = "static_first"
    CAPTURED_FIRST = "captured_first"


class ResultMerger:
    """
    Three-tier merge of extractor results

    Usage:
    ```python
    merger = ResultMerger(policy="captured_first", fill_depth=1)
    responses = merger.merge(pipeline.extract_responses(context))
    body = merger.merge_request_bodies(pipeline.extract_request_bodies(context))
    ```
    """

    def __init__(
        self,
        policy: Union[MergePolicy, str] = MergePolicy.STATIC_FIRST,
        fill_depth: int = 0,
        example_merger: Optional[ExampleMerger] = None,
        inline_captured_examples: bool = False,
    ):
        self.policy = MergePolicy(policy)
        self.fill_depth = max(0, int(fill_depth))
        self.example_merger = example_merger or ExampleMerger()
        self.inline_captured_examples = inline_captured_examples

    def merge(self, candidates: Dict[Provenance, List[ResponseResult]]) -> Dict[int, ResponseResult]:
        return self.merge_responses(candidates)

    def merge_responses(self, candidates: Dict[Provenance, List[ResponseResult]]) -> Dict[int, ResponseResult]:
        """
        Merge response candidates into one result per status code

        Args:
            candidates: Results grouped by provenance tier, in extractor priority order

        Returns:
            Status code -> response, sorted by status code
        """
        annotated = self._by_key(candidates.get(Provenance.ANNOTATION, []), lambda r: r.status_code)
        primary, secondary = self._tiers(
            self._by_key(candidates.get(Provenance.STATIC, []), lambda r: r.status_code),
            self._by_key(candidates.get(Provenance.CAPTURE, []), lambda r: r.status_code),
        )

        merged: Dict[int, ResponseResult] = {}
        for status in list(primary) + [s for s in secondary if s not in primary]:
            winner, loser = primary.get(status), secondary.get(status)
            if winner is None:
                merged[status] = loser
            elif loser is None:
                merged[status] = winner
            else:
                merged[status] = self._fill(winner, loser)

        if self.inline_captured_examples:
            for status, result in merged.items():
                merged[status] = self._inline_examples(result, candidates.get(Provenance.CAPTURE, []), status)

        merged.update(annotated)

        if not any(200 <= status < 300 for status in merged):
            merged[200] = ResponseResult(
                status_code=200,
                schema=SchemaObject.generic_object(),
                description=DEFAULT_SUCCESS_DESCRIPTION,
                source="default",
            )
        return dict(sorted(merged.items()))

    def merge_request_bodies(self, candidates: Dict[Provenance, List[SchemaResult]]) -> Optional[SchemaResult]:
        """Single request body; an annotation replaces every other tier"""
        annotated = candidates.get(Provenance.ANNOTATION) or []
        if annotated:
            return annotated[0]

        static = self._first(candidates.get(Provenance.STATIC))
        captured = self._first(candidates.get(Provenance.CAPTURE))
        winner, loser = (static, captured) if self.policy == MergePolicy.STATIC_FIRST else (captured, static)
        if winner is None:
            winner, loser = loser, None
        if winner is None:
            return None
        result = self._fill(winner, loser) if loser is not None else winner

        if self.inline_captured_examples and captured is not None and result.schema is not None:
            for payload in captured.examples.values():
                result = replace(result, schema=self.example_merger.merge(result.schema, payload))
        return result

    def merge_query_parameters(self, candidates: Dict[Provenance, List[ParameterResult]]) -> List[ParameterResult]:
        """Parameters merged by name; annotated names replace lower tiers"""
        annotated = self._by_key(candidates.get(Provenance.ANNOTATION, []), lambda p: p.name)
        primary, secondary = self._tiers(
            self._by_key(candidates.get(Provenance.STATIC, []), lambda p: p.name),
            self._by_key(candidates.get(Provenance.CAPTURE, []), lambda p: p.name),
        )

        merged: Dict[str, ParameterResult] = {}
        for name in list(primary) + [n for n in secondary if n not in primary]:
            winner, loser = primary.get(name), secondary.get(name)
            if winner is None:
                merged[name] = loser
            elif loser is None:
                merged[name] = winner
            else:
                merged[name] = self._fill(winner, loser)
        merged.update(annotated)
        return list(merged.values())

    def _tiers(self, static: Dict, captured: Dict) -> Tuple[Dict, Dict]:
        if self.policy == MergePolicy.CAPTURED_FIRST:
            return captured, static
        return static, captured

    def _by_key(self, results: List[T], key) -> Dict:
        """First result per key wins; later results of the same tier only fill its gaps"""
        grouped: Dict = {}
        for result in results:
            k = key(result)
            grouped[k] = self._fill(grouped[k], result) if k in grouped else result
        return grouped

    @staticmethod
    def _first(results: Optional[List[T]]) -> Optional[T]:
        return results[0] if results else None

    def _fill(self, winner: T, loser: T) -> T:
        """Copy what the winner lacks from the loser"""
        changes = {}
        if winner.schema is None and loser.schema is not None:
            changes["schema"] = loser.schema
            if hasattr(winner, "schema_name") and winner.schema_name is None:
                changes["schema_name"] = loser.schema_name
        elif winner.schema is not None and loser.schema is not None and self.fill_depth > 0:
            filled = self.fill_schema(winner.schema, loser.schema, self.fill_depth)
            if filled is not winner.schema:
                changes["schema"] = filled

        if not winner.description and loser.description:
            changes["description"] = loser.description

        if isinstance(winner, ParameterResult):
            if winner.example is None and loser.example is not None:
                changes["example"] = loser.example
        else:
            if any(key not in winner.examples for key in loser.examples):
                changes["examples"] = {**loser.examples, **winner.examples}

        if isinstance(winner, ResponseResult):
            missing = {name: h for name, h in loser.headers.items() if name not in winner.headers}
            if missing:
                changes["headers"] = {**winner.headers, **missing}

        return replace(winner, **changes) if changes else winner

    def fill_schema(self, target: SchemaObject, source: SchemaObject, depth: int) -> SchemaObject:
        """
        Add object properties present only in `source`, `depth` levels deep

        `required` is never extended: a property seen in one tier only is optional.
        """
        if depth <= 0 or target.is_ref or source.is_ref:
            return target

        if target.is_array and source.is_array and target.items is not None and source.items is not None:
            items = self.fill_schema(target.items, source.items, depth)
            if items is target.items:
                return target
            result = target.copy()
            result.items = items
            return result

        if not (target.is_object and source.is_object) or not source.properties:
            return target

        result = target.copy()
        changed = False
        for name, prop in source.properties.items():
            if name not in result.properties:
                result.properties[name] = prop.copy()
                changed = True
            elif depth > 1:
                nested = self.fill_schema(result.properties[name], prop, depth - 1)
                if nested is not result.properties[name]:
                    result.properties[name] = nested
                    changed = True
        if changed:
            logger.debug(f"Filled properties {sorted(set(result.properties) - set(target.properties))} from lower tier")
        return result if changed else target

    def _inline_examples(self, result: ResponseResult, captured: List[ResponseResult], status: int) -> ResponseResult:
        if result.schema is None:
            return result
        schema = result.schema
        for capture in captured:
            if capture.status_code != status:
                continue
            for payload in capture.examples.values():
                schema = self.example_merger.merge(schema, payload)
        return replace(result, schema=schema) if schema is not result.schema else result

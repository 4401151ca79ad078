"""
Validation Rule Mapper - Compiles per-field rule lists into an object schema.

Rules follow the pipe-delimited vocabulary used by validated-input classes:
`{"email": "required|email", "age": ["integer", "min:18"]}`.

Supports:
- Type rules (string, integer, email, uuid, date, file, ...) with format/pattern
- Constraint rules (min, max, between, size, in, regex, mimes, nullable, accepted)
- Conditional requirement rules, documented as description text
- Dotted (`address.street`) and wildcard (`items.*.name`) field paths
- `confirmed` -> sibling `<field>_confirmation`
"""

import copy
import logging
import math
from typing import Any, Dict, List, Optional, Tuple, Union

from apidoc_infer.schema.models import NUMERIC_TYPES, SchemaObject, SchemaType

logger = logging.getLogger(__name__)

RuleList = Union[str, List[Any], Tuple[Any, ...]]


class ValidationRuleMapper:
    """
    Maps validation rules to schemas

    Usage:
    ```python
    mapper = ValidationRuleMapper()
    schema = mapper.map_all_rules({
        "email": ["required", "email"],
        "age": ["integer", "min:18"],
        "items.*.name": "required|string",
    })
    ```
    """

    DEFAULT_RULE_TYPES: Dict[str, Dict[str, Any]] = {
        "string": {"type": "string"},
        "integer": {"type": "integer"},
        "int": {"type": "integer"},
        "boolean": {"type": "boolean"},
        "bool": {"type": "boolean"},
        "numeric": {"type": "number"},
        "decimal": {"type": "number"},
        "array": {"type": "array"},
        "list": {"type": "array"},
        "object": {"type": "object"},
        "file": {"type": "string", "format": "binary"},
        "image": {"type": "string", "format": "binary"},
        "date": {"type": "string", "format": "date"},
        "date_format": {"type": "string", "format": "date-time"},
        "email": {"type": "string", "format": "email"},
        "url": {"type": "string", "format": "uri"},
        "active_url": {"type": "string", "format": "uri"},
        "ip": {"type": "string", "format": "ipv4"},
        "ipv4": {"type": "string", "format": "ipv4"},
        "ipv6": {"type": "string", "format": "ipv6"},
        "json": {"type": "string", "format": "json"},
        "uuid": {"type": "string", "format": "uuid"},
        "ulid": {"type": "string", "format": "ulid"},
        "alpha": {"type": "string", "pattern": "^[a-zA-Z]+$"},
        "alpha_num": {"type": "string", "pattern": "^[a-zA-Z0-9]+$"},
        "alpha_dash": {"type": "string", "pattern": "^[a-zA-Z0-9_-]+$"},
        "regex": {"type": "string"},
        "digits": {"type": "string", "pattern": "^[0-9]+$"},
        "digits_between": {"type": "string", "pattern": "^[0-9]+$"},
        "timezone": {"type": "string"},
    }

    CONDITIONAL_RULES: Dict[str, str] = {
        "required_if": "Required if",
        "required_unless": "Required unless",
        "required_with": "Required with",
        "required_with_all": "Required with all of",
        "required_without": "Required without",
        "required_without_all": "Required without all of",
        "prohibited_if": "Prohibited if",
        "prohibited_unless": "Prohibited unless",
        "exclude_if": "Excluded if",
        "exclude_unless": "Excluded unless",
    }

    FILE_RULES = {"file", "image", "mimes", "mimetypes"}

    def __init__(self, rule_overrides: Optional[Dict[str, Dict[str, Any]]] = None):
        """
        Initialize mapper

        Args:
            rule_overrides: Extra or replacement rule-name -> {type, format, pattern} entries
        """
        self.rule_types = dict(self.DEFAULT_RULE_TYPES)
        self.rule_types.update(rule_overrides or {})

    @staticmethod
    def parse_rules(rules: RuleList) -> List[Tuple[str, List[str]]]:
        """
        Split rules into (name, params) pairs

        `"required|max:255"` -> `[("required", []), ("max", ["255"])]`. Non-string
        entries (rule objects) are skipped.
        """
        if isinstance(rules, str):
            raw = rules.split("|")
        elif isinstance(rules, (list, tuple)):
            raw = list(rules)
        else:
            return []

        parsed: List[Tuple[str, List[str]]] = []
        for rule in raw:
            if not isinstance(rule, str):
                continue
            rule = rule.strip()
            if not rule:
                continue
            name, _, params = rule.partition(":")
            name = name.strip()
            if name in ("regex", "not_regex"):
                parsed.append((name, [params] if params else []))
            else:
                parsed.append((name, [p.strip() for p in params.split(",")] if params else []))
        return parsed

    def rule_names(self, rules: RuleList) -> List[str]:
        return [name for name, _ in self.parse_rules(rules)]

    def is_required(self, rules: RuleList) -> bool:
        return "required" in self.rule_names(rules)

    def is_nullable(self, rules: RuleList) -> bool:
        return "nullable" in self.rule_names(rules)

    def has_file_upload(self, rules_by_field: Dict[str, RuleList]) -> bool:
        """True when any field needs a multipart body"""
        return any(
            name in self.FILE_RULES
            for field_rules in rules_by_field.values()
            for name in self.rule_names(field_rules)
        )

    def map_rules(self, rules: RuleList) -> SchemaObject:
        """
        Compile one field's rules into a schema

        Args:
            rules: Pipe-delimited string or list of rules

        Returns:
            Leaf schema (string when no type rule is present)
        """
        parsed = self.parse_rules(rules)
        schema = SchemaObject()

        for name, params in parsed:
            fragment = self.rule_types.get(name)
            if fragment is None:
                continue
            for key, value in fragment.items():
                setattr(schema, key, value)
            if name == "digits" and params:
                schema.pattern = f"^[0-9]{{{params[0]}}}$"
            elif name == "digits_between" and len(params) == 2:
                schema.pattern = f"^[0-9]{{{params[0]},{params[1]}}}$"

        if schema.type is None:
            schema.type = SchemaType.STRING.value

        for name, params in parsed:
            self._apply_constraint(schema, name, params)

        return schema

    def map_all_rules(self, rules_by_field: Dict[str, RuleList]) -> SchemaObject:
        """
        Compile a whole rule set into an object schema

        Top-level fields are compiled first so that nested paths fold into
        the schemas their parents declared.

        Args:
            rules_by_field: Field path -> rules

        Returns:
            Object schema with nested properties, items and required lists
        """
        root = SchemaObject(type=SchemaType.OBJECT.value)
        top = {f: r for f, r in rules_by_field.items() if "." not in f}
        nested = {f: r for f, r in rules_by_field.items() if "." in f}

        for field_name, rules in top.items():
            if field_name == "*":
                logger.debug("Skipping root-level wildcard rule")
                continue
            self._set_property(root, field_name, rules)

        for path, rules in nested.items():
            segments = [s for s in path.split(".") if s]
            if not segments or segments[0] == "*":
                logger.debug(f"Skipping rule path '{path}' without a named root")
                continue
            self._fold(root, segments, rules)

        return root

    def _set_property(self, container: SchemaObject, name: str, rules: RuleList) -> None:
        leaf = self.map_rules(rules)
        existing = container.properties.get(name)
        if existing is not None and (existing.properties or existing.items is not None):
            # keep structure folded by earlier nested paths
            leaf.properties = existing.properties
            leaf.required = existing.required
            leaf.items = existing.items
            if leaf.type not in (SchemaType.ARRAY.value, SchemaType.OBJECT.value):
                leaf.type = existing.type
        container.properties[name] = leaf
        self._mark_required(container, name, self.is_required(rules))

        if "confirmed" in self.rule_names(rules):
            confirmation = f"{name}_confirmation"
            container.properties[confirmation] = copy.deepcopy(leaf)
            self._mark_required(container, confirmation, self.is_required(rules))

    def _fold(self, container: SchemaObject, segments: List[str], rules: RuleList) -> None:
        name, rest = segments[0], segments[1:]
        if not rest:
            self._set_property(container, name, rules)
            return

        child = container.properties.get(name)
        if child is None:
            child = SchemaObject(type=SchemaType.OBJECT.value)
            container.properties[name] = child

        if rest[0] == "*":
            if child.type != SchemaType.ARRAY.value:
                child.type = SchemaType.ARRAY.value
                child.properties = {}
                child.required = []
            if len(rest) == 1:
                item = self.map_rules(rules)
                if child.items is not None and (child.items.properties or child.items.items is not None):
                    item.properties = child.items.properties
                    item.required = child.items.required
                    item.items = child.items.items
                    item.type = child.items.type
                child.items = item
                return
            if child.items is None or child.items.type != SchemaType.OBJECT.value:
                child.items = SchemaObject(type=SchemaType.OBJECT.value)
            self._fold(child.items, rest[1:], rules)
            return

        if child.type != SchemaType.OBJECT.value:
            child.type = SchemaType.OBJECT.value
            child.items = None
        self._fold(child, rest, rules)

    @staticmethod
    def _mark_required(container: SchemaObject, name: str, required: bool) -> None:
        if required and name not in container.required:
            container.required.append(name)

    def _apply_constraint(self, schema: SchemaObject, name: str, params: List[str]) -> None:
        if name in ("min", "max", "size") and params:
            value = self._number(params[0])
            if value is None:
                return
            if name in ("min", "size"):
                self._apply_bound(schema, "min", value)
            if name in ("max", "size"):
                self._apply_bound(schema, "max", value)
        elif name == "between" and len(params) == 2:
            low, high = self._number(params[0]), self._number(params[1])
            if low is not None:
                self._apply_bound(schema, "min", low)
            if high is not None:
                self._apply_bound(schema, "max", high)
        elif name in ("gte", "lte") and params:
            value = self._number(params[0])
            if value is not None:
                self._apply_bound(schema, "min" if name == "gte" else "max", value)
        elif name == "in" and params:
            schema.enum = [self._cast(p, schema.type) for p in params]
        elif name == "not_in" and params:
            schema.add_description(f"Must not be one of: {', '.join(params)}")
        elif name == "regex" and params:
            schema.pattern = self._strip_delimiters(params[0])
        elif name in ("mimes", "mimetypes"):
            schema.type = SchemaType.STRING.value
            schema.format = "binary"
            if params:
                schema.add_description(f"Accepted types: {', '.join(params)}")
        elif name == "nullable":
            schema.nullable = True
        elif name in ("accepted", "declined"):
            schema.type = SchemaType.BOOLEAN.value
            schema.format = None
        elif name in self.CONDITIONAL_RULES:
            self._apply_conditional(schema, self.CONDITIONAL_RULES[name], params)

    @staticmethod
    def _apply_bound(schema: SchemaObject, side: str, value: float) -> None:
        if schema.type in NUMERIC_TYPES:
            if side == "min":
                schema.minimum = value
            else:
                schema.maximum = value
        elif schema.type == SchemaType.ARRAY.value:
            if side == "min":
                schema.min_items = int(value)
            else:
                schema.max_items = int(value)
        elif schema.format == "binary":
            # file sizes are kilobytes, not string lengths
            return
        else:
            if side == "min":
                schema.min_length = int(value)
            else:
                schema.max_length = int(value)

    @staticmethod
    def _apply_conditional(schema: SchemaObject, prefix: str, params: List[str]) -> None:
        if not params:
            return
        if "if" in prefix or "unless" in prefix:
            field_name, values = params[0], params[1:]
            condition = field_name + (f" = {', '.join(values)}" if values else "")
        else:
            condition = ", ".join(params)
        schema.add_description(f"{prefix} {condition}")

    @staticmethod
    def _number(text: str) -> Optional[float]:
        try:
            value = float(text)
        except ValueError:
            return None
        if not math.isfinite(value):
            logger.debug(f"Ignoring non-finite bound '{text}'")
            return None
        return int(value) if value.is_integer() else value

    @staticmethod
    def _cast(value: str, kind: Optional[str]) -> Any:
        if kind == SchemaType.INTEGER.value:
            try:
                return int(value)
            except ValueError:
                return value
        if kind == SchemaType.NUMBER.value:
            try:
                return float(value)
            except ValueError:
                return value
        if kind == SchemaType.BOOLEAN.value and value.lower() in ("true", "false", "1", "0"):
            return value.lower() in ("true", "1")
        return value

    @staticmethod
    def _strip_delimiters(pattern: str) -> str:
        """`/^[a-z]+$/i` -> `^[a-z]+$`"""
        if len(pattern) >= 2 and pattern[0] in "/#~":
            delimiter = pattern[0]
            end = pattern.rfind(delimiter)
            if end > 0:
                return pattern[1:end]
        return pattern

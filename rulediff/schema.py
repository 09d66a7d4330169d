"""Build comparers for JSON-like documents from declarative rule schemas."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, NamedTuple, Optional

import yaml

from .comparer import Comparer
from .comparators import compare_with_options, values_match
from .exceptions import RuleError, SchemaParseError, MaxDepthExceededError
from .jsonpath_utils import JSONPathMatcher
from .models import ChangeKind, Difference, LoaderConfig, ValueOptions
from .utils import (
    SELF_KEY,
    extract_key_value,
    format_key_value,
    hashable_key,
    join_path,
    normalize_path,
)

logger = logging.getLogger(__name__)

SCHEMA_KEYS = {"rules", "description"}
VALUE_OPTION_KEYS = {"case-insensitive", "trim-whitespace", "precision"}
FIELD_RULE_KEYS = {"field"} | VALUE_OPTION_KEYS
COLLECTION_RULE_KEYS = {
    "collection",
    "key",
    "match",
    "report-added",
    "report-removed",
    "rules",
} | VALUE_OPTION_KEYS


class _Located(NamedTuple):
    """A collection item paired with its concrete path in the document."""
    path: str
    value: Any


def _unwrap(node: Any) -> tuple[str, Any]:
    """Split a compared value into (path, data); documents sit at '$'."""
    if isinstance(node, _Located):
        return node.path, node.value
    return "$", node


class RuleExtractor:
    """Validates rule nodes and extracts their settings."""

    @staticmethod
    def check_keys(node: dict, allowed: set, where: str, strict: bool):
        """Reject keys the rule kind does not understand."""
        if not strict:
            return
        unknown = sorted(set(node) - allowed)
        if unknown:
            raise RuleError(where, f"unknown keys: {', '.join(unknown)}")

    @staticmethod
    def check_match_only(node: dict, options: set, where: str, strict: bool):
        """Reject value options on a collection whose items are keyed."""
        if not strict:
            return
        present = sorted(set(node) & options)
        if present:
            raise RuleError(where, f"{', '.join(present)} only apply to 'match' collections")

    @staticmethod
    def extract_value_options(node: dict, where: str) -> ValueOptions:
        """
        Extract scalar comparison options from a rule node.

        Args:
            node: The rule node
            where: Location of the node in the schema, for error reports

        Returns:
            ValueOptions for the rule
        """
        options = ValueOptions()

        precision = node.get("precision")
        if precision is not None:
            if isinstance(precision, bool) or not isinstance(precision, (int, float)):
                raise RuleError(where, "precision must be a number")
            if precision < 0:
                raise RuleError(where, "precision must not be negative")
            options.precision = float(precision)

        options.case_insensitive = RuleExtractor.extract_flag(
            node, "case-insensitive", False, where
        )
        options.trim_whitespace = RuleExtractor.extract_flag(
            node, "trim-whitespace", False, where
        )

        return options

    @staticmethod
    def extract_flag(node: dict, name: str, default: bool, where: str) -> bool:
        value = node.get(name, default)
        if not isinstance(value, bool):
            raise RuleError(where, f"{name} must be true or false")
        return value

    @staticmethod
    def extract_expression(node: dict, name: str, where: str) -> str:
        """Extract a JSONPath expression and compile it eagerly."""
        expression = node[name]
        if not isinstance(expression, str) or not expression.strip():
            raise RuleError(where, f"{name} must be a non-empty JSONPath string")
        expression = normalize_path(expression.strip())
        JSONPathMatcher.compile(expression)
        return expression

    @staticmethod
    def extract_identity(node: dict, where: str) -> tuple[str, str | list[str]]:
        """
        Extract how collection items are identified.

        Returns:
            Tuple of ('key' or 'match', field spec)
        """
        has_key = "key" in node
        has_match = "match" in node
        if has_key == has_match:
            raise RuleError(where, "a collection needs exactly one of 'key' or 'match'")

        kind = "key" if has_key else "match"
        spec = node[kind]

        if isinstance(spec, str) and spec:
            return kind, spec
        if (
            isinstance(spec, list) and spec
            and all(isinstance(name, str) and name for name in spec)
        ):
            return kind, list(spec)

        raise RuleError(where, f"{kind} must be a field name or a list of field names")


class SchemaLoader:
    """
    Turns a declarative rule schema into a Comparer.

    Schema format:

        rules:
          - field: $.name
          - field: total
            precision: 0.01
          - collection: $.addresses
            key: id
            report-added: true
            report-removed: true
            rules:
              - field: city
                case-insensitive: true

    Field rules emit CHANGED differences; collection rules emit ADDED and
    REMOVED differences and run their nested rules on matched items. A
    collection identifies items either by 'key' (unique, O(n+m)) or by
    'match' (compared with the rule's value options, O(n*m)). Keys are
    compared exactly, so value options are only accepted on 'match'
    collections.
    """

    def __init__(self, config: Optional[LoaderConfig] = None):
        self.config = config or LoaderConfig()

    def build(self, schema: dict) -> Comparer:
        """
        Build a comparer from a parsed schema.

        Args:
            schema: Parsed rule schema

        Returns:
            Comparer whose compare() returns a list of Difference records
        """
        if not isinstance(schema, dict):
            raise SchemaParseError(
                "Rule schema must be an object",
                reason=f"got {type(schema).__name__}"
            )
        RuleExtractor.check_keys(schema, SCHEMA_KEYS, "$", self.config.strict)

        comparer = Comparer()
        self._populate(comparer, schema.get("rules", []), depth=0, where="rules")

        logger.debug("Built comparer with %d top-level rules", len(comparer))
        return comparer

    def _populate(self, comparer: Comparer, rules: Any, depth: int, where: str):
        """Register every rule node of one nesting level."""
        if depth > self.config.max_depth:
            raise MaxDepthExceededError(self.config.max_depth, where)

        if not isinstance(rules, list):
            raise SchemaParseError(
                f"'{where}' must be a list of rules",
                reason=f"got {type(rules).__name__}"
            )

        for index, node in enumerate(rules):
            rule_where = f"{where}[{index}]"

            if not isinstance(node, dict):
                raise RuleError(rule_where, "a rule must be an object")

            if "field" in node and "collection" in node:
                raise RuleError(rule_where, "a rule cannot be both a field and a collection")
            if "field" in node:
                self._add_field_rule(comparer, node, rule_where)
            elif "collection" in node:
                self._add_collection_rule(comparer, node, depth, rule_where)
            else:
                raise RuleError(rule_where, "a rule needs either 'field' or 'collection'")

    def _add_field_rule(self, comparer: Comparer, node: dict, where: str):
        RuleExtractor.check_keys(node, FIELD_RULE_KEYS, where, self.config.strict)
        expression = RuleExtractor.extract_expression(node, "field", where)
        options = RuleExtractor.extract_value_options(node, where)

        def read(value: Any) -> tuple[str, Any]:
            path, data = _unwrap(value)
            return join_path(path, expression), JSONPathMatcher.first_value(data, expression)

        def is_different(source: Any, target: Any) -> bool:
            _, old = read(source)
            _, new = read(target)
            return not values_match(old, new, options)

        def factory(source: Any, target: Any) -> Difference:
            path, old = read(source)
            _, new = read(target)
            _, message = compare_with_options(old, new, options)
            return Difference(
                path=path,
                kind=ChangeKind.CHANGED,
                old_value=old,
                new_value=new,
                message=message
            )

        comparer.add_rule(is_different, factory)

    def _add_collection_rule(self, comparer: Comparer, node: dict, depth: int, where: str):
        RuleExtractor.check_keys(node, COLLECTION_RULE_KEYS, where, self.config.strict)
        expression = RuleExtractor.extract_expression(node, "collection", where)
        kind, identity = RuleExtractor.extract_identity(node, where)
        if kind == "key":
            RuleExtractor.check_match_only(node, VALUE_OPTION_KEYS, where, self.config.strict)
        options = RuleExtractor.extract_value_options(node, where)
        report_added = RuleExtractor.extract_flag(node, "report-added", True, where)
        report_removed = RuleExtractor.extract_flag(node, "report-removed", True, where)

        # '$.items' and '$.items[*]' address the same collection
        display_expression = expression[:-3] if expression.endswith("[*]") else expression

        def items_selector(value: Any) -> list[_Located]:
            path, data = _unwrap(value)
            collection_path = join_path(path, display_expression)
            return [
                _Located(_item_path(collection_path, identity, item), item)
                for item in JSONPathMatcher.select_items(data, expression)
            ]

        def item_factory(change: ChangeKind):
            def factory(source: Any, target: Any, item: _Located) -> Difference:
                verb = "added" if change == ChangeKind.ADDED else "removed"
                key_display = format_key_value(extract_key_value(item.value, identity))
                return Difference(
                    path=item.path,
                    kind=change,
                    old_value=item.value if change == ChangeKind.REMOVED else None,
                    new_value=item.value if change == ChangeKind.ADDED else None,
                    message=f"Item with key {key_display} {verb}"
                )
            return factory

        configure_nested = None
        if "rules" in node:
            nested_rules = node["rules"]
            nested_where = f"{where}.rules"

            def configure_nested(nested: Comparer):
                self._populate(nested, nested_rules, depth + 1, nested_where)

        added_factory = item_factory(ChangeKind.ADDED) if report_added else None
        removed_factory = item_factory(ChangeKind.REMOVED) if report_removed else None

        if kind == "key":
            comparer.add_rule_for_each(
                items_selector,
                added_factory=added_factory,
                removed_factory=removed_factory,
                configure_nested=configure_nested,
                key_selector=lambda item: hashable_key(extract_key_value(item.value, identity)),
            )
        else:
            def matching_predicate(source_item: _Located, target_item: _Located) -> bool:
                old_values = extract_key_value(source_item.value, identity)
                new_values = extract_key_value(target_item.value, identity)
                return all(
                    values_match(old, new, options)
                    for old, new in zip(old_values, new_values)
                )

            comparer.add_rule_for_each(
                items_selector,
                matching_predicate,
                added_factory=added_factory,
                removed_factory=removed_factory,
                configure_nested=configure_nested,
            )


def _item_path(collection_path: str, identity: str | list[str], item: Any) -> str:
    """Build a JSONPath-like path naming an item by its identifying fields."""
    key_display = format_key_value(extract_key_value(item, identity))
    if identity == SELF_KEY:
        return f"{collection_path}[?(@=={key_display})]"
    if isinstance(identity, str):
        return f"{collection_path}[?(@.{identity}=={key_display})]"
    return f"{collection_path}[key={key_display}]"


def parse_schema(content: str) -> dict:
    """
    Parse a YAML (or JSON) rule schema.

    Raises:
        SchemaParseError: If the content is not valid YAML or not a mapping
    """
    try:
        schema = yaml.safe_load(content)
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        raise SchemaParseError(
            f"Failed to parse rule schema: {e}",
            line=mark.line + 1 if mark is not None else None,
            column=mark.column + 1 if mark is not None else None,
            reason=getattr(e, "problem", None)
        )

    if schema is None:
        return {}
    if not isinstance(schema, dict):
        raise SchemaParseError(
            "Rule schema must be a mapping",
            reason=f"got {type(schema).__name__}"
        )
    return schema


def load_schema(path: str | Path) -> dict:
    """Load a rule schema from a YAML or JSON file."""
    schema_path = Path(path)
    if not schema_path.exists():
        raise FileNotFoundError(f"Schema file not found: {schema_path}")

    with open(schema_path, 'r', encoding='utf-8') as f:
        content = f.read()

    return parse_schema(content)


def build_comparer(
    schema: dict | str | Path,
    config: Optional[LoaderConfig] = None
) -> Comparer:
    """
    Build a comparer from a schema dict or a schema file path.

    Args:
        schema: Parsed schema, or path to a YAML/JSON schema file
        config: Optional loader configuration

    Returns:
        Comparer producing Difference records
    """
    if not isinstance(schema, dict):
        schema = load_schema(schema)
    return SchemaLoader(config).build(schema)


def compare(
    source: Any,
    target: Any,
    schema: dict | str | Path,
    config: Optional[LoaderConfig] = None
) -> list[Difference]:
    """
    Convenience function to compare two documents against a rule schema.

    Args:
        source: The original document
        target: The document to compare against it
        schema: Parsed schema, or path to a YAML/JSON schema file
        config: Optional loader configuration

    Returns:
        List of Difference records
    """
    return build_comparer(schema, config).compare(source, target)

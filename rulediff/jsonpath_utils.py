"""JSONPath utilities for declarative rules."""

from __future__ import annotations

from typing import Any
from jsonpath_ng import parse as jsonpath_parse
from jsonpath_ng.jsonpath import Child, Fields, Index, Slice
from jsonpath_ng.exceptions import JsonPathLexerError, JsonPathParserError

from .exceptions import SchemaParseError
from .utils import normalize_path


class JSONPathMatcher:
    """Compiles JSONPath expressions once and evaluates them against data."""

    # Cache for compiled JSONPath expressions
    _cache: dict = {}

    @classmethod
    def compile(cls, path: str):
        """Compile and cache a JSONPath expression."""
        path = normalize_path(path)
        if path not in cls._cache:
            try:
                cls._cache[path] = jsonpath_parse(path)
            except (JsonPathLexerError, JsonPathParserError) as e:
                raise SchemaParseError(
                    f"Invalid JSONPath expression '{path}'",
                    reason=str(e)
                )
        return cls._cache[path]

    @classmethod
    def find_values(cls, data: Any, path: str) -> list[Any]:
        """Find all values matching a JSONPath expression."""
        expr = cls.compile(path)
        return [m.value for m in expr.find(data)]

    @classmethod
    def first_value(cls, data: Any, path: str, default: Any = None) -> Any:
        """Return the first value matching the expression, or default."""
        values = cls.find_values(data, path)
        return values[0] if values else default

    @classmethod
    def selects_elements(cls, path: str) -> bool:
        """Check if the expression ends in a wildcard, index or slice step."""
        step = cls.compile(path)
        while isinstance(step, Child):
            step = step.right

        if isinstance(step, (Index, Slice)):
            return True
        return isinstance(step, Fields) and "*" in step.fields

    @classmethod
    def select_items(cls, data: Any, path: str) -> list[Any]:
        """
        Select collection items.

        An expression ending in an element step ('$.items[*]', '$.items[0]',
        '$.obj.*') yields the matched values themselves. Any other expression
        names the collections: every matched list contributes its items and
        any other matched value is one item. Both '$.items' and '$.items[*]'
        therefore select the same items, whatever the shape of the data.
        """
        values = cls.find_values(data, path)
        if cls.selects_elements(path):
            return values

        items = []
        for value in values:
            if isinstance(value, list):
                items.extend(value)
            else:
                items.append(value)
        return items

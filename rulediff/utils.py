"""Utility functions for the rulediff engine."""

from __future__ import annotations

from typing import Any, Callable, Iterable

from .exceptions import DuplicateKeyError

# Key field that refers to the item itself rather than one of its fields
SELF_KEY = "@"


def is_numeric(value: Any) -> bool:
    """Check if a value is numeric (int or float)."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def normalize_path(path: str) -> str:
    """Normalize a JSONPath expression."""
    if not path:
        return "$"
    if not path.startswith("$"):
        path = "$." + path
    return path


def join_path(parent_path: str, expression: str) -> str:
    """
    Append a relative JSONPath expression to a concrete parent path.

    Args:
        parent_path: Path of the node the expression is evaluated against
        expression: Normalized JSONPath expression starting with '$'

    Returns:
        The combined display path
    """
    return parent_path + normalize_path(expression)[1:]


def extract_key_value(obj: Any, key_spec: str | list[str]) -> tuple:
    """
    Extract key value(s) from an object based on key specification.

    Args:
        obj: The object to extract key from
        key_spec: Single key name or list of key names for composite key

    Returns:
        Tuple of key values, with None for every field the object lacks
    """
    if isinstance(key_spec, str):
        key_spec = [key_spec]

    values = []
    for key in key_spec:
        if key == SELF_KEY:
            values.append(obj)
        elif isinstance(obj, dict):
            values.append(obj.get(key))
        else:
            values.append(None)

    return tuple(values)


def hashable_key(value: Any) -> Any:
    """
    Convert a JSON value into an equal-comparing hashable form.

    Lists become tuples and objects become frozensets of (name, value)
    pairs, recursively, so keys holding arrays or objects can index a map.
    """
    if isinstance(value, (list, tuple)):
        return tuple(hashable_key(v) for v in value)
    if isinstance(value, dict):
        return frozenset((k, hashable_key(v)) for k, v in value.items())
    return value


def format_key_value(key_value: tuple) -> str:
    """Format a key value tuple for display."""
    if len(key_value) == 1:
        return repr(key_value[0])
    return repr(key_value)


def build_key_map(
    items: Iterable[Any],
    key_selector: Callable[[Any], Any],
    side: str
) -> dict:
    """
    Build a map from extracted keys to items, failing on the first duplicate.

    Args:
        items: The collection items, in traversal order
        key_selector: Function extracting a hashable key from an item
        side: 'source' or 'target', used in the error report

    Returns:
        Dict of key -> item, in item traversal order

    Raises:
        DuplicateKeyError: If two items share a key
    """
    result = {}
    positions = {}

    for i, item in enumerate(items):
        key = key_selector(item)

        if key in positions:
            raise DuplicateKeyError(side, key, [positions[key], i])

        positions[key] = i
        result[key] = item

    return result

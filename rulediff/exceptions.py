"""Custom exceptions for the rulediff engine."""

from __future__ import annotations

from typing import Any


class RuleDiffError(Exception):
    """Base exception for rulediff errors."""
    pass


class RuleError(RuleDiffError):
    """Raised when a comparison rule is configured incorrectly."""
    def __init__(self, rule: str, message: str):
        super().__init__(f"Invalid rule '{rule}': {message}")
        self.rule = rule
        self.message = message


class DuplicateKeyError(RuleDiffError):
    """Raised when a keyed collection holds two items with the same key."""
    def __init__(self, side: str, key: Any, indices: list[int]):
        super().__init__(
            f"Duplicate key {key!r} in {side} collection at indices {indices}"
        )
        self.side = side
        self.key = key
        self.indices = indices


class AmbiguousMatchError(RuleDiffError):
    """Raised when a collection item matches more than one counterpart."""
    def __init__(self, side: str, index: int, match_indices: list[int]):
        other = "target" if side == "source" else "source"
        super().__init__(
            f"Ambiguous match: {side} item at index {index} matches "
            f"{other} items at indices {match_indices}"
        )
        self.side = side
        self.index = index
        self.match_indices = match_indices


class SchemaParseError(RuleDiffError):
    """Raised when a rule schema cannot be parsed."""
    def __init__(self, message: str, line: int = None, column: int = None, reason: str = None):
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column
        self.reason = reason


class MaxDepthExceededError(RuleDiffError):
    """Raised when a rule schema nests collections too deeply."""
    def __init__(self, depth: int, path: str):
        super().__init__(f"Maximum depth ({depth}) exceeded at path: {path}")
        self.depth = depth
        self.path = path

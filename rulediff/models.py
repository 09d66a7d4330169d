"""Data models for the rulediff engine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class ChangeKind(Enum):
    CHANGED = "CHANGED"
    ADDED = "ADDED"
    REMOVED = "REMOVED"


@dataclass(frozen=True)
class Difference:
    """
    Generic difference record.

    The engine itself never builds these; they are what the declarative
    schema layer emits, and callers may use them from their own factories
    instead of defining difference types of their own.
    """
    path: str
    kind: ChangeKind
    old_value: Any
    new_value: Any
    message: str

    def __str__(self) -> str:
        return self.message


@dataclass
class ValueOptions:
    """Options controlling how two scalar values are compared."""
    precision: Optional[float] = None
    case_insensitive: bool = False
    trim_whitespace: bool = False


@dataclass
class LoaderConfig:
    """Configuration for building comparers from rule schemas."""
    max_depth: int = 32
    strict: bool = True

"""
rulediff - Rule-driven structural diffing engine

Compares two values of the same type by evaluating an ordered set of
caller-configured rules: scalar rules, collection rules that reconcile items
by predicate or by key, and nested comparers for matched items. Differences
are built by caller-supplied factories; a declarative YAML/JSONPath schema
layer builds comparers for JSON-like documents.
"""

from .comparer import Comparer
from .rules import (
    Rule,
    ScalarRule,
    PredicateCollectionRule,
    KeyedCollectionRule,
)
from .models import (
    ChangeKind,
    Difference,
    ValueOptions,
    LoaderConfig,
)
from .exceptions import (
    RuleDiffError,
    RuleError,
    DuplicateKeyError,
    AmbiguousMatchError,
    SchemaParseError,
    MaxDepthExceededError,
)
from .schema import (
    SchemaLoader,
    build_comparer,
    compare,
    load_schema,
    parse_schema,
)

__version__ = "1.0.0"
__all__ = [
    # Engine
    "Comparer",
    "Rule",
    "ScalarRule",
    "PredicateCollectionRule",
    "KeyedCollectionRule",
    # Models
    "ChangeKind",
    "Difference",
    "ValueOptions",
    "LoaderConfig",
    # Errors
    "RuleDiffError",
    "RuleError",
    "DuplicateKeyError",
    "AmbiguousMatchError",
    "SchemaParseError",
    "MaxDepthExceededError",
    # Schema
    "SchemaLoader",
    "build_comparer",
    "compare",
    "load_schema",
    "parse_schema",
]

"""Rule orchestration for the rulediff engine."""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from .exceptions import RuleError
from .rules import (
    Rule,
    ScalarRule,
    PredicateCollectionRule,
    KeyedCollectionRule,
    DifferencePredicate,
    DifferenceFactory,
    ItemsSelector,
    ItemFactory,
)

logger = logging.getLogger(__name__)


class Comparer:
    """
    Compares two values of the same type by running an ordered set of rules.

    Rules are registered through the fluent builder methods and evaluated in
    registration order; the differences they return are concatenated into a
    single list. Differences are whatever the caller's factories build, the
    comparer never looks inside them.

    A comparer may be shared by any number of concurrent compare() calls, but
    must not be configured further while a comparison is running.

    Example:
        comparer = (
            Comparer()
            .add_rule(
                lambda s, t: s.name != t.name,
                lambda s, t: NameChanged(s.name, t.name))
            .add_rule_for_each(
                lambda p: p.addresses,
                key_selector=lambda a: a.id,
                added_factory=lambda s, t, a: AddressAdded(a.id),
                removed_factory=lambda s, t, a: AddressRemoved(a.id),
                configure_nested=lambda c: c.add_rule(
                    lambda s, t: s.city != t.city,
                    lambda s, t: CityChanged(s.id, s.city, t.city)))
        )
        differences = comparer.compare(old_person, new_person)
    """

    def __init__(self):
        self._rules: list[Rule] = []

    @property
    def rules(self) -> tuple[Rule, ...]:
        """The registered rules, in evaluation order."""
        return tuple(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def add_rule(
        self,
        is_different: DifferencePredicate,
        factory: DifferenceFactory
    ) -> Comparer:
        """
        Add a rule comparing the values as a whole.

        Args:
            is_different: Returns True when source and target differ
            factory: Builds the difference, called as factory(source, target)

        Returns:
            This comparer, for chaining
        """
        _require_callable(
            "add_rule",
            ("is_different", "factory"),
            is_different=is_different,
            factory=factory,
        )

        self._rules.append(ScalarRule(is_different, factory))
        logger.debug("Registered scalar rule #%d", len(self._rules))
        return self

    def add_rule_for_each(
        self,
        items_selector: ItemsSelector,
        matching_predicate: Optional[Callable[[Any, Any], bool]] = None,
        added_factory: Optional[ItemFactory] = None,
        removed_factory: Optional[ItemFactory] = None,
        configure_nested: Optional[Callable[[Comparer], Any]] = None,
        *,
        key_selector: Optional[Callable[[Any], Any]] = None
    ) -> Comparer:
        """
        Add a rule reconciling a collection held by the compared values.

        Items are paired either by a matching predicate (any logic, O(n*m))
        or by a key selector (unique hashable keys, O(n+m)). Exactly one of
        the two must be given.

        Args:
            items_selector: Selects the collection from a compared value
            matching_predicate: Returns True when a source item and a target
                item are the same logical item
            added_factory: Optional, called as added_factory(source, target,
                item) for items only present in target
            removed_factory: Optional, called as removed_factory(source,
                target, item) for items only present in source
            configure_nested: Optional callback that receives a fresh
                Comparer and registers the rules to run on matched item pairs
            key_selector: Extracts the identifying key of an item

        Returns:
            This comparer, for chaining

        Raises:
            RuleError: If both or neither of matching_predicate and
                key_selector are given, or an argument is not callable
        """
        if (matching_predicate is None) == (key_selector is None):
            raise RuleError(
                "add_rule_for_each",
                "exactly one of matching_predicate or key_selector is required"
            )

        _require_callable(
            "add_rule_for_each",
            ("items_selector",),
            items_selector=items_selector,
            matching_predicate=matching_predicate,
            key_selector=key_selector,
            added_factory=added_factory,
            removed_factory=removed_factory,
            configure_nested=configure_nested,
        )

        nested_comparer = None
        if configure_nested is not None:
            nested_comparer = Comparer()
            configure_nested(nested_comparer)

        if key_selector is not None:
            rule = KeyedCollectionRule(
                items_selector, key_selector,
                added_factory, removed_factory, nested_comparer
            )
        else:
            rule = PredicateCollectionRule(
                items_selector, matching_predicate,
                added_factory, removed_factory, nested_comparer
            )

        self._rules.append(rule)
        logger.debug(
            "Registered %s #%d (nested rules: %d)",
            type(rule).__name__, len(self._rules),
            len(nested_comparer) if nested_comparer is not None else 0
        )
        return self

    def compare(self, source: Any, target: Any) -> list:
        """
        Compare two values using every registered rule.

        Args:
            source: The original value
            target: The value to compare against it

        Returns:
            Differences from all rules, in registration order. Empty when no
            rule fired.

        Raises:
            DuplicateKeyError: A keyed collection rule found a repeated key
            AmbiguousMatchError: A predicate collection rule found an item
                with several counterparts
        """
        logger.debug("Comparing with %d rules", len(self._rules))

        differences = []
        for rule in self._rules:
            differences.extend(rule.compare(source, target))

        return differences


def _require_callable(method: str, required: tuple[str, ...], **arguments: Any):
    """Reject non-callable arguments; optional ones may be None."""
    for name, value in arguments.items():
        if value is None and name not in required:
            continue
        if not callable(value):
            raise RuleError(method, f"{name} must be callable, got {type(value).__name__}")

"""Comparison rules executed by a Comparer."""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Optional, TYPE_CHECKING

from .exceptions import AmbiguousMatchError
from .utils import build_key_map

if TYPE_CHECKING:
    from .comparer import Comparer

logger = logging.getLogger(__name__)

DifferencePredicate = Callable[[Any, Any], bool]
DifferenceFactory = Callable[[Any, Any], Any]
ItemsSelector = Callable[[Any], Iterable[Any]]
ItemFactory = Callable[[Any, Any, Any], Any]


class Rule:
    """
    A configured unit of comparison logic.

    Every rule exposes a single operation, compare(source, target), returning
    the list of differences it found (empty when nothing changed). Rules are
    configured once at construction and never mutated afterwards.
    """

    def compare(self, source: Any, target: Any) -> list:
        raise NotImplementedError


class ScalarRule(Rule):
    """Emits one difference when a predicate reports the values differ."""

    def __init__(
        self,
        is_different: DifferencePredicate,
        factory: DifferenceFactory
    ):
        self.is_different = is_different
        self.factory = factory

    def compare(self, source: Any, target: Any) -> list:
        if self.is_different(source, target):
            return [self.factory(source, target)]
        return []


class CollectionRule(Rule):
    """
    Shared configuration of the two collection reconciliation strategies.

    Args:
        items_selector: Selects the collection from the compared value
        added_factory: Optional factory for items only present in target,
            called as added_factory(source, target, item)
        removed_factory: Optional factory for items only present in source,
            called as removed_factory(source, target, item)
        nested_comparer: Optional comparer run over every matched item pair
    """

    def __init__(
        self,
        items_selector: ItemsSelector,
        added_factory: Optional[ItemFactory] = None,
        removed_factory: Optional[ItemFactory] = None,
        nested_comparer: Optional[Comparer] = None
    ):
        self.items_selector = items_selector
        self.added_factory = added_factory
        self.removed_factory = removed_factory
        self.nested_comparer = nested_comparer

    def _select_items(self, source: Any, target: Any) -> tuple[list, list]:
        """Materialize both collections so they can be traversed repeatedly."""
        return list(self.items_selector(source)), list(self.items_selector(target))

    def _compare_matched(self, source_item: Any, target_item: Any) -> list:
        if self.nested_comparer is None:
            return []
        return self.nested_comparer.compare(source_item, target_item)

    def _report_removed(self, source: Any, target: Any, item: Any) -> list:
        if self.removed_factory is None:
            return []
        return [self.removed_factory(source, target, item)]

    def _report_added(self, source: Any, target: Any, item: Any) -> list:
        if self.added_factory is None:
            return []
        return [self.added_factory(source, target, item)]


class PredicateCollectionRule(CollectionRule):
    """
    Reconciles two collections with a pairwise matching predicate.

    Every (source_item, target_item) pair is tested, so the cost is O(n*m).
    Use KeyedCollectionRule when items carry a single unique identifier.
    The predicate must pair each item with at most one counterpart; any
    ambiguity fails the comparison before a single difference is produced.
    """

    def __init__(
        self,
        items_selector: ItemsSelector,
        matching_predicate: Callable[[Any, Any], bool],
        added_factory: Optional[ItemFactory] = None,
        removed_factory: Optional[ItemFactory] = None,
        nested_comparer: Optional[Comparer] = None
    ):
        super().__init__(items_selector, added_factory, removed_factory, nested_comparer)
        self.matching_predicate = matching_predicate

    def compare(self, source: Any, target: Any) -> list:
        source_items, target_items = self._select_items(source, target)
        source_matches, target_matched = self._match_items(source_items, target_items)

        differences = []

        for source_item, match in zip(source_items, source_matches):
            if match is None:
                differences.extend(self._report_removed(source, target, source_item))
            else:
                differences.extend(self._compare_matched(source_item, target_items[match]))

        for j, target_item in enumerate(target_items):
            if not target_matched[j]:
                differences.extend(self._report_added(source, target, target_item))

        logger.debug(
            "Predicate reconciliation: %d source, %d target, %d matched",
            len(source_items), len(target_items),
            sum(1 for m in source_matches if m is not None)
        )

        return differences

    def _match_items(
        self,
        source_items: list,
        target_items: list
    ) -> tuple[list[Optional[int]], list[bool]]:
        """
        Pair source and target items.

        Returns:
            Tuple of (index of the matching target item per source item or
            None, whether each target item was matched)

        Raises:
            AmbiguousMatchError: If an item on either side has more than one
                counterpart
        """
        matched_by = [[] for _ in target_items]
        source_matches = []

        for i, source_item in enumerate(source_items):
            hits = [
                j for j, target_item in enumerate(target_items)
                if self.matching_predicate(source_item, target_item)
            ]
            if len(hits) > 1:
                raise AmbiguousMatchError("source", i, hits)

            for j in hits:
                matched_by[j].append(i)
            source_matches.append(hits[0] if hits else None)

        for j, hits in enumerate(matched_by):
            if len(hits) > 1:
                raise AmbiguousMatchError("target", j, hits)

        return source_matches, [bool(hits) for hits in matched_by]


class KeyedCollectionRule(CollectionRule):
    """
    Reconciles two collections by a unique key extracted from each item.

    Both sides are indexed by key up front, so the cost is O(n+m). Keys must
    be hashable and unique within each side; a duplicate aborts the
    comparison with DuplicateKeyError.

    Removed and changed items are reported in source order, then added items
    in target order.
    """

    def __init__(
        self,
        items_selector: ItemsSelector,
        key_selector: Callable[[Any], Any],
        added_factory: Optional[ItemFactory] = None,
        removed_factory: Optional[ItemFactory] = None,
        nested_comparer: Optional[Comparer] = None
    ):
        super().__init__(items_selector, added_factory, removed_factory, nested_comparer)
        self.key_selector = key_selector

    def compare(self, source: Any, target: Any) -> list:
        source_items, target_items = self._select_items(source, target)

        source_map = build_key_map(source_items, self.key_selector, "source")
        target_map = build_key_map(target_items, self.key_selector, "target")

        differences = []
        matched = 0

        for key, source_item in source_map.items():
            if key in target_map:
                matched += 1
                differences.extend(self._compare_matched(source_item, target_map[key]))
            else:
                differences.extend(self._report_removed(source, target, source_item))

        for key, target_item in target_map.items():
            if key not in source_map:
                differences.extend(self._report_added(source, target, target_item))

        logger.debug(
            "Keyed reconciliation: %d source, %d target, %d matched",
            len(source_map), len(target_map), matched
        )

        return differences

"""Scalar value comparison helpers used by declarative rules."""

from __future__ import annotations

from typing import Any, Optional

from .models import ValueOptions
from .utils import is_numeric


def compare_numbers(
    old: Any,
    new: Any,
    precision: Optional[float] = None
) -> tuple[bool, str]:
    """
    Compare two numeric values with optional precision tolerance.

    Args:
        old: The old value
        new: The new value
        precision: Maximum allowed difference

    Returns:
        Tuple of (is_match, message)
    """
    if precision is not None:
        diff = abs(old - new)
        if diff <= precision:
            return True, ""
        return False, f"Value difference ({diff}) exceeds precision tolerance ({precision})"

    if old == new:
        return True, ""

    return False, f"Values differ: {old} != {new}"


def compare_strings(
    old: str,
    new: str,
    options: ValueOptions
) -> tuple[bool, str]:
    """
    Compare two string values.

    Args:
        old: The old string value
        new: The new string value
        options: Whitespace and case handling

    Returns:
        Tuple of (is_match, message)
    """
    old_str = old
    new_str = new

    if options.trim_whitespace:
        old_str = old_str.strip()
        new_str = new_str.strip()

    if options.case_insensitive:
        old_str = old_str.casefold()
        new_str = new_str.casefold()

    if old_str == new_str:
        return True, ""

    return False, f"Values differ: '{old}' != '{new}'"


def compare_with_options(
    old: Any,
    new: Any,
    options: Optional[ValueOptions] = None
) -> tuple[bool, str]:
    """
    Compare two values, dispatching on their types.

    Args:
        old: The old value
        new: The new value
        options: Comparison options (defaults to exact comparison)

    Returns:
        Tuple of (is_match, message)
    """
    options = options or ValueOptions()

    if old is None and new is None:
        return True, ""

    if old is None:
        return False, f"Old value is null, new value is {new!r}"

    if new is None:
        return False, f"Old value is {old!r}, new value is null"

    if is_numeric(old) and is_numeric(new):
        return compare_numbers(old, new, options.precision)

    if isinstance(old, str) and isinstance(new, str):
        return compare_strings(old, new, options)

    if old == new and type(old) == type(new):
        return True, ""

    return False, f"Values differ: {old!r} != {new!r}"


def values_match(
    old: Any,
    new: Any,
    options: Optional[ValueOptions] = None
) -> bool:
    """Check if two values match under the given options."""
    is_match, _ = compare_with_options(old, new, options)
    return is_match

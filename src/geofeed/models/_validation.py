"""Shared validation helpers for frozen dataclass models.

Private module -- not part of the public API. Used by ``__post_init__``
methods in sibling model modules to enforce runtime type constraints.
"""

from __future__ import annotations

import math
from typing import Any


def validate_instance(value: Any, expected: type, name: str) -> None:
    """Raise ``TypeError`` if *value* is not an instance of *expected*."""
    if not isinstance(value, expected):
        article = "an" if expected.__name__[0] in "AEIOUaeiou" else "a"
        raise TypeError(f"{name} must be {article} {expected.__name__}, got {type(value).__name__}")


def validate_int(value: Any, name: str) -> None:
    """Raise ``TypeError`` if *value* is not an ``int`` (``bool`` excluded)."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an int, got {type(value).__name__}")


def validate_timestamp(value: Any, name: str) -> None:
    """Raise if *value* is not a non-negative ``int`` (``bool`` excluded)."""
    validate_int(value, name)
    if value < 0:
        raise ValueError(f"{name} must be non-negative")


def validate_str_not_empty(value: Any, name: str) -> None:
    """Raise if *value* is not a non-empty ``str`` without null bytes."""
    if not isinstance(value, str):
        raise TypeError(f"{name} must be a str, got {type(value).__name__}")
    if "\x00" in value:
        raise ValueError(f"{name} contains null bytes")
    if not value:
        raise ValueError(f"{name} must not be empty")


def validate_float_range(value: Any, name: str, low: float, high: float) -> float:
    """Coerce *value* to ``float`` and check that it lies in ``[low, high]``.

    Returns:
        The value as a float.

    Raises:
        TypeError: If *value* is not a real number (``bool`` excluded).
        ValueError: If *value* is NaN, infinite or out of range.
    """
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise TypeError(f"{name} must be a number, got {type(value).__name__}")
    number = float(value)
    if not math.isfinite(number) or not low <= number <= high:
        raise ValueError(f"{name} must be within [{low}, {high}], got {value}")
    return number

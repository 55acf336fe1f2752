"""Shared utilities for pandas conversion operations."""

from decimal import Decimal

import pandas as pd  # type: ignore


def decimal_to_float(value: Decimal) -> float:
    """Convert Decimal to float for pandas compatibility."""
    return float(value)


def missing_to_none(value: object) -> object:
    """Replace pandas missing markers (NaN, NaT, None, pd.NA) with None.

    Example:
        >>> missing_to_none(float("nan")) is None
        True
        >>> missing_to_none(12.5)
        12.5
    """
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        # pd.isna on list-like values returns an array, not a bool
        return value
    return value

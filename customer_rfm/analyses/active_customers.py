"""Active customer identification.

A customer is active when they placed at least ``min_orders`` orders within
a trailing window (one year and five orders by default).
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import date
from typing import Sequence

from customer_rfm.foundation.orders import Order, lookback_window_start

DEFAULT_ACTIVITY_WINDOW_YEARS = 1
DEFAULT_MIN_ORDERS = 5


@dataclass(frozen=True)
class ActiveCustomer:
    """A customer meeting the activity threshold."""

    customer_id: str
    order_count: int


def find_active_customers(
    orders: Sequence[Order],
    as_of: date,
    lookback_years: int = DEFAULT_ACTIVITY_WINDOW_YEARS,
    min_orders: int = DEFAULT_MIN_ORDERS,
) -> list[ActiveCustomer]:
    """Return customers with at least ``min_orders`` orders in the window.

    The window runs from ``as_of`` minus ``lookback_years`` calendar years
    to ``as_of``, both inclusive, the same window RFM intake uses.

    Returns
    -------
    list[ActiveCustomer]
        Sorted by order_count descending, then customer_id
    """
    if min_orders < 1:
        raise ValueError(f"Minimum orders must be at least 1: {min_orders}")

    window_start = lookback_window_start(as_of, lookback_years)
    counts = Counter(
        order.customer_id
        for order in orders
        if window_start <= order.order_date <= as_of
    )

    active = [
        ActiveCustomer(customer_id=customer_id, order_count=count)
        for customer_id, count in counts.items()
        if count >= min_orders
    ]
    active.sort(key=lambda c: (-c.order_count, c.customer_id))
    return active

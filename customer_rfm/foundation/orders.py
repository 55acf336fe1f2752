"""Order records and lookback-window intake for RFM analysis.

Raw order records arrive from an external order-management system as plain
mappings (``customer_id``, ``order_date``, ``total_amount``). This module
parses them into immutable :class:`Order` objects, drops anything outside the
trailing lookback window and counts, rather than raises on, records that
cannot be used.
"""

from __future__ import annotations

import logging
import math
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Iterable, Mapping, Protocol, Union

logger = logging.getLogger(__name__)

# Reasons a raw record is skipped during intake
MISSING_CUSTOMER_ID = "missing_customer_id"
INVALID_ORDER_DATE = "invalid_order_date"
FUTURE_ORDER_DATE = "future_order_date"
INVALID_AMOUNT = "invalid_amount"
NEGATIVE_AMOUNT = "negative_amount"


@dataclass(frozen=True)
class Order:
    """A single historical order.

    Attributes
    ----------
    customer_id:
        Unique customer identifier
    order_date:
        Calendar date the order was placed
    total_amount:
        Order total (non-negative)
    """

    customer_id: str
    order_date: date
    total_amount: Decimal

    def __post_init__(self) -> None:
        """Validate order fields."""
        if not self.customer_id:
            raise ValueError("Order customer_id cannot be empty")
        if isinstance(self.order_date, datetime) or not isinstance(
            self.order_date, date
        ):
            raise TypeError(
                f"order_date must be a date: {self.order_date!r} (customer_id={self.customer_id})"
            )
        if not isinstance(self.total_amount, Decimal):
            raise TypeError(
                f"total_amount must be a Decimal: {self.total_amount!r} (customer_id={self.customer_id})"
            )
        if self.total_amount < 0:
            raise ValueError(
                f"Order total cannot be negative: {self.total_amount} (customer_id={self.customer_id})"
            )


OrderRecord = Union[Order, Mapping[str, object]]


class OrderSource(Protocol):
    """Read-only provider of raw order records.

    Implementations may use ``since`` to push the lookback window down to
    the underlying store. Intake filters on the window again, so returning
    older records is allowed.
    """

    def fetch_orders(self, since: date) -> Iterable[OrderRecord]:
        ...


class InMemoryOrderSource:
    """Order source backed by an in-memory collection."""

    def __init__(self, records: Iterable[OrderRecord]):
        self._records = list(records)

    def fetch_orders(self, since: date) -> Iterable[OrderRecord]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)


@dataclass
class OrderIntakeReport:
    """Outcome of preparing raw records for aggregation.

    Attributes
    ----------
    accepted:
        Valid orders inside the lookback window
    outside_window:
        Valid orders dated before the window start
    skipped_by_reason:
        Invalid records keyed by skip reason
    """

    accepted: int = 0
    outside_window: int = 0
    skipped_by_reason: dict[str, int] = field(default_factory=dict)

    @property
    def skipped_records(self) -> int:
        """Total number of invalid records excluded from aggregation."""
        return sum(self.skipped_by_reason.values())


def lookback_window_start(as_of: date, years: int = 2) -> date:
    """Return the first date inside a trailing window of ``years`` years.

    Subtracts calendar years, so ``2024-02-29`` minus one year is
    ``2023-02-28``.

    Examples
    --------
    >>> lookback_window_start(date(2024, 6, 15))
    datetime.date(2022, 6, 15)
    >>> lookback_window_start(date(2024, 2, 29), years=1)
    datetime.date(2023, 2, 28)
    """
    if years < 0:
        raise ValueError(f"Lookback years cannot be negative: {years}")
    try:
        return as_of.replace(year=as_of.year - years)
    except ValueError:
        return as_of.replace(year=as_of.year - years, day=28)


def _parse_customer_id(value: object) -> str | None:
    if value is None:
        return None
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        # Integer id columns become float once pandas sees a missing value
        if value.is_integer():
            return str(int(value))
    customer_id = str(value).strip()
    return customer_id or None


def _parse_order_date(value: object) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        text = value.strip().replace("Z", "+00:00")
        try:
            return datetime.fromisoformat(text).date()
        except ValueError:
            return None
    return None


def _parse_amount(value: object) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    return amount


def parse_order(record: OrderRecord) -> tuple[Order | None, str | None]:
    """Parse one raw record.

    Returns
    -------
    tuple
        ``(order, None)`` for a usable record or ``(None, reason)`` naming
        why it was rejected.
    """
    if isinstance(record, Order):
        return record, None

    customer_id = _parse_customer_id(record.get("customer_id"))
    if customer_id is None:
        return None, MISSING_CUSTOMER_ID

    order_date = _parse_order_date(record.get("order_date"))
    if order_date is None:
        return None, INVALID_ORDER_DATE

    amount = _parse_amount(record.get("total_amount"))
    if amount is None:
        return None, INVALID_AMOUNT
    if amount < 0:
        return None, NEGATIVE_AMOUNT

    return Order(customer_id, order_date, amount), None


def prepare_orders(
    records: Iterable[OrderRecord],
    as_of: date,
    window_start: date | None = None,
) -> tuple[list[Order], OrderIntakeReport]:
    """Validate raw records and keep the orders inside the lookback window.

    Records with a missing customer id, an unparseable or future order
    date, or a missing or negative amount are skipped and counted in the
    report. They never abort the run.

    Parameters
    ----------
    records:
        Raw order mappings or :class:`Order` objects
    as_of:
        Reference date for the run; orders after it are rejected
    window_start:
        First date inside the lookback window (inclusive). ``None`` keeps
        every order up to ``as_of``.

    Returns
    -------
    tuple[list[Order], OrderIntakeReport]
        Accepted orders in input order and the intake report

    Examples
    --------
    >>> orders, report = prepare_orders(
    ...     [
    ...         {"customer_id": "C1", "order_date": "2024-05-01", "total_amount": 20},
    ...         {"customer_id": "C2", "order_date": None, "total_amount": 5},
    ...     ],
    ...     as_of=date(2024, 6, 1),
    ... )
    >>> len(orders), report.skipped_records
    (1, 1)
    """
    report = OrderIntakeReport()
    skipped: Counter[str] = Counter()
    orders: list[Order] = []

    for record in records:
        order, reason = parse_order(record)
        if order is not None and order.order_date > as_of:
            order, reason = None, FUTURE_ORDER_DATE
        if order is None:
            skipped[reason] += 1
            continue
        if window_start is not None and order.order_date < window_start:
            report.outside_window += 1
            continue
        orders.append(order)

    report.accepted = len(orders)
    report.skipped_by_reason = dict(sorted(skipped.items()))

    if report.skipped_records:
        logger.warning(
            f"Skipped {report.skipped_records} invalid order records "
            f"({', '.join(f'{k}={v}' for k, v in report.skipped_by_reason.items())}). "
            f"These records are excluded from RFM aggregation."
        )

    return orders, report

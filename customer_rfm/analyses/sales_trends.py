"""Sales trend summaries over order history.

Monthly totals with a month-over-month comparison, and a daily series with a
trailing moving average and running total. Both are descriptive companions
to RFM scoring over the same order records.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Sequence

from customer_rfm.foundation.orders import Order

# Currency precision: 2 decimal places
CURRENCY_PRECISION = Decimal("0.01")

DEFAULT_MOVING_AVERAGE_WINDOW = 7


@dataclass(frozen=True)
class MonthlySales:
    """Sales for one calendar month.

    Attributes
    ----------
    month:
        First day of the month
    total_sales:
        Sum of order totals in the month
    transaction_count:
        Number of orders in the month
    unique_customers:
        Distinct customers who ordered in the month
    average_ticket:
        total_sales / transaction_count
    previous_month_sales:
        total_sales of the preceding month in the series, None for the first
    change_from_previous:
        total_sales - previous_month_sales, None for the first
    """

    month: date
    total_sales: Decimal
    transaction_count: int
    unique_customers: int
    average_ticket: Decimal
    previous_month_sales: Decimal | None
    change_from_previous: Decimal | None

    def __post_init__(self) -> None:
        """Validate monthly sales."""
        if self.month.day != 1:
            raise ValueError(f"Month must start on day 1: {self.month}")
        if self.transaction_count <= 0:
            raise ValueError(
                f"Transaction count must be positive: {self.transaction_count} (month={self.month})"
            )
        if self.unique_customers > self.transaction_count:
            raise ValueError(
                f"Unique customers ({self.unique_customers}) cannot exceed transactions ({self.transaction_count}) (month={self.month})"
            )


@dataclass(frozen=True)
class DailySales:
    """Sales for one day with trailing aggregates.

    Attributes
    ----------
    day:
        Calendar date with at least one order
    total_sales:
        Sum of order totals on the day
    moving_average:
        Mean of total_sales over this row and up to window-1 preceding rows
    cumulative_sales:
        Running total of total_sales up to and including this row
    """

    day: date
    total_sales: Decimal
    moving_average: Decimal
    cumulative_sales: Decimal


def _quantize(value: Decimal) -> Decimal:
    return value.quantize(CURRENCY_PRECISION, rounding=ROUND_HALF_UP)


def summarize_monthly_sales(
    orders: Sequence[Order], since: date | None = None
) -> list[MonthlySales]:
    """Aggregate orders by calendar month.

    Months without orders are not emitted, so ``previous_month_sales``
    refers to the preceding month *in the series*, which may be more than
    one calendar month earlier.

    Parameters
    ----------
    orders:
        Orders to summarise
    since:
        Optional first date to include (inclusive)

    Returns
    -------
    list[MonthlySales]
        One entry per month with orders, in chronological order

    Examples
    --------
    >>> from customer_rfm.foundation.orders import Order
    >>> orders = [
    ...     Order("C1", date(2024, 1, 5), Decimal("100")),
    ...     Order("C2", date(2024, 2, 9), Decimal("150")),
    ... ]
    >>> [m.change_from_previous for m in summarize_monthly_sales(orders)]
    [None, Decimal('50.00')]
    """
    buckets: dict[date, dict] = {}
    for order in orders:
        if since is not None and order.order_date < since:
            continue
        month = order.order_date.replace(day=1)
        bucket = buckets.setdefault(
            month,
            {"total_sales": Decimal("0"), "transaction_count": 0, "customers": set()},
        )
        bucket["total_sales"] += order.total_amount
        bucket["transaction_count"] += 1
        bucket["customers"].add(order.customer_id)

    summary: list[MonthlySales] = []
    previous: Decimal | None = None
    for month in sorted(buckets):
        bucket = buckets[month]
        total = _quantize(bucket["total_sales"])
        count = bucket["transaction_count"]
        summary.append(
            MonthlySales(
                month=month,
                total_sales=total,
                transaction_count=count,
                unique_customers=len(bucket["customers"]),
                average_ticket=_quantize(total / count),
                previous_month_sales=previous,
                change_from_previous=None if previous is None else total - previous,
            )
        )
        previous = total

    return summary


def calculate_daily_sales_trend(
    orders: Sequence[Order], window: int = DEFAULT_MOVING_AVERAGE_WINDOW
) -> list[DailySales]:
    """Daily sales with a trailing moving average and cumulative total.

    The moving average is row based: it covers the current day and up to
    ``window - 1`` preceding days *that had sales*. The first rows average
    over fewer days. The average is taken in Decimal over the cent-rounded
    daily totals.

    Parameters
    ----------
    orders:
        Orders to summarise
    window:
        Number of rows in the moving average (default: 7)

    Returns
    -------
    list[DailySales]
        One entry per day with orders, in chronological order
    """
    if window < 1:
        raise ValueError(f"Moving average window must be positive: {window}")
    if not orders:
        return []

    totals: dict[date, Decimal] = {}
    for order in orders:
        totals[order.order_date] = (
            totals.get(order.order_date, Decimal("0")) + order.total_amount
        )

    trend: list[DailySales] = []
    daily_totals: list[Decimal] = []
    cumulative = Decimal("0")
    for day in sorted(totals):
        total = _quantize(totals[day])
        daily_totals.append(total)
        cumulative += total
        trailing = daily_totals[-window:]
        trend.append(
            DailySales(
                day=day,
                total_sales=total,
                moving_average=_quantize(sum(trailing) / len(trailing)),
                cumulative_sales=cumulative,
            )
        )
    return trend

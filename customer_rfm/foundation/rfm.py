"""RFM (Recency-Frequency-Monetary) segmentation.

RFM analysis segments customers based on three dimensions:
- Recency: How recently did the customer make a purchase?
- Frequency: How often do they purchase?
- Monetary: How much do they spend?

Scoring is a binary split at a population percentile (20th by default):
each dimension scores 5 when the customer falls on the favourable side of
the cutoff and 1 otherwise. The three digits are concatenated into a single
integer (5, 1, 5 -> 515).
"""

from __future__ import annotations

import multiprocessing
import os
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Sequence

import pandas as pd  # Used for continuous (interpolated) percentiles

from customer_rfm.foundation.orders import Order

HIGH_SCORE = 5
LOW_SCORE = 1

DEFAULT_PERCENTILE = 0.2


@dataclass(frozen=True)
class CustomerMetrics:
    """Aggregated order metrics for a single customer.

    Attributes
    ----------
    customer_id:
        Unique customer identifier
    last_order_date:
        Date of the most recent order in the lookback window
    order_count:
        Number of orders in the lookback window
    total_monetary_value:
        Sum of order totals in the lookback window
    days_since_last_order:
        Days from last_order_date to the run's reference date
    """

    customer_id: str
    last_order_date: date
    order_count: int
    total_monetary_value: Decimal
    days_since_last_order: int

    def __post_init__(self) -> None:
        """Validate customer metrics."""
        if self.days_since_last_order < 0:
            raise ValueError(
                f"Days since last order cannot be negative: {self.days_since_last_order} (customer_id={self.customer_id})"
            )
        if self.order_count <= 0:
            raise ValueError(
                f"Order count must be positive: {self.order_count} (customer_id={self.customer_id})"
            )
        if self.total_monetary_value < 0:
            raise ValueError(
                f"Monetary value cannot be negative: {self.total_monetary_value} (customer_id={self.customer_id})"
            )


@dataclass(frozen=True)
class PopulationThresholds:
    """Percentile cutoffs shared by every customer in one run.

    Attributes
    ----------
    recency_cutoff:
        Percentile of days_since_last_order
    frequency_cutoff:
        Percentile of order_count
    monetary_cutoff:
        Percentile of total_monetary_value
    percentile:
        Percentile used, as a fraction (0.2 = 20th)
    population_size:
        Number of customers the cutoffs were computed over
    """

    recency_cutoff: float
    frequency_cutoff: float
    monetary_cutoff: float
    percentile: float = DEFAULT_PERCENTILE
    population_size: int = 0


@dataclass(frozen=True)
class RFMScore:
    """Binary RFM scores for a single customer.

    Attributes
    ----------
    customer_id:
        Unique customer identifier
    recency_score:
        5 if among the most recent customers, else 1
    frequency_score:
        5 if at or above the frequency cutoff, else 1
    monetary_score:
        5 if at or above the monetary cutoff, else 1
    rfm_score:
        Digits concatenated in R, F, M order (e.g. 515)
    """

    customer_id: str
    recency_score: int
    frequency_score: int
    monetary_score: int
    rfm_score: int

    def __post_init__(self) -> None:
        """Validate RFM scores."""
        for score_name, score_value in [
            ("recency_score", self.recency_score),
            ("frequency_score", self.frequency_score),
            ("monetary_score", self.monetary_score),
        ]:
            if score_value not in (LOW_SCORE, HIGH_SCORE):
                raise ValueError(
                    f"{score_name} must be {LOW_SCORE} or {HIGH_SCORE}: {score_value} (customer_id={self.customer_id})"
                )
        expected_rfm = compose_rfm_score(
            self.recency_score, self.frequency_score, self.monetary_score
        )
        if self.rfm_score != expected_rfm:
            raise ValueError(
                f"rfm_score ({self.rfm_score}) does not match r/f/m scores ({expected_rfm}) (customer_id={self.customer_id})"
            )


def compose_rfm_score(recency_score: int, frequency_score: int, monetary_score: int) -> int:
    """Concatenate three single-digit scores into one integer.

    >>> compose_rfm_score(5, 1, 5)
    515
    """
    return recency_score * 100 + frequency_score * 10 + monetary_score


def _calculate_metrics_for_customers(
    customer_data_chunk: dict[str, dict], as_of: date
) -> list[CustomerMetrics]:
    """Build CustomerMetrics for a chunk of grouped customers.

    Called directly for serial runs and by multiprocessing workers for
    large populations.
    """
    metrics: list[CustomerMetrics] = []

    for customer_id, data in customer_data_chunk.items():
        last_order_date = data["last_order_date"]
        metrics.append(
            CustomerMetrics(
                customer_id=customer_id,
                last_order_date=last_order_date,
                order_count=data["order_count"],
                total_monetary_value=data["total_spend"].quantize(
                    Decimal("0.01"), rounding=ROUND_HALF_UP
                ),
                days_since_last_order=(as_of - last_order_date).days,
            )
        )

    return metrics


def aggregate_customer_metrics(
    orders: Sequence[Order],
    as_of: date,
    parallel: bool = True,
    parallel_threshold: int = 10_000_000,
    n_workers: Optional[int] = None,
) -> list[CustomerMetrics]:
    """Aggregate orders into one CustomerMetrics per customer.

    Orders are expected to be pre-filtered to the lookback window (see
    :func:`customer_rfm.foundation.orders.prepare_orders`). Customers with
    no orders are simply absent from the result.

    **Parallel Processing**: grouping is a single pass over the orders.
    Building the per-customer records is split across a process pool once
    the number of customers reaches ``parallel_threshold``; the result is
    identical to the serial path.

    Parameters
    ----------
    orders:
        Valid orders inside the lookback window
    as_of:
        Reference date for days_since_last_order
    parallel:
        Enable parallel processing (default: True)
    parallel_threshold:
        Number of customers above which to use the process pool
        (default: 10,000,000)
    n_workers:
        Number of worker processes. If None (default), uses CPU count.

    Returns
    -------
    list[CustomerMetrics]
        One record per customer, sorted by customer_id

    Raises
    ------
    ValueError
        If an order is dated after ``as_of``

    Examples
    --------
    >>> from customer_rfm.foundation.orders import Order
    >>> orders = [
    ...     Order("C1", date(2024, 5, 1), Decimal("20.00")),
    ...     Order("C1", date(2024, 5, 20), Decimal("30.00")),
    ... ]
    >>> metrics = aggregate_customer_metrics(orders, as_of=date(2024, 6, 1))
    >>> metrics[0].order_count, metrics[0].days_since_last_order
    (2, 12)
    >>> metrics[0].total_monetary_value
    Decimal('50.00')
    """
    if not orders:
        return []

    customer_data: dict[str, dict] = {}
    for order in orders:
        if order.order_date > as_of:
            raise ValueError(
                f"Order date ({order.order_date}) cannot be after as_of ({as_of}) "
                f"for customer {order.customer_id}"
            )

        data = customer_data.get(order.customer_id)
        if data is None:
            data = customer_data[order.customer_id] = {
                "last_order_date": order.order_date,
                "order_count": 0,
                "total_spend": Decimal("0"),
            }

        if order.order_date > data["last_order_date"]:
            data["last_order_date"] = order.order_date
        data["order_count"] += 1
        data["total_spend"] += order.total_amount

    num_customers = len(customer_data)
    use_parallel = parallel and num_customers >= parallel_threshold

    if use_parallel:
        if n_workers is None:
            workers = os.cpu_count() or 1
        else:
            workers = max(1, n_workers)

        customer_items = list(customer_data.items())
        chunk_size = max(1, num_customers // workers)
        chunks = []
        for i in range(0, num_customers, chunk_size):
            chunks.append((dict(customer_items[i : i + chunk_size]), as_of))

        with multiprocessing.Pool(processes=workers) as pool:
            chunk_results = pool.starmap(_calculate_metrics_for_customers, chunks)

        metrics: list[CustomerMetrics] = []
        for chunk_result in chunk_results:
            metrics.extend(chunk_result)
    else:
        metrics = _calculate_metrics_for_customers(customer_data, as_of)

    metrics.sort(key=lambda m: m.customer_id)
    return metrics


def calculate_population_thresholds(
    metrics: Sequence[CustomerMetrics],
    percentile: float = DEFAULT_PERCENTILE,
) -> PopulationThresholds:
    """Compute continuous percentile cutoffs over the customer population.

    Uses linear interpolation between closest ranks (SQL ``PERCENTILE_CONT``):
    with values sorted ascending ``x[0..n-1]`` and ``h = percentile * (n - 1)``,
    the cutoff is ``x[floor(h)] + (h - floor(h)) * (x[floor(h) + 1] - x[floor(h)])``.
    A single customer yields cutoffs equal to its own values.

    Parameters
    ----------
    metrics:
        Customer metrics for the whole population of the run
    percentile:
        Fraction between 0 and 1 (default: 0.2)

    Returns
    -------
    PopulationThresholds

    Raises
    ------
    ValueError
        If the population is empty (thresholds are undefined) or the
        percentile is outside [0, 1]

    Examples
    --------
    >>> metrics = [
    ...     CustomerMetrics("A", date(2024, 6, 1), 5, Decimal("500"), 0),
    ...     CustomerMetrics("B", date(2022, 7, 2), 1, Decimal("10"), 700),
    ... ]
    >>> t = calculate_population_thresholds(metrics)
    >>> t.recency_cutoff, t.frequency_cutoff, t.monetary_cutoff
    (140.0, 1.8, 108.0)
    """
    if not metrics:
        raise ValueError(
            "Cannot compute percentile thresholds for an empty customer population"
        )
    if not 0 <= percentile <= 1:
        raise ValueError(f"Percentile must be between 0 and 1: {percentile}")

    df = pd.DataFrame(
        {
            "days_since_last_order": [m.days_since_last_order for m in metrics],
            "order_count": [m.order_count for m in metrics],
            "total_monetary_value": [float(m.total_monetary_value) for m in metrics],
        },
        dtype=float,
    )
    cutoffs = df.quantile(percentile, interpolation="linear")

    return PopulationThresholds(
        recency_cutoff=float(cutoffs["days_since_last_order"]),
        frequency_cutoff=float(cutoffs["order_count"]),
        monetary_cutoff=float(cutoffs["total_monetary_value"]),
        percentile=percentile,
        population_size=len(metrics),
    )


def score_customer(
    metrics: CustomerMetrics, thresholds: PopulationThresholds
) -> RFMScore:
    """Score one customer against the population cutoffs."""
    recency_score = (
        HIGH_SCORE
        if metrics.days_since_last_order <= thresholds.recency_cutoff
        else LOW_SCORE
    )
    frequency_score = (
        HIGH_SCORE if metrics.order_count >= thresholds.frequency_cutoff else LOW_SCORE
    )
    monetary_score = (
        HIGH_SCORE
        if float(metrics.total_monetary_value) >= thresholds.monetary_cutoff
        else LOW_SCORE
    )
    return RFMScore(
        customer_id=metrics.customer_id,
        recency_score=recency_score,
        frequency_score=frequency_score,
        monetary_score=monetary_score,
        rfm_score=compose_rfm_score(recency_score, frequency_score, monetary_score),
    )


def score_customers(
    metrics: Sequence[CustomerMetrics],
    thresholds: PopulationThresholds | None = None,
    percentile: float = DEFAULT_PERCENTILE,
) -> list[RFMScore]:
    """Score every customer with the binary 1-or-5 RFM rule.

    - recency 5 if days_since_last_order <= recency cutoff (most recent)
    - frequency 5 if order_count >= frequency cutoff
    - monetary 5 if total_monetary_value >= monetary cutoff

    Parameters
    ----------
    metrics:
        Customer metrics for the whole population
    thresholds:
        Precomputed cutoffs. If None, computed from ``metrics`` at
        ``percentile``.
    percentile:
        Percentile used when thresholds are computed here (default: 0.2)

    Returns
    -------
    list[RFMScore]
        Sorted by rfm_score descending, ties by customer_id ascending.
        Empty when ``metrics`` is empty.

    Examples
    --------
    >>> metrics = [
    ...     CustomerMetrics("A", date(2024, 6, 1), 5, Decimal("500"), 0),
    ...     CustomerMetrics("B", date(2022, 7, 2), 1, Decimal("10"), 700),
    ... ]
    >>> [(s.customer_id, s.rfm_score) for s in score_customers(metrics)]
    [('A', 555), ('B', 111)]
    """
    if not metrics:
        return []

    if thresholds is None:
        thresholds = calculate_population_thresholds(metrics, percentile=percentile)

    scores = [score_customer(m, thresholds) for m in metrics]
    scores.sort(key=lambda s: (-s.rfm_score, s.customer_id))
    return scores

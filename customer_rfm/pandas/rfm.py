"""Pandas DataFrame adapters for RFM results."""

from datetime import date
from typing import Optional, Sequence

import pandas as pd  # type: ignore

from customer_rfm.config import RFMSettings
from customer_rfm.foundation.rfm import CustomerMetrics, RFMScore
from customer_rfm.pipeline import run_rfm_segmentation
from ._utils import decimal_to_float
from .orders import DataFrameOrderSource

METRICS_COLUMNS = [
    "customer_id",
    "last_order_date",
    "order_count",
    "total_monetary_value",
    "days_since_last_order",
]

SCORE_COLUMNS = [
    "customer_id",
    "recency_score",
    "frequency_score",
    "monetary_score",
    "rfm_score",
]


def metrics_to_dataframe(metrics: Sequence[CustomerMetrics]) -> pd.DataFrame:
    """Convert customer metrics to pandas DataFrame.

    Args:
        metrics: Sequence of CustomerMetrics objects

    Returns:
        DataFrame with columns: customer_id, last_order_date, order_count,
        total_monetary_value, days_since_last_order; sorted by customer_id
    """
    if not metrics:
        return pd.DataFrame(columns=METRICS_COLUMNS)

    rows = [
        {
            "customer_id": m.customer_id,
            "last_order_date": m.last_order_date,
            "order_count": m.order_count,
            "total_monetary_value": decimal_to_float(m.total_monetary_value),
            "days_since_last_order": m.days_since_last_order,
        }
        for m in metrics
    ]

    df = pd.DataFrame(rows)
    df = df.sort_values("customer_id").reset_index(drop=True)
    return df


def scores_to_dataframe(
    scores: Sequence[RFMScore],
    metrics: Optional[Sequence[CustomerMetrics]] = None,
) -> pd.DataFrame:
    """Convert RFM scores to pandas DataFrame, keeping their order.

    Args:
        scores: Sequence of RFMScore objects (already in output order)
        metrics: Optional metrics to join on customer_id

    Returns:
        DataFrame with score columns, followed by metric columns when
        ``metrics`` is given

    Example:
        >>> result = run_rfm_segmentation(records)
        >>> df = scores_to_dataframe(result.scores, result.metrics)
        >>> champions = df[df['rfm_score'] == 555]
    """
    columns = list(SCORE_COLUMNS)
    if metrics is not None:
        columns += METRICS_COLUMNS[1:]

    if not scores:
        return pd.DataFrame(columns=columns)

    df = pd.DataFrame(
        [
            {
                "customer_id": s.customer_id,
                "recency_score": s.recency_score,
                "frequency_score": s.frequency_score,
                "monetary_score": s.monetary_score,
                "rfm_score": s.rfm_score,
            }
            for s in scores
        ]
    )

    if metrics is not None:
        df = df.merge(
            metrics_to_dataframe(metrics), on="customer_id", how="left", sort=False
        )

    return df[columns].reset_index(drop=True)


def run_rfm_segmentation_df(
    orders_df: pd.DataFrame,
    as_of: Optional[date] = None,
    settings: Optional[RFMSettings] = None,
    customer_id_col: str = "customer_id",
    order_date_col: str = "order_date",
    total_amount_col: str = "total_amount",
) -> pd.DataFrame:
    """Run RFM segmentation on an orders DataFrame.

    Convenience function that combines intake, scoring and conversion.

    Args:
        orders_df: DataFrame with one row per order
        as_of: Reference date (default: today)
        settings: Run settings (default: 2-year window, 20th percentile)
        *_col: Column name mappings for flexibility

    Returns:
        DataFrame of scores joined with metrics, sorted by rfm_score
        descending then customer_id

    Example:
        >>> orders_df = pd.read_parquet('orders.parquet')
        >>> rfm_df = run_rfm_segmentation_df(orders_df, date(2024, 12, 31))
        >>> at_risk = rfm_df[rfm_df['recency_score'] == 1]
    """
    source = DataFrameOrderSource(
        orders_df,
        customer_id_col=customer_id_col,
        order_date_col=order_date_col,
        total_amount_col=total_amount_col,
    )
    result = run_rfm_segmentation(source, settings=settings, as_of=as_of)
    return scores_to_dataframe(result.scores, result.metrics)

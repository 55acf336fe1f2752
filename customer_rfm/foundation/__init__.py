"""Foundational building blocks for RFM segmentation.

This package exposes the order intake layer (validation and lookback-window
filtering) and the RFM aggregation, threshold and scoring stages.
"""

from .orders import (
    InMemoryOrderSource,
    Order,
    OrderIntakeReport,
    OrderSource,
    lookback_window_start,
    prepare_orders,
)
from .rfm import (
    CustomerMetrics,
    PopulationThresholds,
    RFMScore,
    aggregate_customer_metrics,
    calculate_population_thresholds,
    score_customers,
)

__all__ = [
    "InMemoryOrderSource",
    "Order",
    "OrderIntakeReport",
    "OrderSource",
    "lookback_window_start",
    "prepare_orders",
    "CustomerMetrics",
    "PopulationThresholds",
    "RFMScore",
    "aggregate_customer_metrics",
    "calculate_population_thresholds",
    "score_customers",
]

"""Pandas DataFrame adapters for RFM segmentation components."""

from .orders import (
    DataFrameOrderSource,
    orders_from_dataframe,
)
from .rfm import (
    metrics_to_dataframe,
    scores_to_dataframe,
    run_rfm_segmentation_df,
)

__all__ = [
    # Order intake adapters
    "DataFrameOrderSource",
    "orders_from_dataframe",
    # RFM result adapters
    "metrics_to_dataframe",
    "scores_to_dataframe",
    "run_rfm_segmentation_df",
]

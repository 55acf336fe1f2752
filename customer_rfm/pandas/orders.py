"""Pandas DataFrame adapters for order intake."""

from datetime import date
from typing import Dict, Iterator, List

import pandas as pd  # type: ignore

from ._utils import missing_to_none


def orders_from_dataframe(
    orders_df: pd.DataFrame,
    customer_id_col: str = "customer_id",
    order_date_col: str = "order_date",
    total_amount_col: str = "total_amount",
) -> List[Dict[str, object]]:
    """Convert an orders DataFrame to raw order records.

    Missing values (NaN, NaT, None) are passed through as ``None`` so that
    order intake counts the row as skipped instead of failing the run.

    Args:
        orders_df: DataFrame with one row per order
        *_col: Column name mappings for flexibility

    Returns:
        List of mappings with keys customer_id, order_date, total_amount

    Raises:
        ValueError: If DataFrame is missing required columns

    Example:
        >>> orders_df = pd.read_csv('orders.csv', parse_dates=['order_date'])
        >>> records = orders_from_dataframe(orders_df)
        >>> result = run_rfm_segmentation(records)

    Example with custom column names:
        >>> records = orders_from_dataframe(
        ...     df,
        ...     customer_id_col='client_id',
        ...     total_amount_col='revenue'
        ... )
    """
    column_mapping = {
        "customer_id": customer_id_col,
        "order_date": order_date_col,
        "total_amount": total_amount_col,
    }

    missing_cols = set(column_mapping.values()) - set(orders_df.columns)
    if missing_cols:
        raise ValueError(f"DataFrame missing required columns: {missing_cols}")

    if orders_df.empty:
        return []

    subset = orders_df[list(column_mapping.values())]
    return [
        {
            field: missing_to_none(record[column])
            for field, column in column_mapping.items()
        }
        for record in subset.to_dict("records")
    ]


class DataFrameOrderSource:
    """Order source backed by a pandas DataFrame.

    Rows dated before ``since`` are filtered in pandas before conversion.
    Rows whose date is missing or not parseable are kept so intake can
    count them.
    """

    def __init__(
        self,
        orders_df: pd.DataFrame,
        customer_id_col: str = "customer_id",
        order_date_col: str = "order_date",
        total_amount_col: str = "total_amount",
    ):
        self.orders_df = orders_df
        self.customer_id_col = customer_id_col
        self.order_date_col = order_date_col
        self.total_amount_col = total_amount_col

    def fetch_orders(self, since: date) -> Iterator[Dict[str, object]]:
        df = self.orders_df
        if self.order_date_col in df.columns and not df.empty:
            parsed = pd.to_datetime(df[self.order_date_col], errors="coerce")
            # Mixed offsets leave an object column; intake filters those rows
            if pd.api.types.is_datetime64_any_dtype(parsed):
                if getattr(parsed.dt, "tz", None) is not None:
                    parsed = parsed.dt.tz_localize(None)
                keep = parsed.isna() | (parsed.dt.normalize() >= pd.Timestamp(since))
                df = df[keep]
        return iter(
            orders_from_dataframe(
                df,
                customer_id_col=self.customer_id_col,
                order_date_col=self.order_date_col,
                total_amount_col=self.total_amount_col,
            )
        )

"""Tests for RFM pandas adapters."""

from datetime import date
from decimal import Decimal

import pandas as pd
import pytest

from customer_rfm import RFMSettings
from customer_rfm.foundation.rfm import CustomerMetrics, RFMScore
from customer_rfm.pandas import (
    DataFrameOrderSource,
    metrics_to_dataframe,
    orders_from_dataframe,
    run_rfm_segmentation_df,
    scores_to_dataframe,
)

AS_OF = date(2024, 6, 1)


@pytest.fixture
def orders_df():
    return pd.DataFrame(
        {
            "customer_id": ["A", "A", "A", "A", "A", "B", "OLD"],
            "order_date": pd.to_datetime(
                [
                    "2024-06-01",
                    "2024-05-22",
                    "2024-05-12",
                    "2024-05-02",
                    "2024-04-22",
                    "2022-07-02",
                    "2021-01-01",
                ]
            ),
            "total_amount": [100.0, 100.0, 100.0, 100.0, 100.0, 10.0, 999.0],
        }
    )


class TestOrdersFromDataFrame:
    """Test orders_from_dataframe conversion."""

    def test_converts_rows_to_records(self, orders_df):
        records = orders_from_dataframe(orders_df)
        assert len(records) == 7
        assert records[0]["customer_id"] == "A"
        assert records[0]["total_amount"] == 100.0

    def test_missing_values_become_none(self):
        df = pd.DataFrame(
            {
                "customer_id": ["C1", None],
                "order_date": pd.to_datetime(["2024-01-01", None]),
                "total_amount": [float("nan"), 5.0],
            }
        )
        records = orders_from_dataframe(df)
        assert records[0]["total_amount"] is None
        assert records[1]["customer_id"] is None
        assert records[1]["order_date"] is None

    def test_custom_column_names(self):
        df = pd.DataFrame(
            {"client_id": ["C1"], "placed_on": ["2024-01-01"], "revenue": [5.0]}
        )
        records = orders_from_dataframe(
            df,
            customer_id_col="client_id",
            order_date_col="placed_on",
            total_amount_col="revenue",
        )
        assert records == [
            {"customer_id": "C1", "order_date": "2024-01-01", "total_amount": 5.0}
        ]

    def test_missing_columns_raises_error(self):
        df = pd.DataFrame({"customer_id": ["C1"]})
        with pytest.raises(ValueError, match="missing required columns"):
            orders_from_dataframe(df)

    def test_empty_dataframe(self):
        df = pd.DataFrame(columns=["customer_id", "order_date", "total_amount"])
        assert orders_from_dataframe(df) == []


class TestDataFrameOrderSource:
    """Test DataFrameOrderSource window pushdown."""

    def test_filters_rows_before_since(self, orders_df):
        source = DataFrameOrderSource(orders_df)
        records = list(source.fetch_orders(date(2022, 6, 1)))
        assert {r["customer_id"] for r in records} == {"A", "B"}

    def test_keeps_rows_with_missing_dates(self):
        df = pd.DataFrame(
            {
                "customer_id": ["C1", "C2"],
                "order_date": pd.to_datetime(["2020-01-01", None]),
                "total_amount": [1.0, 2.0],
            }
        )
        records = list(DataFrameOrderSource(df).fetch_orders(date(2022, 1, 1)))
        assert [r["customer_id"] for r in records] == ["C2"]

    def test_string_dates(self):
        df = pd.DataFrame(
            {
                "customer_id": ["C1", "C2"],
                "order_date": ["2021-12-31", "2022-01-01"],
                "total_amount": [1.0, 2.0],
            }
        )
        records = list(DataFrameOrderSource(df).fetch_orders(date(2022, 1, 1)))
        assert [r["customer_id"] for r in records] == ["C2"]


class TestMetricsToDataFrame:
    """Test metrics_to_dataframe conversion."""

    def test_empty_input_returns_empty_dataframe(self):
        df = metrics_to_dataframe([])
        assert df.empty
        assert list(df.columns) == [
            "customer_id",
            "last_order_date",
            "order_count",
            "total_monetary_value",
            "days_since_last_order",
        ]

    def test_sorted_by_customer_id(self):
        metrics = [
            CustomerMetrics("C2", date(2024, 5, 1), 2, Decimal("20.00"), 31),
            CustomerMetrics("C1", date(2024, 5, 30), 1, Decimal("5.50"), 2),
        ]
        df = metrics_to_dataframe(metrics)
        assert list(df["customer_id"]) == ["C1", "C2"]
        assert df.iloc[0]["total_monetary_value"] == 5.5  # Decimal converted to float


class TestScoresToDataFrame:
    """Test scores_to_dataframe conversion."""

    def test_keeps_score_order(self):
        scores = [RFMScore("Z", 5, 5, 5, 555), RFMScore("A", 1, 1, 1, 111)]
        df = scores_to_dataframe(scores)
        assert list(df["customer_id"]) == ["Z", "A"]
        assert list(df.columns) == [
            "customer_id",
            "recency_score",
            "frequency_score",
            "monetary_score",
            "rfm_score",
        ]

    def test_joins_metrics(self):
        scores = [RFMScore("Z", 5, 5, 5, 555), RFMScore("A", 1, 1, 1, 111)]
        metrics = [
            CustomerMetrics("A", date(2024, 1, 1), 1, Decimal("1.00"), 152),
            CustomerMetrics("Z", date(2024, 6, 1), 9, Decimal("900.00"), 0),
        ]
        df = scores_to_dataframe(scores, metrics)
        assert list(df["customer_id"]) == ["Z", "A"]
        assert list(df["order_count"]) == [9, 1]
        assert "days_since_last_order" in df.columns

    def test_empty_with_metrics_columns(self):
        df = scores_to_dataframe([], [])
        assert df.empty
        assert "rfm_score" in df.columns
        assert "order_count" in df.columns


class TestRunRFMSegmentationDF:
    """Test run_rfm_segmentation_df end to end."""

    def test_two_customer_scenario(self, orders_df):
        df = run_rfm_segmentation_df(orders_df, as_of=AS_OF)

        assert list(df["customer_id"]) == ["A", "B"]
        assert list(df["rfm_score"]) == [555, 111]
        assert list(df["order_count"]) == [5, 1]
        assert df.iloc[1]["days_since_last_order"] == 700

    def test_settings_are_applied(self, orders_df):
        df = run_rfm_segmentation_df(
            orders_df, as_of=AS_OF, settings=RFMSettings(lookback_years=1)
        )
        assert list(df["customer_id"]) == ["A"]

    def test_invalid_rows_are_skipped(self):
        df = pd.DataFrame(
            {
                "customer_id": ["C1", "C2", "C3"],
                "order_date": pd.to_datetime(["2024-05-01", None, "2024-05-01"]),
                "total_amount": [10.0, 10.0, -10.0],
            }
        )
        result = run_rfm_segmentation_df(df, as_of=AS_OF)
        assert list(result["customer_id"]) == ["C1"]
        assert list(result["rfm_score"]) == [555]

    def test_integer_ids_with_missing_values(self):
        """A missing id turns the column to float; ids keep their integer form."""
        df = pd.DataFrame(
            {
                "customer_id": [1, 1, 2, None],
                "order_date": pd.to_datetime(
                    ["2024-05-01", "2024-05-20", "2023-01-01", "2024-05-01"]
                ),
                "total_amount": [50.0, 50.0, 10.0, 10.0],
            }
        )
        result = run_rfm_segmentation_df(df, as_of=AS_OF)
        assert list(result["customer_id"]) == ["1", "2"]
        assert list(result["order_count"]) == [2, 1]

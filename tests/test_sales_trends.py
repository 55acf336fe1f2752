"""Tests for monthly and daily sales trend summaries."""

from datetime import date
from decimal import Decimal

import pytest

from customer_rfm.analyses.sales_trends import (
    MonthlySales,
    calculate_daily_sales_trend,
    summarize_monthly_sales,
)
from customer_rfm.foundation.orders import Order


def _order(customer_id, day, amount):
    return Order(customer_id, day, Decimal(str(amount)))


class TestMonthlySales:
    """Test MonthlySales validation."""

    def test_month_must_start_on_first(self):
        with pytest.raises(ValueError, match="Month must start on day 1"):
            MonthlySales(date(2024, 1, 2), Decimal("1"), 1, 1, Decimal("1"), None, None)

    def test_unique_customers_cannot_exceed_transactions(self):
        with pytest.raises(ValueError, match="cannot exceed transactions"):
            MonthlySales(date(2024, 1, 1), Decimal("1"), 1, 2, Decimal("1"), None, None)


class TestSummarizeMonthlySales:
    """Test summarize_monthly_sales."""

    def test_empty_input(self):
        assert summarize_monthly_sales([]) == []

    def test_groups_by_month_with_previous_and_change(self):
        orders = [
            _order("C1", date(2024, 1, 5), 100),
            _order("C2", date(2024, 1, 20), 50),
            _order("C1", date(2024, 1, 31), 30),
            _order("C3", date(2024, 2, 1), 120),
        ]
        summary = summarize_monthly_sales(orders)

        assert [m.month for m in summary] == [date(2024, 1, 1), date(2024, 2, 1)]
        jan, feb = summary
        assert jan.total_sales == Decimal("180.00")
        assert jan.transaction_count == 3
        assert jan.unique_customers == 2
        assert jan.average_ticket == Decimal("60.00")
        assert jan.previous_month_sales is None
        assert jan.change_from_previous is None
        assert feb.previous_month_sales == Decimal("180.00")
        assert feb.change_from_previous == Decimal("-60.00")

    def test_previous_refers_to_previous_month_in_series(self):
        """Gaps are not filled: March compares against January."""
        orders = [
            _order("C1", date(2024, 1, 5), 10),
            _order("C1", date(2024, 3, 5), 25),
        ]
        summary = summarize_monthly_sales(orders)
        assert summary[1].month == date(2024, 3, 1)
        assert summary[1].previous_month_sales == Decimal("10.00")
        assert summary[1].change_from_previous == Decimal("15.00")

    def test_since_filters_earlier_orders(self):
        orders = [
            _order("C1", date(2023, 12, 31), 999),
            _order("C1", date(2024, 1, 1), 10),
        ]
        summary = summarize_monthly_sales(orders, since=date(2024, 1, 1))
        assert len(summary) == 1
        assert summary[0].total_sales == Decimal("10.00")

    def test_unordered_input(self):
        orders = [
            _order("C1", date(2024, 3, 1), 3),
            _order("C1", date(2024, 1, 1), 1),
            _order("C1", date(2024, 2, 1), 2),
        ]
        assert [m.total_sales for m in summarize_monthly_sales(orders)] == [
            Decimal("1.00"),
            Decimal("2.00"),
            Decimal("3.00"),
        ]


class TestCalculateDailySalesTrend:
    """Test calculate_daily_sales_trend."""

    def test_empty_input(self):
        assert calculate_daily_sales_trend([]) == []

    def test_invalid_window_raises_error(self):
        with pytest.raises(ValueError, match="window must be positive"):
            calculate_daily_sales_trend([_order("C1", date(2024, 1, 1), 1)], window=0)

    def test_daily_totals_and_cumulative(self):
        orders = [
            _order("C1", date(2024, 1, 2), 20),
            _order("C2", date(2024, 1, 1), 10),
            _order("C3", date(2024, 1, 2), 5.5),
        ]
        trend = calculate_daily_sales_trend(orders)

        assert [d.day for d in trend] == [date(2024, 1, 1), date(2024, 1, 2)]
        assert [d.total_sales for d in trend] == [Decimal("10.00"), Decimal("25.50")]
        assert [d.cumulative_sales for d in trend] == [
            Decimal("10.00"),
            Decimal("35.50"),
        ]

    def test_moving_average_uses_trailing_rows(self):
        orders = [_order("C1", date(2024, 1, day), day * 10) for day in range(1, 6)]
        trend = calculate_daily_sales_trend(orders, window=3)

        assert [d.moving_average for d in trend] == [
            Decimal("10.00"),  # 10
            Decimal("15.00"),  # (10 + 20) / 2
            Decimal("20.00"),  # (10 + 20 + 30) / 3
            Decimal("30.00"),  # (20 + 30 + 40) / 3
            Decimal("40.00"),  # (30 + 40 + 50) / 3
        ]

    def test_moving_average_is_exact_over_cent_totals(self):
        """Averages of cent amounts round half-up from the exact Decimal mean."""
        orders = [
            _order("C1", date(2024, 1, 1), "0.10"),
            _order("C1", date(2024, 1, 2), "0.20"),
            _order("C1", date(2024, 1, 3), "0.05"),
        ]
        trend = calculate_daily_sales_trend(orders, window=2)

        # (0.20 + 0.05) / 2 = 0.125 exactly, which rounds half-up to 0.13
        assert [d.moving_average for d in trend] == [
            Decimal("0.10"),
            Decimal("0.15"),
            Decimal("0.13"),
        ]

    def test_default_window_is_seven_rows(self):
        orders = [_order("C1", date(2024, 1, day), 7) for day in range(1, 11)]
        orders.append(_order("C1", date(2024, 1, 10), 70))
        trend = calculate_daily_sales_trend(orders)
        # Last row: six days of 7 plus one day of 77, over 7 rows
        assert trend[-1].moving_average == Decimal("17.00")

"""Descriptive analyses over order history."""

from .active_customers import ActiveCustomer, find_active_customers
from .sales_trends import (
    DailySales,
    MonthlySales,
    calculate_daily_sales_trend,
    summarize_monthly_sales,
)

__all__ = [
    "ActiveCustomer",
    "find_active_customers",
    "DailySales",
    "MonthlySales",
    "calculate_daily_sales_trend",
    "summarize_monthly_sales",
]

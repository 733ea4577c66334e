"""
Tests for the Metric Calculator.
"""

import math

import numpy as np
import pandas as pd
import pytest

from market_insights.cleaning import normalize_sheet
from market_insights.metrics import (
    DECLINING,
    GROWING,
    compute_metrics,
    metric_set,
    safe_divide,
    turnover_rate,
)


class TestGuards:
    """Division by zero yields 0, never NaN or inf."""

    def test_safe_divide_scalar(self):
        assert safe_divide(10, 0) == 0.0
        assert safe_divide(10, 4) == 2.5

    def test_safe_divide_series_keeps_index(self):
        num = pd.Series([1.0, 2.0, 3.0], index=["a", "b", "c"])
        den = pd.Series([1.0, 0.0, 2.0], index=["a", "b", "c"])
        out = safe_divide(num, den)
        assert out.tolist() == [1.0, 0.0, 1.5]
        assert list(out.index) == ["a", "b", "c"]

    def test_turnover_with_zero_months_on_hand(self):
        assert turnover_rate(0.0) == 0.0
        assert not math.isinf(turnover_rate(0.0))

    def test_turnover_rate_values(self):
        out = turnover_rate(pd.Series([2.0, 0.0, -1.0, np.nan, 0.5]))
        assert out.tolist() == [6.0, 0.0, 0.0, 0.0, 24.0]

    def test_revenue_per_unit_with_zero_units(self, month_row, last_months):
        record = month_row("CA", [0] * 12, sku="A")
        revenue = month_row("CA", [100] * 12, sku="A")
        m = metric_set(record, last_months(6), revenue_record=revenue)
        assert m["RevenuePerUnit"] == 0.0
        assert m["RecentRevenue"] == 600.0


class TestRecentWindow:
    """Recent-window sums and rates."""

    def test_flat_market_scenario(self, month_row, last_months):
        record = month_row("CA", [100] * 6)
        m = metric_set(record, last_months(6))
        assert m["RecentSales"] == 600
        assert m["SalesRate"] == 100
        assert m["SalesConsistency"] == 1.0

    def test_missing_periods_count_as_zero(self, last_months):
        record = {"Market": "CA", "December": 30}
        m = metric_set(record, last_months(3))
        assert m["RecentSales"] == 30
        assert m["SalesRate"] == 10
        assert m["SalesConsistency"] == pytest.approx(1 / 3)

    def test_consistency_counts_positive_periods(self, month_row, last_months):
        record = month_row("CA", [10, 0, 20, 0, 30, 40], sku="A")
        m = metric_set(record, last_months(6))
        assert m["SalesConsistency"] == pytest.approx(4 / 6)

    def test_revenue_metrics(self, month_row, last_months):
        record = month_row("CA", [10, 0, 20, 0, 30, 40], sku="A")
        revenue = month_row("CA", [500, 0, 500, 0, 100, 100], sku="A")
        m = metric_set(record, last_months(6), revenue_record=revenue)
        assert m["RecentRevenue"] == 1200
        assert m["RevenueRate"] == 200
        assert m["RevenuePerUnit"] == 12


class TestTrend:
    """Halves comparison; ties count as growing."""

    def test_revenue_series_takes_priority(self, month_row, last_months):
        record = month_row("CA", [10, 0, 20, 0, 30, 40], sku="A")
        revenue = month_row("CA", [500, 0, 500, 0, 100, 100], sku="A")
        m = metric_set(record, last_months(6), revenue_record=revenue)
        # units grew (30 -> 70) but revenue fell (1000 -> 200)
        assert m["TrendDirection"] == DECLINING

    def test_sales_series_without_revenue(self, month_row, last_months):
        record = month_row("CA", [10, 0, 20, 0, 30, 40], sku="A")
        m = metric_set(record, last_months(6))
        assert m["TrendDirection"] == GROWING

    def test_tie_is_growing(self, month_row, last_months):
        record = month_row("CA", [5, 5, 5, 5, 5, 5])
        assert metric_set(record, last_months(6))["TrendDirection"] == GROWING

    def test_odd_window_split(self, month_row, last_months):
        # 9 periods: first half 4, second half 5
        record = month_row("CA", [10, 10, 10, 10, 9, 9, 9, 9, 0])
        m = metric_set(record, last_months(9))
        assert m["FirstHalfSales"] == 40
        assert m["SecondHalfSales"] == 36
        assert m["TrendDirection"] == DECLINING
        assert m["FirstHalfAvg"] == 10
        assert m["SecondHalfAvg"] == pytest.approx(7.2)

    def test_unmatched_revenue_rows_fall_back_to_units(self, month_row, last_months):
        units = normalize_sheet(
            [
                month_row("CA", [1, 1, 1, 5, 5, 5], sku="A"),
                month_row("CA", [1, 1, 1, 5, 5, 5], sku="B"),
            ],
            "sku",
        )
        revenue = normalize_sheet([month_row("CA", [9, 9, 9, 1, 1, 1], sku="A")], "sku")
        out = compute_metrics(units, last_months(6), revenue).set_index("SKU")
        assert out.loc["A", "TrendDirection"] == DECLINING
        assert out.loc["B", "TrendDirection"] == GROWING
        assert out.loc["B", "RecentRevenue"] == 0.0


class TestInventoryDepth:
    """Months on hand and turnover."""

    def test_months_on_hand_from_inventory_sheet(self, month_row, last_months):
        record = month_row("CA", [100] * 6, sku="A")
        inventory = {"Inventory": 50, "MonthsOfInventory": 3}
        m = metric_set(record, last_months(6), inventory_record=inventory)
        assert m["Inventory"] == 50
        assert m["MonthsOnHand"] == 3
        assert m["TurnoverRate"] == 4

    def test_months_on_hand_derived_when_missing(self, month_row, last_months):
        record = month_row("CA", [100] * 6, sku="A")
        m = metric_set(record, last_months(6), inventory_record={"Inventory": 250})
        assert m["MonthsOnHand"] == 2.5
        assert m["TurnoverRate"] == pytest.approx(4.8)

    def test_no_sales_means_zero_depth(self, month_row, last_months):
        record = month_row("CA", [0] * 6, sku="A")
        m = metric_set(record, last_months(6), inventory_record={"Inventory": 10})
        assert m["MonthsOnHand"] == 0
        assert m["TurnoverRate"] == 0

    def test_frame_keeps_one_row_per_record(self, month_row, last_months):
        units = normalize_sheet(
            [
                month_row("CA", [1] * 12, sku="A"),
                month_row("OR", [2] * 12, sku="A"),
            ],
            "sku",
        )
        inventory = normalize_sheet(
            [
                {"Market": "CA", "SKU": "A", "Inventory": 3, "Inventory On Hand": 1},
                {"Market": "OR", "SKU": "A", "Inventory": -4, "Inventory On Hand": 0},
            ],
            "sku_inventory",
        )
        out = compute_metrics(units, last_months(3), inventory=inventory)
        assert len(out) == 2
        assert out["Inventory"].tolist() == [3, -4]
        assert out["WindowLength"].tolist() == [3, 3]

    def test_empty_window_rejected(self, month_row):
        units = normalize_sheet([month_row("CA", [1] * 12)], "market")
        with pytest.raises(ValueError):
            compute_metrics(units, [])

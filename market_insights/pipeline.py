"""
End-to-end view builder: normalized snapshot + filter parameters -> every
table the dashboard renders. Thresholds and classifications are computed
over the full market population first; the market / SKU / inventory
selections only narrow what is returned.
"""
from typing import Any, Mapping, Optional, Sequence

import pandas as pd

from .aggregation import (
    add_share_columns,
    category_counts,
    concentration_curve,
    market_totals,
    monthly_pivot,
    revenue_concentration,
    sku_count_by_market,
    top_n_by_metric,
    with_period_total,
)
from .classification import assign_health_status, assign_performance_category, detect_opportunities
from .cleaning import MultiSectionLayout, Snapshot, normalize_workbook
from .config import COL_MARKET, COL_SKU, COL_INVENTORY, COL_MONTHS_OF_INVENTORY, TOP_N_DEFAULT
from .filters import FilterParams, filter_min_inventory, filter_opportunities, filter_records
from .logger import logger
from .metrics import compute_metrics
from .periods import PeriodCalendar, recent_window


def to_records(df: pd.DataFrame) -> list[dict]:
    """Plain list of row dicts with NaN replaced by None."""
    return df.astype(object).where(df.notna(), None).to_dict("records")


def sku_metrics(snapshot: Snapshot, params: FilterParams) -> pd.DataFrame:
    """
    MetricSet per (Market, SKU) over the recent window, plus Units and
    Revenue totalled over the selected periods.
    """
    window = recent_window(snapshot.calendar, params.recent_window)
    metrics = compute_metrics(
        snapshot.sku_units, window, snapshot.sku_dollars, snapshot.sku_inventory
    )
    keys = [COL_MARKET, COL_SKU]
    units = with_period_total(snapshot.sku_units, params.periods, "Units")[keys + ["Units"]]
    revenue = with_period_total(snapshot.sku_dollars, params.periods, "Revenue")[keys + ["Revenue"]]
    out = metrics.merge(units, on=keys, how="left").merge(revenue, on=keys, how="left")
    out[["Units", "Revenue"]] = out[["Units", "Revenue"]].fillna(0.0)
    return out


def _sku_table(
    records: pd.DataFrame,
    params: FilterParams,
    inventory: Optional[pd.DataFrame],
    top_n: int
) -> pd.DataFrame:
    table = with_period_total(filter_records(records, params), params.periods, "Total")
    keep = [COL_MARKET, COL_SKU, "Total"]
    table = add_share_columns(table[keep], "Total")
    if inventory is not None and not inventory.empty:
        cols = [c for c in (COL_INVENTORY, COL_MONTHS_OF_INVENTORY) if c in inventory.columns]
        table = table.merge(inventory[[COL_MARKET, COL_SKU] + cols], on=[COL_MARKET, COL_SKU], how="left")
    return top_n_by_metric(table, "Total", n=top_n)


def build_views(
    snapshot: Snapshot,
    params: Optional[FilterParams] = None,
    top_n: int = TOP_N_DEFAULT
) -> dict[str, Any]:
    """
    Compute every dashboard view for one filter selection.
    """
    params = (params or FilterParams()).resolve(snapshot.calendar)
    periods = list(params.periods)

    # 1) Market-level trends
    market_units = filter_records(snapshot.market_units, params)
    market_dollars = filter_records(snapshot.market_dollars, params)
    views = {
        "market_units": market_totals(market_units, periods, snapshot.market_inventory),
        "market_units_monthly": monthly_pivot(market_units, periods),
        "market_dollars": market_totals(market_dollars, periods),
        "market_dollars_monthly": monthly_pivot(market_dollars, periods),
    }

    # 2) SKU-level trends
    views["sku_units_top"] = _sku_table(snapshot.sku_units, params, snapshot.sku_inventory, top_n)
    views["sku_dollars_top"] = _sku_table(snapshot.sku_dollars, params, None, top_n)
    views["sku_count_by_market"] = sku_count_by_market(filter_records(snapshot.sku_units, params))

    # 3) Metrics and classifications over the full population
    metrics = sku_metrics(snapshot, params)
    performance = assign_performance_category(metrics, len(periods))
    health = assign_health_status(metrics)
    opportunities = detect_opportunities(metrics, params.recent_window)

    # 4) Narrow to the selection
    performance = filter_records(performance, params).reset_index(drop=True)
    health = filter_min_inventory(filter_records(health, params), params).reset_index(drop=True)
    opportunities = filter_min_inventory(filter_records(opportunities, params), params)
    opportunities = filter_opportunities(opportunities, params).reset_index(drop=True)

    views["performance"] = performance
    views["performance_counts"] = category_counts(performance, "Category")
    views["inventory_health"] = health
    views["health_counts"] = category_counts(health, "HealthStatus")
    views["opportunities"] = opportunities
    views["opportunity_type_counts"] = category_counts(opportunities, "Type")
    views["impact_counts"] = category_counts(opportunities, "Impact")

    # 5) Revenue concentration over the selected SKUs
    selected = filter_records(metrics, params)
    views["concentration"] = revenue_concentration(selected, "Revenue", "Units")
    views["concentration_curve"] = concentration_curve(selected[[COL_MARKET, COL_SKU, "Revenue"]])

    logger.info(
        f"Built views for market={params.market} sku={params.sku} "
        f"periods={len(periods)} window={params.recent_window}"
    )
    return views


def run(
    sheets: Sequence[Sequence[Mapping[str, Any]]],
    params: Optional[FilterParams] = None,
    calendar: Optional[PeriodCalendar] = None,
    layout: Optional[MultiSectionLayout] = None
) -> dict[str, Any]:
    """Normalize a raw six-sheet workbook and build all views."""
    snapshot = normalize_workbook(sheets, calendar, layout)
    return build_views(snapshot, params)

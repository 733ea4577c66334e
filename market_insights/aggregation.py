from dataclasses import dataclass
from typing import Sequence

import numpy as np
import pandas as pd

from .cleaning import computed_total
from .config import (
    COL_MARKET,
    COL_SKU,
    COL_INVENTORY,
    COL_MONTHS_ON_HAND,
    CONCENTRATION_TARGET,
    TOP_N_DEFAULT,
)
from .logger import logger
from .metrics import safe_divide


def group_totals(df: pd.DataFrame, key: str, value: str) -> pd.DataFrame:
    """
    Sum `value` by `key`, largest first. Ties keep first-appearance order.
    """
    if df.empty:
        return pd.DataFrame(columns=[key, value])
    agg = df.groupby(key, as_index=False, sort=False)[value].sum()
    return agg.sort_values(value, ascending=False, kind="stable").reset_index(drop=True)


def top_n_by_metric(
    df: pd.DataFrame,
    metric: str,
    n: int = TOP_N_DEFAULT,
    asc: bool = False
) -> pd.DataFrame:
    """
    Return the top-n rows sorted by a given metric.
    """
    return df.sort_values(metric, ascending=asc, kind="stable").head(n).reset_index(drop=True)


def with_period_total(
    records: pd.DataFrame,
    periods: Sequence[str],
    name: str = "PeriodTotal"
) -> pd.DataFrame:
    """Copy of `records` with the total over exactly `periods`."""
    out = records.copy()
    out[name] = computed_total(records, periods)
    return out


def add_share_columns(df: pd.DataFrame, value: str) -> pd.DataFrame:
    """
    Add PercentOfMarket (row / its market's sum) and PercentOfTotal
    (row / grand total), both 0 when the denominator is 0.
    """
    out = df.copy()
    market_sum = out.groupby(COL_MARKET)[value].transform("sum")
    out["PercentOfMarket"] = safe_divide(out[value], market_sum) * 100
    out["PercentOfTotal"] = safe_divide(out[value], out[value].sum()) * 100
    return out


def market_totals(
    records: pd.DataFrame,
    periods: Sequence[str],
    inventory: pd.DataFrame = None
) -> pd.DataFrame:
    """
    Per-market totals over the selected periods, largest first, with
    inventory and months on hand when an inventory dataset is given.
    """
    totals = with_period_total(records, periods, "Total")
    out = group_totals(totals, COL_MARKET, "Total")
    if inventory is not None and COL_INVENTORY in inventory.columns:
        cols = [c for c in (COL_INVENTORY, COL_MONTHS_ON_HAND) if c in inventory.columns]
        out = out.merge(inventory[[COL_MARKET] + cols], on=COL_MARKET, how="left")
        for c in (COL_INVENTORY, COL_MONTHS_ON_HAND):
            if c not in out.columns:
                out[c] = 0.0
            out[c] = out[c].fillna(0.0)
    out["PercentOfTotal"] = safe_divide(out["Total"], out["Total"].sum()) * 100
    return out


def monthly_pivot(records: pd.DataFrame, periods: Sequence[str]) -> pd.DataFrame:
    """
    Period x market table for trend charts: one row per period (in the
    given order), one column per market, summed over SKUs where present.
    """
    periods = list(periods)
    if records.empty:
        return pd.DataFrame({"Period": periods})
    vals = records.reindex(columns=[COL_MARKET] + periods, fill_value=0.0)
    by_market = vals.groupby(COL_MARKET, sort=False)[periods].sum()
    out = by_market.T.fillna(0.0)
    out.columns.name = None
    return out.rename_axis("Period").reset_index()


@dataclass(frozen=True)
class ConcentrationResult:
    total_revenue: float
    entities_needed: int
    active_entities: int
    percent_of_entities: float
    target_share: float = CONCENTRATION_TARGET


def concentration_curve(
    df: pd.DataFrame,
    revenue_col: str = "Revenue"
) -> pd.DataFrame:
    """
    Entities ranked by revenue (stable, descending) with their cumulative
    revenue and cumulative share of the total.
    """
    ranked = df.sort_values(revenue_col, ascending=False, kind="stable").reset_index(drop=True)
    total = ranked[revenue_col].sum()
    ranked["Rank"] = range(1, len(ranked) + 1)
    ranked["CumulativeRevenue"] = ranked[revenue_col].cumsum()
    ranked["CumulativeShare"] = safe_divide(ranked["CumulativeRevenue"], total)
    return ranked


def revenue_concentration(
    df: pd.DataFrame,
    revenue_col: str = "Revenue",
    units_col: str = "Units",
    target: float = CONCENTRATION_TARGET
) -> ConcentrationResult:
    """
    80/20 analysis: how many entities (top revenue first) it takes to reach
    `target` of total revenue, and what share of the active entities that is.
    Entities with zero revenue and zero units are not active.
    """
    units = df[units_col] if units_col in df.columns else pd.Series(0.0, index=df.index)
    active = df[(df[revenue_col] != 0) | (units != 0)]
    curve = concentration_curve(active, revenue_col)
    total = float(curve[revenue_col].sum()) if not curve.empty else 0.0

    if total <= 0:
        needed = 0
    else:
        goal = target * total
        cum = curve["CumulativeRevenue"]
        reached = (cum >= goal) | np.isclose(cum, goal)
        needed = int(reached.idxmax()) + 1 if reached.any() else len(curve)

    result = ConcentrationResult(
        total_revenue=total,
        entities_needed=needed,
        active_entities=len(active),
        percent_of_entities=safe_divide(needed, len(active)) * 100,
        target_share=target,
    )
    logger.info(
        f"Revenue concentration: {needed} of {len(active)} entities reach {target:.0%} of revenue"
    )
    return result


def category_counts(df: pd.DataFrame, column: str) -> pd.DataFrame:
    """Frequency tally of `column`, most common first."""
    if df.empty:
        return pd.DataFrame(columns=[column, "Count"])
    counts = df[column].value_counts(sort=False).rename("Count")
    out = counts.rename_axis(column).reset_index()
    return out.sort_values("Count", ascending=False, kind="stable").reset_index(drop=True)


def sku_count_by_market(df: pd.DataFrame) -> pd.DataFrame:
    """Number of distinct SKUs carried in each market."""
    if df.empty:
        return pd.DataFrame(columns=[COL_MARKET, "SKUCount"])
    out = df.groupby(COL_MARKET, sort=False)[COL_SKU].nunique().rename("SKUCount").reset_index()
    return out.sort_values("SKUCount", ascending=False, kind="stable").reset_index(drop=True)

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

import numpy as np
import pandas as pd

from .config import (
    COL_MARKET,
    COL_SKU,
    COL_INVENTORY,
    COL_MONTHS_ON_HAND,
    CONSISTENCY_MIN,
    HEALTH_OVERSTOCKED_MOH,
    HEALTH_MODERATE_MOH,
    HEALTH_UNDERSTOCKED_MOH,
    HEALTH_UNDERSTOCKED_SALES,
    OVERSTOCK_MOH,
    OVERSTOCK_SEVERE_MOH,
    OVERSTOCK_HIGH_VALUE,
    OVERSTOCK_SEVERE_HIGH_VALUE,
    OVERSTOCK_MEDIUM_VALUE,
    OVERSTOCK_SEVERE_MEDIUM_VALUE,
    UNDERSTOCK_MOH,
    UNDERSTOCK_LOST_SHARE,
    UNDERSTOCK_HIGH_LOSS,
    UNDERSTOCK_MEDIUM_LOSS,
    HIGH_POTENTIAL_TURNOVER,
    HIGH_POTENTIAL_HIGH_REVENUE,
    HIGH_POTENTIAL_MEDIUM_REVENUE,
    GROWTH_MIN_WINDOW,
    GROWTH_MIN_RATE,
    GROWTH_MIN_ABSOLUTE,
    GROWTH_MIN_VOLUME,
    GROWTH_MARKET_SHARE,
    GROWTH_HIGH_REVENUE_GAIN,
    GROWTH_HIGH_CURRENT_REVENUE,
    GROWTH_MEDIUM_REVENUE_GAIN,
    GROWTH_MEDIUM_CURRENT_REVENUE,
)
from .logger import logger
from .metrics import GROWING, safe_divide
from .thresholds import MarketThresholds, attach_thresholds


class PerformanceCategory(str, Enum):
    STAR = "Star"
    CASH_COW = "Cash Cow"
    QUESTION_MARK = "Question Mark"
    STEADY_LOW = "Steady Low Performer"
    DOG = "Dog"


class HealthStatus(str, Enum):
    OVERSTOCKED = "Overstocked"
    MODERATELY_HIGH = "Moderately High"
    UNDERSTOCKED = "Understocked"
    BACKORDER = "Backorder"
    HEALTHY = "Healthy"


class OpportunityType(str, Enum):
    OVERSTOCKED = "Overstocked"
    UNDERSTOCKED = "Understocked"
    HIGH_POTENTIAL = "High Potential"
    EXPAND_MARKET = "Expand Market"


class Impact(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


IMPACT_ORDER = [Impact.HIGH.value, Impact.MEDIUM.value, Impact.LOW.value]


@dataclass(frozen=True)
class Classification:
    """A label with the reason it was given and the numbers behind it."""
    label: str
    rationale: str
    metrics: dict = field(default_factory=dict)


# -----------------------
# Performance category
# -----------------------
def _performance_label(high: bool, fast: bool, consistent: bool, growing: bool) -> PerformanceCategory:
    if consistent:
        if high and fast:
            return PerformanceCategory.STAR
        if high:
            return PerformanceCategory.CASH_COW
        if fast:
            return PerformanceCategory.QUESTION_MARK
        if growing:
            return PerformanceCategory.STEADY_LOW
    return PerformanceCategory.DOG


def _performance_rationale(
    label: PerformanceCategory,
    revenue: float,
    strong: float,
    rate: float,
    rate_cut: float,
    consistency: float,
    trend: str
) -> str:
    rev_cmp = "above" if revenue > strong else "at or below"
    rate_cmp = "above" if rate > rate_cut else "at or below"
    return (
        f"{label.value}: revenue {revenue:,.2f} {rev_cmp} market strong cut {strong:,.2f}; "
        f"revenue rate {rate:,.2f} {rate_cmp} market average {rate_cut:,.2f} per period; "
        f"sales consistency {consistency:.0%}; trend {trend}"
    )


def classify_performance(
    revenue: float,
    revenue_rate: float,
    thresholds: MarketThresholds,
    sales_consistency: float,
    trend_direction: str,
    period_count: int
) -> Classification:
    """
    Place one entity in the performance quadrant relative to its market.
    Raises UndefinedThresholdsError when the market population is empty.
    """
    thresholds.require()
    rate_cut = safe_divide(thresholds.mean, period_count)
    high = revenue > thresholds.strong
    fast = revenue_rate > rate_cut
    consistent = sales_consistency >= CONSISTENCY_MIN
    label = _performance_label(high, fast, consistent, trend_direction == GROWING)
    return Classification(
        label=label.value,
        rationale=_performance_rationale(
            label, revenue, thresholds.strong, revenue_rate, rate_cut,
            sales_consistency, trend_direction
        ),
        metrics={
            "Revenue": revenue,
            "RevenueRate": revenue_rate,
            "StrongCut": thresholds.strong,
            "RateCut": rate_cut,
            "SalesConsistency": sales_consistency,
            "TrendDirection": trend_direction,
        },
    )


def assign_performance_category(
    df: pd.DataFrame,
    period_count: int,
    revenue_col: str = "Revenue"
) -> pd.DataFrame:
    """
    Add Category and Rationale columns. Thresholds are computed over
    `revenue_col` within each market.
    """
    out = attach_thresholds(df, revenue_col, "Revenue")
    if out.empty:
        out["Category"] = pd.Series(dtype=object)
        out["Rationale"] = pd.Series(dtype=object)
        return out

    rate_cut = safe_divide(out["RevenueMean"], period_count)
    high = out[revenue_col] > out["RevenueStrong"]
    fast = out["RevenueRate"] > rate_cut
    consistent = out["SalesConsistency"] >= CONSISTENCY_MIN
    growing = out["TrendDirection"] == GROWING

    labels = [
        _performance_label(h, f, c, g)
        for h, f, c, g in zip(high, fast, consistent, growing)
    ]
    out["Category"] = [label.value for label in labels]
    out["Rationale"] = [
        _performance_rationale(label, rev, strong, rate, cut, cons, trend)
        for label, rev, strong, rate, cut, cons, trend in zip(
            labels, out[revenue_col], out["RevenueStrong"], out["RevenueRate"],
            rate_cut, out["SalesConsistency"], out["TrendDirection"]
        )
    ]
    logger.info(f"Assigned performance categories to {len(out)} entities")
    return out


# -----------------------
# Inventory health
# -----------------------
def classify_inventory_health(
    months_on_hand: float,
    inventory: float,
    recent_sales: float
) -> Classification:
    """
    First matching rule wins:
      MoH > 4 Overstocked, MoH > 2 Moderately High,
      MoH < 1 with recent sales > 50 Understocked,
      negative inventory Backorder, else Healthy.
    """
    if months_on_hand > HEALTH_OVERSTOCKED_MOH:
        status = HealthStatus.OVERSTOCKED
        why = f"{months_on_hand:.1f} months on hand exceeds {HEALTH_OVERSTOCKED_MOH}"
    elif months_on_hand > HEALTH_MODERATE_MOH:
        status = HealthStatus.MODERATELY_HIGH
        why = f"{months_on_hand:.1f} months on hand exceeds {HEALTH_MODERATE_MOH}"
    elif months_on_hand < HEALTH_UNDERSTOCKED_MOH and recent_sales > HEALTH_UNDERSTOCKED_SALES:
        status = HealthStatus.UNDERSTOCKED
        why = (
            f"{months_on_hand:.1f} months on hand with {recent_sales:,.0f} recent units sold"
        )
    elif inventory < 0:
        status = HealthStatus.BACKORDER
        why = f"inventory is negative ({inventory:,.0f})"
    else:
        status = HealthStatus.HEALTHY
        why = f"{months_on_hand:.1f} months on hand"
    return Classification(
        label=status.value,
        rationale=f"{status.value}: {why}",
        metrics={
            "MonthsOnHand": months_on_hand,
            "Inventory": inventory,
            "RecentSales": recent_sales,
        },
    )


def assign_health_status(df: pd.DataFrame) -> pd.DataFrame:
    """Add HealthStatus and HealthRationale columns to a metrics frame."""
    out = df.copy()
    results = [
        classify_inventory_health(moh, inv, sales)
        for moh, inv, sales in zip(
            out[COL_MONTHS_ON_HAND].fillna(0.0), out[COL_INVENTORY], out["RecentSales"]
        )
    ]
    out["HealthStatus"] = [r.label for r in results]
    out["HealthRationale"] = [r.rationale for r in results]
    return out


# -----------------------
# Opportunity impact tiers
# -----------------------
def overstock_impact(months_on_hand: float, inventory_value: float) -> Impact:
    severe = months_on_hand > OVERSTOCK_SEVERE_MOH
    if (severe and inventory_value > OVERSTOCK_SEVERE_HIGH_VALUE) or inventory_value > OVERSTOCK_HIGH_VALUE:
        return Impact.HIGH
    if (severe and inventory_value > OVERSTOCK_SEVERE_MEDIUM_VALUE) or inventory_value > OVERSTOCK_MEDIUM_VALUE:
        return Impact.MEDIUM
    return Impact.LOW


def understock_impact(potential_lost_revenue: float) -> Impact:
    if potential_lost_revenue > UNDERSTOCK_HIGH_LOSS:
        return Impact.HIGH
    if potential_lost_revenue > UNDERSTOCK_MEDIUM_LOSS:
        return Impact.MEDIUM
    return Impact.LOW


def high_potential_impact(recent_revenue: float) -> Impact:
    if recent_revenue > HIGH_POTENTIAL_HIGH_REVENUE:
        return Impact.HIGH
    if recent_revenue > HIGH_POTENTIAL_MEDIUM_REVENUE:
        return Impact.MEDIUM
    return Impact.LOW


def growth_impact(revenue_growth: float, current_revenue: float) -> Impact:
    if revenue_growth > GROWTH_HIGH_REVENUE_GAIN or current_revenue > GROWTH_HIGH_CURRENT_REVENUE:
        return Impact.HIGH
    if revenue_growth > GROWTH_MEDIUM_REVENUE_GAIN or current_revenue > GROWTH_MEDIUM_CURRENT_REVENUE:
        return Impact.MEDIUM
    return Impact.LOW


def growth_rate(first_half_avg, second_half_avg):
    """Percent change between window halves; 0 when the first half is 0."""
    return safe_divide(np.subtract(second_half_avg, first_half_avg), first_half_avg) * 100


# -----------------------
# Opportunity detectors
# -----------------------
OPPORTUNITY_COLUMNS = [
    COL_MARKET, COL_SKU, "Type", "Impact", "Rationale",
    COL_INVENTORY, COL_MONTHS_ON_HAND, "RecentSales", "RecentRevenue", "TurnoverRate",
    "InventoryValue", "PotentialLostRevenue", "GrowthRate", "AbsoluteGrowth",
    "RevenueGrowth", "SecondHalfRevenueAvg",
]


def _overstocked(df: pd.DataFrame) -> pd.DataFrame:
    hit = df[df[COL_MONTHS_ON_HAND] > OVERSTOCK_MOH].copy()
    hit["InventoryValue"] = hit[COL_INVENTORY] * safe_divide(hit["RecentRevenue"], hit["RecentSales"])
    hit["Impact"] = [
        overstock_impact(m, v).value
        for m, v in zip(hit[COL_MONTHS_ON_HAND], hit["InventoryValue"])
    ]
    hit["Rationale"] = [
        f"{m:.1f} months on hand tying up {v:,.2f} of inventory"
        for m, v in zip(hit[COL_MONTHS_ON_HAND], hit["InventoryValue"])
    ]
    hit["Type"] = OpportunityType.OVERSTOCKED.value
    return hit


def _understocked(df: pd.DataFrame) -> pd.DataFrame:
    moh = df[COL_MONTHS_ON_HAND]
    # zero months on hand is excluded here, unlike the health status rule
    mask = (moh > 0) & (moh < UNDERSTOCK_MOH) & (df["RecentSales"] > df["SalesUnderstockedCut"])
    hit = df[mask].copy()
    price = safe_divide(hit["RecentRevenue"], hit["RecentSales"])
    hit["PotentialLostRevenue"] = hit["RecentSales"] * price * UNDERSTOCK_LOST_SHARE
    hit["Impact"] = [understock_impact(v).value for v in hit["PotentialLostRevenue"]]
    hit["Rationale"] = [
        f"{m:.1f} months on hand while selling {s:,.0f} units (market cut {c:,.1f}); "
        f"{v:,.2f} revenue at risk"
        for m, s, c, v in zip(
            hit[COL_MONTHS_ON_HAND], hit["RecentSales"],
            hit["SalesUnderstockedCut"], hit["PotentialLostRevenue"]
        )
    ]
    hit["Type"] = OpportunityType.UNDERSTOCKED.value
    return hit


def _high_potential(df: pd.DataFrame) -> pd.DataFrame:
    mask = (df["TurnoverRate"] > HIGH_POTENTIAL_TURNOVER) & (df["RecentSales"] > df["SalesHighPotential"])
    hit = df[mask].copy()
    hit["Impact"] = [high_potential_impact(v).value for v in hit["RecentRevenue"]]
    hit["Rationale"] = [
        f"turns {t:.1f}x a year and sold {s:,.0f} units (market cut {c:,.1f})"
        for t, s, c in zip(hit["TurnoverRate"], hit["RecentSales"], hit["SalesHighPotential"])
    ]
    hit["Type"] = OpportunityType.HIGH_POTENTIAL.value
    return hit


def _expand_market(df: pd.DataFrame, window_length: int) -> pd.DataFrame:
    out = df.copy()
    out["GrowthRate"] = growth_rate(out["FirstHalfAvg"], out["SecondHalfAvg"])
    out["AbsoluteGrowth"] = out["SecondHalfAvg"] - out["FirstHalfAvg"]
    out["RevenueGrowth"] = out["SecondHalfRevenueAvg"] - out["FirstHalfRevenueAvg"]
    market_monthly_avg = safe_divide(out["SalesMean"], window_length)

    volume_ok = (out["SecondHalfAvg"] > GROWTH_MIN_VOLUME) | (
        out["SecondHalfAvg"] > GROWTH_MARKET_SHARE * market_monthly_avg
    )
    mask = (out["GrowthRate"] > GROWTH_MIN_RATE) & (out["AbsoluteGrowth"] > GROWTH_MIN_ABSOLUTE) & volume_ok
    hit = out[mask].copy()
    hit["Impact"] = [
        growth_impact(g, c).value
        for g, c in zip(hit["RevenueGrowth"], hit["SecondHalfRevenueAvg"])
    ]
    hit["Rationale"] = [
        f"units per period grew {r:.1f}% ({a:,.1f}) to {s:,.1f}"
        for r, a, s in zip(hit["GrowthRate"], hit["AbsoluteGrowth"], hit["SecondHalfAvg"])
    ]
    hit["Type"] = OpportunityType.EXPAND_MARKET.value
    return hit


def detect_opportunities(
    metrics_df: pd.DataFrame,
    window_length: Optional[int] = None
) -> pd.DataFrame:
    """
    Run the four opportunity detectors over SKU metrics. A SKU may show up
    under more than one type. Output is sorted High -> Low impact, keeping
    detector order within each tier.
    """
    if metrics_df.empty:
        return pd.DataFrame(columns=OPPORTUNITY_COLUMNS)
    if window_length is None:
        window_length = int(metrics_df["WindowLength"].iloc[0])

    df = attach_thresholds(metrics_df, "RecentSales", "Sales")
    df[COL_MONTHS_ON_HAND] = df[COL_MONTHS_ON_HAND].fillna(0.0)

    found = [_overstocked(df), _understocked(df), _high_potential(df)]
    if window_length >= GROWTH_MIN_WINDOW:
        found.append(_expand_market(df, window_length))
    else:
        logger.debug(f"Skipping growth detector for a {window_length}-period window")

    result = pd.concat(found, ignore_index=True).reindex(columns=OPPORTUNITY_COLUMNS)
    result["Impact"] = pd.Categorical(result["Impact"], categories=IMPACT_ORDER, ordered=True)
    result = result.sort_values("Impact", kind="stable").reset_index(drop=True)
    result["Impact"] = result["Impact"].astype(str)
    logger.info(f"Detected {len(result)} opportunities across {len(metrics_df)} SKUs")
    return result

from typing import Mapping, Optional, Sequence

import numpy as np
import pandas as pd

from .config import (
    COL_MARKET,
    COL_SKU,
    COL_INVENTORY,
    COL_MONTHS_ON_HAND,
    COL_MONTHS_OF_INVENTORY,
    MONTHS_PER_YEAR,
)
from .logger import logger
from .periods import split_halves

GROWING = "growing"
DECLINING = "declining"


def safe_divide(num, den):
    """
    Element-wise num / den that yields 0 (never NaN or inf) where den == 0.
    Accepts scalars, arrays or Series; a Series keeps its index.
    """
    num_arr = np.asarray(num, dtype=float)
    den_arr = np.asarray(den, dtype=float)
    out = np.zeros(np.broadcast(num_arr, den_arr).shape)
    np.divide(num_arr, den_arr, out=out, where=den_arr != 0)
    if isinstance(num, pd.Series):
        return pd.Series(out, index=num.index)
    if isinstance(den, pd.Series):
        return pd.Series(out, index=den.index)
    if out.ndim == 0:
        return float(out)
    return out


def turnover_rate(months_on_hand):
    """Annualized inventory cycles: 12 / months on hand, 0 when months on hand <= 0."""
    moh = np.asarray(months_on_hand, dtype=float)
    moh = np.where(np.isnan(moh), 0.0, moh)
    out = safe_divide(np.full(moh.shape, float(MONTHS_PER_YEAR)), np.where(moh > 0, moh, 0.0))
    if isinstance(months_on_hand, pd.Series):
        return pd.Series(out, index=months_on_hand.index)
    return out


def _keys(records: pd.DataFrame) -> list[str]:
    return [COL_MARKET, COL_SKU] if COL_SKU in records.columns else [COL_MARKET]


def _window_values(records: pd.DataFrame, window: Sequence[str]) -> pd.DataFrame:
    return records.reindex(columns=list(window), fill_value=0.0).fillna(0.0).astype(float)


def _attach_inventory(
    out: pd.DataFrame,
    records: pd.DataFrame,
    inventory: Optional[pd.DataFrame],
    keys: list[str]
) -> pd.DataFrame:
    """
    Inventory and months on hand come from the inventory dataset when
    given, otherwise from the records themselves. Missing months on hand
    is derived as Inventory / SalesRate.
    """
    src = inventory if inventory is not None else records
    moh_col = next(
        (c for c in (COL_MONTHS_OF_INVENTORY, COL_MONTHS_ON_HAND) if c in src.columns),
        None
    )
    cols = [c for c in (COL_INVENTORY, moh_col) if c is not None and c in src.columns]
    if cols:
        inv = src[keys + cols]
        if moh_col is not None:
            inv = inv.rename(columns={moh_col: COL_MONTHS_ON_HAND})
        out = out.merge(inv, on=keys, how="left")
    if COL_INVENTORY not in out.columns:
        out[COL_INVENTORY] = 0.0
    if COL_MONTHS_ON_HAND not in out.columns:
        out[COL_MONTHS_ON_HAND] = np.nan

    out[COL_INVENTORY] = out[COL_INVENTORY].fillna(0.0)
    derived = safe_divide(out[COL_INVENTORY], out["SalesRate"])
    out[COL_MONTHS_ON_HAND] = out[COL_MONTHS_ON_HAND].fillna(derived)
    return out


def compute_metrics(
    records: pd.DataFrame,
    window: Sequence[str],
    revenue: Optional[pd.DataFrame] = None,
    inventory: Optional[pd.DataFrame] = None
) -> pd.DataFrame:
    """
    One MetricSet row per record (Market, or Market + SKU):
      - RecentSales / SalesRate over the recent window
      - RecentRevenue / RevenueRate / RevenuePerUnit from the matching revenue record
      - Inventory, MonthsOnHand, TurnoverRate
      - SalesConsistency = share of window periods with sales > 0
      - First/second half sums and averages, TrendDirection
    Trend uses the revenue series where a revenue record matched, else units.
    """
    window = list(window)
    n = len(window)
    if n == 0:
        raise ValueError("recent window must contain at least one period")
    keys = _keys(records)
    first, second = split_halves(window)

    # 1) Units over the window
    units = _window_values(records, window)
    out = records[keys].copy()
    out["RecentSales"] = units.sum(axis=1)
    out["SalesRate"] = out["RecentSales"] / n
    out["SalesConsistency"] = (units > 0).sum(axis=1) / n
    out["FirstHalfSales"] = units[first].sum(axis=1)
    out["SecondHalfSales"] = units[second].sum(axis=1)

    # 2) Matching revenue record
    if revenue is not None and not revenue.empty:
        rev = revenue[keys].copy()
        rev_vals = _window_values(revenue, window)
        rev["RecentRevenue"] = rev_vals.sum(axis=1)
        rev["FirstHalfRevenue"] = rev_vals[first].sum(axis=1)
        rev["SecondHalfRevenue"] = rev_vals[second].sum(axis=1)
        rev["HasRevenue"] = True
        out = out.merge(rev, on=keys, how="left")
        out["HasRevenue"] = out["HasRevenue"].fillna(False).astype(bool)
        for c in ("RecentRevenue", "FirstHalfRevenue", "SecondHalfRevenue"):
            out[c] = out[c].fillna(0.0)
    else:
        out["RecentRevenue"] = 0.0
        out["FirstHalfRevenue"] = 0.0
        out["SecondHalfRevenue"] = 0.0
        out["HasRevenue"] = False

    out["RevenueRate"] = out["RecentRevenue"] / n
    out["RevenuePerUnit"] = safe_divide(out["RecentRevenue"], out["RecentSales"])

    # 3) Halves, averaged per period
    out["FirstHalfAvg"] = safe_divide(out["FirstHalfSales"], len(first))
    out["SecondHalfAvg"] = out["SecondHalfSales"] / len(second)
    out["FirstHalfRevenueAvg"] = safe_divide(out["FirstHalfRevenue"], len(first))
    out["SecondHalfRevenueAvg"] = out["SecondHalfRevenue"] / len(second)

    trend_first = np.where(out["HasRevenue"], out["FirstHalfRevenue"], out["FirstHalfSales"])
    trend_second = np.where(out["HasRevenue"], out["SecondHalfRevenue"], out["SecondHalfSales"])
    out["TrendDirection"] = np.where(trend_second >= trend_first, GROWING, DECLINING)

    # 4) Inventory depth
    out = _attach_inventory(out, records, inventory, keys)
    out["TurnoverRate"] = turnover_rate(out[COL_MONTHS_ON_HAND])
    out["WindowLength"] = n

    logger.info(f"Computed metrics for {len(out)} records over a {n}-period window")
    return out.reset_index(drop=True)


def _single_row(record: Mapping, keys: Mapping) -> pd.DataFrame:
    row = dict(record)
    row.update(keys)
    return pd.DataFrame([row])


def metric_set(
    record: Mapping,
    window: Sequence[str],
    revenue_record: Optional[Mapping] = None,
    inventory_record: Optional[Mapping] = None
) -> dict:
    """
    MetricSet of a single record, as a plain dict.
    """
    keys = {COL_MARKET: record.get(COL_MARKET, "")}
    if COL_SKU in record:
        keys[COL_SKU] = record[COL_SKU]
    records = _single_row(record, keys)
    revenue = _single_row(revenue_record, keys) if revenue_record is not None else None
    inventory = _single_row(inventory_record, keys) if inventory_record is not None else None
    return compute_metrics(records, window, revenue, inventory).iloc[0].to_dict()

from dataclasses import asdict, dataclass
from typing import Iterable

import numpy as np
import pandas as pd

from .config import (
    COL_MARKET,
    STRONG_SIGMA,
    WEAK_SIGMA,
    HIGH_POTENTIAL_SIGMA,
    UNDERSTOCKED_SIGMA,
)
from .errors import UndefinedThresholdsError


@dataclass(frozen=True)
class MarketThresholds:
    """
    Population mean / standard deviation of one metric within one market,
    and the named cut points derived from them.
    """
    count: int
    mean: float
    std: float
    strong: float
    weak: float
    high_potential: float
    understocked_cut: float

    @property
    def defined(self) -> bool:
        return self.count > 0

    def require(self) -> "MarketThresholds":
        if not self.defined:
            raise UndefinedThresholdsError(
                "thresholds are undefined for an empty population; no classification possible"
            )
        return self

    def as_dict(self) -> dict:
        d = asdict(self)
        d["defined"] = self.defined
        return d


def compute_thresholds(values: Iterable[float]) -> MarketThresholds:
    """
    Population (ddof=0) statistics over `values`. An empty population
    yields count=0 and NaN everywhere; check `.defined` before comparing.
    """
    arr = np.asarray(list(values), dtype=float)
    if arr.size == 0:
        nan = float("nan")
        return MarketThresholds(0, nan, nan, nan, nan, nan, nan)
    mu = float(arr.mean())
    sigma = float(np.sqrt(np.mean((arr - mu) ** 2)))
    return MarketThresholds(
        count=int(arr.size),
        mean=mu,
        std=sigma,
        strong=mu + STRONG_SIGMA * sigma,
        weak=mu + WEAK_SIGMA * sigma,
        high_potential=mu + HIGH_POTENTIAL_SIGMA * sigma,
        understocked_cut=mu + UNDERSTOCKED_SIGMA * sigma,
    )


def thresholds_for(df: pd.DataFrame, market: str, metric: str) -> MarketThresholds:
    """Thresholds of `metric` over the rows of one market."""
    return compute_thresholds(df.loc[df[COL_MARKET] == market, metric])


def market_thresholds(df: pd.DataFrame, metric: str) -> pd.DataFrame:
    """
    One row of thresholds per market present in `df`, indexed by Market.
    """
    cols = ["count", "mean", "std", "strong", "weak", "high_potential", "understocked_cut"]
    if df.empty:
        return pd.DataFrame(columns=cols).rename_axis(COL_MARKET)
    rows = {
        market: compute_thresholds(grp[metric]).as_dict()
        for market, grp in df.groupby(COL_MARKET, sort=False)
    }
    return pd.DataFrame.from_dict(rows, orient="index")[cols].rename_axis(COL_MARKET)


def attach_thresholds(df: pd.DataFrame, metric: str, prefix: str) -> pd.DataFrame:
    """
    Broadcast each market's thresholds of `metric` onto its rows as
    `<prefix>Mean`, `<prefix>Strong`, ... columns.
    """
    th = market_thresholds(df, metric)
    th = th.rename(columns={
        "count": f"{prefix}Count",
        "mean": f"{prefix}Mean",
        "std": f"{prefix}Std",
        "strong": f"{prefix}Strong",
        "weak": f"{prefix}Weak",
        "high_potential": f"{prefix}HighPotential",
        "understocked_cut": f"{prefix}UnderstockedCut",
    })
    return df.merge(th.reset_index(), on=COL_MARKET, how="left")

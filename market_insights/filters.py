from dataclasses import dataclass, field, replace
from typing import Optional, Sequence

import pandas as pd

from .config import (
    ALL,
    COL_MARKET,
    COL_SKU,
    COL_INVENTORY,
    DEFAULT_RECENT_WINDOW,
    RECENT_WINDOW_CHOICES,
)
from .periods import PeriodCalendar


@dataclass(frozen=True)
class FilterParams:
    """
    Everything the caller has selected. The engine keeps no selection
    state of its own; build a new FilterParams for every change.
    """
    market: str = ALL
    sku: str = ALL
    periods: Optional[Sequence[str]] = None
    recent_window: int = DEFAULT_RECENT_WINDOW
    min_inventory: float = 0.0
    opportunity_types: tuple = field(default_factory=tuple)
    impact_levels: tuple = field(default_factory=tuple)

    def __post_init__(self):
        if self.recent_window not in RECENT_WINDOW_CHOICES:
            raise ValueError(
                f"recent_window must be one of {RECENT_WINDOW_CHOICES}, got {self.recent_window}"
            )
        if self.min_inventory < 0:
            raise ValueError(f"min_inventory must be non-negative, got {self.min_inventory}")
        object.__setattr__(self, "opportunity_types", tuple(self.opportunity_types))
        object.__setattr__(self, "impact_levels", tuple(self.impact_levels))

    def resolve(self, calendar: PeriodCalendar) -> "FilterParams":
        """Return a copy whose periods are validated and in calendar order."""
        periods = list(calendar) if self.periods is None else calendar.validate(self.periods)
        return replace(self, periods=tuple(periods))


def filter_records(df: pd.DataFrame, params: FilterParams) -> pd.DataFrame:
    """
    Keep rows matching the selected market and SKU ("All" matches everything).
    """
    condition = pd.Series(True, index=df.index)
    if params.market != ALL:
        condition &= df[COL_MARKET] == params.market
    if params.sku != ALL and COL_SKU in df.columns:
        condition &= df[COL_SKU] == params.sku
    return df[condition]


def filter_min_inventory(df: pd.DataFrame, params: FilterParams) -> pd.DataFrame:
    """
    Drop rows whose inventory magnitude is below min_inventory.
    Backorders count by their absolute size.
    """
    if params.min_inventory <= 0 or COL_INVENTORY not in df.columns:
        return df
    return df[df[COL_INVENTORY].abs() >= params.min_inventory]


def filter_opportunities(df: pd.DataFrame, params: FilterParams) -> pd.DataFrame:
    """Empty type / impact selections mean 'all'."""
    condition = pd.Series(True, index=df.index)
    if params.opportunity_types:
        condition &= df["Type"].isin(params.opportunity_types)
    if params.impact_levels:
        condition &= df["Impact"].isin(params.impact_levels)
    return df[condition]


def market_options(df: pd.DataFrame) -> list[str]:
    """Selectable markets, 'All' first, in source order."""
    return [ALL] + list(pd.unique(df[COL_MARKET])) if not df.empty else [ALL]


def sku_options(df: pd.DataFrame) -> list[str]:
    return [ALL] + list(pd.unique(df[COL_SKU])) if not df.empty else [ALL]

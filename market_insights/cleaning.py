from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Sequence

import numpy as np
import pandas as pd

from .config import (
    COL_MARKET,
    COL_SKU,
    COL_TOTAL,
    COL_INVENTORY,
    COL_MONTHS_ON_HAND,
    COL_MONTHS_OF_INVENTORY,
    COLUMN_ALIASES,
    DEFAULT_SECTIONS,
    INVENTORY_SHEET_KINDS,
    SHEET_MARKET,
    SHEET_ORDER,
    SKU_SHEET_KINDS,
    TOTAL_ROW_SENTINEL,
)
from .errors import SheetValidationError
from .logger import logger
from .periods import PeriodCalendar

SCALAR_COLUMNS = (COL_INVENTORY, COL_MONTHS_ON_HAND, COL_MONTHS_OF_INVENTORY)


@dataclass(frozen=True)
class SectionSpec:
    """One stacked table inside a multi-section sheet (0-based rows, end exclusive)."""
    name: str
    header_row: int
    start_row: int
    end_row: int


@dataclass(frozen=True)
class MultiSectionLayout:
    sections: tuple

    @classmethod
    def default(cls) -> "MultiSectionLayout":
        return cls(tuple(SectionSpec(*s) for s in DEFAULT_SECTIONS))


@dataclass
class Snapshot:
    """
    Normalized datasets of one workbook. Market datasets are keyed by
    Market, SKU datasets by (Market, SKU).
    """
    calendar: PeriodCalendar
    market_dollars: pd.DataFrame
    market_units: pd.DataFrame
    sku_units: pd.DataFrame
    sku_dollars: pd.DataFrame
    market_inventory: pd.DataFrame
    sku_inventory: pd.DataFrame
    market_price: pd.DataFrame = None
    extra_sections: dict = field(default_factory=dict)


def identity_columns(sheet_kind: str) -> list[str]:
    return [COL_MARKET, COL_SKU] if sheet_kind in SKU_SHEET_KINDS else [COL_MARKET]


def _clean_key(value: Any) -> str:
    if value is None or (isinstance(value, float) and np.isnan(value)):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _clean_numeric(
    series: pd.Series,
    sheet: str,
    column: str,
    fill: Optional[float] = 0.0
) -> pd.Series:
    """
    Parse a numeric column, stripping '$' and ',' separators.
    Blank cells become `fill`; any other text fails fast.
    """
    text = (
        series.astype(object)
              .where(series.notna(), "")
              .astype(str)
              .str.strip()
              .replace(r"[\$,]", "", regex=True)
    )
    values = pd.to_numeric(text.replace({"": np.nan}), errors="coerce")
    bad = values.isna() & text.ne("")
    if bad.any():
        pos = int(np.flatnonzero(bad.to_numpy())[0])
        raise SheetValidationError(
            sheet,
            f"non-numeric value {series.iloc[pos]!r}",
            column=column,
            row=int(series.index[pos]),
        )
    values = values.astype(float)
    if fill is not None:
        values = values.fillna(fill)
    return values


def computed_total(records: pd.DataFrame, periods: Sequence[str]) -> pd.Series:
    """
    Row-wise sum over exactly `periods`; a period missing from the frame counts as 0.
    Stored Total columns are never consulted.
    """
    periods = list(periods)
    if not periods:
        return pd.Series(0.0, index=records.index)
    return records.reindex(columns=periods, fill_value=0.0).fillna(0.0).sum(axis=1)


def _empty_records(sheet_kind: str, periods: Sequence[str]) -> pd.DataFrame:
    cols = identity_columns(sheet_kind) + list(periods) + [COL_TOTAL]
    return pd.DataFrame(columns=cols)


def normalize_sheet(
    rows: Iterable[Mapping[str, Any]],
    sheet_kind: str,
    calendar: Optional[PeriodCalendar] = None,
    sheet_name: Optional[str] = None
) -> pd.DataFrame:
    """
    Turn one raw sheet (header -> value mappings) into typed records:
      - rename aliased headers to canonical names
      - drop subtotal / footer rows (blank Market, blank or 'total' SKU)
      - parse period columns as floats (blank -> 0) and recompute Total
      - keep the last row for duplicated identity keys
    Columns outside the calendar and the known scalars are dropped.
    """
    calendar = calendar or PeriodCalendar.monthly()
    sheet_name = sheet_name or sheet_kind
    keys = identity_columns(sheet_kind)

    df = pd.DataFrame(list(rows))
    if df.empty:
        logger.info(f"Sheet '{sheet_name}' is empty")
        return _empty_records(sheet_kind, [])

    # 1) Canonical headers
    df.columns = [str(c).strip() for c in df.columns]
    df = df.rename(columns=COLUMN_ALIASES)
    df = df.loc[:, ~df.columns.duplicated(keep="last")]

    # 2) Required columns
    missing = [k for k in keys if k not in df.columns]
    if sheet_kind in INVENTORY_SHEET_KINDS and COL_INVENTORY not in df.columns:
        missing.append(COL_INVENTORY)
    if missing:
        raise SheetValidationError(sheet_name, f"missing expected columns {missing}")

    periods = calendar.present_in(df.columns)
    if not periods and sheet_kind not in INVENTORY_SHEET_KINDS:
        raise SheetValidationError(
            sheet_name, f"no period columns found (expected names like {calendar.periods[0]!r})"
        )
    keep = keys + periods + [c for c in (COL_TOTAL,) + SCALAR_COLUMNS if c in df.columns]
    ignored = [c for c in df.columns if c not in keep]
    if ignored:
        logger.debug(f"Sheet '{sheet_name}': ignoring columns {ignored}")
    df = df[keep].copy()

    # 3) Drop footer / subtotal rows
    for k in keys:
        df[k] = df[k].map(_clean_key)
    mask = df[COL_MARKET].ne("")
    if COL_SKU in keys:
        mask &= df[COL_SKU].ne("")
        mask &= ~df[COL_SKU].str.lower().str.contains(TOTAL_ROW_SENTINEL, regex=False)
    df = df[mask].copy()
    dropped = int((~mask).sum())

    # 4) Numeric cleaning
    for p in periods:
        df[p] = _clean_numeric(df[p], sheet_name, p)
    if COL_INVENTORY in df.columns:
        df[COL_INVENTORY] = _clean_numeric(df[COL_INVENTORY], sheet_name, COL_INVENTORY)
    for c in (COL_MONTHS_ON_HAND, COL_MONTHS_OF_INVENTORY):
        if c in df.columns:
            df[c] = _clean_numeric(df[c], sheet_name, c, fill=None)

    # 5) Total over the calendar periods present in the source
    if periods:
        total = computed_total(df, periods)
        if COL_TOTAL in df.columns:
            stored = _clean_numeric(df[COL_TOTAL], sheet_name, COL_TOTAL, fill=None)
            drift = stored.notna() & ~np.isclose(stored, total)
            if drift.any():
                logger.warning(
                    f"Sheet '{sheet_name}': {int(drift.sum())} stored Total values "
                    f"disagree with the period sum; using the period sum"
                )
        df[COL_TOTAL] = total
    elif COL_TOTAL in df.columns:
        df = df.drop(columns=[COL_TOTAL])

    # 6) Last row wins for duplicated identity keys
    dupes = df.duplicated(subset=keys, keep="last")
    if dupes.any():
        logger.warning(
            f"Sheet '{sheet_name}': {int(dupes.sum())} duplicate {'/'.join(keys)} rows; keeping the last"
        )
        df = df[~dupes]

    df = df.reset_index(drop=True)
    logger.info(f"Normalized '{sheet_name}': {len(df)} rows kept, {dropped} footer rows dropped")
    return df


def _rekey_section(
    rows: Sequence[Mapping[str, Any]],
    spec: SectionSpec,
    sheet_name: str
) -> list[dict]:
    """
    Map placeholder column names to the real names held in the section's header row.
    """
    n = len(rows)
    if not (0 <= spec.header_row < n) or not (0 <= spec.start_row <= spec.end_row <= n):
        raise SheetValidationError(
            sheet_name,
            f"section '{spec.name}' rows header={spec.header_row} "
            f"[{spec.start_row}, {spec.end_row}) do not fit a sheet of {n} rows",
        )
    mapping = {
        placeholder: _clean_key(real)
        for placeholder, real in rows[spec.header_row].items()
        if _clean_key(real)
    }
    return [
        {mapping[k]: v for k, v in row.items() if k in mapping}
        for row in rows[spec.start_row:spec.end_row]
    ]


def normalize_multi_section(
    rows: Sequence[Mapping[str, Any]],
    layout: Optional[MultiSectionLayout] = None,
    calendar: Optional[PeriodCalendar] = None,
    sheet_name: str = "market_dollars_and_price"
) -> dict[str, pd.DataFrame]:
    """
    Split a sheet of vertically stacked tables into one market-kind
    DataFrame per section. Section boundaries come from `layout`;
    they are never inferred from the data.
    """
    layout = layout or MultiSectionLayout.default()
    rows = list(rows)
    out = {}
    for spec in layout.sections:
        rekeyed = _rekey_section(rows, spec, sheet_name)
        out[spec.name] = normalize_sheet(
            rekeyed, SHEET_MARKET, calendar, sheet_name=f"{sheet_name}:{spec.name}"
        )
    return out


def normalize_workbook(
    sheets: Sequence[Sequence[Mapping[str, Any]]],
    calendar: Optional[PeriodCalendar] = None,
    layout: Optional[MultiSectionLayout] = None
) -> Snapshot:
    """
    Normalize the six workbook sheets, given in the fixed order of SHEET_ORDER.
    """
    calendar = calendar or PeriodCalendar.monthly()
    sheets = list(sheets)
    if len(sheets) != len(SHEET_ORDER):
        raise SheetValidationError(
            "workbook", f"expected {len(SHEET_ORDER)} sheets, got {len(sheets)}"
        )

    (multi_name, _), *rest = SHEET_ORDER
    sections = normalize_multi_section(sheets[0], layout, calendar, sheet_name=multi_name)
    if "dollars" not in sections:
        raise SheetValidationError(multi_name, "layout has no 'dollars' section")

    datasets = {
        name: normalize_sheet(rows, kind, calendar, sheet_name=name)
        for (name, kind), rows in zip(rest, sheets[1:])
    }
    return Snapshot(
        calendar=calendar,
        market_dollars=sections.pop("dollars"),
        market_price=sections.pop("price", None),
        extra_sections=sections,
        **datasets,
    )

import pytest

from market_insights.cleaning import MultiSectionLayout, SectionSpec
from market_insights.config import MONTHS


def _months(values, offset=0):
    """Map values onto consecutive months starting at MONTHS[offset]."""
    return {MONTHS[offset + i]: v for i, v in enumerate(values)}


@pytest.fixture
def month_row():
    """Build a raw row; `values` fill the trailing months of the year."""
    def build(market, values, sku=None, **extra):
        row = {"Market": market}
        if sku is not None:
            row["SKU"] = sku
        row.update(_months(values, offset=12 - len(values)))
        row.update(extra)
        return row
    return build


@pytest.fixture
def last_months():
    def build(n):
        return MONTHS[-n:]
    return build


def _section(title, header_names, rows):
    placeholders = ["__EMPTY"] + [f"__EMPTY_{i}" for i in range(1, len(header_names))]
    out = [{placeholders[0]: title}]
    out.append(dict(zip(placeholders, header_names)))
    out.extend(dict(zip(placeholders, r)) for r in rows)
    return out


@pytest.fixture
def multi_section_rows():
    """
    Dollars table in rows 1-3 (header row 1), a blank spacer at row 4,
    price table in rows 5-8 (header row 6).
    """
    header = ["Market"] + MONTHS + ["Total"]
    dollars = _section(
        "Sales by Market - Dollars",
        header,
        [
            ["CA"] + [1000] * 12 + [12000],
            ["OR"] + [500] * 12 + [6000],
        ],
    )
    price = _section(
        "Average Price by Market",
        header,
        [
            ["CA"] + [10] * 12 + [None],
            ["OR"] + [12.5] * 12 + [None],
        ],
    )
    return dollars + [{}] + price


@pytest.fixture
def layout():
    return MultiSectionLayout((
        SectionSpec("dollars", header_row=1, start_row=2, end_row=4),
        SectionSpec("price", header_row=6, start_row=7, end_row=9),
    ))


@pytest.fixture
def workbook(month_row, multi_section_rows):
    """Six raw sheets in workbook order."""
    market_units = [
        month_row("CA", [100] * 12, Total=1200),
        month_row("OR", [50] * 12, Total=600),
        month_row(None, [150] * 12, Total=1800),
    ]
    sku_units = [
        month_row("CA", [60] * 12, sku="Gummy A"),
        month_row("CA", [10] * 6 + [100, 100, 100, 200, 200, 200], sku="Gummy B"),
        month_row("CA", [0] * 12, sku="Gummy C"),
        month_row("CA", [70] * 12, sku="CA Total"),
        month_row("OR", [50] * 12, sku="Gummy A"),
        month_row("OR", [None] * 12, sku=""),
    ]
    sku_dollars = [
        month_row("CA", [600] * 12, sku="Gummy A"),
        month_row("CA", [100] * 6 + [200, 200, 200, 400, 400, 400], sku="Gummy B"),
        month_row("OR", [500] * 12, sku="Gummy A"),
        month_row("OR", [500] * 12, sku="Total"),
    ]
    market_inventory = [
        {"Market": "CA", "Inventory": 250, "Months of Inventory on Hand": 2.5},
        {"Market": "OR", "Inventory": 300, "Months of Inventory on Hand": 6},
    ]
    sku_inventory = [
        {"Market": "CA", "SKU": "Gummy A", "Inventory": 30, "Inventory On Hand": 0.5},
        {"Market": "CA", "SKU": "Gummy B", "Inventory": -10, "Inventory On Hand": 1.5},
        {"Market": "CA", "SKU": "Gummy C", "Inventory": 500, "Inventory On Hand": 0},
        {"Market": "OR", "SKU": "Gummy A", "Inventory": 300, "Inventory On Hand": 6},
    ]
    return [
        multi_section_rows,
        market_units,
        sku_units,
        sku_dollars,
        market_inventory,
        sku_inventory,
    ]

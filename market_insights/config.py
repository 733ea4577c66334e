"""
Constants shared by every stage of the engine.

Classification cut-offs live here so they can be reviewed in one place.
Runtime choices (selected market, periods, window length) are passed
explicitly through FilterParams instead.
"""

# =============================================================================
# CALENDAR
# =============================================================================
MONTHS = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]

RECENT_WINDOW_CHOICES = (3, 6, 9, 12)
DEFAULT_RECENT_WINDOW = 6

# =============================================================================
# WORKBOOK SHAPE
# =============================================================================
ALL = "All"

COL_MARKET = "Market"
COL_SKU = "SKU"
COL_TOTAL = "Total"
COL_INVENTORY = "Inventory"
COL_MONTHS_ON_HAND = "MonthsOnHand"
COL_MONTHS_OF_INVENTORY = "MonthsOfInventory"

# Rows whose SKU contains this (case-insensitive) are sheet subtotals
TOTAL_ROW_SENTINEL = "total"

SHEET_MARKET = "market"
SHEET_SKU = "sku"
SHEET_MARKET_INVENTORY = "market_inventory"
SHEET_SKU_INVENTORY = "sku_inventory"

SKU_SHEET_KINDS = (SHEET_SKU, SHEET_SKU_INVENTORY)
INVENTORY_SHEET_KINDS = (SHEET_MARKET_INVENTORY, SHEET_SKU_INVENTORY)

# Physical sheet order of the workbook: (dataset name, sheet kind).
# The first sheet is the multi-section dollars/price sheet.
SHEET_ORDER = [
    ("market_dollars_and_price", None),
    ("market_units", SHEET_MARKET),
    ("sku_units", SHEET_SKU),
    ("sku_dollars", SHEET_SKU),
    ("market_inventory", SHEET_MARKET_INVENTORY),
    ("sku_inventory", SHEET_SKU_INVENTORY),
]

# Source header -> canonical column
COLUMN_ALIASES = {
    "Months of Inventory on Hand": COL_MONTHS_ON_HAND,
    "Months on Hand": COL_MONTHS_ON_HAND,
    "Inventory On Hand": COL_MONTHS_OF_INVENTORY,
    "Months of Inventory": COL_MONTHS_OF_INVENTORY,
    "On Hand": COL_INVENTORY,
}

# Default (name, header_row, start_row, end_row) of the stacked tables in
# the dollars/price sheet. Row indices are 0-based, end_row is exclusive.
DEFAULT_SECTIONS = [
    ("dollars", 1, 2, 22),
    ("price", 24, 25, 45),
]

# =============================================================================
# THRESHOLD ENGINE (multiples of the market standard deviation)
# =============================================================================
STRONG_SIGMA = 0.5
WEAK_SIGMA = -1.0
HIGH_POTENTIAL_SIGMA = 0.75
UNDERSTOCKED_SIGMA = 0.25

# =============================================================================
# CLASSIFIER
# =============================================================================
CONSISTENCY_MIN = 0.6
MONTHS_PER_YEAR = 12

HEALTH_OVERSTOCKED_MOH = 4
HEALTH_MODERATE_MOH = 2
HEALTH_UNDERSTOCKED_MOH = 1
HEALTH_UNDERSTOCKED_SALES = 50

OVERSTOCK_MOH = 4
OVERSTOCK_SEVERE_MOH = 6
OVERSTOCK_HIGH_VALUE = 10000
OVERSTOCK_SEVERE_HIGH_VALUE = 5000
OVERSTOCK_MEDIUM_VALUE = 5000
OVERSTOCK_SEVERE_MEDIUM_VALUE = 1000

UNDERSTOCK_MOH = 1
UNDERSTOCK_LOST_SHARE = 0.5
UNDERSTOCK_HIGH_LOSS = 5000
UNDERSTOCK_MEDIUM_LOSS = 2000

HIGH_POTENTIAL_TURNOVER = 6
HIGH_POTENTIAL_HIGH_REVENUE = 10000
HIGH_POTENTIAL_MEDIUM_REVENUE = 5000

GROWTH_MIN_WINDOW = 3
GROWTH_MIN_RATE = 25
GROWTH_MIN_ABSOLUTE = 50
GROWTH_MIN_VOLUME = 100
GROWTH_MARKET_SHARE = 0.5
GROWTH_HIGH_REVENUE_GAIN = 1000
GROWTH_HIGH_CURRENT_REVENUE = 3000
GROWTH_MEDIUM_REVENUE_GAIN = 500
GROWTH_MEDIUM_CURRENT_REVENUE = 1500

# =============================================================================
# AGGREGATOR
# =============================================================================
CONCENTRATION_TARGET = 0.8
TOP_N_DEFAULT = 15

# =============================================================================
# LOGGING
# =============================================================================
LOG_LEVEL_ENV = "MARKET_INSIGHTS_LOG_LEVEL"

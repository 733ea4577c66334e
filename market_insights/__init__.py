from .logger import logger
from .errors import (
    MarketInsightsError,
    SheetValidationError,
    UnknownPeriodError,
    UndefinedThresholdsError,
)
from .periods import PeriodCalendar, recent_window, split_halves
from .io_utils import load_workbook
from .cleaning import (
    MultiSectionLayout,
    SectionSpec,
    Snapshot,
    computed_total,
    normalize_sheet,
    normalize_multi_section,
    normalize_workbook,
)
from .metrics import compute_metrics, metric_set, safe_divide, turnover_rate
from .thresholds import MarketThresholds, compute_thresholds, market_thresholds, thresholds_for
from .classification import (
    Classification,
    HealthStatus,
    Impact,
    OpportunityType,
    PerformanceCategory,
    assign_health_status,
    assign_performance_category,
    classify_inventory_health,
    classify_performance,
    detect_opportunities,
)
from .aggregation import (
    ConcentrationResult,
    category_counts,
    concentration_curve,
    group_totals,
    market_totals,
    monthly_pivot,
    revenue_concentration,
    top_n_by_metric,
)
from .filters import FilterParams, filter_records
from .pipeline import build_views, run, to_records

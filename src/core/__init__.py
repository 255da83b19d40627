# Core forecast aggregation and insight engine
# Pure functions over in-memory frames; no I/O happens here

from .parsers import (
    IdentifierNormalizer,
    ProductIdentifier,
    coerce_quantities,
    coerce_quantity,
    normalize,
    parse_identifier,
)
from .quality import DataQualityReport, DataQualityChecker
from .reconciliation import (
    AggregationScope,
    ForecastMatch,
    MatchType,
    calendar_last_date,
    match_forecast,
    reconcile_forecast,
    reconcile_monthly,
    reconcile_sales,
)
from .windows import available_years, last_n_days, year_month_aggregate
from .analysis import (
    Volatility,
    classify_cv_ratio,
    classify_peak_ratio,
    coefficient_of_variation,
    compute_key_metrics,
    forecast_delta,
    forecast_growth_percent,
    mean,
    peak_to_average,
    population_variance,
    std_dev,
    summarize_forecast,
    trend_delta,
)
from .insights import (
    ForecastDeltaMode,
    Insight,
    InsightConfig,
    InsightRuleEngine,
    generate_insight_report,
    generate_insights,
)

__all__ = [
    "IdentifierNormalizer",
    "ProductIdentifier",
    "coerce_quantities",
    "coerce_quantity",
    "normalize",
    "parse_identifier",
    "DataQualityReport",
    "DataQualityChecker",
    "AggregationScope",
    "ForecastMatch",
    "MatchType",
    "calendar_last_date",
    "match_forecast",
    "reconcile_forecast",
    "reconcile_monthly",
    "reconcile_sales",
    "available_years",
    "last_n_days",
    "year_month_aggregate",
    "Volatility",
    "classify_cv_ratio",
    "classify_peak_ratio",
    "coefficient_of_variation",
    "compute_key_metrics",
    "forecast_delta",
    "forecast_growth_percent",
    "mean",
    "peak_to_average",
    "population_variance",
    "std_dev",
    "summarize_forecast",
    "trend_delta",
    "ForecastDeltaMode",
    "Insight",
    "InsightConfig",
    "InsightRuleEngine",
    "generate_insight_report",
    "generate_insights",
]
